# src/flatscribe/errors.py


class FlatscribeError(Exception):
    """Base class for all flatscribe errors."""


class ConfigParseError(FlatscribeError):
    """The user config source could not be read or parsed. Recovered with defaults."""


class ScanAccessError(FlatscribeError):
    """A directory could not be listed during discovery. Skipped."""


class ContentReadError(FlatscribeError):
    """A selected file could not be read. Replaced with a placeholder."""


class WriteFailure(FlatscribeError):
    """Writing the output artifact failed. The run is aborted."""


class CriticalPipelineError(FlatscribeError):
    """Any unexpected exception raised inside a pipeline stage."""

    def __init__(self, stage: str, cause: BaseException):
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause
