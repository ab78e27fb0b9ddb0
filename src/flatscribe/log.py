# src/flatscribe/log.py
import logging
import sys

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configures the 'flatscribe' logger hierarchy to write to stderr."""
    logger = logging.getLogger("flatscribe")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    for old in list(logger.handlers):
        logger.removeHandler(old)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
