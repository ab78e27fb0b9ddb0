# src/flatscribe/core/writer.py
import logging
import os
import tempfile
from pathlib import Path, PurePosixPath

from flatscribe.errors import WriteFailure

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"


def _temp_prefix(name: str) -> str:
    return f".{name}."


def is_temp_artifact(rel_path: str, output_path: str) -> bool:
    """True for the temp files atomic_write creates next to output_path."""
    candidate = PurePosixPath(rel_path)
    output = PurePosixPath(output_path)
    return (
        candidate.parent == output.parent
        and candidate.name.startswith(_temp_prefix(output.name))
        and candidate.name.endswith(TEMP_SUFFIX)
    )


def atomic_write(output_file: Path, text: str) -> None:
    """
    Writes text to a sibling temp file, then renames it over output_file.
    On any failure the temp file is removed and the old output is left as it was.
    """
    tmp_name = None
    replaced = False
    try:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            newline="",
            dir=output_file.parent,
            prefix=_temp_prefix(output_file.name),
            suffix=TEMP_SUFFIX,
            delete=False,
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, output_file)
        replaced = True
    except (OSError, ValueError) as e:
        raise WriteFailure(f"Could not write {output_file}: {e}") from e
    finally:
        if tmp_name is not None and not replaced:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
    logger.info("[WRITE] Output written to %s", output_file)
