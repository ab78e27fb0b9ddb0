# src/flatscribe/core/content.py
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Iterable, Tuple

from flatscribe.config import DEFAULT_READ_WORKERS
from flatscribe.errors import ContentReadError
from flatscribe.models import ResolvedConfig

logger = logging.getLogger(__name__)

SIZE_LIMIT_PLACEHOLDER = "[File omitted: exceeds size limit]"
READ_ERROR_PLACEHOLDER = "[Error reading file]"


def read_entry(root_dir: Path, rel_path: str, max_file_size_bytes: int) -> str:
    """
    Returns the file's text, or a placeholder.
    Files over the size limit are never opened.
    """
    file_abs_path = root_dir / rel_path
    try:
        if max_file_size_bytes > 0 and file_abs_path.stat().st_size > max_file_size_bytes:
            logger.info("Omitting %s: larger than %d bytes", rel_path, max_file_size_bytes)
            return SIZE_LIMIT_PLACEHOLDER
        # newline="" keeps \r\n intact so the snapshot matches the file byte for byte
        with open(file_abs_path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        error = ContentReadError(f"Could not read {rel_path}: {e}")
        logger.warning("%s", error)
        return READ_ERROR_PLACEHOLDER


def assemble(root_dir: Path, final_paths: Iterable[str], config: ResolvedConfig,
             max_workers: int = DEFAULT_READ_WORKERS) -> Dict[str, str]:
    """Loads every selected file with a bounded worker pool. One bad file never fails the batch."""
    paths = sorted(final_paths)

    def _load(rel_path: str) -> Tuple[str, str]:
        return rel_path, read_entry(root_dir, rel_path, config.max_file_size_bytes)

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        contents = dict(pool.map(_load, paths))

    logger.info("[READ] Loaded content for %d files.", len(contents))
    return contents
