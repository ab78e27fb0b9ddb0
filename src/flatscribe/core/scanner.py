# src/flatscribe/core/scanner.py
import logging
import os
from pathlib import Path
from typing import List

from flatscribe.errors import ScanAccessError

logger = logging.getLogger(__name__)

# Never descended into; its contents are never part of a snapshot.
PRUNED_DIRS = {".git"}


class ProjectScanner:
    """Discovers every leaf file under root_dir, without following symlinks."""

    def __init__(self, root_dir: Path):
        self.root_dir = root_dir
        self.skipped: List[ScanAccessError] = []

    def _on_walk_error(self, error: OSError) -> None:
        skipped = ScanAccessError(f"Skipping unreadable directory {error.filename}: {error.strerror}")
        self.skipped.append(skipped)
        logger.warning("%s", skipped)

    def scan(self) -> List[str]:
        """
        Returns root-relative, forward-slash paths of all regular files.
        Unreadable directories are skipped with a warning; the scan never aborts.
        """
        found: List[str] = []
        for root, dirs, files in os.walk(self.root_dir, onerror=self._on_walk_error, followlinks=False):
            root_path = Path(root)

            # Prune in place so os.walk never enters them
            for d in list(dirs):
                if d in PRUNED_DIRS or (root_path / d).is_symlink():
                    dirs.remove(d)

            for f in files:
                file_abs_path = root_path / f
                if file_abs_path.is_symlink():
                    continue
                try:
                    rel_path = file_abs_path.relative_to(self.root_dir)
                except ValueError:
                    continue
                found.append(rel_path.as_posix())

        logger.info("[SCAN] Discovered %d files under %s", len(found), self.root_dir)
        return found
