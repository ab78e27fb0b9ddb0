# src/flatscribe/core/filters.py
"""
Five-stage file selection.

Precedence, from weakest to strongest:

1. Universe: every discovered leaf file, minus the output artifact.
2. .gitignore removes paths. Nothing later can bring them back.
3. Built-in excludes remove paths.
4. Include patterns re-admit paths removed by stage 3, and only those.
5. The full exclude list removes paths again. User excludes always win;
   paths re-admitted in stage 4 are only checked against user excludes.
"""
import logging
from pathlib import Path
from typing import FrozenSet, Iterable, Set

from flatscribe.core.ignore import IgnoreRuleset
from flatscribe.models import ResolvedConfig

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    path = path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path.strip("/")


class FilterEngine:
    def __init__(self, config: ResolvedConfig, gitignore: IgnoreRuleset):
        self.config = config
        self.gitignore = gitignore
        self.default_excludes = IgnoreRuleset.from_patterns(config.default_exclude_patterns, "built-in excludes")
        self.user_excludes = IgnoreRuleset.from_patterns(config.user_exclude_patterns, "exclude")
        self.all_excludes = IgnoreRuleset.from_patterns(config.exclude_patterns, "exclude")
        self.includes = IgnoreRuleset.from_patterns(config.include_patterns, "include")

    @classmethod
    def from_gitignore_text(cls, config: ResolvedConfig, gitignore_text: str) -> "FilterEngine":
        return cls(config, IgnoreRuleset.from_gitignore(gitignore_text))

    def select(self, all_relative_file_paths: Iterable[str]) -> FrozenSet[str]:
        output_path = normalize_path(self.config.output_path)

        # 1. Universe
        universe: Set[str] = {normalize_path(p) for p in all_relative_file_paths}
        universe.discard(output_path)
        universe.discard("")

        # 2. .gitignore
        after_gitignore = {p for p in universe if not self.gitignore.matches(p)}

        # 3. Built-in excludes only
        removed_by_defaults = {p for p in after_gitignore if self.default_excludes.matches(p)}
        after_defaults = after_gitignore - removed_by_defaults

        # 4. Include override
        readmitted = {p for p in removed_by_defaults if self.includes.matches(p)}

        # 5. Final exclude
        kept = {p for p in after_defaults if not self.all_excludes.matches(p)}
        kept |= {p for p in readmitted if not self.user_excludes.matches(p)}

        logger.info(
            "[FILTER] %d discovered, %d gitignored, %d excluded by defaults, "
            "%d re-included, %d selected",
            len(universe), len(universe) - len(after_gitignore),
            len(removed_by_defaults), len(readmitted), len(kept),
        )
        return frozenset(kept)

    def is_relevant(self, relative_path: str) -> bool:
        """Whether a single path would survive select()."""
        path = normalize_path(relative_path)
        if not path or path == normalize_path(self.config.output_path):
            return False
        if self.gitignore.matches(path):
            return False
        if self.user_excludes.matches(path):
            return False
        if self.default_excludes.matches(path):
            return self.includes.matches(path)
        return True


def select_paths(root: Path, all_relative_file_paths: Iterable[str], gitignore_text: str,
                 config: ResolvedConfig) -> FrozenSet[str]:
    """Selects the final file set. Paths are relative to root; callers sort the result."""
    logger.debug("Selecting files under %s", root)
    engine = FilterEngine.from_gitignore_text(config, gitignore_text)
    return engine.select(all_relative_file_paths)
