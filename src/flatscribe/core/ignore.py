# src/flatscribe/core/ignore.py
import logging
from pathlib import Path
from typing import Iterable, List

import pathspec

from flatscribe.config import GITIGNORE_FILE_NAME

logger = logging.getLogger(__name__)

# Characters git treats as wildcards or escapes anywhere in a pattern
_GLOB_SPECIAL = set("\\[]*?!#")


def _valid_lines(lines: Iterable[str], source: str) -> List[str]:
    """Drops the lines pathspec refuses to compile, the way git skips them."""
    kept: List[str] = []
    for line in lines:
        try:
            pathspec.PathSpec.from_lines("gitwildmatch", [line])
        except ValueError as e:
            logger.warning("Skipping invalid pattern %r in %s: %s", line, source, e)
            continue
        kept.append(line)
    return kept


class IgnoreRuleset:
    """
    A compiled, read-only path matcher.
    Built fresh for every run because the underlying patterns may have changed.
    """

    def __init__(self, spec: pathspec.PathSpec):
        self._spec = spec

    @classmethod
    def from_gitignore(cls, text: str) -> "IgnoreRuleset":
        """Compiles .gitignore text with git's own precedence (negations, last match wins)."""
        lines = _valid_lines(text.splitlines(), GITIGNORE_FILE_NAME)
        return cls(pathspec.GitIgnoreSpec.from_lines(lines))

    @classmethod
    def from_patterns(cls, patterns: Iterable[str], source: str = "config") -> "IgnoreRuleset":
        return cls(pathspec.PathSpec.from_lines("gitwildmatch", _valid_lines(patterns, source)))

    @classmethod
    def empty(cls) -> "IgnoreRuleset":
        return cls.from_patterns([])

    def matches(self, relative_path: str) -> bool:
        if not relative_path:
            return False
        return self._spec.match_file(relative_path)


def read_gitignore(root_dir: Path) -> str:
    """Returns the root .gitignore text, or an empty string when there is none."""
    gitignore_file = root_dir / GITIGNORE_FILE_NAME
    try:
        return gitignore_file.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.info("%s not found, proceeding without it.", GITIGNORE_FILE_NAME)
        return ""
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read %s: %s", gitignore_file, e)
        return ""


def escape_pattern(relative_path: str) -> str:
    """A root-anchored .gitignore line that matches relative_path literally."""
    escaped = "".join(f"\\{c}" if c in _GLOB_SPECIAL else c for c in relative_path)
    stripped = escaped.rstrip(" ")
    # git drops unescaped trailing spaces
    escaped = stripped + "\\ " * (len(escaped) - len(stripped))
    return f"/{escaped}"


def gitignore_entry(output_filename: str) -> str:
    """The line to register: the plain name when git reads it literally, else an escaped pattern."""
    if IgnoreRuleset.from_gitignore(output_filename).matches(output_filename):
        return output_filename
    return escape_pattern(output_filename)


def ensure_output_ignored(root_dir: Path, output_filename: str) -> bool:
    """
    Makes sure .gitignore covers output_filename.
    1. If .gitignore is missing, create it with just the output entry.
    2. If it exists and neither lists the entry nor matches the output, append it.
    Returns True when the file was written.
    """
    gitignore_file = root_dir / GITIGNORE_FILE_NAME
    entry = gitignore_entry(output_filename)

    if not gitignore_file.exists():
        gitignore_file.write_text(f"{entry}\n", encoding="utf-8")
        logger.info("Created %s with '%s'.", GITIGNORE_FILE_NAME, entry)
        return True

    content = gitignore_file.read_text(encoding="utf-8")
    existing = {line.strip() for line in content.splitlines()}
    if output_filename in existing or entry in existing:
        return False
    if IgnoreRuleset.from_gitignore(content).matches(output_filename):
        return False

    if content.strip():
        new_content = f"{content.rstrip()}\n{entry}\n"
    else:
        new_content = f"{entry}\n"
    gitignore_file.write_text(new_content, encoding="utf-8")
    logger.info("Updating %s: added '%s'.", GITIGNORE_FILE_NAME, entry)
    return True
