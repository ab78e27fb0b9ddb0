# src/flatscribe/models.py
import enum
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

from flatscribe.core.ignore import IgnoreRuleset


@dataclass(frozen=True)
class ResolvedConfig:
    """Immutable, fully merged configuration for one workspace."""
    output_path: str
    include_patterns: Tuple[str, ...]
    exclude_patterns: Tuple[str, ...]
    default_exclude_patterns: Tuple[str, ...]
    language_map: Mapping[str, str]
    debounce_ms: int
    max_file_size_bytes: int

    @property
    def user_exclude_patterns(self) -> Tuple[str, ...]:
        return self.exclude_patterns[len(self.default_exclude_patterns):]


class NodeKind(str, enum.Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass
class FileNode:
    name: str
    relative_path: str
    kind: NodeKind
    children: List["FileNode"] = field(default_factory=list)

    @property
    def is_dir(self) -> bool:
        return self.kind is NodeKind.DIRECTORY


@dataclass(frozen=True)
class GenerationContext:
    """Everything one pipeline run needs. Owned by that run only."""
    root: Path
    config: ResolvedConfig
    gitignore: IgnoreRuleset


@dataclass(frozen=True)
class RunResult:
    succeeded: bool
    output_file: Optional[Path] = None
    file_count: int = 0
    # (relative path, bytes in the snapshot), sorted by path
    file_sizes: Tuple[Tuple[str, int], ...] = ()
    error: Optional[str] = None
    finished_at: datetime = field(default_factory=datetime.now)


class EventKind(str, enum.Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class FileEvent:
    path: str
    kind: EventKind
