# src/flatscribe/core/settings.py
import logging
import threading
from concurrent.futures import Future
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Mapping, Optional

import yaml

from flatscribe.config import (
    CONFIG_FILE_NAME,
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_INCLUDE_PATTERNS,
    DEFAULT_LANGUAGE_MAP,
    DEFAULT_MAX_FILE_SIZE_BYTES,
    DEFAULT_OUTPUT_FILE,
)
from flatscribe.errors import ConfigParseError
from flatscribe.models import ResolvedConfig

logger = logging.getLogger(__name__)

BASE_CONFIG: Dict[str, Any] = {
    "output_file": DEFAULT_OUTPUT_FILE,
    "include": DEFAULT_INCLUDE_PATTERNS,
    "exclude": DEFAULT_EXCLUDE_PATTERNS,
    "language_map": DEFAULT_LANGUAGE_MAP,
    "debounce_ms": DEFAULT_DEBOUNCE_MS,
    "max_file_size_bytes": DEFAULT_MAX_FILE_SIZE_BYTES,
}

KNOWN_KEYS = set(BASE_CONFIG) | {"max_file_size_kb"}


def _pattern_list(user: Mapping[str, Any], key: str) -> list:
    value = user.get(key)
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)) and all(isinstance(p, str) for p in value):
        return list(value)
    logger.warning("Ignoring '%s': expected a list of glob patterns.", key)
    return []


def _non_negative_int(user: Mapping[str, Any], key: str, default: int) -> int:
    value = user.get(key)
    if value is None:
        return default
    # bool is an int subclass; `debounce_ms: yes` is a typo, not a number
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        logger.warning("Ignoring '%s': expected a non-negative integer, got %r.", key, value)
        return default
    return value


def _output_path(user: Mapping[str, Any], default: str) -> str:
    value = user.get("output_file")
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        logger.warning("Ignoring 'output_file': expected a non-empty path.")
        return default
    path = PurePosixPath(value.strip().replace("\\", "/"))
    if path.is_absolute() or ".." in path.parts or str(path) == ".":
        logger.warning("Ignoring 'output_file' %r: it must stay inside the project root.", value)
        return default
    return path.as_posix()


def resolve_config(base: Mapping[str, Any], user: Optional[Mapping[str, Any]] = None) -> ResolvedConfig:
    """
    Merges a partial user config over the base config. Pure: no IO.

    - Scalars: user value wins when present.
    - exclude: base + user, in that order.
    - include: user list replaces the base list when non-empty.
    - language_map: shallow merge, user entries win.
    """
    user = user or {}
    for key in sorted(set(user) - KNOWN_KEYS, key=str):
        if not isinstance(key, str):
            logger.warning("Config key %r ignored: keys must be strings.", key)
        else:
            logger.warning("Unknown config key '%s' ignored.", key)

    base_excludes = tuple(base.get("exclude", ()))
    user_excludes = tuple(_pattern_list(user, "exclude"))
    user_includes = _pattern_list(user, "include")

    language_map = dict(base.get("language_map", {}))
    user_languages = user.get("language_map")
    if isinstance(user_languages, Mapping):
        language_map.update({str(k): str(v) for k, v in user_languages.items()})
    elif user_languages is not None:
        logger.warning("Ignoring 'language_map': expected a mapping of extension to language.")

    base_size = base.get("max_file_size_bytes", 0)
    if "max_file_size_bytes" not in user and "max_file_size_kb" in user:
        max_size = _non_negative_int(user, "max_file_size_kb", -1)
        max_size = base_size if max_size < 0 else max_size * 1024
    else:
        max_size = _non_negative_int(user, "max_file_size_bytes", base_size)

    return ResolvedConfig(
        output_path=_output_path(user, base.get("output_file", DEFAULT_OUTPUT_FILE)),
        include_patterns=tuple(user_includes or base.get("include", ())),
        exclude_patterns=base_excludes + user_excludes,
        default_exclude_patterns=base_excludes,
        language_map=language_map,
        debounce_ms=_non_negative_int(user, "debounce_ms", base.get("debounce_ms", DEFAULT_DEBOUNCE_MS)),
        max_file_size_bytes=max_size,
    )


def load_user_config(config_file: Path) -> Dict[str, Any]:
    """
    Reads the YAML config source. A missing file is an empty config.
    Raises ConfigParseError for anything unreadable or not a mapping.
    """
    try:
        text = config_file.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigParseError(f"Could not read {config_file.name}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Could not parse {config_file.name}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigParseError(f"{config_file.name} must contain a mapping at the top level.")
    return data


class ConfigCache:
    """
    Memoizes the resolved config of one workspace.

    Concurrent get_resolved() calls share a single in-flight load. A load that
    finishes after invalidate() is handed to its waiters but never cached.
    """

    def __init__(self, root_dir: Path, base: Optional[Mapping[str, Any]] = None,
                 config_file_name: str = CONFIG_FILE_NAME, overrides: Optional[Mapping[str, Any]] = None):
        self.root_dir = root_dir
        self.overrides = dict(overrides or {})
        self.config_file = root_dir / config_file_name
        self._base = base if base is not None else BASE_CONFIG
        self._lock = threading.Lock()
        self._cached: Optional[ResolvedConfig] = None
        self._in_flight: Optional[Future] = None
        self._generation = 0

    def get_resolved(self) -> ResolvedConfig:
        with self._lock:
            if self._cached is not None:
                return self._cached
            if self._in_flight is not None:
                waiting_on = self._in_flight
            else:
                waiting_on = None
                load = self._in_flight = Future()
                generation = self._generation

        if waiting_on is not None:
            return waiting_on.result()

        try:
            resolved = self._load()
        except Exception as e:
            with self._lock:
                if self._in_flight is load:
                    self._in_flight = None
            load.set_exception(e)
            raise

        with self._lock:
            if generation == self._generation:
                self._cached = resolved
            if self._in_flight is load:
                self._in_flight = None
        load.set_result(resolved)
        return resolved

    def invalidate(self) -> None:
        with self._lock:
            self._cached = None
            self._in_flight = None
            self._generation += 1
        logger.info("Configuration cache cleared.")

    def _load(self) -> ResolvedConfig:
        try:
            user = load_user_config(self.config_file)
        except ConfigParseError as e:
            # Cache the fallback too, or every trigger would retry the broken file.
            logger.error("%s Falling back to default settings.", e)
            user = {}
        else:
            if user:
                logger.info("Loaded user config from %s", self.config_file)
            else:
                logger.info("No %s found, using default settings.", self.config_file.name)
        if self.overrides:
            user = {**user, **self.overrides}
        try:
            return resolve_config(self._base, user)
        except Exception:
            logger.exception("Could not resolve %s. Falling back to default settings.", self.config_file.name)
            return resolve_config(self._base, self.overrides)


def config_template() -> str:
    """A commented starter .flatscribe.yaml."""
    defaults = "\n".join(f'#   - "{pattern}"' for pattern in DEFAULT_EXCLUDE_PATTERNS)
    return f"""# flatscribe configuration (YAML, comments allowed)
#
# Built-in exclusions. A file matching one of these can be brought back by
# listing it under "include":
{defaults}

# Path of the generated Markdown file, relative to the project root.
output_file: "{DEFAULT_OUTPUT_FILE}"

# Allow-list. Files removed by the built-in exclusions above are ADDED BACK
# when they match a pattern here. Files ignored by .gitignore stay ignored.
# Example: ["pnpm-lock.yaml", "dist/important-file.js"]
include: []

# Applied last. A file matching a pattern here is REMOVED, even if it was
# brought back by "include".
# Example: ["**/*.test.ts"]
exclude: []

# Extra or overriding extension -> code fence language entries.
language_map: {{}}

# Quiet period in milliseconds after the last change before regenerating.
debounce_ms: {DEFAULT_DEBOUNCE_MS}

# Files larger than this many bytes are listed with a placeholder. 0 = no limit.
max_file_size_bytes: {DEFAULT_MAX_FILE_SIZE_BYTES}
"""
