# src/flatscribe/watcher.py
"""
Turns raw filesystem events into regeneration triggers.

Events arrive on a queue (fed by WatchdogEventSource, or anything else).
Changes to .gitignore or the config file invalidate the config cache and
trigger a run right away. Every other event is first checked against a cheap
pre-filter, and survivors are debounced so a burst of saves becomes one run.
"""
import enum
import logging
import queue
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from flatscribe.config import CONFIG_FILE_NAME, GITIGNORE_FILE_NAME
from flatscribe.coordinator import RegenerationCoordinator
from flatscribe.core.filters import FilterEngine, normalize_path
from flatscribe.core.ignore import read_gitignore
from flatscribe.core.settings import ConfigCache
from flatscribe.core.writer import is_temp_artifact
from flatscribe.models import EventKind, FileEvent, ResolvedConfig, RunResult
from flatscribe.status import PauseGate

logger = logging.getLogger(__name__)

_STOP = object()


class EventRoute(enum.Enum):
    TRIGGER_SOURCE = "trigger-source"
    RELEVANT = "relevant"
    IGNORED = "ignored"


@dataclass(frozen=True)
class PreFilter:
    """Snapshot of what the last run knew: which paths can never matter."""
    output_path: str
    engine: FilterEngine

    @classmethod
    def build(cls, config: ResolvedConfig, gitignore_text: str) -> "PreFilter":
        return cls(
            output_path=normalize_path(config.output_path),
            engine=FilterEngine.from_gitignore_text(config, gitignore_text),
        )

    def drops(self, rel_path: str) -> bool:
        if rel_path == self.output_path or is_temp_artifact(rel_path, self.output_path):
            return True
        return not self.engine.is_relevant(rel_path)


def is_trigger_source(rel_path: str, config_file_name: str = CONFIG_FILE_NAME) -> bool:
    return rel_path in (GITIGNORE_FILE_NAME, config_file_name)


def classify(rel_path: str, prefilter: Optional[PreFilter],
             config_file_name: str = CONFIG_FILE_NAME) -> EventRoute:
    """Pure routing decision for one changed path."""
    if not rel_path:
        return EventRoute.IGNORED
    if is_trigger_source(rel_path, config_file_name):
        return EventRoute.TRIGGER_SOURCE
    if prefilter is not None and prefilter.drops(rel_path):
        return EventRoute.IGNORED
    return EventRoute.RELEVANT


class Debouncer:
    """
    Calls action once the quiet window has passed since the last call().
    fire_now() cancels any pending call and runs action immediately on its own thread.
    """

    def __init__(self, action: Callable[[], None], wait_seconds: float):
        self.action = action
        self.wait_seconds = wait_seconds
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None

    def call(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.wait_seconds, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def fire_now(self) -> None:
        self.cancel()
        threading.Thread(target=self.action, name="flatscribe-trigger", daemon=True).start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        self.action()


class ChangeWatcher:
    def __init__(self, root_dir: Path, coordinator: RegenerationCoordinator, config_cache: ConfigCache,
                 gate: Optional[PauseGate] = None, channel: Optional[queue.Queue] = None):
        self.root_dir = root_dir
        self.coordinator = coordinator
        self.config_cache = config_cache
        self.gate = gate or PauseGate()
        self.channel: queue.Queue = channel if channel is not None else queue.Queue()
        self.prefilter: Optional[PreFilter] = None
        self._config_file_name = config_cache.config_file.name

        config = config_cache.get_resolved()
        self.debouncer = Debouncer(self._trigger_debounced, config.debounce_ms / 1000.0)
        self.refresh_prefilter(config)

        coordinator.add_listener(self._on_run_finished)
        self.gate.add_listener(self._on_pause_changed)

    def refresh_prefilter(self, config: Optional[ResolvedConfig] = None) -> None:
        config = config or self.config_cache.get_resolved()
        self.prefilter = PreFilter.build(config, read_gitignore(self.root_dir))
        self.debouncer.wait_seconds = config.debounce_ms / 1000.0
        logger.debug("Pre-filter refreshed (output: %s).", config.output_path)

    def relative_path(self, path: str) -> str:
        candidate = Path(path)
        if candidate.is_absolute():
            try:
                candidate = candidate.relative_to(self.root_dir)
            except ValueError:
                return ""
        return normalize_path(candidate.as_posix())

    def handle(self, event: FileEvent) -> EventRoute:
        if self.gate.paused:
            return EventRoute.IGNORED

        rel_path = self.relative_path(event.path)
        route = classify(rel_path, self.prefilter, self._config_file_name)

        if route is EventRoute.TRIGGER_SOURCE:
            logger.info("Config file change detected (%s, %s); clearing cache and regenerating.",
                        rel_path, event.kind.value)
            self.config_cache.invalidate()
            self.debouncer.fire_now()
        elif route is EventRoute.RELEVANT:
            logger.debug("Relevant change (%s, %s); debouncing regeneration.", rel_path, event.kind.value)
            self.debouncer.call()
        return route

    def run(self) -> None:
        """Consumes the channel until stop() is called."""
        while True:
            event = self.channel.get()
            if event is _STOP:
                break
            self.handle(event)

    def stop(self) -> None:
        self.debouncer.cancel()
        self.channel.put(_STOP)

    def _trigger_debounced(self) -> None:
        if self.gate.paused:
            return
        self.coordinator.trigger("file change")

    def _on_run_finished(self, result: RunResult) -> None:
        self.refresh_prefilter()

    def _on_pause_changed(self, paused: bool) -> None:
        if paused:
            self.debouncer.cancel()
            logger.info("Auto-generation paused.")
            return
        logger.info("Auto-generation resumed. Triggering a build to sync...")
        # The config may have changed while paused
        self.config_cache.invalidate()
        self.debouncer.fire_now()


class _ChannelHandler(FileSystemEventHandler):
    def __init__(self, channel: queue.Queue):
        super().__init__()
        self.channel = channel

    def _put(self, path, kind: EventKind) -> None:
        if isinstance(path, bytes):
            path = path.decode("utf-8", errors="surrogateescape")
        self.channel.put(FileEvent(path=path, kind=kind))

    def on_created(self, event: FileSystemEvent) -> None:
        self._put(event.src_path, EventKind.CREATED)

    def on_modified(self, event: FileSystemEvent) -> None:
        # Directory mtime changes are echoes of the file events inside them
        if not event.is_directory:
            self._put(event.src_path, EventKind.MODIFIED)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._put(event.src_path, EventKind.DELETED)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._put(event.src_path, EventKind.DELETED)
        self._put(event.dest_path, EventKind.CREATED)


class WatchdogEventSource:
    """Feeds recursive watchdog events for root_dir into a channel."""

    def __init__(self, root_dir: Path, channel: queue.Queue):
        self.root_dir = root_dir
        self.channel = channel
        self._observer = Observer()
        self._observer.schedule(_ChannelHandler(channel), str(root_dir), recursive=True)

    def start(self) -> None:
        self._observer.start()
        logger.info("Watching %s", self.root_dir)

    def stop(self) -> None:
        self._observer.stop()
        self._observer.join()
