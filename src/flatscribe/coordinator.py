# src/flatscribe/coordinator.py
"""
Runs the snapshot pipeline, one run at a time.

A trigger that arrives while a run is in flight does not start a second
run. It schedules a single catch-up run, shared by every trigger that arrives
before the current run finishes.
"""
import logging
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from flatscribe.config import DEFAULT_READ_WORKERS
from flatscribe.core.content import assemble
from flatscribe.core.filters import FilterEngine, normalize_path
from flatscribe.core.ignore import IgnoreRuleset, ensure_output_ignored, read_gitignore
from flatscribe.core.markdown import render
from flatscribe.core.scanner import ProjectScanner
from flatscribe.core.settings import ConfigCache
from flatscribe.core.tree import build_file_tree
from flatscribe.core.writer import atomic_write
from flatscribe.errors import CriticalPipelineError, FlatscribeError, WriteFailure
from flatscribe.models import GenerationContext, ResolvedConfig, RunResult
from flatscribe.status import NullStatus, RunState, StatusSink

logger = logging.getLogger(__name__)


def _stage(name: str, fn: Callable, *args, **kwargs):
    """Runs one pipeline stage, wrapping unexpected exceptions."""
    try:
        return fn(*args, **kwargs)
    except FlatscribeError:
        raise
    except Exception as e:
        raise CriticalPipelineError(name, e) from e


class RegenerationCoordinator:
    def __init__(self, root_dir: Path, config_cache: ConfigCache, status: Optional[StatusSink] = None,
                 max_workers: int = DEFAULT_READ_WORKERS):
        self.root_dir = root_dir
        self.config_cache = config_cache
        self.status = status or NullStatus()
        self.max_workers = max_workers
        self._lock = threading.Lock()
        self._in_flight: Optional[Future] = None
        self._catch_up: Optional[Future] = None
        self._listeners: List[Callable[[RunResult], None]] = []

    @property
    def running(self) -> bool:
        with self._lock:
            return self._in_flight is not None

    def add_listener(self, listener: Callable[[RunResult], None]) -> None:
        """listener(result) is called after every run, success or not."""
        self._listeners.append(listener)

    def trigger(self, reason: str = "manual") -> "Future[RunResult]":
        """
        Requests a run. Returns a future for the run that will cover this request.

        When idle, the run executes in the calling thread before this returns.
        When busy, returns immediately with the pending catch-up run's future.
        """
        with self._lock:
            if self._in_flight is not None:
                if self._catch_up is None:
                    self._catch_up = Future()
                    logger.info("Run in progress; queued a catch-up run (%s).", reason)
                else:
                    logger.debug("Catch-up already queued; folding trigger (%s).", reason)
                return self._catch_up
            current = self._in_flight = Future()

        logger.info("Generation triggered (%s).", reason)
        self._drain(current)
        return current

    def generate(self) -> RunResult:
        """Blocking form of trigger()."""
        return self.trigger("manual").result()

    def _drain(self, current: Future) -> None:
        while True:
            result = self._execute()
            current.set_result(result)
            self._notify(result)
            with self._lock:
                if self._catch_up is None:
                    self._in_flight = None
                    return
                current = self._in_flight = self._catch_up
                self._catch_up = None
            logger.info("Starting catch-up run.")

    def _notify(self, result: RunResult) -> None:
        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception:
                logger.exception("Run listener %r failed.", listener)

    def _execute(self) -> RunResult:
        self.status.update(RunState.GENERATING)
        try:
            result = self.run_pipeline()
        except (WriteFailure, CriticalPipelineError) as e:
            logger.exception("Generation failed: %s", e)
            self.status.update(RunState.ERROR, "Generation failed. Check logs.")
            return RunResult(succeeded=False, error=str(e))
        except Exception as e:
            logger.exception("A critical error occurred: %s", e)
            self.status.update(RunState.ERROR, "Generation failed. Check logs.")
            return RunResult(succeeded=False, error=str(CriticalPipelineError("pipeline", e)))

        self.status.update(RunState.UPDATED, result.finished_at.strftime("%H:%M:%S"))
        logger.info("Generation process completed successfully.")
        return result

    def build_context(self) -> GenerationContext:
        config = _stage("resolve config", self.config_cache.get_resolved)
        gitignore_text = _stage("read .gitignore", read_gitignore, self.root_dir)
        gitignore = _stage("compile .gitignore", IgnoreRuleset.from_gitignore, gitignore_text)
        return GenerationContext(root=self.root_dir, config=config, gitignore=gitignore)

    def output_file_for(self, config: ResolvedConfig) -> Path:
        root = self.root_dir.resolve()
        output_file = (root / config.output_path).resolve()
        if root not in output_file.parents:
            raise WriteFailure(f"Output path {config.output_path!r} resolves outside {root}")
        return output_file

    def _collect(self, context: GenerationContext,
                 selection: Optional[List[str]] = None) -> Tuple[str, Dict[str, str]]:
        discovered = _stage("scan", ProjectScanner(context.root).scan)
        engine = FilterEngine(context.config, context.gitignore)
        final_paths = _stage("filter", engine.select, discovered)
        if selection is not None:
            final_paths = frozenset(p for p in final_paths if _in_selection(p, selection))
        tree = _stage("build tree", build_file_tree, final_paths)
        logger.info("File tree constructed (%d files).", len(final_paths))
        contents = _stage("read contents", assemble, context.root, final_paths, context.config,
                          max_workers=self.max_workers)
        return _stage("render", render, tree, contents, context.config.language_map), contents

    def run_pipeline(self) -> RunResult:
        """One full run. Raises WriteFailure or CriticalPipelineError."""
        context = self.build_context()
        output_file = self.output_file_for(context.config)
        markdown, contents = self._collect(context)
        atomic_write(output_file, markdown)
        try:
            ensure_output_ignored(context.root, context.config.output_path)
        except (OSError, UnicodeDecodeError) as e:
            # The snapshot itself is already in place
            logger.warning("Could not register %s in .gitignore: %s", context.config.output_path, e)
        file_sizes = tuple((path, len(text.encode("utf-8"))) for path, text in sorted(contents.items()))
        return RunResult(succeeded=True, output_file=output_file, file_count=len(contents), file_sizes=file_sizes)

    def render_selection(self, paths: Iterable[str]) -> str:
        """
        Renders a snapshot of the given files/directories only, without writing it.
        The normal filters still apply inside the selection.
        """
        root = self.root_dir.resolve()
        selection: List[str] = []
        for raw in paths:
            candidate = Path(raw)
            if candidate.is_absolute():
                try:
                    candidate = candidate.resolve().relative_to(root)
                except ValueError:
                    raise FlatscribeError(f"{raw} is outside {root}") from None
            selection.append(normalize_path(candidate.as_posix()))
        markdown, _ = self._collect(self.build_context(), selection)
        return markdown


def _in_selection(rel_path: str, selection: List[str]) -> bool:
    for selected in selection:
        if selected in ("", ".") or rel_path == selected or rel_path.startswith(selected + "/"):
            return True
    return False
