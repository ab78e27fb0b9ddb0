# src/flatscribe/status.py
import enum
import sys
import threading
from typing import Callable, List, Optional, Protocol


class RunState(enum.Enum):
    IDLE = "idle"
    GENERATING = "generating"
    UPDATED = "updated"
    ERROR = "error"
    PAUSED = "paused"


class StatusSink(Protocol):
    def update(self, state: RunState, detail: Optional[str] = None) -> None:
        ...


class NullStatus:
    def update(self, state: RunState, detail: Optional[str] = None) -> None:
        pass


class ConsoleStatus:
    """Prints state changes to stderr, one line each."""

    LABELS = {
        RunState.IDLE: "Ready",
        RunState.GENERATING: "Generating...",
        RunState.UPDATED: "Updated",
        RunState.ERROR: "Error",
        RunState.PAUSED: "Paused",
    }

    def __init__(self, stream=None):
        self.stream = stream if stream is not None else sys.stderr
        self.state = RunState.IDLE

    def update(self, state: RunState, detail: Optional[str] = None) -> None:
        self.state = state
        line = f"[flatscribe] {self.LABELS[state]}"
        if detail:
            line += f" ({detail})"
        print(line, file=self.stream, flush=True)


class PauseGate:
    """
    On/off switch for automatic regeneration.
    Loading and saving the flag is up to the host; this only holds it.
    """

    def __init__(self, paused: bool = False, status: Optional[StatusSink] = None):
        self._paused = paused
        self._lock = threading.Lock()
        self._listeners: List[Callable[[bool], None]] = []
        self._status = status or NullStatus()

    @property
    def paused(self) -> bool:
        return self._paused

    def add_listener(self, listener: Callable[[bool], None]) -> None:
        self._listeners.append(listener)

    def set_paused(self, paused: bool) -> None:
        with self._lock:
            if paused == self._paused:
                return
            self._paused = paused
        self._status.update(RunState.PAUSED if paused else RunState.IDLE)
        for listener in list(self._listeners):
            listener(paused)

    def toggle(self) -> bool:
        self.set_paused(not self._paused)
        return self._paused
