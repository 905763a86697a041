from __future__ import annotations

import threading
from typing import Literal, TypeAlias

from runfeed.types.steps import (
    CompleteStep,
    DoneStep,
    ErrorStep,
    FileWriteStep,
    PrCreatedStep,
    Step,
)

RunOutcome: TypeAlias = Literal["complete", "done", "stream_end", "transport_error", "failed"]
RunStatus: TypeAlias = Literal["running", "done", "error", "cancelled"]


class RunState:
    """Live state of one agent run.

    The step log is append-only: steps are never mutated, reordered or removed once appended.
    All reads return snapshots, so the state can be observed from another thread while the run
    is still streaming.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._steps: list[Step] = []
        self._is_running = True
        self._outcome: RunOutcome | None = None
        self._cancelled = False
        self._expanded_paths: set[str] = set()

    @property
    def steps(self) -> tuple[Step, ...]:
        """Return the step log in arrival order."""
        with self._lock:
            return tuple(self._steps)

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._is_running

    @property
    def outcome(self) -> RunOutcome | None:
        """Return how the run settled, or ``None`` while running or after cancellation."""
        with self._lock:
            return self._outcome

    @property
    def cancelled(self) -> bool:
        with self._lock:
            return self._cancelled

    @property
    def expanded_paths(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._expanded_paths)

    @property
    def file_writes(self) -> tuple[FileWriteStep, ...]:
        """Return every file change proposed by the run, in log order."""
        return tuple(step for step in self.steps if isinstance(step, FileWriteStep))

    @property
    def pr_step(self) -> PrCreatedStep | None:
        """Return the first pull request step, if any."""
        for step in self.steps:
            if isinstance(step, PrCreatedStep):
                return step
        return None

    @property
    def has_errors(self) -> bool:
        return any(isinstance(step, ErrorStep) for step in self.steps)

    @property
    def status(self) -> RunStatus:
        if self.cancelled:
            return "cancelled"
        if self.is_running:
            return "running"
        if self.outcome == "failed":
            return "error"
        if self.pr_step is None and self.has_errors:
            return "error"
        return "done"

    def is_expanded(self, path: str) -> bool:
        with self._lock:
            return path in self._expanded_paths

    def toggle_expanded(self, path: str) -> bool:
        """Flip the expanded flag of the file writes for ``path`` and return the new value."""
        with self._lock:
            if path in self._expanded_paths:
                self._expanded_paths.discard(path)
                return False
            self._expanded_paths.add(path)
            return True

    def append(self, step: Step) -> bool:
        """Append ``step`` to the log.

        Returns ``False`` without appending once the run settled or was cancelled.
        """
        with self._lock:
            if not self._is_running:
                return False
            self._steps.append(step)
            return True

    def settle(self, outcome: RunOutcome) -> bool:
        """Mark the run finished. Returns ``True`` only for the first transition."""
        with self._lock:
            if not self._is_running:
                return False
            self._is_running = False
            self._outcome = outcome
            return True

    def cancel(self) -> bool:
        """Mark the run cancelled. Returns ``False`` if it already settled."""
        with self._lock:
            if not self._is_running:
                return False
            self._is_running = False
            self._cancelled = True
            return True


def terminal_outcome(step: Step) -> RunOutcome | None:
    """Return the outcome a terminal step settles the run with, or ``None``."""
    if isinstance(step, CompleteStep):
        return "complete"
    if isinstance(step, DoneStep):
        return "done"
    return None
