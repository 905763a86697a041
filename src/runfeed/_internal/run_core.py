from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from runfeed._internal.framing import LineFramer
from runfeed._internal.step_parsing import parse_step_line
from runfeed.types.run import RunOutcome, RunState, terminal_outcome
from runfeed.types.steps import ErrorStep, Step

if TYPE_CHECKING:
    from runfeed.types.run_options import StepCallback

logger = logging.getLogger(__name__)


class StepStreamConsumer:
    """Reconstruct the step log of a run from raw response chunks.

    The consumer owns the framing state and appends every parsed step to ``state`` in the order
    it was parsed. Once a terminal step arrives no further lines are processed.
    """

    def __init__(self, state: RunState, on_step: StepCallback | None = None) -> None:
        self._state = state
        self._on_step = on_step
        self._framer = LineFramer()
        self._terminal: RunOutcome | None = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def terminal_outcome(self) -> RunOutcome | None:
        """Return the outcome of the terminal step seen so far, if any."""
        return self._terminal

    def feed(self, chunk: bytes) -> list[Step]:
        """Consume one chunk and return the steps it appended."""
        appended: list[Step] = []
        if self._terminal is not None:
            return appended

        for line in self._framer.feed(chunk):
            step = parse_step_line(line)
            if step is None:
                continue
            if not self._append(step):
                break
            appended.append(step)

            outcome = terminal_outcome(step)
            if outcome is not None:
                self._terminal = outcome
                break

        return appended

    def finish(self) -> RunOutcome:
        """Handle the end of the response body and return the outcome to settle with."""
        remainder = self._framer.flush()
        if remainder and self._terminal is None:
            logger.debug("Discarding unterminated trailing line: %r", remainder)
        return self._terminal or "stream_end"

    def fail(self, message: str) -> None:
        """Record a transport failure as a synthetic error step."""
        self._append(ErrorStep(content=message))

    def _append(self, step: Step) -> bool:
        if not self._state.append(step):
            return False
        if self._on_step is not None:
            self._on_step(step)
        return True
