from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeAlias, TypedDict

from runfeed.types.run import RunState
from runfeed.types.steps import Step

if TYPE_CHECKING:
    from typing_extensions import NotRequired


RunSignal: TypeAlias = threading.Event | asyncio.Event
StepCallback: TypeAlias = Callable[[Step], None]
SettledCallback: TypeAlias = Callable[[RunState], None]


class RunOptions(TypedDict):
    """Options for a single run.

    Set the event (`event.set()`) to request cancellation.
    Use `threading.Event` for `Run` and `asyncio.Event` for `AsyncRun`.
    """

    signal: NotRequired[RunSignal]
    on_step: NotRequired[StepCallback]
    """Called after every appended step, in log order."""

    on_settled: NotRequired[SettledCallback]
    """Called once when the run settles. Never called for a cancelled run."""
