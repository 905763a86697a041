from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterator, Iterator
from typing import Final

from runfeed._internal.request import RunHttpRequest
from runfeed._internal.run_core import StepStreamConsumer
from runfeed._internal.transport import AsyncRunTransport, SyncRunTransport
from runfeed.exceptions import RunCancelledError, RunTransportError
from runfeed.types.run import RunOutcome, RunState
from runfeed.types.run_options import SettledCallback, StepCallback
from runfeed.types.steps import FileWriteStep, PrCreatedStep, Step

_CANCEL_JOIN_TIMEOUT_SECONDS: Final[float] = 2.0

logger = logging.getLogger(__name__)


class Run:
    """Handle of one agent run streaming on a background thread.

    The live ``state`` can be read at any time. ``on_step`` is called on the worker thread after
    every appended step and ``on_settled`` once when the run settles.
    """

    def __init__(
        self,
        *,
        transport: SyncRunTransport,
        request: RunHttpRequest,
        on_step: StepCallback | None = None,
        on_settled: SettledCallback | None = None,
    ) -> None:
        self._transport = transport
        self._request = request
        self._signal = _require_sync_signal(request)
        self._state = RunState()
        self._consumer = StepStreamConsumer(self._state, on_step=on_step)
        self._on_settled = on_settled
        self._failure: BaseException | None = None
        self._worker = threading.Thread(
            target=self._consume,
            name="runfeed-run-worker",
            daemon=True,
        )

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def signal(self) -> threading.Event:
        """Return the event that aborts the transport when set."""
        return self._signal

    @property
    def steps(self) -> tuple[Step, ...]:
        return self._state.steps

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    @property
    def file_writes(self) -> tuple[FileWriteStep, ...]:
        return self._state.file_writes

    @property
    def pr_step(self) -> PrCreatedStep | None:
        return self._state.pr_step

    def start(self) -> None:
        logger.info("Starting run (url=%s)", self._request.url)
        self._worker.start()

    def cancel(self) -> None:
        """Abort the run.

        No step is appended and ``on_settled`` is not called. Does nothing once the run settled.
        """
        if not self._state.cancel():
            return

        logger.info("Cancelling run (url=%s)", self._request.url)
        self._signal.set()
        if self._worker.is_alive() and threading.current_thread() is not self._worker:
            self._worker.join(timeout=_CANCEL_JOIN_TIMEOUT_SECONDS)

    def wait(self, timeout: float | None = None) -> RunState:
        """Block until the worker finished and return the final state.

        Re-raises an exception raised by ``on_step`` or ``on_settled``.
        """
        if self._worker.is_alive():
            self._worker.join(timeout=timeout)
        if self._failure is not None:
            raise self._failure
        return self._state

    def _consume(self) -> None:
        try:
            self._stream()
        except Exception as error:  # noqa: BLE001
            self._fail(error)

    def _stream(self) -> None:
        chunks: Iterator[bytes] = self._transport.stream_chunks(self._request)
        try:
            for chunk in chunks:
                self._consumer.feed(chunk)
                if self._consumer.terminal_outcome is not None:
                    break
        except RunCancelledError:
            self._state.cancel()
            logger.info("Run cancelled (url=%s)", self._request.url)
            return
        except RunTransportError as error:
            logger.info("Run transport failed (url=%s): %s", self._request.url, error)
            self._consumer.fail(str(error))
            self._settle("transport_error")
            return
        finally:
            _close_if_possible(chunks)

        self._settle(self._consumer.finish())

    def _fail(self, error: Exception) -> None:
        # no-op when the failure was raised by on_settled
        self._state.settle("failed")
        logger.info("Run callback failed (url=%s): %r", self._request.url, error)
        self._failure = error

    def _settle(self, outcome: RunOutcome) -> None:
        if not self._state.settle(outcome):
            return

        logger.info("Run settled (outcome=%s, steps=%d)", outcome, len(self._state.steps))
        if self._on_settled is not None:
            self._on_settled(self._state)


class AsyncRun:
    """Handle of one agent run streaming on an asyncio task.

    ``cancel()`` may be called from any coroutine of the same event loop; ``await wait()`` returns
    once the transport was released.
    """

    def __init__(
        self,
        *,
        transport: AsyncRunTransport,
        request: RunHttpRequest,
        on_step: StepCallback | None = None,
        on_settled: SettledCallback | None = None,
    ) -> None:
        self._transport = transport
        self._request = request
        self._signal = _require_async_signal(request)
        self._state = RunState()
        self._consumer = StepStreamConsumer(self._state, on_step=on_step)
        self._on_settled = on_settled
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def signal(self) -> asyncio.Event:
        """Return the event that aborts the transport when set."""
        return self._signal

    @property
    def steps(self) -> tuple[Step, ...]:
        return self._state.steps

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    @property
    def file_writes(self) -> tuple[FileWriteStep, ...]:
        return self._state.file_writes

    @property
    def pr_step(self) -> PrCreatedStep | None:
        return self._state.pr_step

    def start(self) -> None:
        logger.info("Starting async run (url=%s)", self._request.url)
        self._task = asyncio.get_running_loop().create_task(
            self._consume(),
            name="runfeed-async-run",
        )

    def cancel(self) -> None:
        """Abort the run.

        No step is appended and ``on_settled`` is not called. Does nothing once the run settled.
        """
        if not self._state.cancel():
            return

        logger.info("Cancelling async run (url=%s)", self._request.url)
        self._signal.set()

    async def wait(self) -> RunState:
        """Wait until the run task finished and return the final state.

        Re-raises an exception raised by ``on_step`` or ``on_settled``.
        """
        if self._task is not None:
            await self._task
        return self._state

    async def _consume(self) -> None:
        try:
            await self._stream()
        except Exception as error:
            self._state.settle("failed")
            logger.info("Async run callback failed (url=%s): %r", self._request.url, error)
            raise

    async def _stream(self) -> None:
        chunks: AsyncIterator[bytes] = self._transport.stream_chunks(self._request)
        try:
            async for chunk in chunks:
                self._consumer.feed(chunk)
                if self._consumer.terminal_outcome is not None:
                    break
        except RunCancelledError:
            self._state.cancel()
            logger.info("Async run cancelled (url=%s)", self._request.url)
            return
        except RunTransportError as error:
            logger.info("Async run transport failed (url=%s): %s", self._request.url, error)
            self._consumer.fail(str(error))
            self._settle("transport_error")
            return
        finally:
            await _aclose_if_possible(chunks)

        self._settle(self._consumer.finish())

    def _settle(self, outcome: RunOutcome) -> None:
        if not self._state.settle(outcome):
            return

        logger.info("Async run settled (outcome=%s, steps=%d)", outcome, len(self._state.steps))
        if self._on_settled is not None:
            self._on_settled(self._state)


def _require_sync_signal(request: RunHttpRequest) -> threading.Event:
    if request.signal is None:
        request.signal = threading.Event()
    if not isinstance(request.signal, threading.Event):
        raise TypeError("signal must be a threading.Event for synchronous runs")
    return request.signal


def _require_async_signal(request: RunHttpRequest) -> asyncio.Event:
    if request.signal is None:
        request.signal = asyncio.Event()
    if not isinstance(request.signal, asyncio.Event):
        raise TypeError("signal must be an asyncio.Event for asynchronous runs")
    return request.signal


def _close_if_possible(iterator: object) -> None:
    close = getattr(iterator, "close", None)
    if callable(close):
        close()


async def _aclose_if_possible(iterator: object) -> None:
    aclose = getattr(iterator, "aclose", None)
    if callable(aclose):
        await aclose()
