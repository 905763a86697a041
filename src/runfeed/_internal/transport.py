from __future__ import annotations

import asyncio
import json
import logging
import queue
import threading
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Iterator
from contextlib import suppress
from typing import Final, NoReturn, TypeAlias, TypeVar, cast

import httpx

from runfeed._internal.request import RunHttpRequest
from runfeed.exceptions import RunCancelledError, RunTransportError

_READ_POLL_INTERVAL_SECONDS: Final[float] = 0.05
_READER_JOIN_TIMEOUT_SECONDS: Final[float] = 1.0

REQUEST_FAILED_MESSAGE: Final[str] = "Request failed"
RUN_FAILED_MESSAGE: Final[str] = "Agent run failed"
CONNECTION_LOST_MESSAGE: Final[str] = "Connection lost"
RUN_CANCELLED_MESSAGE: Final[str] = "Run cancelled"

logger = logging.getLogger(__name__)


class _StreamEndSentinel:
    pass


_STREAM_END: Final[_StreamEndSentinel] = _StreamEndSentinel()

_ChunkQueueItem: TypeAlias = bytes | RunTransportError | _StreamEndSentinel

_T = TypeVar("_T")


class RunTransportBase(ABC):
    @staticmethod
    def _check_cancelled(request: RunHttpRequest) -> None:
        signal = request.signal
        if signal is None:
            return

        if signal.is_set():
            raise RunCancelledError(RUN_CANCELLED_MESSAGE)

    @staticmethod
    def _status_error(*, body: bytes, status_code: int) -> RunTransportError:
        try:
            payload = json.loads(body)
        except ValueError:
            return RunTransportError(REQUEST_FAILED_MESSAGE, status_code=status_code)

        message = payload.get("message") if isinstance(payload, dict) else None
        if not isinstance(message, str) or not message:
            message = RUN_FAILED_MESSAGE
        return RunTransportError(message, status_code=status_code)

    @staticmethod
    def _connection_error(error: Exception) -> RunTransportError:
        return RunTransportError(str(error) or CONNECTION_LOST_MESSAGE)

    @abstractmethod
    def stream_chunks(self, request: RunHttpRequest) -> Iterator[bytes] | AsyncIterator[bytes]:
        """Send the run request and stream raw response body chunks."""


class _LiveResponse:
    """The response a reader thread streams from, closable from the consuming thread."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._response: httpx.Response | None = None
        self._closed = False

    def attach(self, response: httpx.Response) -> bool:
        """Register ``response``. Returns ``False`` when the stream was already closed."""
        with self._lock:
            if self._closed:
                return False
            self._response = response
            return True

    def close(self) -> None:
        with self._lock:
            self._closed = True
            response = self._response
        if response is not None:
            with suppress(httpx.HTTPError, httpx.StreamError, OSError):
                response.close()


class SyncRunTransport(RunTransportBase):
    def __init__(self, *, client: httpx.Client) -> None:
        self._client: Final[httpx.Client] = client

    def stream_chunks(self, request: RunHttpRequest) -> Iterator[bytes]:
        self._check_cancelled(request)

        chunk_queue: queue.Queue[_ChunkQueueItem] = queue.Queue()
        live_response = _LiveResponse()
        reader_thread = threading.Thread(
            target=self._pump_response,
            args=(request, chunk_queue, live_response),
            name="runfeed-sync-stream-reader",
            daemon=True,
        )
        reader_thread.start()

        try:
            yield from self._iter_chunks(
                request=request,
                chunk_queue=chunk_queue,
                reader_thread=reader_thread,
            )
        finally:
            self._cleanup(live_response=live_response, reader_thread=reader_thread)

    def _iter_chunks(
        self,
        *,
        request: RunHttpRequest,
        chunk_queue: queue.Queue[_ChunkQueueItem],
        reader_thread: threading.Thread,
    ) -> Iterator[bytes]:
        while True:
            self._check_cancelled(request)

            try:
                item = chunk_queue.get(timeout=_READ_POLL_INTERVAL_SECONDS)
            except queue.Empty:
                if not reader_thread.is_alive() and chunk_queue.empty():
                    return
                continue

            if item is _STREAM_END:
                return
            if isinstance(item, RunTransportError):
                raise item

            yield cast("bytes", item)

    def _pump_response(
        self,
        request: RunHttpRequest,
        output: queue.Queue[_ChunkQueueItem],
        live_response: _LiveResponse,
    ) -> None:
        try:
            with self._client.stream(
                "POST",
                request.url,
                json=request.json,
                headers=request.headers,
            ) as response:
                if not live_response.attach(response):
                    return
                if not response.is_success:
                    output.put(
                        self._status_error(body=response.read(), status_code=response.status_code),
                    )
                    return

                for chunk in response.iter_bytes():
                    if request.signal is not None and request.signal.is_set():
                        return
                    output.put(chunk)
        except (httpx.HTTPError, httpx.StreamError) as error:
            output.put(self._connection_error(error))
        finally:
            output.put(_STREAM_END)

    @staticmethod
    def _cleanup(*, live_response: _LiveResponse, reader_thread: threading.Thread) -> None:
        live_response.close()
        reader_thread.join(timeout=_READER_JOIN_TIMEOUT_SECONDS)
        if reader_thread.is_alive():
            logger.warning("Stream reader did not stop within %.1fs", _READER_JOIN_TIMEOUT_SECONDS)


class AsyncRunTransport(RunTransportBase):
    def __init__(self, *, client: httpx.AsyncClient) -> None:
        self._client: Final[httpx.AsyncClient] = client

    async def stream_chunks(self, request: RunHttpRequest) -> AsyncIterator[bytes]:
        self._check_cancelled(request)

        response = await self._send(request)
        try:
            if not response.is_success:
                body = await self._read_body(response)
                raise self._status_error(body=body, status_code=response.status_code)

            chunks = response.aiter_bytes()
            while True:
                self._check_cancelled(request)

                chunk = await self._read_next_chunk(request=request, chunks=chunks)
                if chunk is _STREAM_END:
                    return

                yield cast("bytes", chunk)
        finally:
            with suppress(httpx.HTTPError, httpx.StreamError, OSError):
                await response.aclose()

    async def _send(self, request: RunHttpRequest) -> httpx.Response:
        http_request = self._client.build_request(
            "POST",
            request.url,
            json=request.json,
            headers=request.headers,
        )
        try:
            return await self._race_signal(
                request=request,
                awaitable=self._client.send(http_request, stream=True),
            )
        except httpx.HTTPError as error:
            raise self._connection_error(error) from error

    async def _read_body(self, response: httpx.Response) -> bytes:
        try:
            return await response.aread()
        except (httpx.HTTPError, httpx.StreamError):
            return b""

    async def _read_next_chunk(
        self,
        *,
        request: RunHttpRequest,
        chunks: AsyncIterator[bytes],
    ) -> bytes | _StreamEndSentinel:
        try:
            return await self._race_signal(request=request, awaitable=_next_chunk(chunks))
        except (httpx.HTTPError, httpx.StreamError) as error:
            raise self._connection_error(error) from error

    @classmethod
    async def _race_signal(cls, *, request: RunHttpRequest, awaitable: Awaitable[_T]) -> _T:
        signal = request.signal
        if not isinstance(signal, asyncio.Event):
            return await awaitable

        work_task = asyncio.ensure_future(awaitable)
        cancelled_task = asyncio.create_task(
            signal.wait(),
            name="runfeed-async-cancel-wait",
        )
        done, pending = await asyncio.wait(
            {work_task, cancelled_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if cancelled_task in done:
            await _discard_task_result(work_task)
            cls._raise_cancelled()

        return work_task.result()

    @staticmethod
    def _raise_cancelled() -> NoReturn:
        raise RunCancelledError(RUN_CANCELLED_MESSAGE)


async def _next_chunk(chunks: AsyncIterator[bytes]) -> bytes | _StreamEndSentinel:
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return _STREAM_END


async def _discard_task_result(task: asyncio.Future[_T]) -> None:
    if not task.done() or task.cancelled() or task.exception() is not None:
        return

    result = task.result()
    if isinstance(result, httpx.Response):
        with suppress(httpx.HTTPError, httpx.StreamError, OSError):
            await result.aclose()
