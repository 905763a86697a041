from __future__ import annotations

import logging
from types import TracebackType
from typing import TYPE_CHECKING, Final

import httpx

from runfeed._internal.request import (
    RunHttpRequest,
    RunHttpRequestBuilder,
    RunRequestArgs,
    resolve_run_url,
)
from runfeed._internal.transport import AsyncRunTransport, SyncRunTransport
from runfeed.run import AsyncRun, Run
from runfeed.types.client_options import ClientOptions
from runfeed.types.run_options import RunOptions

if TYPE_CHECKING:
    from typing_extensions import Self, Unpack


DEFAULT_TIMEOUT_SECONDS: Final[float] = 300.0
_CONNECT_TIMEOUT_SECONDS: Final[float] = 10.0

logger = logging.getLogger(__name__)


class AgentRunClient:
    """AgentRunClient starts agent runs and streams their steps.

    Use `start_run()` to request a run for a task. Each call returns an independent `Run` handle.
    """

    def __init__(self, **options: Unpack[ClientOptions]) -> None:
        self._options = options
        self._url = resolve_run_url(options)
        transport = options.get("transport")
        if transport is not None and not isinstance(transport, httpx.BaseTransport):
            raise TypeError("transport must be an httpx.BaseTransport for AgentRunClient")

        self._http = httpx.Client(timeout=_build_timeout(options), transport=transport)
        self._transport = SyncRunTransport(client=self._http)
        logger.info(
            "Initialized AgentRunClient (url=%s, header_overrides=%s, transport_override=%s)",
            self._url,
            options.get("headers") is not None,
            transport is not None,
        )

    @property
    def url(self) -> str:
        """Return the resolved run endpoint."""
        return self._url

    def start_run(
        self,
        task_id: str,
        project_id: str,
        instructions: str | None = None,
        **run_options: Unpack[RunOptions],
    ) -> Run:
        """Request a run for a task and start streaming its steps in the background.

        Set `run_options["signal"]` via `event.set()`, or call `Run.cancel()`, to abort the run.
        Use `threading.Event` here.

        Returns:
            A started run handle.

        """
        request = _build_request(
            url=self._url,
            options=self._options,
            args=_build_args(task_id, project_id, instructions, run_options),
        )
        logger.debug("Run request body keys: %s", sorted(request.json))
        run = Run(
            transport=self._transport,
            request=request,
            on_step=run_options.get("on_step"),
            on_settled=run_options.get("on_settled"),
        )
        run.start()
        return run

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()


class AsyncAgentRunClient:
    """AsyncAgentRunClient starts agent runs and streams their steps on the event loop.

    Use `start_run()` to request a run for a task. Each call returns an independent `AsyncRun`
    handle.
    """

    def __init__(self, **options: Unpack[ClientOptions]) -> None:
        self._options = options
        self._url = resolve_run_url(options)
        transport = options.get("transport")
        if transport is not None and not isinstance(transport, httpx.AsyncBaseTransport):
            raise TypeError("transport must be an httpx.AsyncBaseTransport for AsyncAgentRunClient")

        self._http = httpx.AsyncClient(timeout=_build_timeout(options), transport=transport)
        self._transport = AsyncRunTransport(client=self._http)
        logger.info(
            "Initialized AsyncAgentRunClient (url=%s, header_overrides=%s, transport_override=%s)",
            self._url,
            options.get("headers") is not None,
            transport is not None,
        )

    @property
    def url(self) -> str:
        """Return the resolved run endpoint."""
        return self._url

    async def start_run(
        self,
        task_id: str,
        project_id: str,
        instructions: str | None = None,
        **run_options: Unpack[RunOptions],
    ) -> AsyncRun:
        """Request a run for a task and start streaming its steps on a task.

        Set `run_options["signal"]` via `event.set()`, or call `AsyncRun.cancel()`, to abort the
        run. Use `asyncio.Event` here.

        Returns:
            A started run handle.

        """
        request = _build_request(
            url=self._url,
            options=self._options,
            args=_build_args(task_id, project_id, instructions, run_options),
        )
        logger.debug("Async run request body keys: %s", sorted(request.json))
        run = AsyncRun(
            transport=self._transport,
            request=request,
            on_step=run_options.get("on_step"),
            on_settled=run_options.get("on_settled"),
        )
        run.start()
        return run

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.aclose()


def _build_args(
    task_id: str,
    project_id: str,
    instructions: str | None,
    run_options: RunOptions,
) -> RunRequestArgs:
    args: RunRequestArgs = {
        "task_id": task_id,
        "project_id": project_id,
        "instructions": instructions,
    }
    signal = run_options.get("signal")
    if signal is not None:
        args["signal"] = signal
    return args


def _build_request(*, url: str, options: ClientOptions, args: RunRequestArgs) -> RunHttpRequest:
    return RunHttpRequestBuilder(
        url=url,
        args=args,
        header_overrides=options.get("headers"),
    ).build_request()


def _build_timeout(options: ClientOptions) -> httpx.Timeout:
    timeout = options.get("timeout", DEFAULT_TIMEOUT_SECONDS)
    return httpx.Timeout(timeout, connect=min(timeout, _CONNECT_TIMEOUT_SECONDS))
