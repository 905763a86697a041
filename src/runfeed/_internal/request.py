from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final, TypedDict
from urllib.parse import quote, urljoin

from runfeed.exceptions import RunConfigError
from runfeed.types.json_value import JsonObject
from runfeed.types.run_options import RunSignal

if TYPE_CHECKING:
    from typing_extensions import NotRequired

    from runfeed.types.client_options import ClientOptions


BASE_URL_ENV: Final[str] = "RUNFEED_BASE_URL"
RUN_ENDPOINT_TEMPLATE: Final[str] = "/api/businesses/{business_id}/manager/agent-run"

_DEFAULT_HEADERS: Final[dict[str, str]] = {
    "Accept": "text/event-stream",
    "Content-Type": "application/json",
}


class RunRequestArgs(TypedDict):
    """Arguments for a single run request."""

    task_id: str
    project_id: str
    instructions: NotRequired[str | None]
    signal: NotRequired[RunSignal]


@dataclass
class RunHttpRequest:
    """Structured representation of the streaming run request."""

    url: str
    json: JsonObject = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    signal: RunSignal | None = None


def resolve_run_url(options: ClientOptions, env: dict[str, str] | None = None) -> str:
    """Return the absolute run endpoint URL configured by ``options``."""
    environ = os.environ if env is None else env
    endpoint = options.get("endpoint")
    if endpoint is None:
        business_id = options.get("business_id")
        if not business_id:
            raise RunConfigError("Either endpoint or business_id must be provided")
        endpoint = RUN_ENDPOINT_TEMPLATE.format(business_id=quote(business_id, safe=""))

    if endpoint.startswith(("http://", "https://")):
        return endpoint

    base_url = options.get("base_url") or environ.get(BASE_URL_ENV)
    if not base_url:
        raise RunConfigError(
            f"Unable to resolve the run endpoint. Pass base_url or set {BASE_URL_ENV}.",
        )
    return urljoin(base_url.rstrip("/") + "/", endpoint.lstrip("/"))


class RunHttpRequestBuilder:
    def __init__(
        self,
        *,
        url: str,
        args: RunRequestArgs,
        header_overrides: dict[str, str] | None = None,
    ) -> None:
        self._url = url
        self._args = args
        self._header_overrides = header_overrides

        self._request = RunHttpRequest(url=url)

    def build_request(self) -> RunHttpRequest:
        self._add_headers()
        self._add_task_id()
        self._add_project_id()
        self._add_instructions()
        self._add_signal()

        return self._request

    def _add_headers(self) -> None:
        headers = dict(_DEFAULT_HEADERS)
        if self._header_overrides is not None:
            headers.update(self._header_overrides)

        self._request.headers = headers

    def _add_task_id(self) -> None:
        task_id = self._args.get("task_id")
        if not isinstance(task_id, str) or not task_id:
            raise TypeError("task_id must be a non-empty string")

        self._request.json["taskId"] = task_id

    def _add_project_id(self) -> None:
        project_id = self._args.get("project_id")
        if not isinstance(project_id, str) or not project_id:
            raise TypeError("project_id must be a non-empty string")

        self._request.json["projectId"] = project_id

    def _add_instructions(self) -> None:
        instructions = self._args.get("instructions")
        if instructions is None:
            return
        if not isinstance(instructions, str):
            raise TypeError(f"instructions must be str, got {type(instructions).__name__}")

        self._request.json["instructions"] = instructions

    def _add_signal(self) -> None:
        signal = self._args.get("signal")
        if signal is None:
            return

        self._request.signal = signal
