from __future__ import annotations

from typing import TYPE_CHECKING, TypedDict

import httpx

if TYPE_CHECKING:
    from typing_extensions import NotRequired


class ClientOptions(TypedDict):
    """Options used to construct an agent run client."""

    base_url: NotRequired[str]
    """Dashboard server URL. Falls back to the ``RUNFEED_BASE_URL`` environment variable."""

    business_id: NotRequired[str]
    """Business that owns the tasks. Used to build the default run endpoint."""

    endpoint: NotRequired[str]
    """Explicit run endpoint path or URL, overriding the one built from ``business_id``."""

    headers: NotRequired[dict[str, str]]
    """Extra request headers, for example a session cookie."""

    timeout: NotRequired[float]
    """Read timeout in seconds between two chunks of the run stream."""

    transport: NotRequired[httpx.BaseTransport | httpx.AsyncBaseTransport]
    """Custom httpx transport, for example ``httpx.MockTransport`` in tests."""
