from __future__ import annotations


class RunFeedError(Exception):
    """Base exception for all errors raised by runfeed."""


class RunConfigError(RunFeedError):
    """Raised when client or run options are missing or invalid."""


class RunCancelledError(RunFeedError):
    """Raised when a run is canceled via RunOptions.signal."""


class RunTransportError(RunFeedError):
    """Raised when the run request fails or the response stream breaks."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StepParseError(RunFeedError):
    """Raised when a `data:` record does not match the step shape."""
