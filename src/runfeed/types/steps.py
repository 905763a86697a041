from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, TypeAlias

from runfeed.types.json_value import JsonObject

StepType: TypeAlias = Literal[
    "thinking",
    "tool_call",
    "tool_result",
    "file_write",
    "pr_created",
    "error",
    "done",
    "complete",
]


@dataclass(frozen=True, slots=True)
class ThinkingStep:
    """Reasoning narrative emitted by the agent between tool invocations."""

    content: str | None = None
    """Free-text reasoning."""

    type: Literal["thinking"] = field(default="thinking", init=False)
    """Discriminator with value ``"thinking"``."""


@dataclass(frozen=True, slots=True)
class ToolCallStep:
    """Emitted when the agent invokes a tool."""

    tool: str | None = None
    """Name of the invoked capability, for example ``"read_file"``."""

    input: JsonObject | None = None
    """Structured tool arguments.

    Usually carries one of ``path``, ``query`` or ``title``.
    """

    type: Literal["tool_call"] = field(default="tool_call", init=False)
    """Discriminator with value ``"tool_call"``."""


@dataclass(frozen=True, slots=True)
class ToolResultStep:
    """Short outcome of a tool invocation."""

    tool: str | None = None
    """Name of the tool that produced the result."""

    result: str | None = None
    """Human-readable result summary."""

    type: Literal["tool_result"] = field(default="tool_result", init=False)
    """Discriminator with value ``"tool_result"``."""


@dataclass(frozen=True, slots=True)
class FileWriteStep:
    """A file change proposed by the run.

    ``content`` holds the file as it was before the write and ``file_content`` holds the new full
    text; a diff of the two is rendered beneath the step.
    """

    path: str | None = None
    """Repository path of the written file."""

    content: str | None = None
    """Original file content. Empty or missing for a new file."""

    file_content: str | None = None
    """New full file content."""

    description: str | None = None
    """Human description of the change."""

    type: Literal["file_write"] = field(default="file_write", init=False)
    """Discriminator with value ``"file_write"``."""

    @property
    def is_new_file(self) -> bool:
        """Return whether the write creates a file that had no prior content."""
        return not self.content


@dataclass(frozen=True, slots=True)
class PrCreatedStep:
    """Emitted once the run opened a pull request."""

    pr_url: str | None = None
    """Web URL of the pull request."""

    pr_number: int | None = None
    """Pull request number."""

    branch_name: str | None = None
    """Branch the changes were pushed to."""

    content: str | None = None
    """Optional note from the server."""

    type: Literal["pr_created"] = field(default="pr_created", init=False)
    """Discriminator with value ``"pr_created"``."""


@dataclass(frozen=True, slots=True)
class ErrorStep:
    """An error reported by the server, or a synthetic transport failure."""

    content: str | None = None
    """Error message."""

    type: Literal["error"] = field(default="error", init=False)
    """Discriminator with value ``"error"``."""


@dataclass(frozen=True, slots=True)
class DoneStep:
    """The agent finished. Settles the run."""

    content: str | None = None
    """Final note from the agent."""

    type: Literal["done"] = field(default="done", init=False)
    """Discriminator with value ``"done"``."""


@dataclass(frozen=True, slots=True)
class CompleteStep:
    """The run completed successfully. Settles the run."""

    content: str | None = None
    """Final note from the server."""

    type: Literal["complete"] = field(default="complete", init=False)
    """Discriminator with value ``"complete"``."""


Step: TypeAlias = (
    ThinkingStep
    | ToolCallStep
    | ToolResultStep
    | FileWriteStep
    | PrCreatedStep
    | ErrorStep
    | DoneStep
    | CompleteStep
)
