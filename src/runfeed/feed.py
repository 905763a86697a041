"""Plain-text rendering of a run's step log.

Every render recomputes its output from the full log, so a caller can simply re-render after each
``on_step`` callback.
"""

from __future__ import annotations

from typing import Final

from runfeed.diff import render_diff
from runfeed.types.run import RunState
from runfeed.types.steps import (
    DoneStep,
    ErrorStep,
    FileWriteStep,
    PrCreatedStep,
    Step,
    ThinkingStep,
    ToolCallStep,
)

TOOL_LABELS: Final[dict[str, str]] = {
    "read_file": "Reading",
    "list_directory": "Listing",
    "search_code": "Searching",
    "write_file": "Writing",
    "create_pull_request": "Creating PR",
}

WORKING_MESSAGE: Final[str] = "Working..."

_SUMMARY_KEYS: Final[tuple[str, ...]] = ("path", "query", "title")
_DIFF_INDENT: Final[str] = "    "


def tool_call_summary(step: ToolCallStep) -> str:
    """Return the one-line argument summary shown next to a tool call."""
    if not step.input:
        return ""
    for key in _SUMMARY_KEYS:
        value = step.input.get(key)
        if value:
            return str(value)
    return ""


def render_step(step: Step, *, expanded: bool = False) -> list[str]:
    """Render a single step. Steps that are not shown render as an empty list."""
    if isinstance(step, ThinkingStep):
        return [step.content] if step.content else []
    if isinstance(step, ToolCallStep):
        return [_render_tool_call(step)]
    if isinstance(step, FileWriteStep):
        return _render_file_write(step, expanded=expanded)
    if isinstance(step, PrCreatedStep):
        return _render_pr_created(step)
    if isinstance(step, ErrorStep):
        return [f"Error: {step.content or ''}".rstrip()]
    if isinstance(step, DoneStep):
        return [step.content] if step.content else []
    return []


def render_feed(state: RunState) -> list[str]:
    """Render the whole feed of a run, including the progress line and summary footer."""
    steps = state.steps
    lines: list[str] = []
    for step in steps:
        expanded = isinstance(step, FileWriteStep) and state.is_expanded(step.path or "")
        lines.extend(render_step(step, expanded=expanded))

    if state.is_running:
        if steps:
            lines.append(WORKING_MESSAGE)
        return lines

    lines.extend(_render_footer(state))
    return lines


def _render_tool_call(step: ToolCallStep) -> str:
    tool = step.tool or ""
    label = TOOL_LABELS.get(tool, tool)
    summary = tool_call_summary(step)
    return f"{label} {summary}".strip()


def _render_file_write(step: FileWriteStep, *, expanded: bool) -> list[str]:
    badge = "new" if step.is_new_file else "modified"
    lines = [f"{step.path or ''} [{badge}]"]
    if step.description:
        lines.append(f"  {step.description}")
    if expanded:
        rendered = render_diff(step.content or "", step.file_content or "")
        lines.extend(f"{_DIFF_INDENT}{line}" for line in rendered)
    return lines


def _render_pr_created(step: PrCreatedStep) -> list[str]:
    lines = [f"Pull Request Created: {_pr_reference(step)}"]
    if step.branch_name:
        lines.append(f"  {step.branch_name}")
    return lines


def _render_footer(state: RunState) -> list[str]:
    file_writes = state.file_writes
    if not file_writes:
        return []

    count = len(file_writes)
    footer = f"{count} file{'s' if count != 1 else ''} changed"
    pr_step = state.pr_step
    if pr_step is not None:
        footer += f" | View {_pr_reference(pr_step)}"
    return [footer]


def _pr_reference(step: PrCreatedStep) -> str:
    parts = ["PR" if step.pr_number is None else f"PR #{step.pr_number}"]
    if step.pr_url:
        parts.append(step.pr_url)
    return " ".join(parts)
