from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Final, cast

from runfeed.exceptions import StepParseError
from runfeed.types.json_value import JsonObject
from runfeed.types.steps import (
    CompleteStep,
    DoneStep,
    ErrorStep,
    FileWriteStep,
    PrCreatedStep,
    Step,
    ThinkingStep,
    ToolCallStep,
    ToolResultStep,
)

DATA_PREFIX: Final[str] = "data: "

logger = logging.getLogger(__name__)


def parse_step_line(line: str) -> Step | None:
    """Parse one framed line of the run stream.

    Returns ``None`` for lines that are not ``data:`` records and for records that are malformed
    or of an unknown type; a broken record never aborts the run.
    """
    if not line.startswith(DATA_PREFIX):
        return None

    payload = line[len(DATA_PREFIX) :]
    try:
        return parse_step_json(payload)
    except StepParseError as error:
        logger.debug("Dropping malformed step record: %s", error)
        return None


def parse_step_json(payload: str) -> Step | None:
    try:
        raw = json.loads(payload)
    except json.JSONDecodeError as error:
        raise StepParseError(f"Failed to parse step: {payload}") from error

    try:
        return parse_step(raw)
    except TypeError as error:
        raise StepParseError(f"Failed to parse step: {payload}") from error


def parse_step(raw: object) -> Step | None:
    step = _require_dict(raw, "step")
    step_type = _require_str(step.get("type"), "step.type")
    parser = _STEP_PARSERS.get(step_type)
    if parser is None:
        logger.warning("Unknown step type %s; skipping. Payload=%r", step_type, step)
        return None
    return parser(step)


def _parse_thinking_step(step: dict[str, object]) -> Step:
    return ThinkingStep(content=_optional_str(step.get("content"), "thinking.content"))


def _parse_tool_call_step(step: dict[str, object]) -> Step:
    return ToolCallStep(
        tool=_optional_str(step.get("tool"), "tool_call.tool"),
        input=_optional_dict(step.get("input"), "tool_call.input"),
    )


def _parse_tool_result_step(step: dict[str, object]) -> Step:
    return ToolResultStep(
        tool=_optional_str(step.get("tool"), "tool_result.tool"),
        result=_optional_str(step.get("result"), "tool_result.result"),
    )


def _parse_file_write_step(step: dict[str, object]) -> Step:
    return FileWriteStep(
        path=_optional_str(step.get("path"), "file_write.path"),
        content=_optional_str(step.get("content"), "file_write.content"),
        file_content=_optional_str(step.get("fileContent"), "file_write.fileContent"),
        description=_optional_str(step.get("description"), "file_write.description"),
    )


def _parse_pr_created_step(step: dict[str, object]) -> Step:
    return PrCreatedStep(
        pr_url=_optional_str(step.get("prUrl"), "pr_created.prUrl"),
        pr_number=_optional_int(step.get("prNumber"), "pr_created.prNumber"),
        branch_name=_optional_str(step.get("branchName"), "pr_created.branchName"),
        content=_optional_str(step.get("content"), "pr_created.content"),
    )


def _parse_error_step(step: dict[str, object]) -> Step:
    return ErrorStep(content=_optional_str(step.get("content"), "error.content"))


def _parse_done_step(step: dict[str, object]) -> Step:
    return DoneStep(content=_optional_str(step.get("content"), "done.content"))


def _parse_complete_step(step: dict[str, object]) -> Step:
    return CompleteStep(content=_optional_str(step.get("content"), "complete.content"))


_StepParser = Callable[[dict[str, object]], Step]
_STEP_PARSERS: dict[str, _StepParser] = {
    "thinking": _parse_thinking_step,
    "tool_call": _parse_tool_call_step,
    "tool_result": _parse_tool_result_step,
    "file_write": _parse_file_write_step,
    "pr_created": _parse_pr_created_step,
    "error": _parse_error_step,
    "done": _parse_done_step,
    "complete": _parse_complete_step,
}


def _require_dict(value: object, field: str) -> dict[str, object]:
    if not isinstance(value, dict):
        raise TypeError(f"{field} must be an object")
    return cast("dict[str, object]", value)


def _require_str(value: object, field: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field} must be a string")
    return value


def _optional_str(value: object, field: str) -> str | None:
    if value is None:
        return None
    return _require_str(value, field)


def _optional_int(value: object, field: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{field} must be an integer")
    return value


def _optional_dict(value: object, field: str) -> JsonObject | None:
    if value is None:
        return None
    return cast("JsonObject", _require_dict(value, field))
