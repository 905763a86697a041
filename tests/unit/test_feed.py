from __future__ import annotations

import pytest

from runfeed._internal.run_core import StepStreamConsumer
from runfeed.feed import WORKING_MESSAGE, render_feed, render_step, tool_call_summary
from runfeed.types.run import RunState
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
from tests.unit.stream_fixtures import END_TO_END_BODY


def test_render_feed_for_streamed_run_with_expanded_file() -> None:
    state = RunState()
    consumer = StepStreamConsumer(state)
    consumer.feed(END_TO_END_BODY)
    state.settle(consumer.finish())

    collapsed = render_feed(state)
    state.toggle_expanded("a.ts")
    expanded = render_feed(state)

    assert collapsed == ["checking", "a.ts [modified]", "1 file changed"]
    assert expanded == ["checking", "a.ts [modified]", "    + y", "    - x", "1 file changed"]


def test_render_feed_shows_working_line_while_running() -> None:
    state = RunState()
    assert render_feed(state) == []

    state.append(ThinkingStep(content="looking around"))

    assert render_feed(state) == ["looking around", WORKING_MESSAGE]


def test_render_feed_footer_links_pull_request() -> None:
    state = RunState()
    for step in [
        FileWriteStep(path="a.ts", content="x", file_content="y"),
        FileWriteStep(path="b.ts", file_content="new"),
        PrCreatedStep(pr_url="https://git.test/pr/7", pr_number=7, branch_name="agent/fix"),
        DoneStep(content="Agent finished."),
    ]:
        state.append(step)
    state.settle("done")

    assert render_feed(state) == [
        "a.ts [modified]",
        "b.ts [new]",
        "Pull Request Created: PR #7 https://git.test/pr/7",
        "  agent/fix",
        "Agent finished.",
        "2 files changed | View PR #7 https://git.test/pr/7",
    ]


def test_render_feed_omits_missing_pull_request_number() -> None:
    state = RunState()
    state.append(FileWriteStep(path="a.ts", file_content="new"))
    state.append(PrCreatedStep(pr_url="https://git.test/pr/8"))
    state.settle("complete")

    assert render_feed(state) == [
        "a.ts [new]",
        "Pull Request Created: PR https://git.test/pr/8",
        "1 file changed | View PR https://git.test/pr/8",
    ]


def test_render_feed_without_file_changes_has_no_footer() -> None:
    state = RunState()
    state.append(ErrorStep(content="Connection lost"))
    state.settle("transport_error")

    assert render_feed(state) == ["Error: Connection lost"]


@pytest.mark.parametrize(
    ("step", "expected"),
    [
        (ToolCallStep(tool="read_file", input={"path": "src/a.ts"}), ["Reading src/a.ts"]),
        (ToolCallStep(tool="list_directory", input={"path": "src"}), ["Listing src"]),
        (ToolCallStep(tool="search_code", input={"query": "TODO"}), ["Searching TODO"]),
        (ToolCallStep(tool="write_file", input={"path": "b.ts"}), ["Writing b.ts"]),
        (ToolCallStep(tool="create_pull_request", input={"title": "Fix"}), ["Creating PR Fix"]),
        (ToolCallStep(tool="custom_tool", input={"other": 1}), ["custom_tool"]),
        (ToolResultStep(tool="read_file", result="Read a.ts"), []),
        (CompleteStep(), []),
        (ThinkingStep(), []),
        (ErrorStep(), ["Error:"]),
    ],
)
def test_render_step(step: Step, expected: list[str]) -> None:
    assert render_step(step) == expected


def test_render_file_write_includes_description_and_new_file_diff() -> None:
    step = FileWriteStep(path="c.ts", file_content="one\ntwo", description="Add helper")

    assert render_step(step, expanded=True) == [
        "c.ts [new]",
        "  Add helper",
        "    + one",
        "    + two",
    ]


def test_render_file_write_without_changes_reports_no_differences() -> None:
    step = FileWriteStep(path="d.ts", content="same", file_content="same")

    assert render_step(step, expanded=True) == ["d.ts [modified]", "    No differences found"]


def test_tool_call_summary_prefers_path_over_query() -> None:
    step = ToolCallStep(tool="search_code", input={"query": "x", "path": "src"})

    assert tool_call_summary(step) == "src"
    assert tool_call_summary(ToolCallStep(tool="read_file")) == ""
