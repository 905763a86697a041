from __future__ import annotations

import pytest

from runfeed._internal.run_core import StepStreamConsumer
from runfeed.types.run import RunState
from runfeed.types.steps import (
    CompleteStep,
    DoneStep,
    ErrorStep,
    FileWriteStep,
    Step,
    ThinkingStep,
)
from tests.unit.stream_fixtures import END_TO_END_BODY, split_bytes


@pytest.mark.parametrize("chunk_size", [1, 2, 7, len(END_TO_END_BODY)])
def test_consumer_log_does_not_depend_on_chunk_boundaries(chunk_size: int) -> None:
    state = RunState()
    consumer = StepStreamConsumer(state)

    for chunk in split_bytes(END_TO_END_BODY, chunk_size):
        consumer.feed(chunk)

    assert state.steps == (
        ThinkingStep(content="checking"),
        FileWriteStep(path="a.ts", content="x", file_content="y"),
        CompleteStep(),
    )
    assert consumer.terminal_outcome == "complete"
    assert consumer.finish() == "complete"


def test_consumer_calls_on_step_after_each_append() -> None:
    state = RunState()
    seen: list[tuple[Step, int]] = []
    consumer = StepStreamConsumer(state, on_step=lambda step: seen.append((step, len(state.steps))))

    consumer.feed(
        b'data: {"type":"thinking","content":"a"}\n'
        b'data: {"type":"error","content":"b"}\n',
    )

    assert seen == [(ThinkingStep(content="a"), 1), (ErrorStep(content="b"), 2)]


def test_consumer_stops_processing_after_terminal_step() -> None:
    state = RunState()
    consumer = StepStreamConsumer(state)

    appended = consumer.feed(
        b'data: {"type":"done","content":"finished"}\ndata: {"type":"thinking","content":"late"}\n',
    )
    later = consumer.feed(b'data: {"type":"thinking","content":"later"}\n')

    assert appended == [DoneStep(content="finished")]
    assert later == []
    assert state.steps == (DoneStep(content="finished"),)
    assert consumer.finish() == "done"


def test_consumer_error_step_does_not_terminate() -> None:
    state = RunState()
    consumer = StepStreamConsumer(state)

    consumer.feed(b'data: {"type":"error","content":"tool failed"}\n')
    consumer.feed(b'data: {"type":"thinking","content":"retrying"}\n')

    assert consumer.terminal_outcome is None
    assert state.steps == (ErrorStep(content="tool failed"), ThinkingStep(content="retrying"))


def test_consumer_skips_malformed_and_unknown_records() -> None:
    state = RunState()
    consumer = StepStreamConsumer(state)

    consumer.feed(
        b": keep-alive\n"
        b"data: {not json\n"
        b'data: {"type":"mystery"}\n'
        b'data: {"type":"thinking","content":"ok"}\n',
    )

    assert state.steps == (ThinkingStep(content="ok"),)


def test_consumer_finish_without_terminal_step_discards_partial_line() -> None:
    state = RunState()
    consumer = StepStreamConsumer(state)

    consumer.feed(b'data: {"type":"thinking","content":"a"}\ndata: {"type":"done"}')

    assert consumer.finish() == "stream_end"
    assert state.steps == (ThinkingStep(content="a"),)


def test_consumer_fail_appends_error_step() -> None:
    state = RunState()
    consumer = StepStreamConsumer(state)

    consumer.fail("Connection lost")

    assert state.steps == (ErrorStep(content="Connection lost"),)


def test_consumer_ignores_steps_after_state_stopped_running() -> None:
    state = RunState()
    seen: list[Step] = []
    consumer = StepStreamConsumer(state, on_step=seen.append)
    state.cancel()

    appended = consumer.feed(b'data: {"type":"thinking","content":"late"}\n')
    consumer.fail("Connection lost")

    assert appended == []
    assert seen == []
    assert state.steps == ()
