from runfeed.client import AgentRunClient, AsyncAgentRunClient
from runfeed.diff import collapse, diff, render_diff
from runfeed.feed import render_feed, render_step
from runfeed.run import AsyncRun, Run
from runfeed.types.client_options import ClientOptions
from runfeed.types.diff import CollapsedLines, DiffLine, DiffLineKind, RenderableLine
from runfeed.types.run import RunOutcome, RunState, RunStatus
from runfeed.types.run_options import RunOptions, RunSignal
from runfeed.types.steps import (
    CompleteStep,
    DoneStep,
    ErrorStep,
    FileWriteStep,
    PrCreatedStep,
    Step,
    StepType,
    ThinkingStep,
    ToolCallStep,
    ToolResultStep,
)

__all__ = [
    "AgentRunClient",
    "AsyncAgentRunClient",
    "AsyncRun",
    "ClientOptions",
    "CollapsedLines",
    "CompleteStep",
    "DiffLine",
    "DiffLineKind",
    "DoneStep",
    "ErrorStep",
    "FileWriteStep",
    "PrCreatedStep",
    "RenderableLine",
    "Run",
    "RunOptions",
    "RunOutcome",
    "RunSignal",
    "RunState",
    "RunStatus",
    "Step",
    "StepType",
    "ThinkingStep",
    "ToolCallStep",
    "ToolResultStep",
    "collapse",
    "diff",
    "render_diff",
    "render_feed",
    "render_step",
]
