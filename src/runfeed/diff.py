"""Line diff and context collapsing for file writes produced by a run.

The alignment is a greedy single pass, not a minimal edit script. It is linear in the size of both
inputs and deterministic for a given pair of snapshots.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from typing import Final

from runfeed.types.diff import CollapsedLines, DiffLine, RenderableLine

DEFAULT_CONTEXT_LINES: Final[int] = 2
NO_DIFFERENCES_MESSAGE: Final[str] = "No differences found"

_KIND_PREFIXES: Final[dict[str, str]] = {"same": "  ", "added": "+ ", "removed": "- "}


def diff(original: str, modified: str) -> list[DiffLine]:
    """Classify every line of ``original`` and ``modified``.

    A modified line that matches the original line under the cursor is ``same``. A modified line
    that occurs nowhere in the unconsumed rest of the original is ``added``. Otherwise the
    original line under the cursor is ``removed``.

    Removed and same lines, in order, join back into ``original``; added and same lines join back
    into ``modified``.
    """
    original_lines = _split_lines(original)
    modified_lines = _split_lines(modified)
    remaining = Counter(original_lines)

    result: list[DiffLine] = []
    i = 0
    j = 0
    while i < len(original_lines) or j < len(modified_lines):
        if (
            i < len(original_lines)
            and j < len(modified_lines)
            and original_lines[i] == modified_lines[j]
        ):
            result.append(DiffLine(kind="same", text=original_lines[i], line_number=j + 1))
            remaining[original_lines[i]] -= 1
            i += 1
            j += 1
        elif j < len(modified_lines) and remaining[modified_lines[j]] <= 0:
            result.append(DiffLine(kind="added", text=modified_lines[j], line_number=j + 1))
            j += 1
        else:
            result.append(DiffLine(kind="removed", text=original_lines[i]))
            remaining[original_lines[i]] -= 1
            i += 1

    return result


def collapse(
    lines: Sequence[DiffLine],
    *,
    context: int = DEFAULT_CONTEXT_LINES,
) -> list[RenderableLine]:
    """Hide unchanged lines further than ``context`` lines away from any change.

    Every maximal run of hidden lines is replaced by a single ``CollapsedLines`` placeholder.
    Returns an empty list when nothing changed.
    """
    if context < 0:
        raise ValueError("context must be non-negative")

    visible = _visible_indices(lines, context)
    if not visible:
        return []

    rendered: list[RenderableLine] = []
    hidden = 0
    for index, line in enumerate(lines):
        if index not in visible:
            hidden += 1
            continue
        if hidden:
            rendered.append(CollapsedLines(hidden_count=hidden))
            hidden = 0
        rendered.append(line)
    if hidden:
        rendered.append(CollapsedLines(hidden_count=hidden))

    return rendered


def render_diff(
    original: str,
    modified: str,
    *,
    context: int = DEFAULT_CONTEXT_LINES,
) -> list[str]:
    """Render the collapsed diff of two snapshots as ``+``/``-`` prefixed text lines."""
    collapsed = collapse(diff(original, modified), context=context)
    if not collapsed:
        return [NO_DIFFERENCES_MESSAGE]

    rendered: list[str] = []
    for line in collapsed:
        if isinstance(line, CollapsedLines):
            rendered.append(line.text)
        else:
            rendered.append(f"{_KIND_PREFIXES[line.kind]}{line.text}")
    return rendered


def _split_lines(text: str) -> list[str]:
    # An empty snapshot has no lines at all, not a single empty one.
    if not text:
        return []
    return text.split("\n")


def _visible_indices(lines: Sequence[DiffLine], context: int) -> set[int]:
    visible: set[int] = set()
    last = len(lines) - 1
    for index, line in enumerate(lines):
        if line.kind == "same":
            continue
        visible.update(range(max(0, index - context), min(last, index + context) + 1))
    return visible
