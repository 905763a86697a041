from __future__ import annotations

import pytest

from runfeed.diff import NO_DIFFERENCES_MESSAGE, collapse, diff, render_diff
from runfeed.types.diff import CollapsedLines, DiffLine


@pytest.mark.parametrize(
    ("original", "modified"),
    [
        ("a\nb\nc", "a\nc\nd"),
        ("one\ntwo\nthree\n", "zero\none\nthree\nfour\n"),
        ("x\nx\ny", "y\nx"),
        ("", "new\nfile"),
        ("gone\nfile", ""),
        ("a\nb\nc", "b\na\nc"),
    ],
)
def test_diff_reconstructs_both_inputs(original: str, modified: str) -> None:
    lines = diff(original, modified)

    assert _join(lines, {"same", "removed"}) == original
    assert _join(lines, {"same", "added"}) == modified


def test_diff_identical_inputs_yields_only_same_lines() -> None:
    text = "first\nsecond\n\nfourth"

    lines = diff(text, text)

    assert [line.kind for line in lines] == ["same"] * 4
    assert [line.line_number for line in lines] == [1, 2, 3, 4]


def test_diff_empty_original_marks_every_line_added() -> None:
    assert diff("", "a\nb") == [
        DiffLine(kind="added", text="a", line_number=1),
        DiffLine(kind="added", text="b", line_number=2),
    ]


def test_diff_empty_modified_marks_every_line_removed() -> None:
    assert diff("a\nb", "") == [
        DiffLine(kind="removed", text="a"),
        DiffLine(kind="removed", text="b"),
    ]


def test_diff_both_empty_is_empty() -> None:
    assert diff("", "") == []


def test_diff_single_line_replacement() -> None:
    assert diff("x", "y") == [
        DiffLine(kind="added", text="y", line_number=1),
        DiffLine(kind="removed", text="x"),
    ]


def test_diff_only_matches_against_unconsumed_original_lines() -> None:
    lines = diff("a\nb\nc", "b\na\nc")

    assert lines == [
        DiffLine(kind="removed", text="a"),
        DiffLine(kind="same", text="b", line_number=1),
        DiffLine(kind="added", text="a", line_number=2),
        DiffLine(kind="same", text="c", line_number=3),
    ]


def test_diff_line_numbers_refer_to_modified_text() -> None:
    lines = diff("keep\ndrop\ntail", "keep\ninserted\ntail")

    numbered = [(line.kind, line.text, line.line_number) for line in lines]
    assert numbered == [
        ("same", "keep", 1),
        ("added", "inserted", 2),
        ("removed", "drop", None),
        ("same", "tail", 3),
    ]


def test_collapse_hides_runs_on_both_sides_of_a_single_change() -> None:
    lines = [
        DiffLine(kind="same", text=f"line {index}", line_number=index + 1) for index in range(30)
    ]
    lines[10] = DiffLine(kind="added", text="changed", line_number=11)

    collapsed = collapse(lines)

    assert collapsed[0] == CollapsedLines(hidden_count=8)
    assert collapsed[1:6] == lines[8:13]
    assert collapsed[6] == CollapsedLines(hidden_count=17)
    assert len(collapsed) == 7


def test_collapse_clamps_window_at_sequence_bounds() -> None:
    lines = [
        DiffLine(kind="removed", text="start"),
        DiffLine(kind="same", text="a", line_number=1),
        DiffLine(kind="same", text="b", line_number=2),
        DiffLine(kind="same", text="c", line_number=3),
        DiffLine(kind="same", text="d", line_number=4),
        DiffLine(kind="same", text="e", line_number=5),
        DiffLine(kind="added", text="end", line_number=6),
    ]

    collapsed = collapse(lines)

    assert collapsed == [*lines[:3], CollapsedLines(hidden_count=1), *lines[4:]]


def test_collapse_keeps_overlapping_windows_contiguous() -> None:
    lines = diff("a\nb\nc\nd\ne\nf", "a\nB\nc\nd\nE\nf")

    collapsed = collapse(lines)

    assert not any(isinstance(line, CollapsedLines) for line in collapsed)
    assert collapsed == lines


def test_collapse_without_changes_is_empty() -> None:
    assert collapse(diff("same\ntext", "same\ntext")) == []


def test_collapse_does_not_alter_classification() -> None:
    original = "\n".join(str(index) for index in range(20))
    lines = diff(original, original.split("\n", 1)[1])

    collapsed = collapse(lines)

    kept = [line for line in collapsed if isinstance(line, DiffLine)]
    hidden = sum(line.hidden_count for line in collapsed if isinstance(line, CollapsedLines))
    assert kept == lines[:3]
    assert hidden + len(kept) == len(lines)


def test_collapse_rejects_negative_context() -> None:
    with pytest.raises(ValueError, match="context must be non-negative"):
        collapse([], context=-1)


def test_render_diff_reports_no_differences_for_identical_inputs() -> None:
    assert render_diff("a\nb", "a\nb") == [NO_DIFFERENCES_MESSAGE]


def test_render_diff_prefixes_lines_and_renders_placeholders() -> None:
    original = "\n".join(f"line {index}" for index in range(10))
    modified = original.replace("line 9", "line nine")

    rendered = render_diff(original, modified)

    assert rendered == [
        "... 7 unchanged lines ...",
        "  line 7",
        "  line 8",
        "+ line nine",
        "- line 9",
    ]


def _join(lines: list[DiffLine], kinds: set[str]) -> str:
    return "\n".join(line.text for line in lines if line.kind in kinds)
