from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, TypeAlias

DiffLineKind: TypeAlias = Literal["same", "added", "removed"]


@dataclass(frozen=True, slots=True)
class DiffLine:
    """One classified line of a diff between two text snapshots."""

    kind: DiffLineKind
    """Whether the line is unchanged, only in the modified text, or only in the original."""

    text: str
    """Line text without the trailing newline."""

    line_number: int | None = None
    """1-based line number in the modified text. ``None`` for removed lines."""


@dataclass(frozen=True, slots=True)
class CollapsedLines:
    """Placeholder standing in for a run of hidden unchanged lines."""

    hidden_count: int
    """Number of unchanged lines hidden by the placeholder."""

    kind: Literal["collapsed"] = field(default="collapsed", init=False)
    """Discriminator with value ``"collapsed"``."""

    @property
    def text(self) -> str:
        return f"... {self.hidden_count} unchanged lines ..."


RenderableLine: TypeAlias = DiffLine | CollapsedLines
