from __future__ import annotations

import codecs
from typing import Final

_LINE_SEPARATOR: Final[str] = "\n"


class LineFramer:
    """Split an arbitrarily chunked byte stream into complete text lines.

    Chunks are decoded with a stateful decoder, so a multi-byte character split across two chunks
    is decoded once both halves arrived. The trailing partial line is held in ``pending`` until a
    later chunk completes it.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    @property
    def pending(self) -> str:
        """Return the buffered text that is not yet terminated by a newline."""
        return self._pending

    def feed(self, chunk: bytes) -> list[str]:
        """Consume ``chunk`` and return the lines it completed, without newlines."""
        self._pending += self._decoder.decode(chunk)
        if _LINE_SEPARATOR not in self._pending:
            return []

        *lines, self._pending = self._pending.split(_LINE_SEPARATOR)
        return lines

    def flush(self) -> str:
        """Finish decoding and return the unterminated remainder, clearing the buffer."""
        remainder = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        self._decoder.reset()
        return remainder
