"""Line lookup and block boundary correction helpers."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterator


@dataclass(slots=True, frozen=True)
class Line:
    """A single document line; ``end`` excludes the line terminator."""

    number: int
    start: int
    end: int
    text: str


class LineIndex:
    """Offset ↔ line lookups over a fixed document snapshot."""

    __slots__ = ("_text", "_starts")

    def __init__(self, text: str) -> None:
        self._text = text
        starts = [0]
        index = text.find("\n")
        while index != -1:
            starts.append(index + 1)
            index = text.find("\n", index + 1)
        self._starts = starts

    @property
    def text(self) -> str:
        return self._text

    @property
    def line_count(self) -> int:
        return len(self._starts)

    def line(self, number: int) -> Line:
        """Return the 1-based line ``number``."""

        if number < 1 or number > len(self._starts):
            raise IndexError(f"Line {number} out of range (1-{len(self._starts)})")
        start = self._starts[number - 1]
        if number < len(self._starts):
            end = self._starts[number] - 1
        else:
            end = len(self._text)
        return Line(number=number, start=start, end=end, text=self._text[start:end])

    def line_at(self, pos: int) -> Line:
        """Return the line containing offset ``pos``."""

        pos = max(0, min(pos, len(self._text)))
        return self.line(bisect_right(self._starts, pos))

    def is_line_start(self, pos: int) -> bool:
        index = bisect_right(self._starts, pos) - 1
        return index >= 0 and self._starts[index] == pos


def block_end(lines: LineIndex, start: int, end: int) -> int:
    """Return the offset where a block node's content really ends.

    Block nodes may report an ``end`` that sits just past their trailing line
    terminator, i.e. at the first character of the next line. Looking that
    offset up would attribute the block to the following line, so such ends
    are stepped back by one.
    """

    safe_end = min(end, len(lines.text))
    if safe_end > start and lines.is_line_start(safe_end):
        return safe_end - 1
    return safe_end


def iter_block_lines(lines: LineIndex, start: int, end: int) -> Iterator[Line]:
    """Yield every line belonging to the block ``[start, end)``."""

    last = block_end(lines, start, end)
    pos = start
    while pos <= last:
        line = lines.line_at(pos)
        yield line
        if line.end >= last or line.number >= lines.line_count:
            break
        pos = line.end + 1


__all__ = ["Line", "LineIndex", "block_end", "iter_block_lines"]
