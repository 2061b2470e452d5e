"""Structured helpers for representing text spans and selections."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterator

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .changes import ChangeSet

_WORD_CHAR = re.compile(r"[A-Za-z0-9_]")


@dataclass(slots=True, frozen=True)
class TextRange(Sequence[int]):
    """Canonical representation of a text selection using absolute offsets."""

    start: int
    end: int

    def __post_init__(self) -> None:
        start = self._coerce_index(self.start, "start")
        end = self._coerce_index(self.end, "end")
        if end < start:
            start, end = end, start
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @staticmethod
    def _coerce_index(value: Any, label: str) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"TextRange {label} must be an integer") from exc
        if number < 0:
            return 0
        return number

    def __len__(self) -> int:
        return 2

    def __getitem__(self, index: int | slice) -> int | tuple[int, ...]:
        if isinstance(index, slice):
            return self.to_tuple()[index]
        if index == 0:
            return self.start
        if index == 1:
            return self.end
        raise IndexError("TextRange index out of range")

    def __iter__(self) -> Iterator[int]:
        yield self.start
        yield self.end

    @property
    def length(self) -> int:
        """Return the width of the range."""

        return self.end - self.start

    @property
    def is_caret(self) -> bool:
        """Return ``True`` when the range collapses to a caret."""

        return self.start == self.end

    def to_tuple(self) -> tuple[int, int]:
        """Return the range as a ``(start, end)`` tuple."""

        return (self.start, self.end)

    def to_dict(self) -> dict[str, int]:
        """Return the range as a ``{"from", "to"}`` payload."""

        return {"from": self.start, "to": self.end}

    def clamp(self, *, lower: int = 0, upper: int | None = None) -> TextRange:
        """Clamp the range to ``[lower, upper]`` bounds."""

        start = max(lower, self.start)
        end = max(lower, self.end)
        if upper is not None:
            start = min(start, upper)
            end = min(end, upper)
        return TextRange(start=start, end=end)

    def overlaps(self, start: int, end: int) -> bool:
        """Return ``True`` when the range intersects ``[start, end)``."""

        return self.start < end and self.end > start

    def slice(self, text: str) -> str:
        """Return the characters of ``text`` covered by the range."""

        return text[self.start : self.end]

    @classmethod
    def from_value(
        cls,
        value: Any,
        *,
        fallback: tuple[int, int] | None = None,
    ) -> TextRange:
        """Coerce ``value`` into a :class:`TextRange`."""

        if isinstance(value, TextRange):
            return value
        if value is None:
            if fallback is None:
                raise ValueError("TextRange value is required")
            return cls(*fallback)
        if isinstance(value, Mapping):
            start = value.get("from", value.get("start"))
            end = value.get("to", value.get("end"))
            if start is None or end is None:
                if fallback is None:
                    raise ValueError("TextRange mappings require from and to keys")
                if start is None:
                    start = fallback[0]
                if end is None:
                    end = fallback[1]
            return cls(start, end)
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            seq = list(value)
            if len(seq) != 2:
                raise ValueError("TextRange sequences must have exactly two entries")
            return cls(seq[0], seq[1])
        start = getattr(value, "start", None)
        end = getattr(value, "end", None)
        if start is not None and end is not None:
            return cls(start, end)
        raise TypeError("Unsupported TextRange input")

    @classmethod
    def caret(cls, pos: int) -> TextRange:
        """Return an empty range positioned at ``pos``."""

        return cls(pos, pos)


@dataclass(slots=True, frozen=True)
class SelectionSet:
    """Ordered, disjoint selection ranges plus the index of the main range."""

    ranges: tuple[TextRange, ...]
    main_index: int = 0

    def __post_init__(self) -> None:
        ranges = tuple(TextRange.from_value(item) for item in self.ranges)
        if not ranges:
            ranges = (TextRange.caret(0),)
        main = ranges[min(max(0, self.main_index), len(ranges) - 1)]
        merged = _merge_ranges(ranges)
        main_index = 0
        for index, candidate in enumerate(merged):
            if candidate.start <= main.start and main.end <= candidate.end:
                main_index = index
                break
        object.__setattr__(self, "ranges", merged)
        object.__setattr__(self, "main_index", main_index)

    def __iter__(self) -> Iterator[TextRange]:
        return iter(self.ranges)

    def __len__(self) -> int:
        return len(self.ranges)

    @property
    def main(self) -> TextRange:
        return self.ranges[self.main_index]

    @classmethod
    def single(cls, start: int, end: int | None = None) -> SelectionSet:
        return cls((TextRange(start, start if end is None else end),))

    @classmethod
    def of(cls, ranges: Iterable[Any], main_index: int = 0) -> SelectionSet:
        return cls(tuple(TextRange.from_value(item) for item in ranges), main_index)

    def clamp(self, length: int) -> SelectionSet:
        """Return the selection clamped to a document of ``length`` characters."""

        return SelectionSet(tuple(item.clamp(upper=length) for item in self.ranges), self.main_index)

    def map(self, changes: ChangeSet) -> SelectionSet:
        """Map every range through ``changes``, keeping carets collapsed."""

        mapped: list[TextRange] = []
        for item in self.ranges:
            if item.is_caret:
                mapped.append(TextRange.caret(changes.map_pos(item.start, -1)))
            else:
                mapped.append(TextRange(changes.map_pos(item.start, 1), changes.map_pos(item.end, -1)))
        return SelectionSet(tuple(mapped), self.main_index)

    def selected_texts(self, text: str) -> list[str]:
        return [item.slice(text) for item in self.ranges]


def _merge_ranges(ranges: Sequence[TextRange]) -> tuple[TextRange, ...]:
    ordered = sorted(ranges, key=lambda item: (item.start, item.end))
    merged: list[TextRange] = []
    for item in ordered:
        if merged:
            last = merged[-1]
            if item.start < last.end or (item.is_caret and item.start <= last.end):
                merged[-1] = TextRange(last.start, max(last.end, item.end))
                continue
        merged.append(item)
    return tuple(merged)


def normalize_selection(selection: Any, length: int) -> TextRange:
    """Clamp ``selection`` into ``[0, length]`` and order its endpoints."""

    return TextRange.from_value(selection).clamp(upper=max(0, length))


def is_word_char(char: str | None) -> bool:
    return bool(char) and _WORD_CHAR.fullmatch(char) is not None  # type: ignore[arg-type]


def expand_to_word(text: str, pos: int) -> TextRange | None:
    """Return the word-character run containing or ending at ``pos``."""

    if not text:
        return None
    pivot = max(0, min(pos, len(text)))
    if pivot < len(text) and is_word_char(text[pivot]):
        pass
    elif pivot > 0 and is_word_char(text[pivot - 1]):
        pivot -= 1
    else:
        return None

    start = pivot
    end = pivot + 1
    while start > 0 and is_word_char(text[start - 1]):
        start -= 1
    while end < len(text) and is_word_char(text[end]):
        end += 1
    return TextRange(start, end)


def is_range_selected(selection: Iterable[Any], start: int, end: int) -> bool:
    """Return ``True`` when any selection range touches ``[start, end]``.

    A caret (or the anchor of a non-empty range) counts when it sits inside the
    closed interval; a non-empty range also counts when it intersects the
    half-open interval ``[start, end)``.
    """

    for raw in selection:
        item = TextRange.from_value(raw)
        if start <= item.start <= end:
            return True
        if not item.is_caret and item.start < end and item.end > start:
            return True
    return False


__all__ = [
    "SelectionSet",
    "TextRange",
    "expand_to_word",
    "is_range_selected",
    "is_word_char",
    "normalize_selection",
]
