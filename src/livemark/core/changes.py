"""Edit descriptors, combined change sets and position mapping."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence


class LivemarkError(RuntimeError):
    """Base error raised by the editing core."""

    def __init__(self, message: str, *, reason: str = "error", **details: Any) -> None:
        super().__init__(message)
        self.reason = reason
        self._details = dict(details)

    def details(self) -> dict[str, Any]:
        return {"reason": self.reason, **self._details}


class EditConflictError(LivemarkError):
    """Raised when edit descriptors describe overlapping source ranges."""

    def __init__(self, message: str, *, first: EditDescriptor, second: EditDescriptor) -> None:
        super().__init__(
            message,
            reason="edit_overlap",
            first=first.to_dict(),
            second=second.to_dict(),
        )


class EditRangeError(LivemarkError):
    """Raised when an edit descriptor points past the end of the document."""

    def __init__(self, message: str, *, edit: EditDescriptor, length: int) -> None:
        super().__init__(message, reason="range_overflow", edit=edit.to_dict(), length=length)


@dataclass(slots=True, frozen=True)
class EditDescriptor:
    """Replace ``text[start:end]`` with ``insert``."""

    start: int
    end: int
    insert: str = ""

    def __post_init__(self) -> None:
        start = max(0, int(self.start))
        end = max(0, int(self.end))
        if end < start:
            start, end = end, start
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @property
    def delta(self) -> int:
        return len(self.insert) - (self.end - self.start)

    @property
    def is_noop(self) -> bool:
        return self.start == self.end and not self.insert

    def apply(self, text: str) -> str:
        return text[: self.start] + self.insert + text[self.end :]

    def to_dict(self) -> dict[str, Any]:
        return {"from": self.start, "to": self.end, "insert": self.insert}

    @classmethod
    def from_value(cls, value: Any) -> EditDescriptor:
        if isinstance(value, EditDescriptor):
            return value
        if isinstance(value, Mapping):
            start = value.get("from", value.get("start", 0))
            end = value.get("to", value.get("end", start))
            return cls(int(start), int(end), str(value.get("insert", "")))
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)) and len(value) == 3:
            return cls(int(value[0]), int(value[1]), str(value[2]))
        raise TypeError("Unsupported EditDescriptor input")


@dataclass(slots=True, frozen=True)
class ChangeSet:
    """Non-overlapping edits expressed against one pre-mutation document."""

    edits: tuple[EditDescriptor, ...]
    length: int

    @classmethod
    def of(cls, edits: Iterable[Any], length: int) -> ChangeSet:
        """Sort ``edits`` by position and reject overlaps or overflows."""

        normalized = sorted(
            (EditDescriptor.from_value(item) for item in edits),
            key=lambda item: (item.start, item.end),
        )
        previous: EditDescriptor | None = None
        for entry in normalized:
            if entry.end > length:
                raise EditRangeError("Edit range exceeds document length", edit=entry, length=length)
            if previous is not None and entry.start < previous.end:
                raise EditConflictError("Edit descriptors may not overlap", first=previous, second=entry)
            previous = entry
        return cls(tuple(item for item in normalized if not item.is_noop), length)

    @classmethod
    def empty(cls, length: int) -> ChangeSet:
        return cls((), length)

    @property
    def is_empty(self) -> bool:
        return not self.edits

    @property
    def new_length(self) -> int:
        return self.length + sum(item.delta for item in self.edits)

    def apply(self, text: str) -> str:
        """Return ``text`` with every edit applied."""

        if len(text) != self.length:
            raise LivemarkError(
                "Change set length does not match document",
                reason="length_mismatch",
                expected=self.length,
                actual=len(text),
            )
        pieces: list[str] = []
        cursor = 0
        for entry in self.edits:
            pieces.append(text[cursor : entry.start])
            pieces.append(entry.insert)
            cursor = entry.end
        pieces.append(text[cursor:])
        return "".join(pieces)

    def map_pos(self, pos: int, assoc: int = -1) -> int:
        """Map ``pos`` from the old document into the new one.

        ``assoc`` picks the side a position sticks to when text is inserted
        exactly at it: negative stays before the insertion, positive moves
        after it. Positions inside replaced text collapse to the start of the
        replacement (or its end for a positive ``assoc``).
        """

        offset = 0
        for entry in self.edits:
            if pos < entry.start:
                return pos + offset
            if entry.start == entry.end:
                if pos == entry.start and assoc < 0:
                    return pos + offset
            elif pos < entry.end:
                mapped = entry.start + offset
                if pos == entry.start or assoc < 0:
                    return mapped
                return mapped + len(entry.insert)
            offset += entry.delta
        return pos + offset

    def touches(self, start: int, end: int) -> bool:
        """Return ``True`` when any edit replaces text intersecting ``[start, end)``."""

        for entry in self.edits:
            if entry.start < end and entry.end > start:
                return True
        return False

    def changed_spans(self) -> tuple[tuple[int, int], ...]:
        """Return the spans of inserted text in the new document."""

        spans: list[tuple[int, int]] = []
        offset = 0
        for entry in self.edits:
            start = entry.start + offset
            spans.append((start, start + len(entry.insert)))
            offset += entry.delta
        return tuple(spans)

    def summary(self) -> str:
        delta = self.new_length - self.length
        if delta == 0:
            return f"changes: {len(self.edits)} edit(s), Δ0"
        sign = "+" if delta > 0 else "-"
        return f"changes: {len(self.edits)} edit(s), {sign}{abs(delta)} chars"


__all__ = [
    "ChangeSet",
    "EditConflictError",
    "EditDescriptor",
    "EditRangeError",
    "LivemarkError",
]
