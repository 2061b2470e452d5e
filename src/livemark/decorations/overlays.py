"""Overlay records and the position-sorted overlay set handed to the renderer."""

from __future__ import annotations

from dataclasses import dataclass, field
from dataclasses import replace as _replace
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Mapping, Optional

from ..core.changes import ChangeSet

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .widgets import Widget


class OverlayKind(str, Enum):
    HIDE = "hide"
    MARK = "mark"
    LINE = "line"
    WIDGET = "widget"


# Renderers draw line styling first, then replacements, then marks.
_KIND_ORDER = {OverlayKind.LINE: 0, OverlayKind.WIDGET: 1, OverlayKind.HIDE: 1, OverlayKind.MARK: 2}
_EMPTY: Mapping[str, str] = MappingProxyType({})


@dataclass(slots=True, frozen=True)
class Overlay:
    """One visual annotation over ``[start, end)``.

    Line overlays are anchored at a line's start offset and have
    ``start == end``. Widget overlays replace their range with ``widget``;
    ``block`` marks a widget that stands in for whole lines.
    """

    kind: OverlayKind
    start: int
    end: int
    css_class: str = ""
    attributes: Mapping[str, str] = field(default_factory=lambda: _EMPTY)
    widget: Optional["Widget"] = None
    block: bool = False

    @classmethod
    def hide(cls, start: int, end: int) -> Overlay:
        return cls(OverlayKind.HIDE, start, end)

    @classmethod
    def mark(cls, start: int, end: int, css_class: str, attributes: Mapping[str, str] | None = None) -> Overlay:
        attrs = MappingProxyType(dict(attributes)) if attributes else _EMPTY
        return cls(OverlayKind.MARK, start, end, css_class=css_class, attributes=attrs)

    @classmethod
    def line(cls, pos: int, css_class: str) -> Overlay:
        return cls(OverlayKind.LINE, pos, pos, css_class=css_class)

    @classmethod
    def replace(cls, start: int, end: int, widget: "Widget", *, block: bool = False) -> Overlay:
        return cls(OverlayKind.WIDGET, start, end, widget=widget, block=block)

    @property
    def is_replacement(self) -> bool:
        """Return ``True`` for overlays that stop the covered text from rendering."""

        return self.kind in (OverlayKind.HIDE, OverlayKind.WIDGET)

    def map(self, changes: ChangeSet) -> Overlay | None:
        """Re-anchor through ``changes``; ``None`` when the range collapses."""

        if self.kind is OverlayKind.LINE:
            pos = changes.map_pos(self.start, -1)
            return _replace(self, start=pos, end=pos)
        start = changes.map_pos(self.start, 1)
        end = changes.map_pos(self.end, -1)
        if end <= start:
            return None
        return _replace(self, start=start, end=end)

    def sort_key(self) -> tuple[int, int, int]:
        return (self.start, _KIND_ORDER[self.kind], self.end)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind.value, "from": self.start, "to": self.end}
        if self.css_class:
            payload["class"] = self.css_class
        if self.attributes:
            payload["attributes"] = dict(self.attributes)
        if self.widget is not None:
            payload["widget"] = self.widget.describe()
            payload["block"] = self.block
        return payload


class OverlaySet:
    """Immutable, position-sorted collection of overlays."""

    __slots__ = ("_items",)

    def __init__(self, overlays: Iterable[Overlay] = ()) -> None:
        self._items: tuple[Overlay, ...] = tuple(sorted(overlays, key=Overlay.sort_key))

    def __iter__(self) -> Iterator[Overlay]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"OverlaySet({len(self._items)} overlays)"

    def of_kind(self, kind: OverlayKind) -> list[Overlay]:
        return [item for item in self._items if item.kind is kind]

    def widgets(self, widget_type: type | None = None) -> list[Overlay]:
        return [
            item
            for item in self._items
            if item.widget is not None and (widget_type is None or isinstance(item.widget, widget_type))
        ]

    def at(self, pos: int) -> list[Overlay]:
        """Return the overlays whose range contains ``pos``."""

        return [item for item in self._items if item.start <= pos < item.end or item.start == item.end == pos]

    def map(self, changes: ChangeSet) -> OverlaySet:
        """Map every overlay through ``changes``, dropping collapsed ones."""

        if changes.is_empty:
            return self
        mapped = (item.map(changes) for item in self._items)
        return OverlaySet(item for item in mapped if item is not None)

    def to_list(self) -> list[dict[str, Any]]:
        return [item.to_dict() for item in self._items]


def find_conflicts(overlays: Iterable[Overlay]) -> list[tuple[Overlay, Overlay]]:
    """Return overlapping pairs among Hide ranges and replacing widgets."""

    replacements = sorted(
        (item for item in overlays if item.is_replacement and item.end > item.start),
        key=lambda item: (item.start, item.end),
    )
    conflicts: list[tuple[Overlay, Overlay]] = []
    active: list[Overlay] = []
    for item in replacements:
        active = [other for other in active if other.end > item.start]
        conflicts.extend((other, item) for other in active)
        active.append(item)
    return conflicts


__all__ = ["Overlay", "OverlayKind", "OverlaySet", "find_conflicts"]
