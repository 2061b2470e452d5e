"""Tab, Shift-Tab and Enter behavior on Markdown list lines."""

from __future__ import annotations

import re
from typing import Optional

from ..core.changes import ChangeSet, EditDescriptor
from ..core.ranges import SelectionSet
from .blocks import LineIndex
from .document_model import DocumentState, Transaction

_LIST_LINE = re.compile(r"^\s*(?:[-*+]|\d+\.)\s")
_TASK_LINE = re.compile(r"^(\s*)([-*+])\s\[[ x]\]\s(.*)")
_BULLET_LINE = re.compile(r"^(\s*)([-*+])\s(.*)")
_ORDERED_LINE = re.compile(r"^(\s*)(\d+)\.\s(.*)")
_LEADING_SPACE = re.compile(r"^(\s+)")


def is_list_line(line_text: str) -> bool:
    return _LIST_LINE.match(line_text) is not None


def _selected_line_numbers(lines: LineIndex, selection: SelectionSet) -> list[int]:
    numbers: set[int] = set()
    for item in selection:
        first = lines.line_at(item.start).number
        last = lines.line_at(item.end).number
        numbers.update(range(first, last + 1))
    return sorted(numbers)


def indent_list_items(state: DocumentState, tab_size: int = 4) -> Optional[Transaction]:
    """Indent every selected list line by ``tab_size`` spaces."""

    lines = LineIndex(state.text)
    if not is_list_line(lines.line_at(state.selection.main.end).text):
        return None
    indent = " " * max(1, tab_size)
    edits = [
        EditDescriptor(lines.line(number).start, lines.line(number).start, indent)
        for number in _selected_line_numbers(lines, state.selection)
        if is_list_line(lines.line(number).text)
    ]
    if not edits:
        return None
    return Transaction(changes=ChangeSet.of(edits, len(state.text)), user_event="input")


def outdent_list_items(state: DocumentState, tab_size: int = 4) -> Optional[Transaction]:
    """Remove up to ``tab_size`` leading spaces from every selected line."""

    lines = LineIndex(state.text)
    if not is_list_line(lines.line_at(state.selection.main.end).text):
        return None
    edits: list[EditDescriptor] = []
    for number in _selected_line_numbers(lines, state.selection):
        line = lines.line(number)
        match = _LEADING_SPACE.match(line.text)
        if match:
            edits.append(EditDescriptor(line.start, line.start + min(tab_size, len(match.group(1)))))
    if not edits:
        return None
    return Transaction(changes=ChangeSet.of(edits, len(state.text)), user_event="input")


def smart_enter(state: DocumentState) -> Optional[Transaction]:
    """Continue the list on Enter, or clear an empty item.

    Only a single collapsed caret is handled; anything else returns ``None``
    so the default newline behavior applies.
    """

    main = state.selection.main
    if not main.is_caret:
        return None
    length = len(state.text)
    line = LineIndex(state.text).line_at(main.start)

    continuation: str | None = None
    content = ""
    task = _TASK_LINE.match(line.text)
    bullet = _BULLET_LINE.match(line.text)
    ordered = _ORDERED_LINE.match(line.text)
    if task:
        indent, marker, content = task.groups()
        continuation = f"\n{indent}{marker} [ ] "
    elif bullet:
        indent, marker, content = bullet.groups()
        continuation = f"\n{indent}{marker} "
    elif ordered:
        indent, number, content = ordered.groups()
        continuation = f"\n{indent}{int(number) + 1}. "
    if continuation is None:
        return None

    if not content.strip():
        return Transaction(
            changes=ChangeSet.of([EditDescriptor(line.start, line.end)], length),
            selection=SelectionSet.single(line.start),
            user_event="input",
        )
    return Transaction(
        changes=ChangeSet.of([EditDescriptor(main.start, main.start, continuation)], length),
        selection=SelectionSet.single(main.start + len(continuation)),
        user_event="input",
    )


__all__ = ["indent_list_items", "is_list_line", "outdent_list_items", "smart_enter"]
