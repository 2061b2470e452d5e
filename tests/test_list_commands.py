"""Tests for list indentation and Enter continuation."""

from __future__ import annotations

from livemark.core.ranges import SelectionSet
from livemark.editor.document_model import DocumentState
from livemark.editor.list_commands import (
    indent_list_items,
    is_list_line,
    outdent_list_items,
    smart_enter,
)


def _state(text: str, start: int, end: int | None = None) -> DocumentState:
    return DocumentState(text=text, selection=SelectionSet.single(start, end))


def _apply(state: DocumentState, transaction) -> DocumentState:
    assert transaction is not None
    return state.apply(transaction)


def test_is_list_line() -> None:
    assert is_list_line("- item")
    assert is_list_line("   12. item")
    assert not is_list_line("-item")
    assert not is_list_line("plain")


def test_indent_every_selected_list_line() -> None:
    state = _state("- a\n- b\ntext", 0, 7)

    result = _apply(state, indent_list_items(state, tab_size=2))

    assert result.text == "  - a\n  - b\ntext"


def test_indent_ignores_non_list_lines() -> None:
    assert indent_list_items(_state("plain text", 3)) is None


def test_outdent_removes_at_most_tab_size_spaces() -> None:
    state = _state("      - a\n  - b", 0, 15)

    result = _apply(state, outdent_list_items(state, tab_size=4))

    assert result.text == "  - a\n- b"


def test_enter_continues_bullets_tasks_and_numbers() -> None:
    bullet = _apply(_state("- item", 6), smart_enter(_state("- item", 6)))
    assert bullet.text == "- item\n- "
    assert bullet.selection.main.start == 9

    task = _state("- [x] done", 10)
    assert _apply(task, smart_enter(task)).text == "- [x] done\n- [ ] "

    ordered = _state("  3. three", 10)
    assert _apply(ordered, smart_enter(ordered)).text == "  3. three\n  4. "


def test_enter_on_empty_item_clears_the_marker() -> None:
    state = _state("- a\n- ", 6)

    result = _apply(state, smart_enter(state))

    assert result.text == "- a\n"
    assert result.selection.main.start == 4


def test_enter_outside_lists_uses_default_newline() -> None:
    assert smart_enter(_state("plain", 5)) is None
    assert smart_enter(_state("- item", 2, 4)) is None
