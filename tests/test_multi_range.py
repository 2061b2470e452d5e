"""Tests for multi-range formatting plans."""

from __future__ import annotations

import pytest

from livemark.core.changes import EditConflictError
from livemark.core.ranges import SelectionSet
from livemark.editor.multi_range import apply_formatting_to_session, plan_formatting


def test_two_carets_expand_to_their_own_words() -> None:
    text = "one two three"

    plan = plan_formatting(text, SelectionSet.of([(1, 1), (5, 5)]), "bold")

    assert plan is not None
    assert plan.changes.apply(text) == "**one** **two** three"
    assert plan.selection.selected_texts("**one** **two** three") == ["one", "two"]
    assert plan.transaction().user_event == "input"
    assert plan.skipped == ()


def test_selected_words_keep_their_selection_after_edit() -> None:
    text = "one two three four five six"
    selection = SelectionSet.of([(0, 3), (19, 23)])

    plan = plan_formatting(text, selection, "bold")

    assert plan is not None
    result = plan.changes.apply(text)
    assert result == "**one** two three four **five** six"
    assert plan.selection.selected_texts(result) == ["one", "five"]


def test_overlap_guard_skips_ranges_in_an_edited_word() -> None:
    text = "one two"

    plan = plan_formatting(text, SelectionSet.of([(1, 1), (2, 2)]), "italic")

    assert plan is not None
    assert plan.changes.apply(text) == "_one_ two"
    assert plan.skipped == (0,)


def test_overlapping_edits_raise_conflict() -> None:
    with pytest.raises(EditConflictError):
        plan_formatting("**a**", SelectionSet.of([(2, 3), (4, 4)]), "bold")


def test_session_refuses_conflicting_plan(make_session) -> None:
    session = make_session("**a**")
    session.select([(2, 3), (4, 4)])

    assert apply_formatting_to_session(session, "bold") is False
    assert session.text == "**a**"


def test_session_applies_plan_in_one_transaction(make_session) -> None:
    session = make_session("one two three")
    seen = []
    session.add_listener(lambda _session, transaction: seen.append(transaction.user_event))
    session.select([(1, 1), (5, 5)])

    assert apply_formatting_to_session(session, "bold") is True
    assert session.text == "**one** **two** three"
    assert seen == ["select", "input"]
