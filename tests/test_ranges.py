"""Tests for text ranges, selection sets and selection helpers."""

from __future__ import annotations

import pytest

from livemark.core.changes import ChangeSet, EditDescriptor
from livemark.core.ranges import (
    SelectionSet,
    TextRange,
    expand_to_word,
    is_range_selected,
    normalize_selection,
)


def test_text_range_orders_and_floors_offsets() -> None:
    assert TextRange(5, 2).to_tuple() == (2, 5)
    assert TextRange(-3, 4).to_tuple() == (0, 4)
    assert TextRange.caret(7).is_caret


def test_text_range_from_value_accepts_mappings_and_pairs() -> None:
    assert TextRange.from_value({"from": 1, "to": 3}) == TextRange(1, 3)
    assert TextRange.from_value({"start": 4, "end": 2}) == TextRange(2, 4)
    assert TextRange.from_value([0, 6]) == TextRange(0, 6)
    with pytest.raises(ValueError):
        TextRange.from_value([1, 2, 3])
    with pytest.raises(TypeError):
        TextRange.from_value(object())


def test_normalize_selection_clamps_into_document() -> None:
    assert normalize_selection((3, 50), 10) == TextRange(3, 10)
    assert normalize_selection((-4, 2), 10) == TextRange(0, 2)


def test_expand_to_word_covers_inside_and_trailing_positions() -> None:
    text = "A paragraph with text"

    assert expand_to_word(text, 4) == TextRange(2, 11)
    assert expand_to_word(text, 11) == TextRange(2, 11)
    assert expand_to_word("a  b", 2) is None
    assert expand_to_word("", 0) is None


def test_is_range_selected_uses_closed_interval_for_carets() -> None:
    assert is_range_selected([TextRange.caret(5)], 0, 5)
    assert not is_range_selected([TextRange.caret(6)], 0, 5)
    assert is_range_selected([TextRange(0, 3)], 2, 8)
    assert not is_range_selected([TextRange(0, 2)], 2, 8)


def test_selection_set_merges_overlaps_and_tracks_main() -> None:
    selection = SelectionSet.of([(8, 12), (0, 4), (3, 6)], main_index=0)

    assert [item.to_tuple() for item in selection] == [(0, 6), (8, 12)]
    assert selection.main == TextRange(8, 12)


def test_selection_set_maps_through_changes() -> None:
    selection = SelectionSet.of([(2, 2), (6, 9)])
    changes = ChangeSet.of([EditDescriptor(0, 0, "**")], 10)

    mapped = selection.map(changes)

    assert [item.to_tuple() for item in mapped] == [(4, 4), (8, 11)]
