"""Tests for the single-selection formatting engine."""

from __future__ import annotations

import pytest

from livemark.core.changes import EditDescriptor
from livemark.core.ranges import TextRange
from livemark.editor.formatting import (
    FormatCommand,
    FormattingOptions,
    FormattingPreferences,
    apply_command_to_text,
    command_from_shortcut,
    has_surrounding_markers,
    is_format_command,
    is_wrapped_selection,
)

MARKERS = FormattingPreferences(empty_selection_behavior="markers")


def test_caret_expands_to_word_for_italic() -> None:
    result = apply_command_to_text("A paragraph with text", TextRange.caret(4), "italic")

    assert result.text == "A _paragraph_ with text"
    assert result.selection == TextRange(3, 12)
    assert result.changed
    assert result.change == EditDescriptor(2, 11, "_paragraph_")


def test_asterisk_italic_preference() -> None:
    prefs = FormattingPreferences(italic_delimiter="asterisk")

    result = apply_command_to_text("say hi", (4, 6), FormatCommand.ITALIC, prefs)

    assert result.text == "say *hi*"


def test_bold_wraps_and_unwraps_selection() -> None:
    wrapped = apply_command_to_text("make bold now", (5, 9), "bold")
    assert wrapped.text == "make **bold** now"
    assert wrapped.selection == TextRange(7, 11)

    unwrapped = apply_command_to_text(wrapped.text, wrapped.selection, "bold")
    assert unwrapped.text == "make bold now"
    assert unwrapped.selection == TextRange(5, 9)


def test_selection_including_markers_is_unwrapped() -> None:
    result = apply_command_to_text("x ~~gone~~ y", (2, 10), "strikethrough")

    assert result.text == "x gone y"
    assert result.selection == TextRange(2, 6)


def test_single_marker_does_not_unwrap_bold() -> None:
    assert not is_wrapped_selection("**word**", "*")
    assert is_wrapped_selection("*word*", "*")
    assert not has_surrounding_markers("**word**", 2, 6, "*")
    assert has_surrounding_markers("_word_", 1, 5, "_")
    assert not has_surrounding_markers("word_", 0, 4, "_")


def test_caret_without_word_inserts_marker_pair() -> None:
    result = apply_command_to_text("a  b", TextRange.caret(2), "bold")

    assert result.text == "a **** b"
    assert result.selection == TextRange.caret(4)


def test_markers_preference_skips_word_expansion() -> None:
    result = apply_command_to_text("word", TextRange.caret(2), "italic", MARKERS)

    assert result.text == "wo__rd"
    assert result.selection == TextRange.caret(3)


def test_link_wraps_selection_with_default_url() -> None:
    result = apply_command_to_text("see docs here", (4, 8), "link")

    assert result.text == "see [docs](https://) here"
    assert result.selection == TextRange(5, 9)


def test_link_uses_supplied_url_and_placeholder_label() -> None:
    options = FormattingOptions(link_url="https://example.com")

    result = apply_command_to_text("go ", TextRange.caret(3), "link", MARKERS, options)

    assert result.text == "go [link text](https://example.com)"
    assert result.selection == TextRange(4, 13)


def test_link_unwraps_full_link_and_label_selection() -> None:
    full = apply_command_to_text("a [b](u) c", (2, 8), "link")
    assert full.text == "a b c"
    assert full.selection == TextRange(2, 3)

    label = apply_command_to_text("a [b](u) c", (3, 4), "link")
    assert label.text == "a b c"
    assert label.selection == TextRange(2, 3)


def test_out_of_range_selection_is_clamped() -> None:
    result = apply_command_to_text("abc", (1, 99), "bold")

    assert result.text == "a**bc**"


def test_unknown_command_raises() -> None:
    with pytest.raises(ValueError):
        apply_command_to_text("abc", (0, 1), "underline")
    assert not is_format_command("underline")
    assert is_format_command("BOLD")


def test_command_from_shortcut() -> None:
    assert command_from_shortcut("b", primary=True) is FormatCommand.BOLD
    assert command_from_shortcut("K", primary=True) is FormatCommand.LINK
    assert command_from_shortcut("x", primary=True, shift=True) is FormatCommand.STRIKETHROUGH
    assert command_from_shortcut("x", primary=True) is None
    assert command_from_shortcut("b", primary=False) is None
    assert command_from_shortcut("i", primary=True, alt=True) is None


def test_link_placeholder_label_can_be_overridden() -> None:
    options = FormattingOptions(link_url="u", link_text="here")

    result = apply_command_to_text("go ", TextRange.caret(3), "link", MARKERS, options)

    assert result.text == "go [here](u)"
    assert result.selection == TextRange(4, 8)


@pytest.mark.parametrize(
    ("text", "selection", "command", "prefs", "formatted"),
    [
        ("make it so", (5, 7), "italic", FormattingPreferences(), "make _it_ so"),
        ("make it so", (5, 7), "italic", FormattingPreferences(italic_delimiter="asterisk"), "make *it* so"),
        ("x gone y", (2, 6), "strikethrough", FormattingPreferences(), "x ~~gone~~ y"),
    ],
)
def test_toggle_twice_restores_text_and_selection(text, selection, command, prefs, formatted) -> None:
    first = apply_command_to_text(text, selection, command, prefs)
    assert first.text == formatted

    second = apply_command_to_text(first.text, first.selection, command, prefs)

    assert second.text == text
    assert second.selection == TextRange(*selection)


def test_caret_toggle_round_trip_expands_to_word() -> None:
    wrapped = apply_command_to_text("A paragraph with text", TextRange.caret(4), "italic")
    assert wrapped.text == "A _paragraph_ with text"

    unwrapped = apply_command_to_text(wrapped.text, TextRange.caret(6), "italic")
    assert unwrapped.text == "A paragraph with text"
    assert unwrapped.selection == TextRange(2, 11)

    asterisk = FormattingPreferences(italic_delimiter="asterisk")
    starred = apply_command_to_text("say hi", TextRange.caret(5), "italic", asterisk)
    assert starred.text == "say *hi*"
    assert apply_command_to_text(starred.text, TextRange.caret(6), "italic", asterisk).text == "say hi"

    struck = apply_command_to_text("x gone y", TextRange.caret(3), "strikethrough")
    assert struck.text == "x ~~gone~~ y"
    assert apply_command_to_text(struck.text, TextRange.caret(5), "strikethrough").text == "x gone y"
