"""Inline markup toggling over a plain string and a single selection."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..core.changes import EditDescriptor
from ..core.ranges import TextRange, expand_to_word, normalize_selection

_FULL_LINK = re.compile(r"^\[([^\]]+)\]\(([^\n)]+)\)$")
DEFAULT_LINK_URL = "https://"
DEFAULT_LINK_TEXT = "link text"


class FormatCommand(str, Enum):
    BOLD = "bold"
    ITALIC = "italic"
    STRIKETHROUGH = "strikethrough"
    LINK = "link"

    @classmethod
    def parse(cls, value: Any) -> FormatCommand:
        """Return the command named by ``value``; raises ``ValueError`` otherwise."""

        if isinstance(value, FormatCommand):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unknown format command: {value!r}") from exc


def is_format_command(value: Any) -> bool:
    try:
        FormatCommand.parse(value)
    except ValueError:
        return False
    return True


_SHORTCUTS = {
    ("b", False): FormatCommand.BOLD,
    ("i", False): FormatCommand.ITALIC,
    ("k", False): FormatCommand.LINK,
    ("x", True): FormatCommand.STRIKETHROUGH,
}


def command_from_shortcut(key: str, *, primary: bool, shift: bool = False, alt: bool = False) -> FormatCommand | None:
    """Map a primary-modifier key chord (Ctrl/Cmd) to a format command."""

    if not primary or alt:
        return None
    return _SHORTCUTS.get((key.lower(), shift))


@dataclass(slots=True, frozen=True)
class FormattingPreferences:
    """The two settings the formatting engine reads.

    ``empty_selection_behavior`` is ``"word"`` (expand a caret to the word
    under it) or ``"markers"`` (insert an empty marker pair). ``italic_delimiter``
    is ``"underscore"`` or ``"asterisk"``.
    """

    empty_selection_behavior: str = "word"
    italic_delimiter: str = "underscore"

    @property
    def italic_marker(self) -> str:
        return "_" if self.italic_delimiter == "underscore" else "*"


@dataclass(slots=True, frozen=True)
class FormattingOptions:
    link_url: Optional[str] = None
    link_text: Optional[str] = None


@dataclass(slots=True, frozen=True)
class TextFormatResult:
    """Outcome of one formatting call.

    ``change`` is the single edit that turns the input text into ``text``; it
    is expressed against the input text so callers can compose it with other
    edits on the same revision.
    """

    text: str
    selection: TextRange
    changed: bool
    change: EditDescriptor | None = None


def resolve_target(text: str, selection: Any, preferences: FormattingPreferences) -> TextRange:
    """Normalize ``selection`` and apply the empty-selection policy."""

    normalized = normalize_selection(selection, len(text))
    if not normalized.is_caret:
        return normalized
    if preferences.empty_selection_behavior == "word":
        return expand_to_word(text, normalized.start) or normalized
    return normalized


def is_wrapped_selection(selected: str, marker: str) -> bool:
    """Return ``True`` when ``selected`` starts and ends with exactly ``marker``."""

    if len(selected) < len(marker) * 2:
        return False
    if not (selected.startswith(marker) and selected.endswith(marker)):
        return False
    if len(marker) == 1:
        doubled = marker * 2
        if selected.startswith(doubled) or selected.endswith(doubled):
            return False
    return True


def has_surrounding_markers(text: str, start: int, end: int, marker: str) -> bool:
    """Return ``True`` when ``marker`` sits immediately outside ``[start, end)``."""

    width = len(marker)
    if start < width or end + width > len(text):
        return False
    if text[start - width : start] != marker or text[end : end + width] != marker:
        return False
    if width == 1:
        before = text[start - 2] if start - 2 >= 0 else None
        after = text[end + 1] if end + 1 < len(text) else None
        if before == marker or after == marker:
            return False
    return True


def _result(text: str, start: int, end: int, insert: str, selection: TextRange) -> TextFormatResult:
    updated = text[:start] + insert + text[end:]
    return TextFormatResult(
        text=updated,
        selection=selection,
        changed=updated != text,
        change=EditDescriptor(start, end, insert),
    )


def format_marker(
    text: str,
    selection: Any,
    marker: str,
    preferences: FormattingPreferences,
) -> TextFormatResult:
    """Toggle ``marker`` around the target range."""

    target = resolve_target(text, selection, preferences)
    selected = target.slice(text)
    width = len(marker)

    if target.is_caret:
        caret = target.start + width
        return _result(text, target.start, target.end, marker * 2, TextRange.caret(caret))

    if is_wrapped_selection(selected, marker):
        inner = selected[width:-width]
        return _result(text, target.start, target.end, inner, TextRange(target.start, target.start + len(inner)))

    if has_surrounding_markers(text, target.start, target.end, marker):
        start = target.start - width
        return _result(text, start, target.end + width, selected, TextRange(start, start + len(selected)))

    return _result(
        text,
        target.start,
        target.end,
        f"{marker}{selected}{marker}",
        TextRange(target.start + width, target.end + width),
    )


def _unwrap_link_around(text: str, target: TextRange) -> TextFormatResult | None:
    if target.start == 0 or text[target.start - 1] != "[":
        return None
    if text.find("](", target.end) != target.end:
        return None
    url_end = text.find(")", target.end + 2)
    if url_end == -1:
        return None
    label = target.slice(text)
    start = target.start - 1
    return _result(text, start, url_end + 1, label, TextRange(start, start + len(label)))


def format_link(
    text: str,
    selection: Any,
    preferences: FormattingPreferences,
    options: FormattingOptions | None = None,
) -> TextFormatResult:
    options = options or FormattingOptions()
    target = resolve_target(text, selection, preferences)
    selected = target.slice(text)

    full = _FULL_LINK.match(selected)
    if full is not None:
        label = full.group(1)
        return _result(text, target.start, target.end, label, TextRange(target.start, target.start + len(label)))

    surrounding = _unwrap_link_around(text, target)
    if surrounding is not None:
        return surrounding

    url = options.link_url if options.link_url is not None else DEFAULT_LINK_URL
    if target.is_caret:
        label = options.link_text if options.link_text is not None else DEFAULT_LINK_TEXT
    else:
        label = selected
    label_start = target.start + 1
    return _result(
        text,
        target.start,
        target.end,
        f"[{label}]({url})",
        TextRange(label_start, label_start + len(label)),
    )


def apply_command_to_text(
    text: str,
    selection: Any,
    command: FormatCommand | str,
    preferences: FormattingPreferences | None = None,
    options: FormattingOptions | None = None,
) -> TextFormatResult:
    """Apply ``command`` to one selection in ``text``.

    The selection is clamped to the text first, so out-of-range input never
    raises. Only an unknown ``command`` raises ``ValueError``.
    """

    preferences = preferences or FormattingPreferences()
    resolved = FormatCommand.parse(command)
    if resolved is FormatCommand.BOLD:
        return format_marker(text, selection, "**", preferences)
    if resolved is FormatCommand.ITALIC:
        return format_marker(text, selection, preferences.italic_marker, preferences)
    if resolved is FormatCommand.STRIKETHROUGH:
        return format_marker(text, selection, "~~", preferences)
    return format_link(text, selection, preferences, options)


__all__ = [
    "DEFAULT_LINK_TEXT",
    "DEFAULT_LINK_URL",
    "FormatCommand",
    "FormattingOptions",
    "FormattingPreferences",
    "TextFormatResult",
    "apply_command_to_text",
    "command_from_shortcut",
    "format_link",
    "format_marker",
    "has_surrounding_markers",
    "is_format_command",
    "is_wrapped_selection",
    "resolve_target",
]
