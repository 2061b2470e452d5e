"""Replacement widgets rendered in place of raw Markdown syntax.

Widgets are renderer-agnostic: each exposes ``describe()`` for structured
consumers and ``render_html()`` for HTML surfaces. ``eq`` decides whether a
renderer may keep an existing widget instance when overlays are rebuilt.
"""

from __future__ import annotations

import html
from typing import Any, Dict, Mapping, Optional

from ..core.changes import EditDescriptor

BULLET_GLYPHS = ("●", "○", "▪", "▫")


class Widget:
    css_class = ""
    ignore_event = True

    def key(self) -> tuple[Any, ...]:
        return ()

    def eq(self, other: object) -> bool:
        return type(self) is type(other) and self.key() == other.key()  # type: ignore[attr-defined]

    def describe(self) -> Dict[str, Any]:
        return {"type": type(self).__name__}

    def render_html(self) -> str:
        raise NotImplementedError


class HorizontalRuleWidget(Widget):
    css_class = "cm-hr-widget"

    def render_html(self) -> str:
        return f'<div style="padding: 16px 0"><hr class="{self.css_class}"></div>'


class BulletWidget(Widget):
    css_class = "cm-list-bullet"

    def __init__(self, depth: int) -> None:
        self.depth = max(0, depth)

    @property
    def glyph(self) -> str:
        return BULLET_GLYPHS[self.depth % len(BULLET_GLYPHS)]

    def key(self) -> tuple[Any, ...]:
        return (self.depth,)

    def describe(self) -> Dict[str, Any]:
        return {"type": "BulletWidget", "depth": self.depth, "glyph": self.glyph}

    def render_html(self) -> str:
        return f'<span class="{self.css_class}" data-depth="{self.depth}">{self.glyph}</span>'


class OrderedNumberWidget(Widget):
    css_class = "cm-list-ordered-number"

    def __init__(self, label: str) -> None:
        self.label = label

    def key(self) -> tuple[Any, ...]:
        return (self.label,)

    def describe(self) -> Dict[str, Any]:
        return {"type": "OrderedNumberWidget", "label": self.label}

    def render_html(self) -> str:
        return f'<span class="{self.css_class}">{html.escape(self.label)}</span>'


class CheckboxWidget(Widget):
    """Task-list checkbox; ``pos`` is the offset of the marker's ``[``."""

    css_class = "cm-checkbox-widget"
    ignore_event = False

    def __init__(self, checked: bool, pos: int) -> None:
        self.checked = checked
        self.pos = pos

    def key(self) -> tuple[Any, ...]:
        return (self.checked, self.pos)

    def toggle_edit(self) -> EditDescriptor:
        """Return the single-character edit that flips the marker."""

        return EditDescriptor(self.pos + 1, self.pos + 2, " " if self.checked else "x")

    def describe(self) -> Dict[str, Any]:
        return {"type": "CheckboxWidget", "checked": self.checked, "pos": self.pos}

    def render_html(self) -> str:
        checked = " checked" if self.checked else ""
        return f'<input type="checkbox" class="{self.css_class}"{checked}>'


class ImageWidget(Widget):
    css_class = "cm-image-widget"

    def __init__(self, src: str, alt: str) -> None:
        self.src = src
        self.alt = alt

    def key(self) -> tuple[Any, ...]:
        return (self.src,)

    @property
    def error_text(self) -> str:
        return f"[Image: {self.alt or 'failed to load'}]"

    def describe(self) -> Dict[str, Any]:
        return {"type": "ImageWidget", "src": self.src, "alt": self.alt}

    def render_html(self, *, failed: bool = False) -> str:
        if failed:
            inner = f'<div class="cm-image-error">{html.escape(self.error_text)}</div>'
        else:
            alt = html.escape(self.alt, quote=True)
            inner = f'<img src="{html.escape(self.src, quote=True)}" alt="{alt}" title="{alt}">'
        return f'<div class="{self.css_class}" style="padding: 8px 0">{inner}</div>'


class CodeBlockWidget(Widget):
    css_class = "cm-codeblock-widget"

    def __init__(self, code: str, language: str) -> None:
        self.code = code
        self.language = language

    def key(self) -> tuple[Any, ...]:
        return (self.code, self.language)

    def copy_text(self) -> str:
        return self.code

    def describe(self) -> Dict[str, Any]:
        return {"type": "CodeBlockWidget", "language": self.language, "code": self.code}

    def render_html(self) -> str:
        if self.language:
            label = f'<span class="cm-codeblock-lang">{html.escape(self.language)}</span>'
        else:
            label = "<span></span>"
        button = '<button type="button" class="cm-codeblock-copy" title="Copy code">Copy</button>'
        return (
            f'<div style="padding: 8px 0"><div class="{self.css_class}">'
            f'<div class="cm-codeblock-header">{label}{button}</div>'
            f"<pre><code>{html.escape(self.code)}</code></pre></div></div>"
        )


class FrontmatterWidget(Widget):
    css_class = "cm-frontmatter-widget"

    def __init__(self, property_count: int, metadata: Optional[Mapping[str, Any]] = None) -> None:
        self.property_count = property_count
        self.metadata = dict(metadata or {})

    def key(self) -> tuple[Any, ...]:
        return (self.property_count,)

    @property
    def label(self) -> str:
        count = self.property_count
        if count <= 0:
            return "Frontmatter (empty)"
        return f"Frontmatter ({count} {'property' if count == 1 else 'properties'})"

    def describe(self) -> Dict[str, Any]:
        return {
            "type": "FrontmatterWidget",
            "property_count": self.property_count,
            "label": self.label,
            "metadata": dict(self.metadata),
        }

    def render_html(self) -> str:
        return f'<div style="padding: 0 0 8px 0"><div class="{self.css_class}">{html.escape(self.label)}</div></div>'


__all__ = [
    "BULLET_GLYPHS",
    "BulletWidget",
    "CheckboxWidget",
    "CodeBlockWidget",
    "FrontmatterWidget",
    "HorizontalRuleWidget",
    "ImageWidget",
    "OrderedNumberWidget",
    "Widget",
]
