"""Compute the full overlay set for a document, its syntax tree and selection.

The builder is a pure function of its inputs. Each node kind has one handler
that decides, on its own, whether the node renders as a widget, hides its
syntax, or stays raw; no later pass resolves collisions. A node touched by
the selection shows its raw markup so it can be edited.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from ..core.ranges import TextRange, is_range_selected
from ..editor.blocks import Line, LineIndex, block_end, iter_block_lines
from ..editor.formatting import FormattingPreferences
from ..editor.syntax.markdown import FrontmatterSpan, fence_language, locate_frontmatter
from ..editor.syntax.tree import NodeKind, SyntaxNode, SyntaxTree
from .lists import list_depth, ordered_label
from .overlays import Overlay, OverlaySet
from .tables import TableWidget, parse_table_text
from .widgets import (
    BulletWidget,
    CheckboxWidget,
    CodeBlockWidget,
    FrontmatterWidget,
    HorizontalRuleWidget,
    ImageWidget,
    OrderedNumberWidget,
    Widget,
)

LOGGER = logging.getLogger(__name__)

_WIKI_LINK = re.compile(r"\[\[([^\]|]+)(?:\|([^\]]+))?\]\]")
_IMAGE = re.compile(r"^!\[([^\]]*)\]\(([^)]+)\)$")
_CLOSING_FENCE = re.compile(r"^[`~]{3,}\s*$")
_HEADING_PREFIX = re.compile(r"^(#{1,6})\s")
_ORDERED_MARK = re.compile(r"^\d+\.$")
_LEADING_BACKTICKS = re.compile(r"^`+")
_TRAILING_BACKTICKS = re.compile(r"`+$")

_LITERAL_KINDS = frozenset(
    {NodeKind.INLINE_CODE, NodeKind.FENCED_CODE, NodeKind.CODE_BLOCK, NodeKind.HTML_TAG, NodeKind.HTML_BLOCK}
)


class Visit(Enum):
    CHILDREN = "children"
    SKIP = "skip"


@dataclass(slots=True, frozen=True)
class DecorationContext:
    """Call-time configuration threaded through the builder into widgets."""

    formatting_preferences: FormattingPreferences = field(default_factory=FormattingPreferences)
    intercept_shortcuts: bool = True


class _DecorationPass:
    def __init__(self, text: str, selection: Iterable[Any], context: DecorationContext) -> None:
        self.text = text
        self.lines = LineIndex(text)
        self.selection = [TextRange.from_value(item) for item in selection]
        self.context = context
        self.overlays: list[Overlay] = []
        self.literal_spans: list[tuple[int, int]] = []
        self.frontmatter: Optional[FrontmatterSpan] = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def selected(self, start: int, end: int) -> bool:
        return is_range_selected(self.selection, start, end)

    def hide(self, start: int, end: int) -> None:
        if end > start:
            self.overlays.append(Overlay.hide(start, end))

    def mark(self, start: int, end: int, css_class: str, attributes: Mapping[str, str] | None = None) -> None:
        self.overlays.append(Overlay.mark(start, end, css_class, attributes))

    def line(self, pos: int, css_class: str) -> None:
        self.overlays.append(Overlay.line(pos, css_class))

    def widget(self, start: int, end: int, widget: Widget, *, block: bool = False) -> None:
        self.overlays.append(Overlay.replace(start, end, widget, block=block))

    def starts_line(self, line: Line, pos: int) -> bool:
        return not self.text[line.start : pos].strip()

    def block_lines(self, node: SyntaxNode) -> tuple[Line, Line]:
        last = block_end(self.lines, node.start, node.end)
        return self.lines.line_at(node.start), self.lines.line_at(last)

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------
    def frontmatter_pass(self) -> None:
        span = locate_frontmatter(self.lines)
        self.frontmatter = span
        if span is None:
            return
        if not self.selected(span.start, span.end):
            self.widget(span.start, span.end, FrontmatterWidget(span.property_count, span.metadata), block=True)
            return
        last = self.lines.line_at(span.end).number
        for number in range(1, last + 1):
            self.line(self.lines.line(number).start, "cm-frontmatter-line")

    def enter(self, node: SyntaxNode) -> bool:
        if self.frontmatter is not None and node.start < self.frontmatter.end:
            return False
        if node.kind in _LITERAL_KINDS:
            self.literal_spans.append((node.start, node.end))
        handler = _HANDLERS.get(node.kind)
        if handler is None:
            return True
        return handler(self, node) is Visit.CHILDREN

    def wiki_link_pass(self) -> None:
        replaced = [(item.start, item.end) for item in self.overlays if item.is_replacement]
        blocked = replaced + self.literal_spans
        fm_end = self.frontmatter.end if self.frontmatter is not None else 0
        for match in _WIKI_LINK.finditer(self.text):
            start, end = match.span()
            if start < fm_end:
                continue
            if any(other_start < end and other_end > start for other_start, other_end in blocked):
                continue
            target = match.group(1)
            selected = self.selected(start, end)
            attributes = {"data-wiki-target": target}
            if match.group(2):
                pipe = start + 2 + len(target)
                self.mark(pipe + 1, end - 2, "cm-wiki-link", attributes)
                if not selected:
                    self.hide(start, pipe + 1)
                    self.hide(end - 2, end)
            else:
                self.mark(start + 2, end - 2, "cm-wiki-link", attributes)
                if not selected:
                    self.hide(start, start + 2)
                    self.hide(end - 2, end)

    # ------------------------------------------------------------------
    # Node handlers
    # ------------------------------------------------------------------
    def table(self, node: SyntaxNode) -> Visit:
        if self.selected(node.start, node.end):
            return Visit.SKIP
        first, last = self.block_lines(node)
        if not self.starts_line(first, node.start):
            return Visit.SKIP
        model = parse_table_text(self.text[first.start : last.end], first.start, last.end)
        if model is not None:
            self.widget(first.start, last.end, TableWidget(model, self.context), block=True)
        return Visit.SKIP

    def image(self, node: SyntaxNode) -> Visit:
        if self.selected(node.start, node.end):
            return Visit.SKIP
        match = _IMAGE.match(node.text(self.text))
        if match is None:
            return Visit.SKIP
        line = self.lines.line_at(node.start)
        if self.starts_line(line, node.start) and not self.text[node.end : line.end].strip():
            self.widget(line.start, line.end, ImageWidget(match.group(2), match.group(1)), block=True)
        return Visit.SKIP

    def horizontal_rule(self, node: SyntaxNode) -> Visit:
        if not self.selected(node.start, node.end):
            line = self.lines.line_at(node.start)
            if self.starts_line(line, node.start):
                self.widget(line.start, line.end, HorizontalRuleWidget(), block=True)
        return Visit.SKIP

    def fenced_code(self, node: SyntaxNode) -> Visit:
        if self.selected(node.start, node.end):
            for line in iter_block_lines(self.lines, node.start, node.end):
                self.line(line.start, "cm-code-block")
            return Visit.SKIP
        first, last = self.block_lines(node)
        if last.number <= first.number or not _CLOSING_FENCE.match(last.text):
            return Visit.SKIP
        if not self.starts_line(first, node.start):
            return Visit.SKIP
        code_start = first.end + 1
        code_end = last.start - 1 if last.start > 0 else last.start
        code = self.text[code_start:code_end] if code_start <= code_end else ""
        self.widget(first.start, last.end, CodeBlockWidget(code, fence_language(first.text)), block=True)
        return Visit.SKIP

    def heading(self, node: SyntaxNode) -> Visit:
        line = self.lines.line_at(node.start)
        self.line(line.start, f"cm-heading-{node.kind.heading_level}")
        if not self.selected(node.start, node.end):
            match = _HEADING_PREFIX.match(line.text)
            if match:
                self.hide(line.start, line.start + len(match.group(0)))
        return Visit.CHILDREN

    def _delimited(self, node: SyntaxNode, width: int, classes: tuple[str, ...]) -> bool:
        start = node.start + width
        end = node.end - width
        if start >= end:
            return False
        for css_class in classes:
            self.mark(start, end, css_class)
        if not self.selected(node.start, node.end):
            self.hide(node.start, start)
            self.hide(end, node.end)
        return True

    def strong_emphasis(self, node: SyntaxNode) -> Visit:
        triple = self.text.startswith("***", node.start, min(node.start + 4, node.end))
        classes = ("cm-strong", "cm-emphasis") if triple else ("cm-strong",)
        if not self._delimited(node, 3 if triple else 2, classes) or triple:
            return Visit.SKIP
        return Visit.CHILDREN

    def emphasis(self, node: SyntaxNode) -> Visit:
        triple = self.text.startswith("***", node.start, min(node.start + 4, node.end))
        classes = ("cm-emphasis", "cm-strong") if triple else ("cm-emphasis",)
        if not self._delimited(node, 3 if triple else 1, classes) or triple:
            return Visit.SKIP
        return Visit.CHILDREN

    def strikethrough(self, node: SyntaxNode) -> Visit:
        self._delimited(node, 2, ("cm-strikethrough",))
        return Visit.SKIP

    def inline_code(self, node: SyntaxNode) -> Visit:
        source = node.text(self.text)
        opening = _LEADING_BACKTICKS.match(source)
        closing = _TRAILING_BACKTICKS.search(source)
        start = node.start + (len(opening.group(0)) if opening else 1)
        end = node.end - (len(closing.group(0)) if closing else 1)
        if start >= end:
            return Visit.SKIP
        self.mark(start, end, "cm-inline-code")
        if not self.selected(node.start, node.end):
            self.hide(node.start, start)
            self.hide(end, node.end)
        return Visit.SKIP

    def link(self, node: SyntaxNode) -> Visit:
        source = node.text(self.text)
        bracket_close = source.find("](")
        if bracket_close > 0:
            url = source[bracket_close + 2 : -1]
            self.mark(node.start + 1, node.start + bracket_close, "cm-link", {"data-url": url})
            if not self.selected(node.start, node.end):
                self.hide(node.start, node.start + 1)
                self.hide(node.start + bracket_close, node.end)
        return Visit.CHILDREN

    def task_marker(self, node: SyntaxNode) -> Visit:
        if not self.selected(node.start, node.end):
            checked = "x" in node.text(self.text).lower()
            self.widget(node.start, node.end, CheckboxWidget(checked, node.start))
        return Visit.SKIP

    def list_mark(self, node: SyntaxNode) -> Visit:
        if self.selected(node.start, node.end):
            return Visit.SKIP
        marker = node.text(self.text).strip()
        if marker in ("-", "*", "+"):
            item = node.parent
            if item is not None and item.attrs.get("task"):
                self.hide(node.start, node.start + 1)
            else:
                self.widget(node.start, node.start + 1, BulletWidget(list_depth(node)))
        elif _ORDERED_MARK.match(marker):
            label = ordered_label(node)
            if label:
                self.widget(node.start, node.end, OrderedNumberWidget(f"{label}."))
        return Visit.SKIP

    def escape(self, node: SyntaxNode) -> Visit:
        if not self.selected(node.start, node.end):
            self.hide(node.start, node.start + 1)
        return Visit.SKIP

    def blockquote(self, node: SyntaxNode) -> Visit:
        selected = self.selected(node.start, node.end)
        depth = sum(1 for ancestor in node.ancestors() if ancestor.kind is NodeKind.BLOCKQUOTE)
        for line in iter_block_lines(self.lines, node.start, node.end):
            if depth == 0:
                self.line(line.start, "cm-blockquote")
            if not selected:
                if line.start <= node.start <= line.end:
                    span = self._quote_marker(line, 0, start=node.start)
                else:
                    span = self._quote_marker(line, depth)
                if span is not None:
                    self.hide(*span)
        return Visit.CHILDREN

    def _quote_marker(self, line: Line, depth: int, *, start: int | None = None) -> tuple[int, int] | None:
        """Locate the ``>`` (plus one space) for nesting level ``depth`` on ``line``.

        ``start`` begins the scan mid-line, e.g. after a list marker on the
        quote's first line.
        """

        text = self.text
        pos = line.start if start is None else start
        span: tuple[int, int] | None = None
        for _ in range(depth + 1):
            indent = 0
            while pos < line.end and text[pos] == " " and indent < 3:
                pos += 1
                indent += 1
            if pos >= line.end or text[pos] != ">":
                return None
            marker = pos
            pos += 1
            if pos < line.end and text[pos] in " \t":
                pos += 1
            span = (marker, pos)
        return span

    def raw(self, node: SyntaxNode) -> Visit:
        return Visit.SKIP


Handler = Callable[[_DecorationPass, SyntaxNode], Visit]

_HANDLERS: Dict[NodeKind, Handler] = {
    NodeKind.TABLE: _DecorationPass.table,
    NodeKind.IMAGE: _DecorationPass.image,
    NodeKind.HORIZONTAL_RULE: _DecorationPass.horizontal_rule,
    NodeKind.FENCED_CODE: _DecorationPass.fenced_code,
    NodeKind.STRONG_EMPHASIS: _DecorationPass.strong_emphasis,
    NodeKind.EMPHASIS: _DecorationPass.emphasis,
    NodeKind.STRIKETHROUGH: _DecorationPass.strikethrough,
    NodeKind.INLINE_CODE: _DecorationPass.inline_code,
    NodeKind.LINK: _DecorationPass.link,
    NodeKind.TASK_MARKER: _DecorationPass.task_marker,
    NodeKind.LIST_MARK: _DecorationPass.list_mark,
    NodeKind.ESCAPE: _DecorationPass.escape,
    NodeKind.BLOCKQUOTE: _DecorationPass.blockquote,
    NodeKind.HTML_BLOCK: _DecorationPass.raw,
    NodeKind.HTML_TAG: _DecorationPass.raw,
}
_HANDLERS.update({NodeKind.atx_heading(level): _DecorationPass.heading for level in range(1, 7)})


def build_decorations(
    text: str,
    tree: SyntaxTree,
    selection: Iterable[Any],
    *,
    context: DecorationContext | None = None,
) -> OverlaySet:
    """Return every overlay for ``text`` given its ``tree`` and the current ``selection``."""

    build = _DecorationPass(text, selection, context or DecorationContext())
    build.frontmatter_pass()
    tree.iterate(build.enter)
    build.wiki_link_pass()
    overlays = OverlaySet(build.overlays)
    LOGGER.debug("Built %d overlays for %d characters", len(overlays), len(text))
    return overlays


__all__ = ["DecorationContext", "Visit", "build_decorations"]
