"""Markdown syntax tree adapter, frontmatter and document statistics helpers.

``markdown-it-py`` is the parser; this module only translates its token
stream into :class:`~livemark.editor.syntax.tree.SyntaxTree` nodes with
absolute document offsets. Block tokens carry line maps, inline tokens do not,
so inline offsets are recovered by walking the source alongside the tokens.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Sequence

from markdown_it import MarkdownIt
from markdown_it.token import Token
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..blocks import Line, LineIndex
from .tree import NodeKind, SyntaxNode, SyntaxTree

LOGGER = logging.getLogger(__name__)

_TASK_PATTERN = re.compile(r"\[[ xX]\](?=[ \t\n]|\Z)")
_FENCE_LANGUAGE = re.compile(r"^\s*(?:`{3,}|~{3,})[ \t]*([^\s`]+)?")
_WC_FRONTMATTER = re.compile(r"^---[\s\S]*?---", re.MULTILINE)
_WC_FENCE = re.compile(r"```[\s\S]*?```")
_WC_IMAGE = re.compile(r"!\[.*?\]\(.*?\)")
_WC_LINK = re.compile(r"\[([^\]]*)\]\([^)]*\)")
_WC_SYNTAX = re.compile(r"[#*_~`>|]")
_WORDS_PER_MINUTE = 200

_CONTAINERS: Dict[str, NodeKind] = {
    "paragraph_open": NodeKind.PARAGRAPH,
    "blockquote_open": NodeKind.BLOCKQUOTE,
    "bullet_list_open": NodeKind.BULLET_LIST,
    "ordered_list_open": NodeKind.ORDERED_LIST,
    "list_item_open": NodeKind.LIST_ITEM,
}
_LEAVES: Dict[str, NodeKind] = {
    "fence": NodeKind.FENCED_CODE,
    "code_block": NodeKind.CODE_BLOCK,
    "hr": NodeKind.HORIZONTAL_RULE,
    "html_block": NodeKind.HTML_BLOCK,
}
# Block tokens whose span runs past their last line terminator.
_TERMINATED = frozenset({"table_open", "fence", "blockquote_open"})
_INLINE_PAIRS: Dict[str, NodeKind] = {
    "em": NodeKind.EMPHASIS,
    "strong": NodeKind.STRONG_EMPHASIS,
    "s": NodeKind.STRIKETHROUGH,
}


@dataclass(slots=True, frozen=True)
class FrontmatterSpan:
    """Location of a leading ``---`` … ``---`` block."""

    start: int
    end: int
    property_count: int
    body: str
    metadata: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------
_PARSER: Optional[MarkdownIt] = None


def _build_parser() -> MarkdownIt:
    global _PARSER
    if _PARSER is None:
        parser = MarkdownIt("commonmark", {"html": True})
        parser.enable(["table", "strikethrough"])
        # Joined text tokens lose the escape markup needed to recover offsets.
        parser.disable("text_join")
        _PARSER = parser
    return _PARSER


def parse_markdown(text: str) -> SyntaxTree:
    """Parse ``text`` with markdown-it-py and return an offset-based tree."""

    tokens = _build_parser().parse(text)
    return _TreeBuilder(text).build(tokens)


class _TreeBuilder:
    def __init__(self, text: str) -> None:
        self._text = text
        self._lines = LineIndex(text)
        self._root = SyntaxNode(NodeKind.DOCUMENT, 0, len(text))
        self._stack: list[tuple[SyntaxNode, str]] = [(self._root, "")]
        self._skip_until: str | None = None

    # ------------------------------------------------------------------
    # Block level
    # ------------------------------------------------------------------
    def build(self, tokens: Sequence[Token]) -> SyntaxTree:
        for token in tokens:
            if self._skip_until is not None:
                if token.type == self._skip_until:
                    self._skip_until = None
                continue
            self._block_token(token)
        return SyntaxTree(self._root)

    def _block_token(self, token: Token) -> None:
        kind = token.type
        if kind == "heading_open":
            self._open_heading(token)
        elif kind == "list_item_open":
            self._open_list_item(token)
        elif kind in _CONTAINERS:
            first, end = self._line_span(token)
            start = self._block_start(first)
            if kind == "blockquote_open":
                marker = self._text.find(">", start, first.end)
                start = marker if marker >= 0 else start
                content = start + 1
                if content < first.end and self._text[content] == " ":
                    content += 1
            else:
                content = start
            node = SyntaxNode(_CONTAINERS[kind], start, end, attrs={"content_start": content})
            self._push(node, kind.replace("_open", "_close"))
        elif kind.endswith("_close") and token.nesting == -1:
            if len(self._stack) > 1 and self._stack[-1][1] == kind:
                self._stack.pop()
        elif kind == "table_open":
            first, end = self._line_span(token)
            self._parent.add(SyntaxNode(NodeKind.TABLE, self._block_start(first), end))
            self._skip_until = "table_close"
        elif kind in _LEAVES:
            first, end = self._line_span(token)
            node = SyntaxNode(_LEAVES[kind], self._block_start(first), end)
            if kind == "fence":
                node.attrs["markup"] = token.markup
                node.attrs["language"] = (token.info or "").strip().split(" ")[0]
            self._parent.add(node)
        elif kind == "inline":
            parent = self._parent
            cursor = int(parent.attrs.get("content_start", parent.start))
            self._inline(token.children or (), parent, cursor, parent.end)

    @property
    def _parent(self) -> SyntaxNode:
        return self._stack[-1][0]

    def _push(self, node: SyntaxNode, close_type: str) -> None:
        self._parent.add(node)
        self._stack.append((node, close_type))

    def _line_span(self, token: Token) -> tuple[Line, int]:
        first_line, end_line = token.map or (0, 0)
        first = self._lines.line(first_line + 1)
        if token.type in _TERMINATED and end_line < self._lines.line_count:
            end = self._lines.line(end_line + 1).start
        else:
            last = self._lines.line(max(first.number, min(end_line, self._lines.line_count)))
            end = last.end
        return first, max(end, first.start)

    def _block_start(self, first: Line) -> int:
        floor = int(self._parent.attrs.get("content_start", -1))
        in_quote = any(node.kind is NodeKind.BLOCKQUOTE for node, _ in self._stack)
        if first.start <= floor <= first.end:
            pos = floor
            skip = " \t"
        else:
            pos = first.start
            skip = " \t>" if in_quote else " \t"
        while pos < first.end and self._text[pos] in skip:
            pos += 1
        return pos

    def _open_heading(self, token: Token) -> None:
        first, end = self._line_span(token)
        start = self._block_start(first)
        markup = token.markup or ""
        if markup.startswith("#"):
            kind = NodeKind.atx_heading(len(markup))
            content = start + len(markup) if self._text.startswith(markup, start) else start
        else:
            kind = NodeKind.SETEXT_HEADING_1 if markup.startswith("=") else NodeKind.SETEXT_HEADING_2
            content = start
        while content < first.end and self._text[content] in " \t":
            content += 1
        node = SyntaxNode(kind, start, end, attrs={"content_start": content, "level": int(token.tag[1:])})
        self._push(node, "heading_close")

    def _open_list_item(self, token: Token) -> None:
        first, end = self._line_span(token)
        start = self._block_start(first)
        ordered = token.markup in (".", ")")
        marker = f"{token.info}{token.markup}" if ordered else token.markup
        if not self._text.startswith(marker, start):
            found = self._text.find(marker, start, first.end)
            if found >= 0:
                start = found
            else:
                LOGGER.debug("List marker %r not found on line %d", marker, first.number)
        item = SyntaxNode(NodeKind.LIST_ITEM, start, end)
        self._push(item, "list_item_close")
        mark_end = start + len(marker)
        item.add(SyntaxNode(NodeKind.LIST_MARK, start, mark_end))
        content = mark_end
        while content < first.end and self._text[content] in " \t":
            content += 1
        task = _TASK_PATTERN.match(self._text, content)
        if task is not None and content > mark_end:
            item.add(SyntaxNode(NodeKind.TASK_MARKER, task.start(), task.end()))
            item.attrs["task"] = True
        item.attrs["content_start"] = content

    # ------------------------------------------------------------------
    # Inline level
    # ------------------------------------------------------------------
    def _inline(self, children: Iterable[Token], parent: SyntaxNode, cursor: int, limit: int) -> int:
        text = self._text
        stack = [parent]
        for token in children:
            kind = token.type
            if kind in ("text", "text_special"):
                needle = token.markup if kind == "text_special" else token.content
                if not needle:
                    continue
                pos = self._seek(needle, cursor, limit)
                if pos < 0:
                    LOGGER.debug("Inline text %r not found after offset %d", needle, cursor)
                    continue
                if kind == "text_special" and token.info == "escape":
                    stack[-1].add(SyntaxNode(NodeKind.ESCAPE, pos, pos + len(needle)))
                cursor = pos + len(needle)
            elif kind in ("softbreak", "hardbreak"):
                pos = text.find("\n", cursor, limit)
                if pos >= 0:
                    cursor = pos + 1
            elif kind == "code_inline":
                start = self._seek(token.markup, cursor, limit)
                if start < 0:
                    continue
                end = self._closing_backticks(start + len(token.markup), len(token.markup), limit)
                stack[-1].add(SyntaxNode(NodeKind.INLINE_CODE, start, end))
                cursor = end
            elif kind.endswith("_open") and kind[:-5] in _INLINE_PAIRS:
                start = self._seek(token.markup, cursor, limit)
                start = cursor if start < 0 else start
                node = stack[-1].add(SyntaxNode(_INLINE_PAIRS[kind[:-5]], start, start))
                stack.append(node)
                cursor = start + len(token.markup)
            elif kind.endswith("_close") and kind[:-6] in _INLINE_PAIRS:
                end = self._seek(token.markup, cursor, limit)
                end = cursor if end < 0 else end
                if len(stack) > 1:
                    node = stack.pop()
                    node.end = end + len(token.markup)
                cursor = end + len(token.markup)
            elif kind == "link_open":
                autolink = token.markup in ("autolink", "linkify")
                start = self._seek("<" if autolink else "[", cursor, limit)
                start = cursor if start < 0 else start
                node = SyntaxNode(
                    NodeKind.AUTOLINK if autolink else NodeKind.LINK,
                    start,
                    start,
                    attrs={"href": token.attrGet("href") or ""},
                )
                stack.append(stack[-1].add(node))
                cursor = start + 1
            elif kind == "link_close":
                if len(stack) > 1:
                    node = stack.pop()
                    if node.kind is NodeKind.AUTOLINK:
                        close = text.find(">", cursor, limit)
                        node.end = close + 1 if close >= 0 else cursor
                    else:
                        node.end = self._link_tail(cursor, limit)
                    cursor = node.end
            elif kind == "image":
                start = self._seek("![", cursor, limit)
                if start < 0:
                    continue
                node = stack[-1].add(
                    SyntaxNode(
                        NodeKind.IMAGE,
                        start,
                        start,
                        attrs={"src": token.attrGet("src") or "", "alt": token.content},
                    )
                )
                inner = self._inline(token.children or (), node, start + 2, limit)
                node.end = self._link_tail(inner, limit)
                cursor = node.end
            elif kind == "html_inline":
                start = self._seek(token.content, cursor, limit)
                if start >= 0:
                    stack[-1].add(SyntaxNode(NodeKind.HTML_TAG, start, start + len(token.content)))
                    cursor = start + len(token.content)
        return cursor

    def _seek(self, needle: str, cursor: int, limit: int) -> int:
        text = self._text
        pos = cursor
        while pos < limit and text[pos] in " \t>":
            pos += 1
        if text.startswith(needle, pos):
            return pos
        return text.find(needle, cursor, limit)

    def _closing_backticks(self, pos: int, width: int, limit: int) -> int:
        text = self._text
        fence = "`" * width
        while pos < limit:
            found = text.find(fence, pos, limit)
            if found < 0:
                break
            run_end = found
            while run_end < limit and text[run_end] == "`":
                run_end += 1
            if run_end - found == width:
                return run_end
            pos = run_end
        return limit

    def _link_tail(self, cursor: int, limit: int) -> int:
        text = self._text
        close = text.find("]", cursor, limit)
        if close < 0:
            return cursor
        pos = close + 1
        if pos < limit and text[pos] == "(":
            depth = 0
            index = pos
            while index < limit:
                char = text[index]
                if char == "\\":
                    index += 2
                    continue
                if char == "(":
                    depth += 1
                elif char == ")":
                    depth -= 1
                    if depth == 0:
                        return index + 1
                index += 1
            return pos
        if pos < limit and text[pos] == "[":
            end = text.find("]", pos, limit)
            return end + 1 if end >= 0 else pos
        return pos


def fence_language(line_text: str) -> str:
    match = _FENCE_LANGUAGE.match(line_text)
    if match is None:
        return ""
    return match.group(1) or ""


# ---------------------------------------------------------------------------
# Frontmatter helpers
# ---------------------------------------------------------------------------
def locate_frontmatter(lines: LineIndex) -> FrontmatterSpan | None:
    """Return the leading ``---`` fenced block, if the document has one."""

    if lines.line_count < 2:
        return None
    first = lines.line(1)
    if first.text.strip() != "---":
        return None
    for number in range(2, lines.line_count + 1):
        closing = lines.line(number)
        if closing.text.strip() != "---":
            continue
        interior = [lines.line(index).text for index in range(2, number)]
        count = sum(1 for value in interior if value.strip() and ":" in value)
        body = "\n".join(interior)
        return FrontmatterSpan(
            start=first.start,
            end=closing.end,
            property_count=count,
            body=body,
            metadata=_parse_frontmatter_block(body),
        )
    return None


def detect_frontmatter(text: str) -> Dict[str, Any]:
    """Return parsed YAML frontmatter from ``text`` if present."""

    span = locate_frontmatter(LineIndex(text or ""))
    return dict(span.metadata) if span is not None else {}


def _parse_frontmatter_block(block: Optional[str]) -> Dict[str, Any]:
    if not block or not block.strip():
        return {}
    parser = YAML(typ="safe")
    parser.allow_duplicate_keys = False
    try:
        loaded = parser.load(block) or {}
    except YAMLError as exc:
        LOGGER.debug("Frontmatter is not valid YAML: %s", exc)
        return {}
    if isinstance(loaded, dict):
        return dict(loaded)
    return {}


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------
def count_words(text: str) -> int:
    """Count prose words, ignoring frontmatter, code fences and markup glyphs."""

    cleaned = _WC_FRONTMATTER.sub("", text, count=1)
    cleaned = _WC_FENCE.sub("", cleaned)
    cleaned = _WC_IMAGE.sub("", cleaned)
    cleaned = _WC_LINK.sub(r"\1", cleaned)
    cleaned = _WC_SYNTAX.sub("", cleaned).strip()
    if not cleaned:
        return 0
    return len([word for word in cleaned.split() if word])


def document_stats(text: str) -> Dict[str, Any]:
    words = count_words(text)
    minutes = max(1, math.ceil(words / _WORDS_PER_MINUTE))
    return {
        "word_count": words,
        "char_count": len(text),
        "line_count": 0 if not text else text.count("\n") + 1,
        "reading_time_minutes": minutes,
        "label": f"{words:,} words · {minutes} min read",
    }


__all__ = [
    "FrontmatterSpan",
    "count_words",
    "detect_frontmatter",
    "document_stats",
    "fence_language",
    "locate_frontmatter",
    "parse_markdown",
]
