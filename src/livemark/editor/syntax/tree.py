"""Syntax tree model consumed by the decoration builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, Optional


class NodeKind(str, Enum):
    """Closed set of syntax node kinds the editing core understands."""

    DOCUMENT = "Document"
    PARAGRAPH = "Paragraph"
    ATX_HEADING_1 = "ATXHeading1"
    ATX_HEADING_2 = "ATXHeading2"
    ATX_HEADING_3 = "ATXHeading3"
    ATX_HEADING_4 = "ATXHeading4"
    ATX_HEADING_5 = "ATXHeading5"
    ATX_HEADING_6 = "ATXHeading6"
    SETEXT_HEADING_1 = "SetextHeading1"
    SETEXT_HEADING_2 = "SetextHeading2"
    BLOCKQUOTE = "Blockquote"
    BULLET_LIST = "BulletList"
    ORDERED_LIST = "OrderedList"
    LIST_ITEM = "ListItem"
    LIST_MARK = "ListMark"
    TASK_MARKER = "TaskMarker"
    TABLE = "Table"
    FENCED_CODE = "FencedCode"
    CODE_BLOCK = "CodeBlock"
    HORIZONTAL_RULE = "HorizontalRule"
    HTML_BLOCK = "HTMLBlock"
    HTML_TAG = "HTMLTag"
    EMPHASIS = "Emphasis"
    STRONG_EMPHASIS = "StrongEmphasis"
    STRIKETHROUGH = "Strikethrough"
    INLINE_CODE = "InlineCode"
    LINK = "Link"
    AUTOLINK = "Autolink"
    IMAGE = "Image"
    ESCAPE = "Escape"

    @classmethod
    def atx_heading(cls, level: int) -> NodeKind:
        return cls(f"ATXHeading{max(1, min(6, level))}")

    @property
    def heading_level(self) -> int | None:
        if self.value.startswith("ATXHeading"):
            return int(self.value[-1])
        return None


LIST_KINDS = frozenset({NodeKind.BULLET_LIST, NodeKind.ORDERED_LIST})


@dataclass(slots=True, eq=False)
class SyntaxNode:
    """A labeled span ``[start, end)`` over the document.

    Block nodes may report an ``end`` that includes their trailing line
    terminator; see :func:`livemark.editor.blocks.block_end`.
    """

    kind: NodeKind
    start: int
    end: int
    children: list[SyntaxNode] = field(default_factory=list)
    parent: Optional[SyntaxNode] = field(default=None, repr=False)
    attrs: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.kind.value

    def add(self, child: SyntaxNode) -> SyntaxNode:
        child.parent = self
        self.children.append(child)
        return child

    def text(self, document: str) -> str:
        return document[self.start : self.end]

    def ancestors(self) -> Iterator[SyntaxNode]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def walk(self) -> Iterator[SyntaxNode]:
        yield self
        for child in self.children:
            yield from child.walk()


EnterCallback = Callable[[SyntaxNode], Optional[bool]]


class SyntaxTree:
    """Root wrapper offering preorder iteration and position lookups."""

    __slots__ = ("root",)

    def __init__(self, root: SyntaxNode) -> None:
        self.root = root

    @classmethod
    def build(cls, length: int, children: list[SyntaxNode] | None = None) -> SyntaxTree:
        """Return a tree whose document root spans ``length`` characters."""

        root = SyntaxNode(NodeKind.DOCUMENT, 0, length)
        for child in children or ():
            root.add(child)
        return cls(root)

    def iterate(self, enter: EnterCallback) -> None:
        """Visit nodes in document order; ``enter`` returning ``False`` skips children."""

        stack: list[SyntaxNode] = list(reversed(self.root.children))
        while stack:
            node = stack.pop()
            if enter(node) is False:
                continue
            stack.extend(reversed(node.children))

    def nodes(self) -> Iterator[SyntaxNode]:
        for child in self.root.children:
            yield from child.walk()

    def resolve_inner(self, pos: int) -> SyntaxNode:
        """Return the innermost node whose span contains ``pos``."""

        node = self.root
        while True:
            for child in node.children:
                if child.start <= pos < child.end:
                    node = child
                    break
            else:
                return node

    def find(self, kind: NodeKind) -> list[SyntaxNode]:
        return [node for node in self.nodes() if node.kind is kind]


__all__ = ["LIST_KINDS", "NodeKind", "SyntaxNode", "SyntaxTree"]
