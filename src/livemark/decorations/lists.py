"""Nesting depth and hierarchical numbering for list markers."""

from __future__ import annotations

from typing import Optional

from ..editor.syntax.tree import LIST_KINDS, NodeKind, SyntaxNode


def list_depth(node: SyntaxNode) -> int:
    """Number of enclosing lists minus one, floored at zero."""

    depth = sum(1 for ancestor in node.ancestors() if ancestor.kind in LIST_KINDS)
    return max(0, depth - 1)


def _enclosing_item(node: SyntaxNode) -> Optional[SyntaxNode]:
    if node.kind is NodeKind.LIST_ITEM:
        return node
    for ancestor in node.ancestors():
        if ancestor.kind is NodeKind.LIST_ITEM:
            return ancestor
    return None


def ordered_label(node: SyntaxNode) -> str:
    """Return a label such as ``2.1`` for the list item containing ``node``.

    Each level is the 1-based position of the item among its list's items.
    The walk stops at the first enclosing bullet list.
    """

    item = _enclosing_item(node)
    segments: list[int] = []
    while item is not None:
        parent = item.parent
        if parent is None or parent.kind is not NodeKind.ORDERED_LIST:
            break
        position = 0
        for sibling in parent.children:
            if sibling.kind is NodeKind.LIST_ITEM:
                position += 1
                if sibling is item:
                    break
        segments.insert(0, position)
        grandparent = parent.parent
        item = grandparent if grandparent is not None and grandparent.kind is NodeKind.LIST_ITEM else None
    return ".".join(str(value) for value in segments)


__all__ = ["list_depth", "ordered_label"]
