"""Syntax tree model and the markdown-it-py adapter that builds it."""

from .markdown import detect_frontmatter, document_stats, parse_markdown
from .tree import NodeKind, SyntaxNode, SyntaxTree

__all__ = [
    "NodeKind",
    "SyntaxNode",
    "SyntaxTree",
    "detect_frontmatter",
    "document_stats",
    "parse_markdown",
]
