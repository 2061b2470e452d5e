"""Tests for the markdown-it-py syntax tree adapter and document helpers."""

from __future__ import annotations

from livemark.editor.blocks import LineIndex
from livemark.editor.syntax.markdown import (
    count_words,
    detect_frontmatter,
    document_stats,
    fence_language,
    locate_frontmatter,
    parse_markdown,
)
from livemark.editor.syntax.tree import NodeKind, SyntaxNode, SyntaxTree


def _texts(text: str, kind: NodeKind) -> list[str]:
    return [node.text(text) for node in parse_markdown(text).find(kind)]


def test_headings_carry_level_and_content_offset() -> None:
    text = "# Title\n\n### Deep\n\nPlain\n=====\n"
    tree = parse_markdown(text)

    first = tree.find(NodeKind.ATX_HEADING_1)[0]
    assert first.start == 0
    assert first.attrs["content_start"] == 2
    assert first.attrs["level"] == 1
    assert first.kind.heading_level == 1
    assert _texts(text, NodeKind.ATX_HEADING_3) == ["### Deep"]
    assert tree.find(NodeKind.SETEXT_HEADING_1)


def test_inline_emphasis_offsets_match_source() -> None:
    text = "Body **bold** and _soft_ and ~~gone~~ text"

    assert _texts(text, NodeKind.STRONG_EMPHASIS) == ["**bold**"]
    assert _texts(text, NodeKind.EMPHASIS) == ["_soft_"]
    assert _texts(text, NodeKind.STRIKETHROUGH) == ["~~gone~~"]


def test_links_code_escapes_and_autolinks() -> None:
    text = "See [site](https://x.io) and `code` plus \\* and <https://a.b>"
    tree = parse_markdown(text)

    link = tree.find(NodeKind.LINK)[0]
    assert link.text(text) == "[site](https://x.io)"
    assert link.attrs["href"] == "https://x.io"
    assert _texts(text, NodeKind.INLINE_CODE) == ["`code`"]
    assert _texts(text, NodeKind.ESCAPE) == ["\\*"]
    assert _texts(text, NodeKind.AUTOLINK) == ["<https://a.b>"]


def test_image_node_keeps_source_and_alt() -> None:
    text = "![diagram](img/d.png)"
    image = parse_markdown(text).find(NodeKind.IMAGE)[0]

    assert image.text(text) == text
    assert image.attrs == {"src": "img/d.png", "alt": "diagram"}


def test_task_list_items_expose_markers() -> None:
    text = "- [ ] todo\n- [x] done\n- plain\n"
    tree = parse_markdown(text)

    items = tree.find(NodeKind.LIST_ITEM)
    assert len(items) == 3
    assert _texts(text, NodeKind.LIST_MARK) == ["-", "-", "-"]
    assert _texts(text, NodeKind.TASK_MARKER) == ["[ ]", "[x]"]
    assert items[0].attrs["task"] is True
    assert "task" not in items[2].attrs
    assert items[1].start == text.index("- [x]")


def test_ordered_list_marks_include_number() -> None:
    text = "1. first\n2. second\n"

    assert _texts(text, NodeKind.LIST_MARK) == ["1.", "2."]
    assert parse_markdown(text).find(NodeKind.ORDERED_LIST)


def test_fenced_code_records_language() -> None:
    text = "```python\nprint(1)\n```\n"
    fence = parse_markdown(text).find(NodeKind.FENCED_CODE)[0]

    assert fence.start == 0
    assert fence.attrs["language"] == "python"
    assert fence_language("~~~ rust") == "rust"
    assert fence_language("``` python") == "python"
    assert fence_language("```js title=\"a.js\"") == "js"
    assert fence_language("```") == ""


def test_blockquote_and_table_blocks() -> None:
    text = "> quoted line\n> more\n\n| a | b |\n| --- | --- |\n| 1 | 2 |\n"
    tree = parse_markdown(text)

    quote = tree.find(NodeKind.BLOCKQUOTE)[0]
    assert quote.start == 0
    assert quote.attrs["content_start"] == 2
    table = tree.find(NodeKind.TABLE)[0]
    assert table.start == text.index("| a |")
    assert not table.children


def test_resolve_inner_and_iterate_skip() -> None:
    text = "Some **bold** words"
    tree = parse_markdown(text)

    assert tree.resolve_inner(text.index("bold")).kind is NodeKind.STRONG_EMPHASIS

    seen: list[NodeKind] = []

    def enter(node: SyntaxNode) -> bool:
        seen.append(node.kind)
        return node.kind is not NodeKind.PARAGRAPH

    tree.iterate(enter)
    assert seen == [NodeKind.PARAGRAPH]


def test_syntax_tree_build_wraps_children() -> None:
    child = SyntaxNode(NodeKind.PARAGRAPH, 0, 3)
    tree = SyntaxTree.build(3, [child])

    assert child.parent is tree.root
    assert list(tree.nodes()) == [child]


def test_frontmatter_metadata_is_parsed_with_yaml() -> None:
    text = "---\ntitle: Hello\ntags: [a, b]\n---\n# Body"

    span = locate_frontmatter(LineIndex(text))
    assert span is not None
    assert span.start == 0
    assert span.end == text.index("\n# Body")
    assert span.property_count == 2
    assert detect_frontmatter(text) == {"title": "Hello", "tags": ["a", "b"]}


def test_invalid_frontmatter_yields_empty_metadata() -> None:
    text = "---\ntitle: [unclosed\n---\n"

    span = locate_frontmatter(LineIndex(text))
    assert span is not None
    assert span.property_count == 1
    assert span.metadata == {}
    assert detect_frontmatter("no frontmatter here") == {}


def test_document_stats_ignore_code_and_markup() -> None:
    text = "# Title\n\nSome **bold** words here.\n\n```\ncode block words\n```"

    stats = document_stats(text)

    assert stats["word_count"] == 5
    assert stats["line_count"] == 7
    assert stats["reading_time_minutes"] == 1
    assert stats["label"] == "5 words · 1 min read"


def test_reading_time_rounds_up() -> None:
    assert count_words("[a link](https://example.com) stays") == 3
    stats = document_stats("word " * 1000)
    assert stats["reading_time_minutes"] == 5
    assert stats["label"] == "1,000 words · 5 min read"
