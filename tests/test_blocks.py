"""Tests for line lookups and block boundary correction."""

from __future__ import annotations

import pytest

from livemark.editor.blocks import LineIndex, block_end, iter_block_lines


def test_line_index_lookups() -> None:
    lines = LineIndex("alpha\nbeta\n\ngamma")

    assert lines.line_count == 4
    assert lines.line(2).text == "beta"
    assert lines.line_at(7).number == 2
    assert lines.line_at(6).start == 6
    assert lines.line_at(5).number == 1
    assert lines.line(3).start == lines.line(3).end == 11
    assert lines.is_line_start(12)
    with pytest.raises(IndexError):
        lines.line(5)


def test_block_end_steps_back_from_next_line_start() -> None:
    text = "| a | b |\n| - | - |\nafter"
    lines = LineIndex(text)
    reported_end = text.index("after")

    assert block_end(lines, 0, reported_end) == reported_end - 1
    assert lines.line_at(block_end(lines, 0, reported_end)).number == 2


def test_block_end_leaves_mid_line_ends_and_empty_blocks() -> None:
    lines = LineIndex("abc\ndef")

    assert block_end(lines, 0, 2) == 2
    assert block_end(lines, 4, 4) == 4
    assert block_end(lines, 0, 99) == 7


def test_iter_block_lines_stops_at_corrected_end() -> None:
    text = "> one\n> two\n\nnext"
    lines = LineIndex(text)

    numbers = [line.number for line in iter_block_lines(lines, 0, text.index("\n\n") + 1)]

    assert numbers == [1, 2]
