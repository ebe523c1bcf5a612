"""Tests for segment placement rules."""

from __future__ import annotations

from quillstream.core.positions import COL_ENTIRE_LINE, AnchorPosition, Position
from quillstream.editor.document_model import Document
from quillstream.segments.factory import create_segment_at, shift_if_complete_line, shift_to_bounds


def test_entire_line_sentinel_moves_to_next_row() -> None:
    assert shift_if_complete_line(Position(2, COL_ENTIRE_LINE)) == Position(3, 0)
    assert shift_if_complete_line(Position(2, 4)) == Position(2, 4)


def test_row_past_end_appends_a_line() -> None:
    document = Document("a\nb")

    target = shift_to_bounds(Position(5, 0), document)

    assert target == Position(2, 0)
    assert document.lines == ["a", "b", ""]


def test_column_past_end_clamps_to_row_length() -> None:
    document = Document("abc\nd")

    assert shift_to_bounds(Position(0, 10), document) == Position(0, 3)
    assert shift_to_bounds(Position(1, 0), document) == Position(1, 0)


def test_segment_after_linewise_selection_of_last_line() -> None:
    document = Document("a\nb")

    segment = create_segment_at(1, COL_ENTIRE_LINE, "Comment", document)

    assert segment.position == AnchorPosition(2, 0, 2, 0)
    assert segment.highlight_tag == "Comment"
    segment.append("c")
    assert document.text == "a\nb\nc"
