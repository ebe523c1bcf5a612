"""Tests for the in-memory document model."""

from __future__ import annotations

import pytest

from quillstream.core.positions import COL_ENTIRE_LINE
from quillstream.editor.anchors import get_namespace_registry
from quillstream.editor.document_model import Document


@pytest.fixture
def ns() -> int:
    return get_namespace_registry().ensure("document-tests")


def test_get_lines_supports_negative_indices() -> None:
    document = Document("a\nb\nc")

    assert document.get_lines(0, -1) == ["a", "b", "c"]
    assert document.get_lines(-2, -1) == ["c"]
    assert document.get_lines(1, 2) == ["b"]
    with pytest.raises(IndexError):
        document.get_lines(0, 9)


def test_set_lines_appends_and_replaces() -> None:
    document = Document("a\nb\nc")

    document.set_lines(-1, -1, ["d"])
    assert document.text == "a\nb\nc\nd"

    document.set_lines(1, 3, ["B"])
    assert document.lines == ["a", "B", "d"]


def test_document_never_drops_below_one_line() -> None:
    document = Document("a\nb")

    document.set_lines(0, -1, [])

    assert document.lines == [""]
    assert document.line_count() == 1


def test_set_text_splices_across_lines() -> None:
    document = Document("ab\ncd")

    document.set_text(0, 1, 1, 0, ["X", "Y"])

    assert document.text == "aX\nYcd"


def test_set_text_rejects_reversed_range() -> None:
    document = Document("abc")

    with pytest.raises(ValueError):
        document.set_text(0, 2, 0, 1, ["x"])


def test_edits_bump_version_and_change_hash() -> None:
    document = Document("hello")
    before = document.content_hash
    assert not document.dirty

    document.set_text(0, 5, 0, 5, ["!"])
    document.set_lines(-1, -1, ["tail"])

    assert document.dirty
    assert document.version_id == 3
    assert document.text == "hello!\ntail"
    assert document.content_hash != before
    assert document.content_hash == Document("hello!\ntail").content_hash


def test_anchor_follows_inserted_text(ns: int) -> None:
    document = Document("hello world")
    anchor = document.create_anchor(ns, 0, 6, end_row=0, end_col=11)

    document.set_text(0, 0, 0, 0, ["Say: "])

    details = document.get_anchor(ns, anchor)
    assert details is not None
    assert document.get_text(details.row, details.col, details.end_row, details.end_col) == ["world"]


def test_anchor_follows_lines_inserted_above(ns: int) -> None:
    document = Document("a\nb")
    anchor = document.create_anchor(ns, 1, 0, end_row=1, end_col=1)

    document.set_lines(0, 0, ["first"])

    details = document.get_anchor(ns, anchor)
    assert details is not None
    assert (details.row, details.col, details.end_row, details.end_col) == (2, 0, 2, 1)


def test_anchor_outside_document_is_rejected(ns: int) -> None:
    document = Document("abc")

    with pytest.raises(IndexError):
        document.create_anchor(ns, 3, 0)


def test_linewise_selection_text() -> None:
    document = Document("one\ntwo\nthree")
    document.select((1, 0), (2, COL_ENTIRE_LINE))

    assert document.selection_text() == "two\nthree"


def test_cursor_is_clamped() -> None:
    document = Document("ab\nc")

    document.set_cursor(9, 9)

    assert document.cursor.to_tuple() == (1, 1)
