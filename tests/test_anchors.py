"""Tests for the per-document anchor arena and namespace registry."""

from __future__ import annotations

import pytest

from quillstream.core.positions import Position
from quillstream.editor.anchors import AnchorTable, NamespaceRegistry, get_namespace_registry

NS = 7


def _bounds(table: AnchorTable, anchor_id: int) -> tuple[tuple[int, int], tuple[int, int]]:
    details = table.get(NS, anchor_id)
    assert details is not None
    return (details.row, details.col), (details.end_row, details.end_col)


def test_insert_before_anchor_shifts_both_ends() -> None:
    table = AnchorTable()
    anchor = table.set(NS, Position(0, 2), Position(0, 5))

    table.splice(Position(0, 0), Position(0, 0), Position(0, 3))

    assert _bounds(table, anchor) == ((0, 5), (0, 8))


def test_insert_at_start_lands_outside_the_range() -> None:
    table = AnchorTable()
    anchor = table.set(NS, Position(0, 2), Position(0, 5))

    table.splice(Position(0, 2), Position(0, 2), Position(0, 4))

    assert _bounds(table, anchor) == ((0, 4), (0, 7))


def test_insert_at_end_lands_outside_the_range() -> None:
    table = AnchorTable()
    anchor = table.set(NS, Position(0, 2), Position(0, 5))

    table.splice(Position(0, 5), Position(0, 5), Position(0, 6))

    assert _bounds(table, anchor) == ((0, 2), (0, 5))


def test_newlines_inserted_above_move_rows() -> None:
    table = AnchorTable()
    anchor = table.set(NS, Position(2, 1), Position(3, 0))

    table.splice(Position(0, 0), Position(0, 0), Position(2, 0))

    assert _bounds(table, anchor) == ((4, 1), (5, 0))


def test_deleting_lines_above_pulls_anchor_up() -> None:
    table = AnchorTable()
    anchor = table.set(NS, Position(3, 0), Position(3, 2))

    table.splice(Position(1, 0), Position(3, 0), Position(1, 0))

    assert _bounds(table, anchor) == ((1, 0), (1, 2))


def test_deleting_covering_range_collapses_anchor() -> None:
    table = AnchorTable()
    anchor = table.set(NS, Position(0, 2), Position(0, 5))

    table.splice(Position(0, 0), Position(0, 10), Position(0, 0))

    assert _bounds(table, anchor) == ((0, 0), (0, 0))


def test_zero_width_anchor_never_inverts() -> None:
    table = AnchorTable()
    anchor = table.set(NS, Position(0, 3), Position(0, 3))

    table.splice(Position(0, 3), Position(0, 3), Position(0, 5))

    assert _bounds(table, anchor) == ((0, 5), (0, 5))


def test_set_with_existing_id_moves_in_place() -> None:
    table = AnchorTable()
    anchor = table.set(NS, Position(0, 0), Position(0, 0), tag="Comment")

    same = table.set(NS, Position(1, 0), Position(1, 4), tag="Error", anchor_id=anchor)

    assert same == anchor
    assert len(table) == 1
    details = table.get(NS, anchor)
    assert details is not None and details.tag == "Error"
    assert _bounds(table, anchor) == ((1, 0), (1, 4))


def test_namespaces_are_isolated() -> None:
    table = AnchorTable()
    anchor = table.set(NS, Position(0, 0), Position(0, 1))

    assert table.get(NS + 1, anchor) is None
    assert table.delete(NS + 1, anchor) is False
    assert table.delete(NS, anchor) is True
    assert table.get(NS, anchor) is None


def test_list_is_sorted_by_start() -> None:
    table = AnchorTable()
    late = table.set(NS, Position(3, 0), Position(3, 0))
    early = table.set(NS, Position(1, 2), Position(1, 2))
    table.set(NS + 1, Position(0, 0), Position(0, 0))

    assert [details.anchor_id for details in table.list(NS)] == [early, late]


def test_clamp_pulls_anchors_inside_document() -> None:
    table = AnchorTable()
    anchor = table.set(NS, Position(1, 9), Position(4, 2))

    table.clamp([3, 5])

    assert _bounds(table, anchor) == ((1, 5), (1, 5))


def test_namespace_registry_is_stable() -> None:
    registry = NamespaceRegistry()

    first = registry.ensure("alpha")
    assert registry.ensure("alpha") == first
    assert registry.ensure("beta") != first
    assert registry.names() == {"alpha": first, "beta": first + 1}
    with pytest.raises(ValueError):
        registry.ensure("  ")


def test_process_wide_registry_is_shared() -> None:
    assert get_namespace_registry() is get_namespace_registry()
