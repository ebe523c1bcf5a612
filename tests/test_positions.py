"""Tests for row/column position helpers."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from quillstream.core.positions import COL_ENTIRE_LINE, AnchorPosition, Position, Selection


def test_position_clamps_negative_indices_and_unpacks() -> None:
    pos = Position(-3, 2)

    assert pos == Position(0, 2)
    row, col = pos
    assert (row, col) == (0, 2)
    assert pos[1] == 2
    assert pos.to_dict() == {"row": 0, "col": 2}


@pytest.mark.parametrize(
    "value",
    [
        {"row": 1, "col": 4},
        (1, 4),
        [1, 4],
        SimpleNamespace(row=1, col=4),
    ],
)
def test_position_from_value_accepts_common_shapes(value) -> None:
    assert Position.from_value(value) == Position(1, 4)


def test_position_from_value_rejects_strings() -> None:
    with pytest.raises(TypeError):
        Position.from_value("ab")


def test_positions_order_row_major() -> None:
    assert Position(0, 9) < Position(1, 0)
    assert Position(2, 1) < Position(2, 3)


def test_selection_normalizes_reversed_bounds() -> None:
    selection = Selection((2, 0), (1, 5))

    assert selection.start == Position(1, 5)
    assert selection.stop == Position(2, 0)
    assert not selection.is_linewise


def test_selection_reports_linewise_sentinel() -> None:
    selection = Selection((0, 0), (1, COL_ENTIRE_LINE))

    assert selection.is_linewise


def test_anchor_position_helpers() -> None:
    pos = AnchorPosition(1, 2, 1, 2)

    assert pos.is_empty
    assert pos.start == Position(1, 2)
    assert AnchorPosition.from_bounds(Position(0, 1), Position(3, 4)).to_dict() == {
        "row": 0,
        "col": 1,
        "end_row": 3,
        "end_col": 4,
    }
