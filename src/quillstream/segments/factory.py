"""Create segments at positions that are safe to anchor on."""

from __future__ import annotations

import logging

from ..core.positions import COL_ENTIRE_LINE, Position
from ..editor.document_model import Document
from .anchor_store import AnchorStore
from .segment import Segment

__all__ = ["create_segment_at", "shift_if_complete_line", "shift_to_bounds"]

LOGGER = logging.getLogger(__name__)


def shift_if_complete_line(pos: Position) -> Position:
    """Move an end-of-whole-line marker to the start of the following line."""

    if pos.col == COL_ENTIRE_LINE:
        return Position(pos.row + 1, 0)
    return pos


def shift_to_bounds(pos: Position, document: Document) -> Position:
    """Clamp ``pos`` into ``document``, growing it by one line when past the end."""

    line_count = document.line_count()
    if pos.row >= line_count:
        document.set_lines(-1, -1, [""])
        LOGGER.debug("Segment row %s past end; appended line %s", pos.row, line_count)
        return Position(line_count, 0)

    row_length = document.line_length(pos.row)
    if pos.col > row_length:
        return Position(pos.row, row_length)
    return pos


def create_segment_at(
    row: int,
    col: int,
    highlight: str | None,
    document: Document,
    *,
    store: AnchorStore | None = None,
) -> Segment:
    """Open a segment at ``(row, col)`` after normalizing the position for ``document``."""

    target = shift_to_bounds(shift_if_complete_line(Position(row, col)), document)
    return Segment(store or AnchorStore(document), target.row, target.col, highlight=highlight)
