"""Live document region that tracks its bounds through one anchor."""

from __future__ import annotations

from typing import Any, Dict, List

from ..core.errors import EmptyAppendError
from ..core.positions import AnchorPosition
from ..editor.document_model import Document
from .anchor_store import AnchorHandle, AnchorStore

__all__ = ["Segment", "end_delta"]


def end_delta(lines: List[str], origin_row: int, origin_col: int) -> tuple[int, int]:
    """Return the end position after writing ``lines`` at ``(origin_row, origin_col)``."""

    rows_added = len(lines) - 1
    last_line_length = len(lines[-1])
    if rows_added > 0:
        return origin_row + rows_added, last_line_length
    return origin_row, origin_col + last_line_length


class Segment:
    """A region of a document that streamed text is written into.

    Positions are always read back through the anchor because edits
    elsewhere in the document move them. ``data`` is a free-form bag for
    callers (the orchestrator keeps the cancel callback and replaced text
    there).
    """

    def __init__(
        self,
        store: AnchorStore,
        row: int,
        col: int,
        *,
        highlight: str | None = None,
    ) -> None:
        self._store = store
        self._tag = highlight
        self._handle: AnchorHandle | None = store.open(row, col, row, col, tag=highlight)
        self.data: Dict[str, Any] = {}

    @property
    def document(self) -> Document:
        return self._store.document

    @property
    def closed(self) -> bool:
        return self._handle is None

    @property
    def highlight_tag(self) -> str | None:
        return self._store.get_tag(self._handle)

    @property
    def position(self) -> AnchorPosition:
        return self._store.get_position(self._handle)

    @property
    def text(self) -> str:
        """Return the text currently between the segment's start and end."""

        pos = self.position
        return "\n".join(self.document.get_text(pos.row, pos.col, pos.end_row, pos.end_col))

    def append(self, text: str) -> None:
        """Insert ``text`` at the segment's end and extend the end past it."""

        if not text:
            raise EmptyAppendError()
        lines = text.split("\n")
        pos = self.position
        row, col = pos.end_row, pos.end_col
        self.document.set_text(row, col, row, col, lines)
        new_end_row, new_end_col = end_delta(lines, row, col)
        self._store.update(
            self._handle,  # type: ignore[arg-type]
            AnchorPosition(pos.row, pos.col, new_end_row, new_end_col),
            tag=self._tag,
        )

    def set_text(self, text: str) -> None:
        """Replace everything inside the segment with ``text`` in one write."""

        lines = text.split("\n")
        pos = self.position
        self.document.set_text(pos.row, pos.col, pos.end_row, pos.end_col, lines)
        new_end_row, new_end_col = end_delta(lines, pos.row, pos.col)
        self._store.update(
            self._handle,  # type: ignore[arg-type]
            AnchorPosition(pos.row, pos.col, new_end_row, new_end_col),
            tag=self._tag,
        )

    def delete(self) -> None:
        """Remove the segment's text from the document; the anchor stays open."""

        pos = self.position
        self.document.set_text(pos.row, pos.col, pos.end_row, pos.end_col, [])

    def highlight(self, tag: str) -> None:
        self._store.set_highlight(self._handle, tag)
        self._tag = tag

    def clear_highlight(self) -> None:
        """Drop the highlight by re-creating the anchor at the same bounds.

        Highlight attributes cannot always be removed from a live anchor on
        host primitives, so the anchor is closed and reopened untagged.
        """

        pos = self.position
        self._store.close(self._handle)
        self._tag = None
        self._handle = self._store.open(pos.row, pos.col, pos.end_row, pos.end_col)

    def close(self) -> None:
        """Release the anchor without touching the document text."""

        self._store.close(self._handle)
        self._handle = None

    def __repr__(self) -> str:
        if self._handle is None:
            return "Segment(closed)"
        return f"Segment(anchor={self._handle.anchor_id}, tag={self._tag!r})"
