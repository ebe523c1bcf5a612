"""In-memory line buffer with cursor, selection and anchor bookkeeping."""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Sequence

from ..core.positions import COL_ENTIRE_LINE, Position, Selection
from .anchors import AnchorDetails, AnchorTable


def _utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""

    return datetime.now(timezone.utc)


@dataclass(slots=True)
class DocumentMetadata:
    """Metadata describing a loaded document."""

    path: Optional[Path] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


class Document:
    """Mutable ordered sequence of lines addressable by ``(row, col)``.

    Row/column indices are zero-based. Line-range arguments follow the
    end-exclusive convention and accept negative indices counted from the
    end, where ``-1`` means one past the last line.
    """

    def __init__(
        self,
        text: str = "",
        *,
        name: str = "",
        metadata: DocumentMetadata | None = None,
        document_id: str | None = None,
    ) -> None:
        self.name = name
        self.metadata = metadata or DocumentMetadata()
        self.document_id = document_id or uuid.uuid4().hex
        self.version_id = 1
        self.dirty = False
        self._lines: List[str] = text.split("\n")
        self._anchors = AnchorTable()
        self._cursor = Position(0, 0)
        self._selection: Selection | None = None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    @property
    def text(self) -> str:
        return "\n".join(self._lines)

    @property
    def lines(self) -> List[str]:
        return list(self._lines)

    @property
    def content_hash(self) -> str:
        """SHA-1 of the current text, computed on demand."""

        return hashlib.sha1(self.text.encode("utf-8")).hexdigest()

    def line_count(self) -> int:
        return len(self._lines)

    def line_length(self, row: int) -> int:
        return len(self._lines[row])

    def get_lines(self, start: int, end: int) -> List[str]:
        lo, hi = self._resolve_line_range(start, end)
        return self._lines[lo:hi]

    def get_text(self, row: int, col: int, end_row: int, end_col: int) -> List[str]:
        """Return the text between two positions as a list of lines."""

        start, stop = self._check_position(row, col), self._check_position(end_row, end_col)
        if start.row == stop.row:
            return [self._lines[start.row][start.col : stop.col]]
        chunk = [self._lines[start.row][start.col :]]
        chunk.extend(self._lines[start.row + 1 : stop.row])
        chunk.append(self._lines[stop.row][: stop.col])
        return chunk

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def set_lines(self, start: int, end: int, lines: Sequence[str]) -> None:
        """Replace lines ``start..end`` (end-exclusive) with ``lines``."""

        lo, hi = self._resolve_line_range(start, end)
        replacement = [str(line) for line in lines]
        count = len(self._lines)
        if lo == hi == count:
            # Lines appended after the last row never move existing anchors.
            self._lines.extend(replacement)
            self._touch()
            return

        self._lines[lo:hi] = replacement
        if not self._lines:
            self._lines = [""]
        removed = hi - lo
        if removed and not replacement and lo > 0 and lo == count - removed:
            # Trailing lines removed: fold the newline before them as well.
            self._anchors.splice(
                Position(lo - 1, len(self._lines[lo - 1])),
                Position(count - 1, COL_ENTIRE_LINE),
                Position(lo - 1, len(self._lines[lo - 1])),
            )
        else:
            self._anchors.splice(Position(lo, 0), Position(hi, 0), Position(lo + len(replacement), 0))
        self._anchors.clamp([len(line) for line in self._lines])
        self._touch()

    def set_text(self, row: int, col: int, end_row: int, end_col: int, lines: Sequence[str]) -> None:
        """Replace the text between two positions with ``lines``.

        An empty sequence (or ``[""]``) deletes the range.
        """

        start = self._check_position(row, col)
        stop = self._check_position(end_row, end_col)
        if stop < start:
            raise ValueError("set_text start must not be after end")
        replacement = [str(line) for line in lines] or [""]
        head = self._lines[start.row][: start.col]
        tail = self._lines[stop.row][stop.col :]
        new_lines = list(replacement)
        new_lines[0] = head + new_lines[0]
        new_lines[-1] = new_lines[-1] + tail
        self._lines[start.row : stop.row + 1] = new_lines

        if len(replacement) == 1:
            new_end = Position(start.row, start.col + len(replacement[0]))
        else:
            new_end = Position(start.row + len(replacement) - 1, len(replacement[-1]))
        self._anchors.splice(start, stop, new_end)
        self._touch()

    # ------------------------------------------------------------------
    # Cursor / selection
    # ------------------------------------------------------------------
    @property
    def cursor(self) -> Position:
        return self._cursor

    def set_cursor(self, row: int, col: int) -> None:
        row = max(0, min(int(row), len(self._lines) - 1))
        col = max(0, min(int(col), len(self._lines[row])))
        self._cursor = Position(row, col)

    @property
    def selection(self) -> Selection | None:
        return self._selection

    def select(self, start: Any, stop: Any) -> Selection:
        self._selection = Selection(Position.from_value(start), Position.from_value(stop))
        return self._selection

    def clear_selection(self) -> None:
        self._selection = None

    def selection_text(self, selection: Selection | None = None) -> str:
        """Return the selected text; line-wise selections include whole lines."""

        target = selection or self._selection
        if target is None:
            return ""
        start, stop = target.start, target.stop
        if stop.row >= len(self._lines):
            stop = Position(len(self._lines) - 1, COL_ENTIRE_LINE)
        stop_col = min(stop.col, len(self._lines[stop.row]))
        start_col = min(start.col, len(self._lines[start.row]))
        return "\n".join(self.get_text(start.row, start_col, stop.row, stop_col))

    # ------------------------------------------------------------------
    # Anchor primitive
    # ------------------------------------------------------------------
    def create_anchor(
        self,
        namespace: int,
        row: int,
        col: int,
        *,
        end_row: int | None = None,
        end_col: int | None = None,
        tag: str | None = None,
        anchor_id: int | None = None,
    ) -> int:
        """Create (or update ``anchor_id``) an anchor spanning ``(row, col)..(end_row, end_col)``."""

        start = self._check_position(row, col)
        stop = self._check_position(
            row if end_row is None else end_row,
            col if end_col is None else end_col,
        )
        return self._anchors.set(namespace, start, stop, tag=tag, anchor_id=anchor_id)

    def delete_anchor(self, namespace: int, anchor_id: int) -> bool:
        return self._anchors.delete(namespace, anchor_id)

    def get_anchor(self, namespace: int, anchor_id: int) -> AnchorDetails | None:
        return self._anchors.get(namespace, anchor_id)

    def set_anchor_tag(self, namespace: int, anchor_id: int, tag: str | None) -> bool:
        return self._anchors.set_tag(namespace, anchor_id, tag)

    def list_anchors(self, namespace: int) -> List[AnchorDetails]:
        return self._anchors.list(namespace)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _touch(self) -> None:
        self.dirty = True
        self.version_id += 1
        self.metadata.updated_at = _utcnow()

    def _resolve_line_range(self, start: int, end: int) -> tuple[int, int]:
        count = len(self._lines)
        lo = count + 1 + start if start < 0 else start
        hi = count + 1 + end if end < 0 else end
        if not (0 <= lo <= count) or not (0 <= hi <= count) or hi < lo:
            raise IndexError(f"Line range {start}..{end} out of bounds for {count} line(s)")
        return lo, hi

    def _check_position(self, row: int, col: int) -> Position:
        if not 0 <= row < len(self._lines):
            raise IndexError(f"Row {row} out of bounds for {len(self._lines)} line(s)")
        if not 0 <= col <= len(self._lines[row]):
            raise IndexError(f"Column {col} out of bounds for row {row}")
        return Position(row, col)


__all__ = ["Document", "DocumentMetadata"]
