"""Auto-adjusting position references stored per document.

Anchors live in an arena keyed by integer ids. The owning document pushes
every edit through :meth:`AnchorTable.splice`, which shifts anchors the same
way the document shifts its own lines, so readers never need to cache
row/column snapshots.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterator, List

from ..core.positions import AnchorPosition, Position

__all__ = [
    "AnchorDetails",
    "AnchorTable",
    "NamespaceRegistry",
    "get_namespace_registry",
]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AnchorDetails:
    """Snapshot of one anchor as reported by :meth:`AnchorTable.get`."""

    anchor_id: int
    namespace: int
    row: int
    col: int
    end_row: int
    end_col: int
    tag: str | None = None

    @property
    def position(self) -> AnchorPosition:
        return AnchorPosition(self.row, self.col, self.end_row, self.end_col)


@dataclass(slots=True)
class _AnchorRecord:
    namespace: int
    start: Position
    end: Position
    tag: str | None = None


def _shift_point(
    point: Position,
    start: Position,
    old_end: Position,
    new_end: Position,
    *,
    right_gravity: bool,
) -> Position:
    """Map ``point`` across a splice replacing ``start..old_end`` with text ending at ``new_end``."""

    # Deletion of start..old_end collapses covered points onto start.
    if start < point <= old_end:
        point = start
    elif point > old_end:
        if point.row == old_end.row:
            point = Position(start.row, start.col + (point.col - old_end.col))
        else:
            point = Position(point.row - (old_end.row - start.row), point.col)

    # Insertion at start.
    if point < start or (point == start and not right_gravity):
        return point
    if point.row == start.row:
        return Position(new_end.row, new_end.col + (point.col - start.col))
    return Position(point.row + (new_end.row - start.row), point.col)


class AnchorTable:
    """Arena of live anchors for one document."""

    def __init__(self) -> None:
        self._records: Dict[int, _AnchorRecord] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._records)

    def set(
        self,
        namespace: int,
        start: Position,
        end: Position,
        *,
        tag: str | None = None,
        anchor_id: int | None = None,
    ) -> int:
        """Create an anchor, or move/retag ``anchor_id`` when it is given and alive."""

        if end < start:
            start, end = end, start
        record = _AnchorRecord(namespace=namespace, start=start, end=end, tag=tag)
        if anchor_id is not None and self._owned(namespace, anchor_id):
            self._records[anchor_id] = record
            return anchor_id
        if anchor_id is not None and anchor_id >= self._next_id:
            self._next_id = anchor_id + 1
        new_id = anchor_id if anchor_id is not None else self._allocate()
        self._records[new_id] = record
        return new_id

    def delete(self, namespace: int, anchor_id: int) -> bool:
        if not self._owned(namespace, anchor_id):
            return False
        del self._records[anchor_id]
        return True

    def get(self, namespace: int, anchor_id: int) -> AnchorDetails | None:
        if not self._owned(namespace, anchor_id):
            return None
        return self._details(anchor_id, self._records[anchor_id])

    def set_tag(self, namespace: int, anchor_id: int, tag: str | None) -> bool:
        if not self._owned(namespace, anchor_id):
            return False
        self._records[anchor_id].tag = tag
        return True

    def list(self, namespace: int) -> List[AnchorDetails]:
        return [
            self._details(anchor_id, record)
            for anchor_id, record in sorted(self._records.items(), key=lambda item: (item[1].start, item[0]))
            if record.namespace == namespace
        ]

    def __iter__(self) -> Iterator[AnchorDetails]:
        for anchor_id, record in self._records.items():
            yield self._details(anchor_id, record)

    def splice(self, start: Position, old_end: Position, new_end: Position) -> None:
        """Shift every anchor across an edit replacing ``start..old_end``."""

        for record in self._records.values():
            new_start = _shift_point(record.start, start, old_end, new_end, right_gravity=True)
            new_stop = _shift_point(record.end, start, old_end, new_end, right_gravity=False)
            if new_stop < new_start:
                new_stop = new_start
            record.start = new_start
            record.end = new_stop

    def clamp(self, line_lengths: List[int]) -> None:
        """Pull anchors back inside the document after line-level rewrites."""

        last_row = max(0, len(line_lengths) - 1)
        for record in self._records.values():
            record.start = self._clamp_point(record.start, line_lengths, last_row)
            record.end = self._clamp_point(record.end, line_lengths, last_row)
            if record.end < record.start:
                record.end = record.start

    @staticmethod
    def _clamp_point(point: Position, line_lengths: List[int], last_row: int) -> Position:
        if point.row > last_row:
            return Position(last_row, line_lengths[last_row] if line_lengths else 0)
        limit = line_lengths[point.row] if line_lengths else 0
        if point.col > limit:
            return Position(point.row, limit)
        return point

    def _owned(self, namespace: int, anchor_id: int) -> bool:
        record = self._records.get(anchor_id)
        return record is not None and record.namespace == namespace

    def _allocate(self) -> int:
        anchor_id = self._next_id
        self._next_id += 1
        return anchor_id

    @staticmethod
    def _details(anchor_id: int, record: _AnchorRecord) -> AnchorDetails:
        return AnchorDetails(
            anchor_id=anchor_id,
            namespace=record.namespace,
            row=record.start.row,
            col=record.start.col,
            end_row=record.end.row,
            end_col=record.end.col,
            tag=record.tag,
        )


@dataclass(slots=True)
class NamespaceRegistry:
    """Process-wide registry handing out namespace ids to annotators.

    Namespaces are created lazily on first request and live for the rest of
    the process; there is no teardown.
    """

    _ids: Dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def ensure(self, name: str) -> int:
        """Return the id for ``name``, creating it on first use."""

        key = (name or "").strip()
        if not key:
            raise ValueError("Namespace name is required")
        with self._lock:
            existing = self._ids.get(key)
            if existing is not None:
                return existing
            namespace_id = len(self._ids) + 1
            self._ids[key] = namespace_id
            LOGGER.debug("Created anchor namespace %s (id=%s)", key, namespace_id)
            return namespace_id

    def names(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._ids)


_REGISTRY: NamespaceRegistry | None = None


def get_namespace_registry() -> NamespaceRegistry:
    """Return the process-wide :class:`NamespaceRegistry`."""

    global _REGISTRY
    if _REGISTRY is None:
        _REGISTRY = NamespaceRegistry()
    return _REGISTRY
