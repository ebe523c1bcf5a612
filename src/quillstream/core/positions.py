"""Structured helpers for representing row/column positions."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Iterator

# Column reported for line-wise selections ("the whole line").
COL_ENTIRE_LINE = 2**31 - 1


@dataclass(slots=True, frozen=True, order=True)
class Position(Sequence[int]):
    """Zero-based ``(row, col)`` location inside a document."""

    row: int
    col: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "row", self._coerce_index(self.row, "row"))
        object.__setattr__(self, "col", self._coerce_index(self.col, "col"))

    @staticmethod
    def _coerce_index(value: Any, label: str) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Position {label} must be an integer") from exc
        if number < 0:
            return 0
        return number

    def __len__(self) -> int:
        return 2

    def __getitem__(self, index: int | slice) -> int | tuple[int, ...]:
        if isinstance(index, slice):
            return self.to_tuple()[index]
        if index == 0:
            return self.row
        if index == 1:
            return self.col
        raise IndexError("Position index out of range")

    def __iter__(self) -> Iterator[int]:
        yield self.row
        yield self.col

    def to_tuple(self) -> tuple[int, int]:
        return (self.row, self.col)

    def to_dict(self) -> dict[str, int]:
        return {"row": self.row, "col": self.col}

    @classmethod
    def from_value(cls, value: Any) -> Position:
        """Coerce mappings, pairs or ``row``/``col`` objects into a :class:`Position`."""

        if isinstance(value, Position):
            return value
        if isinstance(value, Mapping):
            if "row" not in value or "col" not in value:
                raise ValueError("Position mappings require row and col keys")
            return cls(value["row"], value["col"])
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            seq = list(value)
            if len(seq) != 2:
                raise ValueError("Position sequences must have exactly two entries")
            return cls(seq[0], seq[1])
        row = getattr(value, "row", None)
        col = getattr(value, "col", None)
        if row is not None and col is not None:
            return cls(row, col)
        raise TypeError("Unsupported Position input")


@dataclass(slots=True, frozen=True)
class Selection:
    """Inclusive-start selection; ``stop.col`` may be :data:`COL_ENTIRE_LINE`."""

    start: Position
    stop: Position

    def __post_init__(self) -> None:
        start = Position.from_value(self.start)
        stop = Position.from_value(self.stop)
        if stop < start:
            start, stop = stop, start
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "stop", stop)

    @property
    def is_linewise(self) -> bool:
        """Return ``True`` when the selection covers whole lines."""

        return self.stop.col == COL_ENTIRE_LINE


@dataclass(slots=True, frozen=True)
class AnchorPosition:
    """Start/end bounds reported for a live anchor."""

    row: int
    col: int
    end_row: int
    end_col: int

    @property
    def start(self) -> Position:
        return Position(self.row, self.col)

    @property
    def end(self) -> Position:
        return Position(self.end_row, self.end_col)

    @property
    def is_empty(self) -> bool:
        return self.row == self.end_row and self.col == self.end_col

    def to_dict(self) -> dict[str, int]:
        return {"row": self.row, "col": self.col, "end_row": self.end_row, "end_col": self.end_col}

    @classmethod
    def from_bounds(cls, start: Position, end: Position) -> AnchorPosition:
        return cls(start.row, start.col, end.row, end.col)


__all__ = ["COL_ENTIRE_LINE", "AnchorPosition", "Position", "Selection"]
