"""Core domain helpers shared across quillstream packages."""

from .positions import COL_ENTIRE_LINE, AnchorPosition, Position, Selection

__all__ = ["COL_ENTIRE_LINE", "AnchorPosition", "Position", "Selection"]
