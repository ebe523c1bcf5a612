"""Segment tracking: anchored regions that streamed text is written into."""

from .anchor_store import NAMESPACE, AnchorHandle, AnchorStore, namespace_id
from .factory import create_segment_at
from .segment import Segment

__all__ = [
    "NAMESPACE",
    "AnchorHandle",
    "AnchorStore",
    "Segment",
    "create_segment_at",
    "namespace_id",
]
