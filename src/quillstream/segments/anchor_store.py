"""Anchor store wrapping a document's position-anchoring primitive."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from ..core.errors import StaleAnchorError
from ..core.positions import AnchorPosition
from ..editor.anchors import AnchorDetails, get_namespace_registry
from ..editor.document_model import Document

__all__ = ["NAMESPACE", "AnchorHandle", "AnchorStore", "namespace_id"]

LOGGER = logging.getLogger(__name__)

NAMESPACE = "quillstream"


def namespace_id() -> int:
    """Return this package's anchor namespace, registering it on first use."""

    return get_namespace_registry().ensure(NAMESPACE)


@dataclass(slots=True, frozen=True)
class AnchorHandle:
    """Opaque reference to one anchor inside one document."""

    anchor_id: int
    namespace: int
    document_id: str


class AnchorStore:
    """Opens, reads, retags and closes anchors for a single document."""

    def __init__(self, document: Document, *, namespace: int | None = None) -> None:
        self._document = document
        self._namespace = namespace if namespace is not None else namespace_id()

    @property
    def document(self) -> Document:
        return self._document

    @property
    def namespace(self) -> int:
        return self._namespace

    def open(
        self,
        row: int,
        col: int,
        end_row: int | None = None,
        end_col: int | None = None,
        *,
        tag: str | None = None,
    ) -> AnchorHandle:
        """Create an anchor; omitted end bounds make it zero-width at ``(row, col)``."""

        # End bounds are always passed explicitly so get_position can report them.
        anchor_id = self._document.create_anchor(
            self._namespace,
            row,
            col,
            end_row=row if end_row is None else end_row,
            end_col=col if end_col is None else end_col,
            tag=tag,
        )
        return AnchorHandle(anchor_id, self._namespace, self._document.document_id)

    def update(self, handle: AnchorHandle, position: AnchorPosition, *, tag: str | None = None) -> None:
        """Move ``handle`` to ``position`` in place, keeping its id."""

        self._require(handle)
        self._document.create_anchor(
            self._namespace,
            position.row,
            position.col,
            end_row=position.end_row,
            end_col=position.end_col,
            tag=tag,
            anchor_id=handle.anchor_id,
        )

    def close(self, handle: AnchorHandle | None) -> None:
        """Release ``handle``; closing twice is a no-op."""

        if handle is None:
            return
        if not self._document.delete_anchor(self._namespace, handle.anchor_id):
            LOGGER.debug("Anchor %s already closed", handle.anchor_id)

    def get_position(self, handle: AnchorHandle | None) -> AnchorPosition:
        return self._require(handle).position

    def get_tag(self, handle: AnchorHandle | None) -> str | None:
        return self._require(handle).tag

    def set_highlight(self, handle: AnchorHandle | None, tag: str | None) -> None:
        details = self._require(handle)
        self._document.set_anchor_tag(self._namespace, details.anchor_id, tag)

    def clear_highlight(self, handle: AnchorHandle | None) -> None:
        self.set_highlight(handle, None)

    def tracked(self) -> List[AnchorPosition]:
        """Return raw positions of every anchor in this namespace, for debugging."""

        return [details.position for details in self._document.list_anchors(self._namespace)]

    def _require(self, handle: AnchorHandle | None) -> AnchorDetails:
        if handle is None:
            raise StaleAnchorError()
        details = self._document.get_anchor(self._namespace, handle.anchor_id)
        if details is None:
            raise StaleAnchorError(handle.anchor_id)
        return details
