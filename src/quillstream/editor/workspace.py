"""Workspace model tracking open documents and the focused one."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Protocol

from .document_model import Document, DocumentMetadata

__all__ = ["BufferWorkspace", "ActiveDocumentListener"]

LOGGER = logging.getLogger(__name__)


class ActiveDocumentListener(Protocol):
    """Callback signature fired whenever the focused document changes."""

    def __call__(self, document: Optional[Document]) -> None:  # pragma: no cover - protocol
        ...


def _normalize_path(path: Path | str | None) -> Path | None:
    if path is None:
        return None
    if isinstance(path, Path):
        return path.expanduser().resolve()
    return Path(path).expanduser().resolve()


class BufferWorkspace:
    """Holds open documents and which one currently has focus."""

    def __init__(self, *, document_factory: Callable[..., Document] | None = None) -> None:
        self._document_factory = document_factory or Document
        self._documents: Dict[str, Document] = {}
        self._order: List[str] = []
        self._active_id: str | None = None
        self._listeners: List[ActiveDocumentListener] = []

    # ------------------------------------------------------------------
    # Document lifecycle helpers
    # ------------------------------------------------------------------
    def open_document(
        self,
        text: str = "",
        *,
        name: str = "",
        path: Path | str | None = None,
        make_active: bool = True,
    ) -> Document:
        """Create a document, register it and optionally focus it."""

        resolved_path = _normalize_path(path)
        document = self._document_factory(
            text,
            name=name or (resolved_path.name if resolved_path else ""),
            metadata=DocumentMetadata(path=resolved_path),
        )
        self.add(document, make_active=make_active)
        return document

    def add(self, document: Document, *, make_active: bool = True) -> Document:
        if document.document_id not in self._documents:
            self._documents[document.document_id] = document
            self._order.append(document.document_id)
        if make_active or self._active_id is None:
            self.set_active(document)
        return document

    def close(self, document: Document) -> None:
        if self._documents.pop(document.document_id, None) is None:
            return
        self._order.remove(document.document_id)
        if self._active_id == document.document_id:
            next_id = self._order[-1] if self._order else None
            self._set_active_id(next_id)

    def find(self, name: str) -> Document | None:
        for document in self:
            if document.name == name:
                return document
        return None

    def find_or_create(self, name: str) -> Document:
        """Return the document called ``name``, creating an empty scratch one if needed."""

        existing = self.find(name)
        if existing is not None:
            return existing
        document = self._document_factory("", name=name)
        self.add(document, make_active=False)
        LOGGER.debug("Created scratch document %s", name)
        return document

    # ------------------------------------------------------------------
    # Focus
    # ------------------------------------------------------------------
    @property
    def active(self) -> Document | None:
        if self._active_id is None:
            return None
        return self._documents.get(self._active_id)

    def require_active(self) -> Document:
        document = self.active
        if document is None:
            raise RuntimeError("No active document")
        return document

    def set_active(self, document: Document) -> None:
        if document.document_id not in self._documents:
            self.add(document, make_active=False)
        self._set_active_id(document.document_id)

    def add_listener(self, listener: ActiveDocumentListener) -> None:
        self._listeners.append(listener)

    def _set_active_id(self, document_id: str | None) -> None:
        if self._active_id == document_id:
            return
        self._active_id = document_id
        active = self.active
        for listener in list(self._listeners):
            listener(active)

    def __iter__(self) -> Iterator[Document]:
        for document_id in self._order:
            yield self._documents[document_id]

    def __len__(self) -> int:
        return len(self._order)
