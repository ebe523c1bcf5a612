"""Editor package containing the document model, anchors and workspace."""

from .anchors import AnchorDetails, AnchorTable, NamespaceRegistry, get_namespace_registry
from .dispatch import UIDispatcher
from .document_model import Document, DocumentMetadata
from .workspace import BufferWorkspace

__all__ = [
    "AnchorDetails",
    "AnchorTable",
    "BufferWorkspace",
    "Document",
    "DocumentMetadata",
    "NamespaceRegistry",
    "UIDispatcher",
    "get_namespace_registry",
]
