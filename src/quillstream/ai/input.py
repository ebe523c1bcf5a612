"""Resolve what a prompt reads: the whole buffer or the current selection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..core.positions import COL_ENTIRE_LINE, Selection
from ..editor.document_model import Document

__all__ = ["InputContext", "Source", "get_input_context", "get_source"]


@dataclass(slots=True)
class Source:
    """The document a prompt reads from, plus the selection when one is used."""

    document: Document
    lines: List[str]
    selection: Selection | None = None

    @property
    def has_selection(self) -> bool:
        return self.selection is not None


@dataclass(slots=True, frozen=True)
class InputContext:
    """Prompt text plus the surrounding context handed to params builders."""

    input: str
    context: Dict[str, Any] = field(default_factory=dict)


def get_source(document: Document, want_selection: bool) -> Source:
    """Snapshot ``document`` as a :class:`Source`.

    The selection is only used when ``want_selection`` is set and the
    document actually has one. ``lines`` then holds just the selected text.
    """

    selection = document.selection if want_selection else None
    if selection is None:
        return Source(document=document, lines=document.lines)
    lines = document.selection_text(selection).split("\n")
    return Source(document=document, lines=lines, selection=selection)


def get_input_context(source: Source, args: str = "") -> InputContext:
    """Build the :class:`InputContext` for ``source`` and the raw command ``args``."""

    document = source.document
    selection = source.selection
    text = "\n".join(source.lines)
    if selection is None:
        before, after = "", ""
    else:
        before = _text_before(document.lines, selection)
        after = _text_after(document.lines, selection)

    context: Dict[str, Any] = {
        "args": args or "",
        "filename": str(document.metadata.path) if document.metadata.path else document.name,
        "before": before,
        "after": after,
        "selection": selection,
    }
    return InputContext(input=text, context=context)


def _text_before(lines: List[str], selection: Selection) -> str:
    start = selection.start
    head = lines[: start.row]
    head.append(lines[start.row][: start.col] if start.row < len(lines) else "")
    return "\n".join(head)


def _text_after(lines: List[str], selection: Selection) -> str:
    stop = selection.stop
    if stop.row >= len(lines):
        return ""
    if stop.col == COL_ENTIRE_LINE or stop.col >= len(lines[stop.row]):
        return "\n".join(lines[stop.row + 1 :])
    tail = [lines[stop.row][stop.col :]]
    tail.extend(lines[stop.row + 1 :])
    return "\n".join(tail)
