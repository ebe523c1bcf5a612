"""Tests for the buffer workspace."""

from __future__ import annotations

from pathlib import Path

import pytest

from quillstream.editor.document_model import Document
from quillstream.editor.workspace import BufferWorkspace


def test_open_document_focuses_it(tmp_path: Path) -> None:
    workspace = BufferWorkspace()

    document = workspace.open_document("text", path=tmp_path / "notes.md")

    assert workspace.active is document
    assert document.name == "notes.md"
    assert document.metadata.path == (tmp_path / "notes.md").resolve()
    assert len(workspace) == 1


def test_find_or_create_reuses_scratch_document() -> None:
    workspace = BufferWorkspace()
    original = workspace.open_document("x")

    scratch = workspace.find_or_create("__scratch__")

    assert workspace.find_or_create("__scratch__") is scratch
    assert workspace.active is original
    assert list(workspace) == [original, scratch]


def test_closing_active_document_moves_focus() -> None:
    workspace = BufferWorkspace()
    first = workspace.open_document("a")
    second = workspace.open_document("b")
    seen: list[Document | None] = []
    workspace.add_listener(seen.append)

    workspace.close(second)

    assert workspace.active is first
    assert seen == [first]

    workspace.close(first)
    assert workspace.active is None
    with pytest.raises(RuntimeError):
        workspace.require_active()


def test_set_active_registers_unknown_documents() -> None:
    workspace = BufferWorkspace()
    workspace.open_document("a")
    outside = Document("b", name="outside")

    workspace.set_active(outside)

    assert workspace.active is outside
    assert workspace.find("outside") is outside
