"""Tests for the stream handler bridge."""

from __future__ import annotations

from typing import List

import pytest

from quillstream.ai.streaming import SegmentStreamBridge, create_prompt_handlers
from quillstream.core.errors import (
    EmptyAppendError,
    ProviderStreamError,
    QuillstreamError,
    TruncatedResponseError,
)
from quillstream.editor.document_model import Document
from quillstream.segments.factory import create_segment_at
from quillstream.services.notifications import NotificationCenter, Severity


@pytest.fixture
def document() -> Document:
    return Document("prompt\n")


@pytest.fixture
def notifier() -> NotificationCenter:
    return NotificationCenter()


def _bridge(document: Document, notifier: NotificationCenter, **kwargs):
    segment = create_segment_at(1, 0, "Comment", document)
    terminals: List[QuillstreamError | None] = []
    bridge = SegmentStreamBridge(segment, notifier, on_terminal=terminals.append, **kwargs)
    return segment, bridge, terminals


def test_clean_stop_commits_partials_and_clears_highlight(document, notifier) -> None:
    segment, bridge, terminals = _bridge(document, notifier)

    bridge.on_partial("foo")
    bridge.on_partial("bar")
    assert segment.highlight_tag == "Comment"
    bridge.on_finish(None, "stop")

    assert document.text == "prompt\nfoobar"
    assert segment.highlight_tag is None
    assert terminals == [None]
    assert notifier.history == []


def test_final_text_replaces_streamed_partials(document, notifier) -> None:
    segment, bridge, _ = _bridge(document, notifier)

    bridge.on_partial("draft\nlines")
    bridge.on_finish("final", "stop")

    assert document.text == "prompt\nfinal"
    assert segment.text == "final"


def test_transform_applies_to_final_text(document, notifier) -> None:
    segment, bridge, _ = _bridge(document, notifier, transform=str.upper)

    bridge.on_partial("foo")
    bridge.on_finish()

    assert segment.text == "FOO"
    assert bridge.completion == "foo"


def test_length_finish_marks_error_and_warns(document, notifier) -> None:
    segment, bridge, terminals = _bridge(document, notifier)

    bridge.on_partial("cut")
    bridge.on_finish(None, "length")

    assert segment.text == "cut"
    assert segment.highlight_tag == "Error"
    assert [(notice.message, notice.severity) for notice in notifier.history] == [
        ("Hit token limit", Severity.WARNING)
    ]
    assert isinstance(terminals[0], TruncatedResponseError)


def test_other_finish_reason_is_reported(document, notifier) -> None:
    segment, bridge, terminals = _bridge(document, notifier)

    bridge.on_partial("partial")
    bridge.on_finish(None, "content_filter")

    assert segment.highlight_tag == "Error"
    notice = notifier.history[-1]
    assert notice.message == "Response ended because: content_filter"
    assert notice.severity is Severity.ERROR
    assert isinstance(terminals[0], ProviderStreamError)


def test_done_highlight_applied_after_stop(document, notifier) -> None:
    segment, bridge, _ = _bridge(document, notifier, done_highlight="Identifier")

    bridge.on_partial("x")
    bridge.on_finish(None, "stop")

    assert segment.highlight_tag == "Identifier"


def test_error_notifies_without_touching_segment(document, notifier) -> None:
    segment, bridge, terminals = _bridge(document, notifier)

    bridge.on_partial("half")
    bridge.on_error("boom", "HTTP 500")

    assert segment.text == "half"
    assert segment.highlight_tag == "Comment"
    notice = notifier.history[-1]
    assert notice.title == "stream error HTTP 500"
    assert notice.message == "boom"
    assert isinstance(terminals[0], ProviderStreamError)


def test_late_partials_are_dropped(document, notifier) -> None:
    segment, bridge, _ = _bridge(document, notifier)

    bridge.on_partial("done")
    bridge.on_finish(None, "stop")
    bridge.on_partial(" extra")
    bridge.on_finish("again", "stop")

    assert segment.text == "done"
    assert bridge.finished


def test_empty_partial_raises_empty_append(document, notifier) -> None:
    segment, bridge, _ = _bridge(document, notifier)
    bridge.on_partial("a")

    with pytest.raises(EmptyAppendError):
        bridge.on_partial("")

    assert segment.text == "a"
    assert bridge.completion == "a"


def test_create_prompt_handlers_returns_bound_triple(document, notifier) -> None:
    segment = create_segment_at(1, 0, None, document)

    handlers = create_prompt_handlers(segment, notifier)
    handlers.on_partial("hi")
    handlers.on_finish(None, None)

    assert document.text == "prompt\nhi"
