"""Shared pytest fixtures."""

from __future__ import annotations

import logging

import pytest

from tests.helpers import FakeProvider, ImmediateDispatcher


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def immediate_dispatcher() -> ImmediateDispatcher:
    return ImmediateDispatcher()


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
    if hasattr(root, "_quillstream_configured"):
        delattr(root, "_quillstream_configured")
