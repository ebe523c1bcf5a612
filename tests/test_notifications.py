"""Tests for the notification center."""

from __future__ import annotations

import logging

import pytest

from quillstream.services.notifications import Notice, NotificationCenter, Severity


def test_notify_logs_at_matching_level(caplog: pytest.LogCaptureFixture) -> None:
    center = NotificationCenter()

    with caplog.at_level(logging.DEBUG, logger="quillstream.services.notifications"):
        center.notify("careful", Severity.WARNING)
        center.notify("broken", "error", title="stream error 500")

    levels = [(record.levelno, record.getMessage()) for record in caplog.records]
    assert levels == [
        (logging.WARNING, "careful"),
        (logging.ERROR, "stream error 500: broken"),
    ]


def test_history_is_bounded() -> None:
    center = NotificationCenter(max_history=2)

    for index in range(3):
        center.notify(f"n{index}")

    assert [notice.message for notice in center.history] == ["n1", "n2"]
    center.clear()
    assert center.history == []


def test_listeners_receive_notices() -> None:
    center = NotificationCenter()
    seen: list[Notice] = []
    center.add_listener(seen.append)

    center.notify("hello", Severity.INFO, title="greeting")

    assert len(seen) == 1
    assert (seen[0].message, seen[0].severity, seen[0].title) == ("hello", Severity.INFO, "greeting")


def test_severity_maps_to_log_level() -> None:
    assert Severity.DEBUG.log_level == logging.DEBUG
    assert Severity("warning").log_level == logging.WARNING
