"""Tests for logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

from quillstream.utils import logging as logging_utils


def test_setup_logging_writes_rotating_file(tmp_path: Path, restore_logging) -> None:
    log_path = logging_utils.setup_logging(logging.DEBUG, log_dir=tmp_path, console=False, force=True)

    assert log_path == tmp_path / "quillstream.log"
    assert logging_utils.get_log_path() == log_path
    logging.getLogger("quillstream.test").info("hello file")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello file" in log_path.read_text(encoding="utf-8")


def test_setup_logging_is_idempotent(tmp_path: Path, restore_logging) -> None:
    first = logging_utils.setup_logging(log_dir=tmp_path / "a", console=False, force=True)
    second = logging_utils.setup_logging(log_dir=tmp_path / "b", console=False)

    assert first == second
    assert not (tmp_path / "b").exists()


def test_log_dir_from_environment(tmp_path: Path, monkeypatch, restore_logging) -> None:
    monkeypatch.setenv("QUILLSTREAM_LOG_DIR", str(tmp_path / "env"))

    log_path = logging_utils.setup_logging(console=False, force=True)

    assert log_path == tmp_path / "env" / "quillstream.log"


def test_noisy_loggers_are_quieted(tmp_path: Path, restore_logging) -> None:
    logging_utils.setup_logging(logging.DEBUG, log_dir=tmp_path, console=False, force=True)

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("openai").level == logging.WARNING


def test_console_only_returns_no_path(restore_logging) -> None:
    assert logging_utils.setup_logging(to_file=False, force=True) is None
    assert logging_utils.log_level_for(True) == logging.DEBUG
    assert logging_utils.log_level_for(False) == logging.INFO
