"""Tests for logging setup."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Iterator

import pytest

from livemark.utils import logging as livemark_logging


@pytest.fixture(autouse=True)
def _restore_root_logger(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    root = logging.getLogger()
    level = root.level
    monkeypatch.setattr(livemark_logging, "_LOG_PATH", None)
    monkeypatch.delenv("LIVEMARK_LOG_LEVEL", raising=False)
    monkeypatch.delenv("LIVEMARK_LOG_DIR", raising=False)
    yield
    for handler in list(root.handlers):
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    logging.captureWarnings(False)


def test_setup_writes_to_rotating_file(tmp_path: Path) -> None:
    path = livemark_logging.setup_logging("debug", log_dir=tmp_path, console=False)

    logging.getLogger("livemark.test").info("hello from the test")

    assert path == tmp_path / "livemark.log"
    assert livemark_logging.get_log_path() == path
    assert logging.getLogger().level == logging.DEBUG
    assert "hello from the test" in path.read_text(encoding="utf-8")
    assert logging.getLogger("markdown_it").level == logging.WARNING


def test_repeated_setup_is_a_no_op_unless_forced(tmp_path: Path) -> None:
    first = livemark_logging.setup_logging(log_dir=tmp_path / "a", console=False)

    assert livemark_logging.setup_logging(log_dir=tmp_path / "b", console=False) == first
    forced = livemark_logging.setup_logging(log_dir=tmp_path / "b", console=False, force=True)
    assert forced == tmp_path / "b" / "livemark.log"


def test_environment_chooses_level_and_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LIVEMARK_LOG_LEVEL", "warning")
    monkeypatch.setenv("LIVEMARK_LOG_DIR", str(tmp_path))

    path = livemark_logging.setup_logging(console=False)

    assert path.parent == tmp_path
    assert logging.getLogger().level == logging.WARNING


def test_unknown_level_name_falls_back_to_info(tmp_path: Path) -> None:
    livemark_logging.setup_logging("loud", log_dir=tmp_path, console=False)

    assert logging.getLogger().level == logging.INFO
