"""Shared pytest fixtures."""

from __future__ import annotations

from typing import Callable

import pytest

from livemark.editor.session import EditorSession
from livemark.services.messages import Message


class RecordingScrollHost:
    """Scroll surface stub whose offsets can be nudged by tests."""

    def __init__(self, top: float = 0.0, left: float = 0.0) -> None:
        self.top = top
        self.left = left
        self.restored: list[tuple[float, float]] = []

    def scroll_offsets(self) -> tuple[float, float]:
        return (self.top, self.left)

    def restore_scroll(self, top: float, left: float) -> None:
        self.restored.append((top, left))
        self.top, self.left = top, left


@pytest.fixture
def make_session() -> Callable[..., EditorSession]:
    def _factory(text: str = "", caret: int | None = None, **kwargs) -> EditorSession:
        session = EditorSession(text, **kwargs)
        if caret is not None:
            session.select([(caret, caret)])
        return session

    return _factory


@pytest.fixture
def posted() -> list[Message]:
    return []


@pytest.fixture
def scroll_host() -> RecordingScrollHost:
    return RecordingScrollHost(top=120.0)
