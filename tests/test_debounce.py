"""Tests for the trailing-edge debouncer."""

from __future__ import annotations

import asyncio

from livemark.core.changes import ChangeSet, EditDescriptor
from livemark.editor.document_model import Transaction
from livemark.editor.session import EditorSession
from livemark.utils.debounce import Debouncer


def test_without_loop_callback_runs_immediately() -> None:
    calls: list[str] = []
    debouncer = Debouncer(calls.append, 10.0)

    debouncer.call("now")

    assert calls == ["now"]
    assert not debouncer.pending
    assert Debouncer(calls.append, -1).delay == 0.0


def test_only_latest_call_fires() -> None:
    calls: list[int] = []

    async def scenario() -> None:
        debouncer = Debouncer(calls.append, 0.01)
        debouncer.call(1)
        debouncer.call(2)
        assert debouncer.pending
        assert calls == []
        await asyncio.sleep(0.05)
        assert not debouncer.pending

    asyncio.run(scenario())

    assert calls == [2]


def test_flush_and_cancel() -> None:
    calls: list[str] = []

    async def scenario() -> None:
        debouncer = Debouncer(calls.append, 0.01)
        debouncer.call("flushed")
        debouncer.flush()
        debouncer.call("cancelled")
        debouncer.cancel()
        await asyncio.sleep(0.03)
        debouncer.flush()

    asyncio.run(scenario())

    assert calls == ["flushed"]


def test_session_coalesces_edits_inside_a_loop() -> None:
    sent: list[str] = []

    async def scenario() -> None:
        session = EditorSession("abc", edit_sender=sent.append, edit_delay=0.01)
        for char in "de":
            changes = ChangeSet.of([EditDescriptor(len(session.text), len(session.text), char)], len(session.text))
            session.dispatch(Transaction(changes=changes, user_event="input.type"))
        assert sent == []
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert sent == ["abcde"]
