"""Dataclasses representing editor document state and transactions."""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..core.changes import ChangeSet
from ..core.ranges import SelectionSet


def _utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""

    return datetime.now(timezone.utc)


def _hash_text(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


@dataclass(slots=True, frozen=True)
class Transaction:
    """One serialized mutation of the document and/or selection.

    ``origin_is_widget`` marks edits written back by a replacement widget (the
    table editor); overlays are then position-mapped instead of rebuilt so the
    live widget keeps its identity.
    """

    changes: ChangeSet | None = None
    selection: SelectionSet | None = None
    origin_is_widget: bool = False
    user_event: str | None = None

    @property
    def doc_changed(self) -> bool:
        return self.changes is not None and not self.changes.is_empty

    def is_user_event(self, name: str) -> bool:
        if self.user_event is None:
            return False
        return self.user_event == name or self.user_event.startswith(name + ".")


@dataclass(slots=True)
class DocumentState:
    """Snapshot of the buffer: text, selection set and version bookkeeping."""

    text: str = ""
    selection: SelectionSet = field(default_factory=lambda: SelectionSet.single(0))
    dirty: bool = False
    document_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    version_id: int = 1
    content_hash: str = field(default_factory=str)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if not self.content_hash:
            self.content_hash = _hash_text(self.text)
        self.selection = self.selection.clamp(len(self.text))

    def apply(self, transaction: Transaction) -> DocumentState:
        """Return the state produced by ``transaction``; ``self`` is left untouched."""

        text = self.text
        selection = self.selection
        if transaction.doc_changed:
            assert transaction.changes is not None
            text = transaction.changes.apply(text)
            selection = selection.map(transaction.changes)
        if transaction.selection is not None:
            selection = transaction.selection
        if text == self.text:
            return replace(self, selection=selection.clamp(len(text)))
        return replace(
            self,
            text=text,
            selection=selection.clamp(len(text)),
            dirty=True,
            version_id=self.version_id + 1,
            content_hash=_hash_text(text),
            updated_at=_utcnow(),
        )

    def snapshot(self) -> Dict[str, Any]:
        """Return a serializable snapshot of the buffer."""

        return {
            "text": self.text,
            "selection": [item.to_dict() for item in self.selection],
            "main_index": self.selection.main_index,
            "dirty": self.dirty,
            "document_id": self.document_id,
            "version_id": self.version_id,
            "content_hash": self.content_hash,
        }

    def version_signature(self) -> str:
        return f"{self.document_id}:{self.version_id}:{self.content_hash}"

    def slice(self, start: int, end: Optional[int] = None) -> str:
        return self.text[start : len(self.text) if end is None else end]


__all__ = ["DocumentState", "Transaction"]
