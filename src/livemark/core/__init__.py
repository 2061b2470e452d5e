"""Core domain types: ranges, selections and change sets."""

from .changes import ChangeSet, EditConflictError, EditDescriptor, EditRangeError, LivemarkError
from .ranges import SelectionSet, TextRange

__all__ = [
    "ChangeSet",
    "EditConflictError",
    "EditDescriptor",
    "EditRangeError",
    "LivemarkError",
    "SelectionSet",
    "TextRange",
]
