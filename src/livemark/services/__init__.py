"""Service layer helpers (settings, host messages, bridge)."""

from importlib import import_module
from typing import Any

from .messages import HOST_MESSAGES, Message, MessageType
from .settings import DEFAULT_SETTINGS, EditorSettings, SettingsStore, normalize_settings

__all__ = [
    "DEFAULT_SETTINGS",
    "EditorSettings",
    "HOST_MESSAGES",
    "Message",
    "MessageType",
    "SettingsStore",
    "normalize_settings",
]


def __getattr__(name: str) -> Any:
    if name == "bridge":
        module = import_module(f"{__name__}.{name}")
        globals()[name] = module
        return module
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
