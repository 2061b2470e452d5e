"""Editor package: document state, formatting commands and the editing session."""

from importlib import import_module
from typing import Any

from . import blocks, document_model, formatting

__all__ = ["blocks", "document_model", "formatting"]

_LAZY_MODULES = {"list_commands", "multi_range", "session"}


def __getattr__(name: str) -> Any:
    if name in _LAZY_MODULES:
        module = import_module(f"{__name__}.{name}")
        globals()[name] = module
        return module
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
