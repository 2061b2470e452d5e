"""Overlay model, replacement widgets and the decoration builder."""

from .builder import DecorationContext, build_decorations
from .overlays import Overlay, OverlayKind, OverlaySet, find_conflicts

__all__ = [
    "DecorationContext",
    "Overlay",
    "OverlayKind",
    "OverlaySet",
    "build_decorations",
    "find_conflicts",
]
