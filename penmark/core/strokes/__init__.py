"""
Pointer-driven brush, box and eraser input.
"""
from .engine import BoxPreview, InputContext, PointerEvent, PointerKind, StrokeEngine

__all__ = [
    "BoxPreview",
    "InputContext",
    "PointerEvent",
    "PointerKind",
    "StrokeEngine",
]
