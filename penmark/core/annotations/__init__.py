"""
Highlight shapes, their store, and the pixel operations that draw them.
"""
from .models import (
    RGB,
    AnnotationMode,
    HighlightShape,
    ToolState,
    hex_to_rgb,
)
from .painter import (
    composite_page,
    composition_mode,
    paint_layers,
    paint_segment,
    paint_shapes,
)
from .store import AnnotationStore
from .undo_redo import UndoRedoStack

__all__ = [
    "RGB",
    "AnnotationMode",
    "HighlightShape",
    "ToolState",
    "hex_to_rgb",
    "AnnotationStore",
    "UndoRedoStack",
    "composite_page",
    "composition_mode",
    "paint_layers",
    "paint_segment",
    "paint_shapes",
]
