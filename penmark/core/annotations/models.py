"""
Annotation data types: highlight shapes, tool state and color helpers.
"""
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Tuple

RGB = Tuple[int, int, int]


class AnnotationMode(Enum):
    """How highlights are represented for a session."""

    BOX = "box"  # vector rectangles in normalized coordinates
    FREEHAND = "freehand"  # ink painted directly into the overlay bitmap


def hex_to_rgb(hex_color: str) -> RGB:
    """
    Parse a ``#rgb`` or ``#rrggbb`` color string.

    Raises:
        ValueError: if the string is not a valid hex color
    """
    clean = hex_color.strip().lstrip("#")
    if len(clean) == 3:
        clean = "".join(c + c for c in clean)
    if len(clean) != 6:
        raise ValueError(f"Invalid hex color: {hex_color!r}")
    value = int(clean, 16)
    return (value >> 16) & 255, (value >> 8) & 255, value & 255


@dataclass(frozen=True)
class HighlightShape:
    """
    A rectangular highlight on one page.

    Position and size are fractions of the page so the shape stays valid
    across zoom and pixel density changes. Shapes are never mutated; edits
    replace them.
    """

    page_index: int
    x: float
    y: float
    w: float
    h: float
    color: RGB
    opacity: float
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        for name in ("x", "y", "w", "h"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if not 0.0 < self.opacity < 1.0:
            raise ValueError(f"opacity must be within (0, 1), got {self.opacity}")

    @property
    def area(self) -> float:
        return self.w * self.h

    def contains(self, nx: float, ny: float) -> bool:
        """Check if a normalized point is within this shape's bounds."""
        return self.x <= nx <= self.x + self.w and self.y <= ny <= self.y + self.h


@dataclass(frozen=True)
class ToolState:
    """Current brush settings. Replaced, not mutated, when the user changes a tool."""

    color: RGB
    opacity: float
    thickness: float  # logical pixels
    eraser: bool = False

    def with_color(self, color: RGB) -> "ToolState":
        # Picking a color always leaves eraser mode
        return replace(self, color=color, eraser=False)

    def with_opacity(self, opacity: float) -> "ToolState":
        return replace(self, opacity=opacity)

    def with_thickness(self, thickness: float) -> "ToolState":
        return replace(self, thickness=thickness)

    def with_eraser(self, eraser: bool) -> "ToolState":
        return replace(self, eraser=eraser)
