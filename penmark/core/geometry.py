"""
Coordinate spaces used by the highlighting pipeline.

Three spaces are in play:

- normalized: fractions ``[0, 1] x [0, 1]`` of the page, independent of zoom
  and pixel density. Persisted highlight shapes live here.
- logical: pixels of the on-screen page at the current scale (what pointer
  events report).
- device: physical pixels of the page's raster and overlay surfaces,
  ``logical * device_pixel_ratio``.
"""
import math
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class NormalizedPoint:
    """A point expressed as a fraction of page width/height."""

    x: float
    y: float


@dataclass(frozen=True)
class DevicePoint:
    """A point in device pixels of a page surface."""

    x: float
    y: float


@dataclass(frozen=True)
class PageGeometry:
    """Size of one rendered page for a single render pass."""

    page_index: int
    width_px: float  # logical pixels at `scale`
    height_px: float
    scale: float
    dpr: float = 1.0

    def __post_init__(self):
        if self.page_index < 0:
            raise ValueError(f"page_index must be >= 0, got {self.page_index}")
        if self.width_px <= 0 or self.height_px <= 0:
            raise ValueError(
                f"page size must be positive, got {self.width_px}x{self.height_px}"
            )
        if self.dpr <= 0:
            raise ValueError(f"device pixel ratio must be positive, got {self.dpr}")

    @property
    def device_width(self) -> int:
        """Width of the page surfaces in device pixels."""
        return math.ceil(self.width_px * self.dpr)

    @property
    def device_height(self) -> int:
        """Height of the page surfaces in device pixels."""
        return math.ceil(self.height_px * self.dpr)

    @property
    def device_size(self) -> Tuple[int, int]:
        return self.device_width, self.device_height

    def logical_to_device(self, x: float, y: float) -> DevicePoint:
        return DevicePoint(x * self.dpr, y * self.dpr)


def to_normalized(point: DevicePoint, geometry: PageGeometry) -> NormalizedPoint:
    """Convert a device-pixel point to normalized page coordinates."""
    return NormalizedPoint(
        point.x / (geometry.width_px * geometry.dpr),
        point.y / (geometry.height_px * geometry.dpr),
    )


def to_device(point: NormalizedPoint, geometry: PageGeometry) -> DevicePoint:
    """Convert a normalized page point to device pixels."""
    return DevicePoint(
        point.x * geometry.width_px * geometry.dpr,
        point.y * geometry.height_px * geometry.dpr,
    )


def normalized_rect_to_device(
    x: float, y: float, w: float, h: float, geometry: PageGeometry
) -> Tuple[float, float, float, float]:
    """
    Convert a normalized rectangle to a device-pixel rectangle.

    Returns:
        Tuple of (x, y, width, height) in device pixels
    """
    sx = geometry.width_px * geometry.dpr
    sy = geometry.height_px * geometry.dpr
    return x * sx, y * sy, w * sx, h * sy


def clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))
