"""
Page surfaces and the render passes that create them.
"""
from .surface_manager import PageSurfaceManager
from .surfaces import (
    CURSOR_DRAW,
    CURSOR_ERASE,
    OverlaySurface,
    RasterSurface,
    Surface,
)

__all__ = [
    "PageSurfaceManager",
    "Surface",
    "RasterSurface",
    "OverlaySurface",
    "CURSOR_DRAW",
    "CURSOR_ERASE",
]
