"""
Core highlighting pipeline: coordinates, page surfaces, strokes, annotations
and export.
"""
from .errors import ConfigError, ExportError, ParseError, PenmarkError, RenderError
from .geometry import DevicePoint, NormalizedPoint, PageGeometry, to_device, to_normalized

__all__ = [
    "PenmarkError",
    "ParseError",
    "RenderError",
    "ExportError",
    "ConfigError",
    "PageGeometry",
    "DevicePoint",
    "NormalizedPoint",
    "to_device",
    "to_normalized",
]
