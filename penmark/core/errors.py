"""
Exception types raised by the highlighting pipeline.
"""
from typing import Optional


class PenmarkError(Exception):
    """Base class for all pipeline errors."""


class ParseError(PenmarkError):
    """The input bytes are not a readable PDF document."""


class RenderError(PenmarkError):
    """A single page failed to rasterize."""

    def __init__(self, page_index: int, message: str = ""):
        self.page_index = page_index
        super().__init__(message or f"Failed to render page {page_index + 1}")


class ExportError(PenmarkError):
    """The annotated document could not be composed or serialized."""

    def __init__(self, message: str, page_index: Optional[int] = None):
        self.page_index = page_index
        super().__init__(message)


class ConfigError(PenmarkError):
    """Settings file could not be parsed or holds invalid values."""
