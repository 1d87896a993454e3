"""
Toolbar components for highlighting.
"""
from .highlight_toolbar import HighlightToolbar

__all__ = ['HighlightToolbar']
