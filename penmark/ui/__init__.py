"""
Qt user interface for the highlighter.
"""
from .main_window import MainWindow

__all__ = ['MainWindow']
