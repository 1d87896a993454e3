"""
Penmark - highlight PDFs on screen and export exactly what you see.
"""

__version__ = "0.1.0"
