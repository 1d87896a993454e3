"""
PDF reading (rasterization) and writing collaborators.
"""
from .executor import fitz_executor, run_in_fitz_thread
from .pdf_renderer import DocumentHandle, PdfRenderer
from .pdf_writer import PdfWriter

__all__ = [
    "DocumentHandle",
    "PdfRenderer",
    "PdfWriter",
    "fitz_executor",
    "run_in_fitz_thread",
]
