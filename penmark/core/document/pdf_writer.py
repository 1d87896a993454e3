"""
Writing images and rectangles onto the pages of an existing PDF.

All coordinates are PDF points with a top-left origin on the page as displayed,
after its /Rotate is applied (PyMuPDF's `page.rect` space).
"""
import logging
from typing import Tuple

import fitz  # PyMuPDF

from penmark.core.errors import ExportError

logger = logging.getLogger(__name__)


class PdfWriter:
    """Thin wrapper over PyMuPDF's page drawing and save operations."""

    def load(self, data: bytes) -> fitz.Document:
        """Open the original document bytes for modification."""
        try:
            return fitz.open(stream=bytes(data), filetype="pdf")
        except Exception as e:
            raise ExportError(f"Failed to open PDF for export: {e}") from e

    def page_count(self, doc: fitz.Document) -> int:
        return doc.page_count

    def get_page_size(self, doc: fitz.Document, page_index: int) -> Tuple[float, float]:
        """
        Get the displayed size of a page in points (rotation applied).

        Args:
            doc: Document returned by `load`
            page_index: 0-based index of the page

        Returns:
            Tuple of (width, height) in points
        """
        rect = doc[page_index].rect
        return rect.width, rect.height

    def draw_image(
        self,
        doc: fitz.Document,
        page_index: int,
        image_bytes: bytes,
        x: float,
        y: float,
        width: float,
        height: float,
        opacity: float = 1.0,
    ) -> None:
        """Place an encoded image (PNG/JPEG) over a rectangle of a page."""
        try:
            page = doc[page_index]
            rect = fitz.Rect(x, y, x + width, y + height)
            # The image is drawn upright on the displayed page
            rotate = -page.rotation
            if opacity >= 1.0:
                page.insert_image(rect, stream=image_bytes, rotate=rotate)
                return

            pix = fitz.Pixmap(image_bytes)
            if not pix.alpha:
                pix = fitz.Pixmap(pix, 1)  # add an alpha channel
            alpha = max(0, min(255, round(opacity * 255)))
            pix.set_alpha(bytes([alpha]) * (pix.width * pix.height), premultiply=False)
            page.insert_image(rect, pixmap=pix, rotate=rotate)
        except Exception as e:
            raise ExportError(
                f"Failed to embed image on page {page_index + 1}: {e}", page_index
            ) from e

    def draw_rectangle(
        self,
        doc: fitz.Document,
        page_index: int,
        x: float,
        y: float,
        width: float,
        height: float,
        color: Tuple[int, int, int],
        opacity: float,
    ) -> None:
        """Draw a filled, borderless rectangle with the given fill opacity."""
        try:
            page = doc[page_index]
            # Drawing uses unrotated page space
            rect = fitz.Rect(x, y, x + width, y + height) * page.derotation_matrix
            fill = [c / 255.0 for c in color]  # PyMuPDF uses 0-1 range
            page.draw_rect(
                rect, color=None, fill=fill, fill_opacity=opacity, width=0, overlay=True
            )
        except Exception as e:
            raise ExportError(
                f"Failed to draw rectangle on page {page_index + 1}: {e}", page_index
            ) from e

    def save(self, doc: fitz.Document) -> bytes:
        """Serialize the modified document."""
        try:
            return doc.tobytes(garbage=4, deflate=True)
        except Exception as e:
            raise ExportError(f"Failed to serialize PDF: {e}") from e

    def close(self, doc: fitz.Document) -> None:
        doc.close()
