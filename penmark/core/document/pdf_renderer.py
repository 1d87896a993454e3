"""
PDF document loading and page rasterization.
"""
import logging
from dataclasses import dataclass, field
from typing import Tuple

import fitz  # PyMuPDF
from PyQt5.QtGui import QImage

from penmark.core.errors import ParseError, RenderError
from penmark.core.geometry import PageGeometry
from penmark.core.page.surfaces import RasterSurface

from .executor import run_in_fitz_thread

logger = logging.getLogger(__name__)


@dataclass
class DocumentHandle:
    """An opened PDF plus the page sizes read at load time."""

    doc: fitz.Document
    page_sizes: Tuple[Tuple[float, float], ...]  # (width, height) in points
    closed: bool = field(default=False, compare=False)

    @property
    def page_count(self) -> int:
        return len(self.page_sizes)

    def close(self) -> None:
        if not self.closed:
            self.doc.close()
            self.closed = True


def _open_document(data: bytes) -> DocumentHandle:
    if not data:
        raise ParseError("Error loading PDF: no data")

    try:
        doc = fitz.open(stream=bytes(data), filetype="pdf")
    except Exception as e:
        raise ParseError(f"Error loading PDF: {e}") from e

    if doc.needs_pass:
        doc.close()
        raise ParseError("Error loading PDF: document is password protected")
    if doc.page_count == 0:
        doc.close()
        raise ParseError("Error loading PDF: document has no pages")

    sizes = tuple((page.rect.width, page.rect.height) for page in doc)
    return DocumentHandle(doc=doc, page_sizes=sizes)


def _rasterize(doc: fitz.Document, page_index: int, device_scale: float) -> QImage:
    page = doc.load_page(page_index)
    mat = fitz.Matrix(device_scale, device_scale)
    pix = page.get_pixmap(matrix=mat, alpha=False)
    img = QImage(pix.samples, pix.width, pix.height, pix.stride, QImage.Format_RGB888)
    # Detach from the pixmap buffer before it is freed
    return img.copy()


class PdfRenderer:
    """Turns PDF bytes into a document handle and pages into pixels."""

    async def load(self, data: bytes) -> DocumentHandle:
        """
        Parse PDF bytes.

        Args:
            data: Raw PDF file content

        Returns:
            Handle usable with the other renderer methods

        Raises:
            ParseError: if the bytes are not a readable, unlocked PDF
        """
        handle = await run_in_fitz_thread(_open_document, data)
        logger.info("Loaded PDF with %d page(s)", handle.page_count)
        return handle

    def page_count(self, handle: DocumentHandle) -> int:
        return handle.page_count

    def get_page_geometry(
        self, handle: DocumentHandle, page_index: int, scale: float, dpr: float = 1.0
    ) -> PageGeometry:
        """Geometry of a page rendered at `scale` on a `dpr` display."""
        width, height = handle.page_sizes[page_index]
        return PageGeometry(
            page_index=page_index,
            width_px=width * scale,
            height_px=height * scale,
            scale=scale,
            dpr=dpr,
        )

    async def render_page(
        self,
        handle: DocumentHandle,
        page_index: int,
        scale: float,
        target: RasterSurface,
    ) -> None:
        """
        Paint page content into `target`.

        The surface's device pixel ratio decides the final pixel density.

        Raises:
            RenderError: if the page could not be rasterized
        """
        if handle.closed or not 0 <= page_index < handle.page_count:
            raise RenderError(page_index, f"Page {page_index + 1} is not available")

        try:
            image = await run_in_fitz_thread(
                _rasterize, handle.doc, page_index, scale * target.geometry.dpr
            )
        except Exception as e:
            raise RenderError(
                page_index, f"Error rendering page {page_index + 1}: {e}"
            ) from e

        target.paint_image(image)
