"""
Rebuilds every annotated page as the user sees it and writes the result
into a copy of the original PDF.
"""
import logging
from typing import TYPE_CHECKING, Callable, Mapping, Optional, Sequence

from PyQt5.QtCore import QBuffer, QIODevice
from PyQt5.QtGui import QImage

from penmark.core.annotations.models import AnnotationMode, HighlightShape
from penmark.core.annotations.painter import composite_page
from penmark.core.document.executor import run_in_fitz_thread
from penmark.core.errors import ExportError, RenderError
from penmark.core.page.surfaces import OverlaySurface, RasterSurface

if TYPE_CHECKING:
    from penmark.core.document import DocumentHandle, PdfRenderer, PdfWriter

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]  # current, total pages


def image_to_png(image: QImage) -> bytes:
    """Encode a QImage as PNG bytes."""
    buffer = QBuffer()
    buffer.open(QIODevice.WriteOnly)
    try:
        if not image.save(buffer, "PNG"):
            raise ExportError("Failed to encode page image as PNG")
        return bytes(buffer.data())
    finally:
        buffer.close()


class ExportCompositor:
    """Produces annotated PDF bytes from page overlays or highlight shapes."""

    def __init__(self, renderer: "PdfRenderer", writer: "PdfWriter"):
        self.renderer = renderer
        self.writer = writer

    def compose_page(
        self, raster: RasterSurface, overlay: OverlaySurface, mode: AnnotationMode
    ) -> QImage:
        """Flatten one page with the same blend rule as the on-screen preview."""
        return composite_page(raster.snapshot(), overlay.snapshot(), mode)

    async def export(
        self,
        handle: "DocumentHandle",
        original_bytes: bytes,
        overlays: Mapping[int, OverlaySurface],
        mode: AnnotationMode,
        progress: Optional[ProgressCallback] = None,
    ) -> bytes:
        """
        Export by flattening each annotated page into a full-page image.

        Each page is re-rendered at its overlay's own scale and pixel ratio,
        so page and overlay pixels line up exactly. Pages whose overlay holds
        no ink are left untouched.

        Args:
            handle: Open document used to re-render pages
            original_bytes: Bytes of the document as opened
            overlays: Newest overlay per page index
            mode: Annotation mode deciding the blend rule
            progress: Optional callback receiving (current, total) pages

        Returns:
            Bytes of the annotated PDF

        Raises:
            ExportError: if a page cannot be rendered, embedded or saved
        """
        doc = await run_in_fitz_thread(self.writer.load, original_bytes)
        try:
            total = await run_in_fitz_thread(self.writer.page_count, doc)
            flattened = 0
            for page_index in range(total):
                if progress is not None:
                    progress(page_index, total)

                overlay = overlays.get(page_index)
                if overlay is None or overlay.is_blank():
                    continue

                raster = RasterSurface(overlay.geometry)
                try:
                    await self.renderer.render_page(
                        handle, page_index, overlay.geometry.scale, raster
                    )
                except RenderError as e:
                    raise ExportError(str(e), page_index) from e

                png = image_to_png(self.compose_page(raster, overlay, mode))
                width, height = await run_in_fitz_thread(
                    self.writer.get_page_size, doc, page_index
                )
                await run_in_fitz_thread(
                    self.writer.draw_image, doc, page_index, png, 0, 0, width, height
                )
                flattened += 1

            if progress is not None:
                progress(total, total)
            data = await run_in_fitz_thread(self.writer.save, doc)
        finally:
            await run_in_fitz_thread(self.writer.close, doc)

        logger.info("Exported PDF with %d flattened page(s)", flattened)
        return data

    async def export_vector(
        self,
        original_bytes: bytes,
        shapes_by_page: Mapping[int, Sequence[HighlightShape]],
    ) -> bytes:
        """
        Export box highlights as filled, semi-transparent PDF rectangles.

        Page content stays vector; normalized shapes map straight onto the
        page's point size.
        """
        doc = await run_in_fitz_thread(self.writer.load, original_bytes)
        try:
            await run_in_fitz_thread(self._draw_shapes, doc, shapes_by_page)
            data = await run_in_fitz_thread(self.writer.save, doc)
        finally:
            await run_in_fitz_thread(self.writer.close, doc)

        logger.info(
            "Exported PDF with %d vector highlight(s)",
            sum(len(shapes) for shapes in shapes_by_page.values()),
        )
        return data

    def _draw_shapes(self, doc, shapes_by_page: Mapping[int, Sequence[HighlightShape]]):
        total = self.writer.page_count(doc)
        for page_index, shapes in shapes_by_page.items():
            if page_index >= total:
                continue
            width, height = self.writer.get_page_size(doc, page_index)
            for shape in shapes:
                self.writer.draw_rectangle(
                    doc,
                    page_index,
                    shape.x * width,
                    shape.y * height,
                    shape.w * width,
                    shape.h * height,
                    shape.color,
                    shape.opacity,
                )
