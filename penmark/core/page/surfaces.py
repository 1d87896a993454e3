"""
Pixel surfaces backing one rendered page: an opaque base raster and a
transparent overlay that holds only annotation pixels.
"""
import threading
from typing import Tuple

from PyQt5.QtCore import QRectF, Qt
from PyQt5.QtGui import QColor, QImage, QPainter

from penmark.core.geometry import PageGeometry

CURSOR_DRAW = "crosshair"
CURSOR_ERASE = "not-allowed"


class Surface:
    """
    A device-pixel QImage sized from a page geometry.

    Painting and reads go through `lock` so the GUI thread (strokes) and the
    render thread (registration, export) never interleave pixel writes.
    """

    IMAGE_FORMAT = QImage.Format_ARGB32_Premultiplied

    def __init__(self, geometry: PageGeometry):
        self.geometry = geometry
        self.image = QImage(
            geometry.device_width, geometry.device_height, self.IMAGE_FORMAT
        )
        self.lock = threading.RLock()
        self._fill()

    def _fill(self) -> None:
        self.image.fill(Qt.transparent)

    @property
    def page_index(self) -> int:
        return self.geometry.page_index

    @property
    def width(self) -> int:
        return self.image.width()

    @property
    def height(self) -> int:
        return self.image.height()

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def snapshot(self) -> QImage:
        """Return a detached copy of the current pixels."""
        with self.lock:
            return self.image.copy()

    def rgba_at(self, x: int, y: int) -> Tuple[int, int, int, int]:
        """Straight (non-premultiplied) RGBA of one device pixel."""
        with self.lock:
            pixel = self.image.copy(x, y, 1, 1).convertToFormat(QImage.Format_ARGB32)
        color = QColor.fromRgba(pixel.pixel(0, 0))
        return color.red(), color.green(), color.blue(), color.alpha()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(page={self.page_index}, "
            f"size={self.width}x{self.height}, scale={self.geometry.scale:.2f})"
        )


class RasterSurface(Surface):
    """Opaque page bitmap; starts out as a blank white sheet."""

    IMAGE_FORMAT = QImage.Format_RGB32

    def _fill(self) -> None:
        self.image.fill(Qt.white)

    def paint_image(self, image: QImage) -> None:
        """Paint rendered page content at the surface origin."""
        with self.lock:
            painter = QPainter(self.image)
            try:
                painter.drawImage(0, 0, image)
            finally:
                painter.end()


class OverlaySurface(Surface):
    """Transparent annotation layer drawn above a page raster."""

    def __init__(self, geometry: PageGeometry, generation: int = 0):
        super().__init__(geometry)
        self.generation = generation
        self.cursor = CURSOR_DRAW

    def clear(self) -> None:
        with self.lock:
            self.image.fill(Qt.transparent)

    def resample_from(self, previous: "OverlaySurface") -> None:
        """
        Copy another overlay's pixels into this one, stretched to this size.

        Used when a page is re-rendered at a new scale or pixel density so
        existing ink keeps its place on the page.
        """
        source = previous.snapshot()
        with self.lock:
            painter = QPainter(self.image)
            try:
                painter.setRenderHint(QPainter.SmoothPixmapTransform)
                painter.setCompositionMode(QPainter.CompositionMode_Source)
                painter.drawImage(
                    QRectF(0, 0, self.width, self.height),
                    source,
                    QRectF(0, 0, source.width(), source.height()),
                )
            finally:
                painter.end()

    def is_blank(self) -> bool:
        """True when no pixel carries any ink."""
        with self.lock:
            bits = self.image.constBits()
            bits.setsize(self.image.sizeInBytes())
            return not bytes(bits).strip(b"\x00")
