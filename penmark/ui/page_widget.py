"""
Widget showing one page: its raster, its annotation overlay and the
in-progress box preview.
"""
import math

from PyQt5.QtCore import QRectF, Qt
from PyQt5.QtGui import QColor, QPainter, QPen
from PyQt5.QtWidgets import QWidget

from penmark.core.annotations.painter import paint_layers, shape_color
from penmark.core.page.surfaces import CURSOR_ERASE
from penmark.core.strokes.engine import PointerEvent, PointerKind

PLACEHOLDER_SIZE = (612, 792)


class PageWidget(QWidget):
    """Displays one page and forwards mouse input to the session."""

    def __init__(self, session, page_index: int, parent=None):
        super().__init__(parent)
        self.session = session
        self.page_index = page_index
        self.setAttribute(Qt.WA_OpaquePaintEvent)
        self.setFixedSize(*PLACEHOLDER_SIZE)

    def refresh(self):
        """Pick up a newly committed raster/overlay for this page."""
        geometry = self.session.surfaces.geometry(self.page_index)
        if geometry is not None:
            self.setFixedSize(math.ceil(geometry.width_px), math.ceil(geometry.height_px))
        self.update_cursor()
        self.update()

    def update_cursor(self):
        overlay = self.session.surfaces.overlay(self.page_index)
        if overlay is not None and overlay.cursor == CURSOR_ERASE:
            self.setCursor(Qt.ForbiddenCursor)
        else:
            self.setCursor(Qt.CrossCursor)

    # ===== Painting =====

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), Qt.white)

        surfaces = self.session.surfaces
        raster = surfaces.raster(self.page_index)
        overlay = surfaces.overlay(self.page_index)
        if raster is None or overlay is None:
            painter.end()
            return

        geometry = overlay.geometry
        target = QRectF(0, 0, geometry.width_px, geometry.height_px)
        painter.setRenderHint(QPainter.SmoothPixmapTransform)
        with raster.lock, overlay.lock:
            paint_layers(painter, raster.image, overlay.image, self.session.mode, target)

        preview = self.session.engine.preview(self.page_index)
        if preview is not None:
            rect = QRectF(preview.x, preview.y, preview.width, preview.height)
            painter.fillRect(rect, shape_color(preview.color, preview.opacity))
            pen = QPen(QColor(*preview.color), 1, Qt.DashLine)
            painter.setPen(pen)
            painter.drawRect(rect)

        painter.end()

    # ===== Mouse input =====

    def _send(self, kind: PointerKind, event):
        pos = event.pos()
        self.session.pointer_event(self.page_index, PointerEvent(kind, pos.x(), pos.y()))
        self.update()

    def mousePressEvent(self, event):
        if event.button() == Qt.LeftButton:
            # Qt grabs the mouse until release, so drags that wander off the
            # page keep reporting here
            self._send(PointerKind.DOWN, event)

    def mouseMoveEvent(self, event):
        if event.buttons() & Qt.LeftButton:
            self._send(PointerKind.MOVE, event)

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.LeftButton:
            self._send(PointerKind.UP, event)

    def leaveEvent(self, event):
        if self.session.engine.is_drawing(self.page_index):
            self.session.pointer_event(
                self.page_index, PointerEvent(PointerKind.LEAVE, 0.0, 0.0)
            )
            self.update()
        super().leaveEvent(event)
