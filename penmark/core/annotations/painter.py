"""
Pixel operations shared by the on-screen preview and the exporter.

Both paths composite through `paint_layers`, so the exported page uses
exactly the blend rule the user saw while drawing.
"""
from typing import Iterable, Optional

from PyQt5.QtCore import QLineF, QPointF, QRectF, Qt
from PyQt5.QtGui import QColor, QImage, QPainter, QPen

from penmark.core.geometry import DevicePoint, normalized_rect_to_device
from penmark.core.page.surfaces import OverlaySurface

from .models import RGB, AnnotationMode, HighlightShape


def composition_mode(mode: AnnotationMode) -> QPainter.CompositionMode:
    """
    Blend rule used to lay an overlay onto its page.

    Boxes use straight alpha-over. Freehand ink uses multiply, which darkens
    like a highlighter pen and keeps text beneath it readable:
    ``result = page * (1 - a + a * ink)`` per channel on an opaque page.
    """
    if mode is AnnotationMode.FREEHAND:
        return QPainter.CompositionMode_Multiply
    return QPainter.CompositionMode_SourceOver


def paint_layers(
    painter: QPainter,
    raster: QImage,
    overlay: QImage,
    mode: AnnotationMode,
    target: Optional[QRectF] = None,
) -> None:
    """Draw a page raster, then its overlay with the mode's blend rule."""
    if target is None:
        target = QRectF(0, 0, raster.width(), raster.height())
    painter.save()
    painter.setCompositionMode(QPainter.CompositionMode_SourceOver)
    painter.drawImage(target, raster, QRectF(raster.rect()))
    painter.setCompositionMode(composition_mode(mode))
    painter.drawImage(target, overlay, QRectF(overlay.rect()))
    painter.restore()


def composite_page(raster: QImage, overlay: QImage, mode: AnnotationMode) -> QImage:
    """Flatten a raster and overlay into one opaque RGB image."""
    result = QImage(raster.width(), raster.height(), QImage.Format_RGB32)
    result.fill(Qt.white)
    painter = QPainter(result)
    try:
        paint_layers(painter, raster, overlay, mode)
    finally:
        painter.end()
    return result


def shape_color(color: RGB, opacity: float) -> QColor:
    return QColor(color[0], color[1], color[2], round(opacity * 255))


def paint_shapes(overlay: OverlaySurface, shapes: Iterable[HighlightShape]) -> None:
    """
    Repaint an overlay from scratch with the given shapes, in order.

    Replaying the same sequence always yields the same pixels.
    """
    geometry = overlay.geometry
    with overlay.lock:
        overlay.image.fill(Qt.transparent)
        painter = QPainter(overlay.image)
        try:
            painter.setPen(Qt.NoPen)
            painter.setCompositionMode(QPainter.CompositionMode_SourceOver)
            for shape in shapes:
                x, y, w, h = normalized_rect_to_device(
                    shape.x, shape.y, shape.w, shape.h, geometry
                )
                painter.fillRect(QRectF(x, y, w, h), shape_color(shape.color, shape.opacity))
        finally:
            painter.end()


def paint_segment(
    overlay: OverlaySurface,
    start: DevicePoint,
    end: DevicePoint,
    width: float,
    color: RGB,
    opacity: float,
    erase: bool = False,
) -> None:
    """
    Draw one round-capped stroke segment into an overlay.

    Ink replaces the pixels it covers instead of stacking on them, so the
    alpha of a stroke never exceeds `opacity`, even where segments overlap.
    Erasing clears covered pixels to full transparency.
    """
    with overlay.lock:
        painter = QPainter(overlay.image)
        try:
            painter.setRenderHint(QPainter.Antialiasing)
            if erase:
                painter.setCompositionMode(QPainter.CompositionMode_Clear)
                pen_color = QColor(0, 0, 0, 255)
            else:
                painter.setCompositionMode(QPainter.CompositionMode_Source)
                pen_color = shape_color(color, opacity)
            pen = QPen(pen_color, width)
            pen.setCapStyle(Qt.RoundCap)
            pen.setJoinStyle(Qt.RoundJoin)
            painter.setPen(pen)
            if start == end:
                painter.drawPoint(QPointF(start.x, start.y))
            else:
                painter.drawLine(QLineF(start.x, start.y, end.x, end.y))
        finally:
            painter.end()
