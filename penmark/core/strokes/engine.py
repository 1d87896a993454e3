"""
Turns pointer input into highlight shapes (box mode) or overlay ink
(freehand mode).
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional, Tuple

from penmark.core.annotations.models import AnnotationMode, HighlightShape, ToolState
from penmark.core.annotations.painter import paint_segment
from penmark.core.annotations.store import AnnotationStore
from penmark.core.geometry import PageGeometry, clamp_unit, to_normalized
from penmark.core.page.surface_manager import PageSurfaceManager
from penmark.core.page.surfaces import OverlaySurface

if TYPE_CHECKING:
    from penmark.config import HighlighterSettings

logger = logging.getLogger(__name__)


class PointerKind(Enum):
    DOWN = "down"
    MOVE = "move"
    UP = "up"
    LEAVE = "leave"


@dataclass(frozen=True)
class PointerEvent:
    """Pointer input in logical pixels relative to the page's top-left corner."""

    kind: PointerKind
    x: float
    y: float
    pointer_id: int = 0


@dataclass(frozen=True)
class InputContext:
    """Tool state and mode as they are at the moment of one input event."""

    tools: ToolState
    mode: AnnotationMode


@dataclass(frozen=True)
class BoxPreview:
    """Rubber-band rectangle shown while a box drag is in progress."""

    x: float
    y: float
    width: float
    height: float
    color: Tuple[int, int, int]
    opacity: float


@dataclass
class _Stroke:
    pointer_id: int
    overlay: OverlaySurface
    start: Tuple[float, float]
    last: Tuple[float, float]
    preview: Optional[BoxPreview] = None


StrokeResult = Optional[HighlightShape]


class StrokeEngine:
    """
    Applies pointer events to the active page's overlay or shape list.

    Tool settings are read from the context passed with every event, so a
    tool change mid-stroke applies to the next segment. The pointer that
    pressed owns the stroke (capture) until it is released or leaves; events
    from other pointers on that page are ignored meanwhile.
    """

    def __init__(
        self,
        surfaces: PageSurfaceManager,
        store: AnnotationStore,
        settings: "HighlighterSettings",
    ):
        self.surfaces = surfaces
        self.store = store
        self.settings = settings
        self._strokes: Dict[int, _Stroke] = {}

    # ===== State queries =====

    def is_drawing(self, page_index: int) -> bool:
        return page_index in self._strokes

    def preview(self, page_index: int) -> Optional[BoxPreview]:
        stroke = self._strokes.get(page_index)
        return stroke.preview if stroke else None

    def cancel_all(self) -> None:
        """Forget every in-progress stroke (e.g. when pages are re-rendered)."""
        self._strokes.clear()

    # ===== Event dispatch =====

    def handle(
        self, page_index: int, event: PointerEvent, context: InputContext
    ) -> StrokeResult:
        """
        Process one pointer event for a page.

        Returns:
            The shape committed or erased by this event in box mode, else None
        """
        overlay = self.surfaces.overlay(page_index)
        if overlay is None:
            # Page not rendered (yet); nothing to draw on
            self._strokes.pop(page_index, None)
            return None

        if event.kind is PointerKind.DOWN:
            return self._pointer_down(page_index, overlay, event, context)

        stroke = self._strokes.get(page_index)
        if stroke is None or stroke.pointer_id != event.pointer_id:
            return None
        if stroke.overlay is not overlay:
            # The page was re-rendered under the stroke
            del self._strokes[page_index]
            return None

        if event.kind is PointerKind.MOVE:
            self._pointer_move(stroke, event, context)
            return None

        # UP or LEAVE releases the capture and ends the stroke
        del self._strokes[page_index]
        return self._pointer_up(page_index, stroke, event, context)

    def _pointer_down(
        self,
        page_index: int,
        overlay: OverlaySurface,
        event: PointerEvent,
        context: InputContext,
    ) -> StrokeResult:
        # A new press ends any dangling stroke on this page
        self._strokes.pop(page_index, None)
        point = (event.x, event.y)

        if context.mode is AnnotationMode.BOX and context.tools.eraser:
            return self._erase_shape_at(page_index, overlay.geometry, point)

        stroke = _Stroke(event.pointer_id, overlay, start=point, last=point)
        self._strokes[page_index] = stroke
        if context.mode is AnnotationMode.FREEHAND:
            self._draw_segment(stroke, point, context.tools)
        return None

    def _pointer_move(
        self, stroke: _Stroke, event: PointerEvent, context: InputContext
    ) -> None:
        point = (event.x, event.y)
        if context.mode is AnnotationMode.FREEHAND:
            self._draw_segment(stroke, point, context.tools)
        elif context.tools.eraser:
            # Eraser turned on mid-drag: the box is abandoned
            stroke.preview = None
        else:
            stroke.preview = self._box_preview(stroke.start, point, context.tools)
        stroke.last = point

    def _pointer_up(
        self,
        page_index: int,
        stroke: _Stroke,
        event: PointerEvent,
        context: InputContext,
    ) -> StrokeResult:
        point = (event.x, event.y) if event.kind is PointerKind.UP else stroke.last
        if context.mode is AnnotationMode.FREEHAND:
            if point != stroke.last:
                self._draw_segment(stroke, point, context.tools)
            return None
        if context.tools.eraser:
            logger.debug("Dropping box drag on page %d, eraser is active", page_index + 1)
            return None
        if stroke.start == point and stroke.preview is None:
            # Plain click without a drag
            return None
        preview = self._box_preview(stroke.start, point, context.tools)
        return self._commit_box(page_index, stroke.overlay.geometry, preview, context.tools)

    # ===== Box mode =====

    def _box_preview(
        self, start: Tuple[float, float], current: Tuple[float, float], tools: ToolState
    ) -> BoxPreview:
        x0, y0 = min(start[0], current[0]), min(start[1], current[1])
        width = abs(current[0] - start[0])
        height = abs(current[1] - start[1])
        if height < 1.0:
            # A flat drag marks a line of text: give it the marker's thickness
            height = tools.thickness
            y0 = start[1] - height / 2
        return BoxPreview(
            x0, y0, width, height, tools.color, self.settings.clamp_opacity(tools.opacity)
        )

    def _commit_box(
        self,
        page_index: int,
        geometry: PageGeometry,
        preview: BoxPreview,
        tools: ToolState,
    ) -> Optional[HighlightShape]:
        # Clip to the page
        x0 = max(0.0, preview.x)
        y0 = max(0.0, preview.y)
        x1 = min(geometry.width_px, preview.x + preview.width)
        y1 = min(geometry.height_px, preview.y + preview.height)
        width, height = x1 - x0, y1 - y0

        minimum = self.settings.min_box_size
        if width < minimum or height < minimum:
            logger.debug(
                "Discarding %.1fx%.1f px drag on page %d", width, height, page_index + 1
            )
            return None

        top_left = to_normalized(geometry.logical_to_device(x0, y0), geometry)
        bottom_right = to_normalized(geometry.logical_to_device(x1, y1), geometry)
        nx, ny = clamp_unit(top_left.x), clamp_unit(top_left.y)
        shape = HighlightShape(
            page_index=page_index,
            x=nx,
            y=ny,
            w=clamp_unit(bottom_right.x) - nx,
            h=clamp_unit(bottom_right.y) - ny,
            color=tools.color,
            opacity=self.settings.clamp_opacity(tools.opacity),
        )
        self.store.append(page_index, shape)
        return shape

    def _erase_shape_at(
        self, page_index: int, geometry: PageGeometry, point: Tuple[float, float]
    ) -> Optional[HighlightShape]:
        target = to_normalized(geometry.logical_to_device(*point), geometry)
        shape = self.store.shape_at(page_index, target.x, target.y)
        if shape is None:
            return None
        return self.store.remove(page_index, shape.id)

    # ===== Freehand mode =====

    def _draw_segment(
        self, stroke: _Stroke, point: Tuple[float, float], tools: ToolState
    ) -> None:
        geometry = stroke.overlay.geometry
        paint_segment(
            stroke.overlay,
            geometry.logical_to_device(*stroke.last),
            geometry.logical_to_device(*point),
            width=tools.thickness * geometry.dpr,
            color=tools.color,
            opacity=self.settings.clamp_opacity(tools.opacity),
            erase=tools.eraser,
        )
