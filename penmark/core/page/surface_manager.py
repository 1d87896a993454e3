"""
Per-page raster and overlay surfaces, and the render passes that build them.
"""
import logging
import threading
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Set

from penmark.core.errors import RenderError
from penmark.core.geometry import PageGeometry

from .surfaces import CURSOR_DRAW, CURSOR_ERASE, OverlaySurface, RasterSurface

if TYPE_CHECKING:
    from penmark.core.document import DocumentHandle, PdfRenderer

logger = logging.getLogger(__name__)

PageReadyCallback = Callable[[int, OverlaySurface], None]


class PageSurfaceManager:
    """
    Owns the registry of page surfaces, indexed by page.

    Every `render_all` call starts a new render generation. A pass re-checks
    its generation after each suspension point and stops, without touching the
    registry, once a newer pass has started. Pages committed before that point
    stay registered.
    """

    def __init__(self, renderer: "PdfRenderer", device_pixel_ratio: float = 1.0):
        self.renderer = renderer
        self.device_pixel_ratio = device_pixel_ratio

        self._lock = threading.RLock()
        self._generation = 0
        self._rasters: Dict[int, RasterSurface] = {}
        self._overlays: Dict[int, OverlaySurface] = {}

        # Overlays of the previous generation not yet replaced by the current
        # one; their ink is resampled into the replacement when it is created.
        self._carried: Dict[int, OverlaySurface] = {}

        self._eraser_cursor = False
        self.failed_pages: Set[int] = set()
        self._listeners: List[PageReadyCallback] = []

    # ===== Generation tracking =====

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._generation

    def _begin_generation(self) -> int:
        with self._lock:
            self._generation += 1
            self._carried.update(self._overlays)
            self._overlays = {}
            self._rasters = {}
            self.failed_pages.clear()
            return self._generation

    def reset(self) -> None:
        """Drop every surface, including carried ink, and cancel in-flight passes."""
        with self._lock:
            self._generation += 1
            self._overlays.clear()
            self._rasters.clear()
            self._carried.clear()
            self.failed_pages.clear()

    def subscribe(self, callback: PageReadyCallback) -> None:
        """Register a callback fired after a page's surfaces are committed."""
        self._listeners.append(callback)

    def _notify(self, page_index: int, overlay: OverlaySurface) -> None:
        for callback in list(self._listeners):
            callback(page_index, overlay)

    # ===== Rendering =====

    async def render_all(self, handle: "DocumentHandle", scale: float) -> bool:
        """
        Render every page of `handle` at `scale`, in page order.

        Args:
            handle: Document to render
            scale: Effective render scale (base scale times zoom)

        Returns:
            True if all pages were committed, False if superseded
        """
        token = self._begin_generation()
        total = self.renderer.page_count(handle)

        for page_index in range(total):
            if not self.is_current(token):
                logger.debug(
                    "Render pass %d superseded before page %d", token, page_index + 1
                )
                return False

            geometry = self.renderer.get_page_geometry(
                handle, page_index, scale, self.device_pixel_ratio
            )
            raster = RasterSurface(geometry)
            failed = False
            try:
                await self.renderer.render_page(handle, page_index, scale, raster)
            except RenderError as e:
                logger.warning("%s", e)
                failed = True

            overlay = self._commit(token, raster, failed)
            if overlay is None:
                logger.debug(
                    "Render pass %d superseded during page %d", token, page_index + 1
                )
                return False
            self._notify(page_index, overlay)

        logger.debug("Render pass %d finished %d page(s) at %.2fx", token, total, scale)
        return True

    def _commit(
        self, token: int, raster: RasterSurface, failed: bool
    ) -> Optional[OverlaySurface]:
        # Check-then-register under one lock so a newer pass cannot reset
        # the registry in between.
        with self._lock:
            if token != self._generation:
                return None

            page_index = raster.page_index
            overlay = OverlaySurface(raster.geometry, generation=token)
            overlay.cursor = CURSOR_ERASE if self._eraser_cursor else CURSOR_DRAW

            previous = self._carried.pop(page_index, None)
            if previous is not None:
                overlay.resample_from(previous)

            self._rasters[page_index] = raster
            self._overlays[page_index] = overlay
            if failed:
                self.failed_pages.add(page_index)
            return overlay

    async def rerender_page(self, handle: "DocumentHandle", page_index: int) -> bool:
        """
        Retry rasterization of one registered page at its current geometry.

        The overlay is kept as is; only the base raster is replaced.

        Returns:
            True if the new raster was committed
        """
        with self._lock:
            token = self._generation
            overlay = self._overlays.get(page_index)
        if overlay is None:
            return False

        raster = RasterSurface(overlay.geometry)
        try:
            await self.renderer.render_page(
                handle, page_index, overlay.geometry.scale, raster
            )
        except RenderError as e:
            logger.warning("%s", e)
            return False

        with self._lock:
            if token != self._generation or self._overlays.get(page_index) is not overlay:
                return False
            self._rasters[page_index] = raster
            self.failed_pages.discard(page_index)
        self._notify(page_index, overlay)
        return True

    # ===== Registry access =====

    def overlay(self, page_index: int) -> Optional[OverlaySurface]:
        with self._lock:
            return self._overlays.get(page_index)

    def raster(self, page_index: int) -> Optional[RasterSurface]:
        with self._lock:
            return self._rasters.get(page_index)

    def geometry(self, page_index: int) -> Optional[PageGeometry]:
        overlay = self.overlay(page_index)
        return overlay.geometry if overlay is not None else None

    def page_indices(self) -> List[int]:
        with self._lock:
            return sorted(self._overlays)

    def latest_overlays(self) -> Dict[int, OverlaySurface]:
        """
        Newest overlay per page: the registered one, or the previous
        generation's overlay for pages the current pass has not reached yet.
        """
        with self._lock:
            latest = dict(self._carried)
            latest.update(self._overlays)
            return latest

    # ===== Pointer affordance =====

    @property
    def eraser_cursor(self) -> bool:
        return self._eraser_cursor

    def set_eraser_cursor_hint(self, active: bool) -> None:
        """Switch the cursor shown over every overlay between draw and erase."""
        with self._lock:
            self._eraser_cursor = active
            cursor = CURSOR_ERASE if active else CURSOR_DRAW
            for overlay in self._overlays.values():
                overlay.cursor = cursor
