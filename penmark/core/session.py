"""
One highlighting session: the open document, its page surfaces, the
annotation state and the current tools.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from penmark.config import HighlighterSettings
from penmark.core.annotations.models import (
    RGB,
    AnnotationMode,
    HighlightShape,
    ToolState,
    hex_to_rgb,
)
from penmark.core.annotations.painter import paint_shapes
from penmark.core.annotations.store import AnnotationStore
from penmark.core.document import DocumentHandle, PdfRenderer, PdfWriter, run_in_fitz_thread
from penmark.core.errors import ExportError, ParseError
from penmark.core.export.compositor import ExportCompositor, ProgressCallback
from penmark.core.export.files import suggest_export_path, write_export
from penmark.core.page.surface_manager import PageSurfaceManager
from penmark.core.page.surfaces import OverlaySurface
from penmark.core.strokes.engine import InputContext, PointerEvent, PointerKind, StrokeEngine

logger = logging.getLogger(__name__)


class HighlighterSession:
    """
    Wires the renderer, surface manager, stroke engine, annotation store and
    export compositor together for one document at a time.

    Tool state lives here and is handed to the stroke engine with every
    pointer event.
    """

    def __init__(
        self,
        settings: Optional[HighlighterSettings] = None,
        renderer: Optional[PdfRenderer] = None,
        writer: Optional[PdfWriter] = None,
        device_pixel_ratio: float = 1.0,
    ):
        self.settings = settings or HighlighterSettings()
        self.renderer = renderer or PdfRenderer()
        self.writer = writer or PdfWriter()
        self.mode = self.settings.annotation_mode

        self.store = AnnotationStore(self.settings.history_size)
        self.surfaces = PageSurfaceManager(self.renderer, device_pixel_ratio)
        self.engine = StrokeEngine(self.surfaces, self.store, self.settings)
        self.compositor = ExportCompositor(self.renderer, self.writer)

        self.tools = ToolState(
            color=hex_to_rgb(self.settings.default_color),
            opacity=self.settings.clamp_opacity(self.settings.default_opacity),
            thickness=self.settings.clamp_thickness(self.settings.default_thickness),
        )
        self.scale = self.settings.base_scale

        self.handle: Optional[DocumentHandle] = None
        self.original_bytes: Optional[bytes] = None
        self.source_path: Optional[Path] = None
        self._ink_changed = False

        self.store.subscribe(self._repaint_page)
        self.surfaces.subscribe(self._on_page_rendered)

    # ===== Document lifecycle =====

    @property
    def has_document(self) -> bool:
        return self.handle is not None

    @property
    def page_count(self) -> int:
        return self.handle.page_count if self.handle else 0

    async def open_document(
        self, data: bytes, source_path: Optional[Union[str, Path]] = None
    ) -> DocumentHandle:
        """
        Replace the open document with a new one.

        Raises:
            ParseError: if `data` is not a readable PDF; the previous
                document and its annotations are left as they were
        """
        handle = await self.renderer.load(data)

        previous = self.handle
        self.surfaces.reset()
        self.engine.cancel_all()
        self.store.clear()
        self._ink_changed = False

        self.handle = handle
        self.original_bytes = bytes(data)
        self.source_path = Path(source_path) if source_path else None

        if previous is not None:
            await run_in_fitz_thread(previous.close)

        logger.info(
            "Opened %s (%d page(s))", self.source_path or "document", handle.page_count
        )
        return handle

    async def open_file(self, path: Union[str, Path]) -> DocumentHandle:
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise ParseError(f"Cannot read {path}: {e}") from e
        return await self.open_document(data, source_path=path)

    async def close(self) -> None:
        """Discard the document and every surface and annotation derived from it."""
        previous = self.handle
        self.surfaces.reset()
        self.engine.cancel_all()
        self.store.clear()
        self.handle = None
        self.original_bytes = None
        self.source_path = None
        self._ink_changed = False
        if previous is not None:
            await run_in_fitz_thread(previous.close)

    # ===== Rendering and zoom =====

    @property
    def zoom(self) -> float:
        return self.scale / self.settings.base_scale

    async def render(self) -> bool:
        """
        Render all pages at the current scale.

        Returns:
            True if the pass completed, False if a newer pass superseded it
        """
        if self.handle is None:
            return False
        return await self.surfaces.render_all(self.handle, self.scale)

    async def set_scale(self, scale: float) -> bool:
        self.scale = round(self.settings.clamp_scale(scale), 2)
        return await self.render()

    async def zoom_in(self) -> bool:
        return await self.set_scale(self.scale + self.settings.zoom_step)

    async def zoom_out(self) -> bool:
        return await self.set_scale(self.scale - self.settings.zoom_step)

    async def retry_failed_pages(self) -> List[int]:
        """Re-render pages whose rasterization failed; return those recovered."""
        if self.handle is None:
            return []
        recovered = []
        for page_index in sorted(self.surfaces.failed_pages):
            if await self.surfaces.rerender_page(self.handle, page_index):
                recovered.append(page_index)
        return recovered

    def _on_page_rendered(self, page_index: int, overlay: OverlaySurface) -> None:
        if self.mode is AnnotationMode.BOX:
            paint_shapes(overlay, self.store.get(page_index))

    def _repaint_page(self, page_index: int) -> None:
        if self.mode is not AnnotationMode.BOX:
            return
        overlay = self.surfaces.overlay(page_index)
        if overlay is not None:
            paint_shapes(overlay, self.store.get(page_index))

    # ===== Tools =====

    def select_color(self, color: Union[str, RGB]) -> None:
        """Pick a highlight color; this also turns the eraser off."""
        rgb = hex_to_rgb(color) if isinstance(color, str) else tuple(color)
        self.tools = self.tools.with_color(rgb)
        self.surfaces.set_eraser_cursor_hint(False)

    def set_opacity(self, opacity: float) -> None:
        self.tools = self.tools.with_opacity(self.settings.clamp_opacity(opacity))

    def set_thickness(self, thickness: float) -> None:
        self.tools = self.tools.with_thickness(self.settings.clamp_thickness(thickness))

    def set_eraser(self, active: bool) -> None:
        self.tools = self.tools.with_eraser(active)
        self.surfaces.set_eraser_cursor_hint(active)

    def set_mode(self, mode: AnnotationMode) -> None:
        """
        Switch annotation representation. Shapes and ink do not convert
        between modes, so existing annotations are cleared.
        """
        if mode is self.mode:
            return
        self.engine.cancel_all()
        self.store.clear()
        for overlay in self.surfaces.latest_overlays().values():
            overlay.clear()
        self._ink_changed = False
        self.mode = mode

    # ===== Input =====

    def pointer_event(self, page_index: int, event: PointerEvent) -> Optional[HighlightShape]:
        """Forward one pointer event with the tool state as it is right now."""
        context = InputContext(tools=self.tools, mode=self.mode)
        result = self.engine.handle(page_index, event, context)
        if (
            self.mode is AnnotationMode.FREEHAND
            and event.kind is PointerKind.DOWN
            and self.surfaces.overlay(page_index) is not None
        ):
            self._ink_changed = True
        return result

    def undo(self) -> List[int]:
        return self.store.undo()

    def redo(self) -> List[int]:
        return self.store.redo()

    @property
    def has_unsaved_changes(self) -> bool:
        if self.mode is AnnotationMode.FREEHAND:
            return self._ink_changed
        return self.store.has_changes

    # ===== Export =====

    def export_overlays(self) -> Dict[int, OverlaySurface]:
        """
        Overlays to flatten on export.

        Freehand ink is exported from the live overlays. Box shapes are
        replayed onto fresh overlays, so pages whose current render pass has
        not finished are still exported at their registered or expected
        geometry.
        """
        if self.mode is AnnotationMode.FREEHAND:
            return self.surfaces.latest_overlays()

        overlays = {}
        for page_index in self.store.pages():
            geometry = self.surfaces.geometry(page_index)
            if geometry is None:
                geometry = self.renderer.get_page_geometry(
                    self.handle, page_index, self.scale, self.surfaces.device_pixel_ratio
                )
            overlay = OverlaySurface(geometry)
            paint_shapes(overlay, self.store.get(page_index))
            overlays[page_index] = overlay
        return overlays

    async def export(self, progress: Optional[ProgressCallback] = None) -> bytes:
        """
        Produce PDF bytes reproducing the annotated pages.

        Raises:
            ExportError: on any failure; annotation state is kept for a retry
        """
        if self.handle is None or self.original_bytes is None:
            raise ExportError("No document is open")

        try:
            if (
                self.mode is AnnotationMode.BOX
                and self.settings.export_strategy == "vector"
            ):
                shapes = {i: self.store.get(i) for i in self.store.pages()}
                data = await self.compositor.export_vector(self.original_bytes, shapes)
            else:
                data = await self.compositor.export(
                    self.handle,
                    self.original_bytes,
                    self.export_overlays(),
                    self.mode,
                    progress,
                )
        except ExportError as e:
            logger.error("Export failed: %s", e)
            raise

        self.store.mark_saved()
        self._ink_changed = False
        return data

    async def export_to_file(
        self,
        output_path: Optional[Union[str, Path]] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> Path:
        """Export and write the PDF, by default as `annotated.pdf` beside the source."""
        if output_path is None:
            output_path = suggest_export_path(
                self.source_path, self.settings.export_filename
            )
        data = await self.export(progress)
        try:
            path = write_export(data, output_path)
        except OSError as e:
            logger.error("Failed to write %s: %s", output_path, e)
            raise ExportError(f"Failed to write {output_path}: {e}") from e
        logger.info("Saved annotated PDF to %s", path)
        return path
