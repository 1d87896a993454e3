"""
End-to-end export tests against real PyMuPDF documents.
"""
import asyncio
from unittest.mock import patch

import fitz  # PyMuPDF
import pytest
from PyQt5.QtCore import Qt

from penmark.core.annotations import (
    AnnotationMode,
    HighlightShape,
    composite_page,
    paint_segment,
)
from penmark.core.document import PdfRenderer, PdfWriter
from penmark.core.errors import ExportError, ParseError
from penmark.core.export import suggest_export_path, write_export
from penmark.core.geometry import DevicePoint, PageGeometry
from penmark.core.page import OverlaySurface, RasterSurface
from penmark.core.session import HighlighterSession
from penmark.core.strokes import PointerEvent, PointerKind

from conftest import make_pdf

RED = (255, 0, 0)


def multiply_over_white(color, opacity):
    """Expected page color under highlighter ink: page * (1 - a + a * ink)."""
    return tuple(round(255 * (1 - opacity + opacity * c / 255)) for c in color)


def alpha_over_white(color, opacity):
    return tuple(round(255 * (1 - opacity) + c * opacity) for c in color)


def open_session(settings, data, mode):
    settings.mode = mode.value
    session = HighlighterSession(settings)
    asyncio.run(session.open_document(data))
    asyncio.run(session.render())
    return session


def stroke(session, points, page_index=0):
    kinds = [PointerKind.DOWN] + [PointerKind.MOVE] * (len(points) - 2) + [PointerKind.UP]
    for kind, (x, y) in zip(kinds, points):
        session.pointer_event(page_index, PointerEvent(kind, x, y))


def page_pixel(data, page_index, x, y, scale=1.0):
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        pix = doc[page_index].get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        return pix.pixel(x, y)
    finally:
        doc.close()


class TestCompositePage:

    def test_multiply_blend_over_white(self):
        geometry = PageGeometry(0, 40, 20, scale=1.0)
        raster, overlay = RasterSurface(geometry), OverlaySurface(geometry)
        paint_segment(overlay, DevicePoint(0, 10), DevicePoint(40, 10), 10, RED, 0.2)

        image = composite_page(raster.snapshot(), overlay.snapshot(), AnnotationMode.FREEHAND)
        flat = RasterSurface(geometry)
        flat.paint_image(image)
        assert flat.rgba_at(20, 10)[:3] == pytest.approx(multiply_over_white(RED, 0.2), abs=2)
        assert flat.rgba_at(20, 1)[:3] == (255, 255, 255)

    def test_multiply_keeps_dark_text_dark(self):
        geometry = PageGeometry(0, 40, 20, scale=1.0)
        raster, overlay = RasterSurface(geometry), OverlaySurface(geometry)
        raster.image.fill(Qt.black)
        paint_segment(overlay, DevicePoint(0, 10), DevicePoint(40, 10), 10, RED, 0.35)

        image = composite_page(raster.snapshot(), overlay.snapshot(), AnnotationMode.FREEHAND)
        flat = RasterSurface(geometry)
        flat.paint_image(image)
        assert flat.rgba_at(20, 10)[:3] == (0, 0, 0)


class TestRasterExport:

    def test_freehand_export_matches_multiply_formula(self, settings):
        session = open_session(settings, make_pdf(), AnnotationMode.FREEHAND)
        session.select_color("#ff0000")
        session.set_opacity(0.2)
        stroke(session, [(10, 50), (100, 50), (190, 50)])

        data = asyncio.run(session.export())

        expected = multiply_over_white(RED, 0.2)
        assert page_pixel(data, 0, 100, 50) == pytest.approx(expected, abs=3)
        assert page_pixel(data, 0, 100, 10) == pytest.approx((255, 255, 255), abs=1)
        assert not session.has_unsaved_changes

    def test_export_matches_preview_after_zoom(self, settings):
        session = open_session(settings, make_pdf(), AnnotationMode.FREEHAND)
        session.select_color("#ff0000")
        session.set_opacity(0.2)
        stroke(session, [(10, 50), (190, 50)])
        asyncio.run(session.set_scale(2.0))

        overlay = session.surfaces.overlay(0)
        preview = composite_page(
            session.surfaces.raster(0).snapshot(), overlay.snapshot(), session.mode
        )
        flat = RasterSurface(overlay.geometry)
        flat.paint_image(preview)
        expected = flat.rgba_at(200, 100)[:3]

        data = asyncio.run(session.export())
        assert page_pixel(data, 0, 200, 100, scale=2.0) == pytest.approx(expected, abs=3)

    def test_box_export_uses_alpha_over(self, settings):
        session = open_session(settings, make_pdf(), AnnotationMode.BOX)
        session.select_color("#ffeb3b")
        session.set_opacity(0.35)
        stroke(session, [(20, 20), (60, 60), (100, 80)])

        data = asyncio.run(session.export())

        expected = alpha_over_white((255, 235, 59), 0.35)
        assert page_pixel(data, 0, 60, 50) == pytest.approx(expected, abs=3)
        assert page_pixel(data, 0, 150, 50) == pytest.approx((255, 255, 255), abs=1)

    def test_pages_without_ink_are_untouched(self, settings, pdf_bytes):
        session = open_session(settings, pdf_bytes, AnnotationMode.FREEHAND)
        stroke(session, [(10, 50), (190, 50)], page_index=1)

        data = asyncio.run(session.export())

        doc = fitz.open(stream=data, filetype="pdf")
        try:
            assert doc.page_count == 2
            assert doc[0].get_images() == []
            assert len(doc[1].get_images()) == 1
        finally:
            doc.close()

    def test_progress_reports_every_page(self, settings, pdf_bytes):
        session = open_session(settings, pdf_bytes, AnnotationMode.FREEHAND)
        seen = []
        asyncio.run(session.export(progress=lambda current, total: seen.append((current, total))))
        assert seen == [(0, 2), (1, 2), (2, 2)]


class TestVectorExport:

    def test_shapes_become_rectangles(self, settings):
        settings.export_strategy = "vector"
        session = open_session(settings, make_pdf(), AnnotationMode.BOX)
        session.store.append(
            0, HighlightShape(0, 0.25, 0.25, 0.5, 0.5, color=(255, 235, 59), opacity=0.35)
        )

        data = asyncio.run(session.export())

        doc = fitz.open(stream=data, filetype="pdf")
        try:
            drawings = doc[0].get_drawings()
            assert len(drawings) == 1
            assert drawings[0]["rect"] == fitz.Rect(50, 25, 150, 75)
            assert drawings[0]["fill_opacity"] == pytest.approx(0.35, abs=0.01)
            assert doc[0].get_images() == []
        finally:
            doc.close()


class TestRotatedPages:
    """Pages with /Rotate export exactly as they are displayed."""

    # Unrotated top-left corner; shows at the top-right once turned 90 degrees
    MARK = (0, 0, 20, 20)

    def preview_pixels(self, session, points):
        raster, overlay = session.surfaces.raster(0), session.surfaces.overlay(0)
        flat = RasterSurface(overlay.geometry)
        flat.paint_image(composite_page(raster.snapshot(), overlay.snapshot(), session.mode))
        return [flat.rgba_at(x, y)[:3] for x, y in points]

    def export_pixels(self, data, points):
        return [page_pixel(data, 0, x, y) for x, y in points]

    def test_displayed_geometry(self, settings):
        session = open_session(settings, make_pdf(rotation=90), AnnotationMode.FREEHAND)
        geometry = session.surfaces.geometry(0)
        assert (geometry.width_px, geometry.height_px) == (100, 200)

    def test_freehand_export_matches_preview(self, settings):
        data = make_pdf(rotation=90, mark=self.MARK)
        session = open_session(settings, data, AnnotationMode.FREEHAND)
        session.select_color("#ff0000")
        session.set_opacity(0.2)
        stroke(session, [(10, 10), (50, 10), (90, 10)])

        points = [(90, 10), (50, 10), (90, 50), (50, 100), (10, 190)]
        preview = self.preview_pixels(session, points)
        assert preview[0] == pytest.approx((0, 0, 0), abs=3)
        assert preview[1] == pytest.approx(multiply_over_white(RED, 0.2), abs=3)

        exported = self.export_pixels(asyncio.run(session.export()), points)
        for got, want in zip(exported, preview):
            assert got == pytest.approx(want, abs=4)

    def test_box_raster_export_matches_preview(self, settings):
        data = make_pdf(rotation=90, mark=self.MARK)
        session = open_session(settings, data, AnnotationMode.BOX)
        stroke(session, [(10, 100), (60, 150)])

        points = [(30, 120), (80, 120), (90, 10), (10, 10)]
        preview = self.preview_pixels(session, points)
        exported = self.export_pixels(asyncio.run(session.export()), points)
        for got, want in zip(exported, preview):
            assert got == pytest.approx(want, abs=4)

    def test_box_vector_export_lands_where_displayed(self, settings):
        settings.export_strategy = "vector"
        data = make_pdf(rotation=90, mark=self.MARK)
        session = open_session(settings, data, AnnotationMode.BOX)
        session.store.append(
            0, HighlightShape(0, 0.0, 0.0, 0.2, 0.1, color=(255, 235, 59), opacity=0.35)
        )

        exported = asyncio.run(session.export())

        expected = alpha_over_white((255, 235, 59), 0.35)
        assert page_pixel(exported, 0, 10, 10) == pytest.approx(expected, abs=3)
        assert page_pixel(exported, 0, 90, 10) == pytest.approx((0, 0, 0), abs=3)
        assert page_pixel(exported, 0, 10, 190) == pytest.approx((255, 255, 255), abs=1)


class TestExportErrors:

    def test_failed_save_keeps_annotations(self, settings):
        session = open_session(settings, make_pdf(), AnnotationMode.BOX)
        stroke(session, [(20, 20), (60, 60)])

        with patch.object(PdfWriter, "save", side_effect=ExportError("disk full")):
            with pytest.raises(ExportError):
                asyncio.run(session.export())

        assert session.store.count() == 1
        assert session.has_unsaved_changes
        # A retry succeeds with the same state
        assert asyncio.run(session.export()).startswith(b"%PDF")

    def test_export_without_document(self, settings):
        with pytest.raises(ExportError):
            asyncio.run(HighlighterSession(settings).export())

    def test_writer_rejects_bad_bytes(self):
        with pytest.raises(ExportError):
            PdfWriter().load(b"")

    def test_export_to_file(self, settings, tmp_path):
        source = tmp_path / "paper.pdf"
        source.write_bytes(make_pdf())
        session = HighlighterSession(settings)
        asyncio.run(session.open_file(source))

        path = asyncio.run(session.export_to_file())
        assert path == tmp_path.resolve() / "annotated.pdf"
        assert path.read_bytes().startswith(b"%PDF")


class TestDocumentLifecycle:

    def test_open_rejects_garbage(self):
        with pytest.raises(ParseError):
            asyncio.run(PdfRenderer().load(b"definitely not a pdf"))

    def test_open_rejects_empty_bytes(self):
        with pytest.raises(ParseError):
            asyncio.run(PdfRenderer().load(b""))

    def test_failed_open_leaves_previous_document(self, settings):
        session = open_session(settings, make_pdf(), AnnotationMode.BOX)
        stroke(session, [(20, 20), (60, 60)])
        handle = session.handle

        with pytest.raises(ParseError):
            asyncio.run(session.open_document(b"garbage"))

        assert session.handle is handle
        assert session.store.count() == 1
        assert session.surfaces.overlay(0) is not None

    def test_open_resets_annotations(self, settings, pdf_bytes):
        session = open_session(settings, make_pdf(), AnnotationMode.BOX)
        stroke(session, [(20, 20), (60, 60)])
        previous = session.handle

        asyncio.run(session.open_document(pdf_bytes))

        assert previous.closed
        assert session.store.count() == 0
        assert session.surfaces.overlay(0) is None
        assert session.page_count == 2

    def test_open_missing_file(self, settings, tmp_path):
        with pytest.raises(ParseError):
            asyncio.run(HighlighterSession(settings).open_file(tmp_path / "missing.pdf"))

    def test_page_geometry_uses_points(self):
        handle = asyncio.run(PdfRenderer().load(make_pdf(width=300, height=400)))
        try:
            geometry = PdfRenderer().get_page_geometry(handle, 0, 1.5, dpr=2.0)
            assert (geometry.width_px, geometry.height_px) == (450, 600)
            assert geometry.device_size == (900, 1200)
        finally:
            handle.close()


class TestExportFiles:

    def test_suggest_export_path(self, tmp_path):
        assert suggest_export_path(tmp_path / "in.pdf") == tmp_path.resolve() / "annotated.pdf"
        assert suggest_export_path(None, "out.pdf").name == "out.pdf"

    def test_write_export_replaces_file(self, tmp_path):
        target = tmp_path / "nested" / "annotated.pdf"
        write_export(b"%PDF-1", target)
        write_export(b"%PDF-2", target)
        assert target.read_bytes() == b"%PDF-2"
        assert list(target.parent.iterdir()) == [target]
