"""
Shared fixtures: an offscreen Qt application, in-memory PDFs and a fake
renderer whose page renders can be held back to exercise cancellation.
"""
import asyncio
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import fitz  # PyMuPDF
import pytest
from PyQt5.QtWidgets import QApplication

from penmark.config import HighlighterSettings
from penmark.core.errors import ParseError, RenderError
from penmark.core.geometry import PageGeometry


@pytest.fixture(scope="session", autouse=True)
def qt_app():
    app = QApplication.instance() or QApplication([])
    yield app


def make_pdf(pages=1, width=200, height=100, rotation=0, mark=None) -> bytes:
    """
    Build a PDF of blank pages in memory.

    `mark` is an unrotated-space rect filled black on every page, before
    `rotation` is applied.
    """
    doc = fitz.open()
    for _ in range(pages):
        page = doc.new_page(width=width, height=height)
        if mark is not None:
            page.draw_rect(fitz.Rect(mark), color=None, fill=(0, 0, 0))
        page.set_rotation(rotation)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def pdf_bytes():
    return make_pdf(pages=2)


class FakeHandle:
    def __init__(self, page_sizes):
        self.page_sizes = tuple(page_sizes)
        self.closed = False

    @property
    def page_count(self):
        return len(self.page_sizes)

    def close(self):
        self.closed = True


class FakeRenderer:
    """
    Renderer stand-in with fixed page sizes.

    Renders block on `gate` while it is set up, and pages listed in
    `failing` raise RenderError.
    """

    def __init__(self, page_sizes=((200, 100), (200, 100), (200, 100))):
        self.page_sizes = page_sizes
        self.failing = set()
        self.gate = None
        self.rendered = []

    async def load(self, data):
        if data == b"broken":
            raise ParseError("Error loading PDF: broken")
        return FakeHandle(self.page_sizes)

    def page_count(self, handle):
        return handle.page_count

    def get_page_geometry(self, handle, page_index, scale, dpr=1.0):
        width, height = handle.page_sizes[page_index]
        return PageGeometry(page_index, width * scale, height * scale, scale, dpr)

    async def render_page(self, handle, page_index, scale, target):
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if page_index in self.failing:
            raise RenderError(page_index)
        self.rendered.append((page_index, scale))


@pytest.fixture
def fake_renderer():
    return FakeRenderer()


@pytest.fixture
def settings():
    return HighlighterSettings(base_scale=1.0)
