import logging
import os
from typing import Dict

from PyQt5.QtCore import QObject, Qt, pyqtSignal
from PyQt5.QtGui import QKeySequence
from PyQt5.QtWidgets import (
    QAction, QFileDialog, QLabel, QMainWindow, QMessageBox, QScrollArea,
    QToolBar, QVBoxLayout, QWidget
)

from penmark.config import HighlighterSettings
from penmark.core.annotations.models import AnnotationMode
from penmark.core.errors import ExportError, ParseError
from penmark.core.export.files import suggest_export_path
from penmark.core.session import HighlighterSession
from penmark.ui.async_worker import AsyncWorker
from penmark.ui.page_widget import PageWidget
from penmark.ui.toolbars.highlight_toolbar import HighlightToolbar

logger = logging.getLogger(__name__)


class _PageReadyBridge(QObject):
    """Carries render-thread page notifications to the GUI thread."""

    page_ready = pyqtSignal(int)


class MainWindow(QMainWindow):
    def __init__(self, settings: HighlighterSettings, file_path=None):
        super().__init__()
        self.setWindowTitle("Penmark")

        self.settings = settings
        self.session = HighlighterSession(
            settings, device_pixel_ratio=self.devicePixelRatioF()
        )
        self.page_widgets: Dict[int, PageWidget] = {}

        self.worker = AsyncWorker(self)
        self.worker.start_loop()

        self._bridge = _PageReadyBridge()
        self._bridge.page_ready.connect(self._on_page_ready)
        self.session.surfaces.subscribe(
            lambda page_index, _overlay: self._bridge.page_ready.emit(page_index)
        )

        self.setup_ui()

        if file_path:
            self.load_pdf(file_path)

    def setup_ui(self):
        toolbar = QToolBar("Main", self)
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        open_action = QAction("Open PDF", self)
        open_action.setShortcut(QKeySequence.Open)
        open_action.triggered.connect(self.open_pdf)
        toolbar.addAction(open_action)

        zoom_out_action = QAction("-", self)
        zoom_out_action.setShortcut(QKeySequence.ZoomOut)
        zoom_out_action.triggered.connect(lambda: self.adjust_zoom(-1))
        toolbar.addAction(zoom_out_action)

        self.zoom_label = QLabel(f"{self.session.scale:.2f}x", self)
        self.zoom_label.setAlignment(Qt.AlignCenter)
        self.zoom_label.setFixedWidth(48)
        toolbar.addWidget(self.zoom_label)

        zoom_in_action = QAction("+", self)
        zoom_in_action.setShortcut(QKeySequence.ZoomIn)
        zoom_in_action.triggered.connect(lambda: self.adjust_zoom(1))
        toolbar.addAction(zoom_in_action)

        undo_action = QAction("Undo", self)
        undo_action.setShortcut(QKeySequence.Undo)
        undo_action.triggered.connect(self.undo)
        toolbar.addAction(undo_action)

        redo_action = QAction("Redo", self)
        redo_action.setShortcut(QKeySequence.Redo)
        redo_action.triggered.connect(self.redo)
        toolbar.addAction(redo_action)

        self.highlight_toolbar = HighlightToolbar(self.settings, self)
        self.highlight_toolbar.color_selected.connect(self._on_color_selected)
        self.highlight_toolbar.opacity_changed.connect(self.session.set_opacity)
        self.highlight_toolbar.thickness_changed.connect(self.session.set_thickness)
        self.highlight_toolbar.eraser_toggled.connect(self._on_eraser_toggled)
        self.highlight_toolbar.mode_changed.connect(self._on_mode_changed)
        toolbar.addWidget(self.highlight_toolbar)

        self.save_action = QAction("Save as PDF", self)
        self.save_action.setShortcut(QKeySequence.Save)
        self.save_action.setEnabled(False)
        self.save_action.triggered.connect(self.save_pdf)
        toolbar.addAction(self.save_action)

        self.scroll_area = QScrollArea(self)
        self.scroll_area.setWidgetResizable(True)
        self.page_container = QWidget()
        self.page_layout = QVBoxLayout(self.page_container)
        self.page_layout.setSpacing(12)
        self.page_layout.setAlignment(Qt.AlignHCenter | Qt.AlignTop)
        self.empty_label = QLabel("Open a PDF to start highlighting.", self.page_container)
        self.empty_label.setAlignment(Qt.AlignCenter)
        self.page_layout.addWidget(self.empty_label)
        self.scroll_area.setWidget(self.page_container)
        self.setCentralWidget(self.scroll_area)

    # ===== Document =====

    def open_pdf(self):
        if not self._confirm_discard():
            return
        file_path, _ = QFileDialog.getOpenFileName(self, "Open PDF", "", "PDF Files (*.pdf)")
        if file_path:
            self.load_pdf(file_path)

    def load_pdf(self, file_path: str):
        def _opened(handle):
            self._build_page_widgets(handle.page_count)
            self.setWindowTitle(f"Penmark - {os.path.basename(file_path)}")
            self.save_action.setEnabled(True)
            self._render()

        self.worker.submit(
            self.session.open_file(file_path), on_done=_opened, on_error=self._on_open_error
        )

    def _on_open_error(self, error: BaseException):
        if isinstance(error, ParseError):
            QMessageBox.critical(self, "Error", str(error))
        else:
            QMessageBox.critical(self, "Error", f"Error loading PDF: {error}")

    def _build_page_widgets(self, page_count: int):
        for widget in self.page_widgets.values():
            widget.setParent(None)
            widget.deleteLater()
        self.page_widgets.clear()
        self.empty_label.setVisible(page_count == 0)

        for page_index in range(page_count):
            widget = PageWidget(self.session, page_index, self.page_container)
            self.page_layout.addWidget(widget)
            self.page_widgets[page_index] = widget

    def _render(self):
        self.zoom_label.setText(f"{self.session.scale:.2f}x")
        for widget in self.page_widgets.values():
            widget.update()
        self.worker.submit(self.session.render())

    def _on_page_ready(self, page_index: int):
        widget = self.page_widgets.get(page_index)
        if widget is not None:
            widget.refresh()

    def adjust_zoom(self, direction: int):
        if not self.session.has_document:
            return
        scale = self.settings.clamp_scale(
            self.session.scale + self.settings.zoom_step * direction
        )
        # Each call supersedes any render still in flight
        self.worker.submit(self.session.set_scale(scale))
        self.zoom_label.setText(f"{scale:.2f}x")

    # ===== Tools =====

    def _on_color_selected(self, color: str):
        self.session.select_color(color)
        self._update_cursors()

    def _on_eraser_toggled(self, active: bool):
        self.session.set_eraser(active)
        self._update_cursors()

    def _on_mode_changed(self, mode: AnnotationMode):
        if self.session.has_unsaved_changes and not self._confirm(
            "Switch Mode", "Switching mode discards the current highlights. Continue?"
        ):
            button = self.highlight_toolbar.mode_button
            button.blockSignals(True)
            button.setChecked(self.session.mode is AnnotationMode.FREEHAND)
            self.highlight_toolbar._update_mode_text()
            button.blockSignals(False)
            return
        self.session.set_mode(mode)
        self._refresh_pages()

    def _update_cursors(self):
        for widget in self.page_widgets.values():
            widget.update_cursor()

    def _refresh_pages(self):
        for widget in self.page_widgets.values():
            widget.update()

    def undo(self):
        for page_index in self.session.undo():
            self._on_page_ready(page_index)

    def redo(self):
        for page_index in self.session.redo():
            self._on_page_ready(page_index)

    # ===== Export =====

    def save_pdf(self):
        if not self.session.has_document:
            return
        default_path = suggest_export_path(
            self.session.source_path, self.settings.export_filename
        )
        file_path, _ = QFileDialog.getSaveFileName(
            self, "Save Annotated PDF", str(default_path), "PDF Files (*.pdf)"
        )
        if not file_path:
            return

        self.save_action.setEnabled(False)
        self.statusBar().showMessage("Exporting annotations...")

        def _saved(path):
            self.save_action.setEnabled(True)
            self.statusBar().showMessage(f"Saved {path}", 5000)

        def _failed(error: BaseException):
            self.save_action.setEnabled(True)
            self.statusBar().clearMessage()
            message = str(error) if isinstance(error, ExportError) else f"Error during export: {error}"
            QMessageBox.critical(self, "Export Failed", message)

        self.worker.submit(
            self.session.export_to_file(file_path), on_done=_saved, on_error=_failed
        )

    # ===== Window =====

    def _confirm(self, title: str, message: str) -> bool:
        reply = QMessageBox.question(
            self, title, message, QMessageBox.Yes | QMessageBox.No, QMessageBox.No
        )
        return reply == QMessageBox.Yes

    def _confirm_discard(self) -> bool:
        if not self.session.has_unsaved_changes:
            return True
        return self._confirm(
            "Unsaved Changes", "You have unsaved highlights. Discard them?"
        )

    def closeEvent(self, event):
        if not self._confirm_discard():
            event.ignore()
            return
        future = self.worker.submit(self.session.close())
        future.result()
        self.worker.stop()
        event.accept()
