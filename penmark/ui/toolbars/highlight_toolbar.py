from PyQt5.QtCore import Qt, pyqtSignal
from PyQt5.QtWidgets import (
    QButtonGroup, QFrame, QHBoxLayout, QLabel, QSlider, QToolButton
)

from penmark.config import HighlighterSettings
from penmark.core.annotations.models import AnnotationMode


class HighlightToolbar(QFrame):
    """Palette, opacity, thickness, eraser and mode controls."""

    color_selected = pyqtSignal(str)
    opacity_changed = pyqtSignal(float)
    thickness_changed = pyqtSignal(float)
    eraser_toggled = pyqtSignal(bool)
    mode_changed = pyqtSignal(object)  # AnnotationMode

    def __init__(self, settings: HighlighterSettings, parent=None):
        super().__init__(parent)
        self.setObjectName("HighlightToolbar")
        self.settings = settings
        self.current_color = settings.default_color

        self.setup_ui()

    def setup_ui(self):
        layout = QHBoxLayout(self)
        layout.setContentsMargins(8, 4, 8, 4)
        layout.setSpacing(6)

        # Color swatches
        self.swatch_group = QButtonGroup(self)
        self.swatch_group.setExclusive(True)
        for color in self.settings.palette:
            swatch = QToolButton(self)
            swatch.setToolTip(color)
            swatch.setCheckable(True)
            swatch.setFixedSize(22, 22)
            swatch.setChecked(color == self.current_color)
            swatch.setStyleSheet(f"""
                QToolButton {{
                    background-color: {color};
                    border: 1px solid #999999;
                    border-radius: 11px;
                }}
                QToolButton:checked {{
                    border: 2px solid #2e2e2e;
                }}
            """)
            swatch.clicked.connect(lambda _checked, c=color: self._on_swatch(c))
            self.swatch_group.addButton(swatch)
            layout.addWidget(swatch)

        # Opacity, in percent
        layout.addSpacing(8)
        layout.addWidget(QLabel("Opacity", self))
        self.opacity_slider = QSlider(Qt.Horizontal, self)
        self.opacity_slider.setRange(
            round(self.settings.min_opacity * 100), round(self.settings.max_opacity * 100)
        )
        self.opacity_slider.setValue(round(self.settings.default_opacity * 100))
        self.opacity_slider.setFixedWidth(90)
        self.opacity_slider.valueChanged.connect(
            lambda v: self.opacity_changed.emit(v / 100.0)
        )
        layout.addWidget(self.opacity_slider)

        # Thickness
        layout.addWidget(QLabel("Thickness", self))
        self.thickness_slider = QSlider(Qt.Horizontal, self)
        self.thickness_slider.setRange(
            int(self.settings.min_thickness), int(self.settings.max_thickness)
        )
        self.thickness_slider.setValue(int(self.settings.default_thickness))
        self.thickness_slider.setFixedWidth(90)
        self.thickness_slider.valueChanged.connect(self._on_thickness)
        layout.addWidget(self.thickness_slider)
        self.thickness_label = QLabel(f"{int(self.settings.default_thickness)}px", self)
        self.thickness_label.setFixedWidth(36)
        layout.addWidget(self.thickness_label)

        # Eraser
        self.eraser_button = QToolButton(self)
        self.eraser_button.setText("Eraser")
        self.eraser_button.setCheckable(True)
        self.eraser_button.toggled.connect(self._on_eraser)
        layout.addWidget(self.eraser_button)

        # Box / freehand
        self.mode_button = QToolButton(self)
        self.mode_button.setCheckable(True)
        self.mode_button.setChecked(self.settings.annotation_mode is AnnotationMode.FREEHAND)
        self._update_mode_text()
        self.mode_button.toggled.connect(self._on_mode)
        layout.addWidget(self.mode_button)

        layout.addStretch()

    def _on_swatch(self, color: str):
        self.current_color = color
        # Picking a color leaves eraser mode
        self.eraser_button.blockSignals(True)
        self.eraser_button.setChecked(False)
        self._update_eraser_text()
        self.eraser_button.blockSignals(False)
        self.color_selected.emit(color)

    def _on_thickness(self, value: int):
        self.thickness_label.setText(f"{value}px")
        self.thickness_changed.emit(float(value))

    def _on_eraser(self, checked: bool):
        self._update_eraser_text()
        self.eraser_toggled.emit(checked)

    def _on_mode(self, checked: bool):
        self._update_mode_text()
        self.mode_changed.emit(AnnotationMode.FREEHAND if checked else AnnotationMode.BOX)

    def _update_eraser_text(self):
        self.eraser_button.setText(
            "Eraser: ON" if self.eraser_button.isChecked() else "Eraser"
        )

    def _update_mode_text(self):
        self.mode_button.setText("Freehand" if self.mode_button.isChecked() else "Box")
