from penmark.config import HighlighterSettings
from penmark.core.annotations import AnnotationMode
from penmark.ui.toolbars import HighlightToolbar


def test_swatch_selects_color_and_leaves_eraser():
    toolbar = HighlightToolbar(HighlighterSettings())
    colors, erasers = [], []
    toolbar.color_selected.connect(colors.append)
    toolbar.eraser_toggled.connect(erasers.append)

    toolbar.eraser_button.setChecked(True)
    toolbar.swatch_group.buttons()[1].click()

    assert colors == ["#ffd54f"]
    assert erasers == [True]
    assert not toolbar.eraser_button.isChecked()
    assert toolbar.eraser_button.text() == "Eraser"


def test_sliders_are_bounded_by_settings():
    settings = HighlighterSettings()
    toolbar = HighlightToolbar(settings)
    opacities = []
    toolbar.opacity_changed.connect(opacities.append)

    toolbar.opacity_slider.setValue(20)
    toolbar.opacity_slider.setValue(90)

    assert toolbar.opacity_slider.maximum() == 35
    assert opacities == [0.2, 0.35]
    assert toolbar.thickness_slider.maximum() == 40


def test_mode_toggle():
    toolbar = HighlightToolbar(HighlighterSettings())
    modes = []
    toolbar.mode_changed.connect(modes.append)

    toolbar.mode_button.setChecked(True)

    assert modes == [AnnotationMode.FREEHAND]
    assert toolbar.mode_button.text() == "Freehand"
