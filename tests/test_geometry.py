import pytest

from penmark.core.geometry import (
    DevicePoint,
    NormalizedPoint,
    PageGeometry,
    clamp_unit,
    normalized_rect_to_device,
    to_device,
    to_normalized,
)


class TestPageGeometry:

    def test_device_size_rounds_up(self):
        geometry = PageGeometry(0, width_px=100.2, height_px=50.5, scale=1.0, dpr=1.5)
        assert geometry.device_size == (151, 76)

    def test_logical_to_device(self):
        geometry = PageGeometry(0, 200, 100, scale=1.0, dpr=2.0)
        point = geometry.logical_to_device(10, 20)
        assert point == DevicePoint(20, 40)

    @pytest.mark.parametrize("kwargs", [
        {"page_index": -1, "width_px": 10, "height_px": 10, "scale": 1.0},
        {"page_index": 0, "width_px": 0, "height_px": 10, "scale": 1.0},
        {"page_index": 0, "width_px": 10, "height_px": 10, "scale": 1.0, "dpr": 0},
    ])
    def test_invalid_geometry(self, kwargs):
        with pytest.raises(ValueError):
            PageGeometry(**kwargs)


class TestConversions:

    @pytest.mark.parametrize("geometry", [
        PageGeometry(0, 612, 792, scale=1.0),
        PageGeometry(1, 765, 990, scale=1.25, dpr=2.0),
        PageGeometry(2, 306.3, 395.7, scale=0.5, dpr=1.5),
    ])
    @pytest.mark.parametrize("fx, fy", [(0, 0), (0.33, 0.71), (1, 1), (0.999, 0.001)])
    def test_round_trip_within_one_pixel(self, geometry, fx, fy):
        point = DevicePoint(fx * geometry.device_width, fy * geometry.device_height)
        back = to_device(to_normalized(point, geometry), geometry)
        assert abs(back.x - point.x) <= 1
        assert abs(back.y - point.y) <= 1

    def test_normalized_is_independent_of_zoom(self):
        small = PageGeometry(0, 200, 100, scale=1.0)
        large = PageGeometry(0, 400, 200, scale=2.0, dpr=2.0)
        point = NormalizedPoint(0.25, 0.5)
        assert to_normalized(to_device(point, small), small) == point
        assert to_device(point, large) == DevicePoint(200, 200)

    def test_normalized_rect_to_device(self):
        geometry = PageGeometry(0, 200, 100, scale=1.0, dpr=2.0)
        assert normalized_rect_to_device(0.1, 0.2, 0.5, 0.5, geometry) == pytest.approx(
            (40, 40, 200, 100)
        )

    def test_clamp_unit(self):
        assert clamp_unit(-0.2) == 0.0
        assert clamp_unit(0.4) == 0.4
        assert clamp_unit(1.3) == 1.0
