# Third Party
import pytest

# Local
from springnet.controller.inline_edit import ValidationError, format_coefficient, parse_coefficient
from springnet.controller.viewport import Viewport


def test_origin_is_canvas_centre():
    viewport = Viewport(width=800, height=600)
    assert viewport.to_canvas(0.0, 0.0) == (400.0, 300.0)
    assert viewport.to_graph(450.0, 250.0) == (1.0, -1.0)


def test_transform_round_trip_under_zoom():
    viewport = Viewport(width=640, height=480, zoom_percent=250)
    px, py = viewport.to_canvas(1.3, -0.7)
    assert viewport.to_graph(px, py) == pytest.approx((1.3, -0.7))


def test_resize_never_collapses():
    viewport = Viewport()
    viewport.resize(0, -5)
    assert (viewport.width, viewport.height) == (1.0, 1.0)


def test_zoom_clamped():
    viewport = Viewport()
    viewport.set_zoom_percent(5000)
    assert viewport.zoom_percent == 1000
    viewport.set_zoom_percent(0)
    assert viewport.zoom_percent == 10


def test_pixel_lengths_follow_zoom():
    viewport = Viewport(world_scale=50, hit_radius_px=12)
    assert viewport.hit_radius == pytest.approx(0.24)
    viewport.set_zoom_percent(50)
    assert viewport.px(50) == pytest.approx(2.0)


#============================================
@pytest.mark.parametrize("text, value", [("2", 2.0), (" -0.5 ", -0.5), ("1e-3", 0.001)])
def test_parse_coefficient(text, value):
    assert parse_coefficient(text) == value


@pytest.mark.parametrize("text", ["", "-", "+", ".", "-.", "1,5", "k", "-inf"])
def test_parse_coefficient_rejects(text):
    with pytest.raises(ValidationError):
        parse_coefficient(text)


def test_format_coefficient():
    assert format_coefficient(1.0) == "1"
    assert format_coefficient(0.25) == "0.25"
    assert format_coefficient(-3.0) == "-3"


@pytest.mark.parametrize("value", [1.23456789, 0.1, 1e-12, 123456789.125, 1e20])
def test_format_coefficient_round_trips_exactly(value):
    assert parse_coefficient(format_coefficient(value)) == value
