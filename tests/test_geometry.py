import pytest

from estateview.domain.geometry import (
    Point,
    Rect,
    bounding_box_center,
    distance_to_segment_squared,
    finite_float,
    fit_image_rect,
    point_in_polygon,
    polygons_to_absolute,
    polygons_to_relative,
    to_absolute,
    to_relative,
)
from estateview.domain.selections import Polygon


@pytest.fixture
def square():
    return (Point(0, 0), Point(100, 0), Point(100, 100), Point(0, 100))


class TestCoordinateTransforms:
    def test_relative_to_absolute(self):
        """Relative points scale by the surface size"""
        assert to_absolute(Point(0.25, 0.5), 800, 600) == Point(200, 300)

    def test_round_trip_is_stable(self):
        """Absolute -> relative -> absolute returns the original point"""
        original = Point(123.456, 78.9)
        relative = to_relative(original, 640, 480)
        back = to_absolute(relative, 640, 480)
        assert back.x == pytest.approx(original.x, abs=1e-9)
        assert back.y == pytest.approx(original.y, abs=1e-9)

    @pytest.mark.parametrize("width,height", [(0, 480), (640, 0), (0, 0)])
    def test_zero_surface_is_rejected(self, width, height):
        """No Infinity/NaN leaks out of a surface that is not laid out yet"""
        assert to_relative(Point(10, 10), width, height) is None

    def test_polygons_to_relative_on_zero_surface(self):
        polygon = Polygon(id=1, points=(Point(1, 1), Point(2, 1), Point(2, 2)))
        assert polygons_to_relative([polygon], 0, 100) == []

    def test_polygon_scaling_keeps_id_and_details(self):
        polygon = Polygon(id=7, points=(Point(0.1, 0.2), Point(0.5, 0.2), Point(0.5, 0.9)))
        (scaled,) = polygons_to_absolute([polygon], 200, 100)
        assert scaled.id == 7
        assert scaled.points[2] == Point(100, 90)


class TestDistanceToSegment:
    def test_perpendicular_projection(self):
        assert distance_to_segment_squared(Point(50, 1), Point(0, 0), Point(100, 0)) == pytest.approx(1)

    def test_clamped_to_endpoint(self):
        """Projection beyond the segment measures to the nearest endpoint"""
        assert distance_to_segment_squared(Point(103, 4), Point(0, 0), Point(100, 0)) == pytest.approx(25)

    def test_degenerate_segment(self):
        """Coincident endpoints fall back to point distance"""
        assert distance_to_segment_squared(Point(3, 4), Point(0, 0), Point(0, 0)) == pytest.approx(25)


class TestPointInPolygon:
    def test_inside_and_outside(self, square):
        assert point_in_polygon(Point(50, 50), square)
        assert not point_in_polygon(Point(150, 50), square)

    def test_concave_notch(self):
        """A point in the notch of a U shape is outside"""
        u_shape = (
            Point(0, 0), Point(30, 0), Point(30, 70), Point(70, 70),
            Point(70, 0), Point(100, 0), Point(100, 100), Point(0, 100),
        )
        assert not point_in_polygon(Point(50, 30), u_shape)
        assert point_in_polygon(Point(50, 90), u_shape)

    def test_fewer_than_three_points(self):
        assert not point_in_polygon(Point(0, 0), (Point(0, 0), Point(1, 1)))

    def test_bounding_box_center(self, square):
        assert bounding_box_center(square) == Point(50, 50)
        assert bounding_box_center(()) is None


class TestFitImageRect:
    def test_wide_image_is_letterboxed(self):
        """1920x1080 inside 800x800 fills the width and centres vertically"""
        rect = fit_image_rect(1920, 1080, 800, 800)
        assert rect.x == pytest.approx(0)
        assert rect.width == pytest.approx(800)
        assert rect.height == pytest.approx(450)
        assert rect.y == pytest.approx(175)

    def test_tall_image_is_pillarboxed(self):
        rect = fit_image_rect(500, 1000, 800, 400)
        assert rect == Rect(x=300, y=0, width=200, height=400)

    def test_same_aspect_fills_container(self):
        rect = fit_image_rect(400, 300, 800, 600)
        assert (rect.x, rect.y) == (0, 0)
        assert rect.width == pytest.approx(800)
        assert rect.height == pytest.approx(600)

    @pytest.mark.parametrize("sizes", [(0, 100, 800, 600), (100, 100, 0, 600)])
    def test_unknown_size(self, sizes):
        assert fit_image_rect(*sizes) is None


class TestFiniteFloat:
    def test_accepts_numbers_and_numeric_strings(self):
        assert finite_float("12.5") == 12.5
        assert finite_float(3) == 3.0

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), "-inf", "NaN"])
    def test_rejects_non_finite(self, value):
        with pytest.raises(ValueError):
            finite_float(value)

    def test_point_from_json_rejects_nan(self):
        with pytest.raises(ValueError):
            Point.from_json({"x": "nan", "y": 0.5})
