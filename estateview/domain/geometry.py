"""
Geometry primitives shared by the selection editor and the landing viewer.

Two coordinate spaces are in play:

- absolute: pixels on the surface currently rendered (editor canvas or the
  letterboxed image inside the viewer container);
- relative: fractions (0-1) of the image width/height, which is what gets
  persisted so selections survive any resize.

Helpers are named after the direction they convert so the two spaces are
never mixed up.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from estateview.domain.selections import Hotspot, Polygon


@dataclass(frozen=True)
class Point:
    """A 2D point. The coordinate space is decided by the caller."""

    x: float
    y: float

    def __add__(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)

    def to_json(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Point":
        return cls(x=finite_float(data.get("x", 0.0)), y=finite_float(data.get("y", 0.0)))


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle, origin at the top-left corner."""

    x: float
    y: float
    width: float
    height: float

    def to_json(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


def finite_float(value: Any) -> float:
    """
    Parse a number from request or stored data.

    NaN and +/-Infinity raise ValueError; persisted coordinates and sizes
    must stay finite.
    """
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"{value!r} is not a finite number")
    return number


def has_area(width: float, height: float) -> bool:
    """True when a surface can take part in coordinate conversion."""
    return width > 0 and height > 0


def to_absolute(point: Point, width: float, height: float) -> Point:
    """Relative (0-1) point to surface pixels."""
    return Point(point.x * width, point.y * height)


def to_relative(point: Point, width: float, height: float) -> Optional[Point]:
    """
    Surface pixels to a relative (0-1) point.

    Returns None for a zero-sized surface (image not laid out yet) instead of
    producing Infinity/NaN.
    """
    if not has_area(width, height):
        return None
    return Point(point.x / width, point.y / height)


def polygons_to_absolute(
    polygons: Iterable["Polygon"], width: float, height: float
) -> List["Polygon"]:
    """Scale relative polygons onto a surface of the given size."""
    return [
        polygon.with_points(to_absolute(p, width, height) for p in polygon.points)
        for polygon in polygons
    ]


def polygons_to_relative(
    polygons: Iterable["Polygon"], width: float, height: float
) -> List["Polygon"]:
    """Normalise absolute polygons. Empty result for a zero-sized surface."""
    if not has_area(width, height):
        return []
    return [
        polygon.with_points(Point(p.x / width, p.y / height) for p in polygon.points)
        for polygon in polygons
    ]


def hotspots_to_absolute(
    hotspots: Iterable["Hotspot"], width: float, height: float
) -> List["Hotspot"]:
    return [h.moved_to(to_absolute(h.position, width, height)) for h in hotspots]


def hotspots_to_relative(
    hotspots: Iterable["Hotspot"], width: float, height: float
) -> List["Hotspot"]:
    if not has_area(width, height):
        return []
    return [
        h.moved_to(Point(h.position.x / width, h.position.y / height)) for h in hotspots
    ]


def distance_to_segment_squared(p: Point, v: Point, w: Point) -> float:
    """Squared distance from ``p`` to the segment ``v``-``w``."""
    length_squared = (v.x - w.x) ** 2 + (v.y - w.y) ** 2
    if length_squared == 0:
        return (p.x - v.x) ** 2 + (p.y - v.y) ** 2
    t = ((p.x - v.x) * (w.x - v.x) + (p.y - v.y) * (w.y - v.y)) / length_squared
    t = max(0.0, min(1.0, t))
    projection_x = v.x + t * (w.x - v.x)
    projection_y = v.y + t * (w.y - v.y)
    return (p.x - projection_x) ** 2 + (p.y - projection_y) ** 2


def bounding_box(points: Sequence[Point]) -> Optional[Tuple[float, float, float, float]]:
    """Return ``(min_x, min_y, max_x, max_y)`` or None for no points."""
    if not points:
        return None
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return min(xs), min(ys), max(xs), max(ys)


def bounding_box_center(points: Sequence[Point]) -> Optional[Point]:
    """
    Midpoint of the bounding box.

    Used for label and badge placement; it is not an area centroid.
    """
    box = bounding_box(points)
    if box is None:
        return None
    min_x, min_y, max_x, max_y = box
    return Point((min_x + max_x) / 2, (min_y + max_y) / 2)


def point_in_polygon(point: Point, points: Sequence[Point]) -> bool:
    """Ray casting test; the polygon is closed implicitly."""
    if len(points) < 3:
        return False

    inside = False
    j = len(points) - 1
    for i in range(len(points)):
        xi, yi = points[i].x, points[i].y
        xj, yj = points[j].x, points[j].y
        if (yi > point.y) != (yj > point.y) and (
            point.x < (xj - xi) * (point.y - yi) / (yj - yi) + xi
        ):
            inside = not inside
        j = i
    return inside


def fit_image_rect(
    natural_width: float,
    natural_height: float,
    container_width: float,
    container_height: float,
) -> Optional[Rect]:
    """
    Rectangle an image occupies when scaled to fit a container ("contain").

    The image keeps its aspect ratio and is centred, leaving letterbox or
    pillarbox bands. Returns None while any dimension is still zero.
    """
    if not has_area(natural_width, natural_height) or not has_area(
        container_width, container_height
    ):
        return None

    image_ratio = natural_width / natural_height
    container_ratio = container_width / container_height

    if image_ratio > container_ratio:
        render_width = container_width
        render_height = container_width / image_ratio
        x = 0.0
        y = (container_height - render_height) / 2
    else:
        render_height = container_height
        render_width = container_height * image_ratio
        y = 0.0
        x = (container_width - render_width) / 2

    return Rect(x=x, y=y, width=render_width, height=render_height)
