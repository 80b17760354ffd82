from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from estateview.domain.geometry import Point, has_area

DEFAULT_LENS_SIZE = 150.0
DEFAULT_ZOOM_FACTOR = 2.5


@dataclass(frozen=True)
class MagnifierLens:
    """Round zoom lens shown under the cursor while a vertex is dragged."""

    left: float
    top: float
    size: float
    zoom: float
    background_size: Tuple[float, float]
    background_position: Tuple[float, float]
    points: Tuple[Point, ...]

    def to_json(self) -> Dict[str, Any]:
        return {
            "left": self.left,
            "top": self.top,
            "size": self.size,
            "zoom": self.zoom,
            "backgroundSize": list(self.background_size),
            "backgroundPosition": list(self.background_position),
            "points": [p.to_json() for p in self.points],
        }


def build_lens(
    cursor: Optional[Point],
    surface_width: float,
    surface_height: float,
    polygon_points: Optional[Sequence[Point]],
    size: float = DEFAULT_LENS_SIZE,
    zoom: float = DEFAULT_ZOOM_FACTOR,
) -> Optional[MagnifierLens]:
    """Lens geometry centred on ``cursor``, or None when nothing to show."""
    if cursor is None or not polygon_points or not has_area(surface_width, surface_height):
        return None

    half = size / 2
    return MagnifierLens(
        left=cursor.x - half,
        top=cursor.y - half,
        size=size,
        zoom=zoom,
        background_size=(surface_width * zoom, surface_height * zoom),
        background_position=(-(cursor.x * zoom) + half, -(cursor.y * zoom) + half),
        points=tuple(
            Point(half + (p.x - cursor.x) * zoom, half + (p.y - cursor.y) * zoom)
            for p in polygon_points
        ),
    )
