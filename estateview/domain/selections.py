"""
Selections: polygons drawn over a view image, optionally annotated, and
hotspots that link a point of the image to another view.

Storage JSON keeps the camelCase keys the dashboard front end already
reads (``makeAsView``, ``makeAsEntity``, ``entityType``...).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Optional, Tuple

from estateview.domain.geometry import Point, finite_float


@dataclass(frozen=True)
class SelectionDetails:
    """Annotation attached to a polygon once the user confirms it."""

    title: str
    description: Optional[str] = None
    width: Optional[float] = None
    height: Optional[float] = None
    area: Optional[float] = None
    define_size: bool = False
    make_as_view: bool = False
    make_as_entity: bool = False
    entity_type: Optional[str] = None

    @property
    def link_kind(self) -> Optional[str]:
        """'entity' or 'view' when the annotation asks for a linked target."""
        if not self.title:
            return None
        if self.make_as_entity:
            return "entity"
        if self.make_as_view:
            return "view"
        return None

    def to_json(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"title": self.title}
        if self.description is not None:
            result["description"] = self.description
        if self.define_size:
            result["defineSize"] = True
        if self.width is not None:
            result["width"] = self.width
        if self.height is not None:
            result["height"] = self.height
        if self.area is not None:
            result["area"] = self.area
        if self.make_as_view:
            result["makeAsView"] = True
        if self.make_as_entity:
            result["makeAsEntity"] = True
        if self.entity_type:
            result["entityType"] = self.entity_type
        return result

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "SelectionDetails":
        return cls(
            title=str(data.get("title") or ""),
            description=data.get("description"),
            width=_optional_float(data.get("width")),
            height=_optional_float(data.get("height")),
            area=_optional_float(data.get("area")),
            define_size=bool(data.get("defineSize", False)),
            make_as_view=bool(data.get("makeAsView", False)),
            make_as_entity=bool(data.get("makeAsEntity", False)),
            entity_type=data.get("entityType") or None,
        )


@dataclass(frozen=True)
class Polygon:
    """
    Closed polygon; the last point connects back to the first.

    Instances are immutable so history snapshots can share them safely.
    """

    id: int
    points: Tuple[Point, ...]
    details: Optional[SelectionDetails] = None

    @property
    def is_confirmed(self) -> bool:
        """Only titled selections are shown on the public site."""
        return bool(self.details and self.details.title)

    def with_points(self, points: Iterable[Point]) -> "Polygon":
        return replace(self, points=tuple(points))

    def with_details(self, details: Optional[SelectionDetails]) -> "Polygon":
        return replace(self, details=details)

    def translated(self, dx: float, dy: float) -> "Polygon":
        return self.with_points(Point(p.x + dx, p.y + dy) for p in self.points)

    def with_vertex(self, index: int, point: Point) -> "Polygon":
        points = list(self.points)
        points[index] = point
        return self.with_points(points)

    def with_inserted_vertex(self, index: int, point: Point) -> "Polygon":
        points = list(self.points)
        points.insert(index, point)
        return self.with_points(points)

    def to_json(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": self.id,
            "points": [p.to_json() for p in self.points],
        }
        if self.details is not None:
            result["details"] = self.details.to_json()
        return result

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Polygon":
        details_data = data.get("details")
        return cls(
            id=int(data["id"]),
            points=tuple(Point.from_json(p) for p in data.get("points", [])),
            details=SelectionDetails.from_json(details_data) if details_data else None,
        )


@dataclass(frozen=True)
class Hotspot:
    """Point marker on a view image that navigates to another view."""

    id: int
    position: Point
    linked_view_id: Optional[str] = None

    @property
    def is_linked(self) -> bool:
        return bool(self.linked_view_id)

    def moved_to(self, position: Point) -> "Hotspot":
        return replace(self, position=position)

    def with_link(self, view_id: Optional[str]) -> "Hotspot":
        return replace(self, linked_view_id=view_id or None)

    def to_json(self) -> Dict[str, Any]:
        # Unlinked hotspots are stored with an empty linkedViewId.
        return {
            "id": self.id,
            "x": self.position.x,
            "y": self.position.y,
            "linkedViewId": self.linked_view_id or "",
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Hotspot":
        return cls(
            id=int(data["id"]),
            position=Point.from_json(data),
            linked_view_id=data.get("linkedViewId") or None,
        )


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return finite_float(value)
