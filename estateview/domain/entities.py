"""
Project hierarchy: entities (compound, building, apartment...) owning views.

Entities form a forest through ``parent_id``. Views belong to exactly one
entity; their images and selections are stored separately and only attached
when a view is hydrated.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from estateview.domain.geometry import finite_float
from estateview.domain.selections import Hotspot, Polygon

UNIT_ENTITY_TYPES = frozenset({"apartment", "house"})

DEFAULT_ENTITY_TYPES = [
    "residential compound",
    "residential building",
    "Apartment",
    "Floor",
    "Room",
    "house",
]

DEFAULT_VIEW_TYPES = ["2d", "360"]

ENTITY_STATUSES = ("available", "sold", "reserved")

_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lowercase, collapse non-alphanumerics to '-', trim the dashes."""
    return _SLUG_PATTERN.sub("-", name.lower()).strip("-")


def is_unit_type(entity_type: Optional[str]) -> bool:
    return bool(entity_type) and entity_type.lower() in UNIT_ENTITY_TYPES


@dataclass(frozen=True)
class RoomDetail:
    id: str
    name: str
    size: float

    def to_json(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "size": self.size}

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "RoomDetail":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            size=finite_float(data.get("size", 0.0)),
        )


@dataclass(frozen=True)
class View:
    id: str
    name: str
    type: str = "2d"
    image_url: Optional[str] = None
    selections: Sequence[Polygon] = ()
    hotspots: Sequence[Hotspot] = ()

    def to_metadata_json(self) -> Dict[str, Any]:
        """Shape stored in project metadata (no image, selections or hotspots)."""
        return {"id": self.id, "name": self.name, "type": self.type}

    def to_json(self) -> Dict[str, Any]:
        result = self.to_metadata_json()
        result["imageUrl"] = self.image_url
        result["selections"] = [s.to_json() for s in self.selections]
        result["hotspots"] = [h.to_json() for h in self.hotspots]
        return result

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "View":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            type=str(data.get("type", "2d")),
            image_url=data.get("imageUrl"),
            selections=tuple(Polygon.from_json(s) for s in data.get("selections") or []),
            hotspots=tuple(Hotspot.from_json(h) for h in data.get("hotspots") or []),
        )


@dataclass(frozen=True)
class Entity:
    id: str
    name: str
    entity_type: str
    parent_id: Optional[str] = None
    views: Sequence[View] = ()
    default_view_id: Optional[str] = None
    plot_area: Optional[float] = None
    house_area: Optional[float] = None
    price: Optional[float] = None
    status: Optional[str] = None
    available_date: Optional[str] = None
    floors: Optional[int] = None
    rooms: Optional[int] = None
    detailed_rooms: Sequence[RoomDetail] = field(default_factory=tuple)

    @property
    def is_unit(self) -> bool:
        return is_unit_type(self.entity_type)

    def get_view(self, view_id: str) -> Optional[View]:
        for view in self.views:
            if view.id == view_id:
                return view
        return None

    def with_changes(self, **changes: Any) -> "Entity":
        return replace(self, **changes)

    def to_json(self, metadata_only: bool = True) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "entityType": self.entity_type,
            "parentId": self.parent_id,
            "defaultViewId": self.default_view_id,
            "plotArea": self.plot_area,
            "houseArea": self.house_area,
            "price": self.price,
            "status": self.status,
            "availableDate": self.available_date,
            "floors": self.floors,
            "rooms": self.rooms,
            "detailedRooms": [room.to_json() for room in self.detailed_rooms],
            "views": [
                view.to_metadata_json() if metadata_only else view.to_json()
                for view in self.views
            ],
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Entity":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            entity_type=str(data.get("entityType", "")),
            parent_id=data.get("parentId") or None,
            views=tuple(View.from_json(v) for v in data.get("views") or []),
            default_view_id=data.get("defaultViewId") or None,
            plot_area=_optional_number(data.get("plotArea")),
            house_area=_optional_number(data.get("houseArea")),
            price=_optional_number(data.get("price")),
            status=data.get("status") or None,
            available_date=data.get("availableDate") or None,
            floors=_optional_int(data.get("floors")),
            rooms=_optional_int(data.get("rooms")),
            detailed_rooms=tuple(
                RoomDetail.from_json(r) for r in data.get("detailedRooms") or []
            ),
        )


# JSON keys accepted by update operations, mapped to dataclass fields.
ENTITY_FIELD_NAMES = {
    "name": "name",
    "entityType": "entity_type",
    "plotArea": "plot_area",
    "houseArea": "house_area",
    "price": "price",
    "status": "status",
    "availableDate": "available_date",
    "floors": "floors",
    "rooms": "rooms",
    "detailedRooms": "detailed_rooms",
}


def find_entity(entities: Sequence[Entity], entity_id: Optional[str]) -> Optional[Entity]:
    for entity in entities:
        if entity.id == entity_id:
            return entity
    return None


def children_of(entity_id: str, entities: Sequence[Entity]) -> List[Entity]:
    return [e for e in entities if e.parent_id == entity_id]


def descendant_ids(entity_id: str, entities: Sequence[Entity]) -> Set[str]:
    """
    The entity and everything below it, found by repeated parent lookups
    until the set stops growing.
    """
    found = {entity_id}
    changed = True
    while changed:
        size = len(found)
        for entity in entities:
            if entity.parent_id and entity.parent_id in found:
                found.add(entity.id)
        changed = len(found) > size
    return found


def entity_path(entity_id: str, entities: Sequence[Entity]) -> List[str]:
    """Ids from the root down to ``entity_id``."""
    path: List[str] = []
    seen: Set[str] = set()
    current = find_entity(entities, entity_id)
    while current is not None and current.id not in seen:
        seen.add(current.id)
        path.insert(0, current.id)
        current = find_entity(entities, current.parent_id)
    return path


def find_view_owner(entities: Sequence[Entity], view_id: str) -> Optional[Tuple[Entity, View]]:
    """Return ``(entity, view)`` owning ``view_id``."""
    for entity in entities:
        view = entity.get_view(view_id)
        if view is not None:
            return entity, view
    return None


def linked_child(
    entities: Sequence[Entity], parent_id: Optional[str], title: Optional[str]
) -> Optional[Entity]:
    """Entity a selection links to: the child of the view's entity named like it."""
    if not title:
        return None
    for entity in entities:
        if entity.parent_id == parent_id and entity.name == title:
            return entity
    return None


def _optional_number(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return finite_float(value)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(finite_float(value))
