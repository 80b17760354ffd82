"""
Landing page unit filters.

A filter bound that is absent imposes no constraint; a present bound is
inclusive on both ends. Only unit entities (apartments, houses) can match.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Set

from estateview.domain.entities import Entity, children_of
from estateview.domain.geometry import finite_float

AVAILABILITY_ALL = "all"


@dataclass(frozen=True)
class Filters:
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_area: Optional[float] = None
    max_area: Optional[float] = None
    min_rooms: Optional[float] = None
    max_rooms: Optional[float] = None
    availability: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "Filters":
        """
        Build filters from form/query input.

        Missing keys, None and empty strings are treated as unconstrained, as
        is the 'all' availability choice. Raises ValueError for non-numeric
        bounds.
        """
        data = data or {}
        availability = data.get("availability")
        if availability in (None, "", AVAILABILITY_ALL):
            availability = None
        return cls(
            min_price=_bound(data.get("minPrice")),
            max_price=_bound(data.get("maxPrice")),
            min_area=_bound(data.get("minArea")),
            max_area=_bound(data.get("maxArea")),
            min_rooms=_bound(data.get("minRooms")),
            max_rooms=_bound(data.get("maxRooms")),
            availability=str(availability) if availability is not None else None,
        )

    @property
    def is_applied(self) -> bool:
        return any(
            value is not None
            for value in (
                self.min_price,
                self.max_price,
                self.min_area,
                self.max_area,
                self.min_rooms,
                self.max_rooms,
                self.availability,
            )
        )


def matches(entity: Entity, filters: Filters) -> bool:
    """True if ``entity`` is a unit and satisfies every present bound."""
    if not entity.is_unit:
        return False

    return (
        _within(entity.price, filters.min_price, filters.max_price)
        and _within(entity.house_area, filters.min_area, filters.max_area)
        and _within(entity.rooms, filters.min_rooms, filters.max_rooms)
        and (filters.availability is None or entity.status == filters.availability)
    )


def count_matching_descendants(
    entity_id: str,
    filters: Filters,
    entities: Sequence[Entity],
    _visited: Optional[Set[str]] = None,
) -> int:
    """Number of matching entities strictly below ``entity_id``."""
    visited = _visited if _visited is not None else {entity_id}
    count = 0
    for child in children_of(entity_id, entities):
        if child.id in visited:
            continue
        visited.add(child.id)
        if matches(child, filters):
            count += 1
        count += count_matching_descendants(child.id, filters, entities, visited)
    return count


def total_match_count(entity: Entity, filters: Filters, entities: Sequence[Entity]) -> int:
    """Badge count for a selection linked to ``entity``: itself plus descendants."""
    own = 1 if matches(entity, filters) else 0
    return own + count_matching_descendants(entity.id, filters, entities)


def _within(value: Optional[float], low: Optional[float], high: Optional[float]) -> bool:
    if low is not None and (value is None or value < low):
        return False
    if high is not None and (value is None or value > high):
        return False
    return True


def _bound(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return finite_float(value)
