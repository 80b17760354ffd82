from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from estateview.domain.entities import Entity, find_view_owner, linked_child
from estateview.domain.filters import Filters, total_match_count
from estateview.domain.geometry import (
    Point,
    Rect,
    bounding_box,
    bounding_box_center,
    fit_image_rect,
    point_in_polygon,
)
from estateview.domain.selections import Hotspot, Polygon
from estateview.services.project_service import ProjectService

DETAILS_PANEL_GAP = 16.0
# Radius of the clickable circle drawn around a hotspot marker.
HOTSPOT_HIT_RADIUS = 24.0
UNLINKED_HOTSPOT_LABEL = "Unlinked Hotspot"
MISSING_VIEW_LABEL = "Link"


@dataclass(frozen=True)
class SelectionOverlay:
    """A confirmed selection placed on the rendered image."""

    selection: Polygon
    points: Tuple[Point, ...]
    center: Point
    entity: Optional[Entity]
    match_count: int
    tone: str

    @property
    def is_unit(self) -> bool:
        return bool(self.entity and self.entity.is_unit)

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.selection.id,
            "title": self.selection.details.title if self.selection.details else None,
            "points": [p.to_json() for p in self.points],
            "center": self.center.to_json(),
            "entityId": self.entity.id if self.entity else None,
            "isUnit": self.is_unit,
            "matchCount": self.match_count,
            "tone": self.tone,
        }


@dataclass(frozen=True)
class HotspotOverlay:
    """A navigation marker placed on the rendered image."""

    hotspot: Hotspot
    position: Point
    label: str

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.hotspot.id,
            "position": self.position.to_json(),
            "linkedViewId": self.hotspot.linked_view_id,
            "label": self.label,
        }


@dataclass(frozen=True)
class ViewerOverlay:
    rect: Optional[Rect]
    filters_applied: bool
    selections: List[SelectionOverlay] = field(default_factory=list)
    hotspots: List[HotspotOverlay] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        return {
            "rect": self.rect.to_json() if self.rect else None,
            "filtersApplied": self.filters_applied,
            "selections": [s.to_json() for s in self.selections],
            "hotspots": [h.to_json() for h in self.hotspots],
        }


def highlight_tone(entity: Optional[Entity]) -> str:
    if entity is not None and entity.is_unit and entity.status in ("available", "sold"):
        return entity.status
    return "default"


def hotspot_label(hotspot: Hotspot, entities: Sequence[Entity]) -> str:
    """Tooltip of a hotspot: the name of the view it leads to."""
    if not hotspot.is_linked:
        return UNLINKED_HOTSPOT_LABEL
    found = find_view_owner(entities, hotspot.linked_view_id)
    return found[1].name if found else MISSING_VIEW_LABEL


def build_overlay(
    selections: Sequence[Polygon],
    view_entity_id: Optional[str],
    entities: Sequence[Entity],
    rect: Optional[Rect],
    filters: Filters,
    hotspots: Sequence[Hotspot] = (),
) -> ViewerOverlay:
    """
    Place a view's relative selections and hotspots onto the rendered image
    rectangle.

    Drafts (no title) are never shown. With filters applied only selections
    linked to an entity with at least one matching unit at or below it are
    kept, each carrying its match count. Hotspots are not filtered.
    """
    applied = filters.is_applied
    if rect is None:
        return ViewerOverlay(rect=None, filters_applied=applied)

    overlays = []
    for selection in selections:
        if not selection.is_confirmed:
            continue
        entity = linked_child(entities, view_entity_id, selection.details.title)

        match_count = 0
        if applied:
            if not selection.details.make_as_entity or entity is None:
                continue
            match_count = total_match_count(entity, filters, entities)
            if match_count == 0:
                continue

        points = tuple(
            Point(rect.x + p.x * rect.width, rect.y + p.y * rect.height)
            for p in selection.points
        )
        center = bounding_box_center(points)
        if center is None:
            continue
        overlays.append(
            SelectionOverlay(
                selection=selection,
                points=points,
                center=center,
                entity=entity,
                match_count=match_count,
                tone=highlight_tone(entity),
            )
        )

    markers = [
        HotspotOverlay(
            hotspot=hotspot,
            position=Point(
                rect.x + hotspot.position.x * rect.width,
                rect.y + hotspot.position.y * rect.height,
            ),
            label=hotspot_label(hotspot, entities),
        )
        for hotspot in hotspots
    ]
    return ViewerOverlay(
        rect=rect, filters_applied=applied, selections=overlays, hotspots=markers
    )


def hit_test(overlay: ViewerOverlay, point: Point) -> Optional[SelectionOverlay]:
    """Topmost selection under a container point (later ones draw on top)."""
    for item in reversed(overlay.selections):
        if point_in_polygon(point, item.points):
            return item
    return None


def hit_hotspot(
    overlay: ViewerOverlay, point: Point, radius: float = HOTSPOT_HIT_RADIUS
) -> Optional[HotspotOverlay]:
    """Topmost hotspot whose marker circle contains a container point."""
    for item in reversed(overlay.hotspots):
        dx = point.x - item.position.x
        dy = point.y - item.position.y
        if dx * dx + dy * dy <= radius * radius:
            return item
    return None


def details_anchor(selection: Polygon, rect: Rect, container_width: float) -> Optional[Dict[str, Any]]:
    """
    Where the details panel goes for a clicked selection: opposite the side
    of the image the selection sits on, aligned with its top edge.
    """
    box = bounding_box(selection.points)
    if box is None:
        return None
    min_x, min_y, max_x, _ = box
    top = rect.y + min_y * rect.height
    if (min_x + max_x) / 2 > 0.5:
        left_edge = rect.x + min_x * rect.width
        return {"side": "left", "top": top, "right": container_width - left_edge + DETAILS_PANEL_GAP}
    right_edge = rect.x + max_x * rect.width
    return {"side": "right", "top": top, "left": right_edge + DETAILS_PANEL_GAP}


class ViewerService:
    """Landing page viewer: overlay geometry, hit-testing and filter counts."""

    def __init__(self, project_service: ProjectService) -> None:
        self._project_service = project_service

    def landing(self) -> Optional[dict]:
        return self._project_service.landing()

    def overlay(
        self,
        project_id: str,
        view_id: str,
        natural_size: Tuple[float, float],
        container_size: Tuple[float, float],
        filters: Optional[Filters] = None,
    ) -> ViewerOverlay:
        # The rect is recomputed on every call; callers pass the current sizes.
        entity, view = self._project_service.find_view(project_id, view_id)
        rect = fit_image_rect(*natural_size, *container_size)
        return build_overlay(
            view.selections,
            entity.id,
            self._project_service.list_entities(project_id),
            rect,
            filters or Filters(),
            view.hotspots,
        )

    def hit(
        self,
        project_id: str,
        view_id: str,
        natural_size: Tuple[float, float],
        container_size: Tuple[float, float],
        point: Point,
        filters: Optional[Filters] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Resolve a click. Hotspot markers sit above the selections, so a click
        on one navigates to its linked view; otherwise the result carries the
        selection, its entity and the details panel anchor.
        """
        overlay = self.overlay(project_id, view_id, natural_size, container_size, filters)
        if overlay.rect is None:
            return None

        marker = hit_hotspot(overlay, point)
        if marker is not None:
            return {
                "kind": "hotspot",
                "hotspot": marker.to_json(),
                "navigateTo": marker.hotspot.linked_view_id,
            }

        item = hit_test(overlay, point)
        if item is None:
            return None
        return {
            "kind": "selection",
            "selection": item.to_json(),
            "details": item.selection.details.to_json(),
            "entity": item.entity.to_json() if item.entity else None,
            "anchor": details_anchor(item.selection, overlay.rect, container_size[0]),
        }
