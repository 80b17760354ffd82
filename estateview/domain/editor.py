"""
Selection editor for a single view.

The editor owns the live polygons and hotspots in absolute (surface pixel)
space, an undo history of full snapshots, and the pointer drag state machine:

    Idle -> DraggingPolygon | DraggingVertex | DraggingHotspot -> Idle

Pointer moves mutate the live state without touching history; a snapshot
is committed only when the drag is released. None of the operations raise for
a missing selection or unknown polygon or hotspot id; they simply do nothing.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from estateview.domain.geometry import (
    Point,
    distance_to_segment_squared,
    has_area,
    hotspots_to_absolute,
    hotspots_to_relative,
    polygons_to_absolute,
    polygons_to_relative,
)
from estateview.domain.history import SelectionHistory, Snapshot
from estateview.domain.magnifier import MagnifierLens, build_lens
from estateview.domain.selections import Hotspot, Polygon, SelectionDetails

# ~10px around an edge
EDGE_INSERT_THRESHOLD_SQUARED = 100.0

DEFAULT_POLYGON_MIN = 0.2
DEFAULT_POLYGON_MAX = 0.8

LinkCallback = Callable[[str, str, Optional[str]], Any]


@dataclass(frozen=True)
class Idle:
    name = "idle"


@dataclass(frozen=True)
class DraggingPolygon:
    polygon_id: int
    initial_points: Tuple[Point, ...]
    offset: Point

    name = "polygon"


@dataclass(frozen=True)
class DraggingVertex:
    polygon_id: int
    vertex_index: int
    initial_points: Tuple[Point, ...]
    offset: Point

    name = "vertex"


@dataclass(frozen=True)
class DraggingHotspot:
    hotspot_id: int
    offset: Point

    name = "hotspot"


DragState = Union[Idle, DraggingPolygon, DraggingVertex, DraggingHotspot]

IDLE = Idle()


class PolygonEditor:
    """Interactive polygon and hotspot editing over a background image."""

    def __init__(
        self,
        width: float,
        height: float,
        on_link_requested: Optional[LinkCallback] = None,
    ) -> None:
        self._width = float(width)
        self._height = float(height)
        self._on_link_requested = on_link_requested
        self._polygons: List[Polygon] = []
        self._hotspots: List[Hotspot] = []
        self._history = SelectionHistory()
        self._selected_id: Optional[int] = None
        self._selected_hotspot_id: Optional[int] = None
        self._drag: DragState = IDLE
        self._cursor: Optional[Point] = None

    # Read-only state

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    @property
    def has_surface(self) -> bool:
        return has_area(self._width, self._height)

    @property
    def polygons(self) -> List[Polygon]:
        return list(self._polygons)

    @property
    def hotspots(self) -> List[Hotspot]:
        return list(self._hotspots)

    @property
    def history(self) -> SelectionHistory:
        return self._history

    @property
    def selected_id(self) -> Optional[int]:
        return self._selected_id

    @property
    def selected_hotspot_id(self) -> Optional[int]:
        return self._selected_hotspot_id

    @property
    def drag_state(self) -> DragState:
        return self._drag

    def get_polygon(self, polygon_id: int) -> Optional[Polygon]:
        for polygon in self._polygons:
            if polygon.id == polygon_id:
                return polygon
        return None

    def get_hotspot(self, hotspot_id: int) -> Optional[Hotspot]:
        for hotspot in self._hotspots:
            if hotspot.id == hotspot_id:
                return hotspot
        return None

    # Loading and exporting

    def load(
        self, relative_polygons: Sequence[Polygon], relative_hotspots: Sequence[Hotspot] = ()
    ) -> None:
        """Replace everything with stored (relative) polygons and hotspots."""
        if self.has_surface:
            self._polygons = polygons_to_absolute(relative_polygons, self._width, self._height)
            self._hotspots = hotspots_to_absolute(relative_hotspots, self._width, self._height)
        else:
            self._polygons = []
            self._hotspots = []
        self._history.reset(self._polygons, self._hotspots)
        self._selected_id = None
        self._selected_hotspot_id = None
        self._drag = IDLE
        self._cursor = None

    def export_relative(self) -> List[Polygon]:
        return polygons_to_relative(self._polygons, self._width, self._height)

    def export_relative_hotspots(self) -> List[Hotspot]:
        return hotspots_to_relative(self._hotspots, self._width, self._height)

    def resize(self, width: float, height: float) -> None:
        """Rescale live polygons, hotspots and history onto a new surface size."""
        width, height = float(width), float(height)
        if not has_area(width, height):
            return
        if self.has_surface:
            scale_x = width / self._width
            scale_y = height / self._height
            self._polygons = [
                p.with_points(Point(pt.x * scale_x, pt.y * scale_y) for pt in p.points)
                for p in self._polygons
            ]
            self._hotspots = [
                h.moved_to(Point(h.position.x * scale_x, h.position.y * scale_y))
                for h in self._hotspots
            ]
            self._history.rescale(scale_x, scale_y)
        self._width, self._height = width, height
        self._drag = IDLE

    # Discrete edits

    def add_polygon(self) -> Optional[Polygon]:
        """Add a default quad covering the middle of the surface and select it."""
        if not self.has_surface:
            return None
        low_x, high_x = self._width * DEFAULT_POLYGON_MIN, self._width * DEFAULT_POLYGON_MAX
        low_y, high_y = self._height * DEFAULT_POLYGON_MIN, self._height * DEFAULT_POLYGON_MAX
        polygon = Polygon(
            id=self._next_id(),
            points=(
                Point(low_x, low_y),
                Point(high_x, low_y),
                Point(high_x, high_y),
                Point(low_x, high_y),
            ),
        )
        self._polygons.append(polygon)
        self._commit()
        self._selected_id = polygon.id
        self._selected_hotspot_id = None
        return polygon

    def delete_selected(self) -> bool:
        if self._selected_id is None or self.get_polygon(self._selected_id) is None:
            return False
        self._polygons = [p for p in self._polygons if p.id != self._selected_id]
        self._selected_id = None
        self._commit()
        return True

    def select(self, polygon_id: Optional[int]) -> None:
        if polygon_id is not None and self.get_polygon(polygon_id) is None:
            return
        self._selected_id = polygon_id
        if polygon_id is not None:
            self._selected_hotspot_id = None

    def add_hotspot(self) -> Optional[Hotspot]:
        """Drop an unlinked hotspot at the centre of the surface and select it."""
        if not self.has_surface:
            return None
        hotspot = Hotspot(id=self._next_id(), position=Point(self._width / 2, self._height / 2))
        self._hotspots.append(hotspot)
        self._commit()
        self._selected_hotspot_id = hotspot.id
        self._selected_id = None
        return hotspot

    def delete_selected_hotspot(self) -> bool:
        hotspot_id = self._selected_hotspot_id
        if hotspot_id is None or self.get_hotspot(hotspot_id) is None:
            return False
        self._hotspots = [h for h in self._hotspots if h.id != hotspot_id]
        self._selected_hotspot_id = None
        self._commit()
        return True

    def select_hotspot(self, hotspot_id: Optional[int]) -> None:
        if hotspot_id is not None and self.get_hotspot(hotspot_id) is None:
            return
        self._selected_hotspot_id = hotspot_id
        if hotspot_id is not None:
            self._selected_id = None

    def link_hotspot(self, hotspot_id: int, view_id: Optional[str]) -> bool:
        """Point a hotspot at another view (or unlink it with None) and commit."""
        index = self._hotspot_index_of(hotspot_id)
        if index is None:
            return False
        self._hotspots[index] = self._hotspots[index].with_link(view_id)
        self._commit()
        return True

    def insert_vertex(self, polygon_id: int, click: Point) -> bool:
        """
        Insert ``click`` into the edge nearest to it.

        Edges wrap from the last point back to the first. Nothing happens if
        the click is farther than the threshold from every edge.
        """
        index = self._index_of(polygon_id)
        if index is None:
            return False
        self.select(polygon_id)

        polygon = self._polygons[index]
        count = len(polygon.points)
        closest_edge = -1
        min_distance = float("inf")
        for i in range(count):
            start = polygon.points[i]
            end = polygon.points[(i + 1) % count]
            distance = distance_to_segment_squared(click, start, end)
            if distance < min_distance:
                min_distance = distance
                closest_edge = i

        if closest_edge == -1 or min_distance >= EDGE_INSERT_THRESHOLD_SQUARED:
            return False

        self._polygons[index] = polygon.with_inserted_vertex(closest_edge + 1, click)
        self._commit()
        return True

    def save_details(self, polygon_id: int, details: SelectionDetails) -> bool:
        """
        Attach details to a polygon and commit.

        When the details ask for a linked view or entity the link callback is
        invoked after the annotation has been stored; an exception from the
        callback reaches the caller but the annotation stays.
        """
        if self.get_polygon(polygon_id) is None:
            return False

        polygons = self._polygons
        if details.make_as_entity and details.title:
            # one selection per linked entity
            polygons = [
                p
                for p in polygons
                if p.id == polygon_id
                or not (
                    p.details
                    and p.details.make_as_entity
                    and p.details.title == details.title
                )
            ]
        self._polygons = [
            p.with_details(details) if p.id == polygon_id else p for p in polygons
        ]
        self._commit()

        kind = details.link_kind
        if kind and self._on_link_requested is not None:
            self._on_link_requested(details.title, kind, details.entity_type)
        return True

    def undo(self) -> bool:
        snapshot = self._history.undo()
        if snapshot is None:
            return False
        self._polygons = list(snapshot.polygons)
        self._hotspots = list(snapshot.hotspots)
        self._selected_id = None
        self._selected_hotspot_id = None
        self._drag = IDLE
        return True

    # Drag state machine

    def begin_polygon_drag(self, polygon_id: int, pointer: Point) -> bool:
        polygon = self.get_polygon(polygon_id)
        if polygon is None or not polygon.points:
            return False
        self.select(polygon_id)
        self._drag = DraggingPolygon(
            polygon_id=polygon_id,
            initial_points=polygon.points,
            offset=pointer - polygon.points[0],
        )
        return True

    def begin_vertex_drag(self, polygon_id: int, vertex_index: int, pointer: Point) -> bool:
        polygon = self.get_polygon(polygon_id)
        if polygon is None or not 0 <= vertex_index < len(polygon.points):
            return False
        self.select(polygon_id)
        self._drag = DraggingVertex(
            polygon_id=polygon_id,
            vertex_index=vertex_index,
            initial_points=polygon.points,
            offset=pointer - polygon.points[vertex_index],
        )
        self._cursor = pointer
        return True

    def begin_hotspot_drag(self, hotspot_id: int, pointer: Point) -> bool:
        hotspot = self.get_hotspot(hotspot_id)
        if hotspot is None:
            return False
        self.select_hotspot(hotspot_id)
        self._drag = DraggingHotspot(hotspot_id=hotspot_id, offset=pointer - hotspot.position)
        return True

    def move_polygon(self, delta: Point) -> None:
        """Translate the dragged polygon from where the drag started."""
        drag = self._drag
        if not isinstance(drag, DraggingPolygon):
            return
        index = self._index_of(drag.polygon_id)
        if index is None:
            return
        start = self._polygons[index].with_points(drag.initial_points)
        self._polygons[index] = start.translated(delta.x, delta.y)

    def move_vertex(self, polygon_id: int, vertex_index: int, position: Point) -> None:
        index = self._index_of(polygon_id)
        if index is None:
            return
        polygon = self._polygons[index]
        if not 0 <= vertex_index < len(polygon.points):
            return
        self._polygons[index] = polygon.with_vertex(vertex_index, position)

    def move_hotspot(self, hotspot_id: int, position: Point) -> None:
        index = self._hotspot_index_of(hotspot_id)
        if index is None:
            return
        self._hotspots[index] = self._hotspots[index].moved_to(position)

    def pointer_move(self, pointer: Point) -> None:
        self._cursor = pointer
        drag = self._drag
        if isinstance(drag, DraggingPolygon):
            anchor = drag.initial_points[0]
            self.move_polygon(pointer - drag.offset - anchor)
        elif isinstance(drag, DraggingVertex):
            self.move_vertex(drag.polygon_id, drag.vertex_index, pointer - drag.offset)
        elif isinstance(drag, DraggingHotspot):
            self.move_hotspot(drag.hotspot_id, pointer - drag.offset)

    def pointer_up(self) -> bool:
        """Finish a drag; commits only if the drag changed something."""
        if isinstance(self._drag, Idle):
            return False
        self._drag = IDLE
        if self._snapshot() == self._history.current:
            return False
        self._commit()
        return True

    def magnifier(self) -> Optional[MagnifierLens]:
        drag = self._drag
        if not isinstance(drag, DraggingVertex):
            return None
        polygon = self.get_polygon(drag.polygon_id)
        return build_lens(
            self._cursor,
            self._width,
            self._height,
            polygon.points if polygon else None,
        )

    def to_json(self) -> Dict[str, Any]:
        lens = self.magnifier()
        return {
            "width": self._width,
            "height": self._height,
            "polygons": [p.to_json() for p in self._polygons],
            "hotspots": [h.to_json() for h in self._hotspots],
            "selectedId": self._selected_id,
            "selectedHotspotId": self._selected_hotspot_id,
            "drag": self._drag.name,
            "historyLength": len(self._history),
            "historyIndex": self._history.index,
            "canUndo": self._history.can_undo,
            "magnifier": lens.to_json() if lens else None,
        }

    # Internals

    def _snapshot(self) -> Snapshot:
        return Snapshot(tuple(self._polygons), tuple(self._hotspots))

    def _commit(self) -> None:
        self._history.commit(self._polygons, self._hotspots)

    def _index_of(self, polygon_id: int) -> Optional[int]:
        for i, polygon in enumerate(self._polygons):
            if polygon.id == polygon_id:
                return i
        return None

    def _hotspot_index_of(self, hotspot_id: int) -> Optional[int]:
        for i, hotspot in enumerate(self._hotspots):
            if hotspot.id == hotspot_id:
                return i
        return None

    def _next_id(self) -> int:
        # Polygons and hotspots share one id sequence.
        candidate = int(time.time() * 1000)
        taken = [p.id for p in self._polygons] + [h.id for h in self._hotspots]
        if taken:
            candidate = max(candidate, max(taken) + 1)
        return candidate
