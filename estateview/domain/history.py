from __future__ import annotations

from typing import List, NamedTuple, Optional, Sequence, Tuple

from estateview.domain.geometry import Point
from estateview.domain.selections import Hotspot, Polygon


class Snapshot(NamedTuple):
    polygons: Tuple[Polygon, ...] = ()
    hotspots: Tuple[Hotspot, ...] = ()


class SelectionHistory:
    """
    Undo stack of full snapshots of a view's polygons and hotspots.

    The index always points at the snapshot matching the live state. Committing
    drops anything after the index; there is no redo.
    """

    def __init__(self, polygons: Sequence[Polygon] = (), hotspots: Sequence[Hotspot] = ()) -> None:
        self._snapshots: List[Snapshot] = [Snapshot(tuple(polygons), tuple(hotspots))]
        self._index = 0

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> Snapshot:
        return self._snapshots[self._index]

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    def reset(self, polygons: Sequence[Polygon] = (), hotspots: Sequence[Hotspot] = ()) -> None:
        self._snapshots = [Snapshot(tuple(polygons), tuple(hotspots))]
        self._index = 0

    def commit(self, polygons: Sequence[Polygon], hotspots: Sequence[Hotspot] = ()) -> None:
        del self._snapshots[self._index + 1:]
        self._snapshots.append(Snapshot(tuple(polygons), tuple(hotspots)))
        self._index = len(self._snapshots) - 1

    def undo(self) -> Optional[Snapshot]:
        """Step back one snapshot; None when already at the oldest."""
        if not self.can_undo:
            return None
        self._index -= 1
        return self._snapshots[self._index]

    def rescale(self, scale_x: float, scale_y: float) -> None:
        # Used when the editing surface changes size.
        def scale(p: Point) -> Point:
            return Point(p.x * scale_x, p.y * scale_y)

        self._snapshots = [
            Snapshot(
                tuple(polygon.with_points(scale(p) for p in polygon.points) for polygon in snapshot.polygons),
                tuple(hotspot.moved_to(scale(hotspot.position)) for hotspot in snapshot.hotspots),
            )
            for snapshot in self._snapshots
        ]
