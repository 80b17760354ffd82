"""
Domain models package.

Pure geometry, selection editing and entity filtering; nothing in here talks
to Flask or to storage.
"""

from estateview.domain.geometry import (
    Point,
    Rect,
    fit_image_rect,
    to_absolute,
    to_relative,
)
from estateview.domain.selections import Hotspot, Polygon, SelectionDetails
from estateview.domain.history import SelectionHistory
from estateview.domain.editor import PolygonEditor
from estateview.domain.entities import Entity, RoomDetail, View
from estateview.domain.filters import Filters

__all__ = [
    'Point',
    'Rect',
    'fit_image_rect',
    'to_absolute',
    'to_relative',
    'Hotspot',
    'Polygon',
    'SelectionDetails',
    'SelectionHistory',
    'PolygonEditor',
    'Entity',
    'RoomDetail',
    'View',
    'Filters',
]
