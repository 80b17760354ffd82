from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from flask import current_app

from estateview.domain.editor import PolygonEditor
from estateview.services.project_service import ProjectService, ViewNotFoundError

DEFAULT_LINKED_ENTITY_TYPE = "Apartment"
DEFAULT_LINKED_VIEW_TYPE = "2d"


class EditorError(Exception):
    """Base exception raised for selection editor issues."""


class EditorNotOpenError(EditorError):
    """Raised when no editor is open for a view."""


@dataclass
class EditorSession:
    project_id: str
    entity_id: str
    view_id: str
    editor: PolygonEditor


class EditorService:
    """Keep one selection editor per view open in process memory."""

    def __init__(self, project_service: ProjectService) -> None:
        self._project_service = project_service
        self._sessions: Dict[Tuple[str, str], EditorSession] = {}

    def open(
        self,
        project_id: str,
        entity_id: str,
        view_id: str,
        width: float,
        height: float,
    ) -> PolygonEditor:
        """
        Open (or reopen) the editor for a view at the given surface size.

        Stored selections and hotspots are loaded and scaled onto the surface;
        any previous editor for the same view is discarded with its history.
        """
        view = self._project_service.get_view(project_id, entity_id, view_id)

        def request_link(title: str, kind: str, entity_type: Optional[str]) -> None:
            self._link(project_id, entity_id, title, kind, entity_type)

        editor = PolygonEditor(width, height, on_link_requested=request_link)
        editor.load(view.selections, view.hotspots)
        if not editor.has_surface:
            current_app.logger.warning(
                f"Editor for view {view_id} opened on a zero-sized surface ({width}x{height})"
            )

        self._sessions[(project_id, view_id)] = EditorSession(
            project_id=project_id, entity_id=entity_id, view_id=view_id, editor=editor
        )
        current_app.logger.info(
            f"Opened editor for view {view_id} with {len(view.selections)} selections "
            f"and {len(view.hotspots)} hotspots"
        )
        return editor

    def get(self, project_id: str, view_id: str) -> PolygonEditor:
        return self._session(project_id, view_id).editor

    def save(self, project_id: str, view_id: str) -> bool:
        """
        Persist the editor's selections and hotspots in relative coordinates.

        Returns False without touching the store when the surface has no size,
        so stored selections are never overwritten with a bogus conversion.
        """
        session = self._session(project_id, view_id)
        editor = session.editor
        if not editor.has_surface:
            current_app.logger.warning(
                f"Skipped saving view {view_id}: editing surface has no size yet"
            )
            return False

        self._project_service.save_selections(
            project_id,
            session.entity_id,
            view_id,
            editor.export_relative(),
            editor.export_relative_hotspots(),
        )
        return True

    def link_hotspot(
        self,
        project_id: str,
        view_id: str,
        hotspot_id: int,
        target_view_id: Optional[str] = None,
        new_view_name: Optional[str] = None,
        new_view_type: str = DEFAULT_LINKED_VIEW_TYPE,
    ) -> Optional[str]:
        """
        Link a hotspot to one of the edited entity's views.

        With ``new_view_name`` the view is created on the entity (or reused if
        one already has that name). Returns the linked view id, or None when
        the editor has no such hotspot.
        """
        session = self._session(project_id, view_id)
        if session.editor.get_hotspot(hotspot_id) is None:
            return None

        if new_view_name:
            target = self._project_service.ensure_view(
                project_id, session.entity_id, new_view_name, new_view_type
            )
            target_view_id = target.id
        elif target_view_id:
            entity = self._project_service.get_entity(project_id, session.entity_id)
            if entity.get_view(target_view_id) is None:
                raise ViewNotFoundError(f"View with id {target_view_id} not found.")
        else:
            raise ValueError("viewId or newViewName is required")

        session.editor.link_hotspot(hotspot_id, target_view_id)
        current_app.logger.info(f"Hotspot {hotspot_id} in view {view_id} linked to view {target_view_id}")
        return target_view_id

    def close(self, project_id: str, view_id: str) -> None:
        self._sessions.pop((project_id, view_id), None)

    def _session(self, project_id: str, view_id: str) -> EditorSession:
        session = self._sessions.get((project_id, view_id))
        if session is None:
            raise EditorNotOpenError(f"No editor is open for view {view_id}.")
        return session

    def _link(
        self,
        project_id: str,
        entity_id: str,
        title: str,
        kind: str,
        entity_type: Optional[str],
    ) -> None:
        if kind == "entity":
            entity = self._project_service.ensure_child_entity(
                project_id, entity_id, title, entity_type or DEFAULT_LINKED_ENTITY_TYPE
            )
            current_app.logger.info(f"Selection '{title}' linked to entity {entity.id}")
        elif kind == "view":
            view = self._project_service.ensure_view(
                project_id, entity_id, title, DEFAULT_LINKED_VIEW_TYPE
            )
            current_app.logger.info(f"Selection '{title}' linked to view {view.id}")
