from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from estateview.app.container import get_editor_service
from estateview.domain.geometry import Point, finite_float
from estateview.domain.selections import SelectionDetails
from estateview.services.editor_service import EditorNotOpenError
from estateview.services.project_service import (
    EntityConflictError,
    EntityNotFoundError,
    ProjectError,
    ProjectNotFoundError,
    ViewNotFoundError,
)
from estateview.storage.errors import StoreError

editor_bp = Blueprint("editor", __name__)

_EDITOR_PREFIX = "/api/projects/<project_id>/views/<view_id>/editor"


def _point(data: dict, x_key: str = "x", y_key: str = "y") -> Point:
    x = data.get(x_key)
    y = data.get(y_key)
    if x is None or y is None:
        raise ValueError(f"{x_key} and {y_key} are required")
    return Point(finite_float(x), finite_float(y))


def _state(editor, **extra):
    payload = {"success": True, "editor": editor.to_json()}
    payload.update(extra)
    return jsonify(payload), 200


@editor_bp.post(_EDITOR_PREFIX)
def open_editor(project_id: str, view_id: str):
    """Open the selection editor of a view at the size of the editing surface."""
    data = request.get_json(silent=True) or {}
    entity_id = data.get("entityId")
    if not entity_id:
        return jsonify({"success": False, "message": "entityId is required"}), 400

    try:
        width = finite_float(data.get("width", 0))
        height = finite_float(data.get("height", 0))
        editor = get_editor_service().open(project_id, str(entity_id), view_id, width, height)
        return _state(editor)
    except (ValueError, TypeError) as e:
        return jsonify({"success": False, "message": f"Invalid surface size: {e}"}), 400
    except (ProjectNotFoundError, EntityNotFoundError, ViewNotFoundError) as e:
        return jsonify({"success": False, "message": str(e)}), 404
    except (ProjectError, StoreError) as e:
        current_app.logger.error(f"Error opening editor for view {view_id}: {e}", exc_info=True)
        return jsonify({"success": False, "message": "Internal server error"}), 500


@editor_bp.get(_EDITOR_PREFIX)
def get_editor_state(project_id: str, view_id: str):
    """Current polygons, selection, drag state and magnifier of an open editor."""
    try:
        return _state(get_editor_service().get(project_id, view_id))
    except EditorNotOpenError as e:
        return jsonify({"success": False, "message": str(e)}), 404


@editor_bp.delete(_EDITOR_PREFIX)
def close_editor(project_id: str, view_id: str):
    get_editor_service().close(project_id, view_id)
    return jsonify({"success": True}), 200


@editor_bp.post(f"{_EDITOR_PREFIX}/resize")
def resize_editor(project_id: str, view_id: str):
    """Rescale polygons and history to a new surface size."""
    data = request.get_json(silent=True) or {}
    try:
        editor = get_editor_service().get(project_id, view_id)
        editor.resize(finite_float(data.get("width", 0)), finite_float(data.get("height", 0)))
        return _state(editor)
    except (ValueError, TypeError) as e:
        return jsonify({"success": False, "message": f"Invalid surface size: {e}"}), 400
    except EditorNotOpenError as e:
        return jsonify({"success": False, "message": str(e)}), 404


@editor_bp.post(f"{_EDITOR_PREFIX}/polygons")
def add_polygon(project_id: str, view_id: str):
    """Add a default quad and select it."""
    try:
        editor = get_editor_service().get(project_id, view_id)
    except EditorNotOpenError as e:
        return jsonify({"success": False, "message": str(e)}), 404

    polygon = editor.add_polygon()
    if polygon is None:
        return jsonify({"success": False, "message": "Editing surface has no size yet"}), 409
    return _state(editor, polygon=polygon.to_json())


@editor_bp.delete(f"{_EDITOR_PREFIX}/selected")
def delete_selected(project_id: str, view_id: str):
    try:
        editor = get_editor_service().get(project_id, view_id)
    except EditorNotOpenError as e:
        return jsonify({"success": False, "message": str(e)}), 404
    return _state(editor, deleted=editor.delete_selected())


@editor_bp.post(f"{_EDITOR_PREFIX}/select")
def select_polygon(project_id: str, view_id: str):
    data = request.get_json(silent=True) or {}
    polygon_id = data.get("polygonId")
    try:
        editor = get_editor_service().get(project_id, view_id)
        editor.select(int(polygon_id) if polygon_id is not None else None)
        return _state(editor)
    except (ValueError, TypeError) as e:
        return jsonify({"success": False, "message": f"Invalid polygon id: {e}"}), 400
    except EditorNotOpenError as e:
        return jsonify({"success": False, "message": str(e)}), 404


@editor_bp.post(f"{_EDITOR_PREFIX}/pointer/down")
def pointer_down(project_id: str, view_id: str):
    """
    Start a drag. A hotspotId drags that hotspot; with a polygonId and a
    vertexIndex the vertex is dragged, otherwise the whole polygon.
    """
    data = request.get_json(silent=True) or {}
    try:
        editor = get_editor_service().get(project_id, view_id)
        pointer = _point(data)
        if data.get("hotspotId") is not None:
            started = editor.begin_hotspot_drag(int(data["hotspotId"]), pointer)
            return _state(editor, started=started)

        polygon_id = int(data["polygonId"])
        vertex_index = data.get("vertexIndex")
        if vertex_index is None:
            started = editor.begin_polygon_drag(polygon_id, pointer)
        else:
            started = editor.begin_vertex_drag(polygon_id, int(vertex_index), pointer)
        return _state(editor, started=started)
    except (KeyError, ValueError, TypeError) as e:
        return jsonify({"success": False, "message": f"Invalid pointer data: {e}"}), 400
    except EditorNotOpenError as e:
        return jsonify({"success": False, "message": str(e)}), 404


@editor_bp.post(f"{_EDITOR_PREFIX}/pointer/move")
def pointer_move(project_id: str, view_id: str):
    data = request.get_json(silent=True) or {}
    try:
        editor = get_editor_service().get(project_id, view_id)
        editor.pointer_move(_point(data))
        return _state(editor)
    except (ValueError, TypeError) as e:
        return jsonify({"success": False, "message": f"Invalid coordinates: {e}"}), 400
    except EditorNotOpenError as e:
        return jsonify({"success": False, "message": str(e)}), 404


@editor_bp.post(f"{_EDITOR_PREFIX}/pointer/up")
def pointer_up(project_id: str, view_id: str):
    try:
        editor = get_editor_service().get(project_id, view_id)
    except EditorNotOpenError as e:
        return jsonify({"success": False, "message": str(e)}), 404
    return _state(editor, committed=editor.pointer_up())


@editor_bp.post(f"{_EDITOR_PREFIX}/vertices")
def insert_vertex(project_id: str, view_id: str):
    """Double-click on a polygon: insert a vertex into the nearest edge."""
    data = request.get_json(silent=True) or {}
    try:
        editor = get_editor_service().get(project_id, view_id)
        inserted = editor.insert_vertex(int(data["polygonId"]), _point(data))
        return _state(editor, inserted=inserted)
    except (KeyError, ValueError, TypeError) as e:
        return jsonify({"success": False, "message": f"Invalid data: {e}"}), 400
    except EditorNotOpenError as e:
        return jsonify({"success": False, "message": str(e)}), 404


@editor_bp.put(f"{_EDITOR_PREFIX}/polygons/<int:polygon_id>/details")
def save_details(project_id: str, view_id: str, polygon_id: int):
    """Attach details to a polygon, creating the linked entity or view if asked."""
    data = request.get_json(silent=True) or {}
    current_app.logger.info(f"Saving details of polygon {polygon_id} in view {view_id} (title {data.get('title')!r})")
    try:
        editor = get_editor_service().get(project_id, view_id)
        details = SelectionDetails.from_json(data)
        if not details.title:
            return jsonify({"success": False, "message": "title is required"}), 400
        saved = editor.save_details(polygon_id, details)
        if not saved:
            return jsonify({"success": False, "message": f"Polygon {polygon_id} not found"}), 404
        return _state(editor)
    except (ValueError, TypeError) as e:
        return jsonify({"success": False, "message": f"Invalid data: {e}"}), 400
    except EditorNotOpenError as e:
        return jsonify({"success": False, "message": str(e)}), 404
    except EntityConflictError as e:
        return jsonify({"success": False, "message": str(e)}), 409
    except (ProjectError, StoreError) as e:
        current_app.logger.error(f"Error linking polygon {polygon_id}: {e}", exc_info=True)
        return jsonify({"success": False, "message": "Internal server error"}), 500


@editor_bp.post(f"{_EDITOR_PREFIX}/hotspots")
def add_hotspot(project_id: str, view_id: str):
    """Drop an unlinked hotspot at the centre of the surface."""
    try:
        editor = get_editor_service().get(project_id, view_id)
    except EditorNotOpenError as e:
        return jsonify({"success": False, "message": str(e)}), 404

    hotspot = editor.add_hotspot()
    if hotspot is None:
        return jsonify({"success": False, "message": "Editing surface has no size yet"}), 409
    return _state(editor, hotspot=hotspot.to_json())


@editor_bp.delete(f"{_EDITOR_PREFIX}/hotspots/selected")
def delete_selected_hotspot(project_id: str, view_id: str):
    try:
        editor = get_editor_service().get(project_id, view_id)
    except EditorNotOpenError as e:
        return jsonify({"success": False, "message": str(e)}), 404
    return _state(editor, deleted=editor.delete_selected_hotspot())


@editor_bp.post(f"{_EDITOR_PREFIX}/hotspots/select")
def select_hotspot(project_id: str, view_id: str):
    data = request.get_json(silent=True) or {}
    hotspot_id = data.get("hotspotId")
    try:
        editor = get_editor_service().get(project_id, view_id)
        editor.select_hotspot(int(hotspot_id) if hotspot_id is not None else None)
        return _state(editor)
    except (ValueError, TypeError) as e:
        return jsonify({"success": False, "message": f"Invalid hotspot id: {e}"}), 400
    except EditorNotOpenError as e:
        return jsonify({"success": False, "message": str(e)}), 404


@editor_bp.put(f"{_EDITOR_PREFIX}/hotspots/<int:hotspot_id>/link")
def link_hotspot(project_id: str, view_id: str, hotspot_id: int):
    """Link a hotspot to an existing view (viewId) or a new one (newViewName)."""
    data = request.get_json(silent=True) or {}
    service = get_editor_service()
    try:
        linked = service.link_hotspot(
            project_id,
            view_id,
            hotspot_id,
            target_view_id=data.get("viewId") or None,
            new_view_name=data.get("newViewName") or None,
            new_view_type=data.get("newViewType") or "2d",
        )
        if linked is None:
            return jsonify({"success": False, "message": f"Hotspot {hotspot_id} not found"}), 404
        return _state(service.get(project_id, view_id), linkedViewId=linked)
    except (ValueError, TypeError) as e:
        return jsonify({"success": False, "message": f"Invalid data: {e}"}), 400
    except (EditorNotOpenError, EntityNotFoundError, ViewNotFoundError) as e:
        return jsonify({"success": False, "message": str(e)}), 404
    except EntityConflictError as e:
        return jsonify({"success": False, "message": str(e)}), 409
    except (ProjectError, StoreError) as e:
        current_app.logger.error(f"Error linking hotspot {hotspot_id}: {e}", exc_info=True)
        return jsonify({"success": False, "message": "Internal server error"}), 500


@editor_bp.post(f"{_EDITOR_PREFIX}/undo")
def undo_action(project_id: str, view_id: str):
    """Undo last action."""
    try:
        editor = get_editor_service().get(project_id, view_id)
    except EditorNotOpenError as e:
        return jsonify({"success": False, "message": str(e)}), 404
    return _state(editor, undone=editor.undo())


@editor_bp.post(f"{_EDITOR_PREFIX}/save")
def save_selections(project_id: str, view_id: str):
    """Persist the editor's polygons and hotspots in relative coordinates."""
    try:
        saved = get_editor_service().save(project_id, view_id)
    except EditorNotOpenError as e:
        return jsonify({"success": False, "message": str(e)}), 404
    except (ProjectNotFoundError, EntityNotFoundError, ViewNotFoundError) as e:
        return jsonify({"success": False, "message": str(e)}), 404
    except (ProjectError, StoreError) as e:
        current_app.logger.error(f"Error saving selections for view {view_id}: {e}", exc_info=True)
        return jsonify({"success": False, "message": "Internal server error"}), 500

    if not saved:
        return jsonify({"success": False, "message": "Editing surface has no size yet"}), 409
    return jsonify({"success": True}), 200
