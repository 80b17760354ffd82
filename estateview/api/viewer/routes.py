from __future__ import annotations

from typing import Mapping, Tuple

from flask import Blueprint, current_app, jsonify, request

from estateview.app.container import get_viewer_service
from estateview.domain.filters import Filters
from estateview.domain.geometry import Point, finite_float
from estateview.services.project_service import (
    EntityNotFoundError,
    ProjectError,
    ProjectNotFoundError,
    ViewNotFoundError,
)
from estateview.storage.errors import StoreError

viewer_bp = Blueprint("viewer", __name__)


def _sizes(data: Mapping) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    natural = (finite_float(data.get("naturalWidth", 0)), finite_float(data.get("naturalHeight", 0)))
    container = (finite_float(data.get("containerWidth", 0)), finite_float(data.get("containerHeight", 0)))
    return natural, container


@viewer_bp.get("/api/landing")
def landing():
    """The landing project, its entry entity and that entity's default view."""
    try:
        found = get_viewer_service().landing()
    except (ProjectNotFoundError, EntityNotFoundError, ViewNotFoundError) as exc:
        return jsonify({"message": str(exc)}), 404
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error loading landing page: {exc}", exc_info=True)
        return jsonify({"message": "Internal server error"}), 500

    if found is None:
        return jsonify({"message": "No landing page has been configured."}), 404
    view = found["view"]
    return jsonify({
        "projectId": found["projectId"],
        "entity": found["entity"].to_json(),
        "view": view.to_json() if view else None,
    }), 200


@viewer_bp.get("/api/projects/<project_id>/views/<view_id>/overlay")
def overlay(project_id: str, view_id: str):
    """
    Selections of a view placed on the letterboxed image, with filter match
    counts. Sizes and filters come from the query string.
    """
    try:
        natural, container = _sizes(request.args)
        filters = Filters.from_mapping(request.args)
        result = get_viewer_service().overlay(project_id, view_id, natural, container, filters)
        return jsonify(result.to_json()), 200
    except (ValueError, TypeError) as exc:
        return jsonify({"message": f"Invalid data: {exc}"}), 400
    except (ProjectNotFoundError, ViewNotFoundError) as exc:
        return jsonify({"message": str(exc)}), 404
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error building overlay for view {view_id}: {exc}", exc_info=True)
        return jsonify({"message": "Internal server error"}), 500


@viewer_bp.post("/api/projects/<project_id>/views/<view_id>/hit")
def hit(project_id: str, view_id: str):
    """Resolve a click on the viewer to a selection and its details."""
    data = request.get_json(silent=True) or {}
    try:
        natural, container = _sizes(data)
        point = Point(finite_float(data["x"]), finite_float(data["y"]))
        filters = Filters.from_mapping(data.get("filters"))
        result = get_viewer_service().hit(project_id, view_id, natural, container, point, filters)
    except (KeyError, ValueError, TypeError) as exc:
        return jsonify({"message": f"Invalid data: {exc}"}), 400
    except (ProjectNotFoundError, ViewNotFoundError) as exc:
        return jsonify({"message": str(exc)}), 404
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error hit-testing view {view_id}: {exc}", exc_info=True)
        return jsonify({"message": "Internal server error"}), 500

    return jsonify({"hit": result}), 200
