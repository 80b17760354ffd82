from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from estateview.app.container import get_project_service
from estateview.services.project_service import (
    EntityConflictError,
    EntityNotFoundError,
    ProjectError,
    ProjectNotFoundError,
    ViewNotFoundError,
)
from estateview.storage.errors import StoreError

projects_bp = Blueprint("projects", __name__)


@projects_bp.get("/api/projects")
def list_projects():
    """List all projects."""
    try:
        return jsonify({"projects": get_project_service().list_projects()}), 200
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error listing projects: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.post("/api/projects")
def create_project():
    """Create a new project."""
    data = request.get_json(silent=True) or {}
    name = str(data.get("name", "")).strip()

    service = get_project_service()
    try:
        project = service.create_project(name)
        return jsonify({"message": "Project created successfully.", "project": project}), 201
    except EntityConflictError as exc:
        return jsonify({"message": str(exc)}), 409
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error creating project: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.delete("/api/projects/<project_id>")
def delete_project(project_id: str):
    """Delete a project and everything stored for it."""
    service = get_project_service()
    try:
        service.delete_project(project_id)
        return jsonify({"message": "Project deleted successfully."}), 200
    except ProjectNotFoundError as exc:
        return jsonify({"message": str(exc)}), 404
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error deleting project {project_id}: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.get("/api/projects/<project_id>/entities")
def list_entities(project_id: str):
    """List the entity tree of a project as a flat list."""
    service = get_project_service()
    try:
        entities = service.list_entities(project_id)
        return jsonify({"entities": [entity.to_json() for entity in entities]}), 200
    except ProjectNotFoundError as exc:
        return jsonify({"message": str(exc)}), 404
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error listing entities: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.post("/api/projects/<project_id>/entities")
def add_entity(project_id: str):
    """Add an entity, optionally below a parent."""
    data = request.get_json(silent=True) or {}
    name = str(data.get("name", "")).strip()
    entity_type = data.get("entityType")
    parent_id = data.get("parentId") or None
    if not entity_type:
        return jsonify({"message": "entityType is required"}), 400

    service = get_project_service()
    try:
        entity = service.add_entity(project_id, name, str(entity_type), parent_id=parent_id)
        return jsonify({"message": "Entity created successfully.", "entity": entity.to_json()}), 201
    except EntityConflictError as exc:
        return jsonify({"message": str(exc)}), 409
    except (ProjectNotFoundError, EntityNotFoundError) as exc:
        return jsonify({"message": str(exc)}), 404
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error adding entity: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.get("/api/projects/<project_id>/entities/<entity_id>")
def get_entity(project_id: str, entity_id: str):
    """Get entity by ID."""
    service = get_project_service()
    try:
        entity = service.get_entity(project_id, entity_id)
        return jsonify({"entity": entity.to_json()}), 200
    except (ProjectNotFoundError, EntityNotFoundError) as exc:
        return jsonify({"message": str(exc)}), 404
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error loading entity {entity_id}: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.put("/api/projects/<project_id>/entities/<entity_id>")
def update_entity(project_id: str, entity_id: str):
    """Update entity properties (price, areas, status, rooms and so on)."""
    data = request.get_json(silent=True) or {}
    current_app.logger.info(f"Updating entity {entity_id} in project {project_id}: {sorted(data)}")
    if not data:
        return jsonify({"message": "At least one field must be provided"}), 400

    service = get_project_service()
    try:
        entity = service.update_entity(project_id, entity_id, data)
        return jsonify({"message": "Entity updated successfully.", "entity": entity.to_json()}), 200
    except (ValueError, TypeError) as exc:
        return jsonify({"message": f"Invalid data: {exc}"}), 400
    except (ProjectNotFoundError, EntityNotFoundError) as exc:
        return jsonify({"message": str(exc)}), 404
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error updating entity {entity_id}: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.delete("/api/projects/<project_id>/entities/<entity_id>")
def delete_entity(project_id: str, entity_id: str):
    """Delete an entity, its descendants and their views."""
    service = get_project_service()
    try:
        deleted = service.delete_entity(project_id, entity_id)
        return jsonify({"message": "Entity deleted successfully.", "deleted": deleted}), 200
    except (ProjectNotFoundError, EntityNotFoundError) as exc:
        return jsonify({"message": str(exc)}), 404
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error deleting entity {entity_id}: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.post("/api/projects/<project_id>/entities/<entity_id>/views")
def add_view(project_id: str, entity_id: str):
    """Add a view to an entity."""
    data = request.get_json(silent=True) or {}
    name = str(data.get("name", "")).strip()
    view_type = str(data.get("type") or "2d")

    service = get_project_service()
    try:
        view = service.add_view(project_id, entity_id, name, view_type)
        return jsonify({"message": "View created successfully.", "view": view.to_json()}), 201
    except EntityConflictError as exc:
        return jsonify({"message": str(exc)}), 409
    except (ProjectNotFoundError, EntityNotFoundError) as exc:
        return jsonify({"message": str(exc)}), 404
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error adding view: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.get("/api/projects/<project_id>/entities/<entity_id>/views/<view_id>")
def get_view(project_id: str, entity_id: str, view_id: str):
    """Get a view together with its image and selections."""
    service = get_project_service()
    try:
        view = service.get_view(project_id, entity_id, view_id)
        return jsonify({"view": view.to_json()}), 200
    except (ProjectNotFoundError, EntityNotFoundError, ViewNotFoundError) as exc:
        return jsonify({"message": str(exc)}), 404
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error loading view {view_id}: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.delete("/api/projects/<project_id>/entities/<entity_id>/views/<view_id>")
def delete_view(project_id: str, entity_id: str, view_id: str):
    """Delete a view with its stored image and selections."""
    service = get_project_service()
    try:
        service.delete_view(project_id, entity_id, view_id)
        return jsonify({"message": "View deleted successfully."}), 200
    except (ProjectNotFoundError, EntityNotFoundError, ViewNotFoundError) as exc:
        return jsonify({"message": str(exc)}), 404
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error deleting view {view_id}: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.put("/api/projects/<project_id>/entities/<entity_id>/default-view")
def set_default_view(project_id: str, entity_id: str):
    """Choose which view of an entity is shown first."""
    data = request.get_json(silent=True) or {}
    view_id = data.get("viewId")
    if not view_id:
        return jsonify({"message": "viewId is required"}), 400

    service = get_project_service()
    try:
        entity = service.set_default_view(project_id, entity_id, str(view_id))
        return jsonify({"entity": entity.to_json()}), 200
    except (ProjectNotFoundError, EntityNotFoundError, ViewNotFoundError) as exc:
        return jsonify({"message": str(exc)}), 404
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error setting default view: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.put("/api/projects/<project_id>/landing")
def set_landing_entity(project_id: str):
    """Pick the entity the public landing page opens on (null clears it)."""
    data = request.get_json(silent=True) or {}
    entity_id = data.get("entityId") or None

    service = get_project_service()
    try:
        service.set_landing_entity(project_id, entity_id)
        return jsonify({"message": "Landing entity updated.", "entityId": entity_id}), 200
    except (ProjectNotFoundError, EntityNotFoundError) as exc:
        return jsonify({"message": str(exc)}), 404
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error setting landing entity: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.get("/api/entity-types")
def list_entity_types():
    try:
        return jsonify({"entityTypes": get_project_service().entity_types()}), 200
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error loading entity types: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.post("/api/entity-types")
def add_entity_type():
    data = request.get_json(silent=True) or {}
    name = str(data.get("name", "")).strip()
    if not name:
        return jsonify({"message": "name is required"}), 400
    try:
        return jsonify({"entityTypes": get_project_service().add_entity_type(name)}), 200
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error adding entity type: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.delete("/api/entity-types/<type_name>")
def delete_entity_type(type_name: str):
    try:
        return jsonify({"entityTypes": get_project_service().delete_entity_type(type_name)}), 200
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error deleting entity type: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.get("/api/view-types")
def list_view_types():
    try:
        return jsonify({"viewTypes": get_project_service().view_types()}), 200
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error loading view types: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.post("/api/view-types")
def add_view_type():
    data = request.get_json(silent=True) or {}
    name = str(data.get("name", "")).strip()
    if not name:
        return jsonify({"message": "name is required"}), 400
    try:
        return jsonify({"viewTypes": get_project_service().add_view_type(name)}), 200
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error adding view type: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500


@projects_bp.delete("/api/view-types/<type_name>")
def delete_view_type(type_name: str):
    try:
        return jsonify({"viewTypes": get_project_service().delete_view_type(type_name)}), 200
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error deleting view type: {exc}", exc_info=True)
        return jsonify({"message": str(exc)}), 500
