from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from estateview.app.container import get_image_service, get_project_service
from estateview.services.image_service import ImageDecodeError, UnsupportedImageError
from estateview.services.project_service import (
    EntityNotFoundError,
    ProjectError,
    ProjectNotFoundError,
    ViewNotFoundError,
)
from estateview.storage.errors import StoreError

uploads_bp = Blueprint("uploads", __name__)


@uploads_bp.post("/api/projects/<project_id>/entities/<entity_id>/views/<view_id>/image")
def upload_view_image(project_id: str, entity_id: str, view_id: str):
    """Upload the background image of a view. PDFs are reduced to their first page."""
    file = request.files.get("image")

    project_service = get_project_service()
    try:
        # Checked before decoding so a bad URL never pays for the image work.
        if project_service.get_entity(project_id, entity_id).get_view(view_id) is None:
            raise ViewNotFoundError(f"View with id {view_id} not found.")
    except (ProjectNotFoundError, EntityNotFoundError, ViewNotFoundError) as exc:
        return jsonify({"message": str(exc)}), 404
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error loading entity {entity_id}: {exc}", exc_info=True)
        return jsonify({"message": "Internal server error"}), 500

    current_app.logger.info(f"Uploading image for view {view_id} of project {project_id}")

    try:
        processed = get_image_service().process_upload(file)
    except UnsupportedImageError as exc:
        return jsonify({"message": str(exc)}), 400
    except ImageDecodeError as exc:
        return jsonify({"message": str(exc)}), 422

    try:
        project_service.save_view_image(project_id, entity_id, view_id, processed.data_uri)
    except (ProjectNotFoundError, EntityNotFoundError, ViewNotFoundError) as exc:
        return jsonify({"message": str(exc)}), 404
    except (ProjectError, StoreError) as exc:
        current_app.logger.error(f"Error storing image for view {view_id}: {exc}", exc_info=True)
        return jsonify({"message": "Internal server error"}), 500

    return (
        jsonify(
            {
                "message": "Image stored successfully.",
                "payload": {
                    "originalFilename": processed.original_filename,
                    "imageUrl": processed.data_uri,
                    "imageWidth": processed.width,
                    "imageHeight": processed.height,
                    "wasResized": processed.was_resized,
                    "warnings": processed.warnings,
                },
            }
        ),
        201,
    )
