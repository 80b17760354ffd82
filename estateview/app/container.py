from __future__ import annotations

from pathlib import Path

from flask import current_app

from estateview.services import EditorService, ImageService, ProjectService, ViewerService
from estateview.storage import LocalFileStore
from estateview.storage.protocols import KeyValueStore

PROJECT_SERVICE_KEY = "project_service"
EDITOR_SERVICE_KEY = "editor_service"
VIEWER_SERVICE_KEY = "viewer_service"
IMAGE_SERVICE_KEY = "image_service"


def build_store() -> KeyValueStore:
    """Create the key-value store selected by STORE_BACKEND."""
    backend = current_app.config.get("STORE_BACKEND", "sql")
    if backend == "file":
        store_dir = Path(current_app.config["STORE_DIR"])
        if not store_dir.is_absolute():
            store_dir = Path(current_app.instance_path).parent / store_dir
        return LocalFileStore(store_dir.resolve())
    if backend == "sql":
        from estateview.storage.sql import SqlKeyValueStore

        return SqlKeyValueStore()
    raise ValueError(f"Unknown STORE_BACKEND: {backend}")


def register_services(app) -> None:
    """Pre-instantiate core services and store them on the application."""
    with app.app_context():
        project_service = ProjectService(build_store())
        app.extensions[PROJECT_SERVICE_KEY] = project_service

        app.extensions[EDITOR_SERVICE_KEY] = EditorService(project_service)
        app.extensions[VIEWER_SERVICE_KEY] = ViewerService(project_service)
        app.extensions[IMAGE_SERVICE_KEY] = ImageService.from_app_config()


def get_project_service() -> ProjectService:
    """Return the shared project service instance."""
    service = current_app.extensions.get(PROJECT_SERVICE_KEY)
    if service is None:
        service = ProjectService(build_store())
        current_app.extensions[PROJECT_SERVICE_KEY] = service
    return service


def get_editor_service() -> EditorService:
    """Return the shared editor service instance."""
    service = current_app.extensions.get(EDITOR_SERVICE_KEY)
    if service is None:
        service = EditorService(get_project_service())
        current_app.extensions[EDITOR_SERVICE_KEY] = service
    return service


def get_viewer_service() -> ViewerService:
    """Return the shared viewer service instance."""
    service = current_app.extensions.get(VIEWER_SERVICE_KEY)
    if service is None:
        service = ViewerService(get_project_service())
        current_app.extensions[VIEWER_SERVICE_KEY] = service
    return service


def get_image_service() -> ImageService:
    """Return the shared image service instance."""
    service = current_app.extensions.get(IMAGE_SERVICE_KEY)
    if service is None:
        service = ImageService.from_app_config()
        current_app.extensions[IMAGE_SERVICE_KEY] = service
    return service
