from estateview.services.editor_service import (
    EditorError,
    EditorNotOpenError,
    EditorService,
)
from estateview.services.image_service import (
    ImageDecodeError,
    ImageError,
    ImageService,
    UnsupportedImageError,
)
from estateview.services.project_service import (
    EntityConflictError,
    EntityNotFoundError,
    ProjectError,
    ProjectNotFoundError,
    ProjectService,
    ViewNotFoundError,
)
from estateview.services.viewer_service import ViewerService

__all__ = [
    "EditorError",
    "EditorNotOpenError",
    "EditorService",
    "ImageDecodeError",
    "ImageError",
    "ImageService",
    "UnsupportedImageError",
    "EntityConflictError",
    "EntityNotFoundError",
    "ProjectError",
    "ProjectNotFoundError",
    "ProjectService",
    "ViewNotFoundError",
    "ViewerService",
]
