from __future__ import annotations

import os
from pathlib import Path

from flask import Flask

from estateview.config import resolve_config
from estateview.extensions import init_extensions
from estateview.app.container import register_services


def create_app(config_name: str | None = None) -> Flask:
    """Application factory."""
    project_root = Path(__file__).resolve().parents[2]
    app = Flask(
        __name__,
        instance_relative_config=True,
        instance_path=str(project_root / "instance"),
    )

    config_class = resolve_config(config_name or os.getenv("FLASK_ENV"))
    app.config.from_object(config_class)
    app.config["MAX_CONTENT_LENGTH"] = app.config["MAX_UPLOAD_BYTES"] + 1024 * 1024
    _ensure_instance_dir(app)

    init_extensions(app)
    register_services(app)
    _register_blueprints(app)
    return app


def _register_blueprints(app: Flask) -> None:
    from estateview.api.projects.routes import projects_bp
    from estateview.api.editor.routes import editor_bp
    from estateview.api.viewer.routes import viewer_bp
    from estateview.api.uploads.routes import uploads_bp

    app.register_blueprint(projects_bp)
    app.register_blueprint(editor_bp)
    app.register_blueprint(viewer_bp)
    app.register_blueprint(uploads_bp)


def _ensure_instance_dir(app: Flask) -> None:
    """Ensure the instance directory exists; the file store lives below it."""
    Path(app.instance_path).mkdir(parents=True, exist_ok=True)
