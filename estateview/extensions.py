from __future__ import annotations

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def init_extensions(app) -> None:
    """Initialize Flask extensions and create the store table."""
    db.init_app(app)

    # Register the model before create_all().
    from estateview.storage import sql  # noqa: F401

    with app.app_context():
        db.create_all()
