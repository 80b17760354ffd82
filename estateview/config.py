from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Type


class Config:
    """Base application configuration."""

    SECRET_KEY: str = os.getenv("SECRET_KEY", "change-me")
    SQLALCHEMY_DATABASE_URI: str = os.getenv(
        "DATABASE_URL",
        os.getenv(
            "SQLALCHEMY_DATABASE_URI",
            "sqlite:///estateview.db",
        ),
    )
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False

    # "sql" keeps everything in the application database, "file" writes one
    # file per key below STORE_DIR.
    STORE_BACKEND: str = os.getenv("STORE_BACKEND", "sql")
    STORE_DIR: Path = Path(os.getenv("STORE_DIR", "instance/store"))

    MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", 4 * 1024 * 1024))
    MAX_IMAGE_WIDTH: int = int(os.getenv("MAX_IMAGE_WIDTH", 1920))
    MAX_IMAGE_HEIGHT: int = int(os.getenv("MAX_IMAGE_HEIGHT", 1080))
    IMAGE_JPEG_QUALITY: int = int(os.getenv("IMAGE_JPEG_QUALITY", 85))


class DevelopmentConfig(Config):
    DEBUG: bool = True


class ProductionConfig(Config):
    DEBUG: bool = False


class TestingConfig(Config):
    TESTING: bool = True
    SQLALCHEMY_DATABASE_URI: str = "sqlite:///:memory:"
    STORE_BACKEND: str = "sql"


CONFIG_MAP: Dict[str, Type[Config]] = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": Config,
}


def resolve_config(config_name: str | None) -> Type[Config]:
    """Return the configuration class for the given name."""
    if not config_name:
        return CONFIG_MAP["default"]
    return CONFIG_MAP.get(config_name, CONFIG_MAP["default"])
