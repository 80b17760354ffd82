from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from estateview.extensions import db
from estateview.storage.errors import StoreError
from estateview.storage.protocols import KeyValueStore


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoreEntry(db.Model):
    __tablename__ = "store_entries"

    key = db.Column(db.String(512), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class SqlKeyValueStore(KeyValueStore):
    """Store backed by the application database through Flask-SQLAlchemy."""

    def get(self, key: str) -> Optional[str]:
        try:
            entry = db.session.get(StoreEntry, key)
        except SQLAlchemyError as exc:
            raise StoreError(f"Unable to read key {key!r}") from exc
        return entry.value if entry is not None else None

    def set(self, key: str, value: str) -> None:
        try:
            entry = db.session.get(StoreEntry, key)
            if entry is None:
                db.session.add(StoreEntry(key=key, value=value))
            else:
                entry.value = value
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError(f"Unable to write key {key!r}") from exc

    def delete(self, key: str) -> None:
        try:
            entry = db.session.get(StoreEntry, key)
            if entry is not None:
                db.session.delete(entry)
                db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError(f"Unable to delete key {key!r}") from exc

    def list(self, prefix: str = "") -> List[str]:
        try:
            query = db.select(StoreEntry.key).order_by(StoreEntry.key)
            if prefix:
                query = query.where(StoreEntry.key.startswith(prefix, autoescape=True))
            return list(db.session.scalars(query))
        except SQLAlchemyError as exc:
            raise StoreError(f"Unable to list keys with prefix {prefix!r}") from exc
