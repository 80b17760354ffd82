from __future__ import annotations

from pathlib import Path
from typing import List, Optional
from urllib.parse import quote, unquote

from estateview.storage.errors import StoreError
from estateview.storage.protocols import KeyValueStore

_SUFFIX = ".value"


class LocalFileStore(KeyValueStore):
    """Filesystem store: one UTF-8 file per key below ``root``."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)

    def get(self, key: str) -> Optional[str]:
        target = self._resolve(key)
        if not target.exists():
            return None
        try:
            return target.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Unable to read key {key!r} from {target}") from exc

    def set(self, key: str, value: str) -> None:
        target = self._resolve(key)
        try:
            target.write_text(value, encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Unable to write key {key!r} to {target}") from exc

    def delete(self, key: str) -> None:
        target = self._resolve(key)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise StoreError(f"Unable to delete key {key!r} at {target}") from exc

    def list(self, prefix: str = "") -> List[str]:
        keys = []
        for file in self._root.glob(f"*{_SUFFIX}"):
            key = unquote(file.name[: -len(_SUFFIX)])
            if key.startswith(prefix):
                keys.append(key)
        return sorted(keys)

    def _resolve(self, key: str) -> Path:
        if not key:
            raise StoreError("Store keys must not be empty.")
        return self._root / f"{quote(key, safe='')}{_SUFFIX}"
