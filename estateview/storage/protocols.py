from __future__ import annotations

from typing import List, Optional, Protocol


class KeyValueStore(Protocol):
    """Interface for the project store backends."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def list(self, prefix: str = "") -> List[str]:
        ...
