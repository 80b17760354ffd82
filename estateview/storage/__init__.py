from estateview.storage.errors import StoreError
from estateview.storage.local import LocalFileStore
from estateview.storage.protocols import KeyValueStore

__all__ = ["KeyValueStore", "LocalFileStore", "StoreError"]
