class StoreError(Exception):
    """Raised when a store backend cannot read or write a key."""
