"""
Errores de persistencia compartidos por los repositories
"""


class RepositoryError(Exception):
    """Base exception for store errors."""
    pass


class ConflictError(RepositoryError):
    """Raised when a conditional write lost the race against another writer."""
    pass


class StoreUnavailableError(RepositoryError):
    """Raised when MongoDB fails. `store` says which collection was involved."""

    def __init__(self, store: str, message: str):
        super().__init__(f"[{store}] {message}")
        self.store = store
