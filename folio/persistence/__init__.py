"""
Folio Persistence Module

Key/value storage port for the snapshot history and its backends.
"""

from .storage import FileStorage, InMemoryStorage, StorageBackend

__all__ = [
    "StorageBackend",
    "InMemoryStorage",
    "FileStorage",
]
