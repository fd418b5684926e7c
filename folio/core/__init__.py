"""
Folio Core

Error taxonomy and the top-level facade.
"""

from .errors import (
    DuplicateSnapshotError,
    ErrorCategory,
    ErrorCode,
    ErrorCodes,
    ErrorSeverity,
    FolioError,
    SnapshotError,
    StorageError,
    ValidationError,
)

__all__ = [
    "DuplicateSnapshotError",
    "ErrorCategory",
    "ErrorCode",
    "ErrorCodes",
    "ErrorSeverity",
    "FolioError",
    "SnapshotError",
    "StorageError",
    "ValidationError",
]
