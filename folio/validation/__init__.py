"""
Folio Validation Module

Pydantic models for the positions import file and the stored snapshot
history, plus field-level error reporting.
"""

from .errors import (
    FieldError,
    ImportValidationError,
    ImportValidationResult,
    field_errors_from_pydantic,
    format_location,
)
from .models import (
    FolioBaseModel,
    SymbolValidator,
    ValidatedPortfolioExport,
    ValidatedPosition,
    ValidatedPositionSnapshot,
    ValidatedSnapshot,
    ValidatedSnapshotHistory,
)

__all__ = [
    # Errors
    "FieldError",
    "ImportValidationError",
    "ImportValidationResult",
    "field_errors_from_pydantic",
    "format_location",
    # Models
    "FolioBaseModel",
    "SymbolValidator",
    "ValidatedPortfolioExport",
    "ValidatedPosition",
    "ValidatedPositionSnapshot",
    "ValidatedSnapshot",
    "ValidatedSnapshotHistory",
]
