"""
Validation Errors Module

Field-level error records and the aggregate error raised when an imported
payload (positions file or stored snapshot history) is rejected.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from ..core.errors import ErrorCodes, ValidationError


@dataclass(frozen=True)
class FieldError:
    """A single rejected field, addressed by an index path like ``stocks[2].buyPrice``."""

    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ImportValidationError(ValidationError):
    """Error containing every field-level problem found in an import payload."""

    def __init__(self, errors: List[FieldError], source: str = "import", **kwargs):
        self.errors = list(errors)
        self.source = source
        kwargs.setdefault("detail", f"{len(self.errors)} invalid field(s) in {source}")
        kwargs.setdefault(
            "context",
            {"source": source, "errors": [e.to_dict() for e in self.errors]},
        )
        super().__init__(ErrorCodes.VALIDATION_IMPORT_REJECTED, **kwargs)

    def to_dict(self, include_debug: bool = False) -> Dict[str, Any]:
        result = super().to_dict(include_debug=include_debug)
        result["error_count"] = len(self.errors)
        result["errors"] = [e.to_dict() for e in self.errors]
        return result


@dataclass
class ImportValidationResult:
    """Outcome of validating an import payload before it is applied."""

    is_valid: bool
    errors: List[FieldError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": list(self.warnings),
        }


def format_location(loc: Sequence[Union[str, int]], prefix: Optional[str] = None) -> str:
    """
    Render a pydantic error location as an index path.

    Example:
        ("stocks", 2, "buyPrice") -> "stocks[2].buyPrice"
    """
    path = prefix or ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        elif path:
            path += f".{part}"
        else:
            path = str(part)
    return path or "payload"


def field_errors_from_pydantic(
    exc: PydanticValidationError,
    prefix: Optional[str] = None,
) -> List[FieldError]:
    """Convert a pydantic ValidationError into FieldError records."""
    return [
        FieldError(field=format_location(err["loc"], prefix), message=err["msg"])
        for err in exc.errors()
    ]
