"""
Folio Error Handling Module

Structured error codes, user-friendly messages and recovery hints for the
portfolio analytics engine. Calculators never raise for ordinary edge cases;
these errors cover rejected operations (duplicate snapshots, malformed
payloads, storage failures) and programmer mistakes at the boundaries.
"""

import logging
import traceback
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum, auto
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

# =============================================================================
# Error Code Taxonomy
# =============================================================================


class ErrorCategory(Enum):
    """Top-level error categories."""

    VALIDATION = "VALIDATION"
    SNAPSHOT = "SNAPSHOT"
    STORAGE = "STORAGE"
    SYSTEM = "SYSTEM"


class ErrorSeverity(Enum):
    """Error severity levels for logging."""

    DEBUG = auto()
    INFO = auto()
    WARNING = auto()
    ERROR = auto()
    CRITICAL = auto()


@dataclass
class ErrorCode:
    """Structured error code with metadata."""

    code: str
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    user_message: str
    recoverable: bool = True
    recovery_hint: str = ""

    def __str__(self) -> str:
        return f"{self.category.value}_{self.code}"


class ErrorCodes:
    """Central registry of all Folio error codes."""

    # Validation Errors (4xxx)
    VALIDATION_INVALID_SYMBOL = ErrorCode(
        code="4001",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.INFO,
        message="Invalid ticker symbol format",
        user_message="The ticker symbol is not valid.",
        recovery_hint="Enter a valid ticker symbol (e.g., AAPL, MSFT).",
    )

    VALIDATION_INVALID_DATE_RANGE = ErrorCode(
        code="4002",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.INFO,
        message="Invalid date range",
        user_message="The date range is not valid.",
        recovery_hint="Ensure the start date is not after the end date.",
    )

    VALIDATION_INVALID_VALUE = ErrorCode(
        code="4004",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.INFO,
        message="Value out of range",
        user_message="One of the values is not valid.",
        recovery_hint="Check the allowed values for this field.",
    )

    VALIDATION_IMPORT_REJECTED = ErrorCode(
        code="4005",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.WARNING,
        message="Import payload failed validation",
        user_message="The imported data contains invalid entries. Nothing was imported.",
        recovery_hint="Fix the listed fields and import the file again.",
    )

    # Snapshot Errors (5xxx)
    SNAPSHOT_DUPLICATE_DATE = ErrorCode(
        code="5001",
        category=ErrorCategory.SNAPSHOT,
        severity=ErrorSeverity.INFO,
        message="A snapshot already exists for this date",
        user_message="Snapshot already exists for today.",
        recovery_hint="Delete the existing snapshot first to capture a new one.",
    )

    SNAPSHOT_EMPTY_PORTFOLIO = ErrorCode(
        code="5002",
        category=ErrorCategory.SNAPSHOT,
        severity=ErrorSeverity.INFO,
        message="Cannot snapshot an empty portfolio",
        user_message="There are no positions to snapshot.",
        recovery_hint="Add at least one position before taking a snapshot.",
    )

    # Storage Errors (6xxx)
    STORAGE_WRITE_FAILED = ErrorCode(
        code="6001",
        category=ErrorCategory.STORAGE,
        severity=ErrorSeverity.ERROR,
        message="Failed to write to storage backend",
        user_message="Your portfolio history could not be saved.",
        recovery_hint="Check that the storage location is writable.",
    )

    STORAGE_READ_FAILED = ErrorCode(
        code="6002",
        category=ErrorCategory.STORAGE,
        severity=ErrorSeverity.ERROR,
        message="Failed to read from storage backend",
        user_message="Your portfolio history could not be loaded.",
        recovery_hint="Check that the storage location is readable.",
    )

    # System Errors (7xxx)
    SYSTEM_CONFIG_ERROR = ErrorCode(
        code="7004",
        category=ErrorCategory.SYSTEM,
        severity=ErrorSeverity.CRITICAL,
        message="Invalid Folio configuration",
        user_message="Folio is misconfigured.",
        recoverable=False,
        recovery_hint="Check the FOLIO_* environment variables and config file.",
    )


# =============================================================================
# Base Exception Classes
# =============================================================================


class FolioError(Exception):
    """
    Base exception for all Folio errors.

    Provides structured error information including error codes,
    user-friendly messages, and recovery suggestions.
    """

    def __init__(
        self,
        error_code: ErrorCode,
        detail: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.error_code = error_code
        self.detail = detail
        self.original_error = original_error
        self.context = context or {}
        self.debug_info: Dict[str, Any] = {}
        self.timestamp = datetime.now(timezone.utc)

        if original_error:
            self.debug_info["original_traceback"] = traceback.format_exception(
                type(original_error), original_error, original_error.__traceback__
            )

        super().__init__(self.technical_message)

    @property
    def code(self) -> str:
        """Full error code string."""
        return str(self.error_code)

    @property
    def category(self) -> ErrorCategory:
        return self.error_code.category

    @property
    def severity(self) -> ErrorSeverity:
        return self.error_code.severity

    @property
    def is_recoverable(self) -> bool:
        """Whether the caller can continue after this error."""
        return self.error_code.recoverable

    @property
    def user_message(self) -> str:
        """User-friendly error message."""
        msg = self.error_code.user_message
        if self.detail:
            msg = f"{msg} ({self.detail})"
        return msg

    @property
    def technical_message(self) -> str:
        """Technical error message for logging."""
        msg = f"[{self.code}] {self.error_code.message}"
        if self.detail:
            msg = f"{msg}: {self.detail}"
        return msg

    @property
    def recovery_hint(self) -> str:
        return self.error_code.recovery_hint

    def to_dict(self, include_debug: bool = False) -> Dict[str, Any]:
        """
        Convert error to dictionary for callers that report errors as data.

        Args:
            include_debug: Include technical message and context
        """
        result = {
            "code": self.code,
            "category": self.category.value,
            "message": self.user_message,
            "recovery_hint": self.recovery_hint,
            "recoverable": self.is_recoverable,
            "timestamp": self.timestamp.isoformat(),
        }

        if include_debug:
            result["debug"] = {
                "technical_message": self.technical_message,
                "context": self.context,
                "debug_info": self.debug_info,
            }

        return result

    def log(self) -> None:
        """Log the error with appropriate severity."""
        log_method = getattr(logger, self.severity.name.lower(), logger.error)
        log_method(
            self.technical_message,
            extra={
                "ctx_error_code": self.code,
                "ctx_context": self.context,
            },
        )


class ValidationError(FolioError):
    """Validation-related errors."""

    def __init__(
        self,
        error_code: ErrorCode = ErrorCodes.VALIDATION_INVALID_VALUE,
        **kwargs,
    ):
        super().__init__(error_code, **kwargs)


class SnapshotError(FolioError):
    """Snapshot store errors."""

    def __init__(
        self,
        error_code: ErrorCode = ErrorCodes.SNAPSHOT_EMPTY_PORTFOLIO,
        **kwargs,
    ):
        super().__init__(error_code, **kwargs)


class DuplicateSnapshotError(SnapshotError):
    """Raised when a snapshot already exists for the candidate's date."""

    def __init__(self, snapshot_date: str, **kwargs):
        self.snapshot_date = snapshot_date
        kwargs.setdefault("detail", snapshot_date)
        kwargs.setdefault("context", {"date": snapshot_date})
        super().__init__(ErrorCodes.SNAPSHOT_DUPLICATE_DATE, **kwargs)


class StorageError(FolioError):
    """Storage backend errors."""

    def __init__(
        self,
        error_code: ErrorCode = ErrorCodes.STORAGE_WRITE_FAILED,
        **kwargs,
    ):
        super().__init__(error_code, **kwargs)


# =============================================================================
# Utility Functions
# =============================================================================


def validate_date_range(start_date: Union[date, int], end_date: Union[date, int]) -> None:
    """
    Validate a date range.

    Raises:
        ValidationError: If start is after end
    """
    if start_date > end_date:
        raise ValidationError(
            ErrorCodes.VALIDATION_INVALID_DATE_RANGE,
            detail="Start date must not be after end date",
            context={"start_date": str(start_date), "end_date": str(end_date)},
        )


__all__ = [
    "ErrorCategory",
    "ErrorSeverity",
    "ErrorCode",
    "ErrorCodes",
    "FolioError",
    "ValidationError",
    "SnapshotError",
    "DuplicateSnapshotError",
    "StorageError",
    "validate_date_range",
]
