"""
Folio Logging Configuration

Structured logging with JSON format support, per-portfolio correlation,
timing of analytics calls, and business event helpers.
"""

import json
import logging
import sys
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar

# Each user's snapshot series is isolated; log lines carry its id
portfolio_id_var: ContextVar[Optional[str]] = ContextVar("portfolio_id", default=None)


# =============================================================================
# Log Level Strategy
# =============================================================================
#
# DEBUG   - Metric recomputation, query windows, timer scheduling
# INFO    - Snapshot taken/deleted, history loaded/saved, import/export done
# WARNING - Rejected snapshots, invalid import payloads, unknown snapshot ids
# ERROR   - Storage failures
# =============================================================================


def _context_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Collect ``ctx_``-prefixed record attributes, prefix stripped."""
    return {
        key[len("ctx_"):]: value
        for key, value in vars(record).items()
        if key.startswith("ctx_")
    }


class StructuredFormatter(logging.Formatter):
    """
    Emits one JSON document per record.

    ``None`` values are dropped so a record without a portfolio context
    carries no ``portfolio_id`` key.
    """

    def __init__(self, service_name: str = "folio", environment: str = "development"):
        super().__init__()
        self.service_name = service_name
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        document: Dict[str, Any] = {
            "timestamp": created.isoformat(),
            "service": self.service_name,
            "environment": self.environment,
            "level": record.levelname,
            "logger": record.name,
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            "message": record.getMessage(),
            "portfolio_id": portfolio_id_var.get(),
        }
        document.update(_context_fields(record))

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            document["exception"] = {
                "type": getattr(exc_type, "__name__", None),
                "message": None if exc_value is None else str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(
            {key: value for key, value in document.items() if value is not None},
            default=str,
        )


class ConsoleFormatter(logging.Formatter):
    """Single-line, colorized output for local runs."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self):
        super().__init__(datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        parts = [
            self.formatTime(record, self.datefmt),
            f"{color}{record.levelname:<8}{self.RESET if color else ''}",
        ]
        portfolio_id = portfolio_id_var.get()
        if portfolio_id:
            parts.append(f"[{portfolio_id}]")
        parts.append(f"{record.name}: {record.getMessage()}")

        line = " ".join(parts)
        fields = _context_fields(record)
        if fields:
            line += " | " + " ".join(f"{key}={value}" for key, value in fields.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    service_name: str = "folio",
    environment: str = "development",
    log_file: Optional[str] = None,
) -> None:
    """
    Configure logging for applications embedding Folio.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON structured logging
        service_name: Service name for structured logs
        environment: Environment name
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    if json_format:
        formatter: logging.Formatter = StructuredFormatter(service_name, environment)
    else:
        formatter = ConsoleFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter(service_name, environment))
        root_logger.addHandler(file_handler)


# =============================================================================
# Context Management
# =============================================================================


def set_portfolio_context(portfolio_id: Optional[str]) -> None:
    """Tag subsequent log lines with a portfolio id."""
    portfolio_id_var.set(portfolio_id)


def clear_portfolio_context() -> None:
    portfolio_id_var.set(None)


def get_portfolio_id() -> Optional[str]:
    return portfolio_id_var.get()


# =============================================================================
# Performance Logging Decorator
# =============================================================================

T = TypeVar("T")


def log_performance(
    threshold_ms: float = 250.0,
    log_args: bool = False,
) -> Callable:
    """
    Decorator to log how long an analytics call took.

    Args:
        threshold_ms: Log a warning if execution exceeds this threshold
        log_args: Include function arguments in log

    Example:
        @log_performance(threshold_ms=100)
        def calculate_performance_metrics(snapshots):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        logger = logging.getLogger(func.__module__)
        name = func.__name__

        def fields(started: float, status: str, args, kwargs) -> Dict[str, Any]:
            extra: Dict[str, Any] = {
                "ctx_function": name,
                "ctx_status": status,
                "ctx_duration_ms": round((time.perf_counter() - started) * 1000, 2),
            }
            if log_args:
                extra["ctx_args"] = repr(args)[:200]
                extra["ctx_kwargs"] = repr(kwargs)[:200]
            return extra

        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                extra = fields(started, "error", args, kwargs)
                extra["ctx_error_type"] = type(exc).__name__
                logger.error("Operation failed: %s (%s)", name, exc, extra=extra, exc_info=True)
                raise

            extra = fields(started, "success", args, kwargs)
            elapsed = extra["ctx_duration_ms"]
            if elapsed > threshold_ms:
                logger.warning("Slow operation: %s took %.2fms", name, elapsed, extra=extra)
            else:
                logger.debug("Operation completed: %s in %.2fms", name, elapsed, extra=extra)
            return result

        return wrapper

    return decorator


# =============================================================================
# Business Event Logging
# =============================================================================


class AnalyticsEventLogger:
    """
    Logger for portfolio history events with structured context.
    """

    def __init__(self, logger_name: str = "folio.events"):
        self.logger = logging.getLogger(logger_name)

    def log_snapshot_taken(self, snapshot_date: str, total_value: float, positions: int) -> None:
        self.logger.info(
            f"Snapshot taken for {snapshot_date}",
            extra={
                "ctx_event": "snapshot_taken",
                "ctx_date": snapshot_date,
                "ctx_total_value": round(total_value, 2),
                "ctx_positions": positions,
            },
        )

    def log_snapshot_rejected(self, snapshot_date: str, reason: str) -> None:
        self.logger.warning(
            f"Snapshot rejected for {snapshot_date}: {reason}",
            extra={
                "ctx_event": "snapshot_rejected",
                "ctx_date": snapshot_date,
                "ctx_reason": reason,
            },
        )

    def log_snapshot_deleted(self, snapshot_id: str, snapshot_date: str) -> None:
        self.logger.info(
            f"Snapshot {snapshot_id} deleted",
            extra={
                "ctx_event": "snapshot_deleted",
                "ctx_snapshot_id": snapshot_id,
                "ctx_date": snapshot_date,
            },
        )

    def log_metrics_computed(self, snapshot_count: int, drawdown_count: int) -> None:
        self.logger.debug(
            f"Metrics recomputed over {snapshot_count} snapshots",
            extra={
                "ctx_event": "metrics_computed",
                "ctx_snapshot_count": snapshot_count,
                "ctx_drawdown_count": drawdown_count,
            },
        )

    def log_import(self, kind: str, accepted: int, rejected_fields: int = 0) -> None:
        level = logging.INFO if rejected_fields == 0 else logging.WARNING
        self.logger.log(
            level,
            f"Import {kind}: {accepted} accepted, {rejected_fields} field errors",
            extra={
                "ctx_event": "import",
                "ctx_kind": kind,
                "ctx_accepted": accepted,
                "ctx_rejected_fields": rejected_fields,
            },
        )

    def log_export(self, export_format: str, rows: int) -> None:
        self.logger.info(
            f"Exported {rows} snapshots as {export_format}",
            extra={
                "ctx_event": "export",
                "ctx_format": export_format,
                "ctx_rows": rows,
            },
        )


event_logger = AnalyticsEventLogger()
