"""
Importers

Parse and validate positions import files and stored snapshot history.
Payloads are applied all-or-nothing: any invalid field rejects the whole
payload with a field-level error list.
"""

import json
import logging
from typing import Any, Dict, List, Union

from pydantic import ValidationError as PydanticValidationError

from ..config.logging import event_logger
from ..history.snapshot import PositionSnapshot, Snapshot
from ..portfolio.position import Holdings, Position
from ..validation.errors import (
    FieldError,
    ImportValidationError,
    ImportValidationResult,
    field_errors_from_pydantic,
)
from ..validation.models import (
    ValidatedPortfolioExport,
    ValidatedPosition,
    ValidatedSnapshot,
    ValidatedSnapshotHistory,
)

logger = logging.getLogger(__name__)

SUPPORTED_EXPORT_VERSIONS = {"1.0"}

Payload = Union[str, bytes, bytearray, dict, list]


def _decode(payload: Payload, source: str) -> Any:
    if isinstance(payload, (dict, list)):
        return payload
    try:
        return json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ImportValidationError(
            [FieldError(field="payload", message=f"Invalid JSON: {e}")],
            source=source,
        ) from e


# =============================================================================
# Positions
# =============================================================================


def validate_positions_import(payload: Payload) -> ImportValidationResult:
    """
    Validate a positions export file without applying it.

    Args:
        payload: JSON text/bytes or an already decoded dict

    Returns:
        ImportValidationResult with field errors and non-fatal warnings
    """
    try:
        data = _decode(payload, "positions")
    except ImportValidationError as e:
        return ImportValidationResult(is_valid=False, errors=e.errors)

    if not isinstance(data, dict) or "stocks" not in data:
        return ImportValidationResult(
            is_valid=False,
            errors=[FieldError(field="stocks", message="Missing stocks array")],
        )

    try:
        export = ValidatedPortfolioExport.model_validate(data)
    except PydanticValidationError as e:
        return ImportValidationResult(is_valid=False, errors=field_errors_from_pydantic(e))

    warnings: List[str] = []
    if export.version not in SUPPORTED_EXPORT_VERSIONS:
        warnings.append(f"Unknown export version {export.version}; reading as 1.0")
    if not export.stocks:
        warnings.append("File contains no positions")

    # Merged duplicates keep the first record's id
    ids_by_ticker: Dict[str, int] = {}
    errors: List[FieldError] = []
    for index, stock in enumerate(export.stocks):
        if stock.ticker in ids_by_ticker:
            warnings.append(f"Duplicate ticker {stock.ticker} will be merged")
            continue
        position_id = _position_id(stock, index)
        if position_id in ids_by_ticker.values():
            errors.append(
                FieldError(
                    field=f"stocks[{index}].id",
                    message=f"Id {position_id} is already used by another ticker",
                )
            )
        ids_by_ticker[stock.ticker] = position_id

    if errors:
        return ImportValidationResult(is_valid=False, errors=errors, warnings=warnings)
    return ImportValidationResult(is_valid=True, warnings=warnings)


def _position_id(stock: ValidatedPosition, index: int) -> int:
    return stock.id if stock.id is not None else index + 1


def import_positions(payload: Payload) -> Holdings:
    """
    Build a new position set from a positions export file.

    Tickers are upper-cased. Records without an id get their 1-based
    position in the file; duplicate tickers are merged at weighted-average
    cost.

    Raises:
        ImportValidationError: If any record is invalid; nothing is imported
    """
    result = validate_positions_import(payload)
    if not result.is_valid:
        event_logger.log_import("positions", accepted=0, rejected_fields=len(result.errors))
        raise ImportValidationError(result.errors, source="positions")

    for warning in result.warnings:
        logger.warning(warning)

    export = ValidatedPortfolioExport.model_validate(_decode(payload, "positions"))
    holdings = Holdings()
    for index, stock in enumerate(export.stocks):
        holdings.add_position(
            Position(
                id=_position_id(stock, index),
                ticker=stock.ticker,
                cost_basis=stock.buy_price,
                current_price=stock.current_price,
                quantity=stock.quantity,
                sector=stock.sector,
            )
        )

    event_logger.log_import("positions", accepted=len(holdings))
    return holdings


# =============================================================================
# Snapshot History
# =============================================================================


def _to_snapshot(model: ValidatedSnapshot) -> Snapshot:
    return Snapshot(
        id=model.id,
        date=model.date,
        timestamp=model.timestamp,
        total_value=model.total_value,
        total_gain_loss=model.total_gain_loss,
        total_gain_loss_percent=model.total_gain_loss_percent,
        position_snapshots=tuple(
            PositionSnapshot(
                stock_id=p.stock_id,
                ticker=p.ticker,
                quantity=p.quantity,
                price=p.price,
                value=p.value,
                gain_loss=p.gain_loss,
                gain_loss_percent=p.gain_loss_percent,
                buy_price=p.buy_price,
            )
            for p in model.stock_snapshots
        ),
        benchmark_value=model.benchmark_value,
    )


def parse_snapshot_history(payload: Payload) -> List[Snapshot]:
    """
    Parse stored snapshot history.

    Accepts the persisted list of snapshot records, or a JSON history
    export (an object with a ``snapshots`` list).

    Returns:
        Snapshots sorted ascending by timestamp

    Raises:
        ImportValidationError: If the payload is malformed or repeats a date
    """
    data = _decode(payload, "history")
    if isinstance(data, dict):
        if "snapshots" not in data:
            raise ImportValidationError(
                [FieldError(field="snapshots", message="Missing snapshots array")],
                source="history",
            )
        data = data["snapshots"]

    if not isinstance(data, list):
        raise ImportValidationError(
            [FieldError(field="payload", message="Expected a list of snapshots")],
            source="history",
        )

    try:
        history = ValidatedSnapshotHistory.model_validate({"snapshots": data})
    except PydanticValidationError as e:
        errors = field_errors_from_pydantic(e)
        event_logger.log_import("history", accepted=0, rejected_fields=len(errors))
        raise ImportValidationError(errors, source="history") from e

    snapshots = sorted((_to_snapshot(s) for s in history.snapshots), key=lambda s: s.timestamp)
    event_logger.log_import("history", accepted=len(snapshots))
    return snapshots
