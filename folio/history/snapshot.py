"""
Snapshot Records

Immutable point-in-time captures of portfolio value and the positions it
was made of, with conversion to and from the persisted camelCase record.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from ..portfolio.position import Holdings, Position
from .timeframes import to_epoch_ms


@dataclass(frozen=True)
class PositionSnapshot:
    """A position as it stood when the snapshot was taken."""

    stock_id: int
    ticker: str
    quantity: int
    price: float
    value: float
    gain_loss: float
    gain_loss_percent: float
    buy_price: float

    @classmethod
    def from_position(cls, position: Position) -> "PositionSnapshot":
        return cls(
            stock_id=position.id,
            ticker=position.ticker,
            quantity=position.quantity,
            price=position.current_price,
            value=position.market_value,
            gain_loss=position.gain,
            gain_loss_percent=position.gain_percent,
            buy_price=position.cost_basis,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stockId": self.stock_id,
            "ticker": self.ticker,
            "quantity": self.quantity,
            "price": self.price,
            "value": self.value,
            "gainLoss": self.gain_loss,
            "gainLossPercent": self.gain_loss_percent,
            "buyPrice": self.buy_price,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PositionSnapshot":
        return cls(
            stock_id=data["stockId"],
            ticker=data["ticker"],
            quantity=data["quantity"],
            price=data["price"],
            value=data["value"],
            gain_loss=data["gainLoss"],
            gain_loss_percent=data["gainLossPercent"],
            buy_price=data["buyPrice"],
        )


@dataclass(frozen=True)
class Snapshot:
    """
    Dated capture of total portfolio value.

    ``date`` is the calendar day (YYYY-MM-DD, UTC) and is unique within a
    history; ``timestamp`` is epoch milliseconds and orders the sequence.
    """

    id: str
    date: str
    timestamp: int
    total_value: float
    total_gain_loss: float
    total_gain_loss_percent: float
    position_snapshots: Tuple[PositionSnapshot, ...] = field(default_factory=tuple)
    benchmark_value: Optional[float] = None

    @property
    def position_count(self) -> int:
        return len(self.position_snapshots)

    @property
    def captured_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "date": self.date,
            "timestamp": self.timestamp,
            "totalValue": self.total_value,
            "totalGainLoss": self.total_gain_loss,
            "totalGainLossPercent": self.total_gain_loss_percent,
            "stockSnapshots": [p.to_dict() for p in self.position_snapshots],
        }
        if self.benchmark_value is not None:
            data["benchmarkValue"] = self.benchmark_value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snapshot":
        """Build from a persisted record. Use the validation models for untrusted input."""
        return cls(
            id=data["id"],
            date=data["date"],
            timestamp=int(data["timestamp"]),
            total_value=data["totalValue"],
            total_gain_loss=data["totalGainLoss"],
            total_gain_loss_percent=data["totalGainLossPercent"],
            position_snapshots=tuple(
                PositionSnapshot.from_dict(p) for p in data.get("stockSnapshots", [])
            ),
            benchmark_value=data.get("benchmarkValue"),
        )


def create_snapshot(
    holdings: Holdings,
    now: datetime,
    benchmark_value: Optional[float] = None,
) -> Snapshot:
    """
    Capture the current holdings.

    Args:
        holdings: Current position set
        now: Capture time; its UTC calendar day becomes the snapshot date
        benchmark_value: Optional benchmark level at capture time

    Returns:
        New Snapshot with id ``snapshot_<epoch ms>``
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    timestamp = to_epoch_ms(now)

    return Snapshot(
        id=f"snapshot_{timestamp}",
        date=now.astimezone(timezone.utc).date().isoformat(),
        timestamp=timestamp,
        total_value=holdings.total_value,
        total_gain_loss=holdings.total_gain,
        total_gain_loss_percent=holdings.total_gain_percent,
        position_snapshots=tuple(PositionSnapshot.from_position(p) for p in holdings),
        benchmark_value=benchmark_value,
    )
