"""
Position and Holdings Module

Data structures for portfolio positions and holdings, and the
per-position derived values (market value, gain, return percent).
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from ..core.errors import ErrorCodes, ValidationError
from ..validation.models import SymbolValidator

logger = logging.getLogger(__name__)

UNKNOWN_SECTOR = "Unknown"


def _require_price(name: str, value: Any, ticker: str) -> float:
    """Return ``value`` as a float; it must be finite and positive."""
    if (
        isinstance(value, bool)
        or not isinstance(value, (int, float))
        or not math.isfinite(value)
        or value <= 0
    ):
        raise ValidationError(
            detail=f"{name} must be a positive finite number, got {value!r}",
            context={"ticker": ticker, "field": name},
        )
    return float(value)


@dataclass
class Position:
    """
    A single held ticker. ``cost_basis`` is the per-share buy price.

    Raises:
        ValidationError: On construction, if the ticker is malformed, a price
            is not a positive finite number or quantity is not a positive
            whole number
    """

    id: int
    ticker: str
    cost_basis: float
    current_price: float
    quantity: int
    sector: Optional[str] = None

    def __post_init__(self):
        try:
            self.ticker = SymbolValidator.validate(self.ticker)
        except ValueError as e:
            raise ValidationError(
                ErrorCodes.VALIDATION_INVALID_SYMBOL,
                detail=str(e),
                context={"ticker": self.ticker},
            ) from e

        self.cost_basis = _require_price("cost_basis", self.cost_basis, self.ticker)
        self.current_price = _require_price("current_price", self.current_price, self.ticker)

        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity <= 0:
            raise ValidationError(
                detail=f"quantity must be a positive whole number, got {self.quantity!r}",
                context={"ticker": self.ticker, "field": "quantity"},
            )

    @property
    def market_value(self) -> float:
        """Current market value of the position."""
        return self.current_price * self.quantity

    @property
    def invested(self) -> float:
        """Total amount paid for the position."""
        return self.cost_basis * self.quantity

    @property
    def gain(self) -> float:
        """Unrealized gain or loss."""
        return (self.current_price - self.cost_basis) * self.quantity

    @property
    def gain_percent(self) -> float:
        """Unrealized gain as percentage of cost basis."""
        return (self.current_price - self.cost_basis) / self.cost_basis * 100

    def to_dict(self) -> Dict[str, Any]:
        """Convert position to the positions export record."""
        data = {
            "id": self.id,
            "ticker": self.ticker,
            "buyPrice": self.cost_basis,
            "currentPrice": self.current_price,
            "quantity": self.quantity,
        }
        if self.sector:
            data["sector"] = self.sector
        return data


@dataclass
class Holdings:
    """Container for the current position set with aggregate metrics."""

    positions: List[Position] = field(default_factory=list)
    updated_at: datetime = field(default_factory=datetime.now)

    def __len__(self) -> int:
        return len(self.positions)

    def __iter__(self):
        return iter(self.positions)

    @property
    def total_value(self) -> float:
        return sum(p.market_value for p in self.positions)

    @property
    def total_invested(self) -> float:
        return sum(p.invested for p in self.positions)

    @property
    def total_gain(self) -> float:
        return sum(p.gain for p in self.positions)

    @property
    def total_gain_percent(self) -> float:
        """Total gain as percentage of total invested."""
        if self.total_invested == 0:
            return 0.0
        return self.total_gain / self.total_invested * 100

    def get_weights(self) -> Dict[str, float]:
        """Get portfolio weights by ticker."""
        total = self.total_value
        if total == 0:
            return {}
        return {p.ticker: p.market_value / total for p in self.positions}

    def get_sector_weights(self, sector_map: Optional[Dict[str, str]] = None) -> Dict[str, float]:
        """Get portfolio weights by sector."""
        total = self.total_value
        if total == 0:
            return {}

        sector_values: Dict[str, float] = {}
        for p in self.positions:
            sector = get_sector(p, sector_map)
            sector_values[sector] = sector_values.get(sector, 0) + p.market_value

        return {sector: value / total for sector, value in sector_values.items()}

    def next_id(self) -> int:
        return max((p.id for p in self.positions), default=0) + 1

    def add_position(self, position: Position) -> Position:
        """
        Add a position, merging into an existing one with the same ticker.

        Merged positions keep the existing id and get a quantity-weighted
        average cost basis and the newer current price.

        Raises:
            ValidationError: If a different ticker already holds the id
        """
        for i, p in enumerate(self.positions):
            if p.ticker == position.ticker:
                total_quantity = p.quantity + position.quantity
                merged = Position(
                    id=p.id,
                    ticker=p.ticker,
                    cost_basis=(p.invested + position.invested) / total_quantity,
                    current_price=position.current_price,
                    quantity=total_quantity,
                    sector=position.sector or p.sector,
                )
                self.positions[i] = merged
                self.updated_at = datetime.now()
                logger.debug("Merged %s into existing position %s", position.ticker, p.id)
                return merged

        if self.get_position(position.id) is not None:
            raise ValidationError(
                detail=f"Position id {position.id} is already used",
                context={"id": position.id, "ticker": position.ticker},
            )

        self.positions.append(position)
        self.updated_at = datetime.now()
        return position

    def remove_position(self, position_id: int) -> Optional[Position]:
        """Remove a position by id."""
        for i, p in enumerate(self.positions):
            if p.id == position_id:
                self.updated_at = datetime.now()
                return self.positions.pop(i)
        return None

    def get_position(self, position_id: int) -> Optional[Position]:
        for p in self.positions:
            if p.id == position_id:
                return p
        return None

    def get_position_by_ticker(self, ticker: str) -> Optional[Position]:
        ticker = ticker.upper()
        for p in self.positions:
            if p.ticker == ticker:
                return p
        return None

    def update_prices(self, prices: Dict[str, float]) -> None:
        """
        Update current prices by ticker. Unknown tickers are ignored.

        Raises:
            ValidationError: If any price is not a positive finite number;
                no price is changed
        """
        updates = {
            ticker.upper(): _require_price("current_price", price, ticker.upper())
            for ticker, price in prices.items()
        }
        for p in self.positions:
            if p.ticker in updates:
                p.current_price = updates[p.ticker]
        self.updated_at = datetime.now()

    def to_dataframe(self, sector_map: Optional[Dict[str, str]] = None) -> pd.DataFrame:
        """Convert holdings to a DataFrame with derived columns."""
        if not self.positions:
            return pd.DataFrame()

        df = pd.DataFrame(
            [
                {
                    "id": p.id,
                    "ticker": p.ticker,
                    "cost_basis": p.cost_basis,
                    "current_price": p.current_price,
                    "quantity": p.quantity,
                    "market_value": p.market_value,
                    "gain": p.gain,
                    "gain_percent": p.gain_percent,
                    "sector": get_sector(p, sector_map),
                }
                for p in self.positions
            ]
        )

        total = self.total_value
        if total > 0:
            df["weight"] = df["market_value"] / total * 100
        else:
            df["weight"] = 0.0

        return df

    def to_dict(self) -> Dict[str, Any]:
        return {
            "positions": [p.to_dict() for p in self.positions],
            "totalValue": self.total_value,
            "totalInvested": self.total_invested,
            "totalGain": self.total_gain,
            "totalGainPercent": self.total_gain_percent,
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Holdings":
        """Create Holdings from a dictionary produced by ``to_dict``."""
        positions = [
            Position(
                id=p["id"],
                ticker=p["ticker"],
                cost_basis=p["buyPrice"],
                current_price=p["currentPrice"],
                quantity=p["quantity"],
                sector=p.get("sector"),
            )
            for p in data.get("positions", [])
        ]
        return cls(positions=positions)


# Static ticker to sector lookup
DEFAULT_SECTOR_MAP = {
    # Technology
    "AAPL": "Technology",
    "GOOGL": "Technology",
    "GOOG": "Technology",
    "MSFT": "Technology",
    "META": "Technology",
    "NVDA": "Technology",
    "AMD": "Technology",
    "INTC": "Technology",
    "CRM": "Technology",
    "ORCL": "Technology",
    "ADBE": "Technology",
    # Consumer Discretionary
    "AMZN": "Consumer Discretionary",
    "TSLA": "Consumer Discretionary",
    "NFLX": "Consumer Discretionary",
    "HD": "Consumer Discretionary",
    "NKE": "Consumer Discretionary",
    "MCD": "Consumer Discretionary",
    # Financial Services
    "JPM": "Financial Services",
    "BAC": "Financial Services",
    "GS": "Financial Services",
    "MS": "Financial Services",
    "V": "Financial Services",
    "MA": "Financial Services",
    # Healthcare
    "JNJ": "Healthcare",
    "PFE": "Healthcare",
    "UNH": "Healthcare",
    "LLY": "Healthcare",
    "MRK": "Healthcare",
    # Energy
    "XOM": "Energy",
    "CVX": "Energy",
    "COP": "Energy",
    # Consumer Staples
    "PG": "Consumer Staples",
    "KO": "Consumer Staples",
    "WMT": "Consumer Staples",
    "PEP": "Consumer Staples",
    "COST": "Consumer Staples",
}


def get_sector(position: Any, sector_map: Optional[Dict[str, str]] = None) -> str:
    """
    Get sector for a position or a bare ticker.

    A position's own ``sector`` wins over the lookup table; unmapped
    tickers fall into ``"Unknown"``.
    """
    if sector_map is None:
        sector_map = DEFAULT_SECTOR_MAP

    if isinstance(position, str):
        return sector_map.get(position.upper(), UNKNOWN_SECTOR)

    if position.sector:
        return position.sector
    return sector_map.get(position.ticker.upper(), UNKNOWN_SECTOR)


def create_holdings_from_input(holdings_input: List[Dict[str, Any]]) -> Holdings:
    """
    Create Holdings from plain dictionaries.

    Args:
        holdings_input: List of dicts with 'ticker', 'buyPrice' (or
            'cost_basis'), 'quantity' and optionally 'currentPrice' (or
            'current_price', defaulting to the buy price), 'id' and 'sector'

    Returns:
        Holdings object; same-ticker entries are merged

    Raises:
        ValidationError: If a required field is missing or a value breaks
            the Position rules
    """
    holdings = Holdings()
    for index, h in enumerate(holdings_input):
        cost_basis = h.get("buyPrice", h.get("cost_basis"))
        required = {"ticker": h.get("ticker"), "buyPrice": cost_basis, "quantity": h.get("quantity")}
        missing = [name for name, value in required.items() if value is None]
        if missing:
            raise ValidationError(
                detail=f"holdings[{index}] is missing {', '.join(missing)}",
                context={"index": index, "missing": missing},
            )

        position = Position(
            id=h["id"] if h.get("id") is not None else holdings.next_id(),
            ticker=h["ticker"],
            cost_basis=cost_basis,
            current_price=h.get("currentPrice", h.get("current_price", cost_basis)),
            quantity=h["quantity"],
            sector=h.get("sector"),
        )
        holdings.add_position(position)

    return holdings
