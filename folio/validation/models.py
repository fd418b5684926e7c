"""
Pydantic Validation Models

Validated shapes for the positions import file and the persisted snapshot
history. Field aliases match the camelCase wire format; snake_case names are
accepted as well.
"""

import re
from datetime import date as calendar_date
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Custom Field Types with Annotated
# =============================================================================

# Positive float for prices
PositiveFloat = Annotated[
    float,
    Field(gt=0, description="Positive floating-point number"),
]

# Whole number of shares held
QuantityField = Annotated[
    int,
    Field(gt=0, le=1_000_000_000, description="Number of shares"),
]

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# =============================================================================
# Symbol Validator
# =============================================================================


class SymbolValidator:
    """Single ticker rule shared by manual entry and imports."""

    MAX_LENGTH = 10

    # Starts with a letter; letters, digits, dots and dashes after that
    PATTERN = re.compile(r"^[A-Z][A-Z0-9.\-]*$")

    # Reserved/invalid symbols
    INVALID_SYMBOLS = {"NULL", "NONE", "UNDEFINED", "N/A"}

    @classmethod
    def validate(cls, symbol: Any) -> str:
        """
        Validate a ticker.

        Returns:
            Upper-cased, stripped symbol

        Raises:
            ValueError: If the symbol is empty, reserved, too long or
                contains characters outside the ticker alphabet
        """
        if not isinstance(symbol, str) or not symbol.strip():
            raise ValueError("Ticker must be a non-empty string")

        symbol = symbol.strip().upper()

        if symbol in cls.INVALID_SYMBOLS:
            raise ValueError(f"Reserved or invalid ticker '{symbol}'")
        if len(symbol) > cls.MAX_LENGTH:
            raise ValueError(f"Ticker longer than {cls.MAX_LENGTH} characters")
        if not cls.PATTERN.match(symbol):
            raise ValueError(f"Invalid ticker format '{symbol}'")
        return symbol


# =============================================================================
# Base Model with Enhanced Configuration
# =============================================================================


class FolioBaseModel(BaseModel):
    """Base Pydantic model for Folio wire formats."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,  # Allow both snake_case and camelCase
        allow_inf_nan=False,
    )

    def to_wire(self) -> Dict[str, Any]:
        """Dump using the camelCase wire names."""
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# Positions Import
# =============================================================================


class ValidatedPosition(FolioBaseModel):
    """A position record from a positions import file."""

    id: Optional[int] = Field(default=None, ge=0)
    ticker: str = Field(min_length=1)
    buy_price: PositiveFloat = Field(alias="buyPrice")
    current_price: PositiveFloat = Field(alias="currentPrice")
    quantity: QuantityField
    sector: Optional[str] = None

    @field_validator("ticker", mode="before")
    @classmethod
    def validate_ticker(cls, v: Any) -> str:
        return SymbolValidator.validate(v)


class ValidatedPortfolioExport(FolioBaseModel):
    """Positions export envelope (version 1.0)."""

    version: str = "1.0"
    export_date: Optional[str] = Field(default=None, alias="exportDate")
    metadata: Optional[Dict[str, Any]] = None
    stocks: List[ValidatedPosition]


# =============================================================================
# Snapshot History
# =============================================================================


class ValidatedPositionSnapshot(FolioBaseModel):
    """One position as recorded inside a stored snapshot."""

    stock_id: int = Field(alias="stockId")
    ticker: str = Field(min_length=1)
    quantity: int = Field(ge=0)
    price: float = Field(ge=0)
    value: float
    gain_loss: float = Field(alias="gainLoss")
    gain_loss_percent: float = Field(alias="gainLossPercent")
    buy_price: float = Field(ge=0, alias="buyPrice")


class ValidatedSnapshot(FolioBaseModel):
    """A stored snapshot record."""

    id: str = Field(min_length=1)
    date: str
    timestamp: int = Field(ge=0)
    total_value: float = Field(alias="totalValue")
    total_gain_loss: float = Field(alias="totalGainLoss")
    total_gain_loss_percent: float = Field(alias="totalGainLossPercent")
    stock_snapshots: List[ValidatedPositionSnapshot] = Field(
        default_factory=list,
        alias="stockSnapshots",
    )
    benchmark_value: Optional[float] = Field(default=None, alias="benchmarkValue")

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        """Require a real calendar date in YYYY-MM-DD form."""
        if not ISO_DATE_PATTERN.match(v):
            raise ValueError("Date must be in YYYY-MM-DD format")
        calendar_date.fromisoformat(v)
        return v


class ValidatedSnapshotHistory(FolioBaseModel):
    """Whole stored history; dates must be unique."""

    snapshots: List[ValidatedSnapshot]

    @model_validator(mode="after")
    def validate_unique_dates(self) -> "ValidatedSnapshotHistory":
        seen = set()
        for snap in self.snapshots:
            if snap.date in seen:
                raise ValueError(f"Duplicate snapshot date {snap.date}")
            seen.add(snap.date)
        return self
