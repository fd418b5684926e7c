"""
Folio - Portfolio Performance & Risk Analytics

Snapshot-based performance, risk and drawdown analytics for a stock
portfolio, plus cross-sectional diversification and sector metrics.
"""

__version__ = "0.1.0"

from .core.core import Folio
from .core.errors import DuplicateSnapshotError, FolioError
from .history import (
    DrawdownPeriod,
    PerformanceMetrics,
    PortfolioHistory,
    Snapshot,
    SnapshotStore,
    Timeframe,
    calculate_drawdowns,
    calculate_performance_metrics,
)
from .portfolio import (
    Holdings,
    PortfolioAnalyzer,
    Position,
    calculate_diversification_metrics,
    calculate_risk_metrics,
    calculate_sector_analysis,
)

__all__ = [
    "Folio",
    "FolioError",
    "DuplicateSnapshotError",
    "Holdings",
    "Position",
    "PortfolioAnalyzer",
    "calculate_diversification_metrics",
    "calculate_risk_metrics",
    "calculate_sector_analysis",
    "Snapshot",
    "SnapshotStore",
    "PortfolioHistory",
    "Timeframe",
    "PerformanceMetrics",
    "DrawdownPeriod",
    "calculate_performance_metrics",
    "calculate_drawdowns",
]
