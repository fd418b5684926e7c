"""
Portfolio Analytics Module

Provides the position model and cross-sectional analytics over the current
holdings: risk dispersion, diversification, sector allocation and holdings
performance.
"""

from .portfolio_analyzer import PortfolioAnalytics, PortfolioAnalyzer, PortfolioSummary
from .position import (
    DEFAULT_SECTOR_MAP,
    UNKNOWN_SECTOR,
    Holdings,
    Position,
    create_holdings_from_input,
    get_sector,
)
from .risk_metrics import (
    DiversificationMetrics,
    HoldingsPerformance,
    RiskMetrics,
    calculate_diversification_metrics,
    calculate_holdings_performance,
    calculate_risk_metrics,
    calculate_weights,
)
from .sector_analysis import (
    SectorAllocation,
    SectorAnalysis,
    SectorPerformance,
    SectorRisk,
    calculate_sector_analysis,
)

__all__ = [
    # Main analyzer
    "PortfolioAnalyzer",
    "PortfolioAnalytics",
    "PortfolioSummary",
    # Position management
    "Holdings",
    "Position",
    "create_holdings_from_input",
    "get_sector",
    "DEFAULT_SECTOR_MAP",
    "UNKNOWN_SECTOR",
    # Risk metrics
    "RiskMetrics",
    "DiversificationMetrics",
    "HoldingsPerformance",
    "calculate_risk_metrics",
    "calculate_diversification_metrics",
    "calculate_holdings_performance",
    "calculate_weights",
    # Sector analysis
    "SectorAllocation",
    "SectorPerformance",
    "SectorRisk",
    "SectorAnalysis",
    "calculate_sector_analysis",
]
