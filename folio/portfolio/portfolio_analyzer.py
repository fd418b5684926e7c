"""
Portfolio Analyzer Module

High-level cross-sectional analytics over the current holdings, combining
risk, diversification, sector analysis and holdings performance.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config.logging import log_performance
from ..config.settings import FolioSettings, get_settings
from .position import Holdings, Position, get_sector
from .risk_metrics import (
    DiversificationMetrics,
    HoldingsPerformance,
    RiskMetrics,
    calculate_diversification_metrics,
    calculate_holdings_performance,
    calculate_risk_metrics,
    rank_by_return,
)
from .sector_analysis import SectorAnalysis, calculate_sector_analysis

logger = logging.getLogger(__name__)


@dataclass
class PortfolioAnalytics:
    """All cross-sectional analytics for one position set."""

    performance: HoldingsPerformance = field(default_factory=HoldingsPerformance)
    risk: RiskMetrics = field(default_factory=RiskMetrics)
    diversification: DiversificationMetrics = field(default_factory=DiversificationMetrics)
    sectors: SectorAnalysis = field(default_factory=SectorAnalysis)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "performanceMetrics": self.performance.to_dict(),
            "riskMetrics": self.risk.to_dict(),
            "diversificationMetrics": self.diversification.to_dict(),
            "sectorAnalysis": self.sectors.to_dict(),
        }


@dataclass
class PortfolioSummary:
    """Analytics plus ranked position lists."""

    analytics: PortfolioAnalytics
    top_performers: List[Position]
    bottom_performers: List[Position]
    highest_weighted: List[Position]
    total_stocks: int
    total_sectors: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "analytics": self.analytics.to_dict(),
            "topPerformers": [p.to_dict() for p in self.top_performers],
            "bottomPerformers": [p.to_dict() for p in self.bottom_performers],
            "highestWeighted": [p.to_dict() for p in self.highest_weighted],
            "totalStocks": self.total_stocks,
            "totalSectors": self.total_sectors,
        }


class PortfolioAnalyzer:
    """
    Analyze the current position set.

    Beta and the market return behind alpha are placeholders taken from
    settings unless overridden here.
    """

    def __init__(
        self,
        settings: Optional[FolioSettings] = None,
        sector_map: Optional[Dict[str, str]] = None,
        beta: Optional[float] = None,
        market_return: Optional[float] = None,
    ):
        """
        Initialize portfolio analyzer.

        Args:
            settings: Calculation settings (default: cached global settings)
            sector_map: Ticker to sector lookup (default: built-in map)
            beta: Override for the placeholder beta
            market_return: Override for the assumed market return, percent
        """
        self.settings = settings or get_settings()
        self.sector_map = sector_map
        self.beta = beta if beta is not None else self.settings.DEFAULT_BETA
        self.market_return = (
            market_return if market_return is not None else self.settings.ASSUMED_MARKET_RETURN
        )

    @log_performance(threshold_ms=250.0)
    def analyze(self, holdings: Holdings) -> PortfolioAnalytics:
        """
        Compute all cross-sectional analytics.

        Args:
            holdings: Current holdings

        Returns:
            PortfolioAnalytics; zero-valued for empty holdings
        """
        positions = holdings.positions
        if not positions:
            return PortfolioAnalytics()

        return PortfolioAnalytics(
            performance=calculate_holdings_performance(positions),
            risk=calculate_risk_metrics(
                positions,
                beta=self.beta,
                market_return=self.market_return,
                var_z_score=self.settings.VAR_Z_SCORE,
            ),
            diversification=calculate_diversification_metrics(positions),
            sectors=calculate_sector_analysis(positions, self.sector_map, beta=self.beta),
        )

    def get_top_performers(self, holdings: Holdings, count: int = 3) -> List[Position]:
        return rank_by_return(holdings.positions, count, descending=True)

    def get_bottom_performers(self, holdings: Holdings, count: int = 3) -> List[Position]:
        return rank_by_return(holdings.positions, count, descending=False)

    def get_highest_weighted(self, holdings: Holdings, count: int = 5) -> List[Position]:
        """Largest positions by market value."""
        return sorted(holdings.positions, key=lambda p: p.market_value, reverse=True)[:count]

    def count_sectors(self, holdings: Holdings) -> int:
        return len({get_sector(p, self.sector_map) for p in holdings})

    def summarize(self, holdings: Holdings) -> PortfolioSummary:
        """Analytics with top/bottom performers and largest positions."""
        return PortfolioSummary(
            analytics=self.analyze(holdings),
            top_performers=self.get_top_performers(holdings),
            bottom_performers=self.get_bottom_performers(holdings),
            highest_weighted=self.get_highest_weighted(holdings),
            total_stocks=len(holdings),
            total_sectors=self.count_sectors(holdings),
        )
