"""
Sector Analysis Module

Groups current positions by sector and computes allocation, return and
return dispersion per sector.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..config.settings import get_settings
from .position import Position, get_sector

logger = logging.getLogger(__name__)


@dataclass
class SectorAllocation:
    sector: str
    allocation: float  # Percent of total market value
    value: float

    def to_dict(self) -> Dict[str, Any]:
        return {"sector": self.sector, "allocation": self.allocation, "value": self.value}


@dataclass
class SectorPerformance:
    sector: str
    gain: float  # Market value minus invested
    gain_percent: float

    def to_dict(self) -> Dict[str, Any]:
        return {"sector": self.sector, "return": self.gain, "returnPercent": self.gain_percent}


@dataclass
class SectorRisk:
    sector: str
    volatility: float  # Population std of per-position return %
    beta: float

    def to_dict(self) -> Dict[str, Any]:
        return {"sector": self.sector, "volatility": self.volatility, "beta": self.beta}


@dataclass
class SectorAnalysis:
    """Per-sector aggregates, in first-seen sector order."""

    allocation: List[SectorAllocation] = field(default_factory=list)
    performance: List[SectorPerformance] = field(default_factory=list)
    risk: List[SectorRisk] = field(default_factory=list)

    @property
    def sectors(self) -> List[str]:
        return [a.sector for a in self.allocation]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sectorAllocation": [a.to_dict() for a in self.allocation],
            "sectorPerformance": [p.to_dict() for p in self.performance],
            "sectorRisk": [r.to_dict() for r in self.risk],
        }

    def to_dataframe(self) -> pd.DataFrame:
        """One row per sector with allocation, return and volatility columns."""
        if not self.allocation:
            return pd.DataFrame()
        rows = [
            {
                "sector": a.sector,
                "allocation": a.allocation,
                "value": a.value,
                "return": p.gain,
                "return_percent": p.gain_percent,
                "volatility": r.volatility,
                "beta": r.beta,
            }
            for a, p, r in zip(self.allocation, self.performance, self.risk)
        ]
        return pd.DataFrame(rows).set_index("sector")


def group_by_sector(
    positions: Sequence[Position],
    sector_map: Optional[Dict[str, str]] = None,
) -> Dict[str, List[Position]]:
    """Group positions by sector, preserving first-seen order."""
    groups: Dict[str, List[Position]] = {}
    for p in positions:
        groups.setdefault(get_sector(p, sector_map), []).append(p)
    return groups


def calculate_sector_analysis(
    positions: Sequence[Position],
    sector_map: Optional[Dict[str, str]] = None,
    beta: Optional[float] = None,
) -> SectorAnalysis:
    """
    Calculate sector allocation, performance and risk.

    Args:
        positions: Current positions
        sector_map: Ticker to sector lookup (default: built-in map)
        beta: Placeholder sector beta (default from settings, 1.0)

    Returns:
        SectorAnalysis; empty for an empty position set
    """
    if not positions:
        return SectorAnalysis()

    if beta is None:
        beta = get_settings().DEFAULT_BETA

    total_value = sum(p.market_value for p in positions)
    analysis = SectorAnalysis()

    for sector, members in group_by_sector(positions, sector_map).items():
        value = sum(p.market_value for p in members)
        invested = sum(p.invested for p in members)
        gain = value - invested
        returns = np.array([p.gain_percent for p in members], dtype=float)

        analysis.allocation.append(
            SectorAllocation(
                sector=sector,
                allocation=value / total_value * 100 if total_value > 0 else 0.0,
                value=value,
            )
        )
        analysis.performance.append(
            SectorPerformance(
                sector=sector,
                gain=gain,
                gain_percent=gain / invested * 100 if invested > 0 else 0.0,
            )
        )
        analysis.risk.append(
            SectorRisk(sector=sector, volatility=float(np.std(returns)), beta=beta)
        )

    logger.debug("Sector analysis over %d sectors", len(analysis.allocation))
    return analysis
