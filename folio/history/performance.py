"""
Performance & Risk Calculator

Aggregate return, volatility and risk-adjusted return statistics over a
snapshot time series. Every ratio degrades to 0 instead of NaN or infinity,
and fewer than two snapshots yield all-zero metrics.
"""

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..config.logging import log_performance
from ..config.settings import get_settings
from .snapshot import Snapshot
from .timeframes import MS_PER_DAY

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PerformanceMetrics:
    """Time-series performance statistics. Percent fields are in percent units."""

    total_return: float = 0.0
    total_return_percent: float = 0.0
    annualized_return: float = 0.0
    volatility: float = 0.0
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0
    max_drawdown_percent: float = 0.0
    win_rate: float = 0.0
    average_gain: float = 0.0
    average_loss: float = 0.0
    profit_factor: float = 0.0
    sortino: float = 0.0
    calmar_ratio: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for export."""
        return {
            "totalReturn": self.total_return,
            "totalReturnPercent": self.total_return_percent,
            "annualizedReturn": self.annualized_return,
            "volatility": self.volatility,
            "sharpeRatio": self.sharpe_ratio,
            "maxDrawdown": self.max_drawdown,
            "maxDrawdownPercent": self.max_drawdown_percent,
            "winRate": self.win_rate,
            "averageGain": self.average_gain,
            "averageLoss": self.average_loss,
            "profitFactor": self.profit_factor,
            "sortino": self.sortino,
            "calmarRatio": self.calmar_ratio,
        }

    def is_zero(self) -> bool:
        return all(v == 0 for v in asdict(self).values())


def _sorted_snapshots(snapshots: Sequence[Snapshot]) -> List[Snapshot]:
    if snapshots is None:
        raise TypeError("snapshots must be a sequence, not None")
    return sorted(snapshots, key=lambda s: s.timestamp)


def calculate_daily_returns(snapshots: Sequence[Snapshot]) -> np.ndarray:
    """
    Simple period returns between consecutive snapshots.

    Intervals starting from a non-positive value are skipped rather than
    recorded as 0.
    """
    ordered = _sorted_snapshots(snapshots)
    returns = []
    for prev, curr in zip(ordered, ordered[1:]):
        if prev.total_value > 0:
            returns.append((curr.total_value - prev.total_value) / prev.total_value)
    return np.array(returns, dtype=float)


def calculate_annualized_return(
    first_value: float,
    last_value: float,
    elapsed_ms: float,
    total_return_percent: float,
    days_per_year: float = 365.25,
) -> float:
    """
    Compound annual growth rate in percent.

    Falls back to ``total_return_percent`` when no time has elapsed or the
    compounded figure overflows.
    """
    if first_value <= 0:
        return 0.0

    years = elapsed_ms / MS_PER_DAY / days_per_year
    if years <= 0:
        return total_return_percent

    ratio = last_value / first_value
    if ratio <= 0:
        return -100.0

    try:
        annualized = (math.pow(ratio, 1 / years) - 1) * 100
    except OverflowError:
        logger.debug("Annualized return overflowed over %.4f years", years)
        return total_return_percent
    return annualized if math.isfinite(annualized) else total_return_percent


def calculate_max_drawdown(values: Sequence[float]) -> tuple:
    """
    Largest peak-to-value decline in a single forward pass.

    Returns:
        (max_drawdown, max_drawdown_percent); percent is relative to the
        running peak at the point of the deepest decline
    """
    if len(values) == 0:
        return 0.0, 0.0

    max_drawdown = 0.0
    max_drawdown_percent = 0.0
    peak = values[0]
    for value in values:
        if value > peak:
            peak = value
        drawdown = peak - value
        if drawdown > max_drawdown:
            max_drawdown = drawdown
            max_drawdown_percent = drawdown / peak * 100 if peak > 0 else 0.0
    return float(max_drawdown), float(max_drawdown_percent)


def _ratio(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    result = numerator / denominator
    return float(result) if math.isfinite(result) else 0.0


@log_performance(threshold_ms=250.0)
def calculate_performance_metrics(
    snapshots: Sequence[Snapshot],
    risk_free_rate: Optional[float] = None,
    trading_days: Optional[int] = None,
    days_per_year: Optional[float] = None,
) -> PerformanceMetrics:
    """
    Calculate performance metrics for a snapshot sequence.

    Args:
        snapshots: Snapshots in any order; they are sorted by timestamp
        risk_free_rate: Annual risk-free rate (default from settings, 0.02)
        trading_days: Volatility annualization factor (default 252)
        days_per_year: Calendar days per year for compounding (default 365.25)

    Returns:
        PerformanceMetrics; all zeros when fewer than two snapshots

    Raises:
        TypeError: If snapshots is None
    """
    ordered = _sorted_snapshots(snapshots)
    if len(ordered) < 2:
        return PerformanceMetrics()

    settings = get_settings()
    if risk_free_rate is None:
        risk_free_rate = settings.RISK_FREE_RATE
    if trading_days is None:
        trading_days = settings.TRADING_DAYS_PER_YEAR
    if days_per_year is None:
        days_per_year = settings.DAYS_PER_YEAR

    first, last = ordered[0], ordered[-1]
    values = [s.total_value for s in ordered]
    returns = calculate_daily_returns(ordered)
    annualizer = math.sqrt(trading_days)

    # Returns
    total_return = last.total_value - first.total_value
    total_return_percent = (
        total_return / first.total_value * 100 if first.total_value != 0 else 0.0
    )
    annualized_return = calculate_annualized_return(
        first.total_value,
        last.total_value,
        last.timestamp - first.timestamp,
        total_return_percent,
        days_per_year,
    )
    excess_return = annualized_return / 100 - risk_free_rate

    # Volatility (population std of period returns, annualized)
    if len(returns) > 0:
        mean_return = float(np.mean(returns))
        volatility = float(np.std(returns)) * annualizer * 100
    else:
        mean_return = 0.0
        volatility = 0.0

    sharpe_ratio = _ratio(excess_return, volatility / 100)

    # Sortino: downside set is returns below the mean and the deviation is
    # taken around the mean, not around a zero minimum acceptable return.
    downside = returns[returns < mean_return]
    if len(downside) > 0:
        downside_deviation = (
            math.sqrt(float(np.mean((downside - mean_return) ** 2))) * annualizer * 100
        )
    else:
        downside_deviation = 0.0
    sortino = _ratio(excess_return, downside_deviation / 100)

    max_drawdown, max_drawdown_percent = calculate_max_drawdown(values)

    # Win/loss statistics
    gains = returns[returns > 0]
    losses = returns[returns < 0]
    win_rate = len(gains) / len(returns) * 100 if len(returns) > 0 else 0.0
    average_gain = float(np.mean(gains)) * 100 if len(gains) > 0 else 0.0
    average_loss = abs(float(np.mean(losses))) * 100 if len(losses) > 0 else 0.0

    return PerformanceMetrics(
        total_return=float(total_return),
        total_return_percent=float(total_return_percent),
        annualized_return=float(annualized_return),
        volatility=volatility,
        sharpe_ratio=sharpe_ratio,
        max_drawdown=max_drawdown,
        max_drawdown_percent=max_drawdown_percent,
        win_rate=float(win_rate),
        average_gain=average_gain,
        average_loss=average_loss,
        profit_factor=_ratio(average_gain, average_loss),
        sortino=sortino,
        calmar_ratio=_ratio(annualized_return, max_drawdown_percent),
    )
