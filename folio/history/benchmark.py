"""
Benchmark Comparison

Compares the portfolio's snapshot series against benchmark levels recorded
on the same snapshots (``Snapshot.benchmark_value``). Beta here is the real
covariance estimate over paired period returns, unlike the cross-sectional
placeholder in ``folio.portfolio.risk_metrics``.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..config.settings import get_settings
from .performance import PerformanceMetrics, calculate_performance_metrics
from .snapshot import Snapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeriesSummary:
    """Headline statistics for one value series. Returns are in percent."""

    total_return: float
    annualized_return: float
    volatility: float
    sharpe_ratio: float
    max_drawdown: float

    @classmethod
    def from_metrics(cls, metrics: PerformanceMetrics) -> "SeriesSummary":
        return cls(
            total_return=metrics.total_return_percent,
            annualized_return=metrics.annualized_return,
            volatility=metrics.volatility,
            sharpe_ratio=metrics.sharpe_ratio,
            max_drawdown=metrics.max_drawdown_percent,
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "totalReturn": self.total_return,
            "annualizedReturn": self.annualized_return,
            "volatility": self.volatility,
            "sharpeRatio": self.sharpe_ratio,
            "maxDrawdown": self.max_drawdown,
        }


@dataclass(frozen=True)
class Outperformance:
    total_return: float
    annualized_return: float
    alpha: float
    beta: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "totalReturn": self.total_return,
            "annualizedReturn": self.annualized_return,
            "alpha": self.alpha,
            "beta": self.beta,
        }


@dataclass(frozen=True)
class PerformanceComparison:
    portfolio: SeriesSummary
    benchmark: Optional[SeriesSummary] = None
    outperformance: Optional[Outperformance] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"portfolio": self.portfolio.to_dict()}
        if self.benchmark is not None:
            data["benchmark"] = self.benchmark.to_dict()
        if self.outperformance is not None:
            data["outperformance"] = self.outperformance.to_dict()
        return data


def paired_returns(snapshots: Sequence[Snapshot]) -> tuple:
    """
    Period returns of portfolio and benchmark over the same intervals.

    Only snapshots carrying a benchmark value take part; an interval is
    used when both starting values are positive.
    """
    tagged = sorted(
        (s for s in snapshots if s.benchmark_value is not None),
        key=lambda s: s.timestamp,
    )
    portfolio_returns: List[float] = []
    benchmark_returns: List[float] = []
    for prev, curr in zip(tagged, tagged[1:]):
        if prev.total_value > 0 and prev.benchmark_value > 0:
            portfolio_returns.append((curr.total_value - prev.total_value) / prev.total_value)
            benchmark_returns.append(
                (curr.benchmark_value - prev.benchmark_value) / prev.benchmark_value
            )
    return np.array(portfolio_returns, dtype=float), np.array(benchmark_returns, dtype=float)


def calculate_beta(
    portfolio_returns: np.ndarray,
    benchmark_returns: np.ndarray,
    default: float = 1.0,
) -> float:
    """Covariance beta; ``default`` when fewer than two pairs or a flat benchmark."""
    if len(portfolio_returns) < 2:
        return default
    benchmark_var = float(np.var(benchmark_returns))
    if benchmark_var == 0:
        return default
    covariance = float(np.cov(portfolio_returns, benchmark_returns, ddof=0)[0, 1])
    return covariance / benchmark_var


def compare_to_benchmark(
    snapshots: Sequence[Snapshot],
    risk_free_rate: Optional[float] = None,
) -> PerformanceComparison:
    """
    Compare portfolio performance with its recorded benchmark.

    When a benchmark is present, both sides are measured over the snapshots
    that carry a benchmark value, so the windows match.

    Args:
        snapshots: Snapshot series
        risk_free_rate: Annual risk-free rate (default from settings)

    Returns:
        PerformanceComparison; with fewer than two benchmark values,
        ``benchmark`` and ``outperformance`` are None and ``portfolio``
        covers the whole series
    """
    settings = get_settings()
    if risk_free_rate is None:
        risk_free_rate = settings.RISK_FREE_RATE

    tagged = [s for s in snapshots if s.benchmark_value is not None]
    if len(tagged) < 2:
        portfolio_metrics = calculate_performance_metrics(snapshots, risk_free_rate=risk_free_rate)
        return PerformanceComparison(portfolio=SeriesSummary.from_metrics(portfolio_metrics))

    portfolio = SeriesSummary.from_metrics(
        calculate_performance_metrics(tagged, risk_free_rate=risk_free_rate)
    )

    # Reuse the snapshot calculator on the benchmark levels
    benchmark_series = [replace(s, total_value=s.benchmark_value) for s in tagged]
    benchmark_metrics = calculate_performance_metrics(
        benchmark_series, risk_free_rate=risk_free_rate
    )
    benchmark = SeriesSummary.from_metrics(benchmark_metrics)

    p_returns, b_returns = paired_returns(tagged)
    beta = calculate_beta(p_returns, b_returns, default=settings.DEFAULT_BETA)

    rf_percent = risk_free_rate * 100
    alpha = portfolio.annualized_return - (
        rf_percent + beta * (benchmark.annualized_return - rf_percent)
    )

    logger.debug("Benchmark comparison over %d snapshots, beta %.3f", len(tagged), beta)

    return PerformanceComparison(
        portfolio=portfolio,
        benchmark=benchmark,
        outperformance=Outperformance(
            total_return=portfolio.total_return - benchmark.total_return,
            annualized_return=portfolio.annualized_return - benchmark.annualized_return,
            alpha=alpha,
            beta=beta,
        ),
    )
