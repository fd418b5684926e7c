"""
Risk Metrics Module

Cross-sectional risk, diversification and holdings performance over the
current position set. These are dispersion measures across positions, not
time-series statistics; see ``folio.history.performance`` for those.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..config.settings import get_settings
from .position import Position

logger = logging.getLogger(__name__)


@dataclass
class RiskMetrics:
    """Cross-sectional risk metrics. Return-based fields are in percent."""

    volatility: float = 0.0  # Population std of per-position return %
    sharpe_ratio: float = 0.0  # Mean return / volatility, risk-free rate 0
    max_drawdown: float = 0.0  # Worst position return, capped at 0
    value_at_risk: float = 0.0  # 95% one-tailed, volatility * z
    beta: float = 0.0
    alpha: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "portfolioVolatility": self.volatility,
            "sharpeRatio": self.sharpe_ratio,
            "maxDrawdown": self.max_drawdown,
            "valueAtRisk": self.value_at_risk,
            "beta": self.beta,
            "alpha": self.alpha,
        }


@dataclass
class DiversificationMetrics:
    """Concentration measures from market value weights."""

    herfindahl_index: float = 0.0
    effective_number_of_stocks: float = 0.0
    concentration_risk: float = 0.0  # Largest weight, percent
    diversification_ratio: float = 0.0
    weights: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "herfindahlIndex": self.herfindahl_index,
            "effectiveNumberOfStocks": self.effective_number_of_stocks,
            "concentrationRisk": self.concentration_risk,
            "diversificationRatio": self.diversification_ratio,
            "weights": self.weights,
        }


@dataclass
class HoldingsPerformance:
    """Gain/loss summary across positions. Gains and losses are in currency."""

    total_return: float = 0.0
    total_return_percent: float = 0.0
    annualized_return: float = 0.0
    best_performer: Optional[Position] = None
    worst_performer: Optional[Position] = None
    win_loss_ratio: float = 0.0
    average_gain: float = 0.0
    average_loss: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalReturn": self.total_return,
            "totalReturnPercent": self.total_return_percent,
            "annualizedReturn": self.annualized_return,
            "bestPerformingStock": self.best_performer.to_dict() if self.best_performer else None,
            "worstPerformingStock": self.worst_performer.to_dict() if self.worst_performer else None,
            "winLossRatio": self.win_loss_ratio,
            "averageGain": self.average_gain,
            "averageLoss": self.average_loss,
        }


def position_return_percents(positions: Sequence[Position]) -> np.ndarray:
    """Per-position return in percent of cost basis."""
    return np.array([p.gain_percent for p in positions], dtype=float)


def calculate_weights(positions: Sequence[Position]) -> np.ndarray:
    """Market value weights in position order; zeros when total value is 0."""
    values = np.array([p.market_value for p in positions], dtype=float)
    total = values.sum()
    if total == 0:
        return np.zeros(len(values))
    return values / total


def calculate_risk_metrics(
    positions: Sequence[Position],
    beta: Optional[float] = None,
    market_return: Optional[float] = None,
    var_z_score: Optional[float] = None,
) -> RiskMetrics:
    """
    Calculate cross-sectional risk metrics.

    Beta is a placeholder: a real beta needs a benchmark return series,
    which the current position set does not carry. Alpha is the mean
    position return minus ``beta * market_return``.

    Args:
        positions: Current positions
        beta: Beta to report (default from settings, 1.0)
        market_return: Assumed market return in percent (default 10.0)
        var_z_score: One-tailed z-score for VaR (default 1.65)

    Returns:
        RiskMetrics; all zeros for an empty position set
    """
    if not positions:
        return RiskMetrics()

    settings = get_settings()
    if beta is None:
        beta = settings.DEFAULT_BETA
    if market_return is None:
        market_return = settings.ASSUMED_MARKET_RETURN
    if var_z_score is None:
        var_z_score = settings.VAR_Z_SCORE

    returns = position_return_percents(positions)
    mean_return = float(np.mean(returns))
    volatility = float(np.std(returns))

    return RiskMetrics(
        volatility=volatility,
        sharpe_ratio=mean_return / volatility if volatility > 0 else 0.0,
        max_drawdown=float(min(0.0, returns.min())),
        value_at_risk=volatility * var_z_score,
        beta=beta,
        alpha=mean_return - beta * market_return,
    )


def calculate_diversification_metrics(positions: Sequence[Position]) -> DiversificationMetrics:
    """
    Calculate Herfindahl-based concentration metrics.

    Args:
        positions: Current positions

    Returns:
        DiversificationMetrics; all zeros for an empty position set
    """
    if not positions:
        return DiversificationMetrics()

    weights = calculate_weights(positions)
    herfindahl = float(np.sum(weights**2))
    n = len(positions)

    by_ticker: Dict[str, float] = {}
    for p, w in zip(positions, weights):
        by_ticker[p.ticker] = by_ticker.get(p.ticker, 0.0) + float(w)

    return DiversificationMetrics(
        herfindahl_index=herfindahl,
        effective_number_of_stocks=1 / herfindahl if herfindahl > 0 else 0.0,
        concentration_risk=float(weights.max()) * 100,
        diversification_ratio=(1 - herfindahl) / (1 - 1 / n) if n > 1 else 0.0,
        weights=by_ticker,
    )


def calculate_holdings_performance(positions: Sequence[Position]) -> HoldingsPerformance:
    """
    Summarize winners and losers across positions.

    ``annualized_return`` equals the total return percent; positions carry
    no holding period.
    """
    if not positions:
        return HoldingsPerformance()

    invested = sum(p.invested for p in positions)
    total_return = sum(p.gain for p in positions)
    total_return_percent = total_return / invested * 100 if invested > 0 else 0.0

    winners = [p.gain for p in positions if p.gain > 0]
    losers = [p.gain for p in positions if p.gain < 0]

    if losers:
        win_loss_ratio = len(winners) / len(losers)
    else:
        win_loss_ratio = float(len(winners))

    return HoldingsPerformance(
        total_return=total_return,
        total_return_percent=total_return_percent,
        annualized_return=total_return_percent,
        best_performer=max(positions, key=lambda p: p.gain_percent),
        worst_performer=min(positions, key=lambda p: p.gain_percent),
        win_loss_ratio=win_loss_ratio,
        average_gain=sum(winners) / len(winners) if winners else 0.0,
        average_loss=abs(sum(losers)) / len(losers) if losers else 0.0,
    )


def rank_by_return(positions: Sequence[Position], count: int, descending: bool = True) -> List[Position]:
    """Positions ordered by return percent; ties keep input order."""
    return sorted(positions, key=lambda p: p.gain_percent, reverse=descending)[:count]
