"""
Drawdown Analyzer

Segments a snapshot series into peak -> trough -> recovery episodes with a
single forward scan.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .snapshot import Snapshot
from .timeframes import MS_PER_DAY, date_to_epoch_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrawdownPeriod:
    """One drawdown episode. ``end_date`` is the trough date."""

    start_date: str
    end_date: str
    peak_value: float
    trough_value: float
    drawdown: float
    drawdown_percent: float
    recovery: bool
    duration: int
    recovery_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "startDate": self.start_date,
            "endDate": self.end_date,
            "peakValue": self.peak_value,
            "troughValue": self.trough_value,
            "drawdown": self.drawdown,
            "drawdownPercent": self.drawdown_percent,
            "recovery": self.recovery,
            "duration": self.duration,
        }
        if self.recovery_date is not None:
            data["recoveryDate"] = self.recovery_date
        return data


def days_between(start_date: str, end_date: str) -> int:
    """Whole days between two YYYY-MM-DD dates: ms difference / 86,400,000, truncated."""
    return int((date_to_epoch_ms(end_date) - date_to_epoch_ms(start_date)) / MS_PER_DAY)


def _close_episode(
    start_date: str,
    peak: float,
    trough: float,
    trough_date: str,
    recovery_date: Optional[str],
) -> DrawdownPeriod:
    drawdown = peak - trough
    end = recovery_date if recovery_date is not None else trough_date
    return DrawdownPeriod(
        start_date=start_date,
        end_date=trough_date,
        peak_value=peak,
        trough_value=trough,
        drawdown=drawdown,
        drawdown_percent=drawdown / peak * 100 if peak > 0 else 0.0,
        recovery=recovery_date is not None,
        recovery_date=recovery_date,
        duration=days_between(start_date, end),
    )


def calculate_drawdowns(snapshots: Sequence[Snapshot]) -> List[DrawdownPeriod]:
    """
    Find drawdown episodes in a snapshot series.

    A value strictly above the running peak closes any open episode as
    recovered and becomes the new peak. Any other value opens or extends an
    episode that starts at the peak's date. An episode still open at the end
    is emitted unrecovered.

    Duration runs from the start date to the recovery date, or to the trough
    date for an unrecovered episode.

    Args:
        snapshots: Snapshots in any order; they are sorted by timestamp

    Returns:
        Episodes in chronological order; empty for fewer than two snapshots

    Raises:
        TypeError: If snapshots is None
    """
    if snapshots is None:
        raise TypeError("snapshots must be a sequence, not None")
    if len(snapshots) < 2:
        return []

    ordered = sorted(snapshots, key=lambda s: s.timestamp)
    periods: List[DrawdownPeriod] = []

    peak = ordered[0].total_value
    peak_date = ordered[0].date
    trough = peak
    trough_date = peak_date
    in_drawdown = False
    start_date = peak_date

    for snapshot in ordered[1:]:
        if snapshot.total_value > peak:
            if in_drawdown:
                periods.append(
                    _close_episode(start_date, peak, trough, trough_date, snapshot.date)
                )
                in_drawdown = False
            peak = snapshot.total_value
            peak_date = snapshot.date
            trough = peak
            trough_date = peak_date
        else:
            if not in_drawdown:
                in_drawdown = True
                start_date = peak_date
            if snapshot.total_value < trough:
                trough = snapshot.total_value
                trough_date = snapshot.date

    if in_drawdown:
        periods.append(_close_episode(start_date, peak, trough, trough_date, None))

    logger.debug("Found %d drawdown periods in %d snapshots", len(periods), len(ordered))
    return periods


def drawdowns_to_dataframe(periods: Sequence[DrawdownPeriod]) -> pd.DataFrame:
    """Tabular view of drawdown episodes, deepest first."""
    if not periods:
        return pd.DataFrame()
    df = pd.DataFrame([p.to_dict() for p in periods])
    return df.sort_values("drawdownPercent", ascending=False).reset_index(drop=True)
