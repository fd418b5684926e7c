"""
Folio History Module

Snapshot time series and the analytics computed over it:
- Snapshot records and the date-deduplicated store
- Performance and risk metrics
- Drawdown episodes
- Benchmark comparison
- Caller-owned history state and the daily snapshot scheduler
"""

from .benchmark import PerformanceComparison, compare_to_benchmark
from .drawdown import DrawdownPeriod, calculate_drawdowns
from .history_manager import PortfolioHistory
from .performance import PerformanceMetrics, calculate_daily_returns, calculate_performance_metrics
from .scheduler import SnapshotScheduler
from .snapshot import PositionSnapshot, Snapshot, create_snapshot
from .snapshot_store import SnapshotStore
from .timeframes import MS_PER_DAY, Timeframe, to_epoch_ms

__all__ = [
    "PositionSnapshot",
    "Snapshot",
    "create_snapshot",
    "SnapshotStore",
    "Timeframe",
    "MS_PER_DAY",
    "to_epoch_ms",
    "PerformanceMetrics",
    "calculate_performance_metrics",
    "calculate_daily_returns",
    "DrawdownPeriod",
    "calculate_drawdowns",
    "PerformanceComparison",
    "compare_to_benchmark",
    "PortfolioHistory",
    "SnapshotScheduler",
]
