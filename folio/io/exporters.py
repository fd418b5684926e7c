"""
Exporters

Read-only views over the snapshot history and the current positions:
full-fidelity JSON, CSV and tab-separated "Excel" text.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Union

import pandas as pd

from ..config.logging import event_logger
from ..history.performance import PerformanceMetrics
from ..history.snapshot import Snapshot
from ..history.timeframes import Timeframe, window_bounds
from ..portfolio.position import Holdings

logger = logging.getLogger(__name__)

TABULAR_COLUMNS = ["Date", "Total Value", "Total P&L", "P&L %", "Positions"]
NO_SNAPSHOT_DATA = "No snapshot data to export"


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    EXCEL = "excel"

    @property
    def extension(self) -> str:
        return {"json": "json", "csv": "csv", "excel": "xlsx"}[self.value]

    @property
    def mime_type(self) -> str:
        return {
            "json": "application/json",
            "csv": "text/csv",
            "excel": "application/vnd.ms-excel",
        }[self.value]

    @property
    def separator(self) -> str:
        return "\t" if self is ExportFormat.EXCEL else ","


@dataclass
class ExportOptions:
    """What goes into a history export."""

    format: ExportFormat = ExportFormat.JSON
    timeframe: Timeframe = Timeframe.ALL
    include_snapshots: bool = True
    include_metrics: bool = True
    include_chart_data: bool = True

    def __post_init__(self):
        self.format = ExportFormat(self.format)
        self.timeframe = Timeframe(self.timeframe)


@dataclass(frozen=True)
class ExportResult:
    content: str
    filename: str
    mime_type: str


def _iso_utc(now: datetime) -> str:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).isoformat()


def export_filename(export_format: Union[ExportFormat, str], now: datetime) -> str:
    """``portfolio-history-YYYY-MM-DD.<ext>`` using the UTC date."""
    export_format = ExportFormat(export_format)
    day = _iso_utc(now)[:10]
    return f"portfolio-history-{day}.{export_format.extension}"


def build_export_data(
    snapshots: Sequence[Snapshot],
    metrics: Optional[PerformanceMetrics],
    options: ExportOptions,
    now: datetime,
) -> Dict[str, Any]:
    """
    Assemble the JSON history export document.

    ``chartData`` holds the snapshots inside ``options.timeframe`` relative
    to ``now``.
    """
    ordered = sorted(snapshots, key=lambda s: s.timestamp)
    data: Dict[str, Any] = {
        "exportDate": _iso_utc(now),
        "timeframe": options.timeframe.value,
        "portfolio": {
            "totalSnapshots": len(ordered),
            "dateRange": {
                "start": ordered[0].date if ordered else None,
                "end": ordered[-1].date if ordered else None,
            },
        },
    }

    if options.include_snapshots:
        data["snapshots"] = [s.to_dict() for s in ordered]

    if options.include_metrics and metrics is not None:
        data["metrics"] = metrics.to_dict()

    if options.include_chart_data:
        bounds = window_bounds(options.timeframe, now)
        if bounds is None:
            window = ordered
        else:
            window = [s for s in ordered if bounds[0] <= s.timestamp <= bounds[1]]
        data["chartData"] = [s.to_dict() for s in window]

    return data


def snapshots_to_dataframe(snapshots: Sequence[Snapshot]) -> pd.DataFrame:
    """Snapshot totals in the fixed tabular column order."""
    rows = [
        [s.date, s.total_value, s.total_gain_loss, s.total_gain_loss_percent, s.position_count]
        for s in sorted(snapshots, key=lambda s: s.timestamp)
    ]
    return pd.DataFrame(rows, columns=TABULAR_COLUMNS)


def render_tabular(snapshots: Optional[Sequence[Snapshot]], separator: str = ",") -> str:
    """Render snapshot totals as delimited text, header first, no trailing newline."""
    if snapshots is None:
        return NO_SNAPSHOT_DATA
    df = snapshots_to_dataframe(snapshots)
    return df.to_csv(sep=separator, index=False, lineterminator="\n").rstrip("\n")


def export_history(
    snapshots: Sequence[Snapshot],
    metrics: Optional[PerformanceMetrics] = None,
    options: Optional[ExportOptions] = None,
    now: Optional[datetime] = None,
) -> ExportResult:
    """
    Export snapshot history in the requested format.

    Args:
        snapshots: Snapshot history
        metrics: Current performance metrics, included in JSON exports
        options: Export options (default: JSON with everything)
        now: Export time (default: current UTC time)

    Returns:
        ExportResult with file content, suggested filename and MIME type
    """
    options = options or ExportOptions()
    now = now or datetime.now(timezone.utc)
    data = build_export_data(snapshots, metrics, options, now)

    if options.format is ExportFormat.JSON:
        content = json.dumps(data, indent=2)
    else:
        content = render_tabular(
            snapshots if options.include_snapshots else None,
            separator=options.format.separator,
        )

    rows = len(snapshots) if options.include_snapshots else 0
    event_logger.log_export(options.format.value, rows)

    return ExportResult(
        content=content,
        filename=export_filename(options.format, now),
        mime_type=options.format.mime_type,
    )


def export_summary(
    snapshots: Sequence[Snapshot],
    metrics: Optional[PerformanceMetrics],
    options: ExportOptions,
    now: datetime,
) -> Dict[str, Any]:
    """Counts of what an export will contain and its estimated JSON size."""
    data = build_export_data(snapshots, metrics, options, now)
    size_kb = len(json.dumps(data)) / 1024
    return {
        "snapshots": len(data.get("snapshots", [])),
        "metrics": 1 if "metrics" in data else 0,
        "chartData": len(data.get("chartData", [])),
        "estimatedSize": f"{size_kb:.1f} KB",
    }


def export_positions(holdings: Holdings, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Positions export document (version 1.0)."""
    now = now or datetime.now(timezone.utc)
    return {
        "version": "1.0",
        "exportDate": _iso_utc(now),
        "metadata": {
            "totalValue": holdings.total_value,
            "totalPositions": len(holdings),
            "totalProfitLoss": holdings.total_gain,
        },
        "stocks": [p.to_dict() for p in holdings],
    }
