"""
Folio Core Module

Main Folio class that ties holdings, snapshot history, analytics, the
snapshot scheduler and storage together for one portfolio.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..config.logging import configure_logging, set_portfolio_context
from ..config.settings import load_settings
from ..history.history_manager import PortfolioHistory
from ..history.scheduler import SnapshotScheduler
from ..history.snapshot import Snapshot
from ..history.timeframes import Clock, Timeframe, utc_now
from ..io.exporters import ExportOptions, ExportResult, export_history, export_positions
from ..io.importers import import_positions
from ..persistence.storage import FileStorage, StorageBackend
from ..portfolio.portfolio_analyzer import PortfolioAnalyzer, PortfolioSummary
from ..portfolio.position import Holdings, Position

logger = logging.getLogger(__name__)


class Folio:
    """
    Main Folio class providing access to portfolio history and analytics.
    """

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        storage: Optional[StorageBackend] = None,
        clock: Clock = utc_now,
        portfolio_id: Optional[str] = None,
        setup_logging: bool = False,
    ):
        """
        Initialize Folio with configuration.

        Args:
            config_path: Optional YAML config file
            storage: Storage backend (default: files under STORAGE_DIR)
            clock: Source of "now"
            portfolio_id: Id attached to log lines for this portfolio
            setup_logging: Configure root logging from settings

        Raises:
            ImportValidationError: If the stored history is malformed
        """
        self.settings = load_settings(config_path)
        if setup_logging:
            configure_logging(level=self.settings.LOG_LEVEL, json_format=self.settings.LOG_JSON)
        if portfolio_id:
            set_portfolio_context(portfolio_id)

        self.storage = storage if storage is not None else FileStorage(self.settings.STORAGE_DIR)
        self.clock = clock
        self.holdings = Holdings()
        self.history = PortfolioHistory(storage=self.storage, clock=clock, settings=self.settings)
        self.history.load()
        self.analyzer = PortfolioAnalyzer(settings=self.settings)
        self.scheduler = SnapshotScheduler(
            self.history,
            lambda: self.holdings,
            settings=self.settings,
        )
        logger.info("Folio initialized")

    # =========================================================================
    # Positions
    # =========================================================================

    def add_position(
        self,
        ticker: str,
        cost_basis: float,
        current_price: float,
        quantity: int,
        sector: Optional[str] = None,
    ) -> Position:
        """
        Add a position and restart the snapshot debounce.

        Raises:
            ValidationError: If the ticker is malformed, a price is not a
                positive finite number or quantity is not a positive whole
                number
        """
        with self.history.lock:
            position = self.holdings.add_position(
                Position(
                    id=self.holdings.next_id(),
                    ticker=ticker,
                    cost_basis=cost_basis,
                    current_price=current_price,
                    quantity=quantity,
                    sector=sector,
                )
            )
        self._positions_changed()
        return position

    def remove_position(self, position_id: int) -> Optional[Position]:
        with self.history.lock:
            removed = self.holdings.remove_position(position_id)
        if removed is not None:
            self._positions_changed()
        return removed

    def update_prices(self, prices: Dict[str, float]) -> None:
        with self.history.lock:
            self.holdings.update_prices(prices)
        self._positions_changed()

    def import_positions(self, payload: Any) -> Holdings:
        """
        Replace the position set from a positions export file.

        Raises:
            ImportValidationError: If any record is invalid; holdings are unchanged
        """
        holdings = import_positions(payload)
        with self.history.lock:
            self.holdings = holdings
        self._positions_changed()
        return holdings

    def export_positions(self) -> Dict[str, Any]:
        return export_positions(self.holdings, now=self.clock())

    def _positions_changed(self) -> None:
        if self.scheduler.is_running:
            self.scheduler.notify_positions_changed()

    # =========================================================================
    # History
    # =========================================================================

    def load_history(self) -> int:
        return self.history.load()

    def take_snapshot(self, benchmark_value: Optional[float] = None) -> Snapshot:
        return self.history.take_snapshot(self.holdings, benchmark_value)

    def start_auto_snapshots(self) -> None:
        self.scheduler.start()

    def stop_auto_snapshots(self) -> None:
        self.scheduler.stop()

    def export_history(self, options: Optional[ExportOptions] = None) -> ExportResult:
        return export_history(
            self.history.snapshots,
            metrics=self.history.metrics,
            options=options,
            now=self.clock(),
        )

    # =========================================================================
    # Analytics
    # =========================================================================

    def summarize(self) -> PortfolioSummary:
        return self.analyzer.summarize(self.holdings)

    def performance_report(self, timeframe: Union[Timeframe, str] = Timeframe.ALL) -> Dict[str, Any]:
        """
        Time-series metrics, drawdowns and benchmark comparison for a window.

        Returns:
            Dictionary with camelCase keys
        """
        return {
            "timeframe": Timeframe(timeframe).value,
            "metrics": self.history.metrics_for_timeframe(timeframe).to_dict(),
            "drawdowns": [d.to_dict() for d in self.history.drawdowns_for_timeframe(timeframe)],
            "comparison": self.history.compare_to_benchmark(timeframe).to_dict(),
        }

    def health_check(self) -> Dict[str, Union[bool, str, int, None]]:
        """
        Check health of all Folio components.

        Returns:
            Dictionary with health status of each component
        """
        return {
            "core": True,
            "storage": self.storage is not None,
            "scheduler": self.scheduler.is_running,
            "positions": len(self.holdings),
            "snapshots": len(self.history),
            "lastSnapshotDate": self.history.last_snapshot_date(),
            "status": "operational",
        }
