"""
Portfolio History

Caller-owned state object that holds the snapshot store, persists it through
a storage port and eagerly recomputes performance metrics and drawdowns after
every change.
"""

import json
import logging
import threading
from datetime import timezone
from typing import List, Optional, Union

from ..config.logging import event_logger
from ..config.settings import FolioSettings, get_settings
from ..core.errors import DuplicateSnapshotError, ErrorCodes, SnapshotError, validate_date_range
from ..io.importers import parse_snapshot_history
from ..persistence.storage import StorageBackend
from ..portfolio.position import Holdings
from .benchmark import PerformanceComparison, compare_to_benchmark
from .drawdown import DrawdownPeriod, calculate_drawdowns
from .performance import PerformanceMetrics, calculate_performance_metrics
from .snapshot import Snapshot, create_snapshot
from .snapshot_store import SnapshotStore
from .timeframes import Clock, TimeLike, Timeframe, to_epoch_ms, utc_now

logger = logging.getLogger(__name__)


class PortfolioHistory:
    """
    Snapshot history for one portfolio.

    With a storage backend, the stored list is loaded before the first
    change is written. Every change is written to storage before it is
    applied in memory, so a failed write leaves the history as it was.

    Example:
        >>> history = PortfolioHistory(storage=InMemoryStorage())
        >>> history.take_snapshot(holdings)
        >>> history.metrics.total_return_percent
    """

    def __init__(
        self,
        storage: Optional[StorageBackend] = None,
        clock: Clock = utc_now,
        settings: Optional[FolioSettings] = None,
    ):
        """
        Initialize the history.

        Args:
            storage: Backend for persisting the snapshot list; None keeps
                history in memory only
            clock: Source of "now" for snapshot dates and timeframe windows
            settings: Calculation settings (default: cached global settings)
        """
        self.storage = storage
        self.clock = clock
        self.settings = settings or get_settings()
        self.store = SnapshotStore()
        self.metrics = PerformanceMetrics()
        self.drawdowns: List[DrawdownPeriod] = []
        # Shared with the snapshot scheduler, whose jobs run on another thread
        self.lock = threading.RLock()
        self._loaded = storage is None

    @property
    def storage_key(self) -> str:
        return self.settings.HISTORY_STORAGE_KEY

    @property
    def snapshots(self) -> List[Snapshot]:
        return self.store.snapshots

    def __len__(self) -> int:
        return len(self.store)

    def today(self) -> str:
        """Current UTC calendar date from the injected clock."""
        now = self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(timezone.utc).date().isoformat()

    # =========================================================================
    # Persistence
    # =========================================================================

    def load(self) -> int:
        """
        Replace in-memory history with the stored snapshot list.

        Returns:
            Number of snapshots loaded

        Raises:
            ImportValidationError: If the stored payload is malformed
        """
        with self.lock:
            if self.storage is None:
                self._loaded = True
                return len(self.store)

            raw = self.storage.load(self.storage_key)
            if raw is None:
                logger.debug("No stored history under %s", self.storage_key)
                self.store.clear()
            else:
                self.store.replace_all(parse_snapshot_history(raw))

            self._loaded = True
            self._recompute()
            logger.info("Loaded %d snapshots", len(self.store))
            return len(self.store)

    def save(self) -> None:
        """Write the snapshot list to storage."""
        with self.lock:
            self._write(self.store)

    def _write(self, store: SnapshotStore) -> None:
        if self.storage is None:
            return
        payload = json.dumps([s.to_dict() for s in store]).encode("utf-8")
        self.storage.save(self.storage_key, payload)
        logger.debug("Saved %d snapshots under %s", len(store), self.storage_key)

    def _ensure_loaded(self) -> None:
        # Stored snapshots must be merged in before the first write replaces them
        if not self._loaded:
            self.load()

    def _commit(self, candidate: SnapshotStore) -> None:
        """Persist ``candidate`` and only then make it the current history."""
        self._write(candidate)
        self.store = candidate
        self._recompute()

    # =========================================================================
    # Mutations
    # =========================================================================

    def _recompute(self) -> None:
        snapshots = self.store.snapshots
        self.metrics = calculate_performance_metrics(
            snapshots,
            risk_free_rate=self.settings.RISK_FREE_RATE,
            trading_days=self.settings.TRADING_DAYS_PER_YEAR,
            days_per_year=self.settings.DAYS_PER_YEAR,
        )
        self.drawdowns = calculate_drawdowns(snapshots)
        event_logger.log_metrics_computed(len(snapshots), len(self.drawdowns))

    def add_snapshot(self, snapshot: Snapshot) -> Snapshot:
        """
        Add an already-built snapshot.

        Raises:
            DuplicateSnapshotError: If the date already has a snapshot
            StorageError: If the write fails; history is left unchanged
        """
        with self.lock:
            self._ensure_loaded()
            candidate = SnapshotStore(self.store)
            try:
                candidate.add(snapshot)
            except DuplicateSnapshotError as e:
                event_logger.log_snapshot_rejected(snapshot.date, e.error_code.user_message)
                raise

            self._commit(candidate)
        event_logger.log_snapshot_taken(
            snapshot.date, snapshot.total_value, snapshot.position_count
        )
        return snapshot

    def take_snapshot(
        self,
        holdings: Holdings,
        benchmark_value: Optional[float] = None,
    ) -> Snapshot:
        """
        Capture the current holdings as today's snapshot.

        Raises:
            SnapshotError: If holdings are empty
            DuplicateSnapshotError: If today already has a snapshot
            StorageError: If the write fails; history is left unchanged
        """
        with self.lock:
            now = self.clock()
            if len(holdings) == 0:
                event_logger.log_snapshot_rejected(self.today(), "no positions")
                raise SnapshotError(ErrorCodes.SNAPSHOT_EMPTY_PORTFOLIO)

            return self.add_snapshot(create_snapshot(holdings, now, benchmark_value))

    def delete_snapshot(self, snapshot_id: str) -> Optional[Snapshot]:
        """Delete a snapshot by id; returns it, or None if unknown."""
        with self.lock:
            self._ensure_loaded()
            candidate = SnapshotStore(self.store)
            removed = candidate.delete(snapshot_id)
            if removed is None:
                return None
            self._commit(candidate)

        event_logger.log_snapshot_deleted(removed.id, removed.date)
        return removed

    def clear_history(self) -> None:
        """Remove every snapshot, in memory and in storage."""
        with self.lock:
            self._commit(SnapshotStore())
            self._loaded = True
        logger.info("History cleared")

    # =========================================================================
    # Queries
    # =========================================================================

    def should_take_snapshot(self, holdings: Holdings) -> bool:
        """True when there are positions and today has no snapshot yet."""
        with self.lock:
            self._ensure_loaded()
            return len(holdings) > 0 and not self.store.has_snapshot_for(self.today())

    def last_snapshot_date(self) -> Optional[str]:
        return self.store.last_snapshot_date()

    def get_snapshots_by_date_range(self, start: TimeLike, end: TimeLike) -> List[Snapshot]:
        """
        Snapshots with timestamp in [start, end], inclusive.

        Raises:
            ValidationError: If start is after end
        """
        start_ms, end_ms = to_epoch_ms(start), to_epoch_ms(end)
        validate_date_range(start_ms, end_ms)
        return self.store.query(start_ms, end_ms)

    def get_snapshots_for_timeframe(self, timeframe: Union[Timeframe, str]) -> List[Snapshot]:
        return self.store.for_timeframe(timeframe, self.clock())

    def metrics_for_timeframe(self, timeframe: Union[Timeframe, str]) -> PerformanceMetrics:
        """Performance metrics restricted to a named window."""
        return calculate_performance_metrics(
            self.get_snapshots_for_timeframe(timeframe),
            risk_free_rate=self.settings.RISK_FREE_RATE,
            trading_days=self.settings.TRADING_DAYS_PER_YEAR,
            days_per_year=self.settings.DAYS_PER_YEAR,
        )

    def drawdowns_for_timeframe(self, timeframe: Union[Timeframe, str]) -> List[DrawdownPeriod]:
        return calculate_drawdowns(self.get_snapshots_for_timeframe(timeframe))

    def compare_to_benchmark(
        self, timeframe: Union[Timeframe, str] = Timeframe.ALL
    ) -> PerformanceComparison:
        return compare_to_benchmark(
            self.get_snapshots_for_timeframe(timeframe),
            risk_free_rate=self.settings.RISK_FREE_RATE,
        )
