"""
Snapshot Store

Ordered, date-deduplicated sequence of portfolio snapshots. At most one
snapshot exists per calendar date and the sequence is kept sorted ascending
by timestamp.
"""

import logging
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Union

import pandas as pd

from ..core.errors import DuplicateSnapshotError
from .snapshot import Snapshot
from .timeframes import TimeLike, Timeframe, to_epoch_ms, window_bounds

logger = logging.getLogger(__name__)


class SnapshotStore:
    """In-memory snapshot sequence."""

    def __init__(self, snapshots: Optional[Iterable[Snapshot]] = None):
        self._snapshots: List[Snapshot] = []
        if snapshots is not None:
            self.replace_all(snapshots)

    def __len__(self) -> int:
        return len(self._snapshots)

    def __iter__(self) -> Iterator[Snapshot]:
        return iter(self._snapshots)

    def __bool__(self) -> bool:
        return bool(self._snapshots)

    @property
    def snapshots(self) -> List[Snapshot]:
        """Copy of the ordered sequence."""
        return list(self._snapshots)

    def add(self, snapshot: Snapshot) -> Snapshot:
        """
        Insert a snapshot.

        Raises:
            DuplicateSnapshotError: If a snapshot already exists for the
                same date; the store is left unchanged
        """
        if self.has_snapshot_for(snapshot.date):
            raise DuplicateSnapshotError(snapshot.date)

        self._snapshots.append(snapshot)
        self._snapshots.sort(key=lambda s: s.timestamp)
        logger.debug("Added snapshot %s for %s", snapshot.id, snapshot.date)
        return snapshot

    def delete(self, snapshot_id: str) -> Optional[Snapshot]:
        """Remove a snapshot by id. Returns the removed snapshot, or None if unknown."""
        for i, s in enumerate(self._snapshots):
            if s.id == snapshot_id:
                return self._snapshots.pop(i)
        logger.warning("No snapshot with id %s", snapshot_id)
        return None

    def get(self, snapshot_id: str) -> Optional[Snapshot]:
        for s in self._snapshots:
            if s.id == snapshot_id:
                return s
        return None

    def get_by_date(self, snapshot_date: str) -> Optional[Snapshot]:
        for s in self._snapshots:
            if s.date == snapshot_date:
                return s
        return None

    def has_snapshot_for(self, snapshot_date: str) -> bool:
        return any(s.date == snapshot_date for s in self._snapshots)

    def last_snapshot_date(self) -> Optional[str]:
        return self._snapshots[-1].date if self._snapshots else None

    def query(self, start: TimeLike, end: TimeLike) -> List[Snapshot]:
        """
        Get snapshots whose timestamp falls in [start, end], inclusive.

        Args:
            start: Window start (epoch ms, datetime, date or ISO string)
            end: Window end

        Returns:
            Matching snapshots in ascending order
        """
        start_ms = to_epoch_ms(start)
        end_ms = to_epoch_ms(end)
        return [s for s in self._snapshots if start_ms <= s.timestamp <= end_ms]

    def for_timeframe(self, timeframe: Union[Timeframe, str], now: datetime) -> List[Snapshot]:
        """
        Get snapshots inside a named window ending at ``now``.

        ``Timeframe.ALL`` returns the whole sequence unfiltered.
        """
        bounds = window_bounds(timeframe, now)
        if bounds is None:
            return self.snapshots
        logger.debug("Timeframe %s window: %s - %s", Timeframe(timeframe).value, *bounds)
        return self.query(*bounds)

    def replace_all(self, snapshots: Iterable[Snapshot]) -> None:
        """
        Replace the whole sequence, e.g. when loading stored history.

        Raises:
            DuplicateSnapshotError: If two snapshots share a date; the
                store is left unchanged
        """
        incoming = list(snapshots)
        seen = set()
        for s in incoming:
            if s.date in seen:
                raise DuplicateSnapshotError(s.date)
            seen.add(s.date)

        self._snapshots = sorted(incoming, key=lambda s: s.timestamp)

    def clear(self) -> None:
        self._snapshots = []

    def to_dataframe(self) -> pd.DataFrame:
        """Snapshot totals indexed by date."""
        if not self._snapshots:
            return pd.DataFrame()

        df = pd.DataFrame(
            [
                {
                    "date": s.date,
                    "timestamp": s.timestamp,
                    "total_value": s.total_value,
                    "total_gain_loss": s.total_gain_loss,
                    "total_gain_loss_percent": s.total_gain_loss_percent,
                    "positions": s.position_count,
                }
                for s in self._snapshots
            ]
        )
        df["date"] = pd.to_datetime(df["date"])
        return df.set_index("date")
