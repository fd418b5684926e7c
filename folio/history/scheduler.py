"""
Snapshot Scheduler

Automatic daily snapshot capture on an APScheduler background scheduler:
a one-shot job after the position set settles and a cron job shortly after
local midnight. Jobs run on the scheduler's thread and hold the history
lock while they read holdings and write the snapshot.
"""

import logging
from datetime import datetime, timedelta, tzinfo
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from ..config.settings import FolioSettings, get_settings
from ..core.errors import FolioError
from ..portfolio.position import Holdings
from .history_manager import PortfolioHistory
from .snapshot import Snapshot

logger = logging.getLogger(__name__)

DAILY_CHECK_JOB_ID = "folio-daily-snapshot-check"
DEBOUNCE_JOB_ID = "folio-snapshot-debounce"

# A check that fires late (sleep, busy process) still runs within this window
DAILY_MISFIRE_GRACE_SECONDS = 6 * 60 * 60


class SnapshotScheduler:
    """
    Takes the daily snapshot when it is due.

    Args:
        history: History that receives the snapshots
        holdings_provider: Returns the current position set
        settings: Debounce and daily check time (default: global settings)
        scheduler_factory: Builds the APScheduler scheduler on ``start``;
            ``BackgroundScheduler`` by default
        local_clock: Local wall-clock time the debounce is measured from
        timezone: Zone for the daily check time (default: the local zone)
    """

    def __init__(
        self,
        history: PortfolioHistory,
        holdings_provider: Callable[[], Holdings],
        settings: Optional[FolioSettings] = None,
        scheduler_factory: Callable[[], BackgroundScheduler] = BackgroundScheduler,
        local_clock: Callable[[], datetime] = datetime.now,
        timezone: Optional[tzinfo] = None,
    ):
        self.history = history
        self.holdings_provider = holdings_provider
        self.settings = settings or get_settings()
        self.scheduler_factory = scheduler_factory
        self.local_clock = local_clock
        self.timezone = timezone
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    def daily_trigger(self) -> CronTrigger:
        return CronTrigger(
            hour=self.settings.DAILY_CHECK_HOUR,
            minute=self.settings.DAILY_CHECK_MINUTE,
            timezone=self.timezone,
        )

    def start(self) -> None:
        """Start the scheduler with the daily check job."""
        if self._scheduler is not None:
            return

        scheduler = self.scheduler_factory()
        scheduler.add_job(
            self.check_and_snapshot,
            trigger=self.daily_trigger(),
            id=DAILY_CHECK_JOB_ID,
            replace_existing=True,
            coalesce=True,
            misfire_grace_time=DAILY_MISFIRE_GRACE_SECONDS,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Daily snapshot check scheduled at %02d:%02d",
            self.settings.DAILY_CHECK_HOUR,
            self.settings.DAILY_CHECK_MINUTE,
        )

    def stop(self) -> None:
        """Shut the scheduler down, dropping any pending jobs."""
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Snapshot scheduler stopped")

    def notify_positions_changed(self) -> None:
        """
        Restart the debounce; the snapshot is taken once changes settle.

        Does nothing while the scheduler is stopped.
        """
        if self._scheduler is None:
            return
        delay = self.settings.SNAPSHOT_DEBOUNCE_SECONDS
        self._scheduler.add_job(
            self.check_and_snapshot,
            trigger=DateTrigger(
                run_date=self.local_clock() + timedelta(seconds=delay),
                timezone=self.timezone,
            ),
            id=DEBOUNCE_JOB_ID,
            replace_existing=True,
        )
        logger.debug("Snapshot debounce restarted (%.1fs)", delay)

    def check_and_snapshot(self) -> Optional[Snapshot]:
        """
        Take today's snapshot if it is due.

        Returns:
            The new snapshot, or None when not due or rejected
        """
        with self.history.lock:
            holdings = self.holdings_provider()
            try:
                if not self.history.should_take_snapshot(holdings):
                    return None
                return self.history.take_snapshot(holdings)
            except FolioError as e:
                e.log()
                return None
