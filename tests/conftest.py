"""
Shared test fixtures for Folio test suite.
"""

import os
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from apscheduler.jobstores.base import ConflictingIdError
from apscheduler.triggers.date import DateTrigger

from folio.config.settings import clear_settings_cache
from folio.history.snapshot import PositionSnapshot, Snapshot
from folio.history.timeframes import MS_PER_DAY, date_to_epoch_ms
from folio.persistence.storage import InMemoryStorage
from folio.portfolio.position import Holdings, Position

HALF_DAY_MS = MS_PER_DAY // 2


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Run every test against default settings."""
    for key in list(os.environ):
        if key.startswith("FOLIO_"):
            monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def fixed_now():
    """Reference time: 2024-06-15 12:00 UTC."""
    return datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now):
    return lambda: fixed_now


@pytest.fixture
def make_snapshot():
    """Factory for snapshots taken at noon UTC on a given date."""

    def _make(
        snapshot_date,
        total_value,
        total_gain_loss=0.0,
        total_gain_loss_percent=0.0,
        benchmark_value=None,
        positions=(),
        timestamp=None,
    ):
        ts = timestamp if timestamp is not None else date_to_epoch_ms(snapshot_date) + HALF_DAY_MS
        return Snapshot(
            id=f"snapshot_{ts}",
            date=snapshot_date,
            timestamp=ts,
            total_value=total_value,
            total_gain_loss=total_gain_loss,
            total_gain_loss_percent=total_gain_loss_percent,
            position_snapshots=tuple(positions),
            benchmark_value=benchmark_value,
        )

    return _make


@pytest.fixture
def series(make_snapshot):
    """Factory for consecutive daily snapshots starting 2024-01-01."""

    def _series(values, start_day=1):
        return [
            make_snapshot(f"2024-01-{start_day + i:02d}", value)
            for i, value in enumerate(values)
        ]

    return _series


@pytest.fixture
def drawdown_series(series):
    """Peak 120, trough 90, recovery to 130."""
    return series([100.0, 120.0, 90.0, 130.0])


@pytest.fixture
def sample_positions():
    return [
        Position(id=1, ticker="AAPL", cost_basis=150.0, current_price=165.0, quantity=10),
        Position(id=2, ticker="MSFT", cost_basis=300.0, current_price=270.0, quantity=5),
        Position(id=3, ticker="XOM", cost_basis=100.0, current_price=110.0, quantity=20),
        Position(id=4, ticker="ZZZZ", cost_basis=50.0, current_price=50.0, quantity=10),
    ]


@pytest.fixture
def sample_holdings(sample_positions):
    return Holdings(positions=list(sample_positions))


@pytest.fixture
def equal_weight_positions():
    """Four positions worth 1000 each."""
    return [
        Position(id=i + 1, ticker=t, cost_basis=100.0, current_price=100.0, quantity=10)
        for i, t in enumerate(["AAPL", "JPM", "XOM", "KO"])
    ]


@pytest.fixture
def position_snapshot():
    return PositionSnapshot(
        stock_id=1,
        ticker="AAPL",
        quantity=10,
        price=165.0,
        value=1650.0,
        gain_loss=150.0,
        gain_loss_percent=10.0,
        buy_price=150.0,
    )


@pytest.fixture
def memory_storage():
    return InMemoryStorage()


class RecordingScheduler:
    """Stand-in for an APScheduler scheduler; jobs run only when fired."""

    def __init__(self):
        self.jobs = {}
        self.added = []
        self.running = False
        self.shut_down = False

    def add_job(self, func, trigger=None, id=None, replace_existing=False, **kwargs):
        if id in self.jobs and not replace_existing:
            raise ConflictingIdError(id)
        job = SimpleNamespace(func=func, trigger=trigger, id=id, kwargs=kwargs)
        self.jobs[id] = job
        self.added.append(job)
        return job

    def start(self):
        self.running = True

    def shutdown(self, wait=True):
        self.running = False
        self.shut_down = True
        self.jobs.clear()

    def fire(self, job_id):
        job = self.jobs[job_id]
        # One-shot jobs are dropped once they have run
        if isinstance(job.trigger, DateTrigger):
            del self.jobs[job_id]
        return job.func()


@pytest.fixture
def recording_scheduler():
    return RecordingScheduler()
