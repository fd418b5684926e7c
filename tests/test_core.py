"""Tests for the Folio facade."""

import json

import pytest

from folio import Folio
from folio.config.logging import clear_portfolio_context, get_portfolio_id
from folio.core.errors import SnapshotError, ValidationError
from folio.history.scheduler import DEBOUNCE_JOB_ID
from folio.io.exporters import ExportOptions
from folio.persistence.storage import InMemoryStorage
from folio.validation.errors import ImportValidationError


@pytest.fixture
def folio(clock, memory_storage):
    return Folio(storage=memory_storage, clock=clock)


@pytest.fixture
def filled(folio):
    folio.add_position("AAPL", 150.0, 165.0, 10)
    folio.add_position("msft", 300.0, 270.0, 5)
    return folio


class TestFolioInit:
    def test_health_check(self, folio):
        health = folio.health_check()
        assert health["core"] is True
        assert health["storage"] is True
        assert health["scheduler"] is False
        assert health["positions"] == 0
        assert health["lastSnapshotDate"] is None
        assert health["status"] == "operational"

    def test_config_file(self, tmp_path, memory_storage, clock):
        config = tmp_path / "folio.yaml"
        config.write_text("risk_free_rate: 0.0\nhistory_storage_key: bob\n")
        folio = Folio(config_path=config, storage=memory_storage, clock=clock)
        assert folio.settings.RISK_FREE_RATE == 0.0
        assert folio.history.storage_key == "bob"

    def test_portfolio_id_context(self, memory_storage, clock):
        try:
            Folio(storage=memory_storage, clock=clock, portfolio_id="alice")
            assert get_portfolio_id() == "alice"
        finally:
            clear_portfolio_context()

    def test_default_file_storage(self, tmp_path, monkeypatch, clock):
        monkeypatch.setenv("FOLIO_STORAGE_DIR", str(tmp_path))
        folio = Folio(clock=clock)
        folio.add_position("KO", 60.0, 62.0, 3)
        folio.take_snapshot()
        assert (tmp_path / "portfolioHistory.json").exists()


class TestFolioPositions:
    def test_add_position(self, filled):
        assert [p.ticker for p in filled.holdings] == ["AAPL", "MSFT"]
        assert [p.id for p in filled.holdings] == [1, 2]

    def test_add_same_ticker_merges(self, filled):
        merged = filled.add_position("AAPL", 180.0, 170.0, 10)
        assert len(filled.holdings) == 2
        assert merged.quantity == 20
        assert merged.cost_basis == pytest.approx(165.0)

    @pytest.mark.parametrize(
        "args",
        [
            ("", 1.0, 1.0, 1),
            ("AAPL", 0.0, 1.0, 1),
            ("AAPL", 1.0, -1.0, 1),
            ("AAPL", 1.0, 1.0, 0),
        ],
    )
    def test_invalid_position_rejected(self, folio, args):
        with pytest.raises(ValidationError):
            folio.add_position(*args)
        assert len(folio.holdings) == 0

    def test_remove_and_update(self, filled):
        filled.update_prices({"AAPL": 200.0})
        assert filled.holdings.get_position(1).current_price == 200.0
        assert filled.remove_position(2).ticker == "MSFT"
        assert filled.remove_position(2) is None

    def test_export_import_positions(self, filled, folio):
        exported = filled.export_positions()
        assert exported["metadata"]["totalPositions"] == 2

        other = Folio(storage=InMemoryStorage(), clock=folio.clock)
        other.import_positions(json.dumps(exported))
        assert [p.ticker for p in other.holdings] == ["AAPL", "MSFT"]

    def test_invalid_import_keeps_holdings(self, filled):
        payload = {"stocks": [{"ticker": "KO", "buyPrice": 60, "currentPrice": 61, "quantity": "many"}]}
        with pytest.raises(ImportValidationError):
            filled.import_positions(payload)
        assert [p.ticker for p in filled.holdings] == ["AAPL", "MSFT"]

    def test_changes_restart_debounce_while_running(self, filled, recording_scheduler):
        filled.scheduler.scheduler_factory = lambda: recording_scheduler
        filled.start_auto_snapshots()
        filled.add_position("KO", 60.0, 62.0, 3)
        filled.update_prices({"KO": 63.0})

        debounces = [j for j in recording_scheduler.added if j.id == DEBOUNCE_JOB_ID]
        assert len(debounces) == 2
        assert recording_scheduler.jobs[DEBOUNCE_JOB_ID] is debounces[1]

        snapshot = recording_scheduler.fire(DEBOUNCE_JOB_ID)
        assert snapshot.position_count == 3
        assert DEBOUNCE_JOB_ID not in recording_scheduler.jobs

        filled.stop_auto_snapshots()
        assert recording_scheduler.shut_down is True
        assert recording_scheduler.jobs == {}

    def test_no_debounce_when_stopped(self, filled, recording_scheduler):
        filled.scheduler.scheduler_factory = lambda: recording_scheduler
        filled.add_position("KO", 60.0, 62.0, 3)
        assert recording_scheduler.added == []
        assert filled.health_check()["scheduler"] is False


class TestFolioHistory:
    def test_take_snapshot(self, filled, memory_storage):
        snapshot = filled.take_snapshot(benchmark_value=4800.0)
        assert snapshot.date == "2024-06-15"
        assert filled.health_check()["lastSnapshotDate"] == "2024-06-15"
        assert memory_storage.load("portfolioHistory") is not None

    def test_empty_portfolio_snapshot(self, folio):
        with pytest.raises(SnapshotError):
            folio.take_snapshot()

    def test_load_history(self, filled, memory_storage, clock):
        filled.take_snapshot()
        other = Folio(storage=memory_storage, clock=clock)
        assert other.load_history() == 1

    def test_stored_history_loaded_on_init(self, memory_storage, clock, make_snapshot):
        stored = [
            make_snapshot("2024-06-12", 1000.0),
            make_snapshot("2024-06-13", 1010.0),
            make_snapshot("2024-06-14", 1020.0),
        ]
        memory_storage.save(
            "portfolioHistory", json.dumps([s.to_dict() for s in stored]).encode("utf-8")
        )

        folio = Folio(storage=memory_storage, clock=clock)
        assert folio.health_check()["lastSnapshotDate"] == "2024-06-14"

        folio.add_position("KO", 60.0, 62.0, 3)
        folio.take_snapshot()

        saved = json.loads(memory_storage.load("portfolioHistory"))
        assert [s["date"] for s in saved] == [
            "2024-06-12",
            "2024-06-13",
            "2024-06-14",
            "2024-06-15",
        ]

    def test_export_history(self, filled):
        filled.take_snapshot()
        result = filled.export_history(ExportOptions(format="csv"))
        assert result.filename == "portfolio-history-2024-06-15.csv"
        assert result.content.split("\n")[1].startswith("2024-06-15,")

    def test_performance_report(self, filled):
        filled.take_snapshot()
        report = filled.performance_report("1m")
        assert report["timeframe"] == "1m"
        assert report["metrics"]["totalReturn"] == 0.0
        assert report["drawdowns"] == []
        assert "portfolio" in report["comparison"]


class TestFolioAnalytics:
    def test_summarize(self, filled):
        summary = filled.summarize()
        assert summary.total_stocks == 2
        assert summary.total_sectors == 1
        assert summary.analytics.risk.volatility == pytest.approx(10.0)
        assert summary.top_performers[0].ticker == "AAPL"
