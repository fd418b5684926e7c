"""Tests for history exports and positions/history imports."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from folio.history.performance import calculate_performance_metrics
from folio.history.timeframes import Timeframe
from folio.io.exporters import (
    NO_SNAPSHOT_DATA,
    ExportFormat,
    ExportOptions,
    export_filename,
    export_history,
    export_positions,
    export_summary,
    render_tabular,
)
from folio.io.importers import (
    import_positions,
    parse_snapshot_history,
    validate_positions_import,
)
from folio.validation.errors import ImportValidationError, format_location


@pytest.fixture
def history_snapshots(make_snapshot, position_snapshot):
    return [
        make_snapshot("2024-06-01", 1000.0, 0.0, 0.0, positions=[position_snapshot]),
        make_snapshot("2024-06-12", 1100.0, 100.0, 10.0, positions=[position_snapshot]),
        make_snapshot("2024-06-15", 1050.0, 50.0, 5.0),
    ]


def _positions_payload(*stocks, **extra):
    data = {"version": "1.0", "exportDate": "2024-06-15T12:00:00+00:00", "stocks": list(stocks)}
    data.update(extra)
    return json.dumps(data)


def _stock(ticker="AAPL", buy=150.0, current=165.0, quantity=10, **extra):
    data = {"ticker": ticker, "buyPrice": buy, "currentPrice": current, "quantity": quantity}
    data.update(extra)
    return data


# =============================================================================
# History Export
# =============================================================================


class TestExportHistory:
    def test_json_export(self, history_snapshots, fixed_now):
        metrics = calculate_performance_metrics(history_snapshots)
        result = export_history(history_snapshots, metrics, ExportOptions(), now=fixed_now)

        assert result.filename == "portfolio-history-2024-06-15.json"
        assert result.mime_type == "application/json"

        data = json.loads(result.content)
        assert data["exportDate"].startswith("2024-06-15T12:00:00")
        assert data["timeframe"] == "all"
        assert data["portfolio"] == {
            "totalSnapshots": 3,
            "dateRange": {"start": "2024-06-01", "end": "2024-06-15"},
        }
        assert len(data["snapshots"]) == 3
        assert data["metrics"]["totalReturn"] == pytest.approx(50.0)
        assert len(data["chartData"]) == 3

    def test_json_is_pretty_printed(self, history_snapshots, fixed_now):
        content = export_history(history_snapshots, now=fixed_now).content
        assert content.startswith("{\n  ")

    def test_json_snapshots_keep_positions(self, history_snapshots, fixed_now):
        data = json.loads(export_history(history_snapshots, now=fixed_now).content)
        assert data["snapshots"][0]["stockSnapshots"][0]["ticker"] == "AAPL"

    def test_chart_data_follows_timeframe(self, history_snapshots, fixed_now):
        options = ExportOptions(timeframe=Timeframe.ONE_WEEK)
        data = json.loads(export_history(history_snapshots, options=options, now=fixed_now).content)
        assert [s["date"] for s in data["chartData"]] == ["2024-06-12", "2024-06-15"]
        assert len(data["snapshots"]) == 3

    def test_sections_can_be_left_out(self, history_snapshots, fixed_now):
        options = ExportOptions(include_snapshots=False, include_metrics=False, include_chart_data=False)
        metrics = calculate_performance_metrics(history_snapshots)
        data = json.loads(export_history(history_snapshots, metrics, options, now=fixed_now).content)
        assert set(data.keys()) == {"exportDate", "timeframe", "portfolio"}

    def test_csv_export(self, history_snapshots, fixed_now):
        result = export_history(history_snapshots, options=ExportOptions(format="csv"), now=fixed_now)
        lines = result.content.split("\n")
        assert result.filename == "portfolio-history-2024-06-15.csv"
        assert result.mime_type == "text/csv"
        assert lines[0] == "Date,Total Value,Total P&L,P&L %,Positions"
        assert lines[1] == "2024-06-01,1000.0,0.0,0.0,1"
        assert lines[3] == "2024-06-15,1050.0,50.0,5.0,0"
        assert len(lines) == 4

    def test_excel_export_is_tab_separated(self, history_snapshots, fixed_now):
        result = export_history(
            history_snapshots, options=ExportOptions(format=ExportFormat.EXCEL), now=fixed_now
        )
        assert result.filename.endswith(".xlsx")
        assert result.mime_type == "application/vnd.ms-excel"
        assert result.content.split("\n")[0] == "Date\tTotal Value\tTotal P&L\tP&L %\tPositions"

    def test_tabular_without_snapshots(self, history_snapshots, fixed_now):
        options = ExportOptions(format="csv", include_snapshots=False)
        assert export_history(history_snapshots, options=options, now=fixed_now).content == NO_SNAPSHOT_DATA

    def test_tabular_empty_history_is_header_only(self):
        assert render_tabular([]) == "Date,Total Value,Total P&L,P&L %,Positions"

    def test_empty_history_json(self, fixed_now):
        data = json.loads(export_history([], now=fixed_now).content)
        assert data["portfolio"]["dateRange"] == {"start": None, "end": None}

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            ExportOptions(format="pdf")

    def test_filename_uses_utc_date(self):
        late = datetime(2024, 6, 15, 22, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert export_filename("csv", late) == "portfolio-history-2024-06-16.csv"

    def test_export_logged(self, history_snapshots, fixed_now, caplog):
        caplog.set_level("INFO", logger="folio.events")
        export_history(history_snapshots, options=ExportOptions(format="csv"), now=fixed_now)
        assert "Exported 3 snapshots as csv" in caplog.text

    def test_summary(self, history_snapshots, fixed_now):
        summary = export_summary(
            history_snapshots,
            calculate_performance_metrics(history_snapshots),
            ExportOptions(timeframe="1w"),
            fixed_now,
        )
        assert summary["snapshots"] == 3
        assert summary["metrics"] == 1
        assert summary["chartData"] == 2
        assert summary["estimatedSize"].endswith(" KB")


# =============================================================================
# Positions Export / Import
# =============================================================================


class TestPositionsExport:
    def test_export_document(self, sample_holdings, fixed_now):
        data = export_positions(sample_holdings, now=fixed_now)
        assert data["version"] == "1.0"
        assert data["metadata"] == {
            "totalValue": pytest.approx(5700.0),
            "totalPositions": 4,
            "totalProfitLoss": pytest.approx(200.0),
        }
        assert data["stocks"][0] == {
            "id": 1,
            "ticker": "AAPL",
            "buyPrice": 150.0,
            "currentPrice": 165.0,
            "quantity": 10,
        }

    def test_export_then_import(self, sample_holdings, fixed_now):
        payload = json.dumps(export_positions(sample_holdings, now=fixed_now))
        restored = import_positions(payload)
        assert [(p.id, p.ticker, p.quantity) for p in restored] == [
            (p.id, p.ticker, p.quantity) for p in sample_holdings
        ]
        assert restored.total_value == pytest.approx(sample_holdings.total_value)


class TestPositionsImport:
    def test_valid_file(self):
        holdings = import_positions(_positions_payload(_stock(), _stock("msft", 300.0, 310.0, 2)))
        assert [p.ticker for p in holdings] == ["AAPL", "MSFT"]
        assert [p.id for p in holdings] == [1, 2]

    def test_explicit_ids_kept(self):
        holdings = import_positions(_positions_payload(_stock(id=42)))
        assert holdings.positions[0].id == 42

    def test_accepts_decoded_dict(self):
        holdings = import_positions(json.loads(_positions_payload(_stock())))
        assert len(holdings) == 1

    def test_field_error_paths(self):
        payload = _positions_payload(_stock(), _stock("MSFT", buy=-5.0))
        with pytest.raises(ImportValidationError) as exc_info:
            import_positions(payload)
        fields = [e.field for e in exc_info.value.errors]
        assert fields == ["stocks[1].buyPrice"]
        assert exc_info.value.source == "positions"

    def test_every_invalid_field_reported(self):
        payload = _positions_payload(
            _stock(quantity=2.5),
            _stock("", current=0),
        )
        result = validate_positions_import(payload)
        assert not result.is_valid
        fields = {e.field for e in result.errors}
        assert {"stocks[0].quantity", "stocks[1].ticker", "stocks[1].currentPrice"} <= fields

    def test_missing_required_field(self):
        stock = _stock()
        del stock["currentPrice"]
        result = validate_positions_import(_positions_payload(stock))
        assert [e.field for e in result.errors] == ["stocks[0].currentPrice"]

    def test_missing_stocks_array(self):
        result = validate_positions_import(json.dumps({"version": "1.0"}))
        assert not result.is_valid
        assert result.errors[0].field == "stocks"

    def test_invalid_json(self):
        result = validate_positions_import("{oops")
        assert not result.is_valid
        assert result.errors[0].field == "payload"
        assert result.errors[0].message.startswith("Invalid JSON")

    def test_invalid_json_raises_on_import(self):
        with pytest.raises(ImportValidationError):
            import_positions(b"not json")

    def test_reserved_ticker(self):
        result = validate_positions_import(_positions_payload(_stock("null")))
        assert result.errors[0].field == "stocks[0].ticker"

    def test_duplicate_tickers_merge_with_warning(self):
        payload = _positions_payload(_stock(buy=100.0, quantity=10), _stock("aapl", buy=130.0, quantity=20))
        result = validate_positions_import(payload)
        assert result.is_valid
        assert result.warnings == ["Duplicate ticker AAPL will be merged"]

        holdings = import_positions(payload)
        assert len(holdings) == 1
        assert holdings.positions[0].quantity == 30
        assert holdings.positions[0].cost_basis == pytest.approx(120.0)

    def test_unknown_version_warns(self):
        result = validate_positions_import(_positions_payload(_stock(), version="2.0"))
        assert result.is_valid
        assert "Unknown export version 2.0" in result.warnings[0]

    def test_empty_file_warns(self):
        result = validate_positions_import(_positions_payload())
        assert result.is_valid
        assert result.warnings == ["File contains no positions"]

    def test_rejection_is_logged(self, caplog):
        with pytest.raises(ImportValidationError):
            import_positions(_positions_payload(_stock(quantity=0)))
        assert "Import positions: 0 accepted, 1 field errors" in caplog.text

    def test_error_to_dict(self):
        with pytest.raises(ImportValidationError) as exc_info:
            import_positions(_positions_payload(_stock(quantity=-1)))
        data = exc_info.value.to_dict()
        assert data["code"] == "VALIDATION_4005"
        assert data["error_count"] == 1
        assert data["errors"][0]["field"] == "stocks[0].quantity"

    def test_result_to_dict(self):
        data = validate_positions_import(_positions_payload(_stock())).to_dict()
        assert data == {"isValid": True, "errors": [], "warnings": []}

    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    def test_non_finite_price_rejected(self, value):
        payload = _positions_payload(_stock(current=value))
        result = validate_positions_import(payload)
        assert not result.is_valid
        assert [e.field for e in result.errors] == ["stocks[0].currentPrice"]
        with pytest.raises(ImportValidationError):
            import_positions(payload)

    def test_id_shared_by_two_tickers_rejected(self):
        payload = _positions_payload(_stock(id=1), _stock("KO", 60.0, 62.0, 5, id=1))
        result = validate_positions_import(payload)
        assert not result.is_valid
        assert [e.field for e in result.errors] == ["stocks[1].id"]
        with pytest.raises(ImportValidationError):
            import_positions(payload)

    def test_default_id_clash_rejected(self):
        payload = _positions_payload(_stock(), _stock("KO", 60.0, 62.0, 5, id=1))
        result = validate_positions_import(payload)
        assert [e.field for e in result.errors] == ["stocks[1].id"]


# =============================================================================
# Snapshot History Import
# =============================================================================


class TestParseSnapshotHistory:
    def test_list_payload_sorted(self, history_snapshots):
        payload = json.dumps([s.to_dict() for s in reversed(history_snapshots)])
        assert parse_snapshot_history(payload) == history_snapshots

    def test_history_export_payload(self, history_snapshots, fixed_now):
        exported = export_history(history_snapshots, now=fixed_now).content
        assert parse_snapshot_history(exported) == history_snapshots

    def test_export_without_snapshots_rejected(self):
        with pytest.raises(ImportValidationError) as exc_info:
            parse_snapshot_history(json.dumps({"exportDate": "x"}))
        assert exc_info.value.errors[0].field == "snapshots"

    def test_non_list_rejected(self):
        with pytest.raises(ImportValidationError):
            parse_snapshot_history("42")

    def test_bad_date_rejected(self, make_snapshot):
        record = make_snapshot("2024-01-01", 1.0).to_dict()
        record["date"] = "2024-02-30"
        with pytest.raises(ImportValidationError) as exc_info:
            parse_snapshot_history([record])
        assert exc_info.value.errors[0].field == "snapshots[0].date"

    def test_empty_list(self):
        assert parse_snapshot_history("[]") == []

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_value_rejected(self, make_snapshot, value):
        record = make_snapshot("2024-01-01", 1.0).to_dict()
        record["totalValue"] = value
        with pytest.raises(ImportValidationError) as exc_info:
            parse_snapshot_history(json.dumps([record]))
        assert exc_info.value.errors[0].field == "snapshots[0].totalValue"


class TestFormatLocation:
    def test_paths(self):
        assert format_location(("stocks", 2, "buyPrice")) == "stocks[2].buyPrice"
        assert format_location(()) == "payload"
        assert format_location(("quantity",), prefix="stocks[0]") == "stocks[0].quantity"
