"""
Unit tests for the ingestion package (transform.py, loader.py)

Covers forecast-period splitting, metric-code overlays, year syncing,
payload validation and reading analyst edits back from a grid.
"""

import json

import pytest
from pydantic import ValidationError

from stocksheet.services.grid import MemoryGrid
from stocksheet.services.ingestion import (
    StockSheetPayload,
    extract_input_values,
    extract_pe_values,
    extract_shares_per_quarter,
    extract_sheet_edits,
    load_payload_file,
    load_sheet_inputs,
    overlay_annual_metrics,
    overlay_quarterly_metrics,
    process_forecasts,
    sync_years_to_quarterly,
)
from stocksheet.services.modeling import build_stock_sheet
from stocksheet.services.modeling.types import CompanyType, QuarterlyColumnInfo


@pytest.fixture
def payload_dict():
    """Payload as produced by the frontend plus crawled metric codes."""
    return {
        "symbol": " fpt ",
        "tradingDate": "2024-06-28",
        "currentPrice": 100000,
        "outstandingShares": 1000000,
        "max52W": None,
        "min52W": 80000,
        "revenueGrowth": 0.15,
        "grossMargin": 0.3,
        "netProfitGrowth": 0.1,
        "annualData": {
            "netRevenue": {"2022": 1000.0},
            "netProfit": {"2022": 120.0},
        },
        "quarterlyData": {
            "netRevenue": {"2023": {"Q1": 300.0, "Q2": 310.0}},
        },
        "forecastYears": [2026],
        "forecastQuarters": ["2024_Q4"],
        "periods": [
            {"year": 2025, "quarter": 0, "is_forecast": True},
            {"year": 2024, "quarter": 3, "is_forecast": True, "source": "quarter"},
            {"year": 2023, "quarter": 2, "is_forecast": False},
        ],
        "metrics": {
            "REVENUE_NET": {"2023_Q3": 290.0, "2023_Q4": 300.0, "bad-key": 1.0},
            "UNKNOWN_CODE": {"2023_Q3": 1.0},
        },
        "yearlyMetrics": {
            "REVENUE_NET": {"2023": 1200.0},
            "PE": {"2023": "12.5"},
        },
        "peAssumptions": {"values": [9.0, 11.0]},
    }


def test_process_forecasts():
    """Stored periods split into forecast years and forecast quarters."""
    years, quarters = process_forecasts([
        {"year": 2025, "quarter": 0, "is_forecast": True},
        {"year": 2026, "quarter": 2, "is_forecast": True, "source": "year"},
        {"year": 2024, "quarter": 4, "is_forecast": True},
        {"year": 2023, "quarter": 1, "is_forecast": False},
        {"year": "bad", "quarter": 1, "is_forecast": True},
    ])
    assert years == frozenset({"2025", "2026"})
    assert quarters == frozenset({"2024_Q4"})


def test_overlay_quarterly_metrics_does_not_mutate_input():
    """Metric codes overlay quarterly data into a new mapping."""
    quarterly = {"netRevenue": {"2023": {"Q1": 100.0, "Q2": 110.0}}}
    metrics = {
        "REVENUE_NET": {"2023_Q2": 115.0, "2023_Q3": 120.0, "2023-Q4": 1.0, "2023_Q9": 1.0},
        "ROE": {"2023_Q1": "4.5"},
    }

    result = overlay_quarterly_metrics(metrics, quarterly, CompanyType.INDUSTRIAL)

    assert result["netRevenue"]["2023"] == {"Q1": 100.0, "Q2": 115.0, "Q3": 120.0}
    assert result["roe"]["2023"]["Q1"] == 4.5
    assert quarterly["netRevenue"]["2023"] == {"Q1": 100.0, "Q2": 110.0}


def test_overlay_uses_variant_code_map():
    """Metric codes map to different keys per company type."""
    metrics = {"EPS_BASIC": {"2023_Q1": 900.0}, "REVENUE_NET": {"2023_Q1": 10.0}}

    bank = overlay_quarterly_metrics(metrics, {}, CompanyType.BANK)
    industrial = overlay_quarterly_metrics(metrics, {}, CompanyType.INDUSTRIAL)

    assert bank == {"eps": {"2023": {"Q1": 900.0}}}
    assert industrial == {"netRevenue": {"2023": {"Q1": 10.0}}}


def test_overlay_annual_metrics():
    """Yearly metric codes overlay annual data; malformed keys are skipped."""
    annual = {"netRevenue": {"2022": 1000.0}}
    result = overlay_annual_metrics(
        {"REVENUE_NET": {"2023": 1200.0, "FY23": 1.0}, "PE": {"2023": None}},
        annual,
    )
    assert result["netRevenue"] == {"2022": 1000.0, "2023": 1200.0}
    assert result["pe"] == {}
    assert annual == {"netRevenue": {"2022": 1000.0}}


def test_sync_years_to_quarterly():
    """Annual-only years get empty quarters in every quarterly metric."""
    annual = {"netRevenue": {"2022": 1.0, "2023": 2.0}}
    quarterly = {"netRevenue": {"2023": {"Q1": 1.0}}, "netProfit": {}}

    result = sync_years_to_quarterly(annual, quarterly)

    assert result["netRevenue"]["2022"] == {"Q1": None, "Q2": None, "Q3": None, "Q4": None}
    assert result["netRevenue"]["2023"] == {"Q1": 1.0}
    assert "2022" in result["netProfit"]
    assert "2022" not in quarterly["netRevenue"]


def test_sync_years_is_noop_when_nothing_missing():
    """Quarterly data is returned as is when no year is missing."""
    quarterly = {"netRevenue": {"2023": {"Q1": 1.0}}}
    assert sync_years_to_quarterly({"netRevenue": {"2023": 4.0}}, quarterly) is quarterly


def test_payload_validation(payload_dict):
    """Symbol is normalised and null numbers become zero."""
    payload = StockSheetPayload.model_validate(payload_dict)
    assert payload.symbol == "FPT"
    assert payload.max52W == 0.0
    assert payload.forecastYears == ["2026"]


def test_payload_rejects_bad_shapes(payload_dict):
    """Non-numeric prices fail validation."""
    payload_dict["currentPrice"] = "not a number"
    with pytest.raises(ValidationError):
        StockSheetPayload.model_validate(payload_dict)


def test_load_sheet_inputs(payload_dict):
    """A full payload becomes a SheetInputs record with overlays applied."""
    inputs = load_sheet_inputs(payload_dict)

    assert inputs.symbol == "FPT"
    assert inputs.company_type == "industrial"
    assert inputs.forecast_years == frozenset({"2025", "2026"})
    assert inputs.forecast_quarters == frozenset({"2024_Q3", "2024_Q4"})
    assert inputs.annual_data["netRevenue"] == {"2022": 1000.0, "2023": 1200.0}
    assert inputs.annual_data["pe"] == {"2023": 12.5}
    assert inputs.quarterly_data["netRevenue"]["2023"] == {"Q1": 300.0, "Q2": 310.0, "Q3": 290.0, "Q4": 300.0}
    # 2022 exists only in the annual series
    assert inputs.quarterly_data["netRevenue"]["2022"] == {"Q1": None, "Q2": None, "Q3": None, "Q4": None}
    assert inputs.pe_assumptions == [9.0, 11.0]
    assert inputs.current_price == 100000.0


def test_load_sheet_inputs_resolves_company_type(payload_dict):
    """Company type comes from the hint or the ticker."""
    payload_dict["symbol"] = "ssi"
    assert load_sheet_inputs(payload_dict).company_type == "securities"
    assert load_sheet_inputs(payload_dict, company_type="bank").company_type == "bank"

    payload_dict["companyType"] = "insurance"
    with pytest.raises(ValueError):
        load_sheet_inputs(payload_dict)


def test_load_payload_file(tmp_path, payload_dict):
    """Payload files are read and validated."""
    path = tmp_path / "payload.json"
    path.write_text(json.dumps(payload_dict), encoding="utf-8")

    payload = load_payload_file(path)

    assert isinstance(payload, StockSheetPayload)
    assert payload.peAssumptions.values == [9.0, 11.0]


def test_extract_helpers_read_literals_only():
    """Edit extraction ignores formulas and non-numeric text."""
    grid = MemoryGrid()
    grid.set_value(30, 1, 1500.0)
    grid.set_formula(30, 2, "B31*2")
    grid.set_value(30, 3, "n/a")
    infos = [
        QuarterlyColumnInfo("2023", "Q1", 1, False),
        QuarterlyColumnInfo("2023", "Q2", 2, False),
        QuarterlyColumnInfo("2023", "Q3", 3, False),
    ]
    assert extract_shares_per_quarter(grid, 30, infos) == {"2023": {"Q1": 1500.0}}

    grid.set_value(50, 0, 8.0)
    grid.set_value(52, 0, "12")
    assert extract_pe_values(grid, 50, 5) == [8.0, 12.0]

    grid.set_value(4, 12, 25000)
    inputs = extract_input_values(grid, 3, 12)
    assert inputs["current_price"] == 25000.0
    assert inputs["revenue_growth"] == 0.0


def test_extract_sheet_edits_round_trip(industrial_inputs):
    """Edits read back from a built sheet match what was written."""
    grid = MemoryGrid()
    result = build_stock_sheet(grid, industrial_inputs, current_year=2024)
    layout = json.loads(json.dumps(result.to_layout_dict()))

    edits = extract_sheet_edits(grid, layout)

    assert edits["inputs"]["current_price"] == 100000.0
    assert edits["inputs"]["gross_margin"] == 0.3
    assert edits["shares_per_quarter"]["2024"]["Q3"] == 1000000.0
    assert edits["pe_assumptions"] == result.pe_scenarios


@pytest.mark.parametrize("field", ["currentPrice", "outstandingShares", "grossMargin"])
def test_payload_rejects_infinite_inputs(payload_dict, field):
    """Non-finite input-block values fail validation instead of reaching the sheet."""
    payload_dict[field] = float("inf")
    with pytest.raises(ValidationError):
        StockSheetPayload.model_validate(payload_dict)


def test_payload_rejects_infinite_saved_pe(payload_dict):
    """Saved P/E scenarios must be finite."""
    payload_dict["peAssumptions"] = {"values": [9.0, "Infinity"]}
    with pytest.raises(ValidationError):
        StockSheetPayload.model_validate(payload_dict)
