"""
Shared fixtures for the sheet-builder tests.

Default scenario: an industrial ticker with fully reported 2023 quarters,
no 2024 data and a pinned current year of 2024.
"""

import copy
from typing import Any, Dict

import pytest

from stocksheet.services.grid import MemoryGrid
from stocksheet.services.modeling.layouts import INDUSTRIAL_LAYOUT
from stocksheet.services.modeling.periods import PeriodClassifier
from stocksheet.services.modeling.types import InputCellReferences, SheetInputs

CURRENT_YEAR = 2024


@pytest.fixture
def grid() -> MemoryGrid:
    return MemoryGrid()


@pytest.fixture
def current_year() -> int:
    return CURRENT_YEAR


@pytest.fixture
def annual_data() -> Dict[str, Any]:
    """Annual MetricSeries with one reported year (2023)."""
    return {
        "netRevenue": {"2023": 1200.0},
        "grossProfit": {"2023": 400.0},
        "operatingProfit": {"2023": 250.0},
        "netProfit": {"2023": 150.0},
        "eps": {"2023": 1500.0},
        "pe": {"2023": 12.5},
        "ros": {"2023": 12.5},
        "roe": {"2023": 18.0},
        "roa": {"2023": 9.0},
    }


@pytest.fixture
def quarterly_data() -> Dict[str, Any]:
    """Quarterly MetricSeries with all four 2023 quarters reported."""
    return {
        "netRevenue": {"2023": {"Q1": 300.0, "Q2": 310.0, "Q3": 290.0, "Q4": 300.0}},
        "grossProfit": {"2023": {"Q1": 100.0, "Q2": 105.0, "Q3": 95.0, "Q4": 100.0}},
        "operatingProfit": {"2023": {"Q1": 60.0, "Q2": 65.0, "Q3": 60.0, "Q4": 65.0}},
        "netProfit": {"2023": {"Q1": 35.0, "Q2": 40.0, "Q3": 35.0, "Q4": 40.0}},
        "pe": {"2023": {"Q2": 11.0, "Q4": 12.0}},
    }


@pytest.fixture
def industrial_inputs(annual_data, quarterly_data) -> SheetInputs:
    return SheetInputs(
        annual_data=copy.deepcopy(annual_data),
        quarterly_data=copy.deepcopy(quarterly_data),
        symbol="FPT",
        company_type="industrial",
        outstanding_shares=1000000.0,
        current_price=100000.0,
        max_52w=120000.0,
        min_52w=80000.0,
        revenue_growth=0.15,
        gross_margin=0.3,
        net_profit_growth=0.1,
        trading_date="2024-06-28",
    )


@pytest.fixture
def input_refs() -> InputCellReferences:
    """Addresses of a standard input block at column K (values in column M)."""
    return InputCellReferences(
        current_price="M5",
        outstanding_shares="M6",
        revenue_growth="M9",
        gross_margin="M10",
        net_profit_growth="M11",
    )


def _make_classifier(inputs: SheetInputs, layout=INDUSTRIAL_LAYOUT, current_year: int = CURRENT_YEAR) -> PeriodClassifier:
    return PeriodClassifier(
        quarterly_data=inputs.quarterly_data,
        detection_metrics=layout.detection_metrics,
        actual_metrics=layout.actual_metrics,
        current_year=current_year,
        forecast_years=frozenset(inputs.forecast_years),
        forecast_quarters=frozenset(inputs.forecast_quarters),
    )


@pytest.fixture
def make_classifier():
    """Factory for a classifier over arbitrary inputs and layouts."""
    return _make_classifier


@pytest.fixture
def classifier(industrial_inputs) -> PeriodClassifier:
    return _make_classifier(industrial_inputs)
