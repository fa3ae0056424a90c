"""
Unit tests for linker.py (Cross-Table Linker)
"""

import pytest

from stocksheet.services.modeling.annual_table import build_table
from stocksheet.services.modeling.layouts import BANK_LAYOUT, INDUSTRIAL_LAYOUT
from stocksheet.services.modeling.linker import link_annual_to_quarterly
from stocksheet.services.modeling.quarterly_table import build_quarterly_table
from stocksheet.services.modeling.types import QuarterlyColumnInfo, SheetInputs


def _build_and_link(grid, inputs, layout, classifier, input_refs):
    annual = build_table(grid, inputs, layout, classifier, input_refs)
    quarterly = build_quarterly_table(
        grid, inputs, layout, classifier, input_refs, start_row=annual.rows.last_row + 4
    )
    linked = link_annual_to_quarterly(
        grid, annual.column_map, annual.rows,
        quarterly.column_infos, quarterly.rows, input_refs,
    )
    return annual, quarterly, linked


@pytest.fixture
def linked_tables(grid, industrial_inputs, classifier, input_refs):
    return _build_and_link(grid, industrial_inputs, INDUSTRIAL_LAYOUT, classifier, input_refs)


def _sum_of(grid, row, cols):
    return "SUM(" + ",".join(grid.cell_address(row, c) for c in cols) + ")"


def test_links_every_complete_year(linked_tables):
    """Every year with four quarters is linked."""
    _, _, linked = linked_tables
    assert linked == ["2023", "2024"]


def test_gross_profit_sums_quarters_in_order(grid, linked_tables):
    """Annual gross profit is SUM of Q1 to Q4."""
    annual, quarterly, _ = linked_tables
    q_rows = quarterly.rows

    assert grid.get(annual.rows.gross_profit, 1).formula == _sum_of(grid, q_rows.gross_profit, [1, 2, 3, 4])
    assert grid.get(annual.rows.gross_profit, 2).formula == _sum_of(grid, q_rows.gross_profit, [5, 6, 7, 8])
    # The reported annual literal is replaced
    assert grid.get(annual.rows.gross_profit, 1).value is None


def test_historical_year_keeps_reported_profit(grid, linked_tables):
    """Historical annual net profit stays a literal."""
    annual, _, _ = linked_tables
    assert grid.get(annual.rows.net_profit, 1).value == 150.0
    assert grid.get(annual.rows.pe, 1).value == 12.5


def test_forecast_year_rows_are_rewired(grid, linked_tables, input_refs):
    """Forecast annual rows point at the quarterly totals."""
    annual, quarterly, _ = linked_tables
    rows, q_rows = annual.rows, quarterly.rows

    assert grid.get(rows.net_profit, 2).formula == _sum_of(grid, q_rows.net_profit, [5, 6, 7, 8])
    assert grid.get(rows.eps, 2).formula == _sum_of(grid, q_rows.eps, [5, 6, 7, 8])

    eps = grid.cell_address(rows.eps, 2)
    assert grid.get(rows.pe, 2).formula == f"IF({eps}<>0, {input_refs.current_price} / {eps}, 0)"

    profit = grid.cell_address(rows.net_profit, 2)
    revenue = grid.cell_address(rows.net_revenue, 2)
    assert grid.get(rows.ros, 2).formula == f"IF({revenue}<>0, {profit}/{revenue}, 0)"


def test_partial_years_are_not_aggregated(grid, industrial_inputs, classifier, input_refs):
    """Years with missing quarters are left alone."""
    annual = build_table(grid, industrial_inputs, INDUSTRIAL_LAYOUT, classifier, input_refs)
    quarterly = build_quarterly_table(
        grid, industrial_inputs, INDUSTRIAL_LAYOUT, classifier, input_refs,
        start_row=annual.rows.last_row + 4,
    )
    partial = [info for info in quarterly.column_infos if not (info.year == "2023" and info.quarter == "Q4")]

    linked = link_annual_to_quarterly(
        grid, annual.column_map, annual.rows, partial, quarterly.rows, input_refs
    )

    assert linked == ["2024"]
    assert grid.get(annual.rows.gross_profit, 1).value == 400.0


def test_years_without_annual_column_are_skipped(grid, industrial_inputs, classifier, input_refs):
    """Quarterly years missing from the annual table are skipped."""
    annual = build_table(grid, industrial_inputs, INDUSTRIAL_LAYOUT, classifier, input_refs)
    quarterly = build_quarterly_table(
        grid, industrial_inputs, INDUSTRIAL_LAYOUT, classifier, input_refs,
        start_row=annual.rows.last_row + 4,
    )
    extra = [QuarterlyColumnInfo("2030", q, 40 + i, True) for i, q in enumerate(("Q1", "Q2", "Q3", "Q4"))]

    linked = link_annual_to_quarterly(
        grid, annual.column_map, annual.rows,
        list(quarterly.column_infos) + extra, quarterly.rows, input_refs,
    )
    assert "2030" not in linked


def test_bank_links_skip_unused_rows(grid, input_refs, make_classifier):
    """Bank linking never writes rows the layout does not use."""
    inputs = SheetInputs(
        annual_data={"netInterestIncome": {"2023": 500.0}, "netProfit": {"2023": 90.0}},
        quarterly_data={
            "netInterestIncome": {"2023": {"Q1": 120.0, "Q2": 125.0, "Q3": 125.0, "Q4": 130.0}},
            "operatingExpenses": {"2023": {"Q1": -40.0, "Q2": -41.0, "Q3": -42.0, "Q4": -43.0}},
        },
        symbol="VCB",
    )
    classifier = make_classifier(inputs, layout=BANK_LAYOUT)
    annual, quarterly, linked = _build_and_link(grid, inputs, BANK_LAYOUT, classifier, input_refs)

    assert linked == ["2023", "2024"]
    # Operating expenses still roll up from the quarters
    assert grid.get(annual.rows.gross_profit, 1).formula == _sum_of(
        grid, quarterly.rows.gross_profit, [1, 2, 3, 4]
    )
    unused_rows = {getattr(annual.rows, name) for name in annual.rows.unused}
    assert not any(row in unused_rows for row, _ in grid.cells)
