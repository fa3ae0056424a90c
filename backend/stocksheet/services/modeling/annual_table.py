"""
annual_table.py — Cell-Fill Engine, annual table

Purpose:
- Lay out one column per visible year and fill every metric row with either a
  reported literal, a percentage-scaled literal, a formula or nothing.

Fill rules (per year column):
- Revenue / net profit: reported value if present; in a forecast year with a
  previous-year column, prev x (1 + growth input); otherwise blank.
- Gross / operating profit: reported value.
- EPS, P/E, ROS: reported value for historical years only (forecast years are
  wired to the quarterly table by the linker).
- ROE / ROA (and ROS): percentage points / 100.
- Margin rows: always IF(den<>0, num/den, 0).
- Growth rows: IF(prev<>0, (curr-prev)/prev, 0) when a previous-year column
  exists, else blank.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from stocksheet.core.logging import get_logger
from stocksheet.services.grid.base import Grid
from stocksheet.services.modeling.cells import (
    LABEL_HEADER_STYLE,
    apply_border,
    header_style,
    set_cell,
    set_division_formula,
    set_extrapolation_formula,
    set_formula,
    set_growth_formula,
    write_row_labels,
)
from stocksheet.services.modeling.layouts import (
    ANNUAL_DATE_RANGE,
    ANNUAL_TABLE_START_ROW,
    DATA_COLUMN_WIDTH,
    FORMAT_PERCENT,
    PERCENT_POINT_ROWS,
    ROW_FORMATS,
    AnnualRowPositions,
    SheetLayout,
)
from stocksheet.services.modeling.periods import PeriodClassifier
from stocksheet.services.modeling.types import InputCellReferences, SheetInputs, lookup_value

logger = get_logger(__name__)

ANNUAL_HEADER_LABEL = "Chỉ số"
ANNUAL_HEADER_HEIGHT = 45

# Rows only filled from source for historical years
_HISTORICAL_ONLY_ROWS = frozenset({"eps", "pe", "ros"})
# Rows extrapolated from the previous year in forecast years: row -> input attribute
_EXTRAPOLATED_ROWS = {
    "net_revenue": "revenue_growth",
    "net_profit": "net_profit_growth",
}


@dataclass
class AnnualTableResult:
    column_map: Dict[str, int]
    rows: AnnualRowPositions
    visible_years: List[str]
    forecast_years: List[str]


def annual_header_text(year: str, is_forecast: bool) -> str:
    suffix = " (F)" if is_forecast else ""
    return f"{year}{suffix}\n{ANNUAL_DATE_RANGE}"


def format_literal(value: float) -> str:
    """Number as formula text (1200.0 -> "1200")."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def write_roa_proxy(
    grid: Grid,
    row: int,
    col: int,
    profit_row: int,
    roa_row: Optional[int],
    total_assets: Optional[float],
    net_profit: Optional[float],
    roa: Optional[float],
) -> None:
    """
    Net profit / total assets, as a formula.

    Falls back to a reference to the period's ROA cell (already scaled to a
    fraction) when total assets are missing, and to blank when neither exists.
    """
    if total_assets and total_assets > 0 and net_profit is not None:
        assets = format_literal(total_assets)
        profit = grid.cell_address(profit_row, col)
        set_formula(grid, row, col, f"IF({assets}<>0, {profit}/{assets}, 0)", FORMAT_PERCENT)
    elif roa and roa_row is not None:
        set_formula(grid, row, col, grid.cell_address(roa_row, col), FORMAT_PERCENT)
    else:
        set_cell(grid, row, col, None, FORMAT_PERCENT)


def build_table(
    grid: Grid,
    inputs: SheetInputs,
    layout: SheetLayout,
    classifier: PeriodClassifier,
    input_refs: InputCellReferences,
    start_row: int = ANNUAL_TABLE_START_ROW,
) -> AnnualTableResult:
    """
    Build the annual table starting at `start_row`.

    Returns the year -> column map, the row positions and the visible years
    (ascending) so the quarterly table and the linker can address its cells.
    """
    rows = layout.annual_rows(start_row)
    years = classifier.visible_years(inputs.annual_data)
    column_map = {year: 1 + index for index, year in enumerate(years)}
    forecast_flags = {year: classifier.is_forecast_year(year) for year in years}

    logger.debug(
        "Annual table (%s): years=%s forecast=%s",
        layout.company_type.value, years, [y for y in years if forecast_flags[y]],
    )

    # Header row
    grid.set_row_height(rows.header, ANNUAL_HEADER_HEIGHT)
    set_cell(grid, rows.header, 0, ANNUAL_HEADER_LABEL, style=LABEL_HEADER_STYLE)
    for year in years:
        col = column_map[year]
        grid.set_column_width(col, DATA_COLUMN_WIDTH)
        set_cell(
            grid, rows.header, col,
            annual_header_text(year, forecast_flags[year]),
            style=header_style(forecast_flags[year]),
        )

    metric_rows = [(name, row) for name, row in rows.used_rows() if name != "header"]
    write_row_labels(grid, metric_rows, layout.annual_labels)

    for year in years:
        col = column_map[year]
        forecast = forecast_flags[year]
        prev_col = column_map.get(str(int(year) - 1))

        for name, metric in layout.annual_metrics.items():
            if not rows.is_used(name):
                continue
            row = getattr(rows, name)
            number_format = ROW_FORMATS[name]
            value = lookup_value(inputs.annual_data, metric, year)

            if name in _EXTRAPOLATED_ROWS and value is None:
                if forecast and prev_col is not None:
                    growth_ref = getattr(input_refs, _EXTRAPOLATED_ROWS[name])
                    set_extrapolation_formula(grid, row, col, prev_col, growth_ref, number_format)
                else:
                    set_cell(grid, row, col, None, number_format)
                continue

            if name in _HISTORICAL_ONLY_ROWS and forecast:
                apply_border(grid, row, col)
                continue

            if value is not None and name in PERCENT_POINT_ROWS:
                value = value / 100
            set_cell(grid, row, col, value, number_format)

        for name, (numerator, denominator) in layout.annual_ratios.items():
            set_division_formula(
                grid, getattr(rows, name), col,
                getattr(rows, numerator), getattr(rows, denominator),
                ROW_FORMATS[name],
            )

        if layout.roa_proxy_row and rows.is_used(layout.roa_proxy_row):
            write_roa_proxy(
                grid,
                getattr(rows, layout.roa_proxy_row),
                col,
                profit_row=rows.net_profit,
                roa_row=rows.roa if rows.is_used("roa") else None,
                total_assets=lookup_value(inputs.annual_data, layout.total_assets_metric, year),
                net_profit=lookup_value(inputs.annual_data, layout.annual_metrics.get("net_profit"), year),
                roa=lookup_value(inputs.annual_data, layout.annual_metrics.get("roa"), year),
            )

        if prev_col is not None:
            set_growth_formula(grid, rows.rev_growth, col, rows.net_revenue, prev_col, FORMAT_PERCENT)
            set_growth_formula(grid, rows.profit_growth, col, rows.net_profit, prev_col, FORMAT_PERCENT)
        else:
            apply_border(grid, rows.rev_growth, col)
            apply_border(grid, rows.profit_growth, col)

    return AnnualTableResult(
        column_map=column_map,
        rows=rows,
        visible_years=years,
        forecast_years=[y for y in years if forecast_flags[y]],
    )
