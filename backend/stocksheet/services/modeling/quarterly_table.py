"""
quarterly_table.py — Cell-Fill Engine, quarterly table

Purpose:
- Lay out a contiguous block of four columns (Q1..Q4) per visible year, under
  a merged year band, and fill each metric row for every quarter column.

"Previous period" in this table is the same quarter one year back, i.e. the
column four to the left. Column arithmetic assumes the year blocks are
contiguous, which the classifier's gap filling guarantees.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from stocksheet.core.logging import get_logger
from stocksheet.services.grid.base import CellStyle, Grid
from stocksheet.services.modeling.annual_table import write_roa_proxy
from stocksheet.services.modeling.cells import (
    LABEL_HEADER_STYLE,
    apply_border,
    header_style,
    set_cell,
    set_division_formula,
    set_extrapolation_formula,
    set_formula,
    set_growth_formula,
    trailing_range,
    write_row_labels,
)
from stocksheet.services.modeling.layouts import (
    DATA_COLUMN_WIDTH,
    FORMAT_AMOUNT,
    FORMAT_MULTIPLE,
    FORMAT_PERCENT,
    QUARTER_DATE_RANGES,
    SheetLayout,
    QuarterlyRowPositions,
)
from stocksheet.services.modeling.periods import PeriodClassifier
from stocksheet.services.modeling.types import (
    QUARTERS,
    InputCellReferences,
    QuarterlyColumnInfo,
    SheetInputs,
    lookup_value,
)

logger = get_logger(__name__)

QUARTERLY_HEADER_LABEL = "Niên độ \nChỉ số"
YEAR_BAND_HEIGHT = 22
QUARTER_BAND_HEIGHT = 38
FIRST_DATA_COL = 1

# EPS source figures are in VND per share; profit is reported in millions
EPS_PROFIT_SCALE = 1000000


@dataclass
class QuarterlyTableResult:
    column_infos: List[QuarterlyColumnInfo]
    rows: QuarterlyRowPositions
    column_count: int


def quarter_header_text(quarter: str, is_forecast: bool) -> str:
    suffix = " (F)" if is_forecast else ""
    return f"{quarter}{suffix}\n{QUARTER_DATE_RANGES[QUARTERS.index(quarter)]}"


def write_period_bands(
    grid: Grid,
    year_row: int,
    column_infos: List[QuarterlyColumnInfo],
    classifier: PeriodClassifier,
) -> None:
    """Merged year band over each year's quarter columns, quarter band below."""
    grid.set_row_height(year_row, YEAR_BAND_HEIGHT)
    grid.set_row_height(year_row + 1, QUARTER_BAND_HEIGHT)

    years: List[str] = []
    for info in column_infos:
        if info.year not in years:
            years.append(info.year)

    for year in years:
        year_cols = [info.col for info in column_infos if info.year == year]
        first_col = year_cols[0]
        style = header_style(classifier.is_forecast_year(year))
        set_cell(grid, year_row, first_col, year, style=style)
        grid.style_range(year_row, first_col, 1, len(year_cols), style)
        grid.merge_range(year_row, first_col, 1, len(year_cols))

    for info in column_infos:
        set_cell(
            grid, year_row + 1, info.col,
            quarter_header_text(info.quarter, info.is_forecast),
            style=header_style(info.is_forecast),
        )


def _previous_year_col(col: int) -> Optional[int]:
    prev_col = col - 4
    return prev_col if prev_col >= FIRST_DATA_COL else None


def build_quarterly_table(
    grid: Grid,
    inputs: SheetInputs,
    layout: SheetLayout,
    classifier: PeriodClassifier,
    input_refs: InputCellReferences,
    start_row: int,
) -> QuarterlyTableResult:
    """
    Build the quarterly table with its header bands at `start_row`.

    Years come from both the annual and the quarterly series; each contributes
    four columns whether or not every quarter has data.
    """
    rows = layout.quarterly_rows(start_row)
    years = classifier.visible_years(inputs.annual_data, inputs.quarterly_data)
    quarterly = inputs.quarterly_data
    metrics = layout.quarterly_metrics

    column_infos: List[QuarterlyColumnInfo] = []
    col = FIRST_DATA_COL
    for year in years:
        for quarter in QUARTERS:
            column_infos.append(
                QuarterlyColumnInfo(
                    year=year,
                    quarter=quarter,
                    col=col,
                    is_forecast=classifier.is_forecast_quarter(year, quarter),
                )
            )
            grid.set_column_width(col, DATA_COLUMN_WIDTH)
            col += 1

    logger.debug(
        "Quarterly table (%s): years=%s columns=%d forecast_quarters=%d",
        layout.company_type.value, years, len(column_infos),
        sum(1 for info in column_infos if info.is_forecast),
    )

    # Headers
    set_cell(grid, rows.year_header, 0, QUARTERLY_HEADER_LABEL, style=LABEL_HEADER_STYLE)
    grid.style_cell(rows.quarter_header, 0, LABEL_HEADER_STYLE)
    grid.merge_range(rows.year_header, 0, 2, 1)
    write_period_bands(grid, rows.year_header, column_infos, classifier)

    metric_rows = [
        (name, row) for name, row in rows.used_rows()
        if name not in ("year_header", "quarter_header")
    ]
    write_row_labels(
        grid, metric_rows, layout.quarterly_labels,
        red_rows=("net_profit", "rev_growth", "profit_growth"),
    )

    def source(name: str, year: str, quarter: str) -> Optional[float]:
        return lookup_value(quarterly, metrics.get(name), year, quarter)

    for info in column_infos:
        year, quarter, col, forecast = info.year, info.quarter, info.col, info.is_forecast
        prev_col = _previous_year_col(col)

        # Revenue and net profit: reported value, else extrapolate in forecast quarters
        for name, growth_ref in (
            ("revenue", input_refs.revenue_growth),
            ("net_profit", input_refs.net_profit_growth),
        ):
            row = getattr(rows, name)
            value = source(name, year, quarter)
            if value is None and forecast and prev_col is not None:
                set_extrapolation_formula(grid, row, col, prev_col, growth_ref, FORMAT_AMOUNT)
            else:
                set_cell(grid, row, col, value, FORMAT_AMOUNT)

        # Gross profit (bank: operating expenses, never projected)
        gross = source("gross_profit", year, quarter)
        if gross is None and forecast and layout.forecast_gross_profit:
            revenue = grid.cell_address(rows.revenue, col)
            set_formula(
                grid, rows.gross_profit, col,
                f"{revenue} * {input_refs.gross_margin}", FORMAT_AMOUNT,
            )
        else:
            set_cell(grid, rows.gross_profit, col, gross, FORMAT_AMOUNT)

        if rows.is_used("operating_profit"):
            set_cell(grid, rows.operating_profit, col, source("operating_profit", year, quarter), FORMAT_AMOUNT)

        # Shares: saved per-quarter figure, else the sheet-level input; editable
        shares = lookup_value(quarterly, "outstandingShares", year, quarter)
        if shares is None:
            shares = inputs.outstanding_shares
        set_cell(grid, rows.shares, col, shares, FORMAT_AMOUNT)
        grid.style_cell(rows.shares, col, CellStyle(locked=False))

        for name, (numerator, denominator) in layout.quarterly_ratios.items():
            set_division_formula(
                grid, getattr(rows, name), col,
                getattr(rows, numerator), getattr(rows, denominator),
                FORMAT_PERCENT,
            )

        if layout.roa_proxy_row and rows.is_used(layout.roa_proxy_row):
            write_roa_proxy(
                grid,
                getattr(rows, layout.roa_proxy_row),
                col,
                profit_row=rows.net_profit,
                roa_row=rows.roa if rows.is_used("roa") else None,
                total_assets=lookup_value(quarterly, layout.total_assets_metric, year, quarter),
                net_profit=source("net_profit", year, quarter),
                roa=source("roa", year, quarter),
            )

        # Quarterly EPS: upstream EPS is trailing, so always derive it
        profit_ref = grid.cell_address(rows.net_profit, col)
        shares_ref = grid.cell_address(rows.shares, col)
        set_formula(
            grid, rows.eps, col,
            f"IF({shares_ref}<>0, ({profit_ref} * {EPS_PROFIT_SCALE}) / {shares_ref}, 0)",
            FORMAT_AMOUNT,
        )

        # EPS TTM
        eps_ttm = None
        if not forecast:
            for metric in layout.eps_ttm_metrics:
                eps_ttm = lookup_value(quarterly, metric, year, quarter)
                if eps_ttm is not None:
                    break
        if eps_ttm is not None:
            set_cell(grid, rows.eps_ttm, col, eps_ttm, FORMAT_AMOUNT)
        elif col >= 4:
            set_formula(grid, rows.eps_ttm, col, f"SUM({trailing_range(grid, rows.eps, col)})", FORMAT_AMOUNT)
        else:
            apply_border(grid, rows.eps_ttm, col)

        # P/E: reported value, else price / trailing EPS in forecast quarters
        pe = source("pe", year, quarter)
        if pe is not None:
            set_cell(grid, rows.pe, col, pe, FORMAT_MULTIPLE)
        elif forecast and col >= 4:
            eps_sum = f"SUM({trailing_range(grid, rows.eps, col)})"
            set_formula(
                grid, rows.pe, col,
                f"IF({eps_sum} <> 0, {input_refs.current_price} / {eps_sum}, 0)",
                FORMAT_MULTIPLE,
            )
        else:
            apply_border(grid, rows.pe, col)

        for name in ("roe", "roa"):
            if not rows.is_used(name):
                continue
            value = source(name, year, quarter)
            set_cell(grid, getattr(rows, name), col, None if value is None else value / 100, FORMAT_PERCENT)

        if prev_col is not None:
            set_growth_formula(grid, rows.rev_growth, col, rows.revenue, prev_col, FORMAT_PERCENT)
            set_growth_formula(grid, rows.profit_growth, col, rows.net_profit, prev_col, FORMAT_PERCENT)
        else:
            apply_border(grid, rows.rev_growth, col)
            apply_border(grid, rows.profit_growth, col)

        if quarter == "Q4":
            grid.style_range(
                rows.year_header, col, rows.last_row - rows.year_header + 1, 1,
                CellStyle(border_right="double"),
            )

    column_count = FIRST_DATA_COL + len(column_infos)
    grid.style_range(rows.last_row, 0, 1, column_count, CellStyle(border_bottom="double"))

    return QuarterlyTableResult(column_infos=column_infos, rows=rows, column_count=column_count)
