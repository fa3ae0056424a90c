"""
valuation_grid.py — Valuation Grid Builder (P/E scenarios)

Purpose:
- Build a matrix below the quarterly table: one row per candidate P/E, one
  column per quarterly column, each cell = P/E x that quarter's EPS TTM.
- Highlight the row matching the default P/E.

Scenario synthesis (when no saved list exists):
    up to 3 latest historical quarterly P/E values (ascending)
  + up to 3 earliest forecast P/E cells read back from the grid
    (default P/E where the cell is blank or a formula)
  + padding from PE_FALLBACK_SEQUENCE when fewer than 6 values were found.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from stocksheet.core.logging import get_logger
from stocksheet.services.grid.base import CellStyle, Grid
from stocksheet.services.modeling.cells import LABEL_HEADER_STYLE, set_cell, set_formula
from stocksheet.services.modeling.layouts import (
    COLORS,
    FORMAT_AMOUNT,
    FORMAT_MULTIPLE,
    TABLE_GAP_ROWS,
    VALUATION_MIN_ROWS,
    QuarterlyRowPositions,
)
from stocksheet.services.modeling.periods import PeriodClassifier
from stocksheet.services.modeling.quarterly_table import write_period_bands
from stocksheet.services.modeling.types import (
    MetricSeries,
    QuarterlyColumnInfo,
    lookup_value,
    to_number,
)

logger = get_logger(__name__)

FALLBACK_PE = 10.0
PE_FALLBACK_SEQUENCE = (9, 11, 12, 13, 14, 5, 4)
MIN_SYNTHESIZED_VALUES = 6
HIGHLIGHT_TOLERANCE = 0.01
SCENARIO_SOURCE_QUARTERS = 3

PERIOD_LABEL = "Niên độ:"
SCENARIO_LABEL = "Giả sử P/E:"

SCENARIO_STYLE = CellStyle(border="thin", align="center", locked=False)
VALUE_STYLE = CellStyle(border="thin", align="right")


def default_pe(annual_data: MetricSeries, current_year: int, fallback: float = FALLBACK_PE) -> float:
    """Annual P/E of the previous year, else the year before, else `fallback`."""
    for year in (current_year - 1, current_year - 2):
        value = lookup_value(annual_data, "pe", str(year))
        if value:
            return value
    return fallback


def _period_key(info: QuarterlyColumnInfo):
    return int(info.year), int(info.quarter[1:])


def build_pe_scenarios(
    grid: Grid,
    column_infos: Sequence[QuarterlyColumnInfo],
    quarterly_rows: QuarterlyRowPositions,
    quarterly_data: MetricSeries,
    default_value: float,
    saved: Optional[Sequence[float]] = None,
) -> List[float]:
    """
    Scenario P/E values, top to bottom.

    A non-empty saved list is returned as given (non-numeric entries dropped).
    """
    if saved:
        values = [to_number(v) for v in saved]
        return [v for v in values if v is not None]

    historical = sorted(
        (info for info in column_infos if not info.is_forecast),
        key=_period_key,
        reverse=True,
    )[:SCENARIO_SOURCE_QUARTERS]
    forecast = sorted(
        (info for info in column_infos if info.is_forecast),
        key=_period_key,
    )[:SCENARIO_SOURCE_QUARTERS]

    scenarios: List[float] = []
    for info in reversed(historical):
        pe = lookup_value(quarterly_data, "pe", info.year, info.quarter)
        if pe is not None and pe > 0:
            scenarios.append(round(pe, 2))

    for info in forecast:
        pe = to_number(grid.read_value(quarterly_rows.pe, info.col))
        if pe is not None and pe > 0:
            scenarios.append(round(pe, 2))
        else:
            scenarios.append(default_value)

    if len(scenarios) < MIN_SYNTHESIZED_VALUES:
        while len(scenarios) < len(PE_FALLBACK_SEQUENCE):
            scenarios.append(float(PE_FALLBACK_SEQUENCE[len(scenarios)]))

    return scenarios


def build_valuation_grid(
    grid: Grid,
    column_infos: Sequence[QuarterlyColumnInfo],
    quarterly_rows: QuarterlyRowPositions,
    classifier: PeriodClassifier,
    scenarios: Sequence[float],
    default_value: float,
) -> int:
    """
    Render the scenario matrix below the quarterly table.

    Returns the start row (the year band). Renders at least
    VALUATION_MIN_ROWS scenario rows; extra rows are blank editable slots.
    """
    start_row = quarterly_rows.last_row + TABLE_GAP_ROWS
    infos = list(column_infos)

    write_period_bands(grid, start_row, infos, classifier)
    set_cell(grid, start_row, 0, PERIOD_LABEL, style=LABEL_HEADER_STYLE)
    set_cell(grid, start_row + 1, 0, SCENARIO_LABEL, style=LABEL_HEADER_STYLE)

    row_count = max(VALUATION_MIN_ROWS, len(scenarios))
    last_col = infos[-1].col if infos else 0
    highlighted = 0

    for index in range(row_count):
        row = start_row + 2 + index
        pe = scenarios[index] if index < len(scenarios) else None
        set_cell(grid, row, 0, pe, FORMAT_MULTIPLE, style=SCENARIO_STYLE)

        pe_ref = grid.cell_address(row, 0, absolute_col=True)
        for info in infos:
            eps_ref = grid.cell_address(quarterly_rows.eps_ttm, info.col)
            set_formula(
                grid, row, info.col,
                f'IF(ISNUMBER({pe_ref})*ISNUMBER({eps_ref}), {pe_ref} * {eps_ref}, "-")',
                FORMAT_AMOUNT,
            )
            grid.style_cell(row, info.col, VALUE_STYLE)

        if pe is not None and abs(pe - default_value) < HIGHLIGHT_TOLERANCE:
            grid.style_range(row, 0, 1, last_col + 1, CellStyle(bg=COLORS["default_highlight"]))
            highlighted += 1

    for info in infos:
        if info.quarter == "Q4":
            grid.style_range(start_row, info.col, row_count + 2, 1, CellStyle(border_right="double"))

    logger.debug(
        "Valuation grid at row %d: %d scenarios, default P/E %.2f, %d highlighted",
        start_row, len(scenarios), default_value, highlighted,
    )
    return start_row
