"""
sections.py — Title block, input block and final sheet layout.

The input block holds the editable assumptions every forecast formula points
at; its cell addresses are returned as InputCellReferences.
"""

from __future__ import annotations

from typing import Dict, Tuple

from stocksheet.core.logging import get_logger
from stocksheet.services.grid.base import CellStyle, Grid
from stocksheet.services.modeling.cells import set_cell
from stocksheet.services.modeling.layouts import (
    COLORS,
    FORMAT_AMOUNT,
    FORMAT_PERCENT,
    INPUT_AREA_COL,
    INPUT_AREA_ROW_START,
    INPUT_VALUE_COL_OFFSET,
    LABEL_COLUMN_WIDTH,
    SheetLayout,
)
from stocksheet.services.modeling.types import InputCellReferences, SheetInputs

logger = get_logger(__name__)

TITLE_ROW_HEIGHT = 38
DATE_LABEL = "NGÀY"

# (field, editable, number format, fill) in display order
INPUT_FIELDS: Tuple[Tuple[str, bool, str, str], ...] = (
    ("current_price", True, FORMAT_AMOUNT, COLORS["input"]),
    ("outstanding_shares", True, FORMAT_AMOUNT, COLORS["input"]),
    ("max_52w", False, FORMAT_AMOUNT, COLORS["display"]),
    ("min_52w", False, FORMAT_AMOUNT, COLORS["display"]),
    ("revenue_growth", True, FORMAT_PERCENT, COLORS["input"]),
    ("gross_margin", True, FORMAT_PERCENT, COLORS["input"]),
    ("net_profit_growth", True, FORMAT_PERCENT, COLORS["input"]),
)


def format_trading_date(trading_date: str) -> str:
    """'2024-06-28' -> '28/06/2024'; anything else is returned unchanged."""
    if not trading_date:
        return ""
    parts = trading_date.strip().split("-")
    if len(parts) != 3:
        return trading_date
    return "/".join(reversed(parts))


def input_column(annual_column_count: int) -> int:
    """Label column of the input block: column K, or right of a wider annual table."""
    return max(INPUT_AREA_COL, annual_column_count + 2)


def input_value_rows(start_row: int = INPUT_AREA_ROW_START) -> Dict[str, int]:
    """Row of each input field's value cell."""
    return {name: start_row + 1 + index for index, (name, _, _, _) in enumerate(INPUT_FIELDS)}


def build_title_section(grid: Grid, layout: SheetLayout, symbol: str, trading_date: str) -> None:
    grid.set_row_height(0, TITLE_ROW_HEIGHT)
    set_cell(grid, 0, 2, layout.title, style=CellStyle(bold=True, color=COLORS["title"], align="center"))
    set_cell(
        grid, 0, 0, symbol.upper(),
        style=CellStyle(bold=True, color=COLORS["symbol"], align="center", border="thin"),
    )
    set_cell(grid, 0, 4, DATE_LABEL, style=CellStyle(bold=True))
    set_cell(grid, 0, 5, format_trading_date(trading_date), style=CellStyle())


def build_input_section(
    grid: Grid,
    layout: SheetLayout,
    inputs: SheetInputs,
    col: int = INPUT_AREA_COL,
    start_row: int = INPUT_AREA_ROW_START,
) -> InputCellReferences:
    """
    Write the label/value input block and return the value-cell addresses.

    Labels span two columns; values sit INPUT_VALUE_COL_OFFSET columns right
    of the label. Editable values are unlocked.
    """
    value_col = col + INPUT_VALUE_COL_OFFSET

    grid.set_column_width(col, 26)
    grid.set_column_width(col + 1, 14)
    grid.set_column_width(value_col, 16)

    set_cell(
        grid, start_row, col, f"Ngày: {format_trading_date(inputs.trading_date)}",
        style=CellStyle(bold=True, align="left", bg=COLORS["input_header"]),
    )
    grid.merge_range(start_row, col, 1, 3)

    rows = input_value_rows(start_row)
    for name, editable, number_format, fill in INPUT_FIELDS:
        row = rows[name]
        label_style = CellStyle(bold=True, align="left", border="thin")
        set_cell(grid, row, col, layout.input_labels[name], style=label_style)
        grid.style_cell(row, col + 1, label_style)
        grid.merge_range(row, col, 1, 2)

        value = getattr(inputs, name) or 0
        style = CellStyle(border="thin", bg=fill, locked=False if editable else None)
        set_cell(grid, row, value_col, value, number_format, style=style)

    refs = InputCellReferences(
        current_price=grid.cell_address(rows["current_price"], value_col),
        outstanding_shares=grid.cell_address(rows["outstanding_shares"], value_col),
        revenue_growth=grid.cell_address(rows["revenue_growth"], value_col),
        gross_margin=grid.cell_address(rows["gross_margin"], value_col),
        net_profit_growth=grid.cell_address(rows["net_profit_growth"], value_col),
    )
    logger.debug("Input block at col %d rows %d-%d", col, start_row, max(rows.values()))
    return refs


def apply_final_layout(grid: Grid) -> None:
    """Label column width and a frozen first column."""
    grid.set_column_width(0, LABEL_COLUMN_WIDTH)
    grid.freeze_panes(0, 1)
