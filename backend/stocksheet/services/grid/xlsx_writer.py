"""
xlsx_writer.py — Render a MemoryGrid into an .xlsx workbook.

Purpose:
- Turn the headless grid produced by a sheet build into the client-facing
  workbook (bytes), using xlsxwriter for creating new workbooks.

This module does NOT:
- Decide any cell content; it only serialises what the builders recorded.
"""

from __future__ import annotations

from io import BytesIO
from typing import Any, Dict, Optional, Set, Tuple

import xlsxwriter

from stocksheet.core.logging import get_logger
from stocksheet.services.grid.base import CellStyle
from stocksheet.services.grid.memory import GridCell, MemoryGrid

logger = get_logger(__name__)

# xlsxwriter border indexes
BORDER_STYLES: Dict[str, int] = {
    "thin": 1,
    "double": 6,
}


def _format_properties(style: CellStyle, number_format: Optional[str]) -> Dict[str, Any]:
    """Translate a CellStyle into xlsxwriter format properties (order matters for borders)."""
    props: Dict[str, Any] = {"valign": "vcenter"}
    if style.bold:
        props["bold"] = True
    if style.size:
        props["font_size"] = style.size
    if style.align:
        props["align"] = style.align
    if style.color:
        props["font_color"] = style.color
    if style.bg:
        props["bg_color"] = style.bg
        props["pattern"] = 1
    if style.border:
        props["border"] = BORDER_STYLES.get(style.border, 1)
    if style.border_right:
        props["right"] = BORDER_STYLES.get(style.border_right, 1)
    if style.border_bottom:
        props["bottom"] = BORDER_STYLES.get(style.border_bottom, 1)
    if style.wrap:
        props["text_wrap"] = True
    if style.locked is False:
        props["locked"] = False
    if number_format:
        props["num_format"] = number_format
    return props


class _FormatCache:
    """One xlsxwriter Format per distinct (style, number format) pair."""

    def __init__(self, workbook) -> None:
        self._workbook = workbook
        self._formats: Dict[Tuple[CellStyle, Optional[str]], Any] = {}

    def get(self, cell: GridCell):
        key = (cell.style, cell.number_format)
        if key not in self._formats:
            self._formats[key] = self._workbook.add_format(
                _format_properties(cell.style, cell.number_format)
            )
        return self._formats[key]


def _write_cell(worksheet, row: int, col: int, cell: GridCell, fmt) -> None:
    if cell.formula is not None:
        worksheet.write_formula(row, col, f"={cell.formula}", fmt)
    elif cell.value is None:
        worksheet.write_blank(row, col, None, fmt)
    else:
        worksheet.write(row, col, cell.value, fmt)


def render_xlsx(grid: MemoryGrid, sheet_name: str = "Screening") -> bytes:
    """
    Write the grid to an in-memory .xlsx workbook and return its bytes.

    Merged ranges are written first (xlsxwriter owns the merged block), then
    every remaining cell outside a merged block.
    """
    output = BytesIO()
    workbook = xlsxwriter.Workbook(output, {"in_memory": True})
    worksheet = workbook.add_worksheet(sheet_name)
    formats = _FormatCache(workbook)

    covered: Set[Tuple[int, int]] = set()
    for row, col, row_span, col_span in grid.merges:
        anchor = grid.get(row, col) or GridCell()
        fmt = formats.get(anchor)
        data = anchor.value if anchor.value is not None else ""
        worksheet.merge_range(row, col, row + row_span - 1, col + col_span - 1, data, fmt)
        if anchor.formula is not None:
            worksheet.write_formula(row, col, f"={anchor.formula}", fmt)
        for r in range(row, row + row_span):
            for c in range(col, col + col_span):
                covered.add((r, c))

    for (row, col), cell in sorted(grid.cells.items()):
        if (row, col) in covered:
            continue
        _write_cell(worksheet, row, col, cell, formats.get(cell))

    for col, width in sorted(grid.column_widths.items()):
        worksheet.set_column(col, col, width)
    for row, height in sorted(grid.row_heights.items()):
        worksheet.set_row(row, height)

    frozen_rows, frozen_cols = grid.frozen
    if frozen_rows or frozen_cols:
        worksheet.freeze_panes(frozen_rows, frozen_cols)

    workbook.close()
    output.seek(0)
    payload = output.getvalue()
    logger.debug(
        "Rendered sheet %r: %d cells, %d merges, %d bytes",
        sheet_name, len(grid.cells), len(grid.merges), len(payload),
    )
    return payload
