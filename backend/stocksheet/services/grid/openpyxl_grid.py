"""
openpyxl_grid.py — Grid adapter over an openpyxl worksheet.

Purpose:
- Read back a previously exported workbook after an analyst has edited the
  inputs, shares or P/E scenarios (see ingestion.transform extract_* helpers).
- Allow a build to target an openpyxl workbook directly when a caller already
  holds one (e.g. to add the screening sheet next to other sheets).

Workbooks loaded with data_only=True expose Excel's cached results for
formula cells; formula text itself always reads back as None.
"""

from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Protection, Side
from openpyxl.utils import get_column_letter

from stocksheet.core.logging import get_logger
from stocksheet.services.grid.base import CellStyle
from stocksheet.services.grid.memory import format_address

logger = get_logger(__name__)


def _argb(color: str) -> str:
    """'#e02926' -> 'FFE02926' (openpyxl expects ARGB hex)."""
    return "FF" + color.lstrip("#").upper()


class OpenpyxlGrid:
    """Grid protocol implementation writing straight into an openpyxl Worksheet."""

    def __init__(self, worksheet) -> None:
        self.worksheet = worksheet
        self._styles: Dict[Tuple[int, int], CellStyle] = {}

    @classmethod
    def new(cls, sheet_name: str = "Screening") -> "OpenpyxlGrid":
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = sheet_name
        return cls(worksheet)

    @classmethod
    def load(
        cls,
        source: Union[str, Path, bytes],
        sheet_name: Optional[str] = None,
        data_only: bool = True,
    ) -> "OpenpyxlGrid":
        """Open an existing workbook from a path or raw bytes."""
        if isinstance(source, (bytes, bytearray)):
            workbook = load_workbook(BytesIO(source), data_only=data_only)
        else:
            workbook = load_workbook(str(source), data_only=data_only)
        worksheet = workbook[sheet_name] if sheet_name else workbook.active
        logger.debug("Loaded worksheet %r (data_only=%s)", worksheet.title, data_only)
        return cls(worksheet)

    def _cell(self, row: int, col: int):
        return self.worksheet.cell(row=row + 1, column=col + 1)

    # -- writes ---------------------------------------------------------------

    def set_value(self, row: int, col: int, value: Any) -> None:
        self._cell(row, col).value = value

    def set_formula(self, row: int, col: int, formula: str) -> None:
        self._cell(row, col).value = "=" + formula.lstrip("=")

    def set_format(self, row: int, col: int, number_format: str) -> None:
        self._cell(row, col).number_format = number_format

    def style_cell(self, row: int, col: int, style: CellStyle) -> None:
        merged = self._styles.get((row, col), CellStyle()).merged_with(style)
        self._styles[(row, col)] = merged
        cell = self._cell(row, col)

        cell.font = Font(
            bold=bool(merged.bold),
            color=_argb(merged.color) if merged.color else None,
            size=merged.size or 11,
        )
        if merged.bg:
            cell.fill = PatternFill(
                fill_type="solid", start_color=_argb(merged.bg), end_color=_argb(merged.bg)
            )
        all_sides = Side(style=merged.border) if merged.border else Side()
        cell.border = Border(
            left=all_sides,
            top=all_sides,
            right=Side(style=merged.border_right) if merged.border_right else all_sides,
            bottom=Side(style=merged.border_bottom) if merged.border_bottom else all_sides,
        )
        cell.alignment = Alignment(
            horizontal=merged.align,
            vertical="center",
            wrap_text=bool(merged.wrap),
        )
        if merged.locked is not None:
            cell.protection = Protection(locked=merged.locked)

    def style_range(
        self, row: int, col: int, row_count: int, col_count: int, style: CellStyle
    ) -> None:
        for r in range(row, row + row_count):
            for c in range(col, col + col_count):
                self.style_cell(r, c, style)

    def merge_range(self, row: int, col: int, row_span: int, col_span: int) -> None:
        if row_span == 1 and col_span == 1:
            return
        self.worksheet.merge_cells(
            start_row=row + 1,
            start_column=col + 1,
            end_row=row + row_span,
            end_column=col + col_span,
        )

    def set_column_width(self, col: int, width: float) -> None:
        self.worksheet.column_dimensions[get_column_letter(col + 1)].width = width

    def set_row_height(self, row: int, height: float) -> None:
        self.worksheet.row_dimensions[row + 1].height = height

    def freeze_panes(self, rows: int, cols: int) -> None:
        self.worksheet.freeze_panes = format_address(rows, cols) if (rows or cols) else None

    # -- reads ----------------------------------------------------------------

    def cell_address(
        self,
        row: int,
        col: int,
        row_span: int = 1,
        col_span: int = 1,
        absolute_col: bool = False,
    ) -> str:
        return format_address(row, col, row_span, col_span, absolute_col)

    def read_value(self, row: int, col: int) -> Any:
        value = self._cell(row, col).value
        if isinstance(value, str) and value.startswith("="):
            return None
        return value

    def to_bytes(self) -> bytes:
        output = BytesIO()
        self.worksheet.parent.save(output)
        return output.getvalue()
