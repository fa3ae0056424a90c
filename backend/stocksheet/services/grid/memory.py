"""
memory.py — Headless in-memory grid.

Records every value, formula, number format and style written by the
builders. Used as the default build target: tests inspect it directly and
`render_xlsx` turns it into a workbook with xlsxwriter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from openpyxl.utils import get_column_letter

from stocksheet.services.grid.base import CellStyle


@dataclass
class GridCell:
    """State of one cell. `formula` and `value` are mutually exclusive."""
    value: Any = None
    formula: Optional[str] = None
    number_format: Optional[str] = None
    style: CellStyle = field(default_factory=CellStyle)

    @property
    def is_empty(self) -> bool:
        return self.value is None and self.formula is None


def format_address(
    row: int,
    col: int,
    row_span: int = 1,
    col_span: int = 1,
    absolute_col: bool = False,
) -> str:
    """A1-style address for a 0-based cell or range ("B5", "B5:E5", "$A7")."""
    def _one(r: int, c: int) -> str:
        letter = get_column_letter(c + 1)
        return f"{'$' if absolute_col else ''}{letter}{r + 1}"

    start = _one(row, col)
    if row_span == 1 and col_span == 1:
        return start
    return f"{start}:{_one(row + row_span - 1, col + col_span - 1)}"


class MemoryGrid:
    """
    In-memory implementation of the Grid protocol.

    Formula cells read back as None: there is no calculation engine.
    """

    def __init__(self) -> None:
        self.cells: Dict[Tuple[int, int], GridCell] = {}
        self.merges: List[Tuple[int, int, int, int]] = []
        self.column_widths: Dict[int, float] = {}
        self.row_heights: Dict[int, float] = {}
        self.frozen: Tuple[int, int] = (0, 0)

    def _cell(self, row: int, col: int) -> GridCell:
        key = (row, col)
        if key not in self.cells:
            self.cells[key] = GridCell()
        return self.cells[key]

    def get(self, row: int, col: int) -> Optional[GridCell]:
        return self.cells.get((row, col))

    # -- writes ---------------------------------------------------------------

    def set_value(self, row: int, col: int, value: Any) -> None:
        cell = self._cell(row, col)
        cell.value = value
        cell.formula = None

    def set_formula(self, row: int, col: int, formula: str) -> None:
        cell = self._cell(row, col)
        cell.formula = formula.lstrip("=")
        cell.value = None

    def set_format(self, row: int, col: int, number_format: str) -> None:
        self._cell(row, col).number_format = number_format

    def style_cell(self, row: int, col: int, style: CellStyle) -> None:
        cell = self._cell(row, col)
        cell.style = cell.style.merged_with(style)

    def style_range(
        self, row: int, col: int, row_count: int, col_count: int, style: CellStyle
    ) -> None:
        for r in range(row, row + row_count):
            for c in range(col, col + col_count):
                self.style_cell(r, c, style)

    def merge_range(self, row: int, col: int, row_span: int, col_span: int) -> None:
        if row_span == 1 and col_span == 1:
            return
        self.merges.append((row, col, row_span, col_span))

    def set_column_width(self, col: int, width: float) -> None:
        self.column_widths[col] = width

    def set_row_height(self, row: int, height: float) -> None:
        self.row_heights[row] = height

    def freeze_panes(self, rows: int, cols: int) -> None:
        self.frozen = (rows, cols)

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
        cell = self.cells.get((row, col))
        if cell is None or cell.formula is not None:
            return None
        return cell.value

    def snapshot(self) -> Dict[Tuple[int, int], Tuple[Any, Optional[str], Optional[str]]]:
        """(value, formula, number_format) per non-empty cell, for comparisons."""
        return {
            key: (cell.value, cell.formula, cell.number_format)
            for key, cell in sorted(self.cells.items())
            if not cell.is_empty
        }

    @property
    def max_row(self) -> int:
        return max((r for r, _ in self.cells), default=-1)

    @property
    def max_col(self) -> int:
        return max((c for _, c in self.cells), default=-1)
