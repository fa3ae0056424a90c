"""
base.py — Cell-Grid API used by the sheet builders.

Purpose:
- Define the minimal spreadsheet surface the modeling layer writes through.
- Keep builders independent of any concrete workbook library, so the same
  build can target a headless MemoryGrid (tests), an xlsxwriter export or an
  openpyxl worksheet.

Conventions:
- Rows and columns are 0-based.
- Formula text is passed WITHOUT a leading "=".
- Cell addresses are always requested from the grid via `cell_address`;
  builders splice them into formula text but never build them by hand.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class CellStyle:
    """
    Visual style for a cell. Fields left as None do not change the cell.

    Attributes:
        bold: Bold font
        align: "left" | "center" | "right"
        color: Font color (hex, e.g. "#e02926")
        bg: Fill color (hex)
        border: Border style applied on all four sides ("thin" | "double")
        border_right: Border style for the right edge only
        border_bottom: Border style for the bottom edge only
        wrap: Wrap text
        locked: False marks the cell as an editable input
        size: Font size in points
    """
    bold: Optional[bool] = None
    align: Optional[str] = None
    color: Optional[str] = None
    bg: Optional[str] = None
    border: Optional[str] = None
    border_right: Optional[str] = None
    border_bottom: Optional[str] = None
    wrap: Optional[bool] = None
    locked: Optional[bool] = None
    size: Optional[int] = None

    def merged_with(self, other: "CellStyle") -> "CellStyle":
        """Return a copy with every non-None field of `other` applied on top."""
        updates = {
            f.name: getattr(other, f.name)
            for f in fields(other)
            if getattr(other, f.name) is not None
        }
        return replace(self, **updates) if updates else self


THIN_BORDER = CellStyle(border="thin")


@runtime_checkable
class Grid(Protocol):
    """Cell-grid operations consumed by the sheet builders."""

    def set_value(self, row: int, col: int, value: Any) -> None:
        ...

    def set_formula(self, row: int, col: int, formula: str) -> None:
        ...

    def set_format(self, row: int, col: int, number_format: str) -> None:
        ...

    def style_cell(self, row: int, col: int, style: CellStyle) -> None:
        ...

    def style_range(
        self, row: int, col: int, row_count: int, col_count: int, style: CellStyle
    ) -> None:
        ...

    def merge_range(self, row: int, col: int, row_span: int, col_span: int) -> None:
        ...

    def set_column_width(self, col: int, width: float) -> None:
        ...

    def set_row_height(self, row: int, height: float) -> None:
        ...

    def freeze_panes(self, rows: int, cols: int) -> None:
        ...

    def cell_address(
        self,
        row: int,
        col: int,
        row_span: int = 1,
        col_span: int = 1,
        absolute_col: bool = False,
    ) -> str:
        ...

    def read_value(self, row: int, col: int) -> Any:
        ...
