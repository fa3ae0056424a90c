"""
grid — Cell-grid API and its backends.

Builders write through the Grid protocol only; MemoryGrid is the headless
default, render_xlsx serialises it with xlsxwriter and OpenpyxlGrid adapts an
openpyxl worksheet (used for reading edited workbooks back).
"""

from stocksheet.services.grid.base import THIN_BORDER, CellStyle, Grid
from stocksheet.services.grid.memory import GridCell, MemoryGrid, format_address
from stocksheet.services.grid.openpyxl_grid import OpenpyxlGrid
from stocksheet.services.grid.xlsx_writer import render_xlsx

__all__ = [
    "THIN_BORDER",
    "CellStyle",
    "Grid",
    "GridCell",
    "MemoryGrid",
    "format_address",
    "OpenpyxlGrid",
    "render_xlsx",
]
