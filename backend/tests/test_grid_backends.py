"""
Tests for the grid backends: MemoryGrid, render_xlsx (xlsxwriter) and
OpenpyxlGrid (openpyxl).

Workbooks are written with xlsxwriter and read back with openpyxl.
"""

from io import BytesIO

import pytest
from openpyxl import load_workbook

from stocksheet.services.grid import (
    CellStyle,
    Grid,
    MemoryGrid,
    OpenpyxlGrid,
    format_address,
    render_xlsx,
)
from stocksheet.services.ingestion import extract_sheet_edits
from stocksheet.services.modeling import build_stock_sheet


def test_format_address():
    """Zero-based coordinates convert to A1 references."""
    assert format_address(0, 0) == "A1"
    assert format_address(4, 12) == "M5"
    assert format_address(19, 1, 1, 4) == "B20:E20"
    assert format_address(6, 0, absolute_col=True) == "$A7"
    assert format_address(0, 26) == "AA1"


def test_backends_satisfy_protocol():
    """Both concrete grids satisfy the Grid protocol."""
    assert isinstance(MemoryGrid(), Grid)
    assert isinstance(OpenpyxlGrid.new(), Grid)


def test_memory_grid_value_and_formula_are_exclusive():
    """Setting a value clears the formula and vice versa."""
    grid = MemoryGrid()
    grid.set_value(1, 1, 5.0)
    grid.set_formula(1, 1, "=A1*2")

    cell = grid.get(1, 1)
    assert cell.value is None
    assert cell.formula == "A1*2"
    assert grid.read_value(1, 1) is None

    grid.set_value(1, 1, 7.0)
    assert grid.get(1, 1).formula is None
    assert grid.read_value(1, 1) == 7.0


def test_memory_grid_styles_merge():
    """Successive styles merge field by field."""
    grid = MemoryGrid()
    grid.style_cell(0, 0, CellStyle(border="thin", bold=True))
    grid.style_cell(0, 0, CellStyle(bg="#FFF2CC"))

    style = grid.get(0, 0).style
    assert style.border == "thin"
    assert style.bold is True
    assert style.bg == "#FFF2CC"


def test_memory_grid_snapshot_skips_styled_blanks():
    """Snapshots hold only cells with content."""
    grid = MemoryGrid()
    grid.style_cell(2, 2, CellStyle(border="thin"))
    grid.set_value(0, 0, "x")

    assert grid.snapshot() == {(0, 0): ("x", None, None)}
    assert grid.max_row == 2
    assert grid.max_col == 2


def test_single_cell_merge_is_ignored():
    """A 1x1 merge is not recorded."""
    grid = MemoryGrid()
    grid.merge_range(0, 0, 1, 1)
    assert grid.merges == []


@pytest.fixture
def workbook_bytes(industrial_inputs):
    grid = MemoryGrid()
    result = build_stock_sheet(grid, industrial_inputs, current_year=2024)
    return render_xlsx(grid, "Screening"), grid, result


def test_render_xlsx_writes_values_formulas_and_merges(workbook_bytes):
    """xlsxwriter output reloads with the same values, formulas and merges."""
    data, grid, result = workbook_bytes
    worksheet = load_workbook(BytesIO(data))["Screening"]

    assert worksheet["A1"].value == "FPT"
    assert worksheet["M5"].value == 100000

    rows = result.quarterly.rows
    address = grid.cell_address(rows.revenue, 5)
    assert worksheet[address].value == "=" + grid.get(rows.revenue, 5).formula

    merged = {str(r) for r in worksheet.merged_cells.ranges}
    assert grid.cell_address(rows.year_header, 1, 1, 4) in merged
    assert worksheet.freeze_panes == "B1"


def test_render_xlsx_applies_number_formats_and_protection(workbook_bytes):
    """Percent formats and unlocked input cells survive rendering."""
    data, grid, result = workbook_bytes
    worksheet = load_workbook(BytesIO(data))["Screening"]

    margin = grid.cell_address(result.annual.rows.gross_margin, 1)
    assert worksheet[margin].number_format == "0.00%"

    shares = grid.cell_address(result.quarterly.rows.shares, 1)
    assert worksheet[shares].protection.locked is False


def test_openpyxl_grid_reads_back_edits(workbook_bytes):
    """Analyst inputs read back from a saved workbook."""
    data, _, result = workbook_bytes
    reader = OpenpyxlGrid.load(data, sheet_name="Screening", data_only=False)

    # Formula text never reads back as a value
    rows = result.quarterly.rows
    assert reader.read_value(rows.revenue, 5) is None

    edits = extract_sheet_edits(reader, result.to_layout_dict())
    assert edits["inputs"]["current_price"] == 100000
    assert edits["shares_per_quarter"]["2023"]["Q1"] == 1000000
    assert edits["pe_assumptions"] == result.pe_scenarios


def test_openpyxl_grid_as_build_target(industrial_inputs):
    """A sheet can be built directly onto an openpyxl worksheet."""
    grid = OpenpyxlGrid.new("Screening")
    result = build_stock_sheet(grid, industrial_inputs, current_year=2024)

    reloaded = OpenpyxlGrid.load(grid.to_bytes(), data_only=False)
    rows = result.quarterly.rows

    assert reloaded.read_value(0, 0) == "FPT"
    assert reloaded.read_value(rows.revenue, 1) == 300
    assert reloaded.worksheet.cell(row=rows.revenue + 1, column=6).value.startswith("=")
    assert reloaded.worksheet.freeze_panes == "B1"
