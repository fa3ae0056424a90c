"""
cells.py — Cell-level write helpers shared by the table builders.

Every helper writes through the Grid protocol and asks the grid for cell
addresses; formula text is assembled here and nowhere else.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

from stocksheet.services.grid.base import THIN_BORDER, CellStyle, Grid
from stocksheet.services.modeling.layouts import COLORS, GROWTH_ROWS


def set_cell(
    grid: Grid,
    row: int,
    col: int,
    value: Any,
    number_format: Optional[str] = None,
    style: Optional[CellStyle] = None,
) -> None:
    """
    Write a literal and its styling.

    A None value leaves the cell content untouched (no value, no formula);
    format and style are still applied so the blank cell keeps the table look.
    """
    if value is not None:
        grid.set_value(row, col, value)
    if number_format:
        grid.set_format(row, col, number_format)
    grid.style_cell(row, col, style if style is not None else THIN_BORDER)


def set_formula(
    grid: Grid,
    row: int,
    col: int,
    formula: str,
    number_format: Optional[str] = None,
) -> None:
    grid.set_formula(row, col, formula)
    if number_format:
        grid.set_format(row, col, number_format)
    grid.style_cell(row, col, THIN_BORDER)


def apply_border(grid: Grid, row: int, col: int) -> None:
    grid.style_cell(row, col, THIN_BORDER)


def guarded_division(numerator: str, denominator: str) -> str:
    """IF(den<>0, num/den, 0): division formulas never render #DIV/0!."""
    return f"IF({denominator}<>0, {numerator}/{denominator}, 0)"


def set_division_formula(
    grid: Grid,
    row: int,
    col: int,
    numerator_row: int,
    denominator_row: int,
    number_format: str,
) -> None:
    """Same-column ratio of two rows."""
    numerator = grid.cell_address(numerator_row, col)
    denominator = grid.cell_address(denominator_row, col)
    set_formula(grid, row, col, guarded_division(numerator, denominator), number_format)


def set_growth_formula(
    grid: Grid,
    row: int,
    col: int,
    source_row: int,
    prev_col: int,
    number_format: str,
) -> None:
    """Period-over-period growth of `source_row` between prev_col and col."""
    curr = grid.cell_address(source_row, col)
    prev = grid.cell_address(source_row, prev_col)
    set_formula(
        grid, row, col,
        f"IF({prev}<>0, ({curr}-{prev})/{prev}, 0)",
        number_format,
    )


def set_extrapolation_formula(
    grid: Grid,
    row: int,
    col: int,
    prev_col: int,
    growth_ref: str,
    number_format: str,
) -> None:
    """prev x (1 + growth input), for forecast revenue and profit cells."""
    prev = grid.cell_address(row, prev_col)
    set_formula(grid, row, col, f"{prev} * (1 + {growth_ref})", number_format)


def set_quarterly_sum_formula(
    grid: Grid,
    source_row: int,
    target_row: int,
    target_col: int,
    quarter_cols: Sequence[int],
    number_format: str,
) -> None:
    """Annual cell = SUM of the given quarter cells, in the order supplied."""
    refs = ",".join(grid.cell_address(source_row, col) for col in quarter_cols)
    set_formula(grid, target_row, target_col, f"SUM({refs})", number_format)


def trailing_range(grid: Grid, row: int, col: int, width: int = 4) -> str:
    """Address of the `width` cells ending at `col` on `row` (e.g. "B20:E20")."""
    return grid.cell_address(row, col - width + 1, 1, width)


def header_style(is_forecast: bool) -> CellStyle:
    """Period header: pink for forecast periods, green for reported ones."""
    return CellStyle(
        bold=True,
        align="center",
        border="thin",
        wrap=True,
        bg=COLORS["forecast"] if is_forecast else COLORS["historical"],
    )


LABEL_HEADER_STYLE = CellStyle(bold=True, align="center", border="thin", wrap=True, bg=COLORS["header"])


def write_row_labels(
    grid: Grid,
    positions: Iterable[Tuple[str, int]],
    labels: Mapping[str, str],
    red_rows: Iterable[str] = GROWTH_ROWS,
) -> None:
    """Column-A labels for every rendered metric row."""
    red = set(red_rows)
    for name, row in positions:
        label = labels.get(name)
        if label is None:
            continue
        style = CellStyle(border="thin", color=COLORS["text_red"] if name in red else None)
        set_cell(grid, row, 0, label, style=style)
