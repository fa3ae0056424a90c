"""
linker.py — Cross-Table Linker

Rewires annual cells to the quarterly table once both tables exist:
- gross profit is always SUM(Q1..Q4);
- in forecast years (any quarter forecast) net profit and EPS become
  SUM(Q1..Q4), P/E becomes price / EPS and ROS becomes profit / revenue.

Years without an annual column, or without exactly four quarter columns, are
left as the Cell-Fill Engine wrote them.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Sequence

from stocksheet.core.logging import get_logger
from stocksheet.services.grid.base import Grid
from stocksheet.services.modeling.cells import guarded_division, set_formula, set_quarterly_sum_formula
from stocksheet.services.modeling.layouts import (
    FORMAT_AMOUNT,
    FORMAT_MULTIPLE,
    FORMAT_PERCENT,
    AnnualRowPositions,
    QuarterlyRowPositions,
)
from stocksheet.services.modeling.types import QUARTERS, InputCellReferences, QuarterlyColumnInfo

logger = get_logger(__name__)


def _quarters_by_year(column_infos: Sequence[QuarterlyColumnInfo]) -> Dict[str, List[QuarterlyColumnInfo]]:
    grouped: Dict[str, List[QuarterlyColumnInfo]] = {}
    for info in column_infos:
        grouped.setdefault(info.year, []).append(info)
    return grouped


def link_annual_to_quarterly(
    grid: Grid,
    column_map: Mapping[str, int],
    annual_rows: AnnualRowPositions,
    column_infos: Sequence[QuarterlyColumnInfo],
    quarterly_rows: QuarterlyRowPositions,
    input_refs: InputCellReferences,
) -> List[str]:
    """
    Write the annual <- quarterly links.

    Returns the years that were linked, in quarterly-table order.
    """
    linked: List[str] = []

    for year, infos in _quarters_by_year(column_infos).items():
        annual_col = column_map.get(year)
        if annual_col is None or len(infos) != 4:
            continue
        by_quarter = {info.quarter: info.col for info in infos}
        if any(q not in by_quarter for q in QUARTERS):
            continue
        quarter_cols = [by_quarter[q] for q in QUARTERS]

        if annual_rows.is_used("gross_profit") and quarterly_rows.is_used("gross_profit"):
            set_quarterly_sum_formula(
                grid, quarterly_rows.gross_profit, annual_rows.gross_profit,
                annual_col, quarter_cols, FORMAT_AMOUNT,
            )

        if any(info.is_forecast for info in infos):
            set_quarterly_sum_formula(
                grid, quarterly_rows.net_profit, annual_rows.net_profit,
                annual_col, quarter_cols, FORMAT_AMOUNT,
            )
            set_quarterly_sum_formula(
                grid, quarterly_rows.eps, annual_rows.eps,
                annual_col, quarter_cols, FORMAT_AMOUNT,
            )

            eps = grid.cell_address(annual_rows.eps, annual_col)
            set_formula(
                grid, annual_rows.pe, annual_col,
                f"IF({eps}<>0, {input_refs.current_price} / {eps}, 0)",
                FORMAT_MULTIPLE,
            )

            if annual_rows.is_used("ros"):
                profit = grid.cell_address(annual_rows.net_profit, annual_col)
                revenue = grid.cell_address(annual_rows.net_revenue, annual_col)
                set_formula(
                    grid, annual_rows.ros, annual_col,
                    guarded_division(profit, revenue),
                    FORMAT_PERCENT,
                )

        linked.append(year)

    logger.debug("Linked annual columns to quarters for years=%s", linked)
    return linked
