"""
sheet_builder.py — Stock Screening Sheet Orchestrator

Purpose:
- Run one full sheet build for a ticker in a single linear pass:
    title -> classify -> inputs -> annual table -> quarterly table
    -> link -> valuation grid -> final layout
- Record the resulting layout so an edited workbook can be read back.

Core Workflow:
1. Resolve the company type (explicit > payload hint > ticker lists).
2. Resolve the current year ONCE (argument > settings > clock) and hand it to
   the classifier; nothing downstream reads the clock.
3. Build onto the supplied grid, which is assumed to be empty and exclusively
   owned for the duration of the build.

This module does NOT:
- Fetch or persist financial data.
- Evaluate formulas (readback of formula cells yields None).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from stocksheet.core.config import settings
from stocksheet.core.logging import get_logger
from stocksheet.services.grid import MemoryGrid, render_xlsx
from stocksheet.services.grid.base import Grid
from stocksheet.services.modeling.annual_table import AnnualTableResult, build_table
from stocksheet.services.modeling.layouts import (
    INPUT_AREA_ROW_START,
    INPUT_VALUE_COL_OFFSET,
    TABLE_GAP_ROWS,
    VALUATION_MIN_ROWS,
    get_layout,
    resolve_company_type,
)
from stocksheet.services.modeling.linker import link_annual_to_quarterly
from stocksheet.services.modeling.periods import PeriodClassifier
from stocksheet.services.modeling.quarterly_table import QuarterlyTableResult, build_quarterly_table
from stocksheet.services.modeling.sections import (
    apply_final_layout,
    build_input_section,
    build_title_section,
    input_column,
    input_value_rows,
)
from stocksheet.services.modeling.types import CompanyType, InputCellReferences, SheetInputs
from stocksheet.services.modeling.valuation_grid import (
    build_pe_scenarios,
    build_valuation_grid,
    default_pe,
)

logger = get_logger(__name__)


@dataclass
class SheetBuildResult:
    """Everything a caller needs to address the built sheet."""
    symbol: str
    company_type: CompanyType
    current_year: int
    annual: AnnualTableResult
    quarterly: QuarterlyTableResult
    input_refs: InputCellReferences
    input_col: int
    default_pe: float
    pe_scenarios: List[float] = field(default_factory=list)
    valuation_start_row: int = 0
    linked_years: List[str] = field(default_factory=list)

    @property
    def valuation_row_count(self) -> int:
        return max(VALUATION_MIN_ROWS, len(self.pe_scenarios))

    def to_layout_dict(self) -> Dict[str, Any]:
        """JSON-serialisable layout used by the workbook read-back helpers."""
        return {
            "symbol": self.symbol,
            "company_type": self.company_type.value,
            "current_year": self.current_year,
            "input": {
                "col": self.input_col,
                "value_col": self.input_col + INPUT_VALUE_COL_OFFSET,
                "rows": input_value_rows(INPUT_AREA_ROW_START),
            },
            "annual": {
                "columns": dict(self.annual.column_map),
                "forecast_years": list(self.annual.forecast_years),
            },
            "quarterly": {
                "shares_row": self.quarterly.rows.shares,
                "pe_row": self.quarterly.rows.pe,
                "eps_ttm_row": self.quarterly.rows.eps_ttm,
                "columns": [
                    {
                        "year": info.year,
                        "quarter": info.quarter,
                        "col": info.col,
                        "is_forecast": info.is_forecast,
                    }
                    for info in self.quarterly.column_infos
                ],
            },
            "valuation": {
                "start_row": self.valuation_start_row,
                "row_count": self.valuation_row_count,
            },
        }


def resolve_current_year(current_year: Optional[int] = None) -> int:
    if current_year is not None:
        return int(current_year)
    if settings.CURRENT_YEAR is not None:
        return settings.CURRENT_YEAR
    return datetime.now().year


def build_stock_sheet(
    grid: Grid,
    inputs: SheetInputs,
    company_type: Optional[str] = None,
    current_year: Optional[int] = None,
    fallback_pe: Optional[float] = None,
) -> SheetBuildResult:
    """
    Build the full screening sheet for `inputs` onto `grid`.

    Args:
        grid: Empty target grid (MemoryGrid, OpenpyxlGrid, ...)
        inputs: MetricSeries and sheet-level inputs from the loader
        company_type: Overrides inputs.company_type and the ticker lists
        current_year: Pins the wall-clock year for this build
        fallback_pe: P/E used when no prior-year annual P/E exists
            (defaults to settings.DEFAULT_PE)

    Returns:
        SheetBuildResult describing where every table landed.

    Raises:
        ValueError: for an unknown company type.
    """
    ctype = resolve_company_type(inputs.symbol, company_type or inputs.company_type)
    layout = get_layout(ctype)
    year = resolve_current_year(current_year)
    fallback = settings.DEFAULT_PE if fallback_pe is None else fallback_pe

    classifier = PeriodClassifier(
        quarterly_data=inputs.quarterly_data,
        detection_metrics=layout.detection_metrics,
        actual_metrics=layout.actual_metrics,
        current_year=year,
        forecast_years=frozenset(inputs.forecast_years),
        forecast_quarters=frozenset(inputs.forecast_quarters),
    )

    build_title_section(grid, layout, inputs.symbol, inputs.trading_date)

    annual_years = classifier.visible_years(inputs.annual_data)
    col = input_column(len(annual_years))
    input_refs = build_input_section(grid, layout, inputs, col=col)

    annual = build_table(grid, inputs, layout, classifier, input_refs)
    quarterly = build_quarterly_table(
        grid, inputs, layout, classifier, input_refs,
        start_row=annual.rows.last_row + TABLE_GAP_ROWS,
    )
    linked = link_annual_to_quarterly(
        grid, annual.column_map, annual.rows,
        quarterly.column_infos, quarterly.rows, input_refs,
    )

    pe_default = default_pe(inputs.annual_data, year, fallback)
    scenarios = build_pe_scenarios(
        grid, quarterly.column_infos, quarterly.rows,
        inputs.quarterly_data, pe_default, inputs.pe_assumptions,
    )
    valuation_start = build_valuation_grid(
        grid, quarterly.column_infos, quarterly.rows, classifier, scenarios, pe_default,
    )

    apply_final_layout(grid)

    logger.info(
        "Built %s sheet for %s (year %d): %d annual columns, %d quarter columns, %d P/E scenarios",
        ctype.value, inputs.symbol or "<no symbol>", year,
        len(annual.column_map), len(quarterly.column_infos), len(scenarios),
    )

    return SheetBuildResult(
        symbol=inputs.symbol,
        company_type=ctype,
        current_year=year,
        annual=annual,
        quarterly=quarterly,
        input_refs=input_refs,
        input_col=col,
        default_pe=pe_default,
        pe_scenarios=scenarios,
        valuation_start_row=valuation_start,
        linked_years=linked,
    )


def export_stock_sheet(
    inputs: SheetInputs,
    company_type: Optional[str] = None,
    current_year: Optional[int] = None,
    sheet_name: Optional[str] = None,
) -> bytes:
    """Build onto a MemoryGrid and render it to .xlsx bytes with xlsxwriter."""
    grid = MemoryGrid()
    build_stock_sheet(grid, inputs, company_type=company_type, current_year=current_year)
    return render_xlsx(grid, sheet_name or settings.SHEET_NAME)
