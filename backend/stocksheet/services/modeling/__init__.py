"""
Sheet modeling: period classification, layout schemas, table builders,
cross-table linking and the P/E valuation grid.
"""

from stocksheet.services.modeling.layouts import LAYOUTS, get_layout, resolve_company_type
from stocksheet.services.modeling.periods import PeriodClassifier
from stocksheet.services.modeling.sheet_builder import (
    SheetBuildResult,
    build_stock_sheet,
    export_stock_sheet,
)
from stocksheet.services.modeling.types import (
    CompanyType,
    InputCellReferences,
    QuarterlyColumnInfo,
    SheetInputs,
)

__all__ = [
    "LAYOUTS",
    "CompanyType",
    "InputCellReferences",
    "PeriodClassifier",
    "QuarterlyColumnInfo",
    "SheetBuildResult",
    "SheetInputs",
    "build_stock_sheet",
    "export_stock_sheet",
    "get_layout",
    "resolve_company_type",
]
