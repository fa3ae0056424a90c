"""
layouts.py — Layout Schema (industrial / bank / securities)

Purpose:
- Map semantic row names to absolute row indexes for the annual and quarterly
  tables, per company type, from a start row plus a fixed offset table.
- Carry the per-variant labels, input labels, metric keys and metric-code maps.
- Hold the sheet-wide layout constants (colors, input area, table gaps).

Every variant exposes the same row-position record. Rows a variant does not
render are pushed to an out-of-range placeholder (start + 1000 + n) and listed
in `unused`; builders and the linker skip them.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple, Type, TypeVar

from stocksheet.core.logging import get_logger
from stocksheet.services.modeling.types import CompanyType

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Sheet-wide constants
# ---------------------------------------------------------------------------

COLORS: Dict[str, str] = {
    "header": "#cffc03",
    "forecast": "#FF1493",
    "historical": "#70AD47",
    "input": "#FFF2CC",
    "display": "#E2EFDA",
    "default_highlight": "#FFE4E1",
    "text_red": "#e02926",
    "title": "#0000FF",
    "symbol": "#FF0000",
    "input_header": "#D9E1F2",
}

INPUT_AREA_COL = 10          # column K
INPUT_AREA_ROW_START = 3
INPUT_VALUE_COL_OFFSET = 2   # value sits two columns right of the label

ANNUAL_TABLE_START_ROW = 3
TABLE_GAP_ROWS = 4           # blank rows between annual/quarterly/valuation blocks
DATA_COLUMN_WIDTH = 15
LABEL_COLUMN_WIDTH = 24

VALUATION_MIN_ROWS = 10

UNUSED_ROW_OFFSET = 1000

QUARTER_DATE_RANGES: Tuple[str, ...] = (
    "01/01-31/03",
    "01/04-30/06",
    "01/07-30/09",
    "01/10-31/12",
)
ANNUAL_DATE_RANGE = "01/01-31/12"

FORMAT_AMOUNT = "#,##0"
FORMAT_PERCENT = "0.00%"
FORMAT_MULTIPLE = "0.00"

# Number format per row semantic (shared by both tables)
ROW_FORMATS: Dict[str, str] = {
    "net_revenue": FORMAT_AMOUNT,
    "revenue": FORMAT_AMOUNT,
    "gross_profit": FORMAT_AMOUNT,
    "operating_profit": FORMAT_AMOUNT,
    "net_profit": FORMAT_AMOUNT,
    "shares": FORMAT_AMOUNT,
    "eps": FORMAT_AMOUNT,
    "eps_ttm": FORMAT_AMOUNT,
    "gross_margin": FORMAT_PERCENT,
    "net_profit_margin": FORMAT_PERCENT,
    "net_margin": FORMAT_PERCENT,
    "ros": FORMAT_PERCENT,
    "roe": FORMAT_PERCENT,
    "roa": FORMAT_PERCENT,
    "rev_growth": FORMAT_PERCENT,
    "profit_growth": FORMAT_PERCENT,
    "pe": FORMAT_MULTIPLE,
}

# Rows whose source values are percentage points (12.5 -> 0.125 in the sheet)
PERCENT_POINT_ROWS = frozenset({"ros", "roe", "roa"})

GROWTH_ROWS = ("rev_growth", "profit_growth")


# ---------------------------------------------------------------------------
# Row-position records
# ---------------------------------------------------------------------------

class _RowPositions:
    """Shared helpers; subclasses are frozen dataclasses ending with `unused`."""

    unused: FrozenSet[str]

    def is_used(self, name: str) -> bool:
        return name not in self.unused

    def used_rows(self) -> List[Tuple[str, int]]:
        """(name, row) for every rendered row, top to bottom."""
        rows = [
            (f.name, getattr(self, f.name))
            for f in fields(self)
            if f.name != "unused" and f.name not in self.unused
        ]
        return sorted(rows, key=lambda item: item[1])

    @property
    def last_row(self) -> int:
        return max(row for _, row in self.used_rows())


@dataclass(frozen=True)
class AnnualRowPositions(_RowPositions):
    header: int
    net_revenue: int
    gross_profit: int
    operating_profit: int
    net_profit: int
    gross_margin: int
    net_profit_margin: int
    net_margin: int
    eps: int
    pe: int
    ros: int
    roe: int
    roa: int
    rev_growth: int
    profit_growth: int
    unused: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class QuarterlyRowPositions(_RowPositions):
    year_header: int
    quarter_header: int
    revenue: int
    gross_profit: int
    operating_profit: int
    gross_margin: int
    net_profit: int
    shares: int
    net_profit_margin: int
    net_margin: int
    eps: int
    eps_ttm: int
    pe: int
    roe: int
    roa: int
    rev_growth: int
    profit_growth: int
    unused: FrozenSet[str] = frozenset()


PositionsT = TypeVar("PositionsT", bound=_RowPositions)


def build_row_positions(
    cls: Type[PositionsT], start_row: int, offsets: Mapping[str, int]
) -> PositionsT:
    """Absolute rows for `cls` from a start row and a name -> offset table."""
    values: Dict[str, int] = {}
    unused = set()
    names = [f.name for f in fields(cls) if f.name != "unused"]
    for index, name in enumerate(names):
        if name in offsets:
            values[name] = start_row + offsets[name]
        else:
            values[name] = start_row + UNUSED_ROW_OFFSET + index
            unused.add(name)
    return cls(unused=frozenset(unused), **values)


# ---------------------------------------------------------------------------
# Variant schema
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SheetLayout:
    """
    Closed schema for one company type.

    Attributes:
        annual_metrics / quarterly_metrics: row name -> upstream metric key
            for rows filled from source literals.
        annual_ratios / quarterly_ratios: margin row -> (numerator row,
            denominator row); always written as guarded division formulas.
        roa_proxy_row: margin row computed as net profit / total assets
            (banks), or None.
        detection_metrics: metrics used for year discovery and completeness.
        actual_metrics: metrics whose presence marks a quarter as reported.
        eps_ttm_metrics: quarterly keys tried in order for reported EPS TTM.
        forecast_gross_profit: quarterly gross profit becomes
            revenue x gross-margin input in forecast quarters.
    """
    company_type: CompanyType
    title: str
    annual_offsets: Mapping[str, int]
    quarterly_offsets: Mapping[str, int]
    annual_labels: Mapping[str, str]
    quarterly_labels: Mapping[str, str]
    input_labels: Mapping[str, str]
    annual_metrics: Mapping[str, str]
    quarterly_metrics: Mapping[str, str]
    annual_ratios: Mapping[str, Tuple[str, str]]
    quarterly_ratios: Mapping[str, Tuple[str, str]]
    detection_metrics: Tuple[str, ...]
    actual_metrics: Tuple[str, ...]
    quarterly_metric_codes: Mapping[str, str]
    annual_metric_codes: Mapping[str, str]
    eps_ttm_metrics: Tuple[str, ...] = ("epsTtm", "eps")
    roa_proxy_row: Optional[str] = None
    forecast_gross_profit: bool = True
    total_assets_metric: str = "totalAssets"

    def annual_rows(self, start_row: int = ANNUAL_TABLE_START_ROW) -> AnnualRowPositions:
        return build_row_positions(AnnualRowPositions, start_row, self.annual_offsets)

    def quarterly_rows(self, start_row: int) -> QuarterlyRowPositions:
        return build_row_positions(QuarterlyRowPositions, start_row, self.quarterly_offsets)


_INPUT_LABELS: Dict[str, str] = {
    "current_price": "Giá cổ phiếu",
    "outstanding_shares": "Số lượng CP lưu hành",
    "max_52w": "Giá cao nhất 52T",
    "min_52w": "Giá thấp nhất 52T",
    "revenue_growth": "% TT Doanh thu",
    "gross_margin": "% Biên LN gộp",
    "net_profit_growth": "% TT LNST",
}

_COMMON_METRIC_CODES: Dict[str, str] = {
    "NET_PROFIT": "netProfit",
    "PROFIT_AFTER_TAX": "netProfit",
    "PE": "pe",
    "ROE": "roe",
    "ROA": "roa",
    "TOTAL_ASSETS": "totalAssets",
    "TOTAL_LIABILITIES": "totalLiabilities",
    "BVPS": "bvps",
}


INDUSTRIAL_LAYOUT = SheetLayout(
    company_type=CompanyType.INDUSTRIAL,
    title="TẦM SOÁT CỔ PHIẾU",
    annual_offsets={
        "header": 0, "net_revenue": 1, "gross_profit": 2, "operating_profit": 3,
        "net_profit": 4, "gross_margin": 5, "net_margin": 6, "eps": 7, "pe": 8,
        "ros": 9, "roe": 10, "roa": 11, "rev_growth": 12, "profit_growth": 13,
    },
    quarterly_offsets={
        "year_header": 0, "quarter_header": 1, "revenue": 2, "gross_profit": 3,
        "operating_profit": 4, "gross_margin": 5, "net_profit": 6, "shares": 7,
        "net_margin": 8, "eps": 9, "eps_ttm": 10, "pe": 11,
        "rev_growth": 12, "profit_growth": 13,
    },
    annual_labels={
        "net_revenue": "Doanh thu thuần",
        "gross_profit": "Lợi nhuận gộp",
        "operating_profit": "LN từ HĐKD",
        "net_profit": "LNST công ty mẹ",
        "gross_margin": "Biên LN gộp (%)",
        "net_margin": "Biên LN ròng (%)",
        "eps": "EPS (Vietstock)",
        "pe": "P/E (Vietstock)",
        "ros": "ROS (%)",
        "roe": "ROE (%)",
        "roa": "ROA (%)",
        "rev_growth": "TT tăng trưởng DT",
        "profit_growth": "TT tăng trưởng LNST",
    },
    quarterly_labels={
        "revenue": "Doanh thu thuần",
        "gross_profit": "Lợi nhuận gộp",
        "operating_profit": "LN từ HĐKD",
        "gross_margin": "Biên lợi nhuận gộp",
        "net_profit": "LNST công ty mẹ",
        "shares": "KL CP lưu hành",
        "net_margin": "Biên lợi nhuận ròng",
        "eps": "EPS quý",
        "eps_ttm": "EPS lũy kế",
        "pe": "P/E",
        "rev_growth": "TT DT (%)",
        "profit_growth": "TT LNST (%)",
    },
    input_labels=_INPUT_LABELS,
    annual_metrics={
        "net_revenue": "netRevenue",
        "gross_profit": "grossProfit",
        "operating_profit": "operatingProfit",
        "net_profit": "netProfit",
        "eps": "eps",
        "pe": "pe",
        "ros": "ros",
        "roe": "roe",
        "roa": "roa",
    },
    quarterly_metrics={
        "revenue": "netRevenue",
        "gross_profit": "grossProfit",
        "operating_profit": "operatingProfit",
        "net_profit": "netProfit",
        "pe": "pe",
    },
    annual_ratios={
        "gross_margin": ("gross_profit", "net_revenue"),
        "net_margin": ("net_profit", "net_revenue"),
    },
    quarterly_ratios={
        "gross_margin": ("gross_profit", "revenue"),
        "net_margin": ("net_profit", "revenue"),
    },
    detection_metrics=("netRevenue", "netProfit", "grossProfit", "operatingProfit"),
    actual_metrics=("netRevenue",),
    quarterly_metric_codes={
        **_COMMON_METRIC_CODES,
        "REVENUE_NET": "netRevenue",
        "GROSS_PROFIT": "grossProfit",
        "OPERATING_PROFIT": "operatingProfit",
        "EPS_TTM": "epsTtm",
        "ROS": "ros",
        "CURRENT_ASSETS": "currentAssets",
        "SHORT_TERM_LIABILITIES": "shortTermLiabilities",
        "EQUITY": "equity",
    },
    annual_metric_codes={
        **_COMMON_METRIC_CODES,
        "REVENUE_NET": "netRevenue",
        "GROSS_PROFIT": "grossProfit",
        "OPERATING_PROFIT": "operatingProfit",
        "EPS_TTM": "eps",
        "ROS": "ros",
    },
)


BANK_LAYOUT = SheetLayout(
    company_type=CompanyType.BANK,
    title="TẦM SOÁT CỔ PHIẾU NGÂN HÀNG",
    annual_offsets={
        "header": 0, "net_revenue": 1, "gross_profit": 2, "net_profit": 3,
        "net_profit_margin": 4, "net_margin": 5, "eps": 6, "pe": 7,
        "roe": 8, "roa": 9, "rev_growth": 10, "profit_growth": 11,
    },
    quarterly_offsets={
        "year_header": 0, "quarter_header": 1, "revenue": 2, "gross_profit": 3,
        "net_profit": 4, "shares": 5, "net_profit_margin": 6, "net_margin": 7,
        "eps": 8, "eps_ttm": 9, "pe": 10, "roe": 11, "roa": 12,
        "rev_growth": 13, "profit_growth": 14,
    },
    annual_labels={
        "net_revenue": "Thu nhập lãi thuần",
        "gross_profit": "Chi phí hoạt động",
        "net_profit": "LNST",
        "net_profit_margin": "Biên LN ròng (%)",
        "net_margin": "ROA (%)",
        "eps": "EPS (Vietstock)",
        "pe": "P/E (Vietstock)",
        "roe": "ROE (%)",
        "roa": "ROA (%)",
        "rev_growth": "TT Thu nhập lãi (%)",
        "profit_growth": "TT LNST (%)",
    },
    quarterly_labels={
        "revenue": "Thu nhập lãi thuần",
        "gross_profit": "Chi phí hoạt động",
        "net_profit": "LNST",
        "shares": "KL CP lưu hành",
        "net_profit_margin": "Biên LN ròng (%)",
        "net_margin": "ROA (%)",
        "eps": "EPS quý",
        "eps_ttm": "EPS lũy kế",
        "pe": "P/E",
        "roe": "ROE (%)",
        "roa": "ROA (%)",
        "rev_growth": "TT Thu nhập lãi (%)",
        "profit_growth": "TT LNST (%)",
    },
    input_labels={
        **_INPUT_LABELS,
        "revenue_growth": "% TT Thu nhập lãi",
        "gross_margin": "% NIM",
    },
    annual_metrics={
        "net_revenue": "netInterestIncome",
        "gross_profit": "operatingExpenses",
        "net_profit": "netProfit",
        "eps": "eps",
        "pe": "pe",
        "roe": "roe",
        "roa": "roa",
    },
    quarterly_metrics={
        "revenue": "netInterestIncome",
        "gross_profit": "operatingExpenses",
        "net_profit": "netProfit",
        "pe": "pe",
        "roe": "roe",
        "roa": "roa",
    },
    annual_ratios={"net_profit_margin": ("net_profit", "net_revenue")},
    quarterly_ratios={"net_profit_margin": ("net_profit", "revenue")},
    detection_metrics=("netInterestIncome", "totalAssets", "netProfit", "operatingExpenses"),
    actual_metrics=("netInterestIncome", "totalAssets"),
    quarterly_metric_codes={**_COMMON_METRIC_CODES, "EPS_BASIC": "eps", "EPS_TTM": "epsTtm"},
    annual_metric_codes={**_COMMON_METRIC_CODES, "EPS_BASIC": "eps", "EPS_TTM": "eps"},
    roa_proxy_row="net_margin",
    forecast_gross_profit=False,
)


SECURITIES_LAYOUT = SheetLayout(
    company_type=CompanyType.SECURITIES,
    title="TẦM SOÁT CỔ PHIẾU CHỨNG KHOÁN",
    annual_offsets={
        "header": 0, "net_revenue": 1, "gross_profit": 2, "operating_profit": 3,
        "net_profit": 4, "gross_margin": 5, "net_profit_margin": 6, "eps": 7,
        "pe": 8, "ros": 9, "roe": 10, "roa": 11, "rev_growth": 12, "profit_growth": 13,
    },
    quarterly_offsets={
        "year_header": 0, "quarter_header": 1, "revenue": 2, "gross_profit": 3,
        "operating_profit": 4, "net_profit": 5, "shares": 6, "gross_margin": 7,
        "net_profit_margin": 8, "eps": 9, "eps_ttm": 10, "pe": 11,
        "roe": 12, "roa": 13, "rev_growth": 14, "profit_growth": 15,
    },
    annual_labels={
        "net_revenue": "DT từ KD chứng khoán",
        "gross_profit": "Lợi nhuận gộp",
        "operating_profit": "LNT từ KD chứng khoán",
        "net_profit": "LNST",
        "gross_margin": "Biên LN gộp (%)",
        "net_profit_margin": "Biên LN ròng (%)",
        "eps": "EPS (Vietstock)",
        "pe": "P/E (Vietstock)",
        "ros": "ROS (%)",
        "roe": "ROE (%)",
        "roa": "ROA (%)",
        "rev_growth": "TT Doanh thu (%)",
        "profit_growth": "TT LNST (%)",
    },
    quarterly_labels={
        "revenue": "DT từ KD chứng khoán",
        "gross_profit": "Lợi nhuận gộp",
        "operating_profit": "LNT từ KD chứng khoán",
        "net_profit": "LNST",
        "shares": "KL CP lưu hành",
        "gross_margin": "Biên LN gộp (%)",
        "net_profit_margin": "Biên LN ròng (%)",
        "eps": "EPS quý",
        "eps_ttm": "EPS lũy kế",
        "pe": "P/E",
        "roe": "ROE (%)",
        "roa": "ROA (%)",
        "rev_growth": "TT Doanh thu (%)",
        "profit_growth": "TT LNST (%)",
    },
    input_labels=_INPUT_LABELS,
    annual_metrics={
        "net_revenue": "netRevenue",
        "gross_profit": "grossProfit",
        "operating_profit": "operatingProfit",
        "net_profit": "netProfit",
        "eps": "eps",
        "pe": "pe",
        "ros": "ros",
        "roe": "roe",
        "roa": "roa",
    },
    quarterly_metrics={
        "revenue": "netRevenue",
        "gross_profit": "grossProfit",
        "operating_profit": "operatingProfit",
        "net_profit": "netProfit",
        "pe": "pe",
        "roe": "roe",
        "roa": "roa",
    },
    annual_ratios={
        "gross_margin": ("gross_profit", "net_revenue"),
        "net_profit_margin": ("net_profit", "net_revenue"),
    },
    quarterly_ratios={
        "gross_margin": ("gross_profit", "revenue"),
        "net_profit_margin": ("net_profit", "revenue"),
    },
    detection_metrics=("netRevenue", "netProfit", "operatingProfit", "grossProfit"),
    actual_metrics=("netRevenue", "netProfit"),
    quarterly_metric_codes={
        **_COMMON_METRIC_CODES,
        "REVENUE_NET": "netRevenue",
        "GROSS_PROFIT": "grossProfit",
        "OPERATING_PROFIT": "operatingProfit",
        "MARGIN_LOANS": "marginLoans",
        "EQUITY": "shareholdersEquity",
        "EPS_BASIC": "eps",
        "EPS_TTM": "epsTtm",
        "ROS": "ros",
        "MINORITY_INTEREST": "minorityInterest",
    },
    annual_metric_codes={
        **_COMMON_METRIC_CODES,
        "REVENUE_NET": "netRevenue",
        "GROSS_PROFIT": "grossProfit",
        "OPERATING_PROFIT": "operatingProfit",
        "MARGIN_LOANS": "marginLoans",
        "EQUITY": "shareholdersEquity",
        "EPS_BASIC": "eps",
        "EPS_TTM": "eps",
        "ROS": "ros",
    },
)


LAYOUTS: Dict[CompanyType, SheetLayout] = {
    CompanyType.INDUSTRIAL: INDUSTRIAL_LAYOUT,
    CompanyType.BANK: BANK_LAYOUT,
    CompanyType.SECURITIES: SECURITIES_LAYOUT,
}


# ---------------------------------------------------------------------------
# Company-type resolution
# ---------------------------------------------------------------------------

SECURITIES_STOCKS = frozenset({
    "SSI", "VND", "HCM", "VCI", "SHS", "MBS", "VIX", "BSC", "CTS", "ORS",
    "TVS", "AGR", "FTS", "BVS", "APS", "DSE", "EVS", "VDS", "TCI", "VIS",
    "WSS", "HBS", "PSI", "SBS", "VNDS",
})

BANK_STOCKS = frozenset({
    "VCB", "BID", "CTG", "TCB", "MBB", "ACB", "VPB", "HDB", "STB", "TPB",
    "VIB", "SHB", "EIB", "MSB", "LPB", "OCB", "SSB", "NAB", "BAB", "ABB",
    "KLB", "VAB", "BVB", "PGB", "SGB", "NVB", "VBB",
})


def resolve_company_type(symbol: str, hint: Optional[str] = None) -> CompanyType:
    """
    Pick the schema variant for a ticker.

    An explicit hint wins; otherwise known securities and bank tickers are
    recognised and everything else is industrial.

    Raises:
        ValueError: if `hint` is not a known company type.
    """
    if hint:
        try:
            return CompanyType(str(hint).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown company type: {hint!r}") from None

    ticker = (symbol or "").strip().upper()
    if ticker in SECURITIES_STOCKS:
        return CompanyType.SECURITIES
    if ticker in BANK_STOCKS:
        return CompanyType.BANK
    return CompanyType.INDUSTRIAL


def get_layout(company_type: CompanyType) -> SheetLayout:
    return LAYOUTS[CompanyType(company_type)]
