"""
types.py — Shared Data Layer for the sheet builders

Purpose:
- Define the records passed between the classifier, the table builders, the
  linker and the valuation grid.
- Provide the single lookup helper for reading a nullable scalar out of a
  MetricSeries.

MetricSeries shape (external data, camelCase metric keys):
    annual:    {"netRevenue": {"2023": 1200.0, "2024": None}, ...}
    quarterly: {"netRevenue": {"2023": {"Q1": 300.0, "Q2": 310.0, ...}}, ...}
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from stocksheet.core.logging import get_logger

logger = get_logger(__name__)

MetricSeries = Dict[str, Dict[str, Any]]

QUARTERS = ("Q1", "Q2", "Q3", "Q4")


class CompanyType(str, Enum):
    """Schema variant resolved once per build."""
    INDUSTRIAL = "industrial"
    BANK = "bank"
    SECURITIES = "securities"


def to_number(raw: Any) -> Optional[float]:
    """
    Coerce a source value to float.

    None, booleans, NaN, infinities and strings that do not parse are treated
    as absent.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        try:
            value = float(str(raw).strip().replace(",", ""))
        except ValueError:
            logger.warning("Ignoring non-numeric source value %r", raw)
            return None
    if not math.isfinite(value):
        logger.warning("Ignoring non-finite source value %r", raw)
        return None
    return value


def lookup_value(
    series: MetricSeries,
    metric: Optional[str],
    year: str,
    quarter: Optional[str] = None,
) -> Optional[float]:
    """Value of `metric` for a year (annual) or year+quarter (quarterly), or None."""
    if not metric:
        return None
    by_year = series.get(metric)
    if not isinstance(by_year, dict):
        return None
    entry = by_year.get(year)
    if quarter is None:
        return to_number(entry)
    if not isinstance(entry, dict):
        return None
    return to_number(entry.get(quarter))


@dataclass(frozen=True)
class Period:
    """A year (quarter=0) or one of its quarters (quarter=1..4)."""
    year: int
    quarter: int = 0

    @property
    def is_annual(self) -> bool:
        return self.quarter == 0

    @property
    def quarter_label(self) -> Optional[str]:
        return None if self.is_annual else f"Q{self.quarter}"

    @property
    def override_key(self) -> str:
        """Key used in the forecastQuarters override set ("2024_Q3")."""
        return str(self.year) if self.is_annual else f"{self.year}_Q{self.quarter}"


@dataclass
class SheetInputs:
    """
    Everything one build consumes, as supplied by the MetricSeries loader.

    Percent-style inputs (revenue_growth, gross_margin, net_profit_growth) are
    fractions: 0.15 means 15%.
    """
    annual_data: MetricSeries = field(default_factory=dict)
    quarterly_data: MetricSeries = field(default_factory=dict)
    forecast_years: FrozenSet[str] = frozenset()
    forecast_quarters: FrozenSet[str] = frozenset()
    symbol: str = ""
    company_type: Optional[str] = None
    outstanding_shares: float = 0.0
    current_price: float = 0.0
    max_52w: float = 0.0
    min_52w: float = 0.0
    revenue_growth: float = 0.0
    gross_margin: float = 0.0
    net_profit_growth: float = 0.0
    trading_date: str = ""
    pe_assumptions: Optional[List[float]] = None


@dataclass(frozen=True)
class InputCellReferences:
    """Formula addresses of the editable input cells."""
    current_price: str
    outstanding_shares: str
    revenue_growth: str
    gross_margin: str
    net_profit_growth: str


@dataclass(frozen=True)
class QuarterlyColumnInfo:
    year: str
    quarter: str
    col: int
    is_forecast: bool
