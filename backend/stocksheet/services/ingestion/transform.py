"""
transform.py — MetricSeries transforms (loader side)

Purpose:
- Turn stored forecast-period rows into the forecastYears / forecastQuarters
  override sets.
- Overlay crawled metric-code series onto the saved MetricSeries (official
  data overrides manual input for overlapping periods).
- Make every annual year visible in the quarterly series.
- Read analyst edits (inputs, shares, P/E scenarios) back out of a workbook
  produced by a previous build.

All overlays return new dictionaries; the inputs are never mutated.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Tuple

from stocksheet.core.logging import get_logger
from stocksheet.services.grid.base import Grid
from stocksheet.services.modeling.layouts import get_layout
from stocksheet.services.modeling.periods import parse_year
from stocksheet.services.modeling.sections import INPUT_FIELDS
from stocksheet.services.modeling.types import (
    QUARTERS,
    CompanyType,
    MetricSeries,
    QuarterlyColumnInfo,
    to_number,
)

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Forecast overrides
# ---------------------------------------------------------------------------

def process_forecasts(periods: Iterable[Mapping[str, Any]]) -> Tuple[FrozenSet[str], FrozenSet[str]]:
    """
    Split stored period rows into (forecast_years, forecast_quarters).

    A forecast row with source == "year" or quarter == 0 designates the whole
    year; any other forecast row designates "{year}_Q{n}".
    """
    years = set()
    quarters = set()
    for period in periods:
        if not period.get("is_forecast"):
            continue
        year = parse_year(period.get("year"))
        if year is None:
            logger.warning("Skipping forecast period with malformed year: %r", period)
            continue
        quarter = period.get("quarter") or 0
        if period.get("source") == "year" or quarter == 0:
            years.add(str(year))
        else:
            quarters.add(f"{year}_Q{quarter}")
    return frozenset(years), frozenset(quarters)


# ---------------------------------------------------------------------------
# Metric overlays
# ---------------------------------------------------------------------------

def _split_period_key(period_key: str) -> Tuple[str, str]:
    """'2024_Q3' -> ('2024', 'Q3'); raises ValueError on anything else."""
    parts = str(period_key).split("_")
    if len(parts) != 2:
        raise ValueError(period_key)
    year = parse_year(parts[0])
    quarter = parts[1].strip().upper()
    if year is None or quarter not in QUARTERS:
        raise ValueError(period_key)
    return str(year), quarter


def overlay_quarterly_metrics(
    metrics: Mapping[str, Mapping[str, Any]],
    quarterly_data: MetricSeries,
    company_type: CompanyType = CompanyType.INDUSTRIAL,
) -> MetricSeries:
    """
    Write metric-code series keyed "{year}_Q{n}" over the quarterly series.

    Codes without an indicator mapping for the variant are ignored; malformed
    period keys and non-numeric values are skipped.
    """
    code_map = get_layout(company_type).quarterly_metric_codes
    result = copy.deepcopy(quarterly_data)

    for code, period_values in metrics.items():
        indicator = code_map.get(code)
        if not indicator or not isinstance(period_values, Mapping):
            continue
        series = result.setdefault(indicator, {})
        for period_key, raw in period_values.items():
            try:
                year, quarter = _split_period_key(period_key)
            except ValueError:
                logger.warning("Skipping malformed period key %r for %s", period_key, code)
                continue
            value = to_number(raw)
            if value is None:
                continue
            by_quarter = series.get(year)
            if not isinstance(by_quarter, dict):
                by_quarter = series[year] = {}
            by_quarter[quarter] = value

    return result


def overlay_annual_metrics(
    yearly_metrics: Mapping[str, Mapping[str, Any]],
    annual_data: MetricSeries,
    company_type: CompanyType = CompanyType.INDUSTRIAL,
) -> MetricSeries:
    """Write metric-code series keyed by year over the annual series."""
    code_map = get_layout(company_type).annual_metric_codes
    result = copy.deepcopy(annual_data)

    for code, year_values in yearly_metrics.items():
        indicator = code_map.get(code)
        if not indicator or not isinstance(year_values, Mapping):
            continue
        series = result.setdefault(indicator, {})
        for token, raw in year_values.items():
            year = parse_year(token)
            if year is None:
                logger.warning("Skipping malformed year key %r for %s", token, code)
                continue
            value = to_number(raw)
            if value is None:
                continue
            series[str(year)] = value

    return result


def sync_years_to_quarterly(annual_data: MetricSeries, quarterly_data: MetricSeries) -> MetricSeries:
    """
    Add years present in the annual series but absent from the quarterly one,
    as four null quarters under every quarterly indicator.
    """
    annual_years = {
        year
        for by_year in annual_data.values() if isinstance(by_year, dict)
        for year in by_year
    }
    quarterly_years = {
        year
        for by_year in quarterly_data.values() if isinstance(by_year, dict)
        for year in by_year
    }
    missing = sorted(annual_years - quarterly_years)
    if not missing:
        return quarterly_data

    result = copy.deepcopy(quarterly_data)
    for indicator in list(result):
        if not isinstance(result[indicator], dict):
            result[indicator] = {}
        for year in missing:
            result[indicator].setdefault(year, {q: None for q in QUARTERS})
    logger.debug("Synced %d annual-only years into the quarterly series: %s", len(missing), missing)
    return result


# ---------------------------------------------------------------------------
# Workbook read-back
# ---------------------------------------------------------------------------

def extract_shares_per_quarter(
    grid: Grid,
    shares_row: int,
    column_infos: Iterable[QuarterlyColumnInfo],
) -> Dict[str, Dict[str, float]]:
    """Numeric shares cells by year and quarter; blanks and text are skipped."""
    shares: Dict[str, Dict[str, float]] = {}
    for info in column_infos:
        value = to_number(grid.read_value(shares_row, info.col))
        if value is None:
            continue
        shares.setdefault(info.year, {})[info.quarter] = value
    return shares


def extract_pe_values(grid: Grid, first_row: int, total_rows: int) -> List[float]:
    """Numeric P/E scenario values from column A, top to bottom."""
    values: List[float] = []
    for row in range(first_row, first_row + total_rows):
        value = to_number(grid.read_value(row, 0))
        if value is not None:
            values.append(value)
    return values


def extract_input_values(grid: Grid, input_row_start: int, value_col: int) -> Dict[str, float]:
    """
    Input block values keyed by SheetInputs field name.

    Blank or non-numeric cells read as 0.
    """
    values: Dict[str, float] = {}
    for index, (name, _, _, _) in enumerate(INPUT_FIELDS):
        value = to_number(grid.read_value(input_row_start + 1 + index, value_col))
        values[name] = value if value is not None else 0.0
    return values


def extract_sheet_edits(grid: Grid, layout: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Everything an analyst can edit, using the layout recorded by a build
    (SheetBuildResult.to_layout_dict()).
    """
    input_rows = layout["input"]["rows"]
    column_infos = [
        QuarterlyColumnInfo(
            year=str(c["year"]),
            quarter=c["quarter"],
            col=int(c["col"]),
            is_forecast=bool(c.get("is_forecast")),
        )
        for c in layout["quarterly"]["columns"]
    ]
    valuation = layout["valuation"]
    return {
        "inputs": extract_input_values(grid, min(input_rows.values()) - 1, layout["input"]["value_col"]),
        "shares_per_quarter": extract_shares_per_quarter(
            grid, layout["quarterly"]["shares_row"], column_infos
        ),
        "pe_assumptions": extract_pe_values(
            grid, valuation["start_row"] + 2, valuation["row_count"]
        ),
    }
