"""
periods.py — Period Classifier

Purpose:
- Decide which years appear in the sheet and which years/quarters are
  forecast (formula-driven) rather than historical (reported values).

Rules:
- A year at or after the current year is always forecast.
- The year before the current year is forecast iff no tracked metric has Q4
  data for it.
- Older years are never forecast, and are hidden unless all four quarters
  have data in some tracked metric.
- The visible year list is filter -> fill gaps -> filter again.

All functions take `current_year` explicitly; nothing here reads the clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Any, Iterable, List, Optional, Sequence

from stocksheet.core.logging import get_logger
from stocksheet.services.modeling.types import QUARTERS, MetricSeries, Period, lookup_value

logger = get_logger(__name__)


def parse_year(token: Any) -> Optional[int]:
    """Parse a year key ("2024", 2024). Malformed tokens return None."""
    try:
        return int(str(token).strip())
    except (TypeError, ValueError):
        return None


def extract_years(series: MetricSeries, metrics: Sequence[str]) -> List[str]:
    """
    Union of the years present under any of `metrics`, ascending.

    Banks have no netRevenue, so the variant supplies its own metric list;
    every listed metric contributes years.
    """
    years = set()
    for metric in metrics:
        by_year = series.get(metric)
        if not isinstance(by_year, dict):
            continue
        for token in by_year:
            year = parse_year(token)
            if year is None:
                logger.warning("Skipping malformed year key %r under %s", token, metric)
                continue
            years.add(year)
    return [str(y) for y in sorted(years)]


def has_quarter_data(
    quarterly_data: MetricSeries,
    year: str,
    quarter: str,
    metrics: Sequence[str],
) -> bool:
    """True if any of `metrics` has a non-null value for year+quarter."""
    return any(
        lookup_value(quarterly_data, metric, year, quarter) is not None
        for metric in metrics
    )


def is_forecast_year(
    year: str,
    current_year: int,
    quarterly_data: MetricSeries,
    metrics: Sequence[str],
    forecast_years: AbstractSet[str] = frozenset(),
) -> bool:
    year_int = parse_year(year)
    if year_int is None:
        return year in forecast_years

    # Future years are always forecast
    if year_int >= current_year:
        return True

    # Two or more years old: always historical
    if year_int < current_year - 1:
        return False

    # Previous year: forecast until Q4 is reported
    return not has_quarter_data(quarterly_data, year, "Q4", metrics)


def filter_incomplete_years(
    years: Iterable[str],
    quarterly_data: MetricSeries,
    current_year: int,
    metrics: Sequence[str],
) -> List[str]:
    """
    Drop stale years (older than the previous year) lacking any of Q1..Q4.

    The current year, the previous year and future years are always kept.
    """
    kept: List[str] = []
    for year in years:
        year_int = parse_year(year)
        if year_int is None:
            logger.warning("Dropping malformed year %r", year)
            continue
        if year_int >= current_year - 1:
            kept.append(year)
            continue
        if all(has_quarter_data(quarterly_data, year, q, metrics) for q in QUARTERS):
            kept.append(year)
    return kept


def fill_year_gaps(years: Iterable[str]) -> List[str]:
    """Every integer year between min and max inclusive, as strings."""
    parsed = [y for y in (parse_year(t) for t in years) if y is not None]
    if not parsed:
        return []
    return [str(y) for y in range(min(parsed), max(parsed) + 1)]


def resolve_visible_years(
    candidates: Iterable[str],
    quarterly_data: MetricSeries,
    current_year: int,
    metrics: Sequence[str],
) -> List[str]:
    """filter -> fill gaps -> filter, over the sorted candidate years."""
    unique = {str(y) for y in (parse_year(t) for t in candidates) if y is not None}
    years = sorted(unique, key=int)
    years = filter_incomplete_years(years, quarterly_data, current_year, metrics)
    if years:
        years = fill_year_gaps(years)
        years = filter_incomplete_years(years, quarterly_data, current_year, metrics)
    return years


@dataclass(frozen=True)
class PeriodClassifier:
    """
    Classification context for one build.

    detection_metrics drive year discovery and completeness checks;
    actual_metrics decide whether a single quarter counts as reported.
    """
    quarterly_data: MetricSeries
    detection_metrics: Sequence[str]
    actual_metrics: Sequence[str]
    current_year: int
    forecast_years: AbstractSet[str] = frozenset()
    forecast_quarters: AbstractSet[str] = frozenset()

    def is_forecast_year(self, year: str) -> bool:
        return is_forecast_year(
            year, self.current_year, self.quarterly_data,
            self.detection_metrics, self.forecast_years,
        )

    def visible_years(self, *series: MetricSeries) -> List[str]:
        """
        Visible years from the given series, the forecast-year overrides and
        the current year (always shown as the first forecast column).
        """
        candidates = set(self.forecast_years)
        candidates.add(str(self.current_year))
        for data in series:
            candidates.update(extract_years(data, self.detection_metrics))
        return resolve_visible_years(
            candidates, self.quarterly_data, self.current_year, self.detection_metrics
        )

    def is_forecast_quarter(self, year: str, quarter: str) -> bool:
        """
        A quarter is forecast only when it has no reported data and either it
        or its year is designated forecast.
        """
        if has_quarter_data(self.quarterly_data, year, quarter, self.actual_metrics):
            return False
        year_int = parse_year(year)
        period_key = (
            Period(year_int, QUARTERS.index(quarter) + 1).override_key
            if year_int is not None
            else f"{year}_{quarter}"
        )
        return (
            period_key in self.forecast_quarters
            or year in self.forecast_years
            or self.is_forecast_year(year)
        )
