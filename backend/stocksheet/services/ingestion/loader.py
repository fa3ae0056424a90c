"""
loader.py — MetricSeries Loader

Purpose:
- Validate a sheet-build payload (saved analysis + crawled metrics) with
  pydantic and turn it into the SheetInputs record the builders consume.

Payload field names are camelCase, matching the JSON the frontend and the
crawler produce.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stocksheet.core.logging import get_logger
from stocksheet.services.ingestion.transform import (
    overlay_annual_metrics,
    overlay_quarterly_metrics,
    process_forecasts,
    sync_years_to_quarterly,
)
from stocksheet.services.modeling.layouts import resolve_company_type
from stocksheet.services.modeling.types import SheetInputs

logger = get_logger(__name__)


class ForecastPeriod(BaseModel):
    """Stored period row; quarter 0 means the whole year"""
    year: int
    quarter: int = 0
    is_forecast: bool = False
    source: Optional[str] = None


class PeAssumptions(BaseModel):
    """Saved P/E scenario list"""
    model_config = ConfigDict(allow_inf_nan=False)

    values: List[float] = Field(default_factory=list)


class StockSheetPayload(BaseModel):
    """Sheet-build request for one ticker"""
    model_config = ConfigDict(allow_inf_nan=False)

    symbol: str
    companyType: Optional[str] = None
    tradingDate: str = ""
    currentPrice: float = 0.0
    outstandingShares: float = 0.0
    max52W: float = 0.0
    min52W: float = 0.0
    revenueGrowth: float = 0.0
    grossMargin: float = 0.0
    netProfitGrowth: float = 0.0
    annualData: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    quarterlyData: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    forecastYears: List[str] = Field(default_factory=list)
    forecastQuarters: List[str] = Field(default_factory=list)
    periods: List[ForecastPeriod] = Field(default_factory=list)
    metrics: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    yearlyMetrics: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    peAssumptions: Optional[PeAssumptions] = None

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("forecastYears", "forecastQuarters", mode="before")
    @classmethod
    def stringify_labels(cls, v: Any) -> Any:
        """Accept [2025, "2026"] as well as ["2025", "2026"]."""
        if isinstance(v, (list, tuple, set)):
            return [str(item) for item in v]
        return v

    @field_validator(
        "currentPrice", "outstandingShares", "max52W", "min52W",
        "revenueGrowth", "grossMargin", "netProfitGrowth",
        mode="before",
    )
    @classmethod
    def null_is_zero(cls, v: Any) -> Any:
        return 0.0 if v is None else v


def load_payload_file(path: Union[str, Path]) -> StockSheetPayload:
    """Read and validate a payload JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return StockSheetPayload.model_validate(data)


def load_sheet_inputs(
    payload: Union[StockSheetPayload, Mapping[str, Any]],
    company_type: Optional[str] = None,
) -> SheetInputs:
    """
    Validate `payload` and assemble SheetInputs.

    Crawled metric codes are overlaid onto the saved series for the resolved
    company type, then annual-only years are synced into the quarterly series.

    Raises:
        pydantic.ValidationError: if the payload shape is invalid.
        ValueError: if the company type is unknown.
    """
    if not isinstance(payload, StockSheetPayload):
        payload = StockSheetPayload.model_validate(payload)

    ctype = resolve_company_type(payload.symbol, company_type or payload.companyType)

    period_years, period_quarters = process_forecasts(p.model_dump() for p in payload.periods)
    annual = overlay_annual_metrics(payload.yearlyMetrics, payload.annualData, ctype)
    quarterly = overlay_quarterly_metrics(payload.metrics, payload.quarterlyData, ctype)
    quarterly = sync_years_to_quarterly(annual, quarterly)

    saved_pe = payload.peAssumptions.values if payload.peAssumptions else None

    logger.info(
        "Loaded %s (%s): %d annual metrics, %d quarterly metrics, %d forecast years",
        payload.symbol, ctype.value, len(annual), len(quarterly),
        len(period_years | set(payload.forecastYears)),
    )

    return SheetInputs(
        annual_data=annual,
        quarterly_data=quarterly,
        forecast_years=frozenset(payload.forecastYears) | period_years,
        forecast_quarters=frozenset(payload.forecastQuarters) | period_quarters,
        symbol=payload.symbol,
        company_type=ctype.value,
        outstanding_shares=payload.outstandingShares,
        current_price=payload.currentPrice,
        max_52w=payload.max52W,
        min_52w=payload.min52W,
        revenue_growth=payload.revenueGrowth,
        gross_margin=payload.grossMargin,
        net_profit_growth=payload.netProfitGrowth,
        trading_date=payload.tradingDate,
        pe_assumptions=list(saved_pe) if saved_pe else None,
    )
