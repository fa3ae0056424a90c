"""MetricSeries loading, overlays and workbook read-back."""

from stocksheet.services.ingestion.loader import StockSheetPayload, load_payload_file, load_sheet_inputs
from stocksheet.services.ingestion.transform import (
    extract_input_values,
    extract_pe_values,
    extract_shares_per_quarter,
    extract_sheet_edits,
    overlay_annual_metrics,
    overlay_quarterly_metrics,
    process_forecasts,
    sync_years_to_quarterly,
)

__all__ = [
    "StockSheetPayload",
    "extract_input_values",
    "extract_pe_values",
    "extract_shares_per_quarter",
    "extract_sheet_edits",
    "load_payload_file",
    "load_sheet_inputs",
    "overlay_annual_metrics",
    "overlay_quarterly_metrics",
    "process_forecasts",
    "sync_years_to_quarterly",
]
