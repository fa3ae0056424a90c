"""
build_stock_sheet.py — Build a stock screening workbook from a payload JSON.

Loads a saved analysis payload (MetricSeries, inputs, forecast periods,
crawled metric codes), builds the screening sheet and writes the .xlsx plus a
layout JSON that read_sheet_inputs.py uses to read edits back.

Example (PowerShell):
    python scripts/build_stock_sheet.py `
        --input-json outputs/FPT_payload.json `
        --output-xlsx outputs/FPT_screening.xlsx `
        --current-year 2025
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from stocksheet.core.config import settings
from stocksheet.core.logging import configure_logging, get_logger
from stocksheet.services.grid import MemoryGrid, render_xlsx
from stocksheet.services.ingestion import load_payload_file, load_sheet_inputs
from stocksheet.services.modeling import build_stock_sheet

logger = get_logger(__name__)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Build a stock screening workbook (annual, quarterly and P/E valuation tables)"
    )
    parser.add_argument(
        "--input-json",
        type=str,
        required=True,
        help="Path to the sheet payload JSON file",
    )
    parser.add_argument(
        "--output-xlsx",
        type=str,
        default=None,
        help="Path to the output workbook (default: EXPORT_DIR/<SYMBOL>_screening.xlsx)",
    )
    parser.add_argument(
        "--layout-json",
        type=str,
        default=None,
        help="Path to write the sheet layout JSON (default: next to the workbook)",
    )
    parser.add_argument(
        "--company-type",
        type=str,
        choices=["industrial", "bank", "securities"],
        default=None,
        help="Force the company type instead of detecting it from the ticker",
    )
    parser.add_argument(
        "--current-year",
        type=int,
        default=None,
        help="Pin the current year used to classify forecast periods",
    )

    args = parser.parse_args()
    configure_logging(settings.LOG_LEVEL)

    try:
        input_path = Path(args.input_json)
        if not input_path.exists():
            raise FileNotFoundError(f"Payload JSON file not found: {args.input_json}")

        logger.info("Loading payload from: %s", input_path)
        payload = load_payload_file(input_path)
        inputs = load_sheet_inputs(payload, company_type=args.company_type)

        grid = MemoryGrid()
        result = build_stock_sheet(grid, inputs, current_year=args.current_year)

        output_path = Path(args.output_xlsx or Path(settings.EXPORT_DIR) / f"{inputs.symbol}_screening.xlsx")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(render_xlsx(grid, settings.SHEET_NAME))

        layout_path = Path(args.layout_json or output_path.with_suffix(".layout.json"))
        with layout_path.open("w", encoding="utf-8") as f:
            json.dump(result.to_layout_dict(), f, indent=2, ensure_ascii=False)

        print(f"Successfully built {result.company_type.value} sheet for {result.symbol}")
        print(f"  Workbook: {output_path}")
        print(f"  Layout:   {layout_path}")
        print(f"  Annual columns:  {', '.join(result.annual.visible_years)}")
        print(f"  Quarter columns: {len(result.quarterly.column_infos)}")
        print(f"  Default P/E: {result.default_pe:.2f}  Scenarios: {result.pe_scenarios}")

    except FileNotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    except ValidationError as e:
        print(f"ERROR: Invalid payload:\n{e}", file=sys.stderr)
        sys.exit(1)

    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
