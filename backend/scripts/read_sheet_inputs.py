"""
read_sheet_inputs.py — Read analyst edits back out of a screening workbook.

Uses the layout JSON written by build_stock_sheet.py to locate the input
block, the per-quarter shares row and the P/E scenario column, and writes
them to a JSON file that can be merged into the next payload.

Formula cells are read from Excel's cached results (the workbook must have
been saved by Excel or another calculating application for those to exist).

Example (PowerShell):
    python scripts/read_sheet_inputs.py `
        --xlsx outputs/FPT_screening.xlsx `
        --layout-json outputs/FPT_screening.layout.json `
        --output-json outputs/FPT_edits.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from stocksheet.core.config import settings
from stocksheet.core.logging import configure_logging, get_logger
from stocksheet.services.grid import OpenpyxlGrid
from stocksheet.services.ingestion import extract_sheet_edits

logger = get_logger(__name__)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Read edited inputs, shares and P/E scenarios from a screening workbook"
    )
    parser.add_argument(
        "--xlsx",
        type=str,
        required=True,
        help="Path to the edited workbook",
    )
    parser.add_argument(
        "--layout-json",
        type=str,
        required=True,
        help="Path to the layout JSON written when the workbook was built",
    )
    parser.add_argument(
        "--output-json",
        type=str,
        required=True,
        help="Path to the output edits JSON file",
    )
    parser.add_argument(
        "--sheet-name",
        type=str,
        default=None,
        help="Worksheet name (default: SHEET_NAME setting)",
    )

    args = parser.parse_args()
    configure_logging(settings.LOG_LEVEL)

    try:
        xlsx_path = Path(args.xlsx)
        layout_path = Path(args.layout_json)
        for path in (xlsx_path, layout_path):
            if not path.exists():
                raise FileNotFoundError(f"File not found: {path}")

        with layout_path.open("r", encoding="utf-8") as f:
            layout = json.load(f)

        logger.info("Reading edits from %s", xlsx_path)
        grid = OpenpyxlGrid.load(xlsx_path, sheet_name=args.sheet_name or settings.SHEET_NAME)
        edits = extract_sheet_edits(grid, layout)
        edits["symbol"] = layout.get("symbol")

        output_path = Path(args.output_json)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as f:
            json.dump(edits, f, indent=2, ensure_ascii=False)

        print(f"Successfully read edits and wrote to {args.output_json}")
        print(f"  Inputs: {edits['inputs']}")
        print(f"  Quarters with shares: {sum(len(q) for q in edits['shares_per_quarter'].values())}")
        print(f"  P/E scenarios: {edits['pe_assumptions']}")

    except FileNotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    except KeyError as e:
        print(f"ERROR: Layout JSON is missing {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
