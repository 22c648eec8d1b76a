"""Marketing dashboard entrypoint."""

from __future__ import annotations

import argparse
from pathlib import Path

from src.application.report_service import DEFAULT_INPUT_PATH, DEFAULT_OUTPUT_DIR, run_dashboard_pipeline


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the static marketing contribution dashboard.")
    parser.add_argument("--input", type=Path, default=DEFAULT_INPUT_PATH, help="JSON/CSV/Excel/Parquet dataset")
    parser.add_argument("--output-dir", type=Path, default=DEFAULT_OUTPUT_DIR, help="directory for summary.json, dashboard.html, summary.xlsx")
    parser.add_argument("--no-cache", action="store_true", help="always re-read the input file")
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    run_dashboard_pipeline(input_path=args.input, output_dir=args.output_dir, use_cache=not args.no_cache)


if __name__ == "__main__":
    main()
