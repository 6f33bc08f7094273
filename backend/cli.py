from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from config import load_settings
from services.stock_data_client import ProgressState, StockDataClient

logger = logging.getLogger(__name__)


def build_parser(default_url: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Download historical stock data as CSV (e.g. AAPL, MSFT, GOOG)",
    )
    parser.add_argument("symbols", help="comma-separated stock symbols")
    parser.add_argument("--start", required=True, help="start date (YYYY-MM-DD)")
    parser.add_argument("--end", required=True, help="end date (YYYY-MM-DD)")
    parser.add_argument("--interval", choices=["1d", "1wk", "1mo"], default="1d")
    parser.add_argument("--url", default=default_url, help="API base URL")
    parser.add_argument("--output-dir", type=Path, default=Path("."))
    return parser


def _print_progress(state: ProgressState) -> None:
    print(state.describe())
    if state.error:
        print(f"  {state.error}")


def main(argv: Optional[List[str]] = None) -> int:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level)

    args = build_parser(settings.api_url).parse_args(argv)
    client = StockDataClient(args.url, output_dir=args.output_dir, on_progress=_print_progress)

    result = client.submit(args.symbols, args.start, args.end, args.interval)
    if not result.ok:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    print(f"Saved {result.path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
