#!/usr/bin/env python3
"""Fetch daily Search Console data and append it to the raw data tab.

Usage:
    python -m gsc_analyzer.commands.fetch_gsc_data
    python -m gsc_analyzer.commands.fetch_gsc_data --start-date 2025-10-06 --end-date 2025-10-12
"""

import argparse
import sys
from datetime import date

from ..config import load_config
from ..gsc import GSCClient
from ..sheets import SheetsClient
from ..weeks import last_complete_week


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        description="Fetch daily Search Console data into Google Sheets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Fetch the last complete week
    python -m gsc_analyzer.commands.fetch_gsc_data

    # Fetch an explicit range and only print it
    python -m gsc_analyzer.commands.fetch_gsc_data --start-date 2025-10-06 --end-date 2025-10-12 --dry-run

Note: Search Console data lags by roughly two days.
        """,
    )
    parser.add_argument(
        "--start-date",
        type=str,
        help="Start date (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--end-date",
        type=str,
        help="End date (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the fetched rows instead of appending them",
    )
    return parser


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    try:
        config = load_config()
    except Exception as e:
        print(f"[ERROR] Failed to load configuration: {e}")
        return 1

    if args.start_date and args.end_date:
        start_date = date.fromisoformat(args.start_date)
        end_date = date.fromisoformat(args.end_date)
    else:
        week = last_complete_week(week_start_day=config.analysis.week_start_day)
        start_date, end_date = week.start, week.end
        print(f"Using last complete week: {start_date} to {end_date}")

    if end_date < start_date:
        print(f"[ERROR] End date {end_date} is before start date {start_date}")
        return 1

    client = GSCClient(config.gsc)
    try:
        records, skipped = client.fetch_daily_records(start_date, end_date)
    except RuntimeError as e:
        print(f"[FAILED] {e}")
        return 1

    print(f"Fetched {len(records)} rows ({skipped} skipped)")

    if args.dry_run:
        print(f"{'Date':<11} {'Query':<35} {'Clicks':>7} {'Impr':>7} {'Pos':>6}")
        print("-" * 70)
        for record in records:
            print(f"{record.date.isoformat():<11} {record.search_query[:35]:<35} "
                  f"{record.clicks:>7} {record.impressions:>7} {record.average_position:>6.1f}")
        return 0

    sheets = SheetsClient(config.sheets)
    written = sheets.append_daily_records(records)
    print(f"[SUCCESS] Appended {written} rows to '{config.sheets.raw_data_tab}'")
    return 0


if __name__ == "__main__":
    sys.exit(main())
