#!/usr/bin/env python3
"""Back-fill URL average positions for past weeks.

Reads the raw data tab, computes one URL average column per requested week
and upserts it into the URL matrix. Weeks already present are replaced in
place; weeks older than the newest column are appended after the existing
columns.

Usage:
    python -m gsc_analyzer.commands.backfill_url_averages --week 2025-09-01 --week 2025-09-08
"""

import argparse
import sys
from datetime import date

from ..analyzers import UrlPositionAnalyzer
from ..config import load_config
from ..exceptions import SectionWriteError
from ..sheets import SheetsClient
from ..weeks import resolve_week_key


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        description="Back-fill URL average position columns from raw data",
    )
    parser.add_argument(
        "--week",
        type=str,
        action="append",
        required=True,
        metavar="YYYY-MM-DD",
        help="Any date inside a week to back-fill (repeatable)",
    )
    parser.add_argument(
        "--country",
        type=str,
        help="Only use rows for this country",
    )
    return parser


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    config = load_config()
    week_start_day = config.analysis.week_start_day
    weeks = sorted({
        resolve_week_key(date.fromisoformat(value), week_start_day)
        for value in args.week
    }, reverse=True)
    country = args.country or config.analysis.url_average_country or None

    sheets = SheetsClient(config.sheets)
    records, skipped = sheets.read_daily_records(
        window=(weeks[-1].start, weeks[0].end),
        default_site=config.gsc.site_url,
    )
    print(f"Read {len(records)} daily rows ({skipped} skipped)")

    analyzer = UrlPositionAnalyzer(week_start_day)
    status = 0
    for week in weeks:
        values = analyzer.from_daily(records, week, country)
        if not values:
            print(f"  {week}: no data, skipped")
            continue

        column = analyzer.build_column(week, sorted(values), values)
        try:
            result = sheets.upsert_url_average_column(config.sheets.url_average_tab, column)
        except SectionWriteError as e:
            print(f"  ✗ {week}: {e}")
            status = 1
            continue
        print(f"  ✓ {week}: {len(values)} URLs, {result.action.value}")

    return status


if __name__ == "__main__":
    sys.exit(main())
