"""Main entry point for GSC Analyzer."""

import argparse
import logging
import sys
from datetime import date

from .analyzers import RankingEngine, TrendTracker, UrlPositionAnalyzer, WeeklyAggregator
from .config import AppConfig, load_config
from .exceptions import SectionWriteError
from .gsc import GSCClient
from .models import DailyRecord, RankingEntry, RankingMetric, WeeklyAggregate, WeeklyKey
from .sheets import SheetsClient
from .weeks import last_complete_week, previous_week_key, resolve_week_key


def resolve_window(
    config: AppConfig,
    start_date: date | None = None,
    end_date: date | None = None,
) -> tuple[date, date]:
    """Date window to analyze: the last complete week unless overridden."""
    if start_date is None:
        week = last_complete_week(week_start_day=config.analysis.week_start_day)
        return week.start, week.end
    if end_date is None:
        week = resolve_week_key(start_date, config.analysis.week_start_day)
        return week.start, week.end
    return start_date, end_date


def load_daily_records(
    config: AppConfig,
    source: str,
    window: tuple[date, date],
) -> tuple[list[DailyRecord], int]:
    """Read daily records for the window from the chosen source."""
    start, end = window
    if source == "gsc":
        print(f"Fetching Search Console data {start} to {end}...")
        return GSCClient(config.gsc).fetch_daily_records(start, end)

    print(f"Reading '{config.sheets.raw_data_tab}' for {start} to {end}...")
    client = SheetsClient(config.sheets)
    return client.read_daily_records(window=window, default_site=config.gsc.site_url)


def analyze_week(
    config: AppConfig,
    week: WeeklyKey,
    aggregates: list[WeeklyAggregate],
    records: list[DailyRecord],
    previous: list[RankingEntry],
    country: str | None = None,
) -> dict:
    """Run ranking, trend and URL average analysis for one week."""
    ranking = RankingEngine()
    trend_tracker = TrendTracker(config.analysis.new_trend_baseline_position)
    url_analyzer = UrlPositionAnalyzer(config.analysis.week_start_day)

    views = ranking.all_views(aggregates)
    deltas = trend_tracker.compare(views[RankingMetric.UNIFIED], previous)

    url_values = url_analyzer.from_aggregates(aggregates, week, country)
    daily_values = url_analyzer.from_daily(records, week, country)
    url_values = url_analyzer.reconcile(url_values, daily_values)
    url_column = url_analyzer.build_column(week, sorted(url_values), url_values)

    return {
        "week": week,
        "views": views,
        "deltas": deltas,
        "url_column": url_column,
        "summary": {
            "rows": len(aggregates),
            "trends": trend_tracker.summarize(deltas),
            "urls": len(url_values),
            "urls_without_position": sum(1 for v in url_values.values() if v is None),
        },
    }


def write_results_to_sheets(
    config: AppConfig,
    client: SheetsClient,
    analysis: dict,
) -> list[SectionWriteError]:
    """Upsert one week's sections. Failed sections are returned for retry."""
    week = analysis["week"]
    failures = []

    def attempt(description: str, write) -> None:
        try:
            result = write()
        except SectionWriteError as e:
            print(f"  ✗ {description}: {e}")
            failures.append(e)
            return
        if result is not None:
            print(f"  ✓ {description}: {result.action.value}")

    attempt(
        f"{config.sheets.ranking_tab} {week}",
        lambda: client.upsert_ranking_block(
            config.sheets.ranking_tab,
            week,
            [d.to_dict() for d in analysis["deltas"]],
        ),
    )

    if config.analysis.write_metric_views:
        for metric, entries in analysis["views"].items():
            if metric == RankingMetric.UNIFIED:
                continue
            tab_name = f"{config.sheets.metric_tab_prefix}{metric.value.title()}"
            attempt(
                f"{tab_name} {week}",
                lambda tab_name=tab_name, entries=entries: client.upsert_ranking_block(
                    tab_name, week, [e.to_dict() for e in entries]
                ),
            )

    attempt(
        f"{config.sheets.url_average_tab} {week}",
        lambda: client.upsert_url_average_column(
            config.sheets.url_average_tab, analysis["url_column"]
        ),
    )
    return failures


def print_summary(config: AppConfig, analysis: dict) -> None:
    summary = analysis["summary"]
    trends = summary["trends"]
    print(f"\nWeek {analysis['week']}:")
    print(f"  Rows: {summary['rows']}")
    print(f"  New: {trends['new']}  Up: {trends['up']}  "
          f"Down: {trends['down']}  Stable: {trends['stable']}")
    print(f"  URLs: {summary['urls']} ({summary['urls_without_position']} without position)")

    top = RankingEngine.top_n(
        analysis["views"][RankingMetric.UNIFIED], config.analysis.summary_top_n
    )
    if top:
        print(f"\n  {'#':>3} {'Search Query':<40} {'Pos':>6} {'Clicks':>7} {'Score':>5}")
        for entry in top:
            agg = entry.aggregate
            print(f"  {entry.rank:>3} {agg.search_query[:40]:<40} "
                  f"{agg.position:>6.1f} {agg.clicks:>7} {entry.reference_score:>5}")


def run(
    config: AppConfig,
    source: str = "sheet",
    window: tuple[date, date] | None = None,
    country: str | None = None,
    dry_run: bool = False,
) -> int:
    """Full pipeline. Returns a process exit code."""
    window = window or resolve_window(config)
    records, skipped = load_daily_records(config, source, window)
    print(f"  Loaded {len(records)} daily records ({skipped} skipped)")

    if not records:
        print("No data available for this window")
        return 0

    aggregator = WeeklyAggregator(
        config.analysis.week_start_day,
        strict=config.analysis.strict_invariants,
    )
    result = aggregator.aggregate(records)
    partitions = aggregator.partition_by_week(result.aggregates)
    print(f"  Aggregated into {len(result.aggregates)} rows over {len(partitions)} week(s)")

    country = country or config.analysis.url_average_country or None
    client = SheetsClient(config.sheets)
    failures: list[SectionWriteError] = []
    ranked: dict[WeeklyKey, list[RankingEntry]] = {}

    # Oldest first so each week's trend can use the week computed before it.
    for week in sorted(partitions):
        previous_week = previous_week_key(week)
        if previous_week in ranked:
            previous = ranked[previous_week]
        else:
            previous = client.read_previous_week(config.sheets.ranking_tab, previous_week)
        analysis = analyze_week(
            config, week, partitions[week], records, previous, country
        )
        ranked[week] = analysis["views"][RankingMetric.UNIFIED]
        print_summary(config, analysis)

        if dry_run:
            print("  Dry run, nothing written")
            continue

        print("\nWriting results to Google Sheets...")
        failures.extend(write_results_to_sheets(config, client, analysis))

    if failures:
        print(f"\n{len(failures)} section(s) failed and can be retried:")
        for failure in failures:
            print(f"  - {failure.tab_name}: {failure.week_label}")
        return 1
    return 0


def parse_date_arg(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        print(f"Invalid date format: {value}. Use YYYY-MM-DD")
        sys.exit(1)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="GSC Analyzer - weekly Search Console rankings and trends"
    )
    parser.add_argument(
        "--source",
        choices=["sheet", "gsc"],
        default="sheet",
        help="Read daily records from the raw data tab or the Search Console API",
    )
    parser.add_argument(
        "--start-date",
        type=str,
        metavar="YYYY-MM-DD",
        help="Analyze the week containing this date (default: last complete week)",
    )
    parser.add_argument(
        "--end-date",
        type=str,
        metavar="YYYY-MM-DD",
        help="With --start-date, analyze this explicit window instead of one week",
    )
    parser.add_argument(
        "--country",
        type=str,
        help="Country filter for the URL average position matrix",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Analyze but don't write to sheets",
    )
    parser.add_argument(
        "--test-sheets",
        action="store_true",
        help="Test Google Sheets connection only",
    )
    parser.add_argument(
        "--test-gsc",
        action="store_true",
        help="Test Search Console connection only",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log engine details",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Load configuration
    try:
        config = load_config()
    except Exception as e:
        print(f"Error loading configuration: {e}")
        print("Make sure .env file exists with required settings")
        sys.exit(1)

    if args.test_sheets:
        print("Testing Google Sheets connection...")
        success = SheetsClient(config.sheets).test_connection()
        print("✓ Connected" if success else "✗ Failed to connect")
        sys.exit(0 if success else 1)

    if args.test_gsc:
        print("Testing Search Console connection...")
        success = GSCClient(config.gsc).test_connection()
        print("✓ Connected" if success else "✗ Failed to connect")
        sys.exit(0 if success else 1)

    start_date = parse_date_arg(args.start_date)
    end_date = parse_date_arg(args.end_date)
    if end_date and not start_date:
        print("Error: --end-date requires --start-date")
        sys.exit(1)

    window = resolve_window(config, start_date, end_date)
    print(f"\n{'='*60}")
    print(f"Analyzing {window[0]} to {window[1]}")
    print('='*60)

    sys.exit(run(config, args.source, window, args.country, args.dry_run))


if __name__ == "__main__":
    main()
