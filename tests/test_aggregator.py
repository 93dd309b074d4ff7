from datetime import date

import pytest

from gsc_analyzer.analyzers.aggregator import WeeklyAggregator, _Bucket
from gsc_analyzer.analyzers.ranking import RankingEngine
from gsc_analyzer.exceptions import AggregationInvariantViolation
from gsc_analyzer.models import DailyRecord, GroupKey, WeeklyKey

WEEK = WeeklyKey(date(2025, 10, 6), date(2025, 10, 12))
PREVIOUS_WEEK = WeeklyKey(date(2025, 9, 29), date(2025, 10, 5))


def record(day, query="q1", page="/a", country="us", device="desktop",
           clicks=0, impressions=0, position=0.0) -> DailyRecord:
    return DailyRecord(
        site="https://example.com/",
        date=day,
        search_query=query,
        page_url=page,
        country=country,
        device=device,
        clicks=clicks,
        impressions=impressions,
        ctr=0.0,
        average_position=position,
    )


def test_two_days_fold_into_one_week() -> None:
    records = [
        record(date(2025, 10, 6), clicks=2, impressions=20, position=5.0),
        record(date(2025, 10, 7), clicks=4, impressions=30, position=3.0),
    ]

    result = WeeklyAggregator(week_start_day=1).aggregate(records)

    assert result.skipped == 0
    assert len(result.aggregates) == 1
    agg = result.aggregates[0]
    assert agg.week == WEEK
    assert agg.week.label == "2025/10/06 - 2025/10/12"
    assert agg.group == GroupKey("q1", "/a", "us", "desktop")
    assert agg.clicks == 6
    assert agg.impressions == 50
    assert agg.position == pytest.approx(4.0)
    assert agg.ctr == pytest.approx(12.0)
    assert agg.sample_count == 2


def test_group_key_separates_devices_and_countries() -> None:
    records = [
        record(date(2025, 10, 6), device="desktop", clicks=1),
        record(date(2025, 10, 6), device="mobile", clicks=2),
        record(date(2025, 10, 6), country="de", clicks=3),
    ]

    result = WeeklyAggregator().aggregate(records)

    assert len(result.aggregates) == 3
    assert sorted(a.clicks for a in result.aggregates) == [1, 2, 3]


def test_zero_impressions_gives_zero_ctr() -> None:
    result = WeeklyAggregator().aggregate([
        record(date(2025, 10, 6), clicks=0, impressions=0, position=7.0),
    ])

    assert result.aggregates[0].ctr == 0.0
    assert result.aggregates[0].position == 7.0


def test_unresolvable_dates_are_skipped_and_counted() -> None:
    records = [
        record(date(2025, 10, 6), clicks=1),
        record("not-a-date", clicks=5),
        record("2025-02-30", clicks=5),
    ]

    result = WeeklyAggregator().aggregate(records)

    assert result.skipped == 2
    assert len(result.aggregates) == 1
    assert result.aggregates[0].clicks == 1


def test_output_is_independent_of_input_order() -> None:
    records = [
        record(date(2025, 10, 6), query="q1", clicks=1, impressions=10, position=2.0),
        record(date(2025, 10, 8), query="q2", clicks=3, impressions=30, position=8.0),
        record(date(2025, 10, 1), query="q1", clicks=2, impressions=15, position=4.0),
        record(date(2025, 10, 9), query="q1", clicks=5, impressions=12, position=3.0),
    ]
    aggregator = WeeklyAggregator()

    forward = aggregator.aggregate(records).aggregates
    backward = aggregator.aggregate(list(reversed(records))).aggregates

    assert forward == backward


def test_newest_week_first() -> None:
    records = [
        record(date(2025, 10, 1), clicks=1),
        record(date(2025, 10, 7), clicks=2),
    ]

    aggregates = WeeklyAggregator().aggregate(records).aggregates

    assert [a.week for a in aggregates] == [WEEK, PREVIOUS_WEEK]


def test_partition_by_week() -> None:
    records = [
        record(date(2025, 10, 1), query="a"),
        record(date(2025, 10, 7), query="b"),
        record(date(2025, 10, 8), query="c"),
    ]
    aggregator = WeeklyAggregator()

    partitions = aggregator.partition_by_week(aggregator.aggregate(records).aggregates)

    assert set(partitions) == {WEEK, PREVIOUS_WEEK}
    assert [a.search_query for a in partitions[WEEK]] == ["b", "c"]


def test_filter_window_is_inclusive() -> None:
    records = [
        record(date(2025, 10, 5)),
        record(date(2025, 10, 6)),
        record(date(2025, 10, 12)),
        record(date(2025, 10, 13)),
    ]

    kept = WeeklyAggregator.filter_window(records, WEEK.start, WEEK.end)

    assert [r.date for r in kept] == [date(2025, 10, 6), date(2025, 10, 12)]


def test_empty_bucket_strict_raises() -> None:
    group = GroupKey("q", "/a", "us", "desktop")

    with pytest.raises(AggregationInvariantViolation):
        WeeklyAggregator(strict=True)._finalize(WEEK, group, _Bucket())


def test_empty_bucket_lenient_zero_fills() -> None:
    group = GroupKey("q", "/a", "us", "desktop")

    agg = WeeklyAggregator()._finalize(WEEK, group, _Bucket())

    assert agg.position == 0.0
    assert agg.ctr == 0.0
    assert agg.sample_count == 0


def test_inexact_positions_do_not_depend_on_order() -> None:
    records = [
        record(date(2025, 10, 6), query="a", position=0.1),
        record(date(2025, 10, 7), query="a", position=0.2),
        record(date(2025, 10, 8), query="a", position=0.3),
        record(date(2025, 10, 6), query="b", position=0.2),
    ]
    aggregator = WeeklyAggregator()

    forward = aggregator.aggregate(records).aggregates
    backward = aggregator.aggregate(list(reversed(records))).aggregates

    assert forward == backward

    ranking = RankingEngine()
    forward_ranks = [(e.aggregate.search_query, e.rank) for e in ranking.rank(forward)]
    backward_ranks = [(e.aggregate.search_query, e.rank) for e in ranking.rank(backward)]
    assert forward_ranks == backward_ranks
