from datetime import date

from gsc_analyzer.analyzers.url_position import UrlPositionAnalyzer, normalize_url
from gsc_analyzer.models import DailyRecord, GroupKey, WeeklyAggregate, WeeklyKey

WEEK = WeeklyKey(date(2025, 10, 6), date(2025, 10, 12))
OTHER_WEEK = WeeklyKey(date(2025, 9, 29), date(2025, 10, 5))


def agg(page, position, impressions=0, clicks=0, sample_count=1, country="us",
        query="q", week=WEEK) -> WeeklyAggregate:
    return WeeklyAggregate(
        week=week,
        group=GroupKey(query, page, country, "desktop"),
        clicks=clicks,
        impressions=impressions,
        position=position,
        ctr=0.0,
        sample_count=sample_count,
    )


def daily(day, page, position, impressions=0, clicks=0, country="us") -> DailyRecord:
    return DailyRecord(
        site="https://example.com/",
        date=day,
        search_query="q",
        page_url=page,
        country=country,
        device="desktop",
        clicks=clicks,
        impressions=impressions,
        average_position=position,
    )


def test_normalize_url() -> None:
    assert normalize_url(" HTTPS://Example.com/Blog/ ") == "https://example.com/Blog"
    assert normalize_url("https://example.com/") == "https://example.com/"
    assert normalize_url("https://example.com/a#section") == "https://example.com/a"
    assert normalize_url("https://example.com/a?x=1") == "https://example.com/a?x=1"
    assert normalize_url("") == ""


def test_impression_weighted_average() -> None:
    aggregates = [
        agg("https://example.com/a", 2.0, impressions=100, query="q1"),
        agg("https://example.com/a/", 10.0, impressions=300, query="q2"),
    ]

    result = UrlPositionAnalyzer().from_aggregates(aggregates, WEEK)

    assert result == {"https://example.com/a": 8}


def test_clicks_weight_when_no_impressions() -> None:
    aggregates = [
        agg("/a", 2.0, clicks=3, query="q1"),
        agg("/a", 6.0, clicks=1, query="q2"),
    ]

    assert UrlPositionAnalyzer().from_aggregates(aggregates, WEEK) == {"/a": 3}


def test_no_weights_falls_back_to_plain_mean() -> None:
    aggregates = [
        agg("/a", 2.0, sample_count=1, query="q1"),
        agg("/a", 3.0, sample_count=1, query="q2"),
    ]

    # (2 + 3) / 2 = 2.5 rounds half up
    assert UrlPositionAnalyzer().from_aggregates(aggregates, WEEK) == {"/a": 3}


def test_other_weeks_and_countries_are_ignored() -> None:
    aggregates = [
        agg("/a", 2.0, impressions=10, country="us"),
        agg("/a", 20.0, impressions=10, country="de", query="q2"),
        agg("/a", 50.0, impressions=10, week=OTHER_WEEK, query="q3"),
    ]

    result = UrlPositionAnalyzer().from_aggregates(aggregates, WEEK, country="US")

    assert result == {"/a": 2}


def test_daily_computation() -> None:
    records = [
        daily(date(2025, 10, 6), "/a", 4.0, impressions=10),
        daily(date(2025, 10, 7), "/a", 1.0, impressions=30),
        daily(date(2025, 10, 7), "/b", 7.0),
        daily(date(2025, 10, 7), "/b", 8.0),
        daily(date(2025, 10, 1), "/c", 1.0, impressions=5),
    ]

    result = UrlPositionAnalyzer().from_daily(records, WEEK)

    # /a: (40 + 30) / 40 = 1.75
    assert result == {"/a": 2, "/b": 8}


def test_reconcile_fills_only_missing_urls() -> None:
    primary = {"/a": 3, "/b": None}
    fallback = {"/a": 9, "/b": 4, "/c": 5}

    result = UrlPositionAnalyzer.reconcile(primary, fallback)

    assert result == {"/a": 3, "/b": 4, "/c": 5}
    assert UrlPositionAnalyzer.reconcile(primary, fallback, urls=["/b"]) == {"/a": 3, "/b": 4}


def test_build_column_keeps_absent_urls_blank() -> None:
    column = UrlPositionAnalyzer.build_column(
        WEEK, ["/a", "/b", "/c"], {"/a": 3, "/c": 0}
    )

    assert column.week == WEEK
    assert column.values == [("/a", 3), ("/b", None), ("/c", 0)]
    assert column.as_mapping()["/b"] is None


def test_merge_url_order_appends_new_urls() -> None:
    order = UrlPositionAnalyzer.merge_url_order(
        ["/b", "/a"], ["/c", "/a", "/b/", "/d"]
    )

    assert order == ["/b", "/a", "/c", "/d"]
