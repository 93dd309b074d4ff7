from datetime import date

from gsc_analyzer.analyzers.ranking import RankingEngine, round_half_up
from gsc_analyzer.models import GroupKey, RankingMetric, WeeklyAggregate, WeeklyKey

WEEK = WeeklyKey(date(2025, 10, 6), date(2025, 10, 12))
PREVIOUS_WEEK = WeeklyKey(date(2025, 9, 29), date(2025, 10, 5))


def agg(query, position, clicks, impressions=100, ctr=1.0, week=WEEK) -> WeeklyAggregate:
    return WeeklyAggregate(
        week=week,
        group=GroupKey(query, f"/{query}", "us", "desktop"),
        clicks=clicks,
        impressions=impressions,
        position=position,
        ctr=ctr,
        sample_count=7,
    )


def test_position_then_clicks_decides_order() -> None:
    aggregates = [
        agg("a", position=2.0, clicks=5, ctr=5.0),
        agg("b", position=2.0, clicks=10, ctr=10.0),
        agg("c", position=1.0, clicks=1, ctr=1.0),
    ]

    entries = RankingEngine().rank(aggregates)

    assert [e.aggregate.search_query for e in entries] == ["c", "b", "a"]
    assert [e.rank for e in entries] == [1, 2, 3]
    assert all(e.metric == RankingMetric.UNIFIED for e in entries)


def test_impressions_and_ctr_break_later_ties() -> None:
    aggregates = [
        agg("low_ctr", position=3.0, clicks=5, impressions=200, ctr=2.0),
        agg("high_ctr", position=3.0, clicks=5, impressions=200, ctr=4.0),
        agg("more_impr", position=3.0, clicks=5, impressions=300, ctr=1.0),
    ]

    entries = RankingEngine().rank(aggregates)

    assert [e.aggregate.search_query for e in entries] == ["more_impr", "high_ctr", "low_ctr"]


def test_full_ties_keep_input_order() -> None:
    aggregates = [agg("first", 2.0, 5), agg("second", 2.0, 5)]

    entries = RankingEngine().rank(aggregates)

    assert [e.aggregate.search_query for e in entries] == ["first", "second"]
    assert entries[1].ranking_reason == "similar performance"


def test_ranks_are_gapless_per_week() -> None:
    aggregates = [
        agg("a", 1.0, 1),
        agg("b", 2.0, 1, week=PREVIOUS_WEEK),
        agg("c", 3.0, 1),
        agg("d", 4.0, 1, week=PREVIOUS_WEEK),
        agg("e", 5.0, 1),
    ]

    entries = RankingEngine().rank(aggregates)

    current = sorted(e.rank for e in entries if e.week == WEEK)
    previous = sorted(e.rank for e in entries if e.week == PREVIOUS_WEEK)
    assert current == [1, 2, 3]
    assert previous == [1, 2]
    assert entries[0].week == WEEK


def test_ranking_reason_describes_differences() -> None:
    aggregates = [
        agg("a", position=2.0, clicks=5, ctr=5.0),
        agg("b", position=2.0, clicks=10, ctr=10.0),
        agg("c", position=1.0, clicks=1, ctr=1.0),
    ]

    reasons = [e.ranking_reason for e in RankingEngine().rank(aggregates)]

    assert reasons == [
        "top performer",
        "worse position, more clicks, higher ctr",
        "fewer clicks, lower ctr",
    ]


def test_each_week_has_its_own_top_performer() -> None:
    entries = RankingEngine().rank([
        agg("a", 1.0, 1),
        agg("b", 2.0, 1, week=PREVIOUS_WEEK),
    ])

    assert [e.ranking_reason for e in entries] == ["top performer", "top performer"]


def test_single_metric_views() -> None:
    aggregates = [
        agg("a", position=5.0, clicks=1, impressions=500, ctr=0.2),
        agg("b", position=1.0, clicks=9, impressions=100, ctr=9.0),
        agg("c", position=3.0, clicks=4, impressions=300, ctr=1.3),
    ]

    views = RankingEngine().all_views(aggregates)

    def order(metric):
        return [e.aggregate.search_query for e in views[metric]]

    assert set(views) == set(RankingMetric)
    assert order(RankingMetric.CLICKS) == ["b", "c", "a"]
    assert order(RankingMetric.IMPRESSIONS) == ["a", "c", "b"]
    assert order(RankingMetric.CTR) == ["b", "c", "a"]
    assert order(RankingMetric.POSITION) == ["b", "c", "a"]
    for metric in RankingMetric:
        assert [e.rank for e in views[metric]] == [1, 2, 3]
        assert all(e.metric == metric for e in views[metric])


def test_reference_score() -> None:
    strong = agg("a", position=4.0, clicks=6, impressions=50, ctr=12.0)
    weak = agg("b", position=30.0, clicks=0, impressions=25, ctr=0.05)

    assert RankingEngine.reference_score(strong) == 80
    assert RankingEngine.reference_score(weak) == 15


def test_reference_score_is_stored_on_unified_entries() -> None:
    entries = RankingEngine().rank([agg("a", position=4.0, clicks=6, impressions=50, ctr=12.0)])

    assert entries[0].reference_score == 80


def test_round_half_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(3.49) == 3


def test_top_n() -> None:
    entries = RankingEngine().rank([agg(q, float(i), 1) for i, q in enumerate("abcde", 1)])

    assert [e.rank for e in RankingEngine.top_n(entries, 2)] == [1, 2]
