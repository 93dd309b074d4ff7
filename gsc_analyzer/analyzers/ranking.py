"""Multi-criteria ranking of weekly aggregates."""

import math

from ..models import RankingEntry, RankingMetric, WeeklyAggregate
from .aggregator import WeeklyAggregator

# Reference score weights and scaling. Fixed business parameters.
POSITION_WEIGHT = 0.4
CLICKS_WEIGHT = 0.3
IMPRESSIONS_WEIGHT = 0.2
CTR_WEIGHT = 0.1
POSITION_PENALTY_PER_RANK = 5
CLICKS_FULL_SCORE = 10
IMPRESSIONS_FULL_SCORE = 50
CTR_MULTIPLIER = 1000

TOP_PERFORMER = "top performer"
SIMILAR_PERFORMANCE = "similar performance"


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def _unified_sort_key(aggregate: WeeklyAggregate) -> tuple:
    return (
        aggregate.position,
        -aggregate.clicks,
        -aggregate.impressions,
        -aggregate.ctr,
    )


_METRIC_SORT_KEYS = {
    RankingMetric.UNIFIED: _unified_sort_key,
    RankingMetric.CLICKS: lambda a: -a.clicks,
    RankingMetric.IMPRESSIONS: lambda a: -a.impressions,
    RankingMetric.CTR: lambda a: -a.ctr,
    RankingMetric.POSITION: lambda a: a.position,
}


class RankingEngine:
    """Ranks rows within each week.

    The unified ordering compares position (ascending), then clicks,
    impressions and ctr (all descending); the first criterion that differs
    decides. Rows equal on all four keep their input order because the sort
    is stable, so their relative rank is implementation-defined.
    """

    def rank(self, aggregates: list[WeeklyAggregate]) -> list[RankingEntry]:
        """Unified ranking with reference scores and ranking reasons."""
        entries = self.rank_by_metric(aggregates, RankingMetric.UNIFIED)

        previous: RankingEntry | None = None
        for entry in entries:
            if previous is not None and previous.week != entry.week:
                previous = None
            entry.reference_score = self.reference_score(entry.aggregate)
            entry.ranking_reason = self.ranking_reason(
                entry.aggregate,
                previous.aggregate if previous else None,
            )
            previous = entry
        return entries

    def rank_by_metric(
        self,
        aggregates: list[WeeklyAggregate],
        metric: RankingMetric,
    ) -> list[RankingEntry]:
        """Rank each week independently under one metric, 1..N per week."""
        sort_key = _METRIC_SORT_KEYS[metric]
        partitions = WeeklyAggregator.partition_by_week(aggregates)

        entries = []
        for week in sorted(partitions, reverse=True):
            ordered = sorted(partitions[week], key=sort_key)
            for i, aggregate in enumerate(ordered, 1):
                entries.append(RankingEntry(aggregate=aggregate, rank=i, metric=metric))
        return entries

    def all_views(
        self,
        aggregates: list[WeeklyAggregate],
    ) -> dict[RankingMetric, list[RankingEntry]]:
        """Unified ranking plus the four single-metric views."""
        views = {RankingMetric.UNIFIED: self.rank(aggregates)}
        for metric in RankingMetric:
            if metric != RankingMetric.UNIFIED:
                views[metric] = self.rank_by_metric(aggregates, metric)
        return views

    @staticmethod
    def reference_score(aggregate: WeeklyAggregate) -> int:
        """Composite 0-100 score."""
        position_score = max(0.0, 100 - aggregate.position * POSITION_PENALTY_PER_RANK)
        clicks_score = min(100.0, aggregate.clicks / CLICKS_FULL_SCORE * 100)
        impressions_score = min(
            100.0, aggregate.impressions / IMPRESSIONS_FULL_SCORE * 100
        )
        ctr_score = min(100.0, aggregate.ctr * CTR_MULTIPLIER)

        return round_half_up(
            POSITION_WEIGHT * position_score
            + CLICKS_WEIGHT * clicks_score
            + IMPRESSIONS_WEIGHT * impressions_score
            + CTR_WEIGHT * ctr_score
        )

    @staticmethod
    def ranking_reason(
        current: WeeklyAggregate,
        better: WeeklyAggregate | None,
    ) -> str:
        """Explain how a row differs from the row ranked just above it."""
        if better is None:
            return TOP_PERFORMER

        reasons = []
        if current.position > better.position:
            reasons.append("worse position")
        elif current.position < better.position:
            reasons.append("better position")

        if current.clicks < better.clicks:
            reasons.append("fewer clicks")
        elif current.clicks > better.clicks:
            reasons.append("more clicks")

        if current.impressions < better.impressions:
            reasons.append("fewer impressions")
        elif current.impressions > better.impressions:
            reasons.append("more impressions")

        if current.ctr < better.ctr:
            reasons.append("lower ctr")
        elif current.ctr > better.ctr:
            reasons.append("higher ctr")

        return ", ".join(reasons) if reasons else SIMILAR_PERFORMANCE

    @staticmethod
    def top_n(entries: list[RankingEntry], n: int) -> list[RankingEntry]:
        """Entries ranked 1..n in every week."""
        return [e for e in entries if e.rank <= n]
