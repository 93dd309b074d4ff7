"""Week-over-week trend tracking for ranked search performance."""

import logging

from ..models import GroupKey, RankingEntry, TrendDelta, TrendDirection

logger = logging.getLogger(__name__)

DEFAULT_NEW_BASELINE_POSITION = 100.0


class TrendTracker:
    """Compare this week's ranked rows against last week's."""

    def __init__(self, new_baseline_position: float = DEFAULT_NEW_BASELINE_POSITION):
        """Initialize trend tracker.

        Args:
            new_baseline_position: Position assumed for rows absent last week
        """
        self.new_baseline_position = new_baseline_position

    def compare(
        self,
        current: list[RankingEntry],
        previous: list[RankingEntry],
    ) -> list[TrendDelta]:
        """Join current rows to previous rows by GroupKey and classify each.

        Args:
            current: This week's ranked rows
            previous: Last week's ranked rows; empty when unavailable

        Returns:
            One TrendDelta per current row, in the same order
        """
        if not previous:
            logger.info("No previous week data, classifying %d rows as new", len(current))

        previous_by_group: dict[GroupKey, RankingEntry] = {}
        for entry in previous:
            previous_by_group.setdefault(entry.group, entry)

        return [
            self._delta(entry, previous_by_group.get(entry.group))
            for entry in current
        ]

    def _delta(
        self,
        entry: RankingEntry,
        before: RankingEntry | None,
    ) -> TrendDelta:
        now = entry.aggregate

        if before is None:
            return TrendDelta(
                entry=entry,
                trend=TrendDirection.NEW,
                clicks_change=now.clicks,
                impressions_change=now.impressions,
                ctr_change=now.ctr,
                position_change=self.new_baseline_position - now.position,
                ranking_change=None,
                previous=None,
            )

        then = before.aggregate
        delta = TrendDelta(
            entry=entry,
            trend=TrendDirection.STABLE,
            clicks_change=now.clicks - then.clicks,
            impressions_change=now.impressions - then.impressions,
            ctr_change=now.ctr - then.ctr,
            position_change=then.position - now.position,
            ranking_change=before.rank - entry.rank,
            previous=before,
        )
        delta.trend = self.classify(delta)
        return delta

    @staticmethod
    def classify(delta: TrendDelta) -> TrendDirection:
        """Classify a matched row.

        Up needs clicks, impressions and position to all improve; any single
        worsening (rank included) makes it down.
        """
        if (
            delta.clicks_change > 0
            and delta.impressions_change > 0
            and delta.position_change > 0
        ):
            return TrendDirection.UP

        ranking_worse = delta.ranking_change is not None and delta.ranking_change < 0
        if (
            delta.clicks_change < 0
            or delta.impressions_change < 0
            or delta.position_change < 0
            or ranking_worse
        ):
            return TrendDirection.DOWN

        return TrendDirection.STABLE

    def summarize(self, deltas: list[TrendDelta]) -> dict[str, int]:
        """Summarize trend counts."""
        counts = {"total": len(deltas)}
        for direction in TrendDirection:
            counts[direction.value] = 0
        for d in deltas:
            counts[d.trend.value] += 1
        return counts
