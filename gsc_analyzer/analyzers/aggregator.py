"""Weekly rollup of daily search performance records."""

import logging
import math
from dataclasses import dataclass, field
from datetime import date

from ..exceptions import AggregationInvariantViolation
from ..models import DailyRecord, GroupKey, WeeklyAggregate, WeeklyKey
from ..weeks import MONDAY, week_key_for

logger = logging.getLogger(__name__)


@dataclass
class AggregationResult:
    """Weekly aggregates plus the number of records that could not be bucketed."""
    aggregates: list[WeeklyAggregate] = field(default_factory=list)
    skipped: int = 0


@dataclass
class _Bucket:
    clicks: int = 0
    impressions: int = 0
    positions: list[float] = field(default_factory=list)
    count: int = 0


class WeeklyAggregator:
    """Groups daily records into (week, query, page, country, device) buckets."""

    def __init__(self, week_start_day: int = MONDAY, strict: bool = False):
        """Initialize aggregator.

        Args:
            week_start_day: First day of the week, 0=Sunday .. 6=Saturday
            strict: Raise on invariant violations instead of 0-filling
        """
        self.week_start_day = week_start_day
        self.strict = strict

    @staticmethod
    def group_key(record: DailyRecord) -> GroupKey:
        return GroupKey(
            search_query=record.search_query,
            page_url=record.page_url,
            country=record.country,
            device=record.device,
        )

    def aggregate(self, records: list[DailyRecord]) -> AggregationResult:
        """Fold daily records into weekly aggregates.

        Output is ordered newest week first, then by group key, so the result
        does not depend on input order.
        """
        buckets: dict[tuple[WeeklyKey, GroupKey], _Bucket] = {}
        skipped = 0

        for record in records:
            week = week_key_for(record.date, self.week_start_day)
            if week is None:
                skipped += 1
                continue

            key = (week, self.group_key(record))
            bucket = buckets.get(key)
            if bucket is None:
                bucket = buckets[key] = _Bucket()
            bucket.clicks += record.clicks or 0
            bucket.impressions += record.impressions or 0
            bucket.positions.append(record.average_position or 0.0)
            bucket.count += 1

        if skipped:
            logger.warning("Skipped %d records with unresolvable dates", skipped)

        aggregates = [
            self._finalize(week, group, bucket)
            for (week, group), bucket in buckets.items()
        ]
        aggregates.sort(key=lambda a: a.group)
        aggregates.sort(key=lambda a: a.week, reverse=True)
        return AggregationResult(aggregates=aggregates, skipped=skipped)

    def _finalize(
        self,
        week: WeeklyKey,
        group: GroupKey,
        bucket: _Bucket,
    ) -> WeeklyAggregate:
        if bucket.count == 0:
            if self.strict:
                raise AggregationInvariantViolation(
                    f"No records folded into {week} / {group}"
                )
            logger.warning("Empty bucket for %s / %s, filling with zeros", week, group)

        # fsum is exact, so the mean does not depend on record order.
        position = math.fsum(bucket.positions) / bucket.count if bucket.count else 0.0
        ctr = (
            bucket.clicks / bucket.impressions * 100
            if bucket.impressions > 0
            else 0.0
        )
        return WeeklyAggregate(
            week=week,
            group=group,
            clicks=bucket.clicks,
            impressions=bucket.impressions,
            position=position,
            ctr=ctr,
            sample_count=bucket.count,
        )

    @staticmethod
    def filter_window(
        records: list[DailyRecord],
        start: date,
        end: date,
    ) -> list[DailyRecord]:
        """Keep records dated inside the inclusive window."""
        return [r for r in records if start <= r.date <= end]

    @staticmethod
    def partition_by_week(
        aggregates: list[WeeklyAggregate],
    ) -> dict[WeeklyKey, list[WeeklyAggregate]]:
        """Group aggregates by week, preserving their order within each week."""
        partitions: dict[WeeklyKey, list[WeeklyAggregate]] = {}
        for aggregate in aggregates:
            partitions.setdefault(aggregate.week, []).append(aggregate)
        return partitions
