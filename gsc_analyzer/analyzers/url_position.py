"""Impression-weighted average position per URL."""

from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit

from ..models import DailyRecord, UrlAverageColumn, WeeklyAggregate, WeeklyKey
from ..weeks import MONDAY, same_week, week_key_for
from .ranking import round_half_up


def normalize_url(url: str) -> str:
    """Canonical URL form used to group rows and match sheet rows.

    Trims whitespace, drops the fragment, lowercases scheme and host and
    removes a trailing slash except on the root path.
    """
    text = (url or "").strip()
    if not text:
        return ""
    parts = urlsplit(text)
    path = parts.path
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return urlunsplit((
        parts.scheme.lower(),
        parts.netloc.lower(),
        path,
        parts.query,
        "",
    ))


@dataclass
class _WeightedPosition:
    weighted_sum: float = 0.0
    weight_sum: float = 0.0
    plain_sum: float = 0.0
    plain_count: int = 0

    def add(self, position: float, weight: float) -> None:
        self.weighted_sum += position * weight
        self.weight_sum += weight
        self.plain_sum += position
        self.plain_count += 1

    def result(self) -> int | None:
        if self.weight_sum > 0:
            return round_half_up(self.weighted_sum / self.weight_sum)
        if self.plain_count:
            return round_half_up(self.plain_sum / self.plain_count)
        return None


def _country_matches(country: str, wanted: str | None) -> bool:
    if not wanted:
        return True
    return (country or "").strip().lower() == wanted.strip().lower()


class UrlPositionAnalyzer:
    """Computes per-URL average positions for one week.

    Weights are impressions, falling back to clicks, falling back to the
    number of contributing days. A URL with no usable weight gets the plain
    mean of its positions. A URL with no rows at all is absent (None), which
    is distinct from a position of 0.
    """

    def __init__(self, week_start_day: int = MONDAY):
        self.week_start_day = week_start_day

    def from_aggregates(
        self,
        aggregates: list[WeeklyAggregate],
        week: WeeklyKey,
        country: str | None = None,
    ) -> dict[str, int | None]:
        """Average position per normalized URL from weekly aggregates."""
        totals: dict[str, _WeightedPosition] = {}
        for agg in aggregates:
            if not same_week(agg.week, week) or not _country_matches(agg.country, country):
                continue
            url = normalize_url(agg.page_url)
            if not url:
                continue
            if agg.impressions > 0:
                weight = agg.impressions
            elif agg.clicks > 0:
                weight = agg.clicks
            else:
                weight = agg.sample_count or 1
            totals.setdefault(url, _WeightedPosition()).add(agg.position, weight)

        return {url: total.result() for url, total in totals.items()}

    def from_daily(
        self,
        records: list[DailyRecord],
        week: WeeklyKey,
        country: str | None = None,
    ) -> dict[str, int | None]:
        """Same computation directly over daily records."""
        totals: dict[str, _WeightedPosition] = {}
        for record in records:
            if not _country_matches(record.country, country):
                continue
            record_week = week_key_for(record.date, self.week_start_day)
            if record_week is None or record_week != week:
                continue
            url = normalize_url(record.page_url)
            if not url:
                continue
            weight = record.impressions or record.clicks or 1
            totals.setdefault(url, _WeightedPosition()).add(
                record.average_position, weight
            )

        return {url: total.result() for url, total in totals.items()}

    @staticmethod
    def reconcile(
        primary: dict[str, int | None],
        fallback: dict[str, int | None],
        urls: list[str] | None = None,
    ) -> dict[str, int | None]:
        """Fill URLs missing from the aggregate pass with daily-pass values.

        Args:
            primary: Results from weekly aggregates
            fallback: Results from daily records
            urls: Restrict reconciliation to these URLs (all fallback URLs if None)
        """
        result = dict(primary)
        candidates = fallback.keys() if urls is None else [normalize_url(u) for u in urls]
        for url in candidates:
            if result.get(url) is None and fallback.get(url) is not None:
                result[url] = fallback[url]
        return result

    @staticmethod
    def merge_url_order(existing: list[str], new: list[str]) -> list[str]:
        """Keep existing URL order and append unseen URLs in first-seen order."""
        order = []
        seen = set()
        for url in list(existing) + list(new):
            key = normalize_url(url)
            if key and key not in seen:
                seen.add(key)
                order.append(key)
        return order

    @staticmethod
    def build_column(
        week: WeeklyKey,
        url_order: list[str],
        values: dict[str, int | None],
    ) -> UrlAverageColumn:
        """Align computed values to the URL ordering; missing URLs are None."""
        return UrlAverageColumn(
            week=week,
            values=[(url, values.get(normalize_url(url))) for url in url_order],
        )
