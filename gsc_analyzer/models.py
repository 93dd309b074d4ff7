"""Core data models for GSC Analyzer."""

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any

from .exceptions import KeyResolutionError


class RankingMetric(Enum):
    """Ordering used to rank a week's rows."""
    UNIFIED = "unified"
    CLICKS = "clicks"
    IMPRESSIONS = "impressions"
    CTR = "ctr"
    POSITION = "position"


class TrendDirection(Enum):
    """Week-over-week trend classification."""
    NEW = "new"
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class UpsertAction(Enum):
    """What an upsert did to the section list."""
    REPLACED = "replaced"
    INSERTED_FRONT = "inserted_front"
    APPENDED_TAIL = "appended_tail"


# Column order of a persisted ranking row-block.
RANKING_HEADERS = [
    "Week",
    "Country",
    "Device",
    "Search Query",
    "Page URL",
    "Clicks",
    "Impressions",
    "CTR",
    "Position",
    "Rank",
    "Trend",
    "Clicks Change",
    "Impressions Change",
    "CTR Change",
    "Position Change",
    "Ranking Change",
    "Score",
    "Reason",
]


@dataclass(frozen=True)
class DailyRecord:
    """Single day of Search Console performance for one query/page/country/device."""
    site: str
    date: date
    search_query: str
    page_url: str
    country: str
    device: str
    clicks: int = 0
    impressions: int = 0
    ctr: float = 0.0  # informational, recomputed downstream
    average_position: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for sheet output."""
        return {
            "Site": self.site,
            "Date": self.date.isoformat(),
            "Query": self.search_query,
            "Page": self.page_url,
            "Country": self.country,
            "Device": self.device,
            "Clicks": self.clicks,
            "Impressions": self.impressions,
            "CTR": self.ctr,
            "Position": self.average_position,
        }


@dataclass(frozen=True, order=True)
class WeeklyKey:
    """Inclusive 7-day window identified by its first and last day."""
    start: date
    end: date

    def __post_init__(self):
        if self.end != self.start + timedelta(days=6):
            raise KeyResolutionError(
                f"Week must span 7 days: {self.start} - {self.end}"
            )

    @property
    def label(self) -> str:
        """Canonical text form, e.g. '2025/10/06 - 2025/10/12'."""
        return f"{self.start:%Y/%m/%d} - {self.end:%Y/%m/%d}"

    @property
    def normalized(self) -> str:
        """Comparison form, identical to normalizing the label."""
        return f"{self.start.isoformat()}-{self.end.isoformat()}"

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True, order=True)
class GroupKey:
    """Identity of one performance series tracked across weeks."""
    search_query: str
    page_url: str
    country: str
    device: str


@dataclass(frozen=True)
class WeeklyAggregate:
    """One week of a GroupKey folded from daily records."""
    week: WeeklyKey
    group: GroupKey
    clicks: int = 0
    impressions: int = 0
    position: float = 0.0
    ctr: float = 0.0
    sample_count: int = 0

    @property
    def search_query(self) -> str:
        return self.group.search_query

    @property
    def page_url(self) -> str:
        return self.group.page_url

    @property
    def country(self) -> str:
        return self.group.country

    @property
    def device(self) -> str:
        return self.group.device


@dataclass
class RankingEntry:
    """A weekly aggregate with its rank under one metric."""
    aggregate: WeeklyAggregate
    rank: int
    metric: RankingMetric = RankingMetric.UNIFIED
    reference_score: int | None = None
    ranking_reason: str = ""

    @property
    def week(self) -> WeeklyKey:
        return self.aggregate.week

    @property
    def group(self) -> GroupKey:
        return self.aggregate.group

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for sheet output."""
        agg = self.aggregate
        return {
            "Week": agg.week.label,
            "Country": agg.country,
            "Device": agg.device,
            "Search Query": agg.search_query,
            "Page URL": agg.page_url,
            "Clicks": agg.clicks,
            "Impressions": agg.impressions,
            "CTR": round(agg.ctr, 2),
            "Position": round(agg.position, 2),
            "Rank": self.rank,
            "Score": "" if self.reference_score is None else self.reference_score,
            "Reason": self.ranking_reason,
        }


@dataclass
class TrendDelta:
    """Week-over-week change of one ranked row."""
    entry: RankingEntry
    trend: TrendDirection
    clicks_change: float = 0.0
    impressions_change: float = 0.0
    ctr_change: float = 0.0
    position_change: float = 0.0
    ranking_change: int | None = None
    previous: RankingEntry | None = None

    @property
    def group(self) -> GroupKey:
        return self.entry.group

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for sheet output."""
        result = self.entry.to_dict()
        result.update({
            "Trend": self.trend.value,
            "Clicks Change": self.clicks_change,
            "Impressions Change": self.impressions_change,
            "CTR Change": round(self.ctr_change, 2),
            "Position Change": round(self.position_change, 2),
            "Ranking Change": "" if self.ranking_change is None else self.ranking_change,
        })
        return result


@dataclass
class UrlAverageColumn:
    """One week of per-URL average positions, aligned to a URL ordering."""
    week: WeeklyKey
    values: list[tuple[str, int | None]] = field(default_factory=list)

    def as_mapping(self) -> dict[str, int | None]:
        return dict(self.values)


@dataclass(frozen=True)
class PlainCell:
    """Cell holding plain text; `value` keeps the unformatted value as read."""
    text: str
    value: Any = field(default=None, compare=False)


@dataclass(frozen=True)
class HyperlinkCell:
    """Cell holding a =HYPERLINK(url, label) formula."""
    url: str
    label: str = ""


@dataclass(frozen=True)
class FormulaCell:
    """Cell holding any other formula; `display` is its rendered value."""
    expression: str
    display: str = ""


CellContent = PlainCell | HyperlinkCell | FormulaCell


@dataclass(frozen=True)
class Section:
    """One week's worth of persisted data (a row-block or a column)."""
    key: str
    payload: Any = None


@dataclass(frozen=True)
class UpsertResult:
    """Outcome of a TimeSeriesUpsertStore.upsert call."""
    action: UpsertAction
    index: int
    key: str
