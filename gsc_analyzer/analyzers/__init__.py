"""Analysis algorithms for Search Console data."""

from .aggregator import AggregationResult, WeeklyAggregator
from .ranking import RankingEngine
from .trend_tracker import TrendTracker
from .url_position import UrlPositionAnalyzer

__all__ = [
    "AggregationResult",
    "RankingEngine",
    "TrendTracker",
    "UrlPositionAnalyzer",
    "WeeklyAggregator",
]
