"""Application services for team analytics."""

from .analytics import (
    AnalyticsEngine,
    AnalyticsSnapshot,
    AnalyticsTimeframe,
    DashboardStats,
    MemberAnalytics,
    PerformanceReport,
    TeamAnalytics,
    TimeWindow,
    Trend,
    resolve_timeframe,
)
from .cache import TTLCache, CacheEntry, DEFAULT_TTL_MS
from .insights import (
    Insight,
    InsightSeverity,
    Recommendation,
    RecommendationPriority,
    derive_insights,
    derive_recommendations,
)
from .scheduler import RefreshScheduler

__all__ = [
    "AnalyticsEngine",
    "AnalyticsSnapshot",
    "AnalyticsTimeframe",
    "DashboardStats",
    "MemberAnalytics",
    "PerformanceReport",
    "TeamAnalytics",
    "TimeWindow",
    "Trend",
    "resolve_timeframe",
    "TTLCache",
    "CacheEntry",
    "DEFAULT_TTL_MS",
    "Insight",
    "InsightSeverity",
    "Recommendation",
    "RecommendationPriority",
    "derive_insights",
    "derive_recommendations",
    "RefreshScheduler",
]
