"""Team Analytics Aggregation Engine.

This module turns raw team records into composite analytics:
- Time-windowed task, financial, team and event statistics
- Team and per-member productivity and reliability scoring
- Period-over-period trends against the preceding window
- Insight and recommendation bundles for dashboards and reports
- Performance reports for export collaborators

Snapshots are memoized in a TTL cache keyed by timeframe (or member id) so
repeated dashboard requests reuse the last aggregation pass.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..config import AnalyticsConfig, get_config
from ..errors import AggregationFailed, AnalyticsError, InvalidTimeframe, StoreUnavailable
from ..records import Record, TaskRecord, TransactionRecord
from ..store import EVENTS, MONEY_COLLECTIONS, TASKS, TRANSACTIONS, USERS, RecordStore, safe_fetch
from ..utils.datetime import Clock, SystemClock, to_iso_string
from . import metrics
from .cache import TTLCache
from .insights import Insight, InsightSeverity, Recommendation, derive_insights, derive_recommendations

logger = logging.getLogger(__name__)


class AnalyticsTimeframe(Enum):
    """Named aggregation periods"""
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


TIMEFRAME_DURATIONS = {
    AnalyticsTimeframe.WEEK: timedelta(days=7),
    AnalyticsTimeframe.MONTH: timedelta(days=30),
    AnalyticsTimeframe.QUARTER: timedelta(days=90),
    AnalyticsTimeframe.YEAR: timedelta(days=365),
}

UPCOMING_EVENT = "upcoming"
ACTIVE_EVENT = "active"
COMPLETED_EVENT = "completed"


def resolve_timeframe(timeframe: Union[str, AnalyticsTimeframe]) -> AnalyticsTimeframe:
    """Resolve a timeframe name, raising InvalidTimeframe for unknown names."""
    if isinstance(timeframe, AnalyticsTimeframe):
        return timeframe
    try:
        return AnalyticsTimeframe(str(timeframe).strip().lower())
    except ValueError:
        raise InvalidTimeframe(timeframe) from None


@dataclass(frozen=True)
class TimeWindow:
    """A resolved [start, end) interval for a named timeframe"""
    timeframe: AnalyticsTimeframe
    start: datetime
    end: datetime

    @classmethod
    def resolve(cls, timeframe: Union[str, AnalyticsTimeframe], now: datetime) -> "TimeWindow":
        """Anchor a rolling window of the timeframe's length at ``now``."""
        resolved = resolve_timeframe(timeframe)
        return cls(timeframe=resolved, start=now - TIMEFRAME_DURATIONS[resolved], end=now)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def previous(self) -> "TimeWindow":
        """The window of equal length immediately before this one."""
        return TimeWindow(timeframe=self.timeframe, start=self.start - self.duration, end=self.start)

    def contains(self, moment: Optional[datetime]) -> bool:
        return moment is not None and self.start <= moment < self.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timeframe': self.timeframe.value,
            'start': to_iso_string(self.start),
            'end': to_iso_string(self.end),
        }


@dataclass(frozen=True)
class Trend:
    """Change of a metric against the preceding window"""
    current: float
    previous: float
    change: Optional[float]  # percent, None without a baseline
    direction: str  # "up", "down", "stable"

    @classmethod
    def between(cls, current: float, previous: float) -> "Trend":
        if current > previous:
            direction = "up"
        elif current < previous:
            direction = "down"
        else:
            direction = "stable"
        return cls(
            current=current,
            previous=previous,
            change=metrics.percent_change(current, previous),
            direction=direction,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'current': self.current,
            'previous': self.previous,
            'change': self.change,
            'direction': self.direction,
        }


def _frozen(values: Dict[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(values))


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """Immutable aggregation result for one timeframe"""
    window: TimeWindow
    generated_at: datetime
    tasks: Mapping[str, float]
    financial: Mapping[str, float]
    team: Mapping[str, int]
    events: Mapping[str, int]
    productivity: Mapping[str, float]
    trends: Mapping[str, Trend] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def timeframe(self) -> str:
        return self.window.timeframe.value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'timeframe': self.timeframe,
            'period': self.window.to_dict(),
            'generated_at': to_iso_string(self.generated_at),
            'tasks': dict(self.tasks),
            'financial': dict(self.financial),
            'team': dict(self.team),
            'events': dict(self.events),
            'productivity': dict(self.productivity),
            'trends': {name: trend.to_dict() for name, trend in self.trends.items()},
        }


@dataclass(frozen=True)
class TeamAnalytics:
    """A snapshot bundled with its derived insights and recommendations"""
    snapshot: AnalyticsSnapshot
    insights: Tuple[Insight, ...]
    recommendations: Tuple[Recommendation, ...]

    def to_dict(self) -> Dict[str, Any]:
        data = self.snapshot.to_dict()
        data['insights'] = [insight.to_dict() for insight in self.insights]
        data['recommendations'] = [rec.to_dict() for rec in self.recommendations]
        return data


@dataclass(frozen=True)
class MemberAnalytics:
    """Task, financial and performance figures for one member"""
    member_id: str
    tasks: Mapping[str, float]
    financial: Mapping[str, float]
    performance: Mapping[str, int]
    dues: metrics.DuesStatus = field(default_factory=metrics.DuesStatus)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'member_id': self.member_id,
            'tasks': dict(self.tasks),
            'financial': dict(self.financial),
            'performance': dict(self.performance),
            'dues': self.dues.to_dict(),
        }


@dataclass
class PerformanceReport:
    """Summary of a timeframe prepared for report exporters"""
    timeframe: str
    period: TimeWindow
    summary: Dict[str, Any]
    highlights: List[Insight]
    concerns: List[Insight]
    recommendations: List[Recommendation]
    trends: Dict[str, Trend]
    financial: Dict[str, float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timeframe': self.timeframe,
            'period': self.period.to_dict(),
            'summary': self.summary,
            'highlights': [i.to_dict() for i in self.highlights],
            'concerns': [i.to_dict() for i in self.concerns],
            'recommendations': [r.to_dict() for r in self.recommendations],
            'trends': {name: trend.to_dict() for name, trend in self.trends.items()},
            'financial': self.financial,
        }


@dataclass(frozen=True)
class DashboardStats:
    """Headline counters for the dashboard"""
    active_members: int = 0
    active_events: int = 0
    completed_tasks: int = 0
    total_tasks: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'active_members': self.active_members,
            'active_events': self.active_events,
            'completed_tasks': self.completed_tasks,
            'total_tasks': self.total_tasks,
        }


def _record_time(record: Record) -> Optional[datetime]:
    # Transactions exported without createdAt still carry their booking date
    if record.created_at is None and isinstance(record, TransactionRecord):
        return record.occurred_at
    return record.created_at


def created_within(records: Iterable[Record], window: TimeWindow) -> List[Record]:
    """Records created inside ``window``; undated and future-dated records are excluded."""
    return [r for r in records if window.contains(_record_time(r))]


class AnalyticsEngine:
    """Core aggregation engine for team analytics"""

    def __init__(self, store: RecordStore, cache: Optional[TTLCache] = None,
                 clock: Optional[Clock] = None, config: Optional[AnalyticsConfig] = None):
        self.store = store
        self.config = config or get_config()
        if clock is None:
            clock = cache.clock if cache is not None else SystemClock()
        self.clock = clock
        self.cache = cache if cache is not None else TTLCache(self.config.cache_ttl_ms, clock=clock)

    # Data access

    async def _fetch(self, *collections: str) -> Dict[str, List[Record]]:
        """Fetch collections concurrently; a single unavailable collection reads as empty."""
        results = await asyncio.gather(*(safe_fetch(self.store, name) for name in collections))
        if all(result is None for result in results):
            raise StoreUnavailable(f"All collections unavailable: {', '.join(collections)}")
        return {name: (result or []) for name, result in zip(collections, results)}

    # Aggregation

    async def aggregate(self, timeframe: Union[str, AnalyticsTimeframe, None] = None) -> AnalyticsSnapshot:
        """Return the snapshot for a timeframe, reusing a fresh cached one.

        Raises:
            InvalidTimeframe: If the timeframe name is unknown
            StoreUnavailable: If no collection could be fetched
            AggregationFailed: If a calculator raised on malformed data
        """
        resolved = resolve_timeframe(timeframe or self.config.default_timeframe)
        return await self.cache.get_or_compute(
            self.team_cache_key(resolved),
            lambda: self.compute(resolved),
        )

    async def compute(self, timeframe: Union[str, AnalyticsTimeframe, None] = None) -> AnalyticsSnapshot:
        """Run a full aggregation pass, bypassing the cache."""
        resolved = resolve_timeframe(timeframe or self.config.default_timeframe)
        now = self.clock.now()
        window = TimeWindow.resolve(resolved, now)

        data = await self._fetch(TASKS, EVENTS, TRANSACTIONS, USERS)

        try:
            snapshot = self._build_snapshot(window, now, data)
        except Exception as e:
            logger.error(f"Aggregation failed for timeframe '{resolved.value}': {e}")
            raise AggregationFailed(f"Could not aggregate '{resolved.value}' analytics: {e}") from e

        logger.info(
            f"Aggregated {resolved.value} analytics: {snapshot.tasks['total']} tasks, "
            f"{snapshot.financial['transactions']} transactions"
        )
        return snapshot

    def _build_snapshot(self, window: TimeWindow, now: datetime,
                        data: Dict[str, List[Record]]) -> AnalyticsSnapshot:
        all_tasks = data[TASKS]
        all_events = data[EVENTS]
        all_transactions = data[TRANSACTIONS]
        all_members = data[USERS]

        # Task, financial and new-member figures are windowed; event and
        # member totals are not
        tasks = created_within(all_tasks, window)
        transactions = created_within(all_transactions, window)
        new_members = created_within(all_members, window)

        completed_tasks = [t for t in tasks if t.completed]
        totals = metrics.financial_totals(transactions)
        completion_rate = metrics.completion_rate(tasks)
        team_rate = metrics.team_completion_rate(tasks)

        task_stats = {
            'total': len(tasks),
            'completed': len(completed_tasks),
            'pending': len(tasks) - len(completed_tasks),
            'overdue': metrics.overdue_count(tasks, now),
            'completion_rate': completion_rate,
        }
        financial_stats = {
            'total_income': totals.income,
            'total_expenses': totals.expenses,
            'net_balance': totals.net,
            'transactions': len(transactions),
        }
        team_stats = {
            'total_members': len(all_members),
            'active_members': sum(1 for m in all_members if m.is_active),
            'new_members': len(new_members),
            'contributors': len({t.assignee for t in tasks if t.assignee}),
        }
        event_stats = {
            'total': len(all_events),
            'upcoming': metrics.count_by_status(all_events, (UPCOMING_EVENT,)),
            'active': metrics.count_by_status(all_events, (ACTIVE_EVENT,)),
            'completed': metrics.count_by_status(all_events, (COMPLETED_EVENT,)),
        }
        productivity_stats = {
            'completion_rate': team_rate,
            'score': metrics.productivity_score(tasks, now),
            'reliability': metrics.reliability_score(tasks),
            'avg_completion_days': metrics.avg_completion_time_days(completed_tasks),
        }

        trends = self._calculate_trends(window, data, tasks, totals, len(new_members))

        return AnalyticsSnapshot(
            window=window,
            generated_at=now,
            tasks=_frozen(task_stats),
            financial=_frozen(financial_stats),
            team=_frozen(team_stats),
            events=_frozen(event_stats),
            productivity=_frozen(productivity_stats),
            trends=_frozen(trends),
        )

    def _calculate_trends(self, window: TimeWindow, data: Dict[str, List[Record]],
                          tasks: List[TaskRecord], totals: metrics.FinancialTotals,
                          new_member_count: int) -> Dict[str, Trend]:
        """Compare the window against the preceding window of equal length"""
        previous = window.previous()
        previous_tasks = created_within(data[TASKS], previous)
        previous_totals = metrics.financial_totals(created_within(data[TRANSACTIONS], previous))
        previous_members = created_within(data[USERS], previous)

        return {
            'tasks_created': Trend.between(len(tasks), len(previous_tasks)),
            'completion_rate': Trend.between(metrics.completion_rate(tasks), metrics.completion_rate(previous_tasks)),
            'income': Trend.between(totals.income, previous_totals.income),
            'expenses': Trend.between(totals.expenses, previous_totals.expenses),
            'new_members': Trend.between(new_member_count, len(previous_members)),
        }

    # Cached views

    @staticmethod
    def team_cache_key(timeframe: AnalyticsTimeframe) -> str:
        return f"team-analytics-{timeframe.value}"

    @staticmethod
    def member_cache_key(member_id: str) -> str:
        return f"member-analytics-{member_id}"

    async def team_analytics(self, timeframe: Union[str, AnalyticsTimeframe, None] = None) -> Optional[TeamAnalytics]:
        """Snapshot plus insights and recommendations, or None if unavailable."""
        try:
            snapshot = await self.aggregate(timeframe)
        except AnalyticsError as e:
            logger.error(f"Error fetching team analytics: {e}")
            return None

        return TeamAnalytics(
            snapshot=snapshot,
            insights=tuple(derive_insights(snapshot, self.config.currency_symbol)),
            recommendations=tuple(derive_recommendations(snapshot)),
        )

    async def member_analytics(self, member_id: str) -> Optional[MemberAnalytics]:
        """Per-member analytics over all of the member's records, or None if unavailable."""
        member_id = str(member_id)
        try:
            return await self.cache.get_or_compute(
                self.member_cache_key(member_id),
                lambda: self._compute_member(member_id),
            )
        except AnalyticsError as e:
            logger.error(f"Error fetching member analytics for {member_id}: {e}")
            return None

    async def _compute_member(self, member_id: str) -> MemberAnalytics:
        now = self.clock.now()
        data = await self._fetch(TASKS, TRANSACTIONS, MONEY_COLLECTIONS)

        try:
            tasks = [t for t in data[TASKS] if t.assignee == member_id]
            transactions = [t for t in data[TRANSACTIONS] if t.member_id == member_id]
            completed = [t for t in tasks if t.completed]
            totals = metrics.financial_totals(transactions)
            dues = metrics.dues_status(data[MONEY_COLLECTIONS], member_id)

            return MemberAnalytics(
                member_id=member_id,
                tasks=_frozen({
                    'total': len(tasks),
                    'completed': len(completed),
                    'pending': len(tasks) - len(completed),
                    'overdue': metrics.overdue_count(tasks, now),
                    'completion_rate': metrics.completion_rate(tasks),
                }),
                financial=_frozen({
                    'total_paid': totals.income,
                    'total_owed': totals.expenses,
                    'balance': totals.net,
                    'outstanding_dues': dues.outstanding_amount,
                }),
                performance=_frozen({
                    'avg_completion_days': metrics.avg_completion_time_days(completed),
                    'productivity': metrics.productivity_score(tasks, now),
                    'reliability': metrics.reliability_score(tasks),
                }),
                dues=dues,
            )
        except Exception as e:
            raise AggregationFailed(f"Could not aggregate analytics for member {member_id}: {e}") from e

    async def performance_report(self, timeframe: Union[str, AnalyticsTimeframe, None] = None,
                                 limit: Optional[int] = None) -> Optional[PerformanceReport]:
        """Build a performance report for a timeframe, or None if unavailable."""
        analytics = await self.team_analytics(timeframe)
        if analytics is None:
            return None

        if limit is None:
            limit = self.config.report_recommendation_limit

        snapshot = analytics.snapshot
        return PerformanceReport(
            timeframe=snapshot.timeframe,
            period=snapshot.window,
            summary={
                'total_tasks': snapshot.tasks['total'],
                'completion_rate': snapshot.productivity['completion_rate'],
                'team_size': snapshot.team['total_members'],
                'active_members': snapshot.team['active_members'],
            },
            highlights=[i for i in analytics.insights if i.severity == InsightSeverity.SUCCESS],
            concerns=[
                i for i in analytics.insights
                if i.severity in (InsightSeverity.WARNING, InsightSeverity.ERROR)
            ],
            recommendations=list(analytics.recommendations[:limit]),
            trends=dict(snapshot.trends),
            financial={
                'income': snapshot.financial['total_income'],
                'expenses': snapshot.financial['total_expenses'],
                'balance': snapshot.financial['net_balance'],
            },
        )

    async def dashboard_stats(self) -> DashboardStats:
        """Headline counters over all records; zeros when the store is down."""
        try:
            data = await self._fetch(USERS, EVENTS, TASKS)
        except StoreUnavailable as e:
            logger.error(f"Dashboard stats unavailable: {e}")
            return DashboardStats()

        tasks = data[TASKS]
        return DashboardStats(
            active_members=sum(1 for m in data[USERS] if m.is_active),
            active_events=metrics.count_by_status(data[EVENTS], (ACTIVE_EVENT, UPCOMING_EVENT)),
            completed_tasks=sum(1 for t in tasks if t.completed),
            total_tasks=len(tasks),
        )

    # Cache control

    async def refresh(self, timeframe: Union[str, AnalyticsTimeframe, None] = None) -> AnalyticsSnapshot:
        """Recompute a timeframe and replace its cached snapshot.

        On failure the previous (possibly stale) entry stays in place.
        """
        resolved = resolve_timeframe(timeframe or self.config.default_timeframe)
        snapshot = await self.compute(resolved)
        self.cache.put(self.team_cache_key(resolved), snapshot)
        return snapshot

    def clear_cache(self):
        """Drop every cached snapshot."""
        self.cache.clear()
