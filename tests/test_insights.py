"""Tests for insight and recommendation generation."""

from types import MappingProxyType

import pytest

from team_analytics.services.analytics import AnalyticsSnapshot, TimeWindow
from team_analytics.services.insights import (
    InsightSeverity,
    RecommendationPriority,
    derive_insights,
    derive_recommendations,
)


@pytest.fixture
def make_snapshot(now):
    """Build a snapshot with quiet defaults, overriding individual figures."""

    def _make(timeframe="month", tasks=None, financial=None, team=None, events=None, productivity=None):
        sections = {
            'tasks': {'total': 10, 'completed': 7, 'pending': 3, 'overdue': 0, 'completion_rate': 70.0},
            'financial': {'total_income': 0, 'total_expenses': 0, 'net_balance': 0, 'transactions': 0},
            'team': {'total_members': 5, 'active_members': 5, 'new_members': 0, 'contributors': 3},
            'events': {'total': 1, 'upcoming': 1, 'active': 0, 'completed': 0},
            'productivity': {'completion_rate': 70.0, 'score': 80, 'reliability': 100, 'avg_completion_days': 2},
        }
        overrides = {'tasks': tasks, 'financial': financial, 'team': team,
                     'events': events, 'productivity': productivity}
        for name, values in overrides.items():
            sections[name].update(values or {})

        return AnalyticsSnapshot(
            window=TimeWindow.resolve(timeframe, now),
            generated_at=now,
            **{name: MappingProxyType(values) for name, values in sections.items()},
        )

    return _make


class TestDeriveInsights:

    def test_quiet_snapshot_has_no_insights(self, make_snapshot):
        assert derive_insights(make_snapshot()) == []

    def test_excellent_completion(self, make_snapshot):
        insights = derive_insights(make_snapshot(tasks={'completion_rate': 85.0}))
        assert len(insights) == 1
        assert insights[0].severity == InsightSeverity.SUCCESS
        assert insights[0].label == "Excellent Task Completion"
        assert insights[0].message == "Team has 85.0% task completion rate"

    def test_low_completion(self, make_snapshot):
        insights = derive_insights(make_snapshot(tasks={'completion_rate': 33.333}))
        assert insights[0].severity == InsightSeverity.WARNING
        assert insights[0].message == "Only 33.3% of tasks completed"

    def test_completion_thresholds_are_strict(self, make_snapshot):
        assert derive_insights(make_snapshot(tasks={'completion_rate': 80.0})) == []
        assert derive_insights(make_snapshot(tasks={'completion_rate': 50.0})) == []

    def test_no_tasks_no_completion_insight(self, make_snapshot):
        snapshot = make_snapshot(tasks={'total': 0, 'completed': 0, 'pending': 0, 'completion_rate': 0.0})
        assert derive_insights(snapshot) == []

    def test_overdue_alert(self, make_snapshot):
        insights = derive_insights(make_snapshot(tasks={'overdue': 3}))
        assert insights[0].severity == InsightSeverity.ERROR
        assert insights[0].message == "3 tasks are overdue and need attention"

    def test_positive_cash_flow(self, make_snapshot):
        snapshot = make_snapshot(financial={'total_income': 1000, 'total_expenses': 400})
        insights = derive_insights(snapshot)
        assert insights[0].label == "Positive Cash Flow"
        assert insights[0].message == "Net positive of ₹600 this month"

    def test_cash_flow_uses_currency_symbol(self, make_snapshot):
        snapshot = make_snapshot(financial={'total_income': 250000, 'total_expenses': 0})
        insights = derive_insights(snapshot, currency_symbol="Rs.")
        assert insights[0].message == "Net positive of Rs.2,50,000 this month"

    def test_team_growth_names_the_period(self, make_snapshot):
        insights = derive_insights(make_snapshot(timeframe="week", team={'new_members': 2}))
        assert insights[0].severity == InsightSeverity.INFO
        assert insights[0].message == "2 new members joined this week"

    def test_high_productivity(self, make_snapshot):
        insights = derive_insights(make_snapshot(productivity={'completion_rate': 90.0}))
        assert insights[0].label == "High Productivity"
        assert insights[0].message == "Team productivity is at 90.0%"

    def test_fixed_order(self, make_snapshot):
        snapshot = make_snapshot(
            tasks={'completion_rate': 90.0, 'overdue': 1},
            financial={'total_income': 10, 'total_expenses': 5},
            team={'new_members': 1},
            productivity={'completion_rate': 80.0},
        )
        labels = [i.label for i in derive_insights(snapshot)]
        assert labels == [
            "Excellent Task Completion",
            "Overdue Tasks Alert",
            "Positive Cash Flow",
            "Team Growth",
            "High Productivity",
        ]

    def test_deterministic(self, make_snapshot):
        snapshot = make_snapshot(tasks={'overdue': 2}, team={'new_members': 1})
        assert derive_insights(snapshot) == derive_insights(snapshot)


class TestDeriveRecommendations:

    def test_quiet_snapshot_has_none(self, make_snapshot):
        assert derive_recommendations(make_snapshot()) == []

    def test_all_rules_in_order(self, make_snapshot):
        snapshot = make_snapshot(
            tasks={'overdue': 4},
            financial={'total_income': 100, 'total_expenses': 300},
            events={'upcoming': 0},
            productivity={'completion_rate': 40.0},
        )
        recommendations = derive_recommendations(snapshot)

        assert [(r.priority, r.category) for r in recommendations] == [
            (RecommendationPriority.HIGH, "tasks"),
            (RecommendationPriority.MEDIUM, "productivity"),
            (RecommendationPriority.HIGH, "financial"),
            (RecommendationPriority.LOW, "events"),
        ]
        assert recommendations[0].navigation_hint == "pages/logs/task-logs.html?filter=overdue"
        assert recommendations[2].navigation_hint == "pages/logs/payment-logs.html"

    def test_improve_completion_threshold(self, make_snapshot):
        assert derive_recommendations(make_snapshot(productivity={'completion_rate': 60.0})) == []
        recommendations = derive_recommendations(make_snapshot(productivity={'completion_rate': 59.9}))
        assert [r.title for r in recommendations] == ["Improve Task Completion"]

    def test_to_dict(self, make_snapshot):
        recommendation = derive_recommendations(make_snapshot(events={'upcoming': 0}))[0]
        assert recommendation.to_dict() == {
            'priority': 'low',
            'category': 'events',
            'title': 'Plan Upcoming Events',
            'description': 'No upcoming events scheduled. Consider planning team activities',
            'suggested_action': 'Create Event',
            'navigation_hint': 'pages/logs/event-logs.html',
        }
