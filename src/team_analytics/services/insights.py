"""Insight and recommendation generation for team analytics.

Both generators are pure functions of an analytics snapshot. Output order
encodes priority: callers slice the first N entries for compact views.
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List

from ..utils.formatting import DEFAULT_CURRENCY_SYMBOL, format_currency


class InsightSeverity(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"


class RecommendationPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Thresholds (percent)
EXCELLENT_COMPLETION_RATE = 80
LOW_COMPLETION_RATE = 50
HIGH_PRODUCTIVITY_RATE = 75
IMPROVE_COMPLETION_RATE = 60


@dataclass(frozen=True)
class Insight:
    """A human-readable observation about a snapshot"""
    severity: InsightSeverity
    label: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {'severity': self.severity.value, 'label': self.label, 'message': self.message}


@dataclass(frozen=True)
class Recommendation:
    """A suggested action derived from a snapshot"""
    priority: RecommendationPriority
    category: str
    title: str
    description: str
    suggested_action: str
    navigation_hint: str

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['priority'] = self.priority.value
        return data


def derive_insights(snapshot, currency_symbol: str = DEFAULT_CURRENCY_SYMBOL) -> List[Insight]:
    """Generate ordered insights from an analytics snapshot."""
    insights = []
    tasks = snapshot.tasks
    financial = snapshot.financial
    period = snapshot.timeframe

    # Task completion (50-80% is unremarkable)
    if tasks["total"] > 0:
        rate = tasks["completion_rate"]
        if rate > EXCELLENT_COMPLETION_RATE:
            insights.append(Insight(
                severity=InsightSeverity.SUCCESS,
                label="Excellent Task Completion",
                message=f"Team has {rate:.1f}% task completion rate",
            ))
        elif rate < LOW_COMPLETION_RATE:
            insights.append(Insight(
                severity=InsightSeverity.WARNING,
                label="Low Task Completion",
                message=f"Only {rate:.1f}% of tasks completed",
            ))

    if tasks["overdue"] > 0:
        insights.append(Insight(
            severity=InsightSeverity.ERROR,
            label="Overdue Tasks Alert",
            message=f"{tasks['overdue']} tasks are overdue and need attention",
        ))

    if financial["total_income"] > financial["total_expenses"]:
        surplus = financial["total_income"] - financial["total_expenses"]
        insights.append(Insight(
            severity=InsightSeverity.SUCCESS,
            label="Positive Cash Flow",
            message=f"Net positive of {format_currency(surplus, currency_symbol)} this {period}",
        ))

    new_members = snapshot.team["new_members"]
    if new_members > 0:
        insights.append(Insight(
            severity=InsightSeverity.INFO,
            label="Team Growth",
            message=f"{new_members} new members joined this {period}",
        ))

    team_rate = snapshot.productivity["completion_rate"]
    if team_rate > HIGH_PRODUCTIVITY_RATE:
        insights.append(Insight(
            severity=InsightSeverity.SUCCESS,
            label="High Productivity",
            message=f"Team productivity is at {team_rate:.1f}%",
        ))

    return insights


def derive_recommendations(snapshot) -> List[Recommendation]:
    """Generate ordered recommendations from an analytics snapshot."""
    recommendations = []

    if snapshot.tasks["overdue"] > 0:
        recommendations.append(Recommendation(
            priority=RecommendationPriority.HIGH,
            category="tasks",
            title="Address Overdue Tasks",
            description="Review and reassign overdue tasks to prevent project delays",
            suggested_action="View Overdue Tasks",
            navigation_hint="pages/logs/task-logs.html?filter=overdue",
        ))

    if snapshot.productivity["completion_rate"] < IMPROVE_COMPLETION_RATE:
        recommendations.append(Recommendation(
            priority=RecommendationPriority.MEDIUM,
            category="productivity",
            title="Improve Task Completion",
            description="Consider breaking down large tasks or providing additional support",
            suggested_action="Review Task Distribution",
            navigation_hint="pages/logs/task-logs.html",
        ))

    if snapshot.financial["total_expenses"] > snapshot.financial["total_income"]:
        recommendations.append(Recommendation(
            priority=RecommendationPriority.HIGH,
            category="financial",
            title="Review Expenses",
            description="Expenses exceed income. Review and optimize spending",
            suggested_action="View Financial Report",
            navigation_hint="pages/logs/payment-logs.html",
        ))

    if snapshot.events["upcoming"] == 0:
        recommendations.append(Recommendation(
            priority=RecommendationPriority.LOW,
            category="events",
            title="Plan Upcoming Events",
            description="No upcoming events scheduled. Consider planning team activities",
            suggested_action="Create Event",
            navigation_hint="pages/logs/event-logs.html",
        ))

    return recommendations
