"""Metric calculators for team analytics.

Every calculator is a pure function over an already filtered list of records.
Calculators never mutate their input and keep no state between calls, so the
aggregation engine can run them in any order over a fetched snapshot.
"""

import statistics
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..records import CollectionRequest, TaskRecord, TransactionKind, TransactionRecord
from ..utils.datetime import ceil_days, to_iso_string
from ..utils.formatting import round_half_up


# Productivity weighting policy
COMPLETION_WEIGHT = 0.7
TIMELINESS_WEIGHT = 0.3

# Assignment states that still owe money on an active collection
OUTSTANDING_ASSIGNMENT_STATUSES = ("pending", "rejected")
ACTIVE_COLLECTION_STATUS = "active"


@dataclass(frozen=True)
class FinancialTotals:
    """Income and expense sums over a set of transactions"""
    income: float = 0.0
    expenses: float = 0.0

    @property
    def net(self) -> float:
        return self.income - self.expenses


def completion_rate(tasks: Sequence[TaskRecord]) -> float:
    """Percentage of completed tasks (0-100), 0 for an empty list."""
    if not tasks:
        return 0.0
    completed = sum(1 for task in tasks if task.completed)
    return completed / len(tasks) * 100


def is_overdue(task: TaskRecord, now: datetime) -> bool:
    """A task is overdue once its due date has passed without completion."""
    if task.due_date is None:
        return False
    return task.due_date < now and not task.completed


def overdue_count(tasks: Iterable[TaskRecord], now: datetime) -> int:
    """Count unfinished tasks whose due date is before ``now``."""
    return sum(1 for task in tasks if is_overdue(task, now))


def avg_completion_time_days(completed_tasks: Iterable[TaskRecord]) -> int:
    """Average whole days from creation to completion.

    Each task's duration is rounded up to whole days before averaging; the
    mean is then rounded to the nearest day. Tasks missing either timestamp
    are ignored. Returns 0 when no task qualifies.
    """
    durations = [
        ceil_days(task.completed_at - task.created_at)
        for task in completed_tasks
        if task.created_at is not None and task.completed_at is not None
    ]
    if not durations:
        return 0
    return round_half_up(statistics.mean(durations))


def productivity_score(tasks: Sequence[TaskRecord], now: datetime) -> int:
    """Weighted productivity score (0-100).

    70% completion rate, 30% timeliness, where timeliness is the share of
    tasks that are not overdue. An empty task list scores 0.
    """
    total = len(tasks)
    if total == 0:
        return 0

    overdue = overdue_count(tasks, now)
    timeliness = max(0.0, (total - overdue) / total)

    return round_half_up(
        COMPLETION_WEIGHT * completion_rate(tasks) +
        TIMELINESS_WEIGHT * timeliness * 100
    )


def is_on_time(task: TaskRecord) -> bool:
    """On time unless completed after its due date.

    Unfinished tasks and tasks without both a due date and a completion
    timestamp get the benefit of the doubt.
    """
    if not task.completed or task.due_date is None or task.completed_at is None:
        return True
    return task.completed_at <= task.due_date


def reliability_score(tasks: Sequence[TaskRecord]) -> int:
    """Share of on-time tasks (0-100); 100 when there is no evidence yet."""
    if not tasks:
        return 100
    on_time = sum(1 for task in tasks if is_on_time(task))
    return round_half_up(on_time / len(tasks) * 100)


def _amount(transaction: TransactionRecord) -> float:
    return transaction.amount if transaction.amount is not None else 0.0


def financial_totals(transactions: Iterable[TransactionRecord]) -> FinancialTotals:
    """Sum credits as income and debits as expenses; missing amounts count as 0."""
    income = 0.0
    expenses = 0.0
    for transaction in transactions:
        if transaction.kind == TransactionKind.CREDIT:
            income += _amount(transaction)
        elif transaction.kind == TransactionKind.DEBIT:
            expenses += _amount(transaction)
    return FinancialTotals(income=income, expenses=expenses)


@dataclass(frozen=True)
class PendingDue:
    """One unpaid share of an active collection request"""
    request_id: str
    title: str
    amount: float
    deadline: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'request_id': self.request_id,
            'title': self.title,
            'amount': self.amount,
            'deadline': to_iso_string(self.deadline),
        }


@dataclass(frozen=True)
class DuesStatus:
    """What a member still owes across active collection requests"""
    outstanding_amount: float = 0.0
    pending_requests: Tuple[PendingDue, ...] = ()

    @property
    def is_clean(self) -> bool:
        return self.outstanding_amount == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'outstanding_amount': self.outstanding_amount,
            'pending_requests': [due.to_dict() for due in self.pending_requests],
            'is_clean': self.is_clean,
        }


def dues_status(requests: Iterable[CollectionRequest], member_id: str) -> DuesStatus:
    """Unpaid shares of a member across active collection requests.

    A request counts only when its status is exactly ``active``; requests
    without a status are ignored. Only the member's first assignment on a
    request is considered, and it is unpaid while ``pending`` or ``rejected``.
    """
    pending = []
    for request in requests:
        if request.status != ACTIVE_COLLECTION_STATUS:
            continue
        assignment = next((a for a in request.assigned_members if a.user_id == member_id), None)
        if assignment is None or assignment.status not in OUTSTANDING_ASSIGNMENT_STATUSES:
            continue
        pending.append(PendingDue(
            request_id=request.id,
            title=request.title,
            amount=assignment.amount if assignment.amount is not None else 0.0,
            deadline=request.deadline,
        ))
    return DuesStatus(
        outstanding_amount=sum((due.amount for due in pending), 0.0),
        pending_requests=tuple(pending),
    )


def outstanding_dues(requests: Iterable[CollectionRequest], member_id: str) -> float:
    """Amount a member still owes across active collection requests."""
    return dues_status(requests, member_id).outstanding_amount


def count_by_status(records: Iterable, statuses: Sequence[str]) -> int:
    """Count records whose ``status`` is one of ``statuses``."""
    return sum(1 for record in records if record.status in statuses)


def completion_rate_by_assignee(tasks: Iterable[TaskRecord]) -> Dict[str, float]:
    """Completion rate per assignee; unassigned tasks are left out."""
    grouped: Dict[str, List[TaskRecord]] = defaultdict(list)
    for task in tasks:
        if task.assignee:
            grouped[task.assignee].append(task)
    return {assignee: completion_rate(assigned) for assignee, assigned in grouped.items()}


def team_completion_rate(tasks: Iterable[TaskRecord]) -> float:
    """Mean of the individual completion rates of everyone with assigned tasks."""
    rates = completion_rate_by_assignee(tasks)
    if not rates:
        return 0.0
    return statistics.mean(rates.values())


def percent_change(current: float, previous: float) -> Optional[float]:
    """Period-over-period change in percent, None when there is no baseline."""
    if previous == 0:
        return None
    return (current - previous) / abs(previous) * 100
