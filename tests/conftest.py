"""Pytest configuration and shared fixtures."""

import sys
import asyncio
import inspect
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure src directory is in Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from team_analytics.config import AnalyticsConfig, Config  # noqa: E402
from team_analytics.services.analytics import AnalyticsEngine  # noqa: E402
from team_analytics.services.cache import TTLCache  # noqa: E402
from team_analytics.store import InMemoryRecordStore  # noqa: E402
from team_analytics.utils.datetime import FixedClock  # noqa: E402

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):
    """Execute async tests without external plugins."""
    testfunction = pyfuncitem.obj
    if inspect.iscoroutinefunction(testfunction):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            sig = inspect.signature(testfunction)
            call_kwargs = {name: pyfuncitem.funcargs[name] for name in sig.parameters}
            loop.run_until_complete(testfunction(**call_kwargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


@pytest.fixture(autouse=True)
def reset_config():
    """Never let one test's configuration leak into the next."""
    Config._instance = None
    yield
    Config._instance = None


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def config(tmp_path) -> AnalyticsConfig:
    return AnalyticsConfig(data_dir=str(tmp_path))


def _ts(month: int, day: int, year: int = 2025) -> str:
    return datetime(year, month, day, 9, 0, tzinfo=timezone.utc).isoformat()


@pytest.fixture
def team_documents():
    """Raw store documents for a small team, shaped like the live collections."""
    return {
        "users": [
            {"id": "u1", "name": "Asha", "createdAt": _ts(1, 1), "isActive": True},
            {"id": "u2", "name": "Ravi", "createdAt": _ts(6, 10)},
            {"id": "u3", "name": "Meera", "createdAt": _ts(1, 1, 2024), "isActive": False},
        ],
        "logs": [
            {"id": "t1", "type": "task", "createdAt": _ts(6, 1),
             "data": {"title": "Book venue", "status": "completed", "assignee": "u1",
                      "dueDate": _ts(6, 10), "completedAt": _ts(6, 5)}},
            {"id": "t2", "type": "task", "createdAt": _ts(6, 5),
             "data": {"title": "Print flyers", "status": "pending", "assignee": "u1",
                      "dueDate": _ts(6, 12)}},
            {"id": "t3", "type": "task", "createdAt": _ts(6, 10),
             "data": {"title": "Collect dues", "status": "completed", "assignee": "u2",
                      "dueDate": _ts(6, 20), "completedAt": _ts(6, 12)}},
            {"id": "t4", "type": "task", "createdAt": _ts(6, 12),
             "data": {"title": "Order snacks", "status": "in_progress", "assignee": "u2",
                      "dueDate": _ts(6, 25)}},
            {"id": "t5", "type": "task", "createdAt": _ts(1, 15),
             "data": {"title": "Annual plan", "status": "completed", "assignee": "u1",
                      "completedAt": _ts(1, 20)}},
            {"id": "p1", "type": "payment", "createdAt": _ts(6, 2),
             "data": {"amount": 500}},
        ],
        "transactions": [
            {"id": "c1", "type": "credit", "amount": 1000, "memberId": "u1", "createdAt": _ts(6, 2)},
            {"id": "d1", "type": "debit", "amount": 400, "memberId": "u2", "createdAt": _ts(6, 3)},
            {"id": "c2", "type": "credit", "amount": 500, "memberId": "u1", "createdAt": _ts(4, 1)},
            {"id": "c3", "type": "credit", "amount": 200, "createdAt": _ts(5, 1)},
        ],
        "events": [
            {"id": "e1", "title": "Monsoon meetup", "status": "upcoming", "createdAt": _ts(1, 1)},
            {"id": "e2", "title": "Hackathon", "status": "active", "createdAt": _ts(1, 1)},
            {"id": "e3", "title": "Kickoff", "status": "completed", "createdAt": _ts(1, 1)},
        ],
        "moneyCollections": [
            {"id": "m1", "title": "Venue fund", "status": "active", "amount": 250,
             "assignedMembers": [
                 {"userId": "u1", "userName": "Asha", "amount": 250, "status": "pending"},
                 {"userId": "u2", "userName": "Ravi", "amount": 250, "status": "paid"},
             ]},
            {"id": "m2", "title": "Old fund", "status": "closed", "amount": 100,
             "assignedMembers": [{"userId": "u1", "amount": 100, "status": "pending"}]},
        ],
    }


@pytest.fixture
def store(team_documents) -> InMemoryRecordStore:
    return InMemoryRecordStore(team_documents)


@pytest.fixture
def engine(store, clock, config) -> AnalyticsEngine:
    return AnalyticsEngine(store, cache=TTLCache(config.cache_ttl_ms, clock=clock), config=config)
