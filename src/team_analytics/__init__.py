"""Team Analytics - aggregation, scoring and insight engine for team portals."""

__version__ = "0.1.0"

from .errors import AnalyticsError, StoreUnavailable, InvalidTimeframe, AggregationFailed, ConfigError
from .records import (
    Record,
    RecordType,
    TaskRecord,
    TransactionRecord,
    TransactionKind,
    EventRecord,
    MemberRecord,
    CollectionRequest,
    CollectionAssignment,
)
from .store import RecordStore, InMemoryRecordStore, JsonFileRecordStore
from .services import AnalyticsEngine, AnalyticsSnapshot, TTLCache

__all__ = [
    "AnalyticsError",
    "StoreUnavailable",
    "InvalidTimeframe",
    "AggregationFailed",
    "ConfigError",
    "Record",
    "RecordType",
    "TaskRecord",
    "TransactionRecord",
    "TransactionKind",
    "EventRecord",
    "MemberRecord",
    "CollectionRequest",
    "CollectionAssignment",
    "RecordStore",
    "InMemoryRecordStore",
    "JsonFileRecordStore",
    "AnalyticsEngine",
    "AnalyticsSnapshot",
    "TTLCache",
    "__version__",
]
