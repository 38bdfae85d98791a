"""Typed record models for documents pulled from the team document store.

Raw documents arrive with the store's camelCase keys, optional nested payloads
and loosely typed values. These Pydantic models validate them into immutable,
explicitly defaulted records that the metric calculators can rely on.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, List, Optional, Union

from pydantic import AfterValidator, AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from .utils.datetime import ensure_aware

logger = logging.getLogger(__name__)


class RecordType(str, Enum):
    """Tag carried by every record variant"""
    TASK = "task"
    TRANSACTION = "transaction"
    EVENT = "event"
    MEMBER = "member"
    COLLECTION_REQUEST = "collection_request"


class TransactionKind(str, Enum):
    """Direction of money movement"""
    CREDIT = "credit"
    DEBIT = "debit"


COMPLETED_STATUS = "completed"


def _coerce_timestamp(value: Any) -> Any:
    """Accept exported store timestamps ({"seconds": ..}) alongside ISO strings."""
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is not None:
            nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
            return datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)
    if value == "":
        return None
    return value


def _coerce_identifier(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    return str(value)


Timestamp = Annotated[Optional[datetime], BeforeValidator(_coerce_timestamp), AfterValidator(ensure_aware)]
Identifier = Annotated[str, BeforeValidator(_coerce_identifier)]
OptionalIdentifier = Annotated[Optional[str], BeforeValidator(_coerce_identifier)]


class BaseRecord(BaseModel):
    """Fields shared by all record variants"""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    record_type: ClassVar[RecordType]

    id: Identifier
    created_at: Timestamp = Field(default=None, alias="createdAt")


class TaskRecord(BaseRecord):
    """A task log entry assigned to a team member"""

    record_type: ClassVar[RecordType] = RecordType.TASK

    title: str = ""
    description: str = ""
    status: str = "pending"
    priority: Optional[str] = None
    assignee: OptionalIdentifier = None
    assignee_name: Optional[str] = Field(default=None, alias="assigneeName")
    due_date: Timestamp = Field(default=None, alias="dueDate")
    completed_at: Timestamp = Field(default=None, alias="completedAt")
    created_by: OptionalIdentifier = Field(default=None, alias="createdBy")

    @property
    def completed(self) -> bool:
        return self.status == COMPLETED_STATUS


class TransactionRecord(BaseRecord):
    """A credit (payment received) or debit (expense) entry"""

    record_type: ClassVar[RecordType] = RecordType.TRANSACTION

    kind: TransactionKind = Field(alias="type")
    amount: Optional[float] = None
    member_id: OptionalIdentifier = Field(default=None, alias="memberId")
    occurred_at: Timestamp = Field(default=None, alias="date")
    description: str = ""


class EventRecord(BaseRecord):
    """A scheduled team event"""

    record_type: ClassVar[RecordType] = RecordType.EVENT

    title: str = Field(default="", validation_alias=AliasChoices("title", "name"))
    status: Optional[str] = None
    event_date: Timestamp = Field(default=None, validation_alias=AliasChoices("event_date", "date", "eventDate"))


def _default_active(value: Any) -> Any:
    # Only an explicit false deactivates a member
    return True if value is None else value


class MemberRecord(BaseRecord):
    """A registered team member"""

    record_type: ClassVar[RecordType] = RecordType.MEMBER

    name: str = ""
    email: Optional[str] = None
    role: Optional[str] = None
    is_active: Annotated[bool, BeforeValidator(_default_active)] = Field(default=True, alias="isActive")


class CollectionAssignment(BaseModel):
    """One member's share of a money collection request"""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    user_id: Identifier = Field(alias="userId")
    user_name: Optional[str] = Field(default=None, alias="userName")
    amount: Optional[float] = None
    status: str = "pending"
    paid_at: Timestamp = Field(default=None, alias="paidAt")


class CollectionRequest(BaseRecord):
    """A request to collect money from a set of members"""

    record_type: ClassVar[RecordType] = RecordType.COLLECTION_REQUEST

    title: str = ""
    description: str = ""
    amount: Optional[float] = None
    status: Optional[str] = None
    deadline: Timestamp = None
    assigned_members: List[CollectionAssignment] = Field(default_factory=list, alias="assignedMembers")


Record = Union[TaskRecord, TransactionRecord, EventRecord, MemberRecord, CollectionRequest]


COLLECTION_MODELS: Dict[str, type] = {
    "logs": TaskRecord,
    "tasks": TaskRecord,
    "transactions": TransactionRecord,
    "events": EventRecord,
    "users": MemberRecord,
    "moneyCollections": CollectionRequest,
}


def parse_document(collection: str, document: Dict[str, Any]) -> Optional[Record]:
    """Validate one raw store document into its record variant.

    Returns None for ``logs`` entries not tagged ``type: task`` (payments, events
    and other activity share that collection).

    Raises:
        KeyError: If the collection has no record model
        ValidationError: If the document cannot be validated
    """
    model = COLLECTION_MODELS[collection]

    if model is TaskRecord:
        if collection == "logs" and document.get("type") != RecordType.TASK.value:
            return None
        data = document.get("data")
        payload = dict(data) if isinstance(data, dict) else {}
        payload.update({key: value for key, value in document.items() if key not in ("data", "type")})
        return TaskRecord.model_validate(payload)

    return model.model_validate(document)


def parse_documents(collection: str, documents: List[Dict[str, Any]]) -> List[Record]:
    """Validate a batch of documents, skipping (and logging) malformed ones."""
    records = []
    for document in documents:
        if not isinstance(document, dict):
            logger.warning(f"Skipping malformed {collection} document: expected an object, got {type(document).__name__}")
            continue
        try:
            record = parse_document(collection, document)
        except ValidationError as e:
            logger.warning(f"Skipping malformed {collection} document {document.get('id')!r}: {e.error_count()} error(s)")
            continue
        if record is not None:
            records.append(record)
    return records
