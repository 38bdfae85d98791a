"""Record store adapters.

The analytics engine consumes the document store only through ``fetch_all``.
Concrete adapters translate the store's raw documents into typed records; the
engine never sees the raw payloads.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from .errors import StoreUnavailable
from .records import COLLECTION_MODELS, Record, parse_documents

logger = logging.getLogger(__name__)


TASKS = "logs"
TRANSACTIONS = "transactions"
EVENTS = "events"
USERS = "users"
MONEY_COLLECTIONS = "moneyCollections"

COLLECTION_ALIASES = {"tasks": TASKS}


def canonical_collection(name: str) -> str:
    """Map collection aliases (``tasks``) onto the store's collection name."""
    return COLLECTION_ALIASES.get(name, name)


class RecordStore(ABC):
    """Read-only access to the team document store.

    Implementations return records in no particular order; callers sort when
    order matters.
    """

    @abstractmethod
    async def fetch_all(self, collection: str) -> List[Record]:
        """Fetch every record of a collection.

        Args:
            collection: One of ``logs``/``tasks``, ``transactions``, ``events``,
                ``users`` or ``moneyCollections``

        Returns:
            List of typed records

        Raises:
            StoreUnavailable: If the backing service cannot be reached
        """
        pass


def _copy(document: Any) -> Any:
    # Non-object entries are kept as-is and rejected when parsed
    return dict(document) if isinstance(document, dict) else document


class InMemoryRecordStore(RecordStore):
    """Store backed by raw documents held in memory.

    Useful for tests and for replaying an exported snapshot of the store.
    Individual collections can be switched off to simulate outages.
    """

    def __init__(self, documents: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self._documents: Dict[str, List[Dict[str, Any]]] = {}
        self._unavailable: Set[str] = set()
        self.fetch_counts: Dict[str, int] = {}
        for collection, docs in (documents or {}).items():
            self.put(collection, docs)

    def put(self, collection: str, documents: Iterable[Dict[str, Any]]):
        """Replace the documents of a collection."""
        self._documents[canonical_collection(collection)] = [_copy(doc) for doc in documents]

    def add(self, collection: str, document: Dict[str, Any]):
        """Append one document to a collection."""
        self._documents.setdefault(canonical_collection(collection), []).append(_copy(document))

    def set_unavailable(self, *collections: str):
        """Make fetches of the given collections raise StoreUnavailable."""
        self._unavailable.update(canonical_collection(c) for c in collections)

    def set_available(self, *collections: str):
        if not collections:
            self._unavailable.clear()
        for collection in collections:
            self._unavailable.discard(canonical_collection(collection))

    @property
    def total_fetches(self) -> int:
        return sum(self.fetch_counts.values())

    async def fetch_all(self, collection: str) -> List[Record]:
        name = canonical_collection(collection)
        self.fetch_counts[name] = self.fetch_counts.get(name, 0) + 1

        # Yield like a network round-trip would
        await asyncio.sleep(0)

        if name in self._unavailable:
            raise StoreUnavailable(f"Collection '{name}' is unavailable", collection=name)
        if name not in COLLECTION_MODELS:
            raise StoreUnavailable(f"Unknown collection '{name}'", collection=name)

        return parse_documents(name, self._documents.get(name, []))


class JsonFileRecordStore(RecordStore):
    """Store backed by a JSON export of the document store.

    The file holds one top-level key per collection, each a list of
    documents. The file is re-read on every fetch so edits are picked up.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise StoreUnavailable(f"Store export not found: {self.path}") from e
        except (ValueError, OSError) as e:
            # Covers invalid JSON and exports that are not UTF-8
            raise StoreUnavailable(f"Could not read store export {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StoreUnavailable(f"Store export {self.path} must contain a JSON object")
        return data

    async def fetch_all(self, collection: str) -> List[Record]:
        name = canonical_collection(collection)
        if name not in COLLECTION_MODELS:
            raise StoreUnavailable(f"Unknown collection '{name}'", collection=name)

        data = await asyncio.to_thread(self._load)
        documents = data.get(name)
        if documents is None and name == TASKS:
            # A dedicated tasks export carries no log type tags
            name = "tasks"
            documents = data.get(name)
        if not isinstance(documents, list):
            logger.debug(f"Collection '{name}' missing from {self.path}, treating as empty")
            return []

        return parse_documents(name, documents)


async def safe_fetch(store: RecordStore, collection: str) -> Optional[List[Record]]:
    """Fetch a collection, degrading an unreachable store to ``None``.

    ``None`` (rather than an empty list) lets the caller tell a failed fetch
    from an empty collection; treat it as an empty result set.
    """
    try:
        return await store.fetch_all(collection)
    except StoreUnavailable as e:
        logger.warning(f"Store unavailable for '{collection}', continuing without it: {e}")
        return None
