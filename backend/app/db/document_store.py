"""
Document store interface.

The application talks to persistence only through this key-value document
API: documents addressed by (collection, document_id), get / set (optionally
merged) / delete / add, an atomic append to an array field, bounded write
batches and single-document transactions.

Two backends implement it: SqlDocumentStore (db/sql_store.py) and the
in-process InMemoryDocumentStore defined here.
"""

import asyncio
import copy
import logging
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from backend.app.core.config import settings
from backend.app.core.exceptions import StoreUnavailableError
from backend.app.core.reliability import CircuitBreaker, CircuitOpenError

logger = logging.getLogger("englishcamp.store")

# Per-request mutation ceiling of the hosted store
MAX_BATCH_OPERATIONS = 500

Document = Dict[str, Any]
UpdateFn = Callable[[Optional[Document]], Document]


class BatchLimitExceeded(ValueError):
    pass


class WriteBatch:
    """
    Collects set/delete operations and commits them in one request.

    Usage:
        batch = store.batch()
        batch.set("studentScores", student_id, data)
        await batch.commit()
    """

    def __init__(self, store: "DocumentStore", limit: int = MAX_BATCH_OPERATIONS):
        self._store = store
        self._limit = limit
        self._operations: List[Tuple[str, str, str, Optional[Document], bool]] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._operations)

    def _push(self, operation):
        if self._committed:
            raise RuntimeError("Batch already committed")
        if len(self._operations) >= self._limit:
            raise BatchLimitExceeded(f"A batch holds at most {self._limit} operations")
        self._operations.append(operation)

    def set(self, collection: str, document_id: str, data: Document, merge: bool = False) -> "WriteBatch":
        self._push(("set", collection, document_id, copy.deepcopy(data), merge))
        return self

    def delete(self, collection: str, document_id: str) -> "WriteBatch":
        self._push(("delete", collection, document_id, None, False))
        return self

    async def commit(self) -> int:
        operations = list(self._operations)
        if operations:
            await self._store._guarded("batch_commit", self._store._commit_batch, operations)
        self._committed = True
        return len(operations)


class DocumentStore(ABC):
    """Base class: public coroutines run through the circuit breaker and
    translate backend failures into StoreUnavailableError."""

    backend_errors: Tuple[type, ...] = (OSError,)

    def __init__(self, breaker: CircuitBreaker = None):
        self.breaker = breaker or CircuitBreaker(
            name="document-store",
            failure_threshold=settings.store_failure_threshold,
            reset_timeout=settings.store_reset_timeout,
            failure_exceptions=self.backend_errors,
        )

    async def _guarded(self, operation: str, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        try:
            return await self.breaker.call(func, *args, **kwargs)
        except CircuitOpenError as exc:
            raise StoreUnavailableError(operation, str(exc)) from exc
        except self.backend_errors as exc:
            logger.error("Store %s failed: %s", operation, exc)
            raise StoreUnavailableError(operation, str(exc)) from exc

    # Public API

    async def get(self, collection: str, document_id: str) -> Optional[Document]:
        """Return a copy of the document, or None when it does not exist."""
        return await self._guarded("get", self._get, collection, document_id)

    async def set(self, collection: str, document_id: str, data: Document, merge: bool = False) -> None:
        """Create or overwrite a document; with merge=True only the given top-level fields change."""
        await self._guarded("set", self._set, collection, document_id, copy.deepcopy(data), merge)

    async def delete(self, collection: str, document_id: str) -> None:
        await self._guarded("delete", self._delete, collection, document_id)

    async def add(self, collection: str, data: Document) -> str:
        """Store a document under a generated id and return the id."""
        document_id = uuid.uuid4().hex[:20]
        await self._guarded("add", self._set, collection, document_id, copy.deepcopy(data), False)
        return document_id

    async def list_documents(self, collection: str) -> Dict[str, Document]:
        """Return every document of a collection keyed by id, ordered by id."""
        return await self._guarded("list", self._list, collection)

    async def append_to_array(
        self,
        collection: str,
        document_id: str,
        field: str,
        items: List[Any],
        merge_fields: Optional[Document] = None,
    ) -> None:
        """
        Atomically append items to an array field, merging scalar fields in the
        same write. Concurrent appends to the same document are never lost.
        Creates the document when absent.
        """
        await self._guarded(
            "append_to_array",
            self._append_to_array,
            collection,
            document_id,
            field,
            copy.deepcopy(list(items)),
            copy.deepcopy(merge_fields or {}),
        )

    async def run_transaction(self, collection: str, document_id: str, update_fn: UpdateFn) -> Document:
        """
        Read-modify-write one document under the backend's transaction
        primitive. update_fn receives the current document (or None) and
        returns the full replacement; exceptions it raises abort the write.
        """
        return await self._guarded("transaction", self._run_transaction, collection, document_id, update_fn)

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    async def close(self) -> None:
        return None

    # Backend hooks

    @abstractmethod
    async def _get(self, collection: str, document_id: str) -> Optional[Document]: ...

    @abstractmethod
    async def _set(self, collection: str, document_id: str, data: Document, merge: bool) -> None: ...

    @abstractmethod
    async def _delete(self, collection: str, document_id: str) -> None: ...

    @abstractmethod
    async def _list(self, collection: str) -> Dict[str, Document]: ...

    @abstractmethod
    async def _append_to_array(
        self, collection: str, document_id: str, field: str, items: List[Any], merge_fields: Document
    ) -> None: ...

    @abstractmethod
    async def _run_transaction(self, collection: str, document_id: str, update_fn: UpdateFn) -> Document: ...

    @abstractmethod
    async def _commit_batch(self, operations: list) -> None: ...


class InMemoryDocumentStore(DocumentStore):
    """
    Process-local store for development and tests.

    Every operation yields to the event loop once before touching data, so
    concurrent callers interleave the way they would against a remote store.
    Array appends and transactions hold a per-document asyncio.Lock; plain
    sets do not, which keeps their last-writer-wins behavior.
    """

    backend_errors = (OSError,)

    def __init__(self, breaker: CircuitBreaker = None):
        super().__init__(breaker)
        self._collections: Dict[str, Dict[str, Document]] = defaultdict(dict)
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = defaultdict(asyncio.Lock)

    async def _get(self, collection, document_id):
        await asyncio.sleep(0)
        document = self._collections[collection].get(document_id)
        return copy.deepcopy(document) if document is not None else None

    def _write(self, collection, document_id, data, merge):
        current = self._collections[collection].get(document_id)
        if merge and current is not None:
            data = {**current, **data}
        self._collections[collection][document_id] = data

    async def _set(self, collection, document_id, data, merge):
        await asyncio.sleep(0)
        self._write(collection, document_id, data, merge)

    async def _delete(self, collection, document_id):
        await asyncio.sleep(0)
        self._collections[collection].pop(document_id, None)

    async def _list(self, collection):
        await asyncio.sleep(0)
        documents = self._collections.get(collection, {})
        return {key: copy.deepcopy(documents[key]) for key in sorted(documents)}

    async def _append_to_array(self, collection, document_id, field, items, merge_fields):
        async with self._locks[(collection, document_id)]:
            await asyncio.sleep(0)
            current = copy.deepcopy(self._collections[collection].get(document_id) or {})
            current.update(merge_fields)
            current[field] = list(current.get(field) or []) + items
            self._collections[collection][document_id] = current

    async def _run_transaction(self, collection, document_id, update_fn):
        async with self._locks[(collection, document_id)]:
            await asyncio.sleep(0)
            current = self._collections[collection].get(document_id)
            updated = update_fn(copy.deepcopy(current) if current is not None else None)
            await asyncio.sleep(0)
            self._collections[collection][document_id] = copy.deepcopy(updated)
            return copy.deepcopy(updated)

    async def _commit_batch(self, operations):
        await asyncio.sleep(0)
        for kind, collection, document_id, data, merge in operations:
            if kind == "set":
                self._write(collection, document_id, copy.deepcopy(data), merge)
            else:
                self._collections[collection].pop(document_id, None)


_store: Optional[DocumentStore] = None


def build_document_store() -> DocumentStore:
    """Create the store selected by DOCUMENT_STORE_BACKEND."""
    logger.info(
        "Using %s document store (project=%s, region=%s)",
        settings.document_store_backend,
        settings.store_project_id,
        settings.store_region,
    )
    if settings.document_store_backend == "memory":
        return InMemoryDocumentStore()

    from backend.app.db.session import AsyncSessionLocal
    from backend.app.db.sql_store import SqlDocumentStore

    return SqlDocumentStore(AsyncSessionLocal)


def get_document_store() -> DocumentStore:
    """
    FastAPI dependency returning the process-wide document store.
    """
    global _store
    if _store is None:
        _store = build_document_store()
    return _store
