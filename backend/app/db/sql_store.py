"""
SQL-backed document store.

Documents live in the `documents` table (models/document.py). Array appends
and transactions lock the document row with SELECT ... FOR UPDATE inside one
database transaction, so concurrent appends to the same document serialize
instead of overwriting each other. Within one process they also hold a
per-document asyncio.Lock, which covers databases without row locks (SQLite).
"""

import asyncio
import copy
import logging
from collections import defaultdict
from typing import Dict, Optional, Tuple

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.core.reliability import CircuitBreaker
from backend.app.db.document_store import DocumentStore
from backend.app.models.document import Document as DocumentRow

logger = logging.getLogger("englishcamp.store.sql")


class SqlDocumentStore(DocumentStore):

    backend_errors = (SQLAlchemyError, OSError)

    def __init__(self, session_factory: async_sessionmaker, breaker: CircuitBreaker = None):
        super().__init__(breaker)
        self.session_factory = session_factory
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = defaultdict(asyncio.Lock)

    @staticmethod
    async def _locked_row(db: AsyncSession, collection: str, document_id: str) -> Optional[DocumentRow]:
        result = await db.execute(
            select(DocumentRow)
            .where(DocumentRow.collection == collection, DocumentRow.document_id == document_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def _get(self, collection, document_id):
        async with self.session_factory() as db:
            row = await db.get(DocumentRow, (collection, document_id))
            return copy.deepcopy(row.data) if row is not None else None

    async def _write(self, db: AsyncSession, collection, document_id, data, merge):
        row = await self._locked_row(db, collection, document_id)
        if row is None:
            db.add(DocumentRow(collection=collection, document_id=document_id, data=data))
            await db.flush()
        elif merge:
            # Reassign so the JSON column is flagged dirty
            row.data = {**row.data, **data}
        else:
            row.data = data

    async def _set(self, collection, document_id, data, merge):
        # A concurrent insert of the same new document loses the PK race once;
        # the retry then finds the row and updates it.
        for attempt in range(2):
            async with self.session_factory() as db:
                try:
                    await self._write(db, collection, document_id, data, merge)
                    await db.commit()
                    return
                except IntegrityError:
                    await db.rollback()
                    if attempt:
                        raise

    async def _delete(self, collection, document_id):
        async with self.session_factory() as db:
            await db.execute(
                delete(DocumentRow).where(
                    DocumentRow.collection == collection,
                    DocumentRow.document_id == document_id,
                )
            )
            await db.commit()

    async def _list(self, collection):
        async with self.session_factory() as db:
            result = await db.execute(
                select(DocumentRow)
                .where(DocumentRow.collection == collection)
                .order_by(DocumentRow.document_id)
            )
            return {row.document_id: copy.deepcopy(row.data) for row in result.scalars().all()}

    async def _append_to_array(self, collection, document_id, field, items, merge_fields):
        async with self._locks[(collection, document_id)]:
            for attempt in range(2):
                async with self.session_factory() as db:
                    try:
                        row = await self._locked_row(db, collection, document_id)
                        if row is None:
                            data = {**merge_fields, field: list(items)}
                            db.add(DocumentRow(collection=collection, document_id=document_id, data=data))
                        else:
                            data = copy.deepcopy(row.data)
                            data.update(merge_fields)
                            data[field] = list(data.get(field) or []) + list(items)
                            row.data = data
                        await db.commit()
                        return
                    except IntegrityError:
                        await db.rollback()
                        if attempt:
                            raise

    async def _run_transaction(self, collection, document_id, update_fn):
        async with self._locks[(collection, document_id)]:
            # FOR UPDATE locks nothing while the document is absent, so two
            # first writers in different processes can both insert. The loser
            # re-reads the winner's row and runs update_fn again.
            for attempt in range(2):
                async with self.session_factory() as db:
                    row = await self._locked_row(db, collection, document_id)
                    current = copy.deepcopy(row.data) if row is not None else None
                    try:
                        updated = update_fn(current)
                    except Exception:
                        await db.rollback()
                        raise
                    try:
                        if row is None:
                            db.add(DocumentRow(
                                collection=collection, document_id=document_id, data=copy.deepcopy(updated)
                            ))
                        else:
                            row.data = copy.deepcopy(updated)
                        await db.commit()
                        return updated
                    except IntegrityError:
                        await db.rollback()
                        if attempt:
                            raise
                        logger.info("Insert race on %s/%s, retrying transaction", collection, document_id)

    async def _commit_batch(self, operations):
        async with self.session_factory() as db:
            for kind, collection, document_id, data, merge in operations:
                if kind == "set":
                    await self._write(db, collection, document_id, copy.deepcopy(data), merge)
                else:
                    await db.execute(
                        delete(DocumentRow).where(
                            DocumentRow.collection == collection,
                            DocumentRow.document_id == document_id,
                        )
                    )
            await db.commit()
        logger.debug("Committed batch of %d operations", len(operations))
