"""
Score adjustment service.

Applies committee adjustments to the per-student Score Ledger
(studentScores/{studentId}) and resets all ledgers.

Consistency:
    merge (default) - the ledger is read, the change validated, then scalar
        fields are merge-written together with an atomic append of the
        history record. Concurrent adjustments of one student never lose a
        history record, but remainingScore/scoreNote/updatedAt are
        last-writer-wins and may not match the last record in history.
    transactional - read, validation and the whole write run inside one
        single-document transaction; concurrent adjustments serialize.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    InvalidScoreError,
    MissingJustificationError,
    UnknownStudentError,
)
from backend.app.core.timestamps import utc_timestamp
from backend.app.db.document_store import MAX_BATCH_OPERATIONS, DocumentStore
from backend.app.models.enums import Collections
from backend.app.schemas.ledger import (
    AdjustmentRecord,
    LedgerListResponse,
    LedgerSummary,
    ScoreLedgerEntry,
    StudentLedger,
    StudentLedgerDetail,
)
from backend.app.services.roster import RosterService

logger = logging.getLogger("englishcamp.adjustment")

HISTORY_FIELD = "history"


class AdjustmentService:

    def __init__(
        self,
        store: DocumentStore,
        roster: RosterService = None,
        clock: Callable[[], str] = utc_timestamp,
        consistency: str = None,
        max_score: int = None,
        batch_size: int = None,
    ):
        self.store = store
        self.roster = roster or RosterService(store)
        self.clock = clock
        self.consistency = consistency or settings.adjustment_consistency
        self.max_score = max_score if max_score is not None else settings.max_score
        self.batch_size = min(batch_size or settings.reset_batch_size, MAX_BATCH_OPERATIONS)

    def validate_score(self, value: Any) -> int:
        """Accept integers (and integral floats) in [0, max_score]."""
        if isinstance(value, bool):
            raise InvalidScoreError(value, self.max_score)
        if isinstance(value, int):
            score = value
        elif isinstance(value, float) and value.is_integer():
            score = int(value)
        else:
            raise InvalidScoreError(value, self.max_score)

        if not 0 <= score <= self.max_score:
            raise InvalidScoreError(value, self.max_score)
        return score

    async def read_ledger(self, student_id: str) -> Optional[ScoreLedgerEntry]:
        """Stored ledger, or None when the student was never adjusted."""
        document = await self.store.get(Collections.STUDENT_SCORES, student_id)
        if document is None:
            return None
        return ScoreLedgerEntry.from_document(document)

    def _current(self, ledger: Optional[ScoreLedgerEntry]) -> ScoreLedgerEntry:
        # The only place the implicit default ledger is applied
        return ledger if ledger is not None else ScoreLedgerEntry.default(self.max_score)

    def _plan(
        self,
        ledger: ScoreLedgerEntry,
        score: int,
        reason: str,
        committee_name: str,
    ) -> Tuple[AdjustmentRecord, Dict[str, Any]]:
        previous = ledger.remaining_score
        reason = (reason or "").strip()
        committee_name = (committee_name or "").strip()

        if score < previous:
            missing = [
                field for field, value in (("reason", reason), ("committeeName", committee_name))
                if not value
            ]
            if missing:
                raise MissingJustificationError(missing)

        # Increases need no reason; below the maximum the old note stays so a
        # deduction is never left without its explanation.
        note = reason
        if not note and score < self.max_score:
            note = ledger.score_note

        now = self.clock()
        record = AdjustmentRecord(
            timestamp=now,
            committee_name=committee_name,
            previous_score=previous,
            new_score=score,
            reduction=previous - score,
            reason=reason,
        )
        fields = {"remainingScore": score, "scoreNote": note, "updatedAt": now}
        return record, fields

    async def adjust_score(
        self,
        student_id: str,
        new_score: Any,
        reason: str,
        committee_name: str,
    ) -> ScoreLedgerEntry:
        """
        Apply one validated score change and record it in the ledger history.

        Raises:
            UnknownStudentError: student_id not in the roster index
            InvalidScoreError: new_score not an integer in [0, max_score]
            MissingJustificationError: reduction without reason or committee name
            StoreUnavailableError: store failure (nothing retried)

        Returns:
            The ledger as written by this call.
        """
        index = await self.roster.load_index()
        if student_id not in index:
            raise UnknownStudentError(student_id)
        score = self.validate_score(new_score)

        if self.consistency == "transactional":
            ledger = await self._adjust_in_transaction(student_id, score, reason, committee_name)
        else:
            ledger = await self._adjust_with_merge(student_id, score, reason, committee_name)

        record = ledger.history[-1]
        logger.info(
            "Adjusted %s: %d -> %d by %s",
            student_id, record.previous_score, record.new_score, record.committee_name or "-",
        )
        return ledger

    async def _adjust_with_merge(self, student_id, score, reason, committee_name) -> ScoreLedgerEntry:
        ledger = self._current(await self.read_ledger(student_id))
        record, fields = self._plan(ledger, score, reason, committee_name)

        await self.store.append_to_array(
            Collections.STUDENT_SCORES,
            student_id,
            HISTORY_FIELD,
            [record.to_document()],
            merge_fields=fields,
        )
        return ScoreLedgerEntry(
            remaining_score=fields["remainingScore"],
            score_note=fields["scoreNote"],
            history=[*ledger.history, record],
            updated_at=fields["updatedAt"],
        )

    async def _adjust_in_transaction(self, student_id, score, reason, committee_name) -> ScoreLedgerEntry:
        def update(current: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            ledger = self._current(None if current is None else ScoreLedgerEntry.from_document(current))
            record, fields = self._plan(ledger, score, reason, committee_name)
            document = {**(current or {}), **ledger.to_document(), **fields}
            document[HISTORY_FIELD] = [*document[HISTORY_FIELD], record.to_document()]
            return document

        written = await self.store.run_transaction(Collections.STUDENT_SCORES, student_id, update)
        return ScoreLedgerEntry.from_document(written)

    async def reset_all_scores(self) -> int:
        """
        Overwrite every known student's ledger with the default.

        Written in batches of at most batch_size documents. Not atomic across
        batches; safe to re-run. Returns the number of ledgers written.
        """
        index = await self.roster.load_index()
        student_ids = index.student_ids
        default = ScoreLedgerEntry.default(self.max_score, updated_at=self.clock()).to_document()

        written = 0
        for start in range(0, len(student_ids), self.batch_size):
            batch = self.store.batch()
            for student_id in student_ids[start:start + self.batch_size]:
                batch.set(Collections.STUDENT_SCORES, student_id, default)
            written += await batch.commit()

        logger.info("Reset %d score ledgers", written)
        return written

    async def get_ledger(self, student_id: str, ledger: Optional[ScoreLedgerEntry] = None) -> StudentLedgerDetail:
        """Student joined with a ledger; reads the stored ledger unless one is given."""
        student = await self.roster.get_student(student_id)
        if ledger is None:
            ledger = self._current(await self.read_ledger(student_id))
        return StudentLedgerDetail(
            id=student.id,
            name=student.name,
            class_name=student.class_name,
            group=student.group,
            remaining_score=ledger.remaining_score,
            score_note=ledger.score_note,
            history=ledger.history,
            updated_at=ledger.updated_at,
        )

    async def load_ledgers(self) -> Dict[str, ScoreLedgerEntry]:
        documents = await self.store.list_documents(Collections.STUDENT_SCORES)
        return {key: ScoreLedgerEntry.from_document(value) for key, value in documents.items()}

    async def list_ledgers(
        self,
        class_name: Optional[str] = None,
        group: Optional[str] = None,
        search: Optional[str] = None,
    ) -> LedgerListResponse:
        """Roster students joined with their ledgers, filtered and sorted by name."""
        index = await self.roster.load_index()
        ledgers = await self.load_ledgers()

        rows: List[StudentLedger] = []
        for student in index.students:
            if class_name and student.class_name != class_name:
                continue
            if group and student.group != group:
                continue
            if search and search.casefold() not in student.name.casefold():
                continue
            ledger = self._current(ledgers.get(student.id))
            rows.append(StudentLedger(
                id=student.id,
                name=student.name,
                class_name=student.class_name,
                group=student.group,
                remaining_score=ledger.remaining_score,
                score_note=ledger.score_note,
            ))

        rows.sort(key=lambda row: (row.name.casefold(), row.id))
        return LedgerListResponse(students=rows, summary=self.summarize(rows))

    def summarize(self, rows: List[StudentLedger]) -> LedgerSummary:
        total = len(rows)
        remaining = sum(row.remaining_score for row in rows)
        return LedgerSummary(
            total_students=total,
            total_used_score=sum(self.max_score - row.remaining_score for row in rows),
            average_remaining=round(remaining / total, 1) if total else 0,
        )
