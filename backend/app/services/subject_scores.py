"""
Subject score service.

Lecturers submit per-subject scores for the students of one class group,
optionally with a group note. Entries are stored one document each in the
`scores` and `groupNotes` collections.
"""

import logging
from typing import Any, Dict, List

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    EmptySubmissionError,
    InvalidRosterInputError,
    UnknownSubjectError,
)
from backend.app.core.timestamps import utc_timestamp
from backend.app.db.document_store import MAX_BATCH_OPERATIONS, DocumentStore
from backend.app.models.enums import Collections
from backend.app.schemas.scores import SubmitScoresResponse
from backend.app.services.roster import RosterService

logger = logging.getLogger("englishcamp.subject_scores")


def as_number(value: Any) -> float:
    """Numeric value of a stored score; anything unparsable counts as 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class SubjectScoreService:

    def __init__(self, store: DocumentStore, roster: RosterService = None):
        self.store = store
        self.roster = roster or RosterService(store)

    async def list_subjects(self) -> List[str]:
        document = await self.store.get(Collections.SUBJECTS, Collections.SUBJECTS_DOCUMENT) or {}
        subjects = document.get("mata_kuliah") or []
        return [subject for subject in subjects if isinstance(subject, str) and subject]

    async def submit_scores(
        self,
        subject: str,
        class_name: str,
        group: str,
        scores: Dict[str, float],
        notes: str = "",
    ) -> SubmitScoresResponse:
        """
        Store the positive scores of one class group and the optional group note.

        Scores are clamped to [0, max_score]; zero scores and ids outside the
        selected group are ignored.
        """
        if subject not in await self.list_subjects():
            raise UnknownSubjectError(subject)

        index = await self.roster.load_index()
        if group not in index.groups_by_class.get(class_name, []):
            raise InvalidRosterInputError(
                f"Class {class_name} has no group {group}",
                details={"class": class_name, "group": group},
            )

        notes = (notes or "").strip()
        clamped = {
            student_id: min(float(settings.max_score), max(0.0, as_number(value)))
            for student_id, value in scores.items()
        }
        if not any(value > 0 for value in clamped.values()) and not notes:
            raise EmptySubmissionError()

        now = utc_timestamp()
        stored = 0
        for student in index.students:
            if student.class_name != class_name or student.group != group:
                continue
            score = clamped.get(student.id, 0)
            if score <= 0:
                continue
            await self.store.add(Collections.SUBJECT_SCORES, {
                "studentId": student.id,
                "studentName": student.name,
                "subject": subject,
                "class": class_name,
                "group": group,
                "score": score,
                "createdAt": now,
            })
            stored += 1

        if notes:
            await self.store.add(Collections.GROUP_NOTES, {
                "class": class_name,
                "group": group,
                "subject": subject,
                "notes": notes,
                "createdAt": now,
            })

        logger.info("Stored %d %s scores for %s group %s", stored, subject, class_name, group)
        return SubmitScoresResponse(
            stored_count=stored,
            note_saved=bool(notes),
            message=f"Successfully submitted {stored} scores.",
        )

    async def previous_totals(self, subject: str, class_name: str, group: str) -> Dict[str, float]:
        """Summed earlier scores per student of the group; zero totals omitted."""
        index = await self.roster.load_index()
        entries = (await self.store.list_documents(Collections.SUBJECT_SCORES)).values()

        totals: Dict[str, float] = {}
        for student in index.students:
            if student.class_name != class_name or student.group != group:
                continue
            total = sum(
                as_number(entry.get("score"))
                for entry in entries
                if (entry.get("studentId") == student.id or entry.get("studentName") == student.name)
                and entry.get("subject") == subject
                and entry.get("class") == class_name
                and str(entry.get("group")) == str(group)
            )
            if total > 0:
                totals[student.id] = total
        return totals

    async def clear_all(self) -> int:
        """Delete every score and group note document. Returns the number deleted."""
        deleted = 0
        for collection in (Collections.SUBJECT_SCORES, Collections.GROUP_NOTES):
            document_ids = list(await self.store.list_documents(collection))
            for start in range(0, len(document_ids), MAX_BATCH_OPERATIONS):
                batch = self.store.batch()
                for document_id in document_ids[start:start + MAX_BATCH_OPERATIONS]:
                    batch.delete(collection, document_id)
                deleted += await batch.commit()

        logger.info("Deleted %d subject score documents", deleted)
        return deleted
