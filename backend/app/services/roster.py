"""
Roster service.

Derives the Roster Index from the nested roster document
(students/all_classes = {class: {group: [names]}}) and applies admin edits
to that document.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from backend.app.core.exceptions import (
    DuplicateStudentError,
    InvalidRosterInputError,
    UnknownStudentError,
)
from backend.app.db.document_store import DocumentStore
from backend.app.models.enums import Collections
from backend.app.schemas.roster import RejectedRosterEntry, RosterIndex, Student

logger = logging.getLogger("englishcamp.roster")


def make_student_id(class_name: str, group: str, name: str) -> str:
    return f"{class_name}-{group}-{name}"


def group_sort_key(label: str) -> Tuple[int, float, str]:
    """
    Numeric labels ascending, then non-numeric labels; ties broken lexically.

    "2", "10", "1" -> "1", "2", "10"; "A" and "B" sort after every number.
    """
    try:
        value = float(label.strip())
    except ValueError:
        return (1, 0.0, label)
    if math.isnan(value) or math.isinf(value):
        return (1, 0.0, label)
    return (0, value, label)


def build_roster_index(roster: Optional[Dict[str, Any]]) -> RosterIndex:
    """
    Flatten the roster document into a RosterIndex.

    Pure function of the document. Malformed entries are skipped and listed in
    `rejected`: a class whose value is not a mapping, a group whose value is
    not a list, and names that are not non-empty strings.
    """
    if not roster:
        return RosterIndex()

    students: List[Student] = []
    groups_by_class: Dict[str, List[str]] = {}
    rejected: List[RejectedRosterEntry] = []

    for class_name in sorted(roster):
        groups = roster[class_name]
        if not isinstance(groups, dict):
            rejected.append(RejectedRosterEntry(class_name=class_name, reason="class value is not a mapping"))
            continue

        valid_groups = []
        for group in sorted(groups, key=group_sort_key):
            names = groups[group]
            if not isinstance(names, list):
                rejected.append(RejectedRosterEntry(
                    class_name=class_name, group=group, reason="group value is not a list"
                ))
                continue

            valid_groups.append(group)
            for name in names:
                if not isinstance(name, str) or not name.strip():
                    rejected.append(RejectedRosterEntry(
                        class_name=class_name, group=group, reason=f"invalid student name {name!r}"
                    ))
                    continue
                students.append(Student(
                    id=make_student_id(class_name, group, name),
                    name=name,
                    class_name=class_name,
                    group=group,
                ))

        groups_by_class[class_name] = valid_groups

    for entry in rejected:
        logger.warning(
            "Skipped roster entry class=%s group=%s: %s", entry.class_name, entry.group, entry.reason
        )

    return RosterIndex(
        students=students,
        classes=sorted(groups_by_class),
        groups_by_class=groups_by_class,
        rejected=rejected,
    )


class RosterService:
    """Loads the roster index and edits the roster document."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def _load_document(self) -> Dict[str, Any]:
        return await self.store.get(Collections.STUDENTS, Collections.ROSTER_DOCUMENT) or {}

    async def _save_document(self, roster: Dict[str, Any]) -> None:
        await self.store.set(Collections.STUDENTS, Collections.ROSTER_DOCUMENT, roster)

    async def load_index(self) -> RosterIndex:
        return build_roster_index(await self._load_document())

    async def get_student(self, student_id: str) -> Student:
        student = (await self.load_index()).get(student_id)
        if student is None:
            raise UnknownStudentError(student_id)
        return student

    @staticmethod
    def _clean(name: str, class_name: str, group: str) -> Tuple[str, str, str]:
        cleaned = (name.strip(), class_name.strip(), group.strip())
        blank = [field for field, value in zip(("name", "class", "group"), cleaned) if not value]
        if blank:
            raise InvalidRosterInputError("Roster fields must not be blank", details={"blank": blank})
        return cleaned

    @staticmethod
    def _remove(roster: Dict[str, Any], student: Student) -> None:
        groups = roster.get(student.class_name) or {}
        names = groups.get(student.group) or []
        groups[student.group] = [name for name in names if name != student.name]
        if not groups[student.group]:
            del groups[student.group]
        if not groups:
            roster.pop(student.class_name, None)

    @staticmethod
    def _insert(roster: Dict[str, Any], name: str, class_name: str, group: str) -> None:
        groups = roster.setdefault(class_name, {})
        names = groups.setdefault(group, [])
        if name in names:
            raise DuplicateStudentError(name, class_name, group)
        names.append(name)
        names.sort()

    async def add_student(self, name: str, class_name: str, group: str) -> Student:
        name, class_name, group = self._clean(name, class_name, group)
        roster = await self._load_document()
        self._insert(roster, name, class_name, group)
        await self._save_document(roster)
        logger.info("Added student %s to class %s group %s", name, class_name, group)
        return Student(id=make_student_id(class_name, group, name), name=name, class_name=class_name, group=group)

    async def update_student(self, student_id: str, name: str, class_name: str, group: str) -> Student:
        """
        Rename or move a student. The student id changes with it; the ledger
        stored under the old id is not migrated.
        """
        name, class_name, group = self._clean(name, class_name, group)
        roster = await self._load_document()
        current = build_roster_index(roster).get(student_id)
        if current is None:
            raise UnknownStudentError(student_id)

        self._remove(roster, current)
        self._insert(roster, name, class_name, group)
        await self._save_document(roster)
        logger.info("Updated student %s -> %s", student_id, make_student_id(class_name, group, name))
        return Student(id=make_student_id(class_name, group, name), name=name, class_name=class_name, group=group)

    async def delete_student(self, student_id: str) -> Student:
        roster = await self._load_document()
        current = build_roster_index(roster).get(student_id)
        if current is None:
            raise UnknownStudentError(student_id)

        self._remove(roster, current)
        await self._save_document(roster)
        logger.info("Deleted student %s", student_id)
        return current
