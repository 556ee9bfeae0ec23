"""
Reporting Service.

Read-only tabular views over the roster, the score ledgers, the subject
scores and the audit trail, plus CSV rendering for downloads.
"""

import csv
import io
from collections import defaultdict
from typing import Any, Dict, List, Tuple

from backend.app.core.config import settings
from backend.app.db.document_store import DocumentStore
from backend.app.models.enums import Collections
from backend.app.schemas.reports import ReportResponse, ReportSheet
from backend.app.services.adjustment import AdjustmentService
from backend.app.services.audit import get_audit_trail
from backend.app.services.roster import RosterService, group_sort_key
from backend.app.services.subject_scores import SubjectScoreService, as_number

Rows = List[Dict[str, Any]]


def _class_group_key(row: Dict[str, Any]) -> Tuple[str, Tuple]:
    return (row["Class"], group_sort_key(row["Group"]))


def _number(value: float):
    return int(value) if float(value).is_integer() else value


class ReportingService:

    def __init__(self, store: DocumentStore):
        self.store = store
        self.roster = RosterService(store)
        self.adjustments = AdjustmentService(store, roster=self.roster)
        self.subject_scores = SubjectScoreService(store, roster=self.roster)

    async def committee_recap(self) -> Tuple[List[str], Rows]:
        columns = ["Student Name", "Class", "Group", "Remaining Score", "Used Score", "Notes"]
        index = await self.roster.load_index()
        ledgers = await self.adjustments.load_ledgers()

        rows = []
        for student in index.students:
            ledger = ledgers.get(student.id)
            remaining = ledger.remaining_score if ledger else settings.max_score
            note = ledger.score_note if ledger else ""
            rows.append({
                "Student Name": student.name,
                "Class": student.class_name,
                "Group": student.group,
                "Remaining Score": remaining,
                "Used Score": settings.max_score - remaining,
                "Notes": note or "-",
            })
        rows.sort(key=_class_group_key)
        return columns, rows

    async def adjustment_history(self) -> Tuple[List[str], Rows]:
        columns = [
            "Timestamp", "Student Name", "Class", "Group", "Committee",
            "Previous Score", "New Score", "Reduction", "Reason",
        ]
        index = await self.roster.load_index()
        ledgers = await self.adjustments.load_ledgers()

        rows = []
        for student in index.students:
            ledger = ledgers.get(student.id)
            if ledger is None:
                continue
            for record in ledger.history:
                rows.append({
                    "Timestamp": record.timestamp,
                    "Student Name": student.name,
                    "Class": student.class_name,
                    "Group": student.group,
                    "Committee": record.committee_name,
                    "Previous Score": record.previous_score,
                    "New Score": record.new_score,
                    "Reduction": record.reduction,
                    "Reason": record.reason,
                })
        rows.sort(key=lambda row: row["Timestamp"], reverse=True)
        return columns, rows

    async def committee_activity(self) -> Tuple[List[str], Rows]:
        columns = ["Committee", "Adjustments", "Total Reduction"]
        _, history = await self.adjustment_history()

        counts: Dict[str, int] = defaultdict(int)
        reductions: Dict[str, int] = defaultdict(int)
        for row in history:
            committee = row["Committee"] or "-"
            counts[committee] += 1
            reductions[committee] += row["Reduction"]

        rows = [
            {"Committee": name, "Adjustments": counts[name], "Total Reduction": reductions[name]}
            for name in counts
        ]
        rows.sort(key=lambda row: (-row["Adjustments"], row["Committee"]))
        return columns, rows

    async def subject_recap(self) -> Tuple[List[str], Rows]:
        index = await self.roster.load_index()
        subjects = await self.subject_scores.list_subjects()
        entries = list((await self.store.list_documents(Collections.SUBJECT_SCORES)).values())

        for entry in entries:
            subject = entry.get("subject")
            if isinstance(subject, str) and subject and subject not in subjects:
                subjects.append(subject)

        by_id: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        by_name: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for entry in entries:
            if entry.get("studentId"):
                by_id[entry["studentId"]].append(entry)
            elif entry.get("studentName"):
                by_name[entry["studentName"]].append(entry)

        rows = []
        for student in index.students:
            matched = by_id.get(student.id, []) + by_name.get(student.name, [])
            row = {"Student": student.name, "Class": student.class_name, "Group": student.group}
            total = 0.0
            for subject in subjects:
                value = sum(
                    as_number(entry.get("score")) for entry in matched
                    if str(entry.get("subject", "")).casefold() == subject.casefold()
                )
                row[subject] = _number(value)
                total += value
            row["Total"] = _number(total)
            rows.append(row)

        rows.sort(key=_class_group_key)
        return ["Student", "Class", "Group", *subjects, "Total"], rows

    async def subject_scores_export(self) -> Tuple[List[str], Rows]:
        """Every stored subject score entry, one row each."""
        columns = ["Student Name", "Subject", "Class", "Group", "Score", "Date Input"]
        entries = await self.store.list_documents(Collections.SUBJECT_SCORES)
        rows = [
            {
                "Student Name": entry.get("studentName") or "",
                "Subject": entry.get("subject") or "",
                "Class": str(entry.get("class") or ""),
                "Group": str(entry.get("group") or ""),
                "Score": _number(as_number(entry.get("score"))),
                "Date Input": (entry.get("createdAt") or "")[:10],
            }
            for entry in entries.values()
        ]
        rows.sort(key=lambda row: (*_class_group_key(row), row["Student Name"]))
        return columns, rows

    async def lecturer_notes(self) -> Tuple[List[str], Rows]:
        columns = ["Class", "Group", "Subject", "Notes", "Created At"]
        notes = await self.store.list_documents(Collections.GROUP_NOTES)
        rows = [
            {
                "Class": str(note.get("class") or ""),
                "Group": str(note.get("group") or ""),
                "Subject": note.get("subject") or "",
                "Notes": note.get("notes") or "",
                "Created At": note.get("createdAt") or "",
            }
            for note in notes.values()
        ]
        rows.sort(key=lambda row: (*_class_group_key(row), row["Created At"]))
        return columns, rows

    async def audit_log(self) -> Tuple[List[str], Rows]:
        columns = ["Action", "Performed By", "Email", "Details", "Date & Time"]
        logs = await get_audit_trail(self.store, limit=None)
        rows = [
            {
                "Action": log.action,
                "Performed By": log.performed_by or "",
                "Email": log.email or "",
                "Details": log.details,
                "Date & Time": log.created_at,
            }
            for log in logs
        ]
        return columns, rows

    async def build(self, sheet: ReportSheet) -> ReportResponse:
        builders = {
            ReportSheet.COMMITTEE_RECAP: self.committee_recap,
            ReportSheet.ADJUSTMENT_HISTORY: self.adjustment_history,
            ReportSheet.COMMITTEE_ACTIVITY: self.committee_activity,
            ReportSheet.SUBJECT_RECAP: self.subject_recap,
            ReportSheet.SCORES: self.subject_scores_export,
            ReportSheet.LECTURER_NOTES: self.lecturer_notes,
            ReportSheet.AUDIT_LOG: self.audit_log,
        }
        columns, rows = await builders[sheet]()
        return ReportResponse(sheet=sheet, columns=columns, rows=rows, total=len(rows))


def render_csv(report: ReportResponse) -> str:
    """Render a report as CSV text with a header row."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=report.columns, extrasaction="ignore")
    writer.writeheader()
    writer.writerows(report.rows)
    return buffer.getvalue()
