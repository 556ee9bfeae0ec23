"""
Report Pydantic schemas.
"""

import enum
from pydantic import BaseModel
from typing import Any, Dict, List


class ReportSheet(str, enum.Enum):
    """Available report sheets."""
    COMMITTEE_RECAP = "committee-recap"
    ADJUSTMENT_HISTORY = "adjustment-history"
    COMMITTEE_ACTIVITY = "committee-activity"
    SUBJECT_RECAP = "subject-recap"
    SCORES = "scores"
    LECTURER_NOTES = "lecturer-notes"
    AUDIT_LOG = "audit-log"


class ReportResponse(BaseModel):
    """A tabular sheet: ordered column names and one dict per row."""
    sheet: ReportSheet
    columns: List[str]
    rows: List[Dict[str, Any]]
    total: int
