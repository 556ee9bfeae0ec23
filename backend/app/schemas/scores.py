"""
Lecturer (dosen) subject score schemas.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List


class SubjectListResponse(BaseModel):
    subjects: List[str]


class SubmitScoresRequest(BaseModel):
    """Scores for the students of one class group in one subject."""
    model_config = ConfigDict(populate_by_name=True)

    subject: str = Field(..., min_length=1)
    class_name: str = Field(..., alias="class", min_length=1)
    group: str = Field(..., min_length=1)
    scores: Dict[str, float] = Field(default_factory=dict, description="studentId -> score")
    notes: str = Field("", max_length=5000, description="Group note for this subject")


class SubmitScoresResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stored_count: int = Field(..., alias="storedCount")
    note_saved: bool = Field(..., alias="noteSaved")
    message: str


class PreviousTotalsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subject: str
    class_name: str = Field(..., alias="class")
    group: str
    totals: Dict[str, float] = Field(default_factory=dict, description="studentId -> summed score")
