"""
Score Ledger Pydantic schemas.

Field aliases are the document store wire names (camelCase); responses are
serialized by alias.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class AdjustmentRecord(BaseModel):
    """One committee adjustment. Immutable once created."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    timestamp: str = Field(..., description="ISO-8601 instant of the adjustment")
    committee_name: str = Field(..., alias="committeeName")
    previous_score: int = Field(..., alias="previousScore")
    new_score: int = Field(..., alias="newScore")
    reduction: int = Field(..., description="previousScore - newScore")
    reason: str = ""

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ScoreLedgerEntry(BaseModel):
    """Per-student ledger stored at studentScores/{studentId}."""
    model_config = ConfigDict(populate_by_name=True)

    remaining_score: int = Field(100, alias="remainingScore")
    score_note: str = Field("", alias="scoreNote")
    history: List[AdjustmentRecord] = Field(default_factory=list)
    updated_at: Optional[str] = Field(None, alias="updatedAt")

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "ScoreLedgerEntry":
        # Older ledgers were written without history or with a null note
        return cls.model_validate({
            "remainingScore": data.get("remainingScore", 100),
            "scoreNote": data.get("scoreNote") or "",
            "history": data.get("history") or [],
            "updatedAt": data.get("updatedAt"),
        })

    @classmethod
    def default(cls, max_score: int = 100, updated_at: Optional[str] = None) -> "ScoreLedgerEntry":
        return cls(remaining_score=max_score, score_note="", history=[], updated_at=updated_at)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class AdjustScoreRequest(BaseModel):
    """Schema for a committee score adjustment."""
    model_config = ConfigDict(populate_by_name=True)

    # Left untyped so the service reports InvalidScore for every bad value
    new_score: Any = Field(..., alias="newScore", description="Integer in [0, 100]")
    reason: str = Field("", max_length=1000, description="Required when the score is reduced")
    committee_name: Optional[str] = Field(
        None, alias="committeeName", description="Defaults to the caller's name"
    )


class StudentLedger(BaseModel):
    """A roster student joined with the current ledger values."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    class_name: str = Field(..., alias="class")
    group: str
    remaining_score: int = Field(..., alias="remainingScore")
    score_note: str = Field(..., alias="scoreNote")


class StudentLedgerDetail(StudentLedger):
    history: List[AdjustmentRecord] = Field(default_factory=list)
    updated_at: Optional[str] = Field(None, alias="updatedAt")


class LedgerSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_students: int = Field(..., alias="totalStudents")
    total_used_score: int = Field(..., alias="totalUsedScore")
    average_remaining: float = Field(..., alias="averageRemaining")


class LedgerListResponse(BaseModel):
    students: List[StudentLedger]
    summary: LedgerSummary
