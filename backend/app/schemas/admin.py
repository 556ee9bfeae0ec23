"""
Admin API Schema Definitions.

Pydantic schemas for admin endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class ResetScoresRequest(BaseModel):
    """Schema for the score reset."""
    model_config = ConfigDict(populate_by_name=True)

    include_subject_scores: bool = Field(
        False,
        alias="includeSubjectScores",
        description="Also delete every lecturer score and group note"
    )


class ResetScoresResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    ledgers_reset: int = Field(..., alias="ledgersReset")
    subject_documents_deleted: int = Field(0, alias="subjectDocumentsDeleted")


class AuditLogResponse(BaseModel):
    """Schema for audit log entry."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    action: str
    performed_by: Optional[str] = Field(None, alias="performedBy")
    email: Optional[str] = None
    details: str = ""
    metadata: Optional[Dict[str, Any]] = None
    created_at: str = Field(..., alias="createdAt")


class AuditTrailResponse(BaseModel):
    """Schema for audit trail list."""
    logs: List[AuditLogResponse]
    total: int
