"""
Committee (panitia) API Endpoints.

Review the score ledgers and apply score adjustments.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from backend.app.core.guards import require_role
from backend.app.db.document_store import DocumentStore, get_document_store
from backend.app.models.enums import UserRole
from backend.app.schemas.ledger import (
    AdjustScoreRequest, LedgerListResponse, StudentLedgerDetail
)
from backend.app.services.adjustment import AdjustmentService

router = APIRouter(prefix="/panitia", tags=["Committee"])


@router.get("/scores", response_model=LedgerListResponse)
async def list_scores(
    class_name: Optional[str] = Query(None, alias="class", description="Filter by class"),
    group: Optional[str] = Query(None, description="Filter by group"),
    search: Optional[str] = Query(None, description="Case-insensitive name search"),
    current_user: dict = Depends(require_role([UserRole.PANITIA, UserRole.ADMIN])),
    store: DocumentStore = Depends(get_document_store)
):
    """
    List students with their remaining score and note, plus summary stats.
    """
    return await AdjustmentService(store).list_ledgers(class_name=class_name, group=group, search=search)


@router.get("/scores/{student_id}", response_model=StudentLedgerDetail)
async def get_score(
    student_id: str,
    current_user: dict = Depends(require_role([UserRole.PANITIA, UserRole.ADMIN])),
    store: DocumentStore = Depends(get_document_store)
):
    """
    One student's ledger including the full adjustment history.
    """
    return await AdjustmentService(store).get_ledger(student_id)


@router.put("/scores/{student_id}", response_model=StudentLedgerDetail)
async def adjust_score(
    student_id: str,
    request: AdjustScoreRequest,
    current_user: dict = Depends(require_role([UserRole.PANITIA])),
    store: DocumentStore = Depends(get_document_store)
):
    """
    Set a student's remaining score.

    A reduction requires a reason; the committee name defaults to the
    caller's display name.
    """
    service = AdjustmentService(store)
    committee_name = request.committee_name or current_user.get("name") or ""

    ledger = await service.adjust_score(
        student_id=student_id,
        new_score=request.new_score,
        reason=request.reason,
        committee_name=committee_name,
    )

    return await service.get_ledger(student_id, ledger=ledger)
