"""
Lecturer (dosen) API Endpoints.

Subject list, earlier totals of a class group and score submission.
"""

from fastapi import APIRouter, Depends, Query, status
from backend.app.core.guards import require_role
from backend.app.db.document_store import DocumentStore, get_document_store
from backend.app.models.enums import UserRole
from backend.app.schemas.scores import (
    PreviousTotalsResponse, SubjectListResponse, SubmitScoresRequest, SubmitScoresResponse
)
from backend.app.services.audit import AuditAction, log_user_action
from backend.app.services.subject_scores import SubjectScoreService

router = APIRouter(prefix="/dosen", tags=["Lecturer"])


@router.get("/subjects", response_model=SubjectListResponse)
async def list_subjects(
    current_user: dict = Depends(require_role([UserRole.DOSEN, UserRole.ADMIN])),
    store: DocumentStore = Depends(get_document_store)
):
    return SubjectListResponse(subjects=await SubjectScoreService(store).list_subjects())


@router.get("/scores/previous", response_model=PreviousTotalsResponse)
async def get_previous_totals(
    subject: str = Query(..., min_length=1),
    class_name: str = Query(..., alias="class", min_length=1),
    group: str = Query(..., min_length=1),
    current_user: dict = Depends(require_role([UserRole.DOSEN, UserRole.ADMIN])),
    store: DocumentStore = Depends(get_document_store)
):
    """
    Summed scores already submitted for each student of the group in a subject.
    """
    totals = await SubjectScoreService(store).previous_totals(subject, class_name, group)
    return PreviousTotalsResponse(subject=subject, class_name=class_name, group=group, totals=totals)


@router.post("/scores", response_model=SubmitScoresResponse, status_code=status.HTTP_201_CREATED)
async def submit_scores(
    request: SubmitScoresRequest,
    current_user: dict = Depends(require_role([UserRole.DOSEN])),
    store: DocumentStore = Depends(get_document_store)
):
    """
    Submit subject scores for one class group.

    Zero scores are skipped; at least one positive score or a note is required.
    """
    result = await SubjectScoreService(store).submit_scores(
        subject=request.subject,
        class_name=request.class_name,
        group=request.group,
        scores=request.scores,
        notes=request.notes,
    )

    await log_user_action(
        store, current_user, AuditAction.SUBJECT_SCORES_SUBMITTED,
        details=f"{request.subject} scores for class {request.class_name} group {request.group}",
        metadata={
            "subject": request.subject,
            "class": request.class_name,
            "group": request.group,
            "stored_count": result.stored_count,
            "note_saved": result.note_saved,
        }
    )

    return result
