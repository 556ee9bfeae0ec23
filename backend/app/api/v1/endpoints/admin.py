"""
Admin API Endpoints.

Roster management, system switches, score resets and the audit trail.
Every state change is written to the audit log.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from backend.app.core.guards import require_admin
from backend.app.db.document_store import DocumentStore, get_document_store
from backend.app.models.enums import UserRole
from backend.app.schemas.admin import (
    AuditTrailResponse, ResetScoresRequest, ResetScoresResponse
)
from backend.app.schemas.roster import RosterActionResponse, StudentUpsert
from backend.app.schemas.system import SetSystemStatusRequest, SystemStatusResponse
from backend.app.services.adjustment import AdjustmentService
from backend.app.services.audit import AuditAction, get_audit_trail, log_user_action
from backend.app.services.roster import RosterService
from backend.app.services.subject_scores import SubjectScoreService
from backend.app.services.system_control import SystemControlService

router = APIRouter(prefix="/admin", tags=["Admin"])

SWITCHABLE_ROLES = (UserRole.DOSEN, UserRole.PANITIA)


def _switchable(role: UserRole) -> UserRole:
    if role not in SWITCHABLE_ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only the dosen and panitia systems can be locked"
        )
    return role


@router.post("/students", response_model=RosterActionResponse, status_code=status.HTTP_201_CREATED)
async def add_student(
    request: StudentUpsert,
    admin: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store)
):
    """
    Add a student to a class group (admin-only).
    """
    student = await RosterService(store).add_student(request.name, request.class_name, request.group)

    await log_user_action(
        store, admin, AuditAction.STUDENT_ADDED,
        details=f"Added {student.name} to class {student.class_name} group {student.group}",
        metadata={"student_id": student.id}
    )

    return RosterActionResponse(success=True, message="Student added successfully", student=student)


@router.put("/students/{student_id}", response_model=RosterActionResponse)
async def update_student(
    student_id: str,
    request: StudentUpsert,
    admin: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store)
):
    """
    Rename a student or move them to another class group (admin-only).

    The student id changes with the name, class or group.
    """
    student = await RosterService(store).update_student(
        student_id, request.name, request.class_name, request.group
    )

    await log_user_action(
        store, admin, AuditAction.STUDENT_UPDATED,
        details=f"Updated {student_id} to {student.id}",
        metadata={"previous_id": student_id, "student_id": student.id}
    )

    return RosterActionResponse(success=True, message="Student updated successfully", student=student)


@router.delete("/students/{student_id}", response_model=RosterActionResponse)
async def delete_student(
    student_id: str,
    admin: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store)
):
    """
    Remove a student from the roster (admin-only).
    """
    student = await RosterService(store).delete_student(student_id)

    await log_user_action(
        store, admin, AuditAction.STUDENT_DELETED,
        details=f"Deleted {student.name} from class {student.class_name} group {student.group}",
        metadata={"student_id": student.id}
    )

    return RosterActionResponse(success=True, message="Student deleted successfully", student=student)


@router.get("/system/status", response_model=SystemStatusResponse)
async def get_system_status(
    admin: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store)
):
    """
    Current lecturer and committee switches (admin-only).
    """
    return await SystemControlService(store).get_status()


@router.put("/system/status/{role}", response_model=SystemStatusResponse)
async def set_system_status(
    role: UserRole,
    request: SetSystemStatusRequest,
    admin: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store)
):
    """
    Open or lock the lecturer or committee system (admin-only).
    """
    result = await SystemControlService(store).set_status(_switchable(role), request.status)

    await log_user_action(
        store, admin, AuditAction.SYSTEM_STATUS_CHANGED,
        details=f"{role.value} system set to {request.status.value}",
        metadata={"role": role.value, "status": request.status.value}
    )

    return result


@router.post("/system/status/{role}/toggle", response_model=SystemStatusResponse)
async def toggle_system_status(
    role: UserRole,
    admin: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store)
):
    """
    Flip the lecturer or committee system between OPEN and LOCKED (admin-only).
    """
    result = await SystemControlService(store).toggle(_switchable(role))
    new_status = result.dosen_status if role == UserRole.DOSEN else result.panitia_status

    await log_user_action(
        store, admin, AuditAction.SYSTEM_STATUS_CHANGED,
        details=f"{role.value} system {'locked' if new_status.value == 'LOCKED' else 'unlocked'}",
        metadata={"role": role.value, "status": new_status.value}
    )

    return result


@router.post("/reset-scores", response_model=ResetScoresResponse)
async def reset_scores(
    request: ResetScoresRequest = None,
    admin: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store)
):
    """
    Reset every committee score ledger to 100 with an empty history (admin-only).

    Irreversible: download the reports first. Optionally also deletes all
    lecturer scores and group notes.
    """
    request = request or ResetScoresRequest()

    ledgers_reset = await AdjustmentService(store).reset_all_scores()
    await log_user_action(
        store, admin, AuditAction.SCORES_RESET,
        details=f"Reset {ledgers_reset} committee score ledgers",
        metadata={"ledgers_reset": ledgers_reset}
    )

    deleted = 0
    if request.include_subject_scores:
        deleted = await SubjectScoreService(store).clear_all()
        await log_user_action(
            store, admin, AuditAction.SUBJECT_SCORES_CLEARED,
            details=f"Deleted {deleted} scores and group notes",
            metadata={"documents_deleted": deleted}
        )

    return ResetScoresResponse(
        success=True,
        message="Scores have been reset successfully",
        ledgers_reset=ledgers_reset,
        subject_documents_deleted=deleted
    )


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    action: str = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=500, description="Maximum records to return"),
    admin: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store)
):
    """
    Get audit trail with optional filtering (admin-only).
    """
    logs = await get_audit_trail(store=store, action=action, limit=limit)

    return AuditTrailResponse(logs=logs, total=len(logs))
