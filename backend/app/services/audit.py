"""
Audit logging service for tracking admin and lecturer actions.

Events are appended to the `history` collection, one document per event.
Committee score adjustments are not logged here: each ledger keeps its own
adjustment history.
"""

import logging
from typing import Optional, Dict, Any, List

from backend.app.core.timestamps import utc_timestamp
from backend.app.db.document_store import DocumentStore
from backend.app.models.enums import Collections
from backend.app.schemas.admin import AuditLogResponse

logger = logging.getLogger("englishcamp.audit")


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    SCORES_RESET = "SCORES_RESET"
    SUBJECT_SCORES_CLEARED = "SUBJECT_SCORES_CLEARED"
    SUBJECT_SCORES_SUBMITTED = "SUBJECT_SCORES_SUBMITTED"

    STUDENT_ADDED = "STUDENT_ADDED"
    STUDENT_UPDATED = "STUDENT_UPDATED"
    STUDENT_DELETED = "STUDENT_DELETED"

    SYSTEM_STATUS_CHANGED = "SYSTEM_STATUS_CHANGED"


async def log_event(
    store: DocumentStore,
    action: str,
    performed_by: Optional[str] = None,
    email: Optional[str] = None,
    details: str = "",
    metadata: Optional[Dict[str, Any]] = None
) -> str:
    """
    Log an event to the audit trail.

    Args:
        store: Document store
        action: Action being performed (use AuditAction constants)
        performed_by: Display name of the acting user
        email: Email of the acting user
        details: Human readable description
        metadata: Additional context as JSON

    Returns:
        Id of the created audit document
    """
    event_id = await store.add(Collections.HISTORY, {
        "action": action,
        "performedBy": performed_by,
        "email": email,
        "details": details,
        "metadata": metadata,
        "createdAt": utc_timestamp(),
    })
    logger.info("Audit %s by %s: %s", action, performed_by or "-", details)
    return event_id


async def log_user_action(
    store: DocumentStore,
    user: Dict[str, Any],
    action: str,
    details: str = "",
    metadata: Optional[Dict[str, Any]] = None
) -> str:
    """
    Log an action performed by the authenticated user.

    Args:
        store: Document store
        user: Current user payload (from get_current_user)
        action: Action performed (use AuditAction constants)
        details: Human readable description
        metadata: Additional context

    Returns:
        Id of the created audit document
    """
    return await log_event(
        store=store,
        action=action,
        performed_by=user.get("name") or user.get("sub"),
        email=user.get("email"),
        details=details,
        metadata=metadata
    )


async def get_audit_trail(
    store: DocumentStore,
    action: Optional[str] = None,
    limit: Optional[int] = 100
) -> List[AuditLogResponse]:
    """
    Retrieve audit trail with optional filtering.

    Args:
        store: Document store
        action: Filter by action type
        limit: Maximum number of records to return, None for all

    Returns:
        Audit events, most recent first
    """
    documents = await store.list_documents(Collections.HISTORY)
    logs = [
        AuditLogResponse(
            id=event_id,
            action=data.get("action") or "",
            performed_by=data.get("performedBy"),
            email=data.get("email"),
            details=data.get("details") or "",
            metadata=data.get("metadata"),
            created_at=data.get("createdAt") or "",
        )
        for event_id, data in documents.items()
        if action is None or data.get("action") == action
    ]
    logs.sort(key=lambda log: log.created_at, reverse=True)
    return logs if limit is None else logs[:limit]
