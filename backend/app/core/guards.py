"""
Security guards for role-based access control.

Provides dependencies for protecting endpoints, including the admin
switches that lock the lecturer and committee systems.
"""

from typing import List
from fastapi import Depends, HTTPException, status
from backend.app.core.dependencies import get_current_user
from backend.app.db.document_store import DocumentStore, get_document_store
from backend.app.models.enums import UserRole
from backend.app.services.system_control import SystemControlService


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Lecturers and committee members are additionally rejected with 423 while
    an admin has locked their system.

    Usage:
        @router.put("/panitia/scores/{student_id}")
        async def adjust(current_user: dict = Depends(require_role([UserRole.PANITIA]))):
            ...

    Args:
        allowed_roles: List of UserRole enums that are allowed to access the endpoint

    Returns:
        FastAPI dependency function that validates user role

    Raises:
        HTTPException 403 if user role is not in allowed_roles
        SystemLockedError if the caller's system is locked
    """
    async def role_checker(
        current_user: dict = Depends(get_current_user),
        store: DocumentStore = Depends(get_document_store)
    ) -> dict:
        user_role_str = current_user.get("role")

        if not user_role_str:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Role information missing from token"
            )

        # Convert string role to UserRole enum
        try:
            user_role = UserRole(user_role_str)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid role in token"
            )

        # Check if user role is in allowed roles
        if user_role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )

        await SystemControlService(store).ensure_open(user_role)

        return current_user

    return role_checker


def require_admin(current_user: dict = Depends(get_current_user)) -> dict:
    """
    Dependency for admin-only endpoints.

    Args:
        current_user: Authenticated user from JWT

    Returns:
        User payload if admin, raises 403 otherwise
    """
    if current_user.get("role") != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )

    return current_user
