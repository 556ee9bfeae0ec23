"""
Authentication API endpoints.

Sign-in happens at the identity provider. These endpoints expose the
current user, sign a token out, and (in debug mode) mint development tokens
for existing user profiles.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from backend.app.core.config import settings
from backend.app.core.dependencies import get_current_user, get_bearer_token
from backend.app.core.jwt import create_access_token
from backend.app.core.token_revocation import revoke_token
from backend.app.db.document_store import DocumentStore, get_document_store
from backend.app.models.enums import Collections, UserRole
from backend.app.schemas.auth import DevTokenRequest, TokenResponse, UserResponse, LogoutResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/dev-token", response_model=TokenResponse)
async def create_dev_token(
    request: DevTokenRequest,
    store: DocumentStore = Depends(get_document_store)
):
    """
    Mint a token for an existing users/{uid} profile.

    Only available when DEBUG is enabled.
    """
    if not settings.debug:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Not found"
        )

    profile = await store.get(Collections.USERS, request.uid)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User profile not found"
        )

    try:
        role = UserRole(profile.get("role"))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User profile has no valid role"
        )

    access_token = create_access_token(data={
        "sub": request.uid,
        "email": profile.get("email"),
        "name": profile.get("name"),
        "role": role.value,
    })

    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        uid=request.uid,
        email=profile.get("email"),
        name=profile.get("name"),
        role=role
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: dict = Depends(get_current_user)):
    """
    Get current authenticated user information.

    Requires valid JWT token in Authorization header.
    """
    return UserResponse(
        uid=current_user["sub"],
        email=current_user.get("email"),
        name=current_user.get("name"),
        role=UserRole(current_user["role"])
    )


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    current_user: dict = Depends(get_current_user),
    token: str = Depends(get_bearer_token)
):
    """
    Revoke the presented token.
    """
    revoked = await revoke_token(token, current_user["sub"])
    if not revoked:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not revoke token"
        )

    return LogoutResponse(success=True, message="Signed out")
