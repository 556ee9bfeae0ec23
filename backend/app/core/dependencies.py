"""
Authentication dependencies for FastAPI.

Tokens are issued by the identity provider; this module verifies them and
re-reads the user's profile document for the current role.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from backend.app.core.jwt import decode_access_token
from backend.app.core.token_revocation import is_token_revoked
from backend.app.db.document_store import DocumentStore, get_document_store
from backend.app.models.enums import Collections, UserRole

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    store: DocumentStore = Depends(get_document_store)
) -> dict:
    """
    FastAPI dependency for JWT authentication.

    Checks:
    1. Validates JWT token signature and expiry
    2. Checks if token has been explicitly revoked (signed out)
    3. Verifies the user profile still exists and its role (real-time check)

    Args:
        credentials: HTTP Bearer token from request header
        store: Document store for the users/{uid} profile lookup

    Returns:
        Token payload with role, email and name refreshed from the profile

    Raises:
        HTTPException: 401 if authentication fails for any reason
    """
    token = credentials.credentials

    # 1. Decode and validate JWT
    payload = decode_access_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    uid = payload.get("sub")
    if not uid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 2. Check if this specific token has been revoked
    if await is_token_revoked(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 3. Real-time profile check: the role may have changed since issuance
    profile = await store.get(Collections.USERS, uid)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        role = UserRole(profile.get("role"))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User has no valid role",
        )

    return {
        **payload,
        "role": role.value,
        "email": profile.get("email") or payload.get("email"),
        "name": profile.get("name") or payload.get("name") or profile.get("email"),
    }


async def get_bearer_token(credentials: HTTPAuthorizationCredentials = Depends(security)) -> str:
    """Raw bearer token of the request."""
    return credentials.credentials
