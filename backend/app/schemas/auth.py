"""
Authentication Pydantic schemas.

Tokens are issued by the identity provider; the dev-token endpoint mints
equivalent tokens for local use.
"""

from pydantic import BaseModel, Field
from typing import Optional
from backend.app.models.enums import UserRole


class DevTokenRequest(BaseModel):
    """
    Schema for minting a development token.

    The uid must have a profile document in users/{uid}.
    """
    uid: str = Field(..., min_length=1, description="Identity provider user id")


class TokenResponse(BaseModel):
    """
    Schema for JWT token response.
    """
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    uid: str = Field(..., description="User id")
    email: Optional[str] = Field(default=None, description="Email address")
    name: Optional[str] = Field(default=None, description="Display name")
    role: UserRole = Field(..., description="User role")


class UserResponse(BaseModel):
    """
    Schema for user information response.

    Used by GET /auth/me endpoint.
    """
    uid: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: UserRole


class LogoutResponse(BaseModel):
    success: bool
    message: str
