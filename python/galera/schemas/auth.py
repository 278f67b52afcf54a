"""Identity and credential schemas.

Raw token values appear only in responses to the call that minted them.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "RefreshTokenRequest",
    "SetPasswordRequest",
    "UserOut",
    "IssuedToken",
    "TokenPair",
]

# =============================================================================
# Request Schemas
# =============================================================================


class RegisterRequest(BaseModel):
    """Request body for creating a password account."""

    username: str = Field(..., description="Lowercase letters, digits and underscores (5-30 chars)")
    email: str = Field(..., max_length=255)
    password: str = Field(..., description="8-128 characters")


class LoginRequest(BaseModel):
    """Request body for password login. ``login`` is a username or an email."""

    login: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., max_length=1024)


class RefreshTokenRequest(BaseModel):
    """Request body carrying a refresh token."""

    refresh_token: str = Field(..., min_length=1, max_length=255)


class SetPasswordRequest(BaseModel):
    """Request body for adding or changing the caller's password."""

    password: str


# =============================================================================
# Response Schemas
# =============================================================================


class UserOut(BaseModel):
    """Public view of a user account."""

    id: UUID
    username: str | None
    email: str | None
    has_password: bool
    created_at: datetime


class IssuedToken(BaseModel):
    """A freshly minted opaque token and its expiration."""

    token: str
    expires_at: datetime


class TokenPair(BaseModel):
    """Refresh + access token issued together on login or rotation."""

    refresh_token: IssuedToken
    access_token: IssuedToken
