"""Pydantic schemas for the token API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class TokenRequest(BaseModel):
    """Request carrying a bearer token."""

    token: str = Field(default="", description="Signed session token")


class ValidateTokenRequest(TokenRequest):
    """Request for full validation with an optional role requirement."""

    required_role: str | None = Field(None, description="Role the token holder must have")


class CheckAuthorizationRequest(TokenRequest):
    """Request for a role or permission check."""

    role: str | None = None
    permission: str | None = Field(
        None,
        description="Any permission is granted only to holders of the admin role",
    )


class RevokeRequest(TokenRequest):
    """Administrative revocation of another user's token."""

    reason: str | None = Field(None, max_length=255)


class ClaimsResponse(BaseModel):
    """Claims carried by a token."""

    user_id: str
    username: str
    email: str
    is_verified: bool
    roles: list[str]
    issuer: str
    audience: str
    token_id: str
    issued_at: datetime
    expires_at: datetime


class ValidationResponse(BaseModel):
    """Outcome of full validation."""

    valid: bool
    message: str
    failure: str | None = None
    expired: bool = False
    revoked: bool = False
    claims: ClaimsResponse | None = None


class QuickValidationResponse(BaseModel):
    """Outcome of signature-only validation."""

    valid: bool
    message: str
    username: str | None = None
    expires_at: datetime | None = None


class AuthorizationDetails(BaseModel):
    has_role: bool
    checked_role: str | None = None
    checked_permission: str | None = None


class AuthorizationResponse(BaseModel):
    authorized: bool
    message: str
    details: AuthorizationDetails | None = None


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str


class LogoutAllResponse(BaseModel):
    message: str
    tokens_revoked: int


class SessionResponse(BaseModel):
    """One active session (ledger row); the token itself is never returned."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    expires_at: datetime
    created_at: datetime


class SessionListResponse(BaseModel):
    user_id: str
    sessions: list[SessionResponse]
