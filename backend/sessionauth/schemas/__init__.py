# Session Auth Pydantic Schemas
from sessionauth.schemas.auth import (
    AuthorizationDetails,
    AuthorizationResponse,
    CheckAuthorizationRequest,
    ClaimsResponse,
    LogoutAllResponse,
    MessageResponse,
    QuickValidationResponse,
    RevokeRequest,
    SessionListResponse,
    SessionResponse,
    TokenRequest,
    ValidateTokenRequest,
    ValidationResponse,
)

__all__ = [
    "AuthorizationDetails",
    "AuthorizationResponse",
    "CheckAuthorizationRequest",
    "ClaimsResponse",
    "LogoutAllResponse",
    "MessageResponse",
    "QuickValidationResponse",
    "RevokeRequest",
    "SessionListResponse",
    "SessionResponse",
    "TokenRequest",
    "ValidateTokenRequest",
    "ValidationResponse",
]
