"""Token API endpoints.

Thin controllers over TokenLifecycle and RevocationManager. Expected failures
come back as result values and are mapped to status codes here; only ledger
unavailability surfaces as 503.
"""

import logging
import time
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from sessionauth.core import check_db_connection, get_db, settings
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
from sessionauth.services.claims import ClaimSet
from sessionauth.services.errors import LedgerUnavailableError
from sessionauth.services.ledger import SqlTokenLedger, TokenLedger
from sessionauth.services.lifecycle import TokenLifecycle, build_token_lifecycle
from sessionauth.services.outcomes import FailureKind, ValidationResult
from sessionauth.services.revocation import RevocationManager, build_revocation_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/auth", tags=["auth"])

_LEDGER_UNAVAILABLE_DETAIL = "Token ledger is temporarily unavailable"


def get_token_ledger(db: AsyncSession = Depends(get_db)) -> TokenLedger:
    """Dependency to get the token ledger."""
    return SqlTokenLedger(db)


def get_lifecycle(ledger: TokenLedger = Depends(get_token_ledger)) -> TokenLifecycle:
    """Dependency to get the token lifecycle."""
    return build_token_lifecycle(ledger)


def get_revocation_manager(ledger: TokenLedger = Depends(get_token_ledger)) -> RevocationManager:
    """Dependency to get the revocation manager."""
    return build_revocation_manager(ledger)


def _ledger_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=_LEDGER_UNAVAILABLE_DETAIL,
    )


def _require_token(token: str) -> str:
    if not token or not token.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token is required")
    return token


def _claims_response(claims: ClaimSet) -> ClaimsResponse:
    return ClaimsResponse(**claims.to_dict())


def _validation_response(result: ValidationResult) -> ValidationResponse:
    return ValidationResponse(
        valid=result.valid,
        message=result.message,
        failure=result.failure.value if result.failure else None,
        expired=result.expired,
        revoked=result.revoked,
        claims=_claims_response(result.claims) if result.claims else None,
    )


async def _validated_claims(token: str, lifecycle: TokenLifecycle) -> ClaimSet:
    """Full validation for endpoints that act on the caller's own token."""
    result = await lifecycle.validate(_require_token(token))
    if result.failure == FailureKind.LEDGER_UNAVAILABLE:
        raise _ledger_unavailable()
    if not result.valid or result.claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=result.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return result.claims


async def require_admin(
    request: Request,
    lifecycle: TokenLifecycle = Depends(get_lifecycle),
) -> ClaimSet:
    """Dependency: the caller's bearer token must be valid and carry the admin role."""
    auth_header = request.headers.get("Authorization", "")

    if not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = auth_header[7:]  # Remove "Bearer " prefix

    result = await lifecycle.validate(token, required_role=settings.admin_role)
    if result.failure == FailureKind.LEDGER_UNAVAILABLE:
        raise _ledger_unavailable()
    if result.failure == FailureKind.INSUFFICIENT_ROLE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=result.message)
    if not result.valid or result.claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=result.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return result.claims


@router.post(
    "/validate-token",
    response_model=ValidationResponse,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"description": "Token rejected"},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Token ledger unavailable"},
    },
)
async def validate_token(
    request: ValidateTokenRequest,
    response: Response,
    lifecycle: TokenLifecycle = Depends(get_lifecycle),
) -> ValidationResponse:
    """Full validation: signature, claims, ledger state and optional role.

    A token whose ledger row is overdue is marked expired as a side effect.
    """
    result = await lifecycle.validate(request.token, required_role=request.required_role)

    if result.failure == FailureKind.LEDGER_UNAVAILABLE:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif not result.valid:
        response.status_code = status.HTTP_401_UNAUTHORIZED

    return _validation_response(result)


@router.post("/quick-validate", response_model=QuickValidationResponse)
async def quick_validate(
    request: TokenRequest,
    lifecycle: TokenLifecycle = Depends(get_lifecycle),
) -> QuickValidationResponse:
    """Signature and claim checks only.

    Does not consult the ledger, so a logged-out token passes until its
    embedded expiry.
    """
    token = _require_token(request.token)

    if not lifecycle.quick_validate(token):
        return QuickValidationResponse(valid=False, message="Token is invalid")

    claims = lifecycle.extract_claims(token)
    return QuickValidationResponse(
        valid=True,
        message="Token is valid",
        username=claims.username if claims else None,
        expires_at=claims.expires_at if claims else None,
    )


@router.post("/extract-user", response_model=ClaimsResponse)
async def extract_user(
    request: TokenRequest,
    lifecycle: TokenLifecycle = Depends(get_lifecycle),
) -> ClaimsResponse:
    """Claims from a signature-verified token, for trusted internal callers.

    Expired tokens are rejected. Issuer, audience and ledger state are not checked.
    """
    claims = lifecycle.extract_claims(_require_token(request.token))
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unable to extract user information from token",
        )
    return _claims_response(claims)


@router.post("/check-authorization", response_model=AuthorizationResponse)
async def check_authorization(
    request: CheckAuthorizationRequest,
    lifecycle: TokenLifecycle = Depends(get_lifecycle),
) -> AuthorizationResponse:
    """Role or permission check on a fully validated token."""
    result = await lifecycle.validate(_require_token(request.token))

    if result.failure == FailureKind.LEDGER_UNAVAILABLE:
        raise _ledger_unavailable()
    if not result.valid or result.claims is None:
        return AuthorizationResponse(authorized=False, message=result.message)

    authorized = lifecycle.probe.check_authorization(
        result.claims, role=request.role, permission=request.permission
    )
    return AuthorizationResponse(
        authorized=authorized,
        message="User is authorized" if authorized else "User is not authorized",
        details=AuthorizationDetails(
            has_role=bool(request.role) and lifecycle.probe.has_role(result.claims, request.role),
            checked_role=request.role,
            checked_permission=request.permission,
        ),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: TokenRequest,
    revocation: RevocationManager = Depends(get_revocation_manager),
) -> MessageResponse:
    """Log out a single token."""
    result = await revocation.logout_one(_require_token(request.token))

    if result.failure == FailureKind.LEDGER_UNAVAILABLE:
        raise _ledger_unavailable()
    if not result.success:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.message)

    return MessageResponse(message=result.message)


@router.post("/logout-all", response_model=LogoutAllResponse)
async def logout_all(
    request: TokenRequest,
    lifecycle: TokenLifecycle = Depends(get_lifecycle),
    revocation: RevocationManager = Depends(get_revocation_manager),
) -> LogoutAllResponse:
    """Log out every session of the user who owns the presented token."""
    claims = await _validated_claims(request.token, lifecycle)

    try:
        count = await revocation.logout_all(UUID(claims.user_id))
    except LedgerUnavailableError as e:
        raise _ledger_unavailable() from e

    return LogoutAllResponse(message="Logged out of all sessions", tokens_revoked=count)


@router.post("/sessions", response_model=SessionListResponse)
async def list_sessions(
    request: TokenRequest,
    lifecycle: TokenLifecycle = Depends(get_lifecycle),
    revocation: RevocationManager = Depends(get_revocation_manager),
) -> SessionListResponse:
    """Active sessions of the user who owns the presented token, newest first."""
    claims = await _validated_claims(request.token, lifecycle)

    try:
        records = await revocation.active_tokens(UUID(claims.user_id))
    except LedgerUnavailableError as e:
        raise _ledger_unavailable() from e

    return SessionListResponse(
        user_id=claims.user_id,
        sessions=[SessionResponse.model_validate(r) for r in records],
    )


@router.post("/revoke", response_model=MessageResponse)
async def revoke_token(
    request: RevokeRequest,
    admin: ClaimSet = Depends(require_admin),
    revocation: RevocationManager = Depends(get_revocation_manager),
) -> MessageResponse:
    """Revoke another user's token. Requires an admin bearer token."""
    result = await revocation.revoke(_require_token(request.token), request.reason)

    if result.failure == FailureKind.LEDGER_UNAVAILABLE:
        raise _ledger_unavailable()
    if not result.success:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.message)

    logger.info(f"Token revoked by {admin.username}")
    return MessageResponse(message="Token revoked")


class HealthResponse(BaseModel):
    """Health check response."""

    service: str
    status: str
    version: str
    database: str
    timestamp: int


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        status.HTTP_200_OK: {"description": "Service is healthy"},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Service is unhealthy"},
    },
)
async def health_check(response: Response) -> HealthResponse:
    """
    Health check endpoint.

    Returns 503 if the database (and therefore the ledger) is unreachable.
    """
    db_healthy = await check_db_connection()

    if not db_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        service=settings.app_name,
        status="UP" if db_healthy else "DOWN",
        version=settings.app_version,
        database="connected" if db_healthy else "disconnected",
        timestamp=int(time.time() * 1000),
    )
