"""Result values for token validation and revocation.

Expected failures (missing, malformed, revoked, expired token...) are
returned as values rather than raised.
"""

from dataclasses import dataclass
from enum import Enum

from sessionauth.models.token import TokenRecord
from sessionauth.services.claims import ClaimSet


class FailureKind(str, Enum):
    """Why a token operation did not succeed."""

    TOKEN_MISSING = "token_missing"
    TOKEN_MALFORMED = "token_malformed"
    TOKEN_INVALID = "token_invalid"
    TOKEN_REVOKED_OR_UNKNOWN = "token_revoked_or_unknown"
    TOKEN_EXPIRED = "token_expired"
    INSUFFICIENT_ROLE = "insufficient_role"
    ISSUANCE_FAILED = "issuance_failed"
    LEDGER_UNAVAILABLE = "ledger_unavailable"
    TOKEN_NOT_FOUND_OR_ALREADY_LOGGED_OUT = "token_not_found_or_already_logged_out"


FAILURE_MESSAGES: dict[FailureKind, str] = {
    FailureKind.TOKEN_MISSING: "Token is required",
    FailureKind.TOKEN_MALFORMED: "Token is malformed",
    FailureKind.TOKEN_INVALID: "Token is invalid",
    FailureKind.TOKEN_REVOKED_OR_UNKNOWN: "Token has been revoked or is unknown",
    FailureKind.TOKEN_EXPIRED: "Token has expired",
    FailureKind.INSUFFICIENT_ROLE: "User does not have the required role",
    FailureKind.ISSUANCE_FAILED: "Token could not be issued",
    FailureKind.LEDGER_UNAVAILABLE: "Token ledger is temporarily unavailable",
    FailureKind.TOKEN_NOT_FOUND_OR_ALREADY_LOGGED_OUT: "Token not found or already logged out",
}


@dataclass
class ValidationResult:
    """Outcome of the full validation pipeline."""

    valid: bool
    message: str
    claims: ClaimSet | None = None
    failure: FailureKind | None = None
    expired: bool = False
    revoked: bool = False

    @classmethod
    def success(cls, claims: ClaimSet, record: TokenRecord) -> "ValidationResult":
        return cls(
            valid=True,
            message="Token is valid",
            claims=claims,
            expired=record.is_expired,
            revoked=record.is_deleted,
        )

    @classmethod
    def failed(
        cls,
        failure: FailureKind,
        message: str | None = None,
        *,
        expired: bool = False,
    ) -> "ValidationResult":
        return cls(
            valid=False,
            message=message or FAILURE_MESSAGES[failure],
            failure=failure,
            expired=expired,
        )


@dataclass
class RevocationResult:
    """Outcome of a single-token logout."""

    success: bool
    message: str
    failure: FailureKind | None = None

    @classmethod
    def failed(cls, failure: FailureKind) -> "RevocationResult":
        return cls(success=False, message=FAILURE_MESSAGES[failure], failure=failure)
