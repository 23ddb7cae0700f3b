# Session Auth Services
from sessionauth.services.authorization import AuthorizationProbe
from sessionauth.services.claims import ClaimCodec, ClaimSet, TokenConfig, get_claim_codec
from sessionauth.services.errors import (
    AuthError,
    InvalidTokenError,
    IssuanceError,
    LedgerUnavailableError,
    MalformedTokenError,
    TokenError,
)
from sessionauth.services.ledger import SqlTokenLedger, TokenLedger
from sessionauth.services.lifecycle import TokenLifecycle, build_token_lifecycle
from sessionauth.services.memory_ledger import InMemoryTokenLedger
from sessionauth.services.outcomes import FailureKind, RevocationResult, ValidationResult
from sessionauth.services.revocation import RevocationManager, build_revocation_manager
from sessionauth.services.user import UserService

__all__ = [
    "AuthError",
    "AuthorizationProbe",
    "ClaimCodec",
    "ClaimSet",
    "FailureKind",
    "InMemoryTokenLedger",
    "InvalidTokenError",
    "IssuanceError",
    "LedgerUnavailableError",
    "MalformedTokenError",
    "RevocationManager",
    "RevocationResult",
    "SqlTokenLedger",
    "TokenConfig",
    "TokenError",
    "TokenLedger",
    "TokenLifecycle",
    "UserService",
    "ValidationResult",
    "build_revocation_manager",
    "build_token_lifecycle",
    "get_claim_codec",
]
