"""Session token claims: construction, signing and verification.

Tokens are compact HMAC-signed JWTs (header.payload.signature). The codec is
stateless; revocation lives in the token ledger.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any, Protocol
from uuid import UUID

import jwt
from jwt.exceptions import InvalidAlgorithmError, InvalidSignatureError, PyJWTError

from sessionauth.core.config import (
    MIN_JWT_SECRET_LENGTH,
    SUPPORTED_JWT_ALGORITHMS,
    Settings,
    get_settings,
)
from sessionauth.services.errors import InvalidTokenError, MalformedTokenError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

REQUIRED_CLAIMS = ["iss", "sub", "aud", "iat", "exp", "jti", "user_id", "email"]

# Errors produced by malformed payloads in ClaimSet.from_payload
_PAYLOAD_ERRORS = (KeyError, TypeError, ValueError, OverflowError, OSError)


def utc_now() -> datetime:
    """The single clock used for issuing, verifying and ledger expiry."""
    return datetime.now(UTC)


class TokenSubject(Protocol):
    """What the codec needs from a user to build claims."""

    id: UUID
    username: str
    email: str
    is_verified: bool

    @property
    def role_names(self) -> list[str]: ...


@dataclass(frozen=True)
class TokenConfig:
    """Immutable signing configuration, built once at startup."""

    secret: str = field(repr=False)
    issuer: str
    audience: str
    ttl: timedelta
    algorithm: str = "HS256"

    def __post_init__(self) -> None:
        if len(self.secret.encode("utf-8")) < MIN_JWT_SECRET_LENGTH:
            raise ValueError(f"Signing secret must be at least {MIN_JWT_SECRET_LENGTH} bytes")
        if self.algorithm not in SUPPORTED_JWT_ALGORITHMS:
            raise ValueError(f"Unsupported signing algorithm: {self.algorithm}")
        if self.ttl < timedelta(seconds=1):
            raise ValueError("Token TTL must be at least one second")

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenConfig":
        return cls(
            secret=settings.jwt_secret_key,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            ttl=timedelta(minutes=settings.token_ttl_minutes),
            algorithm=settings.jwt_algorithm,
        )


def _require_str(payload: dict[str, Any], key: str) -> str:
    value = payload[key]
    if not isinstance(value, str) or not value:
        raise ValueError(f"Claim '{key}' must be a non-empty string")
    return value


def _timestamp(payload: dict[str, Any], key: str) -> datetime:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(f"Claim '{key}' must be a numeric timestamp")
    return datetime.fromtimestamp(value, UTC)


@dataclass(frozen=True)
class ClaimSet:
    """Identity and authorization facts carried by a verified token."""

    user_id: str
    username: str
    email: str
    is_verified: bool
    issuer: str
    audience: str
    token_id: str
    issued_at: datetime
    expires_at: datetime
    roles: tuple[str, ...] = ()

    @property
    def subject(self) -> str:
        return self.username

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ClaimSet":
        """Build a claim set from a decoded payload, rejecting unexpected shapes."""
        audience = payload["aud"]
        if isinstance(audience, list):
            # Single-audience tokens may still be encoded as a one-element list
            if len(audience) != 1:
                raise ValueError("Expected exactly one audience")
            audience = audience[0]
        if not isinstance(audience, str):
            raise TypeError("Claim 'aud' must be a string")

        roles = payload.get("roles", [])
        if not isinstance(roles, list) or not all(isinstance(r, str) for r in roles):
            raise TypeError("Claim 'roles' must be a list of strings")

        is_verified = payload.get("is_verified", False)
        if not isinstance(is_verified, bool):
            raise TypeError("Claim 'is_verified' must be a boolean")

        issued_at = _timestamp(payload, "iat")
        expires_at = _timestamp(payload, "exp")
        if expires_at <= issued_at:
            raise ValueError("Token expires before it was issued")

        return cls(
            user_id=_require_str(payload, "user_id"),
            username=_require_str(payload, "sub"),
            email=_require_str(payload, "email"),
            is_verified=is_verified,
            issuer=_require_str(payload, "iss"),
            audience=audience,
            token_id=_require_str(payload, "jti"),
            issued_at=issued_at,
            expires_at=expires_at,
            roles=tuple(roles),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "email": self.email,
            "is_verified": self.is_verified,
            "roles": list(self.roles),
            "issuer": self.issuer,
            "audience": self.audience,
            "token_id": self.token_id,
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }


@dataclass(frozen=True)
class IssuedToken:
    token: str
    claims: ClaimSet


class ClaimCodec:
    """Builds, signs, parses and verifies session tokens."""

    def __init__(self, config: TokenConfig, clock: Clock = utc_now):
        self._config = config
        self._clock = clock

    @property
    def config(self) -> TokenConfig:
        return self._config

    def now(self) -> datetime:
        return self._clock()

    def issue(self, user: TokenSubject) -> str:
        """Sign a fresh token for ``user``."""
        return self.issue_claims(user).token

    def issue_claims(self, user: TokenSubject) -> IssuedToken:
        """Sign a fresh token and return it with the claims it carries.

        ``roles`` is only present when the user has at least one role.
        """
        issued_at = int(self._clock().timestamp())
        expires_at = issued_at + int(self._config.ttl.total_seconds())

        payload: dict[str, Any] = {
            # Registered claims
            "iss": self._config.issuer,
            "sub": user.username,
            "aud": self._config.audience,
            "iat": issued_at,
            "exp": expires_at,
            "jti": secrets.token_urlsafe(32),
            # Application claims
            "user_id": str(user.id),
            "email": user.email,
            "is_verified": bool(user.is_verified),
        }
        roles = list(user.role_names or [])
        if roles:
            payload["roles"] = roles

        token = jwt.encode(payload, self._config.secret, algorithm=self._config.algorithm)
        # PyJWT 2.x returns str; older type stubs may declare bytes
        return IssuedToken(token=str(token), claims=ClaimSet.from_payload(payload))

    def _decode(self, token: str, *, check_issuer_audience: bool) -> dict[str, Any]:
        # Expiry is checked against our own clock, never PyJWT's
        options: dict[str, Any] = {
            "verify_signature": True,
            "verify_exp": False,
            "verify_iat": False,
            "verify_nbf": False,
            "verify_iss": check_issuer_audience,
            "verify_aud": check_issuer_audience,
            "require": REQUIRED_CLAIMS,
        }
        return jwt.decode(
            token,
            self._config.secret,
            algorithms=[self._config.algorithm],
            options=options,
            issuer=self._config.issuer if check_issuer_audience else None,
            audience=self._config.audience if check_issuer_audience else None,
        )

    def verify(self, token: str, expected_subject: str | None = None) -> ClaimSet:
        """Fully verify a token and return its claims.

        Checks signature, issuer, audience, subject (when given) and expiry.
        Every failure raises the same InvalidTokenError.
        """
        try:
            claims = ClaimSet.from_payload(self._decode(token, check_issuer_audience=True))
        except (PyJWTError, *_PAYLOAD_ERRORS) as e:
            logger.debug(f"Token verification failed: {type(e).__name__}: {e}")
            raise InvalidTokenError() from e

        if expected_subject is not None and claims.subject != expected_subject:
            logger.debug(f"Token {claims.token_id} subject mismatch")
            raise InvalidTokenError()

        if not claims.expires_at > self._clock():
            logger.debug(f"Token {claims.token_id} expired at {claims.expires_at.isoformat()}")
            raise InvalidTokenError()

        return claims

    def extract_claims(self, token: str) -> ClaimSet:
        """Decode a token with signature verification only.

        Issuer, audience, subject and expiry are NOT checked, so success does
        not mean the token is valid. A bad signature raises InvalidTokenError;
        anything that cannot be parsed raises MalformedTokenError.
        """
        try:
            return ClaimSet.from_payload(self._decode(token, check_issuer_audience=False))
        except (InvalidSignatureError, InvalidAlgorithmError) as e:
            logger.debug(f"Token signature rejected: {type(e).__name__}")
            raise InvalidTokenError() from e
        except (PyJWTError, *_PAYLOAD_ERRORS) as e:
            logger.debug(f"Token could not be parsed: {type(e).__name__}: {e}")
            raise MalformedTokenError("Malformed token") from e


@lru_cache
def get_claim_codec() -> ClaimCodec:
    """Process-wide codec built from settings on first use."""
    return ClaimCodec(TokenConfig.from_settings(get_settings()))
