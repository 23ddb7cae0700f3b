"""Token issuance and the validation pipeline.

Validation runs these stages in order and stops at the first failure:

1. blank token                      -> token_missing
2. parse claims (signature only)    -> token_malformed / token_invalid
3. full verify against the subject  -> token_invalid
4. ledger lookup (active rows only) -> token_revoked_or_unknown / token_expired
5. ledger expiry reconciliation     -> token_expired
6. optional role requirement        -> insufficient_role

Stage 5 writes to the ledger: an active row whose ``expires_at`` has passed
is flagged expired on the spot instead of waiting for the periodic sweep.
"""

import logging

from sessionauth.core.config import get_settings
from sessionauth.models.token import TokenRecord
from sessionauth.services.authorization import AuthorizationProbe
from sessionauth.services.claims import ClaimCodec, ClaimSet, TokenSubject, get_claim_codec
from sessionauth.services.errors import (
    InvalidTokenError,
    IssuanceError,
    LedgerUnavailableError,
    MalformedTokenError,
    TokenError,
)
from sessionauth.services.ledger import TokenLedger, call_ledger
from sessionauth.services.outcomes import FailureKind, ValidationResult

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_TIMEOUT = 5.0


class TokenLifecycle:
    """Issues tokens and validates them against the codec and the ledger."""

    def __init__(
        self,
        codec: ClaimCodec,
        ledger: TokenLedger,
        probe: AuthorizationProbe | None = None,
        *,
        ledger_timeout: float = DEFAULT_LEDGER_TIMEOUT,
    ):
        self.codec = codec
        self.ledger = ledger
        self.probe = probe or AuthorizationProbe()
        self.ledger_timeout = ledger_timeout

    async def issue(self, user: TokenSubject) -> str:
        """Sign a token for ``user`` and record it in the ledger.

        A token that cannot be recorded would never pass validation, so it is
        discarded and IssuanceError is raised instead.
        """
        issued = self.codec.issue_claims(user)
        record = TokenRecord(
            token=issued.token,
            user_id=user.id,
            expires_at=issued.claims.expires_at,
            is_expired=False,
            is_deleted=False,
        )
        try:
            await call_ledger(self.ledger.insert(record), self.ledger_timeout)
        except (LedgerUnavailableError, ValueError) as e:
            logger.error(
                f"Discarding token {issued.claims.token_id} for user {user.username}: "
                f"ledger insert failed ({e})"
            )
            raise IssuanceError("Token could not be issued") from e

        logger.info(
            f"Issued token {issued.claims.token_id} for user {user.username}",
            extra={"token_id": issued.claims.token_id, "user_id": str(user.id)},
        )
        return issued.token

    def _check_signed_token(self, token: str | None) -> ClaimSet | ValidationResult:
        """Stages 1-3: everything that needs no ledger access."""
        if token is None or not token.strip():
            return ValidationResult.failed(FailureKind.TOKEN_MISSING)

        try:
            subject = self.codec.extract_claims(token).subject
        except MalformedTokenError:
            return ValidationResult.failed(FailureKind.TOKEN_MALFORMED)
        except InvalidTokenError:
            return ValidationResult.failed(FailureKind.TOKEN_INVALID)

        try:
            return self.codec.verify(token, subject)
        except InvalidTokenError:
            return ValidationResult.failed(FailureKind.TOKEN_INVALID)

    async def _classify_ledger_miss(self, token: str) -> ValidationResult:
        # A swept (expired but not logged out) row reads as expired, anything
        # else as revoked or unknown.
        record = await call_ledger(self.ledger.find_non_deleted(token), self.ledger_timeout)
        if record is not None and record.is_expired:
            return ValidationResult.failed(FailureKind.TOKEN_EXPIRED, expired=True)
        return ValidationResult.failed(FailureKind.TOKEN_REVOKED_OR_UNKNOWN)

    async def validate(self, token: str | None, required_role: str | None = None) -> ValidationResult:
        """Run the full validation pipeline.

        Side effect: an overdue ledger row is marked expired (stage 5).
        """
        checked = self._check_signed_token(token)
        if isinstance(checked, ValidationResult):
            logger.debug(f"Token rejected before ledger lookup: {checked.failure}")
            return checked
        claims = checked

        try:
            record = await call_ledger(self.ledger.find_active(token), self.ledger_timeout)
            if record is None:
                result = await self._classify_ledger_miss(token)
                logger.info(f"Token {claims.token_id} rejected: {result.failure.value}")
                return result

            if record.expires_at <= self.codec.now():
                await call_ledger(self.ledger.mark_expired(token), self.ledger_timeout)
                logger.info(f"Token {claims.token_id} overdue in ledger; marked expired")
                return ValidationResult.failed(FailureKind.TOKEN_EXPIRED, expired=True)
        except LedgerUnavailableError:
            return ValidationResult.failed(FailureKind.LEDGER_UNAVAILABLE)

        if required_role and required_role.strip():
            if not self.probe.has_role(claims, required_role):
                return ValidationResult.failed(
                    FailureKind.INSUFFICIENT_ROLE,
                    f"User does not have required role: {required_role}",
                )

        return ValidationResult.success(claims, record)

    def quick_validate(self, token: str | None) -> bool:
        """Signature and claim checks only, no ledger access.

        A logged-out token still passes until its embedded expiry. Use
        validate() for anything security sensitive.
        """
        return isinstance(self._check_signed_token(token), ClaimSet)

    def extract_claims(self, token: str | None) -> ClaimSet | None:
        """Signature-verified, unexpired claims for trusted internal callers.

        Issuer, audience and subject are not checked, and neither is the ledger.
        """
        if not token or not token.strip():
            return None
        try:
            claims = self.codec.extract_claims(token)
        except TokenError:
            return None
        if not claims.expires_at > self.codec.now():
            logger.debug(f"Token {claims.token_id} expired; no claims extracted")
            return None
        return claims

    def has_role(self, token: str | None, role: str) -> bool:
        claims = self.extract_claims(token)
        if claims is None:
            return False
        return self.probe.has_role(claims, role)


def build_token_lifecycle(ledger: TokenLedger) -> TokenLifecycle:
    """TokenLifecycle wired to the process-wide codec and settings."""
    settings = get_settings()
    return TokenLifecycle(
        get_claim_codec(),
        ledger,
        AuthorizationProbe(admin_role=settings.admin_role),
        ledger_timeout=settings.ledger_timeout_seconds,
    )
