"""Logout and ledger housekeeping."""

from datetime import datetime
from uuid import UUID

from sessionauth.core.config import get_settings
from sessionauth.core.logging import get_logger
from sessionauth.models.token import TokenRecord
from sessionauth.services.claims import Clock, utc_now
from sessionauth.services.errors import LedgerUnavailableError
from sessionauth.services.ledger import TokenLedger, call_ledger
from sessionauth.services.outcomes import FailureKind, RevocationResult

logger = get_logger("revocation")

DEFAULT_LEDGER_TIMEOUT = 5.0


class RevocationManager:
    """Marks tokens deleted (logout) and flags overdue ones expired (sweep)."""

    def __init__(
        self,
        ledger: TokenLedger,
        *,
        ledger_timeout: float = DEFAULT_LEDGER_TIMEOUT,
        clock: Clock = utc_now,
    ):
        self.ledger = ledger
        self.ledger_timeout = ledger_timeout
        self._clock = clock

    async def logout_one(self, token: str | None) -> RevocationResult:
        """Log out a single token.

        One conditional UPDATE: of two concurrent logouts for the same token
        exactly one reports success. Expired but not yet deleted tokens can
        still be logged out. Surrounding whitespace is ignored.
        """
        if token is None or not token.strip():
            return RevocationResult.failed(FailureKind.TOKEN_MISSING)
        token = token.strip()

        try:
            changed = await call_ledger(self.ledger.mark_deleted(token), self.ledger_timeout)
        except LedgerUnavailableError:
            return RevocationResult.failed(FailureKind.LEDGER_UNAVAILABLE)

        if not changed:
            return RevocationResult.failed(FailureKind.TOKEN_NOT_FOUND_OR_ALREADY_LOGGED_OUT)

        logger.info("Token logged out")
        return RevocationResult(success=True, message="Logout successful")

    async def revoke(self, token: str | None, reason: str | None = None) -> RevocationResult:
        """Administrative logout of someone else's token."""
        result = await self.logout_one(token)
        if result.success:
            logger.warning(f"Token revoked by administrator (reason: {reason or 'unspecified'})")
        return result

    async def logout_all(self, user_id: UUID) -> int:
        """Delete every non-deleted token for ``user_id``.

        Raises:
            LedgerUnavailableError: if the ledger cannot be reached
        """
        count = await call_ledger(self.ledger.mark_all_deleted_for_user(user_id), self.ledger_timeout)
        logger.info(f"Logged out {count} token(s) for user {user_id}")
        return count

    async def active_tokens(self, user_id: UUID) -> list[TokenRecord]:
        """Active ledger rows for ``user_id``, newest first."""
        return await call_ledger(self.ledger.find_active_by_user(user_id), self.ledger_timeout)

    async def sweep_expired(self, now: datetime | None = None) -> int:
        """Flag every overdue, unexpired row as expired. Returns the count.

        Idempotent: a second run at the same instant changes nothing.
        """
        now = now or self._clock()
        count = await call_ledger(self.ledger.mark_expired_where_overdue(now), self.ledger_timeout)
        if count > 0:
            logger.info(f"Token sweep: marked {count} token(s) expired")
        else:
            logger.debug("Token sweep: nothing to expire")
        return count


def build_revocation_manager(ledger: TokenLedger) -> RevocationManager:
    return RevocationManager(ledger, ledger_timeout=get_settings().ledger_timeout_seconds)
