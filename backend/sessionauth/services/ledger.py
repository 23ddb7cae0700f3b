"""Token ledger - persisted record of every issued token.

The ledger is what makes logout effective against a signed token whose
embedded expiry has not yet passed. Every mutation is a single conditional
UPDATE so concurrent callers never see a read-modify-write race.
"""

import asyncio
from collections.abc import Awaitable
from datetime import datetime
from typing import Any, Protocol, TypeVar
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sessionauth.core.logging import get_logger
from sessionauth.models.token import TokenRecord
from sessionauth.services.errors import LedgerUnavailableError

logger = get_logger("ledger")

T = TypeVar("T")


class TokenLedger(Protocol):
    """Repository contract used by TokenLifecycle and RevocationManager."""

    async def find_active(self, token: str) -> TokenRecord | None:
        """Record for ``token`` that is neither deleted nor expired."""
        ...

    async def find_non_deleted(self, token: str) -> TokenRecord | None:
        """Record for ``token`` that has not been logged out (may be expired)."""
        ...

    async def find_active_by_user(self, user_id: UUID) -> list[TokenRecord]: ...

    async def insert(self, record: TokenRecord) -> None: ...

    async def mark_deleted(self, token: str) -> bool:
        """Set is_deleted where currently not deleted. True if a row changed."""
        ...

    async def mark_expired(self, token: str) -> bool:
        """Set is_expired where currently not expired. True if a row changed."""
        ...

    async def mark_all_deleted_for_user(self, user_id: UUID) -> int: ...

    async def mark_expired_where_overdue(self, now: datetime) -> int:
        """Flag every unexpired record with expires_at <= now. Returns count."""
        ...


async def call_ledger(call: Awaitable[T], timeout: float) -> T:
    """Await a ledger call with a deadline.

    Timeouts and storage errors become LedgerUnavailableError so callers can
    tell "ledger down" apart from "token rejected".
    """
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except TimeoutError as e:
        logger.warning(f"Token ledger call timed out after {timeout}s")
        raise LedgerUnavailableError("Token ledger did not respond in time") from e
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Token ledger call failed: {type(e).__name__}: {e}")
        raise LedgerUnavailableError("Token ledger is unavailable") from e


class SqlTokenLedger:
    """TokenLedger backed by the ``tokens`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_active(self, token: str) -> TokenRecord | None:
        result = await self.session.execute(
            select(TokenRecord).where(
                TokenRecord.token == token,
                TokenRecord.is_deleted.is_(False),
                TokenRecord.is_expired.is_(False),
            )
        )
        return result.scalar_one_or_none()

    async def find_non_deleted(self, token: str) -> TokenRecord | None:
        result = await self.session.execute(
            select(TokenRecord).where(
                TokenRecord.token == token,
                TokenRecord.is_deleted.is_(False),
            )
        )
        return result.scalar_one_or_none()

    async def find_active_by_user(self, user_id: UUID) -> list[TokenRecord]:
        result = await self.session.execute(
            select(TokenRecord)
            .where(
                TokenRecord.user_id == user_id,
                TokenRecord.is_deleted.is_(False),
                TokenRecord.is_expired.is_(False),
            )
            .order_by(TokenRecord.created_at.desc())
        )
        return list(result.scalars().all())

    async def insert(self, record: TokenRecord) -> None:
        self.session.add(record)
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise

    async def _update(self, statement: Any) -> int:
        try:
            result: CursorResult[Any] = await self.session.execute(statement)  # type: ignore[assignment]
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        return result.rowcount

    async def mark_deleted(self, token: str) -> bool:
        changed = await self._update(
            update(TokenRecord)
            .where(TokenRecord.token == token, TokenRecord.is_deleted.is_(False))
            .values(is_deleted=True)
        )
        return changed > 0

    async def mark_expired(self, token: str) -> bool:
        changed = await self._update(
            update(TokenRecord)
            .where(TokenRecord.token == token, TokenRecord.is_expired.is_(False))
            .values(is_expired=True)
        )
        return changed > 0

    async def mark_all_deleted_for_user(self, user_id: UUID) -> int:
        return await self._update(
            update(TokenRecord)
            .where(TokenRecord.user_id == user_id, TokenRecord.is_deleted.is_(False))
            .values(is_deleted=True)
        )

    async def mark_expired_where_overdue(self, now: datetime) -> int:
        return await self._update(
            update(TokenRecord)
            .where(TokenRecord.expires_at <= now, TokenRecord.is_expired.is_(False))
            .values(is_expired=True)
        )
