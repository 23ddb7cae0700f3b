"""In-memory token ledger for tests and single-process development."""

import threading
import uuid
from datetime import UTC, datetime
from uuid import UUID

from sessionauth.core.logging import get_logger
from sessionauth.models.token import TokenRecord


class InMemoryTokenLedger:
    """Dict-backed TokenLedger with the same conditional-update semantics.

    Each mutation happens under one lock acquisition, which plays the role of
    the single atomic UPDATE in the SQL ledger.
    """

    def __init__(self) -> None:
        self.logger = get_logger("memory_ledger")
        self.records: dict[str, TokenRecord] = {}
        self._lock = threading.Lock()

    async def find_active(self, token: str) -> TokenRecord | None:
        with self._lock:
            record = self.records.get(token)
            if record is None or record.is_deleted or record.is_expired:
                return None
            return record

    async def find_non_deleted(self, token: str) -> TokenRecord | None:
        with self._lock:
            record = self.records.get(token)
            if record is None or record.is_deleted:
                return None
            return record

    async def find_active_by_user(self, user_id: UUID) -> list[TokenRecord]:
        with self._lock:
            active = [
                r
                for r in self.records.values()
                if r.user_id == user_id and not r.is_deleted and not r.is_expired
            ]
        return sorted(active, key=lambda r: r.created_at, reverse=True)

    async def insert(self, record: TokenRecord) -> None:
        with self._lock:
            if record.token in self.records:
                raise ValueError("Token already recorded")
            now = datetime.now(UTC)
            if record.id is None:
                record.id = uuid.uuid4()
            if record.created_at is None:
                record.created_at = now
            record.updated_at = now
            self.records[record.token] = record
        self.logger.debug(f"Recorded token for user {record.user_id}")

    async def mark_deleted(self, token: str) -> bool:
        with self._lock:
            record = self.records.get(token)
            if record is None or record.is_deleted:
                return False
            record.is_deleted = True
            record.updated_at = datetime.now(UTC)
            return True

    async def mark_expired(self, token: str) -> bool:
        with self._lock:
            record = self.records.get(token)
            if record is None or record.is_expired:
                return False
            record.is_expired = True
            record.updated_at = datetime.now(UTC)
            return True

    async def mark_all_deleted_for_user(self, user_id: UUID) -> int:
        with self._lock:
            count = 0
            for record in self.records.values():
                if record.user_id == user_id and not record.is_deleted:
                    record.is_deleted = True
                    count += 1
            return count

    async def mark_expired_where_overdue(self, now: datetime) -> int:
        with self._lock:
            count = 0
            for record in self.records.values():
                if not record.is_expired and record.expires_at <= now:
                    record.is_expired = True
                    count += 1
            return count
