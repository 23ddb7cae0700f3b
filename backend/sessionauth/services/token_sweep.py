"""Token sweep service - periodically flags overdue ledger rows as expired."""

import asyncio
import threading
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Optional

from sessionauth.core import async_session_maker, settings
from sessionauth.core.logging import get_logger
from sessionauth.services.ledger import SqlTokenLedger
from sessionauth.services.revocation import RevocationManager, build_revocation_manager

logger = get_logger("token_sweep")

# Delay before the first sweep so startup is not slowed by it
STARTUP_DELAY_SECONDS = 60

RevocationFactory = Callable[[], AbstractAsyncContextManager[RevocationManager]]


@asynccontextmanager
async def sql_revocation_manager() -> AsyncIterator[RevocationManager]:
    """RevocationManager over a fresh database session."""
    async with async_session_maker() as db:
        yield build_revocation_manager(SqlTokenLedger(db))


class TokenSweepService:
    """Background service that runs RevocationManager.sweep_expired on a timer."""

    _instance: Optional["TokenSweepService"] = None
    _instance_lock: threading.Lock = threading.Lock()
    _task: asyncio.Task | None = None

    def __init__(
        self,
        interval_seconds: int | None = None,
        revocation_factory: RevocationFactory = sql_revocation_manager,
        startup_delay: float = STARTUP_DELAY_SECONDS,
    ):
        self._running = False
        self._sweeping = False
        self._interval_seconds = interval_seconds or settings.token_sweep_interval_seconds
        self._revocation_factory = revocation_factory
        self._startup_delay = startup_delay

    @classmethod
    def get_instance(cls) -> "TokenSweepService":
        """Get singleton instance of the sweep service (thread-safe)."""
        if cls._instance is None:
            with cls._instance_lock:
                # Double-check locking pattern
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @property
    def interval_seconds(self) -> int:
        return self._interval_seconds

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self):
        """Start the background sweep task."""
        if self._running:
            logger.warning("Token sweep service is already running")
            return

        self._running = True
        TokenSweepService._task = asyncio.create_task(self._sweep_loop())
        logger.info(f"Token sweep service started (interval: {self._interval_seconds}s)")

    async def stop(self):
        """Stop the background sweep task."""
        self._running = False
        if TokenSweepService._task:
            TokenSweepService._task.cancel()
            try:
                await TokenSweepService._task
            except asyncio.CancelledError:
                pass
            TokenSweepService._task = None
        logger.info("Token sweep service stopped")

    async def _sweep_loop(self):
        """Main loop that periodically expires overdue tokens."""
        await asyncio.sleep(self._startup_delay)

        while self._running:
            try:
                await self.run_sweep_now()
            except Exception as e:
                logger.error(f"Error in token sweep: {e}")

            await asyncio.sleep(self._interval_seconds)

    async def run_sweep_now(self) -> int | None:
        """Execute a single sweep.

        Returns:
            Number of tokens marked expired, or None if a sweep was already
            in progress and this one was skipped.
        """
        if self._sweeping:
            logger.info("Token sweep already in progress; skipping this run")
            return None

        self._sweeping = True
        try:
            async with self._revocation_factory() as revocation:
                return await revocation.sweep_expired()
        finally:
            self._sweeping = False
