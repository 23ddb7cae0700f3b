"""Session Auth Database Configuration - Async SQLAlchemy over asyncpg.

The token ledger is the only state this service keeps. Ledger calls are
bounded in two places: ``call_ledger`` gives up waiting after
LEDGER_TIMEOUT_SECONDS, and asyncpg's ``command_timeout`` makes the server
side abandon the same statement so it does not keep running after the caller
has reported the ledger unavailable.
"""

import asyncio
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from sessionauth.core.config import Settings, settings
from sessionauth.core.logging import get_logger

logger = get_logger("database")


def engine_options(config: Settings) -> dict[str, Any]:
    """Keyword arguments for create_async_engine derived from settings.

    SQL echo is never enabled: bound parameters include raw token strings.
    """
    return {
        "pool_size": config.db_pool_size,
        "max_overflow": config.db_max_overflow,
        "pool_timeout": config.db_pool_timeout,
        "pool_recycle": config.db_pool_recycle,
        "pool_pre_ping": True,
        "connect_args": {
            "command_timeout": config.ledger_timeout_seconds,
            "server_settings": {"application_name": config.db_application_name},
        },
    }


engine = create_async_engine(str(settings.database_url), **engine_options(settings))

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session.

    SqlTokenLedger commits each mutation itself; the commit here only
    closes out read-only request transactions.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except BaseException:
            # Includes asyncio.CancelledError from a dropped client
            await session.rollback()
            raise


async def check_db_connection() -> bool:
    """True when the ledger database answers within the ledger timeout."""
    try:
        async with async_session_maker() as session:
            await asyncio.wait_for(
                session.execute(text("SELECT 1")), settings.ledger_timeout_seconds
            )
            return True
    except (OSError, TimeoutError) as e:
        logger.debug(f"Database connection check failed: {type(e).__name__}: {e}")
        return False
    except SQLAlchemyError as e:
        logger.warning(f"Database error during connection check: {e}")
        return False
