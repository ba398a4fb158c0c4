"""Database configuration, connection and transaction management."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import settings
from app.core.exceptions import AppException, OperationFailedException

logger = structlog.get_logger()

# Convert sync PostgreSQL URL to async
DATABASE_URL = settings.database_url.replace("postgresql://", "postgresql+asyncpg://")


def _engine_options() -> dict[str, Any]:
    """Pool and driver options for the configured backend."""
    if not settings.is_postgres:
        return {"echo": settings.debug}

    return {
        "echo": settings.debug,
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_recycle": 3600,
        "connect_args": {
            "server_settings": {
                "application_name": settings.app_name,
            },
        },
    }


# Create async engine with connection pooling
engine: AsyncEngine = create_async_engine(DATABASE_URL, **_engine_options())

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def unit_of_work(
    db: AsyncSession,
    operation: str,
    failure_message: str,
) -> AsyncIterator[AsyncSession]:
    """
    Run a block of statements as one all-or-nothing transaction.

    Commits when the block exits cleanly. On any error the transaction is
    rolled back; application errors propagate unchanged, everything else is
    logged and replaced by an OperationFailedException carrying only
    ``failure_message``.

    Args:
        db: Session the block executes on
        operation: Operation name used in log events
        failure_message: Caller-facing message for unexpected failures

    Yields:
        The same session
    """
    try:
        yield db
        await db.commit()
    except AppException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.exception(f"{operation}_failed", operation=operation, error=str(e))
        raise OperationFailedException(failure_message) from e


@asynccontextmanager
async def guarded(operation: str, failure_message: str) -> AsyncIterator[None]:
    """Apply the error boundary of ``unit_of_work`` to read-only operations."""
    try:
        yield
    except AppException:
        raise
    except Exception as e:
        logger.exception(f"{operation}_failed", operation=operation, error=str(e))
        raise OperationFailedException(failure_message) from e


async def check_database_connection() -> bool:
    """Check if database connection is healthy."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
