"""
Noteworthy Backend - Database Session Management
==================================================

What:  Async SQLAlchemy engine, session factory, unit-of-work helpers and the
       storage guard that bounds every storage call.
How:   Creates an async engine with connection pooling and provides a session
       per unit of work that commits on success and rolls back on error.
Who:   Routes use `get_db_session` through FastAPI's dependency injection;
       services wrap their storage calls in `storage_guard`.

Transaction model:
    One unit of work == one inbound operation. Everything a service does for
    that operation (validation reads, cycle walk, writes) runs inside the same
    transaction, so a failure at any step leaves no partial mutation behind.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from noteworthy.config import settings
from noteworthy.exceptions import UnavailableError

logger = logging.getLogger(__name__)


# ── Engine Configuration ──────────────────────────────────────────────────
def build_engine(database_url: str) -> AsyncEngine:
    """
    Create the async engine for `database_url`.

    PostgreSQL gets the configured connection pool and a server-side
    statement timeout; SQLite (used by the test-suite) gets foreign key
    enforcement so ON DELETE rules behave like production.
    """
    if database_url.startswith("sqlite"):
        sqlite_engine = create_async_engine(
            database_url,
            connect_args={"timeout": settings.db_operation_timeout},
            echo=settings.log_level == "DEBUG",
        )

        @event.listens_for(sqlite_engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    timeout_ms = int(settings.db_operation_timeout * 1000)
    return create_async_engine(
        database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
        pool_timeout=settings.db_operation_timeout,
        connect_args={"server_settings": {"statement_timeout": str(timeout_ms)}},
        echo=settings.log_level == "DEBUG",
    )


engine = build_engine(settings.database_url)

# expire_on_commit=False: returned ORM objects stay readable after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models register with this metadata; Alembic and the test-suite's
    `create_all` both read it.
    """
    pass


# ── Unit of Work ──────────────────────────────────────────────────────────
@asynccontextmanager
async def unit_of_work(
    factory: Optional[async_sessionmaker] = None,
) -> AsyncIterator[AsyncSession]:
    """
    Yield a session whose transaction commits when the block exits cleanly.

    On any exception the transaction is rolled back and the exception is
    re-raised unchanged. The session is always closed.
    """
    session_factory = factory or async_session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Example usage in a route:
        @router.get("/notes")
        async def list_notes(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with unit_of_work() as session:
        yield session


# ── Storage Guard ─────────────────────────────────────────────────────────
@asynccontextmanager
async def storage_guard(
    session: AsyncSession,
    operation: str,
    timeout: Optional[float] = None,
) -> AsyncIterator[None]:
    """
    Bound the storage calls inside the block and classify their failures.

    What:    Applies `settings.db_operation_timeout` to the block.
    How:     A timeout, a pool timeout, an OperationalError (lock timeout,
             connection reset, "database is locked") or an invalidated
             connection rolls the session back and raises UnavailableError.
             IntegrityError and every application error pass through
             untouched so services can translate them themselves.

    Args:
        session:   The unit of work's session (rolled back on transient failure)
        operation: Short label used in logs, e.g. "folder.update"
        timeout:   Override for the configured timeout (seconds)
    """
    limit = timeout if timeout is not None else settings.db_operation_timeout
    try:
        async with asyncio.timeout(limit):
            yield
    except IntegrityError:
        raise
    except (TimeoutError, PoolTimeoutError) as e:
        logger.warning("Storage timeout during %s after %.1fs", operation, limit)
        await _safe_rollback(session)
        raise UnavailableError(context={"operation": operation}) from e
    except OperationalError as e:
        logger.warning("Transient storage failure during %s: %s", operation, type(e.orig).__name__)
        await _safe_rollback(session)
        raise UnavailableError(context={"operation": operation}) from e
    except DBAPIError as e:
        if not e.connection_invalidated:
            raise
        logger.warning("Storage connection lost during %s", operation)
        await _safe_rollback(session)
        raise UnavailableError(context={"operation": operation}) from e


async def _safe_rollback(session: AsyncSession) -> None:
    try:
        await session.rollback()
    except Exception:
        logger.error("Rollback failed after storage error", exc_info=True)


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Gracefully closes all connections in the pool (application shutdown)."""
    await engine.dispose()
