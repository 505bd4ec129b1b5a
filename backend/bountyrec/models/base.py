"""Engines, sessions and declarative base.

The API runs on the async engine (asyncpg); Celery tasks and the behavior store
run on the sync engine (psycopg2) against the same database.
"""

import uuid
from contextlib import contextmanager
from typing import AsyncGenerator, Iterator

from sqlalchemy import Column, DateTime, String, func, create_engine
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from bountyrec.config import get_settings

settings = get_settings()


def sync_database_url(url: str) -> str:
    """Same database through the sync driver."""
    return url.replace("+asyncpg", "+psycopg2", 1)


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_timeout=settings.db_pool_timeout,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

sync_engine = create_engine(
    sync_database_url(settings.database_url),
    echo=settings.debug,
    pool_size=settings.worker_pool_size,
    max_overflow=settings.worker_pool_size,
    pool_timeout=settings.db_pool_timeout,
)

SyncSessionLocal = sessionmaker(
    bind=sync_engine,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


# Users live in the external auth service; rows reference them by opaque id
USER_ID_LENGTH = 64


def user_id_column(**kwargs) -> Column:
    return Column(String(USER_ID_LENGTH), nullable=False, index=True, **kwargs)


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class UUIDMixin:
    """Event rows (views, interactions, logs) keyed by UUID instead of a sequence."""

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: commit on success, roll back on any error."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@contextmanager
def sync_session_scope() -> Iterator[Session]:
    """Sync counterpart of get_db for Celery tasks."""
    session = SyncSessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
