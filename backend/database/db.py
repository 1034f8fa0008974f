"""
Async database engine and session management.

The billing tables live in PostgreSQL (the managed backend). Everything goes
through an async SQLAlchemy engine using the asyncpg driver.
"""

import logging

from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy import URL
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from backend.core.conf import settings

logger = logging.getLogger(__name__)


def create_database_url(*, unittest: bool = False) -> URL:
    """
    Build the database URL from settings.

    :param unittest: use the ``<schema>_test`` database
    :return:
    """
    return URL.create(
        drivername='postgresql+asyncpg',
        username=settings.DATABASE_USER,
        password=settings.DATABASE_PASSWORD,
        host=settings.DATABASE_HOST,
        port=settings.DATABASE_PORT,
        database=f'{settings.DATABASE_SCHEMA}_test' if unittest else settings.DATABASE_SCHEMA,
    )


def create_async_engine_and_session(url: str | URL) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """
    Create the async engine and its session factory.

    :param url: database URL
    :return:
    """
    engine = create_async_engine(
        url,
        echo=settings.DATABASE_ECHO,
        echo_pool=settings.DATABASE_POOL_ECHO,
        future=True,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=3600,
    )
    db_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )
    return engine, db_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Session dependency"""
    async with async_db_session() as session:
        yield session


SQLALCHEMY_DATABASE_URL = create_database_url()

async_engine, async_db_session = create_async_engine_and_session(SQLALCHEMY_DATABASE_URL)

# Session Annotated
CurrentSession = Annotated[AsyncSession, Depends(get_db)]
