from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
import logging

from sqlalchemy import event, Engine, text, Result, CursorResult
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine

import config
from models.base import Base
"""
Imports of these models are needed to correctly create tables in the database.
For more information see https://stackoverflow.com/questions/7478403/sqlalchemy-classes-across-files
"""
from models.storage_record import StorageRecord

logger = logging.getLogger(__name__)

# HARD DISABLE SQL echo - statements would clutter the client logs
sql_echo = False


def build_database_url(data_dir: str = config.DATA_DIR, db_name: str = config.DB_NAME) -> str:
    data_folder = Path(data_dir)
    if data_folder.exists() is False:
        data_folder.mkdir(parents=True)
    return f"sqlite+aiosqlite:///{data_folder / db_name}"


def create_engine_and_session_maker(url: str | None = None) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """
    Build the async engine and session factory for the durable client storage.

    The engine is created per composition root (see storefront.py) instead of
    at import time, so tests can point it at a temporary file.
    """
    url = url or build_database_url()
    engine = create_async_engine(url, echo=sql_echo)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return engine, session_maker


@asynccontextmanager
async def get_db_session(session_maker: async_sessionmaker[AsyncSession]) -> AsyncSession:
    session = None
    try:
        async with session_maker() as async_session:
            session = async_session
            yield session
    finally:
        if session is not None:
            await session.close()


async def session_execute(stmt, session: AsyncSession) -> Result[Any] | CursorResult[Any]:
    query_result = await session.execute(stmt)
    return query_result


async def session_commit(session: AsyncSession) -> None:
    await session.commit()


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    # WAL keeps readers unblocked while a snapshot is being written
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


async def check_all_tables_exist(session: AsyncSession) -> bool:
    for table in Base.metadata.tables.values():
        sql_query = text("SELECT name FROM sqlite_master WHERE type='table' AND name=:name")
        result = await session.execute(sql_query, {"name": table.name})
        if result.scalar() is None:
            return False
    return True


async def create_db_and_tables(engine: AsyncEngine, session_maker: async_sessionmaker[AsyncSession]) -> None:
    # create_all only adds missing tables, persisted records survive restarts
    async with get_db_session(session_maker) as session:
        if await check_all_tables_exist(session):
            return
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Created durable storage tables")
