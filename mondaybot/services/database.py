"""SQLite engine and session management for the mapping store."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..orm.base import Base

logger = logging.getLogger(__name__)


def _set_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    # Commits must reach disk before put() returns
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=FULL")
    cursor.close()


class DatabaseService:
    """Owns the async SQLite engine backing the mapping store."""

    def __init__(self, database_path: str | Path):
        self.database_path = Path(database_path).expanduser()
        self.database_path.parent.mkdir(parents=True, exist_ok=True)

        db_url = f"sqlite+aiosqlite:///{self.database_path}"
        self.engine: AsyncEngine = create_async_engine(
            db_url,
            echo=False,
            pool_pre_ping=True,
        )
        event.listen(self.engine.sync_engine, "connect", _set_sqlite_pragmas)

        self.async_session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    async def initialize(self) -> None:
        """Create tables if the database is new."""
        existed = self.database_path.exists()
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        if not existed:
            logger.info("Created new mapping database at %s", self.database_path)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for database operations."""
        async with self.async_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Close database engine."""
        await self.engine.dispose()


async def open_database(database_path: str | Path) -> DatabaseService:
    """Create a DatabaseService and make sure its schema exists."""
    db = DatabaseService(database_path)
    await db.initialize()
    return db
