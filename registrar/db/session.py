from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from registrar.core.config import Settings

Base = declarative_base()


class Database:
    """Connection pool plus session factory. Built once at start-up and handed to each service."""

    def __init__(self, url: str, **engine_options) -> None:
        self.engine = create_async_engine(url, echo=False, future=True, **engine_options)
        self._sessionmaker = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        # pool_pre_ping: check connection is alive before use (avoids "connection is closed" errors
        # when DB or network closed idle connections).
        # pool_recycle: discard connections after this many seconds to avoid stale connections.
        return cls(settings.database_url, pool_pre_ping=True, pool_recycle=300)

    def session(self) -> AsyncSession:
        return self._sessionmaker()

    @asynccontextmanager
    async def transaction(self, isolation_level: Optional[str] = None) -> AsyncIterator[AsyncSession]:
        """Yield a session inside one transaction: commit on exit, rollback on any exception."""
        async with self._sessionmaker() as session:
            async with session.begin():
                if isolation_level:
                    await session.connection(execution_options={"isolation_level": isolation_level})
                yield session

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
