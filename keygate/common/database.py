import logging
from pathlib import Path
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from keygate.common.config import settings

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()


class Database:
    """Storage handle shared by the HTTP layer and the issuer bot.

    Created once per process, opened with ``init()`` at startup and
    released with ``close()`` at shutdown.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = create_async_engine(url, echo=echo, future=True)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def init(self) -> None:
        """Create the SQLite directory if needed, then all tables."""
        url = make_url(self.url)
        if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"[DB] {url.database}")

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Close database connections."""
        await self.engine.dispose()


database = Database(settings.sqlalchemy_url, echo=settings.debug)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions.

    Note: Each usecase is responsible for committing its transactions.
    This only handles rollback for uncaught exceptions.
    """
    db: Database = getattr(request.app.state, "database", database)
    async with db.session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
