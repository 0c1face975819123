from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from newsscraper.core.config import get_settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class Database:
    """Export database connection manager."""

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        self.url = url
        self.echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        """Engine of the connected database."""
        if self._engine is None:
            raise RuntimeError("Export database not connected. Call connect() first.")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Factory for sessions on the connected database."""
        if self._session_factory is None:
            raise RuntimeError("Export database not connected. Call connect() first.")
        return self._session_factory

    @property
    def connected(self) -> bool:
        return self._engine is not None

    async def connect(self) -> None:
        """
        Initialize database connection and session factory.

        The URL and echo flag default to the application settings.
        """
        settings = get_settings()
        url = self.url or settings.DATABASE_URL
        echo = settings.DATABASE_ECHO if self.echo is None else self.echo

        engine_config = {}
        if ":memory:" in url or url.endswith("sqlite+aiosqlite://"):
            # An in-memory database lives as long as its single connection
            engine_config = {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }

        self._engine = create_async_engine(url, echo=echo, **engine_config)

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def create_all(self) -> None:
        """Create the tables of all models that do not exist yet."""
        # Models register themselves on Base.metadata when imported
        import newsscraper.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def disconnect(self) -> None:
        """Dispose the engine; connect() may be called again afterwards."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Open a session committed on success and rolled back on error.

        Example:
            async with database.session() as session:
                session.add(ArticleRecord(url=url, title=title, source="welt"))
        """
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# Shared instance used by the web application
database = Database()
