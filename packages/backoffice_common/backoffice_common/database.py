import logging
import os
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

# Shared declarative base for every service model
Base = declarative_base()

class DatabaseManager:
    """
    One async engine per service.

    `sqlite+aiosqlite://` URLs are accepted for tests; an in-memory SQLite
    database lives as long as the engine's connection pool.
    """

    def __init__(self, database_url: str, echo: bool = None):
        self.database_url = database_url
        # SQL echo only in development unless forced
        self.echo = os.getenv("ENV_MODE", "dev") == "dev" if echo is None else echo

        self.engine = create_async_engine(self.database_url, echo=self.echo)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

    async def create_all(self, metadata=None):
        """Creates missing tables (no migrations)."""
        async with self.engine.begin() as conn:
            await conn.run_sync((metadata or Base.metadata).create_all)
        logger.info(f"Schema ready on {self.engine.url.render_as_string(hide_password=True)}")

    async def get_db(self):
        """FastAPI dependency: one session per request, rolled back on error."""
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def dispose(self):
        await self.engine.dispose()
