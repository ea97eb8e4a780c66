"""Database engine, session factory and FastAPI session dependency.

The database client is created once by the application lifespan (or by a
script) and handed to whoever needs it. Nothing in this module holds a
module-level engine.
"""

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import DatabaseSettings
from app.core.exceptions import ConfigurationError
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class DatabaseClient:
    """PostgreSQL database client with connection and schema management."""

    def __init__(self, engine: AsyncEngine):
        """Initialize database client.

        Args:
            engine: SQLAlchemy async engine
        """
        self.engine = engine
        self.session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        self._connected = False

    @classmethod
    def from_settings(cls, db_settings: DatabaseSettings) -> "DatabaseClient":
        """Build a client from database settings."""
        engine = create_async_engine(
            db_settings.connection_url,
            pool_size=db_settings.pool_size,
            max_overflow=db_settings.max_overflow,
            echo=db_settings.echo,
            # Disable prepared statement cache for PgBouncer compatibility
            connect_args={"statement_cache_size": 0},
        )
        return cls(engine)

    def session(self) -> AsyncSession:
        """Open a new session bound to this client."""
        return self.session_maker()

    async def connect(self) -> bool:
        """Test database connection."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            self._connected = True
            LOGGER.info("Database connection successful")
            return True
        except Exception:
            self._connected = False
            LOGGER.error("Database connection failed", exc_info=True)
            raise

    async def disconnect(self) -> None:
        """Close database connection."""
        try:
            await self.engine.dispose()
            self._connected = False
            LOGGER.info("Database connection closed")
        except Exception as e:
            LOGGER.error("Error closing database connection", exc_info=True, extra={"error": str(e)})

    async def create_tables(self) -> None:
        """Create tables that don't exist yet without dropping existing ones."""
        # Import models so they register on Base.metadata
        from app.database import models  # noqa: F401

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            LOGGER.info("Database tables created/verified successfully")
        except Exception as e:
            LOGGER.error("Failed to create database tables", exc_info=True, extra={"error": str(e)})
            raise

    async def health_check(self) -> dict:
        """Check database health."""
        try:
            async with self.engine.connect() as conn:
                val = await conn.scalar(text("SELECT 1"))
            self._connected = True
            return {
                "status": "healthy",
                "connected": True,
                "database": "postgresql",
                "latency_test": "passed" if val == 1 else "failed",
            }
        except Exception as e:
            self._connected = False
            LOGGER.error("Database health check failed", extra={"error": str(e)})
            return {"status": "unhealthy", "connected": False, "error": str(e)}

    @property
    def is_connected(self) -> bool:
        """Check if database is connected."""
        return self._connected


async def init_database(client: DatabaseClient, create_tables: bool = True) -> None:
    """Verify the connection and optionally create missing tables.

    Args:
        client: Database client to initialize
        create_tables: Whether to create missing tables
    """
    LOGGER.info("Initializing database connection...")
    await client.connect()
    if create_tables:
        await client.create_tables()
    LOGGER.info("Database initialization completed")


def get_database_client(request: Request) -> DatabaseClient:
    """FastAPI dependency returning the client attached by the lifespan."""
    client: Optional[DatabaseClient] = getattr(request.app.state, "db", None)
    if client is None:
        raise ConfigurationError("Database client is not initialized")
    return client


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for getting async database session.

    Yields:
        AsyncSession: Database session
    """
    client = get_database_client(request)
    async with client.session() as session:
        try:
            yield session
        finally:
            await session.close()
