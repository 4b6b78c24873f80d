"""
Database engine, session factory and declarative base.

PostgreSQL (asyncpg) in production; any SQLAlchemy async URL works, and
SQLite is used for local runs and tests.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from fleetexpense.app.core.config import settings


def _engine_options(url: str) -> dict:
    options = {"echo": settings.db_echo}
    # SQLite does not accept pool sizing arguments
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
        )
    return options


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# Objects stay readable after commit; the aggregation engine re-reads
# trips explicitly when it needs fresh state.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db():
    """Request-scoped session; closed (and any open transaction rolled back) on exit."""
    async with AsyncSessionLocal() as session:
        yield session
