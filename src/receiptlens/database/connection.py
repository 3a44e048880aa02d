import logging

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from receiptlens.config import settings

logger = logging.getLogger(__name__)

logger.info(f"DATABASE_URL from settings: {settings.DATABASE_URL}")

# The URL is taken from our settings object
async_engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,  # Log SQL queries when DEBUG is True
)

AsyncSessionLocal = sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Base class for our ORM models
Base = declarative_base()


async def create_db_and_tables(engine=async_engine):
    """Creates all tables without Alembic, for local runs and tests.
    Production schemas are managed by the Alembic migrations.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
