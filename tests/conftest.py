import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from receiptlens.database.connection import create_db_and_tables
from receiptlens.database.models import Base  # noqa: F401  registers the tables
from receiptlens.services.receipt_store import ErrorLog, ReceiptStore


@pytest_asyncio.fixture
async def session_factory():
    """Session factory over a fresh in-memory SQLite database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_db_and_tables(engine)
    yield sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def receipt_store(session_factory):
    return ReceiptStore(session_factory)


@pytest.fixture
def error_log(session_factory):
    return ErrorLog(session_factory)
