"""Shared test fixtures."""

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from sdq_tracker.domain.sdq.models import SDQ_ITEMS
from sdq_tracker.infrastructure.database.connection import build_session_factory, init_models


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with the results table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(sqlite_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = build_session_factory(sqlite_engine)
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Clock that advances one minute per call."""
    current = [datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)]

    def tick() -> datetime:
        value = current[0]
        current[0] = value + timedelta(minutes=1)
        return value

    return tick


@pytest.fixture
def all_ones() -> dict[int, int]:
    """Every item answered 'Somewhat True'."""
    return {item.id: 1 for item in SDQ_ITEMS}


@pytest.fixture
def max_difficulty() -> dict[int, int]:
    """Worst possible answers: 2 for normal items, 0 for reverse items."""
    return {item.id: 0 if item.reverse else 2 for item in SDQ_ITEMS}


@pytest.fixture
def no_difficulty() -> dict[int, int]:
    """Best possible answers: 0 for normal items, 2 for reverse items."""
    return {item.id: 2 if item.reverse else 0 for item in SDQ_ITEMS}


@pytest.fixture
def mild_difficulty(no_difficulty: dict[int, int]) -> dict[int, int]:
    """Total difficulty 4 (10%): one 'Somewhat True' in each difficulty category."""
    return {**no_difficulty, 2: 1, 3: 1, 6: 1, 12: 1}
