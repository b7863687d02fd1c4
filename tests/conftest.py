"""Pytest configuration and fixtures."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import AsyncGenerator, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker

from image_similarity.api import dependencies
from image_similarity.core.config import Settings
from image_similarity.core.database import create_engine, create_session_factory, init_db
from image_similarity.core.redis import RedisClient
from image_similarity.extractors import HistogramFeatureExtractor
from image_similarity.main import app
from image_similarity.repositories import (
    ImageStore,
    SearchHistoryLedger,
    create_database_backend,
    create_memory_backend,
)
from image_similarity.services import CacheService


@pytest.fixture
def test_settings() -> Settings:
    """Settings independent of the local .env file."""
    return Settings(_env_file=None, storage_backend="memory", redis_url=None)


@pytest_asyncio.fixture
async def test_db_engine(tmp_path):
    """Create a SQLite test database with all tables."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    await init_db(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_db_engine) -> async_sessionmaker:
    """Session factory bound to the test database."""
    return create_session_factory(test_db_engine)


@pytest_asyncio.fixture(params=["memory", "database"])
async def backend(request, tmp_path) -> AsyncGenerator[Tuple[ImageStore, SearchHistoryLedger], None]:
    """Image store and ledger for each storage backend."""
    if request.param == "memory":
        yield create_memory_backend()
        return

    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'backend.db'}", echo=False)
    await init_db(engine)

    yield create_database_backend(create_session_factory(engine))

    await engine.dispose()


@pytest.fixture
def image_store(backend) -> ImageStore:
    return backend[0]


@pytest.fixture
def history_ledger(backend) -> SearchHistoryLedger:
    return backend[1]


@pytest.fixture
def extractor() -> HistogramFeatureExtractor:
    return HistogramFeatureExtractor()


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="test-extractor")
    yield pool
    pool.shutdown(wait=True)


@pytest_asyncio.fixture
async def client(backend, extractor, executor) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with storage and extractor overrides."""
    images, history = backend

    app.dependency_overrides[dependencies.get_image_store] = lambda: images
    app.dependency_overrides[dependencies.get_history_ledger] = lambda: history
    app.dependency_overrides[dependencies.get_extractor] = lambda: extractor
    app.dependency_overrides[dependencies.get_executor] = lambda: executor
    app.dependency_overrides[dependencies.get_cache_service] = lambda: CacheService(RedisClient(url=""))

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
