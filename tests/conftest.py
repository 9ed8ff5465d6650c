"""Shared pytest fixtures for service, API and generator tests.

Tests run against an in-memory SQLite database and a mocked Redis client, so
no external services are needed.
"""

import logging
from collections.abc import AsyncGenerator
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
import redis.asyncio as redis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tinyurl.config import Settings
from tinyurl.database import Base, get_db
from tinyurl.dependencies import get_service_manager
from tinyurl.enums import IdStrategy
from tinyurl.main import app
from tinyurl.models import Domain
from tinyurl.snowflake import SnowflakeIdGenerator
from tinyurl.url_service import UrlService

TEST_DOMAIN = "t.ly/"


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Mock Redis client; every lookup is a miss unless a test says otherwise."""
    redis_client = AsyncMock(spec=redis.Redis)
    redis_client.get = AsyncMock(return_value=None)
    redis_client.set = AsyncMock(return_value=True)
    redis_client.ping = AsyncMock(return_value=True)
    return redis_client


@pytest.fixture
def id_strategy() -> IdStrategy:
    return IdStrategy.SNOWFLAKE


@pytest.fixture
def settings(id_strategy: IdStrategy) -> Settings:
    return Settings(ID_STRATEGY=id_strategy, CACHE_TTL_SECONDS=3600)


@pytest.fixture
def id_generator() -> SnowflakeIdGenerator:
    return SnowflakeIdGenerator(worker_id=1, datacenter_id=1)


@pytest.fixture
def service_manager(settings, mock_redis, id_generator) -> SimpleNamespace:
    """Stand-in for the process-wide ServiceManager."""
    return SimpleNamespace(
        settings=settings,
        logger=logging.getLogger("tinyurl.test"),
        cache=mock_redis,
        id_generator=id_generator,
    )


@pytest.fixture
def request_context(db_session, service_manager) -> SimpleNamespace:
    return SimpleNamespace(
        database=db_session,
        cache=service_manager.cache,
        logger=service_manager.logger,
        settings=service_manager.settings,
        id_generator=service_manager.id_generator,
    )


@pytest.fixture
def url_service(request_context) -> UrlService:
    return UrlService.from_context(request_context)


@pytest_asyncio.fixture
async def registered_domain(db_session: AsyncSession) -> str:
    db_session.add(Domain(domain=TEST_DOMAIN))
    await db_session.commit()
    return TEST_DOMAIN


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, service_manager: SimpleNamespace) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def override_get_service_manager() -> SimpleNamespace:
        return service_manager

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_service_manager] = override_get_service_manager

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
