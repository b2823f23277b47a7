"""pytest configuration and fixtures."""

import os

# Set required environment variables for testing before any imports
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timezone  # noqa: E402
from typing import Callable  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from social_sync import models  # noqa: E402
from social_sync.db import Base  # noqa: E402
from social_sync.integrations.provider_client import ProviderClient  # noqa: E402
from social_sync.platforms import get_descriptor  # noqa: E402


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def make_client():
    """Build a ProviderClient whose HTTP calls are answered by `handler`."""
    clients: list[httpx.AsyncClient] = []

    def _make(platform: models.Platform | str, handler: Callable[[httpx.Request], httpx.Response], **kwargs):
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(http)
        kwargs.setdefault("backoff", 0)
        return ProviderClient(get_descriptor(platform), http=http, **kwargs)

    yield _make
    for http in clients:
        await http.aclose()


async def add_linked_account(session: AsyncSession, owner_id: int, platform: models.Platform, token: str = "user-token"):
    account = models.LinkedAccount(owner_id=owner_id, platform=platform.value, access_token=token)
    session.add(account)
    await session.commit()
    return account


async def add_resource(
    session: AsyncSession,
    owner_id: int,
    platform: models.Platform,
    native_id: str,
    *,
    selected: bool = False,
    credential: str = "page-token",
    followers: int = 0,
) -> models.MirroredResource:
    resource = models.MirroredResource(
        owner_id=owner_id,
        platform=platform.value,
        native_id=native_id,
        display_name=f"Resource {native_id}",
        credential=credential,
        follower_count=followers,
        is_selected=selected,
    )
    session.add(resource)
    await session.commit()
    return resource


async def add_scheduled_item(
    session: AsyncSession,
    owner_id: int,
    platform: models.Platform,
    *,
    body: str = "Hello world",
    media_url: str | None = None,
    resource_id: int | None = None,
    status: str = "pending",
) -> models.ScheduledContentItem:
    item = models.ScheduledContentItem(
        owner_id=owner_id,
        platform=platform.value,
        parent_resource_id=resource_id,
        body=body,
        media_url=media_url,
        scheduled_time=datetime(2026, 10, 20, 9, 0, tzinfo=timezone.utc),
        status=status,
    )
    session.add(item)
    await session.commit()
    return item
