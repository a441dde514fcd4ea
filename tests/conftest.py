# ABOUTME: Shared test fixtures for termfeed.
# ABOUTME: Provides a temp SQLite session factory, a scripted fake fetcher and feed factories.

from collections.abc import AsyncGenerator
from datetime import UTC, datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from termfeed.db.models import Base
from termfeed.db.session import build_engine
from termfeed.models import FeedDocument, FetchedItem
from termfeed.services.feed_service import FeedService


@pytest.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession]]:
    """File-backed SQLite so every session sees the same database."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session


class FakeFetcher:
    """Returns scripted documents (or raises scripted errors) per URL."""

    def __init__(self):
        self.responses: dict[str, FeedDocument | Exception] = {}
        self.calls: list[str] = []
        self.on_fetch = None

    def set(self, url: str, response: FeedDocument | Exception) -> None:
        self.responses[url] = response

    async def fetch(self, url: str) -> FeedDocument:
        self.calls.append(url)
        if self.on_fetch is not None:
            self.on_fetch(url)
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response


def make_item(
    url: str | None = "https://example.com/post-1",
    title: str = "Test Post",
    content: str | None = "Body",
    summary: str | None = None,
    published_at: datetime | None = datetime(2026, 2, 8, 12, 0, tzinfo=UTC),
) -> FetchedItem:
    return FetchedItem(
        url=url,
        title=title,
        content=content,
        summary=summary,
        author="Author",
        published_at=published_at,
    )


def make_document(*items: FetchedItem, title: str = "Test Feed") -> FeedDocument:
    return FeedDocument(title=title, description="A test feed", items=list(items))


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def feed_service(session_factory, fake_fetcher) -> FeedService:
    return FeedService(session_factory=session_factory, fetcher=fake_fetcher)
