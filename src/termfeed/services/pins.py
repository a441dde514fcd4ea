# ABOUTME: Read-later pins on articles, independent of favorites and of sync.
# ABOUTME: Toggle, list (newest pin first), count and clear.

from datetime import UTC, datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from termfeed.db import repository
from termfeed.db.session import get_session_factory
from termfeed.models import ArticleView

log = structlog.get_logger()


class PinService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self._session_factory = session_factory or get_session_factory()

    async def toggle_pin(self, article_id: int) -> bool:
        """Pin or unpin an article. Returns True when the article is now pinned.

        An unknown article is never pinned.
        """
        async with self._session_factory() as session, session.begin():
            if await repository.delete_pin(session, article_id):
                log.debug("article_unpinned", article_id=article_id)
                return False
            if await repository.find_article_by_id(session, article_id) is None:
                log.debug("pin_article_not_found", article_id=article_id)
                return False
            await repository.create_pin(session, article_id, datetime.now(UTC))
        log.debug("article_pinned", article_id=article_id)
        return True

    async def get_pinned_articles(self) -> list[ArticleView]:
        async with self._session_factory() as session:
            articles = await repository.list_pinned_articles(session)
            return [ArticleView.model_validate(a) for a in articles]

    async def get_pin_count(self) -> int:
        async with self._session_factory() as session:
            return await repository.count_pins(session)

    async def clear_all_pins(self) -> int:
        async with self._session_factory() as session, session.begin():
            return await repository.delete_all_pins(session)
