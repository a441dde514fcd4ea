# ABOUTME: Feed synchronization engine: registration, single-feed and batch updates.
# ABOUTME: Also exposes reader actions (read/favorite state, removal, unread counts).

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from termfeed.db import repository
from termfeed.db.session import get_session_factory
from termfeed.errors import (
    DuplicateFeedError,
    FeedManagementError,
    FeedNotFoundError,
    FeedUpdateError,
    RSSFetchError,
    RSSParseError,
)
from termfeed.models import (
    AddFeedResult,
    ArticleView,
    BatchSummary,
    BatchUpdateCancelled,
    BatchUpdateOutcome,
    BatchUpdateResult,
    FeedDocument,
    FeedUpdateFailure,
    FeedUpdateResult,
    FeedView,
    UnreadFeedView,
    UpdateProgress,
)
from termfeed.services.fetcher import FeedFetcher, Fetcher
from termfeed.services.reconciler import reconcile

log = structlog.get_logger()

ProgressCallback = Callable[[UpdateProgress], None]


class FeedService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        fetcher: Fetcher | None = None,
    ):
        self._session_factory = session_factory or get_session_factory()
        self._fetcher = fetcher or FeedFetcher()

    # --- registration ------------------------------------------------------

    async def add_feed(self, url: str) -> AddFeedResult:
        """Subscribe to ``url`` and seed it with every article it currently lists.

        Nothing is written unless the fetch succeeds and the feed row plus its
        articles commit together.
        """
        async with self._session_factory() as session:
            if await repository.find_feed_by_url(session, url) is not None:
                raise DuplicateFeedError(url)

        # RSSFetchError / RSSParseError propagate as-is; nothing stored yet.
        document = await self._fetcher.fetch(url)

        now = datetime.now(UTC)
        try:
            async with self._session_factory() as session, session.begin():
                feed = await repository.create_feed(
                    session, url, document.title, document.description, now
                )
                plan = reconcile(feed.id, document.items, {})
                await repository.insert_articles(session, feed.id, plan.to_insert, now)
                view = FeedView.model_validate(feed)
        except IntegrityError as e:
            raise DuplicateFeedError(url) from e
        except SQLAlchemyError as e:
            log.error("feed_create_failed", url=url, error=str(e))
            raise FeedManagementError(f"Failed to create feed: {url}") from e

        log.info("feed_added", feed_id=view.id, url=url, articles=plan.new_count)
        return AddFeedResult(feed=view, articles_count=plan.new_count)

    # --- single feed -------------------------------------------------------

    async def update_feed(self, feed_id: int) -> FeedUpdateResult:
        async with self._session_factory() as session:
            feed = await repository.find_feed_by_id(session, feed_id)
            if feed is None:
                raise FeedNotFoundError(feed_id)
            feed_url = feed.url

        try:
            document = await self._fetcher.fetch(feed_url)
        except (RSSFetchError, RSSParseError) as e:
            raise FeedUpdateError(feed_id, feed_url) from e

        return await self._apply_document(feed_id, document)

    async def _apply_document(self, feed_id: int, document: FeedDocument) -> FeedUpdateResult:
        """Persist one fetch result: article writes and metadata bump share a transaction."""
        now = datetime.now(UTC)
        try:
            async with self._session_factory() as session, session.begin():
                existing = await repository.list_article_urls(session, feed_id)
                plan = reconcile(feed_id, document.items, existing)
                await repository.insert_articles(session, feed_id, plan.to_insert, now)
                await repository.update_articles(session, plan.to_update, now)
                await repository.upsert_feed_metadata(
                    session,
                    feed_id,
                    title=document.title,
                    description=document.description,
                    last_updated_at=now,
                )
        except SQLAlchemyError as e:
            log.error("feed_persist_failed", feed_id=feed_id, error=str(e))
            raise FeedManagementError(
                f"Failed to store articles for feed {feed_id}", feed_id
            ) from e

        log.info(
            "feed_updated",
            feed_id=feed_id,
            new=plan.new_count,
            updated=plan.updated_count,
            total=plan.total_count,
        )
        return FeedUpdateResult(
            feed_id=feed_id,
            new_articles_count=plan.new_count,
            updated_articles_count=plan.updated_count,
            total_articles_count=plan.total_count,
        )

    # --- batch -------------------------------------------------------------

    async def update_all_feeds(
        self,
        on_progress: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> BatchUpdateOutcome:
        """Update every feed one after another, in registration order.

        ``on_progress`` is called before each feed starts. ``cancel_event`` is
        checked only between feeds; the feed in flight always finishes first.
        A failing feed is recorded in ``failed`` and the batch moves on.
        """
        async with self._session_factory() as session:
            feeds = [(f.id, f.title, f.url) for f in await repository.list_feeds(session)]

        total = len(feeds)
        successful: list[FeedUpdateResult] = []
        failed: list[FeedUpdateFailure] = []
        log.info("batch_update_started", total_feeds=total)

        for index, (feed_id, title, url) in enumerate(feeds):
            if cancel_event is not None and cancel_event.is_set():
                log.info("batch_update_cancelled", processed=index, total_feeds=total)
                return BatchUpdateCancelled(
                    processed_feeds=index,
                    total_feeds=total,
                    successful=successful,
                    failed=failed,
                )

            if on_progress is not None:
                on_progress(
                    UpdateProgress(
                        current_index=index + 1,
                        total_feeds=total,
                        current_feed_title=title or "Unknown",
                        current_feed_url=url,
                    )
                )

            try:
                successful.append(await self.update_feed(feed_id))
            except Exception as e:  # noqa: BLE001
                log.warning("feed_update_failed", feed_id=feed_id, url=url, error=str(e))
                failed.append(FeedUpdateFailure(feed_id=feed_id, feed_url=url, error=e))

        summary = BatchSummary(
            total_feeds=total,
            success_count=len(successful),
            failure_count=len(failed),
        )
        log.info(
            "batch_update_complete",
            total_feeds=total,
            succeeded=summary.success_count,
            failed=summary.failure_count,
        )
        return BatchUpdateResult(summary=summary, successful=successful, failed=failed)

    # --- feed management ---------------------------------------------------

    async def remove_feed(self, feed_id: int) -> bool:
        try:
            async with self._session_factory() as session, session.begin():
                if await repository.find_feed_by_id(session, feed_id) is None:
                    raise FeedNotFoundError(feed_id)
                removed = await repository.delete_feed(session, feed_id)
        except SQLAlchemyError as e:
            raise FeedManagementError(f"Failed to remove feed {feed_id}", feed_id) from e
        log.info("feed_removed", feed_id=feed_id)
        return removed

    async def get_feed_list(self) -> list[FeedView]:
        async with self._session_factory() as session:
            return [FeedView.model_validate(f) for f in await repository.list_feeds(session)]

    async def get_feed(self, feed_id: int) -> FeedView | None:
        async with self._session_factory() as session:
            feed = await repository.find_feed_by_id(session, feed_id)
            return FeedView.model_validate(feed) if feed is not None else None

    # --- reader state ------------------------------------------------------

    async def get_articles(
        self,
        feed_id: int | None = None,
        is_read: bool | None = None,
        is_favorite: bool | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[ArticleView]:
        async with self._session_factory() as session:
            articles = await repository.list_articles(
                session,
                feed_id=feed_id,
                is_read=is_read,
                is_favorite=is_favorite,
                limit=limit,
                offset=offset,
            )
            return [ArticleView.model_validate(a) for a in articles]

    async def get_article(self, article_id: int) -> ArticleView | None:
        async with self._session_factory() as session:
            article = await repository.find_article_by_id(session, article_id)
            return ArticleView.model_validate(article) if article is not None else None

    async def mark_article_as_read(self, article_id: int) -> bool:
        async with self._session_factory() as session, session.begin():
            return await repository.set_read(session, article_id, True)

    async def mark_article_as_unread(self, article_id: int) -> bool:
        async with self._session_factory() as session, session.begin():
            return await repository.set_read(session, article_id, False)

    async def toggle_article_favorite(self, article_id: int) -> bool:
        async with self._session_factory() as session, session.begin():
            return await repository.toggle_favorite(session, article_id)

    async def mark_all_as_read(self, feed_id: int | None = None) -> int:
        async with self._session_factory() as session, session.begin():
            return await repository.mark_all_read(session, feed_id)

    async def get_unread_count(self, feed_id: int | None = None) -> int:
        async with self._session_factory() as session:
            return await repository.count_unread(session, feed_id)

    async def get_unread_counts(self) -> dict[int, int]:
        async with self._session_factory() as session:
            return await repository.unread_counts_by_feed(session)

    async def get_unread_feeds(self) -> list[UnreadFeedView]:
        """Feeds with at least one unread article, most unread first."""
        async with self._session_factory() as session:
            feeds = await repository.list_feeds(session)
            counts = await repository.unread_counts_by_feed(session)
            unread = [
                UnreadFeedView(
                    **FeedView.model_validate(f).model_dump(), unread_count=counts[f.id]
                )
                for f in feeds
                if counts.get(f.id, 0) > 0
            ]
        return sorted(unread, key=lambda f: f.unread_count, reverse=True)
