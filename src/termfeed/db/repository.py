# ABOUTME: Storage operations over feeds, articles and pins.
# ABOUTME: Plain async functions taking a session; callers own the transaction.

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete, func, select, update

from termfeed.db.models import Article, Feed, Pin
from termfeed.models import ArticleChange, ArticleDraft, StoredArticle

# --- feeds -----------------------------------------------------------------


async def find_feed_by_id(session, feed_id: int) -> Feed | None:
    return await session.get(Feed, feed_id)


async def find_feed_by_url(session, url: str) -> Feed | None:
    result = await session.execute(select(Feed).where(Feed.url == url))
    return result.scalar_one_or_none()


async def list_feeds(session) -> Sequence[Feed]:
    """All feeds in registration order."""
    result = await session.execute(select(Feed).order_by(Feed.id))
    return result.scalars().all()


async def create_feed(
    session, url: str, title: str, description: str | None, now: datetime
) -> Feed:
    feed = Feed(
        url=url,
        title=title,
        description=description,
        last_updated_at=now,
        created_at=now,
    )
    session.add(feed)
    await session.flush()
    await session.refresh(feed)
    return feed


async def upsert_feed_metadata(
    session,
    feed_id: int,
    *,
    title: str,
    description: str | None,
    last_updated_at: datetime,
) -> None:
    await session.execute(
        update(Feed)
        .where(Feed.id == feed_id)
        .values(title=title, description=description, last_updated_at=last_updated_at)
    )


async def delete_feed(session, feed_id: int) -> bool:
    """Delete a feed; articles and their pins go with it via ON DELETE CASCADE."""
    result = await session.execute(delete(Feed).where(Feed.id == feed_id))
    return result.rowcount > 0


# --- synchronization -------------------------------------------------------


async def list_article_urls(session, feed_id: int) -> dict[str, StoredArticle]:
    """Map each stored article URL of a feed to its content-bearing fields."""
    result = await session.execute(
        select(
            Article.url,
            Article.id,
            Article.title,
            Article.content,
            Article.summary,
            Article.published_at,
        ).where(Article.feed_id == feed_id)
    )
    return {
        row.url: StoredArticle(
            id=row.id,
            title=row.title,
            content=row.content,
            summary=row.summary,
            published_at=row.published_at,
        )
        for row in result
    }


async def insert_articles(
    session, feed_id: int, drafts: Sequence[ArticleDraft], now: datetime
) -> int:
    """Insert new articles. A missing publish date falls back to ``now``."""
    session.add_all(
        Article(
            feed_id=feed_id,
            url=draft.url,
            title=draft.title,
            content=draft.content,
            summary=draft.summary,
            author=draft.author,
            published_at=draft.published_at or now,
            thumbnail_url=draft.thumbnail_url,
            is_read=draft.is_read,
            is_favorite=draft.is_favorite,
            created_at=now,
            updated_at=now,
        )
        for draft in drafts
    )
    await session.flush()
    return len(drafts)


async def update_articles(session, changes: Sequence[ArticleChange], now: datetime) -> int:
    """Rewrite content fields only; reader flags are left as they are."""
    for change in changes:
        values = {
            "title": change.title,
            "content": change.content,
            "summary": change.summary,
            "updated_at": now,
        }
        if change.published_at is not None:
            values["published_at"] = change.published_at
        await session.execute(
            update(Article).where(Article.id == change.article_id).values(**values)
        )
    return len(changes)


# --- reader state ----------------------------------------------------------


async def find_article_by_id(session, article_id: int) -> Article | None:
    return await session.get(Article, article_id)


async def list_articles(
    session,
    *,
    feed_id: int | None = None,
    is_read: bool | None = None,
    is_favorite: bool | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> Sequence[Article]:
    query = select(Article).order_by(Article.published_at.desc(), Article.id.desc())
    if feed_id is not None:
        query = query.where(Article.feed_id == feed_id)
    if is_read is not None:
        query = query.where(Article.is_read.is_(is_read))
    if is_favorite is not None:
        query = query.where(Article.is_favorite.is_(is_favorite))
    if offset is not None:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    result = await session.execute(query)
    return result.scalars().all()


async def set_read(session, article_id: int, is_read: bool) -> bool:
    result = await session.execute(
        update(Article).where(Article.id == article_id).values(is_read=is_read)
    )
    return result.rowcount > 0


async def mark_all_read(session, feed_id: int | None = None) -> int:
    query = update(Article).where(Article.is_read.is_(False)).values(is_read=True)
    if feed_id is not None:
        query = query.where(Article.feed_id == feed_id)
    result = await session.execute(query)
    return result.rowcount


async def toggle_favorite(session, article_id: int) -> bool:
    result = await session.execute(
        update(Article).where(Article.id == article_id).values(is_favorite=~Article.is_favorite)
    )
    return result.rowcount > 0


async def count_unread(session, feed_id: int | None = None) -> int:
    query = select(func.count(Article.id)).where(Article.is_read.is_(False))
    if feed_id is not None:
        query = query.where(Article.feed_id == feed_id)
    return (await session.execute(query)).scalar_one()


async def unread_counts_by_feed(session) -> dict[int, int]:
    result = await session.execute(
        select(Article.feed_id, func.count(Article.id))
        .where(Article.is_read.is_(False))
        .group_by(Article.feed_id)
    )
    return {feed_id: count for feed_id, count in result.all()}


# --- pins ------------------------------------------------------------------


async def find_pin(session, article_id: int) -> Pin | None:
    result = await session.execute(select(Pin).where(Pin.article_id == article_id))
    return result.scalar_one_or_none()


async def create_pin(session, article_id: int, now: datetime) -> Pin:
    pin = Pin(article_id=article_id, created_at=now)
    session.add(pin)
    await session.flush()
    return pin


async def delete_pin(session, article_id: int) -> bool:
    result = await session.execute(delete(Pin).where(Pin.article_id == article_id))
    return result.rowcount > 0


async def list_pinned_articles(session) -> Sequence[Article]:
    """Pinned articles, most recently pinned first."""
    result = await session.execute(
        select(Article)
        .join(Pin, Pin.article_id == Article.id)
        .order_by(Pin.created_at.desc(), Pin.id.desc())
    )
    return result.scalars().all()


async def count_pins(session) -> int:
    return (await session.execute(select(func.count(Pin.id)))).scalar_one()


async def delete_all_pins(session) -> int:
    result = await session.execute(delete(Pin))
    return result.rowcount
