# ABOUTME: Pydantic schemas for fetched feeds and synchronization outcomes.
# ABOUTME: Defines feed documents, per-feed results/failures and batch outcomes.

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict


class FetchedItem(BaseModel):
    """One normalized entry from a fetched feed."""

    url: str | None
    title: str
    content: str | None = None
    summary: str | None = None
    author: str | None = None
    published_at: datetime | None = None
    thumbnail_url: str | None = None


class FeedDocument(BaseModel):
    """A fetched and parsed feed: metadata plus its items."""

    title: str
    description: str | None = None
    items: list[FetchedItem] = []


class FeedView(BaseModel):
    """Detached snapshot of a stored feed."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    title: str
    description: str | None
    last_updated_at: datetime
    created_at: datetime


class UnreadFeedView(FeedView):
    unread_count: int


class ArticleView(BaseModel):
    """Detached snapshot of a stored article."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    feed_id: int
    url: str
    title: str
    content: str | None
    summary: str | None
    author: str | None
    published_at: datetime
    thumbnail_url: str | None
    is_read: bool
    is_favorite: bool
    created_at: datetime
    updated_at: datetime


class FeedUpdateResult(BaseModel):
    feed_id: int
    new_articles_count: int
    updated_articles_count: int
    total_articles_count: int


class FeedUpdateFailure(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    feed_id: int
    feed_url: str
    error: Exception


class UpdateProgress(BaseModel):
    """Announces the feed about to be processed; ``current_index`` is 1-based."""

    current_index: int
    total_feeds: int
    current_feed_title: str
    current_feed_url: str


class BatchSummary(BaseModel):
    total_feeds: int
    success_count: int
    failure_count: int


class BatchUpdateResult(BaseModel):
    """Outcome of a batch update that ran to completion."""

    cancelled: Literal[False] = False
    summary: BatchSummary
    successful: list[FeedUpdateResult]
    failed: list[FeedUpdateFailure]


class BatchUpdateCancelled(BaseModel):
    """Outcome of a batch update stopped at a feed boundary."""

    cancelled: Literal[True] = True
    processed_feeds: int
    total_feeds: int
    successful: list[FeedUpdateResult]
    failed: list[FeedUpdateFailure]


BatchUpdateOutcome = BatchUpdateResult | BatchUpdateCancelled


class AddFeedResult(BaseModel):
    feed: FeedView
    articles_count: int


class StoredArticle(BaseModel):
    """Content-bearing fields of an already stored article, keyed by URL."""

    id: int
    title: str
    content: str | None
    summary: str | None
    published_at: datetime | None


class ArticleDraft(BaseModel):
    """A fetched item that has no row yet for its feed."""

    feed_id: int
    url: str
    title: str
    content: str | None = None
    summary: str | None = None
    author: str | None = None
    published_at: datetime | None = None
    thumbnail_url: str | None = None
    is_read: bool = False
    is_favorite: bool = False


class ArticleChange(BaseModel):
    """New upstream content for an existing article row."""

    article_id: int
    title: str
    content: str | None
    summary: str | None
    published_at: datetime | None
