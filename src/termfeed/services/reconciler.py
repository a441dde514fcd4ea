# ABOUTME: Diffs freshly fetched feed items against a feed's stored articles.
# ABOUTME: Pure and synchronous: decides inserts, content updates and unchanged items.

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

from termfeed.models import ArticleChange, ArticleDraft, FetchedItem, StoredArticle


@dataclass
class Reconciliation:
    to_insert: list[ArticleDraft] = field(default_factory=list)
    to_update: list[ArticleChange] = field(default_factory=list)
    unchanged_count: int = 0

    @property
    def new_count(self) -> int:
        return len(self.to_insert)

    @property
    def updated_count(self) -> int:
        return len(self.to_update)

    @property
    def total_count(self) -> int:
        return self.new_count + self.updated_count + self.unchanged_count


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything stored is UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _dedupe_by_url(items: Iterable[FetchedItem]) -> dict[str, FetchedItem]:
    """Drop items without a URL; a repeated URL keeps its first position, last value."""
    by_url: dict[str, FetchedItem] = {}
    for item in items:
        if not item.url:
            continue
        by_url[item.url] = item
    return by_url


def has_changed(item: FetchedItem, stored: StoredArticle) -> bool:
    """True when any content-bearing field differs from what is stored."""
    if (item.title, item.content, item.summary) != (stored.title, stored.content, stored.summary):
        return True
    # No upstream date means the stored fallback stays authoritative.
    if item.published_at is None:
        return False
    return _as_utc(item.published_at) != _as_utc(stored.published_at)


def reconcile(
    feed_id: int,
    fetched_items: Iterable[FetchedItem],
    existing: Mapping[str, StoredArticle],
) -> Reconciliation:
    """Split fetched items into new, changed and unchanged for ``feed_id``.

    ``existing`` maps every URL already stored for the feed to its content
    fields. Pass an empty mapping to seed a feed that has no articles yet.
    """
    result = Reconciliation()

    for url, item in _dedupe_by_url(fetched_items).items():
        stored = existing.get(url)
        if stored is None:
            result.to_insert.append(
                ArticleDraft(
                    feed_id=feed_id,
                    url=url,
                    title=item.title,
                    content=item.content,
                    summary=item.summary,
                    author=item.author,
                    published_at=_as_utc(item.published_at),
                    thumbnail_url=item.thumbnail_url,
                )
            )
        elif has_changed(item, stored):
            result.to_update.append(
                ArticleChange(
                    article_id=stored.id,
                    title=item.title,
                    content=item.content,
                    summary=item.summary,
                    published_at=_as_utc(item.published_at),
                )
            )
        else:
            result.unchanged_count += 1

    return result
