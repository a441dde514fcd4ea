# ABOUTME: RSS/Atom fetcher that turns a feed URL into a normalized FeedDocument.
# ABOUTME: Downloads with httpx, parses with feedparser, raises typed fetch/parse errors.

import re
from datetime import UTC, datetime
from typing import Protocol

import feedparser
import httpx
import structlog

from termfeed.config import Settings, get_settings
from termfeed.errors import RSSFetchError, RSSParseError
from termfeed.models import FeedDocument, FetchedItem

log = structlog.get_logger()

ACCEPT_HEADER = "application/rss+xml, application/atom+xml, application/xml, text/xml"
IMAGE_URL_RE = re.compile(r"\.(jpg|jpeg|png|gif|webp|svg)$", re.IGNORECASE)


class Fetcher(Protocol):
    async def fetch(self, url: str) -> FeedDocument: ...


class FeedFetcher:
    """Fetches feeds over HTTP.

    Pass ``client`` to share a connection pool; otherwise a client is
    created per request from settings.
    """

    def __init__(self, settings: Settings | None = None, client: httpx.AsyncClient | None = None):
        self.settings = settings or get_settings()
        self._client = client

    async def fetch(self, url: str) -> FeedDocument:
        body = await self._download(url)
        return parse_feed(body, url)

    async def _download(self, url: str) -> bytes:
        headers = {"User-Agent": self.settings.feed_user_agent, "Accept": ACCEPT_HEADER}
        try:
            if self._client is not None:
                response = await self._client.get(
                    url, headers=headers, timeout=self.settings.feed_timeout, follow_redirects=True
                )
            else:
                async with httpx.AsyncClient(
                    timeout=self.settings.feed_timeout,
                    headers=headers,
                    follow_redirects=True,
                ) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            log.error("feed_fetch_timeout", url=url)
            raise RSSFetchError("Request timeout", url) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            log.error("feed_fetch_http_error", url=url, status_code=status)
            if status == httpx.codes.NOT_FOUND:
                raise RSSFetchError("Feed not found", url) from e
            raise RSSFetchError(f"HTTP error {status}", url) from e
        except httpx.HTTPError as e:
            log.error("feed_fetch_network_error", url=url, error=str(e))
            raise RSSFetchError(f"Network error: {e}", url) from e

        return response.content


def parse_feed(body: bytes | str, url: str) -> FeedDocument:
    """Parse a feed body into a FeedDocument or raise RSSParseError."""
    parsed = feedparser.parse(body)

    if parsed.bozo and not parsed.entries and not parsed.feed.get("title"):
        error = parsed.get("bozo_exception")
        log.error("feed_parse_error", url=url, error=str(error))
        raise RSSParseError(f"Failed to parse RSS feed: {error}", url) from error
    if not parsed.get("version") and not parsed.entries:
        log.error("feed_parse_error", url=url, error="not a feed document")
        raise RSSParseError("Failed to parse RSS feed: not a feed document", url)

    if parsed.bozo:
        log.warning("feed_parse_warning", url=url, error=str(parsed.get("bozo_exception")))

    meta = parsed.feed
    return FeedDocument(
        title=meta.get("title") or "Untitled Feed",
        description=meta.get("subtitle") or meta.get("description") or None,
        items=[normalize_entry(entry) for entry in parsed.entries],
    )


def normalize_entry(entry) -> FetchedItem:
    """Map a feedparser entry onto FetchedItem."""
    content = None
    if content_list := entry.get("content"):
        content = content_list[0].get("value") or None

    return FetchedItem(
        url=entry_url(entry),
        title=entry.get("title") or "Untitled Article",
        content=content,
        summary=entry.get("summary") or None,
        author=entry.get("author") or None,
        published_at=parse_entry_date(entry),
        thumbnail_url=extract_thumbnail(entry),
    )


def entry_url(entry) -> str | None:
    if link := entry.get("link"):
        return link
    guid = entry.get("id") or ""
    if guid.startswith(("http://", "https://")):
        return guid
    return None


def parse_entry_date(entry) -> datetime | None:
    for field in ("published_parsed", "updated_parsed"):
        if parsed := entry.get(field):
            try:
                return datetime(*parsed[:6], tzinfo=UTC)
            except (TypeError, ValueError):
                continue
    return None


def _is_image_url(url: str) -> bool:
    return bool(IMAGE_URL_RE.search(url))


def extract_thumbnail(entry) -> str | None:
    """Image enclosure first, then media:thumbnail, then image media:content."""
    for link in entry.get("links", []):
        href = link.get("href") or ""
        if link.get("rel") == "enclosure" and _is_image_url(href):
            return href

    for thumbnail in entry.get("media_thumbnail", []):
        if url := thumbnail.get("url"):
            return url

    for media in entry.get("media_content", []):
        url = media.get("url") or ""
        if _is_image_url(url):
            return url

    return None
