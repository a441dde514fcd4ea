# ABOUTME: Tests for RSS/Atom fetching and normalization.
# ABOUTME: Uses pytest-httpx mocked responses; no real network calls.

from datetime import UTC, datetime

import httpx
import pytest

from termfeed.config import Settings
from termfeed.errors import RSSFetchError, RSSParseError
from termfeed.services.fetcher import FeedFetcher, entry_url, parse_feed

FEED_URL = "https://example.com/feed.xml"

SAMPLE_RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/"
     xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel>
    <title>Test Feed</title>
    <link>https://example.com</link>
    <description>A test feed</description>
    <item>
      <title>First Article</title>
      <link>https://example.com/first</link>
      <description>Short summary.</description>
      <content:encoded><![CDATA[<p>Full body</p>]]></content:encoded>
      <pubDate>Mon, 23 Dec 2024 10:00:00 GMT</pubDate>
      <author>jane@example.com (Jane)</author>
      <media:thumbnail url="https://example.com/thumb.png"/>
    </item>
    <item>
      <title>Second Article</title>
      <link>https://example.com/second</link>
      <enclosure url="https://example.com/cover.jpg" type="image/jpeg" length="100"/>
    </item>
  </channel>
</rss>
"""

SAMPLE_ATOM_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Test Atom Feed</title>
  <subtitle>Atom subtitle</subtitle>
  <entry>
    <title>Atom Article</title>
    <link href="https://example.com/atom-article"/>
    <id>urn:uuid:1234</id>
    <updated>2024-12-23T10:00:00Z</updated>
    <content type="html">&lt;p&gt;Full content here&lt;/p&gt;</content>
    <summary>Short summary</summary>
  </entry>
</feed>
"""


@pytest.fixture
def settings() -> Settings:
    return Settings(feed_timeout=5, feed_user_agent="termfeed-test")


class TestParseFeed:
    def test_rss_feed(self):
        document = parse_feed(SAMPLE_RSS_FEED, FEED_URL)

        assert document.title == "Test Feed"
        assert document.description == "A test feed"
        assert [i.url for i in document.items] == [
            "https://example.com/first",
            "https://example.com/second",
        ]
        first = document.items[0]
        assert first.title == "First Article"
        assert first.summary == "Short summary."
        assert "Full body" in first.content
        assert first.published_at == datetime(2024, 12, 23, 10, 0, tzinfo=UTC)
        assert first.thumbnail_url == "https://example.com/thumb.png"

    def test_image_enclosure_thumbnail(self):
        document = parse_feed(SAMPLE_RSS_FEED, FEED_URL)
        assert document.items[1].thumbnail_url == "https://example.com/cover.jpg"
        assert document.items[1].published_at is None

    def test_atom_feed(self):
        document = parse_feed(SAMPLE_ATOM_FEED, FEED_URL)

        assert document.title == "Test Atom Feed"
        assert document.description == "Atom subtitle"
        item = document.items[0]
        assert item.url == "https://example.com/atom-article"
        assert "Full content here" in item.content
        assert item.summary == "Short summary"
        assert item.published_at == datetime(2024, 12, 23, 10, 0, tzinfo=UTC)

    def test_untitled_defaults(self):
        body = """<?xml version="1.0"?>
<rss version="2.0"><channel><item><link>https://example.com/x</link></item></channel></rss>
"""
        document = parse_feed(body, FEED_URL)
        assert document.title == "Untitled Feed"
        assert document.items[0].title == "Untitled Article"

    def test_html_page_is_parse_error(self):
        with pytest.raises(RSSParseError) as exc_info:
            parse_feed("<html><body><p>Not a feed</p></body></html>", FEED_URL)
        assert exc_info.value.url == FEED_URL

    def test_garbage_is_parse_error(self):
        with pytest.raises(RSSParseError):
            parse_feed("this is not xml at all", FEED_URL)


class TestEntryUrl:
    def test_prefers_link(self):
        entry = {"link": "https://a.com/1", "id": "https://a.com/guid"}
        assert entry_url(entry) == "https://a.com/1"

    def test_falls_back_to_url_like_guid(self):
        assert entry_url({"id": "https://a.com/guid"}) == "https://a.com/guid"

    def test_opaque_guid_is_unresolvable(self):
        assert entry_url({"id": "urn:uuid:1234"}) is None


class TestFeedFetcher:
    async def test_successful_fetch(self, httpx_mock, settings):
        httpx_mock.add_response(url=FEED_URL, text=SAMPLE_RSS_FEED)

        document = await FeedFetcher(settings).fetch(FEED_URL)

        assert document.title == "Test Feed"
        assert len(document.items) == 2
        request = httpx_mock.get_request()
        assert request.headers["User-Agent"] == "termfeed-test"
        assert "application/rss+xml" in request.headers["Accept"]

    async def test_shared_client(self, httpx_mock, settings):
        httpx_mock.add_response(url=FEED_URL, text=SAMPLE_ATOM_FEED)

        async with httpx.AsyncClient() as client:
            document = await FeedFetcher(settings, client=client).fetch(FEED_URL)

        assert document.title == "Test Atom Feed"

    async def test_not_found(self, httpx_mock, settings):
        httpx_mock.add_response(url=FEED_URL, status_code=404)

        with pytest.raises(RSSFetchError, match="Feed not found") as exc_info:
            await FeedFetcher(settings).fetch(FEED_URL)

        assert exc_info.value.url == FEED_URL
        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

    async def test_server_error(self, httpx_mock, settings):
        httpx_mock.add_response(url=FEED_URL, status_code=500)

        with pytest.raises(RSSFetchError, match="HTTP error 500"):
            await FeedFetcher(settings).fetch(FEED_URL)

    async def test_timeout(self, httpx_mock, settings):
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"))

        with pytest.raises(RSSFetchError, match="Request timeout"):
            await FeedFetcher(settings).fetch(FEED_URL)

    async def test_network_error(self, httpx_mock, settings):
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))

        with pytest.raises(RSSFetchError, match="Network error"):
            await FeedFetcher(settings).fetch(FEED_URL)

    async def test_unparseable_body(self, httpx_mock, settings):
        httpx_mock.add_response(url=FEED_URL, text="<html><body>nope</body></html>")

        with pytest.raises(RSSParseError):
            await FeedFetcher(settings).fetch(FEED_URL)
