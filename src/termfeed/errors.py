# ABOUTME: Typed error taxonomy for feed fetching, registration and updates.
# ABOUTME: Each failure kind is its own exception class sharing TermfeedError.


class TermfeedError(Exception):
    """Base class for every operation failure raised by termfeed."""


class RSSFetchError(TermfeedError):
    """The feed source could not be reached (network, timeout, HTTP status)."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class RSSParseError(TermfeedError):
    """The source was reachable but its body is not a usable feed."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class DuplicateFeedError(TermfeedError):
    def __init__(self, url: str) -> None:
        super().__init__(f"Feed already exists: {url}")
        self.url = url


class FeedNotFoundError(TermfeedError):
    def __init__(self, feed_id: int) -> None:
        super().__init__(f"Feed not found: {feed_id}")
        self.feed_id = feed_id


class FeedUpdateError(TermfeedError):
    """Fetch or parse failure while updating a known feed.

    The low-level cause is available as ``__cause__``.
    """

    def __init__(self, feed_id: int, feed_url: str) -> None:
        super().__init__(f"Failed to update feed {feed_id}: {feed_url}")
        self.feed_id = feed_id
        self.feed_url = feed_url


class FeedManagementError(TermfeedError):
    """Storage-level failure while mutating a feed or its articles."""

    def __init__(self, message: str, feed_id: int | None = None) -> None:
        super().__init__(message)
        self.feed_id = feed_id


__all__ = [
    "DuplicateFeedError",
    "FeedManagementError",
    "FeedNotFoundError",
    "FeedUpdateError",
    "RSSFetchError",
    "RSSParseError",
    "TermfeedError",
]
