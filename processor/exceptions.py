"""Exceptions raised while building a calendar from Action Network feeds."""
from typing import Optional


class FeedCalendarError(Exception):
    """Base class for all feed calendar errors."""


class FeedSelectionError(FeedCalendarError):
    """Raised when the requested feed selection cannot be served."""


class NoFeedsSelectedError(FeedSelectionError):
    """Raised when a request does not name any feed."""

    def __init__(self):
        super().__init__("No feed query parameters provided.")


class UnknownFeedError(FeedSelectionError):
    """Raised when a requested feed has no configured API key."""

    def __init__(self, feed_id: str):
        self.feed_id = feed_id
        super().__init__(f"Feed {feed_id} is not configured in API keys.")


class UpstreamFetchError(FeedCalendarError):
    """Raised when fetching a feed from Action Network fails."""

    def __init__(self, feed_id: str, message: str):
        self.feed_id = feed_id
        super().__init__(f"Failed to fetch feed {feed_id}: {message}")


class PaginationLimitError(UpstreamFetchError):
    """Raised when a feed keeps returning next-page links past the page limit."""

    def __init__(self, feed_id: str, max_pages: int):
        self.max_pages = max_pages
        super().__init__(
            feed_id,
            f"pagination did not terminate after {max_pages} pages"
        )


class EventDecodeError(FeedCalendarError):
    """Raised when an upstream payload does not match the expected shape."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class EventNormalizationError(FeedCalendarError):
    """Raised when an event cannot be turned into a calendar entry."""

    def __init__(self, title: str, reason: str):
        self.title = title
        self.reason = reason
        super().__init__(f"Cannot normalize event '{title}': {reason}")
