"""
Error types raised by the feed importer and the stock sync.

Only ConfigurationError, EmptyFeedError and FeedFormatError stop a run.
Everything else is caught at the group / row boundary, logged and counted.
"""

from typing import Any, Optional


class FeedSyncError(Exception):
    """Base exception for all feedsync errors."""


class ConfigurationError(FeedSyncError):
    """Required connection parameters are missing or invalid."""

    def __init__(self, message: str, missing: Optional[list[str]] = None):
        self.missing = missing or []
        super().__init__(message)


class EmptyFeedError(FeedSyncError):
    """The feed parsed to zero items."""


class FeedFormatError(FeedSyncError):
    """The feed text is neither valid XML nor valid JSON."""


class ShopifyAPIError(FeedSyncError):
    """Non-2xx Shopify response or GraphQL errors payload."""

    def __init__(self, message: str, status: Optional[int] = None, body: Any = None):
        self.status = status
        self.body = body
        super().__init__(message)


class ShopifyRateLimitError(ShopifyAPIError):
    """HTTP 429 from Shopify. Retried with backoff."""

    def __init__(self, message: str, retry_after: Optional[float] = None, body: Any = None):
        self.retry_after = retry_after
        super().__init__(message, status=429, body=body)
