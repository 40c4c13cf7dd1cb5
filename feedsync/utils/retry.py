"""Retry helper for throttled or dropped Shopify calls."""

from __future__ import annotations

import asyncio
import functools
import logging
import random
from collections.abc import Awaitable, Callable

import aiohttp

from feedsync.exceptions import ShopifyRateLimitError

logger = logging.getLogger(__name__)

RETRY_EXCEPTIONS = (aiohttp.ClientConnectionError, asyncio.TimeoutError, ShopifyRateLimitError)

# Failures where the request never reached Shopify: a create may be re-sent.
RETRY_UNSENT_EXCEPTIONS = (aiohttp.ClientConnectorError, ShopifyRateLimitError)


def retry_async(
    func: Callable[..., Awaitable] | None = None,
    *,
    attempts: int = 3,
    base_delay: float = 1.0,
    retry_on: tuple[type[BaseException], ...] = RETRY_EXCEPTIONS,
):
    def decorator(fn: Callable[..., Awaitable]):
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs):
            delay = base_delay
            for attempt in range(attempts):
                try:
                    return await fn(*args, **kwargs)
                except retry_on as exc:
                    if attempt == attempts - 1:
                        raise
                    wait = getattr(exc, "retry_after", None) or delay + random.random()
                    logger.warning("Retrying %s in %.1fs (%s)", fn.__name__, wait, exc)
                    await asyncio.sleep(wait)
                    delay *= 2
        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
