import logging

import aiohttp

from feedsync.config import Settings
from feedsync.exceptions import ShopifyAPIError, ShopifyRateLimitError
from feedsync.utils.rate_limit import RateLimiter
from feedsync.utils.retry import RETRY_UNSENT_EXCEPTIONS, retry_async

logger = logging.getLogger(__name__)


class ShopifyClient:
    def __init__(
        self,
        store: str,
        token: str,
        api_version: str = "2024-07",
        *,
        timeout: float = 60.0,
        rate_limiter: RateLimiter | None = None,
        max_retries: int = 3,
    ):
        self.store = store
        self.base_url = f"https://{store}/admin/api/{api_version}"
        self.headers = {
            "X-Shopify-Access-Token": token,
            "Content-Type": "application/json",
        }
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.rate_limiter = rate_limiter or RateLimiter()
        attempts = max(1, max_retries)
        self._send = retry_async(self._request, attempts=attempts)
        # creates are not idempotent: only retried when Shopify never applied them
        self._send_create = retry_async(self._request, attempts=attempts, retry_on=RETRY_UNSENT_EXCEPTIONS)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ShopifyClient":
        settings.require_shopify()
        return cls(
            settings.shop_domain,
            settings.SHOPIFY_ADMIN_TOKEN,
            settings.SHOPIFY_API_VERSION,
            timeout=settings.SHOPIFY_TIMEOUT,
            rate_limiter=RateLimiter(rate=settings.SHOPIFY_RATE_PER_SECOND),
            max_retries=settings.SHOPIFY_MAX_RETRIES,
        )

    def _url(self, endpoint: str) -> str:
        # endpoint examples: "products.json", "variants/123456789.json"
        if endpoint.startswith("/"):
            endpoint = endpoint[1:]
        return f"{self.base_url}/{endpoint}"

    async def _request(self, method: str, endpoint: str, **kwargs) -> dict:
        url = self._url(endpoint)
        await self.rate_limiter.wait()
        async with aiohttp.ClientSession(headers=self.headers, timeout=self.timeout) as session:
            async with session.request(method, url, **kwargs) as resp:
                if resp.status == 429:
                    retry_after = resp.headers.get("Retry-After")
                    raise ShopifyRateLimitError(
                        f"Shopify {method} {endpoint} throttled",
                        retry_after=float(retry_after) if retry_after else None,
                    )
                if resp.status >= 400:
                    text = await resp.text()
                    logger.error(f"Shopify {method} Error {resp.status}: {text}")
                    raise ShopifyAPIError(
                        f"Shopify {method} {endpoint} failed with {resp.status}",
                        status=resp.status,
                        body=text,
                    )
                if resp.status == 204:
                    return {}
                return await resp.json(content_type=None) or {}

    async def get(self, endpoint: str, params: dict | None = None) -> dict:
        return await self._send("GET", endpoint, params=params)

    async def post(self, endpoint: str, payload: dict, *, idempotent: bool = False) -> dict:
        send = self._send if idempotent else self._send_create
        return await send("POST", endpoint, json=payload)

    async def put(self, endpoint: str, payload: dict) -> dict:
        return await self._send("PUT", endpoint, json=payload)

    async def graphql(self, query: str, variables: dict | None = None) -> dict:
        res = await self._send("POST", "graphql.json", json={"query": query, "variables": variables or {}})
        if res.get("errors"):
            raise ShopifyAPIError(f"Shopify GraphQL errors: {res['errors']}", body=res["errors"])
        return res.get("data") or {}
