"""
Listing Gateway

aiohttp client for the exchange's paginated token listing feed.

Every query has a per-call timeout and a bounded retry budget with
exponential backoff. Failures that survive the budget surface as
GatewayError; a body that does not look like a listing page surfaces as
ParseError and is never retried.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from sweeper.core.errors import GatewayError, ParseError
from sweeper.trading.listings import ListingPage

logger = logging.getLogger(__name__)

LISTING_PATH = "/api/v1/token/list"


class ListingGateway:
    """
    Paginated listing queries against the exchange RPC endpoint.

    Features:
    - Shared aiohttp session, opened lazily
    - Per-call timeout
    - Retry with exponential backoff for network failures, 5xx and 429
    - Other 4xx responses fail without retry
    """

    def __init__(
        self,
        exchange_url: str,
        timeout: float = 10,
        max_retries: int = 3,
        base_delay: float = 1.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the gateway.

        Args:
            exchange_url: Exchange RPC base URL
            timeout: Total timeout per request in seconds
            max_retries: Attempts per listing query
            base_delay: Base delay in seconds for exponential backoff
            session: Optional pre-built session (owned by the caller)
        """
        self.exchange_url = exchange_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.base_delay = base_delay
        self._session = session
        self._owns_session = session is None

        logger.info(f"Listing gateway initialized: {self.exchange_url}")

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the underlying session if this gateway opened it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "ListingGateway":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def fetch_listing_page(self, token: str, page_index: int, page_size: int) -> ListingPage:
        """
        Fetch one page of listings for a token.

        Args:
            token: Tracked token identifier
            page_index: 1-based page number
            page_size: Items per page

        Returns:
            ListingPage

        Raises:
            GatewayError: If the query keeps failing after all retries
            ParseError: If the response body is malformed
        """
        params = {"ticker": token, "page": page_index, "page_size": page_size}
        payload = await self._get_with_retry(LISTING_PATH, params)
        page = ListingPage.from_response(payload, page_index=page_index, page_size=page_size)
        logger.debug(
            f"Fetched listings {token} page {page_index}: "
            f"{len(page.items)} items, total {page.total_count}"
        )
        return page

    async def _get_with_retry(self, path: str, params: Dict[str, Any]) -> Any:
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries):
            try:
                return await self._get(path, params)
            except ParseError:
                raise
            except (aiohttp.ClientError, asyncio.TimeoutError, GatewayError) as e:
                if isinstance(e, GatewayError) and not e.retryable:
                    logger.error(f"Listing query rejected: {e}")
                    raise
                last_error = e
                if attempt < self.max_retries - 1:
                    delay = self.base_delay * (2 ** attempt)
                    logger.warning(
                        f"Listing query failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay}s..."
                    )
                    await asyncio.sleep(delay)

        logger.error(f"Listing query failed after {self.max_retries} attempts: {last_error}")
        raise GatewayError(f"Listing query {path} failed: {last_error}") from last_error

    async def _get(self, path: str, params: Dict[str, Any]) -> Any:
        session = await self._get_session()
        url = f"{self.exchange_url}{path}"

        async with session.get(url, params=params) as response:
            if response.status == 429:
                raise GatewayError("Rate limited by exchange RPC")
            if 400 <= response.status < 500:
                raise GatewayError(f"HTTP {response.status} from exchange RPC", retryable=False)
            if response.status != 200:
                raise GatewayError(f"HTTP {response.status} from exchange RPC")

            try:
                return await response.json(content_type=None)
            except ValueError as e:
                raise ParseError(f"Listing response is not valid JSON: {e}") from e
