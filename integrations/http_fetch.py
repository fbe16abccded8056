"""
HTML fetching for search and vendor pages.

Tries a direct request first and, when enabled, falls back to a reading
proxy (r.jina.ai) that returns the rendered page for sites blocking bots.
"""

import logging
from typing import Dict, Optional

import httpx

import config
from contracts.errors import FetchError

logger = logging.getLogger(__name__)


DEFAULT_HEADERS = {
    "User-Agent": config.USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9,nl;q=0.8",
}


class TextFetcher:
    """Small async fetcher returning page text"""

    def __init__(
        self,
        timeout: Optional[float] = None,
        use_proxy: Optional[bool] = None,
        proxy_prefix: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Args:
            timeout: Per-request timeout in seconds
            use_proxy: Retry through the reading proxy after a direct failure
            proxy_prefix: Proxy URL prefix the target URL is appended to
            headers: Extra request headers
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.timeout = timeout if timeout is not None else config.FETCH_TIMEOUT_SECONDS
        self.use_proxy = config.ENABLE_PROXY_FETCH if use_proxy is None else use_proxy
        self.proxy_prefix = proxy_prefix or config.PROXY_PREFIX
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}
        self.transport = transport

    async def fetch_text(self, url: str, via_proxy: bool = False) -> str:
        """
        GET a URL and return the body text.

        Raises:
            FetchError: on timeout, transport error or a non-2xx status
        """
        target = f"{self.proxy_prefix}{url}" if via_proxy else url
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
                headers=self.headers,
                follow_redirects=True,
                transport=self.transport
            ) as client:
                response = await client.get(target)
                response.raise_for_status()
                return response.text
        except httpx.TimeoutException as e:
            raise FetchError(f"timeout fetching {target}") from e
        except httpx.HTTPStatusError as e:
            raise FetchError(f"HTTP {e.response.status_code} for {target}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"{type(e).__name__} fetching {target}") from e

    async def fetch_html(self, url: str) -> str:
        """Direct fetch, then the proxy when enabled."""
        try:
            return await self.fetch_text(url)
        except FetchError as e:
            if not self.use_proxy:
                raise
            logger.debug(f"[Fetch] Direct fetch failed ({e}), retrying via proxy")
            return await self.fetch_text(url, via_proxy=True)
