"""
Web search-derived candidates.

Searches DuckDuckGo through the `ddgs` client (Bing's HTML results page as
fallback) and turns the hits into title+URL candidates. These carry no price
or brand, so they are the lowest-confidence source and rarely survive
validation on their own; the vendor adapter is what enriches links into
offers.
"""

import asyncio
import hashlib
import logging
from typing import Callable, List, Optional, Tuple
from urllib.parse import quote_plus, urlparse

from bs4 import BeautifulSoup
from ddgs import DDGS

import config
from contracts.errors import FetchError
from contracts.models import Candidate
from integrations.base import ProviderAdapter, SearchOptions, limited
from integrations.http_fetch import TextFetcher
from services.url_utils import host_matches, host_of, normalize_product_url

logger = logging.getLogger(__name__)


BING_HTML = "https://www.bing.com/search?q={query}"

# DuckDuckGo region codes; anything else searches worldwide
DDG_REGIONS = {
    "NL": "nl-nl", "BE": "be-nl", "DE": "de-de", "AT": "at-de", "FR": "fr-fr",
    "IT": "it-it", "ES": "es-es", "IE": "ie-en", "SE": "se-sv", "DK": "dk-da",
    "FI": "fi-fi", "PL": "pl-pl", "PT": "pt-pt", "GB": "uk-en", "UK": "uk-en",
    "US": "us-en", "CA": "ca-en", "AU": "au-en",
}

EU_HOST_HINTS = [
    ".eu", ".nl", ".de", ".fr", ".it", ".es", ".ie", ".be", ".se", ".dk", ".fi", ".pl", ".at",
    "matchesfashion.com", "ssense.com", "mytheresa.com", "farfetch.com", "endclothing.com",
    "mrporter.com", "net-a-porter.com", "cos.com", "arket.com", "hm.com", "mango.com",
    "zara.com", "stories.com",
]

EU_REGIONS = {
    "NL", "DE", "FR", "IT", "ES", "IE", "BE", "SE", "DK", "FI", "PL", "AT", "PT", "LU", "GR",
}

# Hosts that never lead to a product page
SKIP_HOSTS = {"duckduckgo.com", "bing.com", "google.com", "youtube.com", "pinterest.com",
              "instagram.com", "facebook.com", "wikipedia.org", "reddit.com"}


def ddg_region(region: Optional[str]) -> str:
    return DDG_REGIONS.get((region or "").upper(), "wt-wt")


def _absolute(href: Optional[str]) -> Optional[str]:
    if not href:
        return None
    parsed = urlparse(href)
    if parsed.scheme in ("http", "https") and parsed.netloc:
        return href
    return None


def dedupe_links(pairs) -> List[Tuple[str, str]]:
    """Normalized (title, url) pairs in first-seen order, dropping non-http links."""
    results = []
    seen = set()
    for title, href in pairs:
        url = _absolute(href)
        if not url:
            continue
        url = normalize_product_url(url)
        if url in seen:
            continue
        seen.add(url)
        results.append(((title or "").strip(), url))
    return results


def parse_result_links(html: str) -> List[Tuple[str, str]]:
    """(title, url) pairs from a Bing results page, in page order."""
    soup = BeautifulSoup(html or "", "html.parser")
    return dedupe_links(
        (anchor.get_text(" ", strip=True), anchor.get("href", ""))
        for anchor in soup.select("li.b_algo h2 a")
    )


def is_eu_host(url: str) -> bool:
    host = host_of(url) or ""
    return any(hint in host for hint in EU_HOST_HINTS)


def rank_by_region(links: List[Tuple[str, str]], region: Optional[str]) -> List[Tuple[str, str]]:
    """Stable sort putting EU-looking hosts first for EU regions (and last otherwise)."""
    prefer_eu = (region or "").upper() in EU_REGIONS
    return sorted(links, key=lambda item: 0 if is_eu_host(item[1]) == prefer_eu else 1)


class WebSearchAdapter(ProviderAdapter):
    """Generic web search: DuckDuckGo via ddgs, Bing HTML as fallback"""

    key = "web"
    limits_own_calls = True

    def __init__(
        self,
        fetcher: Optional[TextFetcher] = None,
        allowlist: Optional[List[str]] = None,
        enabled: Optional[bool] = None,
        client_factory: Optional[Callable[[], DDGS]] = None,
        max_results: int = 10
    ):
        self.fetcher = fetcher or TextFetcher()
        self.allowlist = config.WEB_SCRAPE_DOMAINS_ALLOWLIST if allowlist is None else allowlist
        self.enabled = config.WEB_SCRAPE_ENABLED if enabled is None else enabled
        self.client_factory = client_factory or DDGS
        self.max_results = max_results

    def _ddg_text(self, query: str, region: Optional[str]) -> List[Tuple[str, str]]:
        # ddgs is synchronous; this runs in the default executor
        with self.client_factory() as ddgs:
            hits = list(ddgs.text(query, region=ddg_region(region), safesearch="moderate",
                                  max_results=self.max_results))
        # Fields: title, body (snippet), href
        return dedupe_links((hit.get("title", ""), hit.get("href", "")) for hit in hits)

    async def find_links(
        self,
        query: str,
        region: Optional[str] = None,
        limiter: Optional[asyncio.Semaphore] = None
    ) -> List[Tuple[str, str]]:
        """
        Result links for a query. DuckDuckGo first; Bing when DuckDuckGo
        fails or returns nothing. Each engine request holds one `limiter` slot.

        Raises:
            FetchError: when both engines fail
        """
        errors = []

        loop = asyncio.get_running_loop()
        try:
            async with limited(limiter):
                links = await loop.run_in_executor(None, self._ddg_text, query, region)
            if links:
                logger.debug(f"[Web Search] duckduckgo returned {len(links)} links for '{query}'")
                return links
        except Exception as e:
            logger.debug(f"[Web Search] duckduckgo failed: {e}")
            errors.append(f"duckduckgo: {e}")

        try:
            async with limited(limiter):
                html = await self.fetcher.fetch_html(BING_HTML.format(query=quote_plus(query)))
        except FetchError as e:
            logger.debug(f"[Web Search] bing failed: {e}")
            errors.append(f"bing: {e}")
            if len(errors) == 2:
                raise FetchError("; ".join(errors))
            return []

        links = parse_result_links(html)
        logger.debug(f"[Web Search] bing returned {len(links)} links for '{query}'")
        return links

    def _allowed(self, url: str) -> bool:
        host = host_of(url)
        if not host or any(host == h or host.endswith("." + h) for h in SKIP_HOSTS):
            return False
        if not self.allowlist:
            return True
        return any(host_matches(url, domain) for domain in self.allowlist)

    async def _search(self, query: str, options: SearchOptions) -> List[Candidate]:
        if not self.enabled:
            logger.debug("[Web Search] Disabled via WEB_SCRAPE_ENABLED")
            return []

        links = await self.find_links(query, options.region, options.limiter)
        links = [link for link in links if self._allowed(link[1])]
        links = rank_by_region(links, options.region)

        candidates = []
        for title, url in links[:options.limit]:
            candidates.append(Candidate(
                id="web:" + hashlib.sha1(url.encode()).hexdigest()[:16],
                title=title or None,
                url=url,
                retailer=host_of(url),
                category=options.category,
                slot=options.slot,
                source=self.key,
            ))

        logger.info(f"[Web Search] {len(candidates)} link candidates for '{query}'")
        return candidates
