"""
Vendor page scraping.

For each retailer domain (plan retailer priority, else the configured
default) run a `site:` web search, fetch the top product pages and pull
structured offer data (price, currency, availability, brand, image) out of
JSON-LD, falling back to OpenGraph meta.
"""

import asyncio
import hashlib
import logging
from typing import List, Optional

import config
from contracts.errors import FetchError
from contracts.models import Candidate
from integrations.base import ProviderAdapter, SearchOptions, limited
from integrations.http_fetch import TextFetcher
from integrations.web_search import WebSearchAdapter
from services.jsonld_extractor import PageProduct, parse_product_page
from services.url_utils import host_matches

logger = logging.getLogger(__name__)


def short_availability(value: Optional[str]) -> Optional[str]:
    """'https://schema.org/InStock' -> 'InStock'"""
    if not value:
        return None
    return value.rstrip("/").rsplit("/", 1)[-1] or None


class VendorScrapeAdapter(ProviderAdapter):
    """Structured offers scraped from retailer product pages"""

    key = "vendor"
    limits_own_calls = True

    def __init__(
        self,
        fetcher: Optional[TextFetcher] = None,
        searcher: Optional[WebSearchAdapter] = None,
        retailers: Optional[List[str]] = None,
        pages_per_retailer: Optional[int] = None
    ):
        self.fetcher = fetcher or TextFetcher()
        # Link discovery ignores the web allowlist; the domain filter below applies instead
        self.searcher = searcher or WebSearchAdapter(fetcher=self.fetcher, allowlist=[], enabled=True)
        self.retailers = retailers or config.DEFAULT_RETAILER_PRIORITY
        self.pages_per_retailer = pages_per_retailer or config.VENDOR_PAGES_PER_RETAILER

    async def _search(self, query: str, options: SearchOptions) -> List[Candidate]:
        retailers = [r.lower() for r in (options.retailers or self.retailers)]

        results = await asyncio.gather(
            *(self._search_retailer(query, domain, options) for domain in retailers),
            return_exceptions=True
        )

        candidates = []
        failures = []
        for domain, result in zip(retailers, results):
            if isinstance(result, Exception):
                logger.warning(f"[Vendor] {domain} failed: {result}")
                failures.append(f"{domain}: {result}")
                continue
            candidates.extend(result)

        if retailers and len(failures) == len(retailers):
            raise FetchError("all retailers failed (" + "; ".join(failures) + ")")

        logger.info(f"[Vendor] {len(candidates)} offers for '{query}' across {len(retailers)} retailers")
        return candidates

    async def _search_retailer(self, query: str, domain: str, options: SearchOptions) -> List[Candidate]:
        links = await self.searcher.find_links(f"{query} site:{domain}", options.region, options.limiter)
        urls = [url for _, url in links if host_matches(url, domain)][:self.pages_per_retailer]
        if not urls:
            return []

        pages = await asyncio.gather(*(self._fetch_page(url, options) for url in urls), return_exceptions=True)

        candidates = []
        for url, html in zip(urls, pages):
            if isinstance(html, Exception):
                logger.debug(f"[Vendor] Could not fetch {url}: {html}")
                continue
            product = parse_product_page(html, url)
            if product:
                candidates.append(self._to_candidate(product, url, domain, options))
        return candidates

    async def _fetch_page(self, url: str, options: SearchOptions) -> str:
        async with limited(options.limiter):
            return await self.fetcher.fetch_html(url)

    def _to_candidate(self, product: PageProduct, page_url: str, domain: str, options: SearchOptions) -> Candidate:
        url = product.url if product.url and host_matches(product.url, domain) else page_url
        ident = product.sku or hashlib.sha1(url.encode()).hexdigest()[:16]
        return Candidate(
            id=f"{domain}:{ident}",
            title=product.name,
            brand=product.brand,
            price=product.price,
            currency=product.currency,
            image=product.image,
            url=url,
            affiliate_url=url,
            retailer=domain,
            availability=short_availability(product.availability),
            category=product.category or options.category,
            slot=options.slot,
            source=self.key,
        )
