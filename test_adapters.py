"""
Tests for provider adapters and the text fetcher. No network: DuckDuckGo is a
fake ddgs client, Bing and product pages are literal HTML served by a fake
fetcher or httpx.MockTransport.
"""
import asyncio
import json

import httpx
import pytest

from contracts.errors import FetchError
from integrations.base import ProviderAdapter, SearchOptions
from integrations.http_fetch import TextFetcher
from integrations.seed_catalog import SEED_CATALOG, SeedCatalogAdapter, search_catalog, to_candidate
from integrations.vendor_scrape import VendorScrapeAdapter, short_availability
from integrations.web_search import (
    WebSearchAdapter,
    ddg_region,
    dedupe_links,
    parse_result_links,
    rank_by_region,
)
from services.product_validator import validate, validate_many
from services.unified_search import UnifiedSearch

DDG_HITS = [
    {"title": "Silk Cami Top | COS", "href": "https://www.cos.com/en-nl/p/silk-cami.html?utm_source=ddg", "body": "..."},
    {"title": "ASOS DESIGN cami", "href": "https://www.asos.com/us/asos-design/cami/prd/1", "body": "..."},
    {"title": "Cami ideas", "href": "https://www.pinterest.com/pin/123", "body": "..."},
    {"title": "Ribbed Knit | COS", "href": "https://www.cos.com/en-nl/p/ribbed-knit.html", "body": "..."},
]

BING_RESULTS = """
<html><body><ol>
  <li class="b_algo"><h2><a href="https://www.zara.com/nl/en/satin-skirt-p1.html">Satin Skirt - ZARA</a></h2></li>
  <li class="b_algo"><h2><a href="/search?q=more">Related searches</a></h2></li>
</ol></body></html>
"""


def fake_ddgs(hits=None, error=None):
    """A ddgs.DDGS stand-in returning fixed hits (or raising) and recording queries."""

    class FakeDDGS:
        calls = []

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def text(self, query, region=None, safesearch=None, max_results=None):
            FakeDDGS.calls.append((query, region))
            if error is not None:
                raise error
            return iter(hits or [])

    return FakeDDGS


def product_page(name, price, brand="COS", currency="EUR", image="https://media.cos.com/assets/p.jpg"):
    data = {
        "@context": "https://schema.org",
        "@type": "Product",
        "name": name,
        "brand": {"@type": "Brand", "name": brand},
        "image": image,
        "category": "Tops",
        "offers": {"@type": "Offer", "price": price, "priceCurrency": currency,
                   "availability": "https://schema.org/InStock"},
    }
    return f'<html><head><script type="application/ld+json">{json.dumps(data)}</script></head><body></body></html>'


class FakeFetcher:
    """Serves the Bing results page and product pages by exact URL."""

    def __init__(self, pages=None, bing=BING_RESULTS):
        self.pages = pages or {}
        self.bing = bing
        self.requested = []

    async def fetch_html(self, url):
        self.requested.append(url)
        if "bing.com/search" in url:
            if self.bing is None:
                raise FetchError("HTTP 403")
            return self.bing
        if url in self.pages:
            return self.pages[url]
        raise FetchError(f"HTTP 404 for {url}")


def web_adapter(fetcher=None, hits=DDG_HITS, error=None, **kwargs):
    return WebSearchAdapter(fetcher=fetcher or FakeFetcher(), client_factory=fake_ddgs(hits, error), **kwargs)


class ExplodingAdapter(ProviderAdapter):
    key = "boom"

    async def _search(self, query, options):
        raise ValueError("unparseable payload")


# ============================================================================
# Base adapter
# ============================================================================

def test_adapter_failure_is_captured_not_raised():
    result = asyncio.run(ExplodingAdapter().search("cami"))

    assert not result.ok
    assert result.candidates == []
    assert result.error == "unparseable payload"


# ============================================================================
# Web search
# ============================================================================

def test_ddg_region_codes():
    assert ddg_region("NL") == "nl-nl"
    assert ddg_region("us") == "us-en"
    assert ddg_region(None) == "wt-wt"


def test_dedupe_links_normalizes_and_drops_relative():
    links = dedupe_links([
        ("A", "https://www.cos.com/p/1.html?utm_source=x"),
        ("A again", "https://www.cos.com/p/1.html"),
        ("Relative", "/search?q=x"),
        ("  B ", "https://www.zara.com/p/2.html"),
    ])
    assert links == [("A", "https://www.cos.com/p/1.html"), ("B", "https://www.zara.com/p/2.html")]


def test_parse_bing_result_links():
    assert parse_result_links(BING_RESULTS) == [("Satin Skirt - ZARA", "https://www.zara.com/nl/en/satin-skirt-p1.html")]
    assert parse_result_links("") == []


def test_rank_by_region_prefers_eu_hosts_for_eu_regions():
    links = [("a", "https://www.asos.com/us/p/1"), ("b", "https://www.cos.com/p/2")]
    assert [t for t, _ in rank_by_region(links, "NL")] == ["b", "a"]
    assert [t for t, _ in rank_by_region(links, "US")] == ["a", "b"]


def test_web_search_adapter_builds_link_candidates():
    adapter = web_adapter(allowlist=[], enabled=True)
    result = asyncio.run(adapter.search("silk cami", SearchOptions(limit=5, region="NL", slot="top", category="Top")))

    assert result.ok
    assert adapter.client_factory.calls == [("silk cami", "nl-nl")]
    urls = [c.url for c in result.candidates]
    assert "https://www.pinterest.com/pin/123" not in urls
    assert urls[0] == "https://www.cos.com/en-nl/p/silk-cami.html"
    first = result.candidates[0]
    assert first.source == "web"
    assert first.retailer == "cos.com"
    assert first.slot == "top"
    # Title + URL only: lowest confidence, rejected by strict validation
    assert validate(first).reason == "missing_brand"


def test_web_search_allowlist_and_disable():
    adapter = web_adapter(allowlist=["cos.com"], enabled=True)
    result = asyncio.run(adapter.search("cami", SearchOptions(limit=10)))
    assert {c.retailer for c in result.candidates} == {"cos.com"}

    disabled = web_adapter(enabled=False)
    assert asyncio.run(disabled.search("cami")).candidates == []
    assert disabled.client_factory.calls == []


def test_web_search_falls_back_to_bing_on_error():
    fetcher = FakeFetcher()
    adapter = web_adapter(fetcher=fetcher, error=RuntimeError("202 Ratelimit"), allowlist=[], enabled=True)
    result = asyncio.run(adapter.search("satin skirt"))
    assert [c.url for c in result.candidates] == ["https://www.zara.com/nl/en/satin-skirt-p1.html"]
    assert any("bing.com/search?q=satin+skirt" in url for url in fetcher.requested)


def test_web_search_falls_back_to_bing_on_empty_results():
    adapter = web_adapter(hits=[], allowlist=[], enabled=True)
    result = asyncio.run(adapter.search("satin skirt"))
    assert [c.retailer for c in result.candidates] == ["zara.com"]


def test_web_search_reports_failure_when_both_engines_fail():
    adapter = web_adapter(fetcher=FakeFetcher(bing=None), error=RuntimeError("202 Ratelimit"), allowlist=[], enabled=True)
    result = asyncio.run(adapter.search("satin skirt"))
    assert not result.ok
    assert "duckduckgo" in result.error and "bing" in result.error


# ============================================================================
# Vendor scrape
# ============================================================================

def test_vendor_scrape_extracts_offers_from_product_pages():
    fetcher = FakeFetcher(pages={
        "https://www.cos.com/en-nl/p/silk-cami.html": product_page("Silk Cami Top", "69.00"),
        "https://www.cos.com/en-nl/p/ribbed-knit.html": product_page("Ribbed Knit", 79),
    })
    searcher = web_adapter(fetcher=fetcher, allowlist=[], enabled=True)
    adapter = VendorScrapeAdapter(fetcher=fetcher, searcher=searcher, retailers=["cos.com"], pages_per_retailer=3)

    result = asyncio.run(adapter.search("silk cami", SearchOptions(slot="top", category="Top", region="NL")))

    assert result.ok
    assert [c.title for c in result.candidates] == ["Silk Cami Top", "Ribbed Knit"]
    cami = result.candidates[0]
    assert cami.price == 69.0
    assert cami.availability == "InStock"
    assert cami.retailer == "cos.com"
    assert cami.source == "vendor"
    assert searcher.client_factory.calls == [("silk cami site:cos.com", "nl-nl")]

    report = validate_many(result.candidates, fallback_slot="top")
    assert len(report.products) == 2
    assert report.products[0].slot == "top"


def test_vendor_scrape_uses_plan_retailers_over_defaults():
    fetcher = FakeFetcher()
    searcher = web_adapter(fetcher=fetcher, hits=[], allowlist=[], enabled=True)
    adapter = VendorScrapeAdapter(fetcher=fetcher, searcher=searcher, retailers=["cos.com"])

    asyncio.run(adapter.search("skirt", SearchOptions(retailers=["zara.com"])))

    assert [query for query, _ in searcher.client_factory.calls] == ["skirt site:zara.com"]


def test_vendor_scrape_fails_when_every_retailer_fails():
    fetcher = FakeFetcher(bing=None)
    searcher = web_adapter(fetcher=fetcher, error=RuntimeError("202 Ratelimit"), allowlist=[], enabled=True)
    adapter = VendorScrapeAdapter(fetcher=fetcher, searcher=searcher, retailers=["cos.com", "zara.com"])
    result = asyncio.run(adapter.search("cami"))
    assert not result.ok
    assert "all retailers failed" in result.error


class SlowFetcher(FakeFetcher):
    """Product pages that take a moment to load; tracks how many load at once."""

    def __init__(self, pages):
        super().__init__(pages=pages)
        self.loading = 0
        self.peak = 0

    async def fetch_html(self, url):
        self.loading += 1
        self.peak = max(self.peak, self.loading)
        try:
            await asyncio.sleep(0.02)
            return await super().fetch_html(url)
        finally:
            self.loading -= 1


def test_vendor_page_fetches_share_the_in_flight_bound():
    retailers = ["cos.com", "zara.com", "arket.com"]
    urls = [f"https://www.{domain}/p/item-{i}.html" for domain in retailers for i in range(3)]
    hits = [{"title": url, "href": url, "body": ""} for url in urls]

    def run(max_inflight=None):
        fetcher = SlowFetcher({url: product_page(f"Item {n}", 50 + n) for n, url in enumerate(urls)})
        searcher = web_adapter(fetcher=fetcher, hits=hits, allowlist=[], enabled=True)
        adapter = VendorScrapeAdapter(fetcher=fetcher, searcher=searcher, retailers=retailers, pages_per_retailer=3)
        options = SearchOptions(limit=20, slot="top")
        if max_inflight is None:
            result = asyncio.run(adapter.search("knit", options))
            return fetcher, result.candidates
        search = UnifiedSearch({"vendor": adapter}, timeout=5, max_inflight=max_inflight)
        result = asyncio.run(search.search_slot("top", "knit", options, ["vendor"]))
        assert result.failures == []
        return fetcher, result.candidates

    fetcher, candidates = run(max_inflight=2)
    assert len(candidates) == 9
    assert fetcher.peak == 2

    # Without a limiter every page of a retailer loads at once
    fetcher, candidates = run()
    assert len(candidates) == 9
    assert fetcher.peak >= 3


def test_short_availability():
    assert short_availability("https://schema.org/InStock") == "InStock"
    assert short_availability("OutOfStock") == "OutOfStock"
    assert short_availability(None) is None


# ============================================================================
# Seed catalog
# ============================================================================

def test_every_seed_item_passes_validation():
    report = validate_many([to_candidate(item) for item in SEED_CATALOG])
    assert report.rejected == {}
    assert all(p.slot == item["slot"] for p, item in zip(report.products, SEED_CATALOG))


def test_search_catalog_filters():
    tops = search_catalog("top", region="NL")
    assert tops and all(i["region"] == "NL" and i["slot"] == "top" for i in tops)

    cheap = search_catalog("top", region="NL", max_price=70)
    assert [i["id"] for i in cheap] == ["seed-nl-stories-silk-cami"]

    tagged = search_catalog("dress", region="NL", tags=["red carpet"])
    assert [i["id"] for i in tagged] == ["seed-nl-cos-column-dress"]

    # Title words count as tags
    assert [i["id"] for i in search_catalog("shoe", region="nl", tags=["loafers"])] == ["seed-nl-cos-loafers"]
    assert search_catalog("shoe", region="NL", tags=["sequins"]) == []


def test_seed_adapter_search():
    result = asyncio.run(SeedCatalogAdapter().search("", SearchOptions(slot="accessory", region="US", limit=5)))
    assert [c.id for c in result.candidates] == ["seed-us-madewell-tote"]
    assert result.candidates[0].source == "seed"

    assert SeedCatalogAdapter().lookup(None) == []


# ============================================================================
# Text fetcher
# ============================================================================

def test_fetch_text_returns_body():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>ok</html>"))
    fetcher = TextFetcher(timeout=2, use_proxy=False, transport=transport)
    assert asyncio.run(fetcher.fetch_text("https://www.cos.com/p/1")) == "<html>ok</html>"


def test_fetch_text_raises_fetch_error_on_status():
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    fetcher = TextFetcher(timeout=2, use_proxy=False, transport=transport)
    with pytest.raises(FetchError, match="HTTP 503"):
        asyncio.run(fetcher.fetch_text("https://www.cos.com/p/1"))


def test_fetch_html_retries_through_proxy():
    seen = []

    def handler(request):
        seen.append(str(request.url))
        if request.url.host == "r.jina.ai":
            return httpx.Response(200, text="proxied")
        return httpx.Response(403)

    fetcher = TextFetcher(timeout=2, use_proxy=True, proxy_prefix="https://r.jina.ai/", transport=httpx.MockTransport(handler))

    assert asyncio.run(fetcher.fetch_html("https://www.zara.com/nl/p/1")) == "proxied"
    assert seen[0] == "https://www.zara.com/nl/p/1"
    assert seen[1].startswith("https://r.jina.ai/")


def test_fetch_html_without_proxy_propagates():
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    fetcher = TextFetcher(timeout=2, use_proxy=False, transport=transport)
    with pytest.raises(FetchError):
        asyncio.run(fetcher.fetch_html("https://www.zara.com/nl/p/1"))
