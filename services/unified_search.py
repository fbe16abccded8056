# services/unified_search.py
"""
Unified Search - fans one slot query out to every selected provider adapter.

Each adapter call is bounded by a hard timeout and a shared in-flight
semaphore. Adapters that fan out internally get the semaphore through
SearchOptions and hold it per outbound fetch; the others hold it for the
whole call. A slow or failing adapter only costs its own contribution: the
slot search returns whatever the other adapters found plus one
AdapterFailure per failed adapter.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Set

import config
from contracts.models import AdapterFailure, Candidate
from integrations.base import AdapterResult, ProviderAdapter, SearchOptions
from integrations.seed_catalog import SeedCatalogAdapter
from integrations.vendor_scrape import VendorScrapeAdapter
from integrations.web_search import WebSearchAdapter

logger = logging.getLogger(__name__)


@dataclass
class SlotSearchResult:
    """Merged output of one slot search across providers"""
    slot: str
    query: str
    candidates: List[Candidate] = field(default_factory=list)
    failures: List[AdapterFailure] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


class UnifiedSearch:
    """
    Concurrent multi-provider search for a single slot.

    Adapters are looked up by key; the provider order given by the caller is
    the order candidates are merged in.
    """

    def __init__(
        self,
        adapters: Dict[str, ProviderAdapter],
        timeout: Optional[float] = None,
        max_inflight: Optional[int] = None
    ):
        self.adapters = adapters
        self.timeout = timeout if timeout is not None else config.ADAPTER_TIMEOUT_SECONDS
        self.max_inflight = max_inflight or config.MAX_INFLIGHT_CALLS

    def new_semaphore(self) -> asyncio.Semaphore:
        """One semaphore per job run; must be created inside the running loop."""
        return asyncio.Semaphore(self.max_inflight)

    async def _call(
        self,
        adapter: ProviderAdapter,
        query: str,
        options: SearchOptions,
        semaphore: asyncio.Semaphore
    ) -> AdapterResult:
        try:
            if adapter.limits_own_calls:
                options = replace(options, limiter=semaphore)
                return await asyncio.wait_for(adapter.search(query, options), timeout=self.timeout)
            async with semaphore:
                return await asyncio.wait_for(adapter.search(query, options), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[Unified Search] {adapter.key} timed out after {self.timeout}s for '{query}'")
            return AdapterResult(adapter=adapter.key, error=f"timeout after {self.timeout:g}s")

    async def search_slot(
        self,
        slot: str,
        query: str,
        options: SearchOptions,
        providers: Iterable[str],
        semaphore: Optional[asyncio.Semaphore] = None,
        skip: Optional[Set[str]] = None
    ) -> SlotSearchResult:
        """
        Search one slot across providers.

        Args:
            slot: Slot being searched
            query: Free-text query for the slot
            options: Search options forwarded to every adapter
            providers: Adapter keys, in merge order
            semaphore: Shared in-flight bound for the job (created if omitted)
            skip: Adapter keys that already failed in this job (fail-fast)

        Returns:
            SlotSearchResult with candidates in provider order and one
            AdapterFailure per failed adapter
        """
        semaphore = semaphore or self.new_semaphore()
        skip = skip or set()
        result = SlotSearchResult(slot=slot, query=query)

        selected = []
        for key in providers:
            if key in skip:
                result.skipped.append(key)
                continue
            adapter = self.adapters.get(key)
            if adapter is None:
                result.failures.append(AdapterFailure(retailer=key, slot=slot, message="unknown provider"))
                continue
            selected.append(adapter)

        if result.skipped:
            logger.debug(f"[Unified Search] Skipping previously failed adapters for {slot}: {result.skipped}")

        outcomes = await asyncio.gather(
            *(self._call(adapter, query, options, semaphore) for adapter in selected),
            return_exceptions=True
        )

        succeeded = 0
        for adapter, outcome in zip(selected, outcomes):
            if isinstance(outcome, BaseException):
                # search() never raises; only cancellation-adjacent errors land here
                result.failures.append(AdapterFailure(retailer=adapter.key, slot=slot, message=str(outcome) or type(outcome).__name__))
                continue
            if outcome.error:
                result.failures.append(AdapterFailure(retailer=adapter.key, slot=slot, message=outcome.error))
                continue
            succeeded += 1
            result.candidates.extend(outcome.candidates)

        logger.info(
            f"[Unified Search] {slot}: {len(result.candidates)} candidates from "
            f"{succeeded}/{len(selected)} adapters"
        )
        return result


def default_adapters() -> Dict[str, ProviderAdapter]:
    """Adapter registry keyed by provider name."""
    return {
        VendorScrapeAdapter.key: VendorScrapeAdapter(),
        WebSearchAdapter.key: WebSearchAdapter(),
        SeedCatalogAdapter.key: SeedCatalogAdapter(),
    }


# Global singleton instance
_unified_search: Optional[UnifiedSearch] = None


def get_unified_search() -> UnifiedSearch:
    """Get or create global unified search instance"""
    global _unified_search
    if _unified_search is None:
        _unified_search = UnifiedSearch(default_adapters())
    return _unified_search
