"""
Provider adapter contract.

Every product source (vendor scraping, web search, seed catalog) implements
`_search`. Callers always go through `search`, which never raises: failures
come back as an AdapterResult with an error message and no candidates.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from contracts.models import Candidate

logger = logging.getLogger(__name__)


@dataclass
class SearchOptions:
    """Per-call search options passed to every adapter"""
    limit: int = 8
    region: Optional[str] = None
    currency: Optional[str] = None
    slot: Optional[str] = None
    category: Optional[str] = None
    max_price: Optional[float] = None
    tags: List[str] = field(default_factory=list)
    retailers: List[str] = field(default_factory=list)
    # In-flight bound for outbound calls; set by UnifiedSearch for adapters
    # that limit their own calls
    limiter: Optional[asyncio.Semaphore] = None


@contextlib.asynccontextmanager
async def limited(limiter: Optional[asyncio.Semaphore]):
    """Hold one in-flight slot for the duration of an outbound call (no-op without a limiter)."""
    if limiter is None:
        yield
        return
    async with limiter:
        yield


@dataclass
class AdapterResult:
    """Candidates from one adapter call, or the error that stopped it"""
    adapter: str
    candidates: List[Candidate] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ProviderAdapter:
    """
    Base class for product sources.

    Subclasses set `key` and implement `_search`. Adapters are stateless
    between calls apart from configuration.

    Adapters that make several outbound calls per search set
    `limits_own_calls` and wrap each call in `limited(options.limiter)`;
    the others are bounded as a whole by the caller.
    """

    key = "unknown"
    limits_own_calls = False

    async def _search(self, query: str, options: SearchOptions) -> List[Candidate]:
        raise NotImplementedError

    async def search(self, query: str, options: Optional[SearchOptions] = None) -> AdapterResult:
        """
        Search for candidates matching a query.

        Args:
            query: Free-text product query
            options: Limit, region and slot hints

        Returns:
            AdapterResult; never raises
        """
        options = options or SearchOptions()
        try:
            candidates = await self._search(query, options)
        except Exception as e:
            logger.warning(f"[{self.key}] Search failed for '{query}': {e}")
            return AdapterResult(adapter=self.key, error=str(e) or type(e).__name__)

        for candidate in candidates:
            if candidate.source == "unknown":
                candidate.source = self.key
        return AdapterResult(adapter=self.key, candidates=candidates[:options.limit])
