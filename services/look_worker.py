# services/look_worker.py
"""
Look Worker - drives one job from `queued` to a terminal state.

Flow:
1. Resolve one search query per required slot (fail the job if none resolve)
2. Search every unsearched slot concurrently through Unified Search
3. Validate candidates, pool them by resolved slot, record progress/errors
4. Assemble over the pooled products (seed fallback for empty slots)
5. Write the LookResult into the job and the fingerprint cache

A restarted worker resumes from the job's pool: slots that already recorded
progress are not searched again. Only one worker runs per job at a time.
"""
import asyncio
import logging
import threading
from collections import defaultdict
from typing import Awaitable, Callable, Dict, List, Optional, Set

import config
from contracts.models import Job, LookResult, StrictProduct, StylePlan
from infra.logging import log_error, log_event
from integrations.base import SearchOptions
from integrations.seed_catalog import SeedCatalogAdapter
from services.job_store import JobStore, fingerprint
from services.outfit_assembler import assemble, budget_ceiling, price_band, render_outfit_text, slot_keywords
from services.product_validator import validate_many
from services.stylist_copy import write_message
from services.unified_search import UnifiedSearch

logger = logging.getLogger(__name__)

MessageWriter = Callable[[StylePlan, List[StrictProduct], List[str], Optional[float]], Awaitable[str]]


def is_terminal(job: Job) -> bool:
    """complete/failed are final; partial is final only once it carries a result."""
    return job.status in ("complete", "failed") or (job.status == "partial" and job.result is not None)


def resolve_queries(plan: StylePlan) -> Dict[str, str]:
    """One query per required slot that has one, in plan slot order."""
    queries = {}
    for slot in plan.required_slots:
        query = plan.query_for(slot)
        if query:
            queries[slot] = query
    return queries


def search_options(plan: StylePlan, slot: str) -> SearchOptions:
    slot_plan = plan.slot_plan(slot)
    _, high = price_band(plan, slot)
    return SearchOptions(
        limit=config.SEARCH_RESULT_LIMIT,
        region=plan.region,
        currency=plan.currency,
        slot=slot,
        category=slot_plan.category if slot_plan else None,
        max_price=high or budget_ceiling(plan),
        tags=slot_keywords(plan, slot),
        retailers=list(plan.retailer_priority),
    )


class LookWorker:
    """
    Orchestrates search, validation and assembly for look jobs.
    """

    def __init__(
        self,
        store: JobStore,
        search: UnifiedSearch,
        seed: Optional[SeedCatalogAdapter] = None,
        providers: Optional[List[str]] = None,
        message_writer: Optional[MessageWriter] = None
    ):
        self.store = store
        self.search = search
        self.seed = seed if seed is not None else SeedCatalogAdapter()
        self.providers = providers or config.DEFAULT_PROVIDERS
        self.message_writer = message_writer or write_message

        self._inflight: Set[str] = set()
        self._inflight_lock = threading.Lock()

    # ------------------------------------------------------------------
    # In-flight registry
    # ------------------------------------------------------------------

    def is_in_flight(self, job_id: str) -> bool:
        with self._inflight_lock:
            return job_id in self._inflight

    def _claim(self, job_id: str) -> bool:
        with self._inflight_lock:
            if job_id in self._inflight:
                return False
            self._inflight.add(job_id)
            return True

    def _release(self, job_id: str) -> None:
        with self._inflight_lock:
            self._inflight.discard(job_id)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self, job_id: str) -> None:
        """
        Run (or resume) a job. Never raises: unexpected errors mark the job
        failed. A second call while the job is in flight is a no-op.
        """
        if not self._claim(job_id):
            logger.info(f"[Look Worker] {job_id} already in flight, not starting another worker")
            return

        try:
            await self._run(job_id)
        except Exception as e:
            logger.error(f"[Look Worker] {job_id} crashed: {e}", exc_info=True)
            log_error(str(e), job_id=job_id, stage="worker")
            self.store.append_log(job_id, f"worker error: {e}")
            self.store.update_job(job_id, status="failed")
        finally:
            self._release(job_id)

    async def _run(self, job_id: str) -> None:
        job = self.store.get_job(job_id)
        if job is None:
            logger.warning(f"[Look Worker] {job_id} not found")
            return
        if is_terminal(job):
            logger.info(f"[Look Worker] {job_id} already {job.status}, nothing to do")
            return

        plan = job.plan
        resumed = bool(job.progress)
        self.store.update_job(job_id, status="running")
        log_event("job_started", job_id=job_id, resumed=resumed, slots=list(plan.required_slots))

        queries = resolve_queries(plan)
        if not queries:
            self.store.append_log(job_id, "no search query resolvable for any required slot")
            self.store.update_job(job_id, status="failed")
            log_event("job_failed", job_id=job_id, reason="no_queries")
            return

        for slot in plan.required_slots:
            if slot not in queries:
                self.store.append_log(job_id, f"{slot}: no query, relying on fallback")

        providers = list(plan.providers or self.providers)
        semaphore = self.search.new_semaphore()
        # Adapters that already failed in an earlier run stay skipped
        failed_sources = {e.retailer for e in job.errors}

        pending = [slot for slot in queries if slot not in job.progress]
        if resumed:
            self.store.append_log(job_id, f"resuming; searching {pending or 'no'} slots")

        await asyncio.gather(*(
            self._search_slot(job_id, plan, slot, queries[slot], providers, semaphore, failed_sources)
            for slot in pending
        ))

        await self._finish(job_id, plan)

    async def _search_slot(
        self,
        job_id: str,
        plan: StylePlan,
        slot: str,
        query: str,
        providers: List[str],
        semaphore: asyncio.Semaphore,
        failed_sources: Set[str]
    ) -> None:
        result = await self.search.search_slot(
            slot, query, search_options(plan, slot), providers,
            semaphore=semaphore, skip=failed_sources
        )

        for failure in result.failures:
            if failure.retailer in failed_sources:
                self.store.append_log(job_id, f"{slot}: {failure.retailer} failed again: {failure.message}")
                continue
            failed_sources.add(failure.retailer)
            self.store.append_error(job_id, failure.retailer, failure.slot, failure.message)
            self.store.append_log(job_id, f"{slot}: {failure.retailer} failed: {failure.message}")

        report = validate_many(result.candidates, fallback_slot=slot)

        by_slot: Dict[str, List[StrictProduct]] = defaultdict(list)
        for product in report.products:
            by_slot[product.slot].append(product)
        for product_slot, products in by_slot.items():
            self.store.add_to_pool(job_id, product_slot, products)

        # Progress is the pool size per slot. Products that resolved into another
        # slot also refresh that slot, but only once it has been searched, so
        # resume still searches slots without an entry.
        job = self.store.get_job(job_id)
        if job is not None:
            for touched in sorted({slot} | set(by_slot)):
                if touched == slot or touched in job.progress:
                    self.store.set_progress(job_id, touched, len(job.pool.get(touched, [])))

        line = f"{slot}: {len(result.candidates)} candidates, {len(report.products)} valid"
        if report.rejected:
            line += ", rejected " + ", ".join(f"{k}={v}" for k, v in sorted(report.rejected.items()))
        self.store.append_log(job_id, line)

    async def _finish(self, job_id: str, plan: StylePlan) -> None:
        job = self.store.get_job(job_id)
        if job is None:
            logger.warning(f"[Look Worker] {job_id} evicted before assembly")
            return

        outfit = assemble(plan, job.pool, self.seed)
        status = "partial" if outfit.missing_slots else "complete"
        total = outfit.total_price
        message = await self.message_writer(plan, outfit.primaries, outfit.missing_slots, total)

        result = LookResult(
            look_id=plan.look_id,
            status=status,
            message=message,
            slots=outfit.primaries,
            alternates=outfit.alternates,
            total_price=total,
            currency=plan.currency,
            missing_slots=outfit.missing_slots,
            note=outfit.note,
            outfit_text=render_outfit_text(outfit.picks),
        )

        if outfit.fallback_slots:
            self.store.append_log(job_id, f"fallback catalog used for: {', '.join(outfit.fallback_slots)}")
        self.store.update_job(job_id, status=status, result=result)
        self.store.set_cached(fingerprint(plan), result)

        log_event(
            "job_finished",
            job_id=job_id,
            status=status,
            items=len(result.slots),
            missing=result.missing_slots,
            total_price=total,
        )
