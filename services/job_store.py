# services/job_store.py
"""
In-memory job registry and look result cache.

Jobs are mutated only through this store. Each map has its own lock, so the
store is safe to use from asyncio tasks on the worker loop and from Flask
request threads at the same time. Readers always get deep copies.
"""
import hashlib
import json
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

import config
from contracts.models import AdapterFailure, Job, LookResult, StrictProduct, StylePlan


def fingerprint(plan: StylePlan) -> str:
    """
    Cache key for a plan: SHA-256 of its resolved slot queries, budget,
    currency and region, serialized in order. The look id is not part of it.
    """
    payload = {
        "queries": [[slot, plan.query_for(slot)] for slot in plan.required_slots],
        "budget": plan.budget_total,
        "currency": plan.currency,
        "region": (plan.region or "").upper() or None,
    }
    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class JobStore:
    """
    Job registry plus fingerprint -> LookResult cache with TTL.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        log_limit: Optional[int] = None,
        ttl: Optional[float] = None
    ):
        self._clock = clock
        self._log_limit = log_limit or config.JOB_LOG_LIMIT
        self._ttl = ttl if ttl is not None else config.LOOK_CACHE_TTL

        self._jobs: Dict[str, Job] = {}
        self._jobs_lock = threading.Lock()

        self._cache: Dict[str, Tuple[LookResult, float]] = {}
        self._cache_lock = threading.Lock()

    def now(self) -> float:
        return self._clock()

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def create_job(self, plan: StylePlan) -> Job:
        """Register a fresh queued job for a plan, replacing any job with the same id."""
        now = self._clock()
        job = Job(id=plan.look_id, created_at=now, updated_at=now, status="queued", plan=plan)
        with self._jobs_lock:
            self._jobs[job.id] = job
            return job.model_copy(deep=True)

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._jobs_lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    def update_job(self, job_id: str, **fields) -> Optional[Job]:
        """
        Merge fields into a job and refresh `updated_at`.
        Unknown job ids are ignored (returns None).
        """
        with self._jobs_lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            for name, value in fields.items():
                setattr(job, name, value)
            job.updated_at = self._clock()
            return job.model_copy(deep=True)

    def update_job_if(self, job_id: str, expected_status: str, **fields) -> Optional[Job]:
        """
        Like update_job, but only while the job is still in `expected_status`.
        Returns None when the job is gone or its status moved on.
        """
        with self._jobs_lock:
            job = self._jobs.get(job_id)
            if job is None or job.status != expected_status:
                return None
            for name, value in fields.items():
                setattr(job, name, value)
            job.updated_at = self._clock()
            return job.model_copy(deep=True)

    def append_log(self, job_id: str, line: str) -> None:
        with self._jobs_lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            job.logs.append(line)
            del job.logs[:-self._log_limit]
            job.updated_at = self._clock()

    def append_error(self, job_id: str, retailer: str, slot: str, message: str) -> None:
        with self._jobs_lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            job.errors.append(AdapterFailure(retailer=retailer, slot=slot, message=message))
            del job.errors[:-self._log_limit]
            job.updated_at = self._clock()

    def set_progress(self, job_id: str, slot: str, count: int) -> None:
        with self._jobs_lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            job.progress[slot] = count
            job.updated_at = self._clock()

    def add_to_pool(self, job_id: str, slot: str, products: List[StrictProduct]) -> None:
        """Append validated products to a slot's pool, skipping ids already pooled."""
        with self._jobs_lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            bucket = job.pool.setdefault(slot, [])
            seen = {p.id for p in bucket}
            for product in products:
                if product.id not in seen:
                    seen.add(product.id)
                    bucket.append(product)
            job.updated_at = self._clock()

    def evict_job(self, job_id: str) -> bool:
        with self._jobs_lock:
            return self._jobs.pop(job_id, None) is not None

    # ------------------------------------------------------------------
    # Result cache
    # ------------------------------------------------------------------

    def get_cached(self, fp: str) -> Optional[LookResult]:
        """Cached result for a fingerprint; expired entries are purged here."""
        with self._cache_lock:
            entry = self._cache.get(fp)
            if entry is None:
                return None
            result, expires_at = entry
            if self._clock() >= expires_at:
                del self._cache[fp]
                return None
            return result

    def set_cached(self, fp: str, result: LookResult, ttl: Optional[float] = None) -> None:
        ttl = self._ttl if ttl is None else ttl
        with self._cache_lock:
            self._cache[fp] = (result, self._clock() + ttl)


# Global singleton instance
_job_store: Optional[JobStore] = None


def get_job_store() -> JobStore:
    """Get or create global job store instance"""
    global _job_store
    if _job_store is None:
        _job_store = JobStore()
    return _job_store
