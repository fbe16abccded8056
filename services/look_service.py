# services/look_service.py
"""
Submission and polling facade for look jobs.

submit() never blocks on search: it checks the result cache, creates the job
and hands the worker to the background loop. poll() returns the polling
payload and restarts stalled jobs.
"""
import logging
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

import config
from contracts.errors import FatalPlanError, JobNotFound
from contracts.models import Job, StylePlan, SubmitResponse
from infra.background_loop import BackgroundLoop
from infra.logging import log_event
from services.job_store import JobStore, fingerprint, get_job_store
from services.look_worker import LookWorker
from services.unified_search import get_unified_search

logger = logging.getLogger(__name__)


def parse_plan(plan: Union[StylePlan, Dict[str, Any], None]) -> StylePlan:
    """
    Coerce a request body into a StylePlan.

    Raises:
        FatalPlanError: missing or structurally invalid plan
    """
    if isinstance(plan, StylePlan):
        return plan
    if not isinstance(plan, dict):
        raise FatalPlanError("Missing plan.")
    try:
        return StylePlan.model_validate(plan)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise FatalPlanError(f"Invalid plan: {fields}") from e


class LookService:
    """
    Entry point used by the HTTP layer and scripts.

    Concurrent submissions of the same plan that both miss the cache may
    each start a job; the last one to finish wins the cache entry.
    """

    def __init__(
        self,
        store: Optional[JobStore] = None,
        worker: Optional[LookWorker] = None,
        loop: Optional[BackgroundLoop] = None,
        stall_seconds: Optional[float] = None
    ):
        self.store = store or get_job_store()
        self.worker = worker or LookWorker(self.store, get_unified_search())
        self.loop = loop or BackgroundLoop()
        self.stall_seconds = stall_seconds if stall_seconds is not None else config.STALL_SECONDS

    def _schedule(self, job_id: str):
        return self.loop.submit(self.worker.run(job_id))

    def submit(self, plan: Union[StylePlan, Dict[str, Any]]) -> SubmitResponse:
        """
        Submit a plan.

        Returns:
            SubmitResponse with the job id; `cached` is True when an identical
            plan finished within the cache TTL (the job id is then the cached
            look's id)

        Raises:
            FatalPlanError: invalid plan, no job created
        """
        plan = parse_plan(plan)
        fp = fingerprint(plan)

        cached = self.store.get_cached(fp)
        if cached is not None:
            if self.store.get_job(cached.look_id) is None:
                self.store.create_job(plan.model_copy(update={"look_id": cached.look_id}))
                self.store.update_job(cached.look_id, status=cached.status, result=cached)
            log_event("cache_hit", job_id=cached.look_id, requested=plan.look_id)
            return SubmitResponse(job_id=cached.look_id, cached=True)

        job = self.store.create_job(plan)
        log_event("job_submitted", job_id=job.id, slots=list(plan.required_slots), budget=plan.budget_total)
        self._schedule(job.id)
        return SubmitResponse(job_id=job.id, cached=False)

    def poll(self, job_id: str) -> Dict[str, Any]:
        """
        Polling payload for a job. A running job with no update for more than
        the stall window is marked partial and, when no worker is in flight
        for it, restarted from its stored pool.

        Raises:
            JobNotFound: unknown job id
        """
        job = self.store.get_job(job_id)
        if job is None:
            raise JobNotFound(job_id)

        if job.status == "running" and self.store.now() - job.updated_at > self.stall_seconds:
            job = self._handle_stall(job)

        return job.to_payload()

    def _handle_stall(self, job: Job) -> Job:
        updated = self.store.update_job_if(job.id, "running", status="partial")
        if updated is None:
            # Worker finished (or the job was evicted) since the snapshot was taken
            return self.store.get_job(job.id) or job

        self.store.append_log(job.id, "stalled; marking partial")
        log_event("job_stalled", job_id=job.id)

        if not self.worker.is_in_flight(job.id):
            self.store.append_log(job.id, "restarting worker from stored progress")
            log_event("job_restarted", job_id=job.id, progress=dict(job.progress))
            self._schedule(job.id)
        return self.store.get_job(job.id) or updated


# Global singleton instance
_look_service: Optional[LookService] = None


def get_look_service() -> LookService:
    """Get or create global look service instance"""
    global _look_service
    if _look_service is None:
        _look_service = LookService()
    return _look_service
