# contracts/errors.py
"""
Request-level errors for the look pipeline.

Only FatalPlanError and JobNotFound ever reach a caller. Provider failures are
recorded as AdapterFailure entries and candidate rejections as reason codes.
"""


class LookError(Exception):
    """Base class for look pipeline errors."""


class FatalPlanError(LookError):
    """The submitted plan is structurally invalid; no job is created."""


class JobNotFound(LookError):
    """Polling an unknown job id."""

    def __init__(self, job_id: str):
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class FetchError(Exception):
    """A text/HTML fetch failed (timeout, non-200, transport error)."""
