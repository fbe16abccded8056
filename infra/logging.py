"""
Structured JSON event logging for look jobs.
"""
import logging
import json
import time

logging.basicConfig(level=logging.INFO, format="%(message)s")

_events = logging.getLogger("lookbook.events")


def log_event(event: str, **kwargs):
    """
    Log a structured lifecycle event (job submitted, cache hit, finished...).
    `job_id` is carried as a top-level field when given.
    """
    rec = {"event": event, "ts": round(time.time(), 3), "job_id": kwargs.pop("job_id", None), **kwargs}
    _events.info(json.dumps(rec, default=str))


def log_error(error: str, **kwargs):
    """
    Log an error event.
    """
    rec = {"event": "error", "error": error, "ts": round(time.time(), 3), "job_id": kwargs.pop("job_id", None), **kwargs}
    _events.error(json.dumps(rec, default=str))
