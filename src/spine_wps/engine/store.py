"""In-memory job store with time-based retention.

Terminal jobs stay queryable for ``retention_seconds`` after they finish
and are evicted lazily, whenever the store is touched.  Jobs that have
not reached a terminal state are never evicted.

Tags:
    spine-wps, engine, jobs, retention

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from spine_wps.core.logging import get_logger
from spine_wps.engine.jobs import Job

log = get_logger(__name__)


class JobStore:
    def __init__(self, retention_seconds: float = 3600.0, clock: Callable[[], float] = time.monotonic):
        self.retention_seconds = retention_seconds
        self._clock = clock
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def add(self, job: Job) -> None:
        """Track ``job``; its finish time is taken from this store's clock."""
        job.clock = self._clock
        with self._lock:
            self._evict_locked()
            self._jobs[job.job_id] = job

    def get(self, job_id: str) -> Job | None:
        with self._lock:
            self._evict_locked()
            return self._jobs.get(job_id)

    def jobs(self) -> list[Job]:
        with self._lock:
            self._evict_locked()
            return list(self._jobs.values())

    def evict_expired(self) -> list[str]:
        """Drop terminal jobs past their retention window; returns their ids."""
        with self._lock:
            return self._evict_locked()

    def _evict_locked(self) -> list[str]:
        now = self._clock()
        expired = [
            job_id for job_id, job in self._jobs.items()
            if job.is_expired(self.retention_seconds, now)
        ]
        for job_id in expired:
            del self._jobs[job_id]
        if expired:
            log.debug("jobs.evicted", count=len(expired))
        return expired

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs


__all__ = ["JobStore"]
