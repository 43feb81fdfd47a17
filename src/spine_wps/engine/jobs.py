"""Jobs - execution state owned by the coordinator.

Manifesto:
    A job has exactly one writer: the worker running it.  Status queries
    and cancellation requests from other threads read a snapshot or post
    a signal, never touch the state directly.  Every transition is
    checked against ``JOB_VALID_TRANSITIONS`` so an illegal move fails
    loudly instead of corrupting the record.

Tags:
    spine-wps, engine, jobs, state-machine

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from spine_wps.core.errors import InvalidTransitionError, WpsError
from spine_wps.data import ExecuteRequest, ExecutionMode, ResponseMode

if TYPE_CHECKING:
    from spine_wps.binding import RenderedOutput
    from spine_wps.engine.responses import Response


class JobStatus(str, Enum):
    """Job status - the execution state machine.

    Valid transition graph::

        ACCEPTED  → RUNNING | CANCELLED
        RUNNING   → SUCCEEDED | FAILED | CANCELLED
        SUCCEEDED → (terminal)
        FAILED    → (terminal)
        CANCELLED → (terminal)
    """

    ACCEPTED = "accepted"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.CANCELLED})

JOB_VALID_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.ACCEPTED: frozenset({
        JobStatus.RUNNING,
        JobStatus.CANCELLED,
    }),
    JobStatus.RUNNING: frozenset({
        JobStatus.SUCCEEDED,
        JobStatus.FAILED,
        JobStatus.CANCELLED,
    }),
    JobStatus.SUCCEEDED: frozenset(),  # terminal
    JobStatus.FAILED: frozenset(),  # terminal
    JobStatus.CANCELLED: frozenset(),  # terminal
}


def validate_job_transition(current: JobStatus, target: JobStatus) -> None:
    """Raise :class:`InvalidTransitionError` if *current → target* is illegal.

    Example:
        >>> validate_job_transition(JobStatus.RUNNING, JobStatus.SUCCEEDED)
        >>> # OK, no exception
        >>> validate_job_transition(JobStatus.SUCCEEDED, JobStatus.RUNNING)
        InvalidTransitionError: Invalid JobStatus transition: succeeded → running
    """
    allowed = JOB_VALID_TRANSITIONS.get(current, frozenset())
    if target not in allowed:
        raise InvalidTransitionError(current.value, target.value, "JobStatus")


@dataclass(frozen=True)
class FailureDetail:
    """Why a job failed: a stable kind, a message and structured details."""

    kind: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_exception(cls, error: Exception) -> FailureDetail:
        if isinstance(error, WpsError):
            return cls(kind=error.code, message=error.message, details=error.to_dict())
        return cls(kind=type(error).__name__, message=str(error) or type(error).__name__)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "details": self.details}


@dataclass(frozen=True)
class JobSnapshot:
    """A consistent, read-only copy of a job's state."""

    job_id: str
    process_id: str
    status: JobStatus
    execution_mode: ExecutionMode
    response_mode: ResponseMode
    created_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None
    progress: int = 0
    status_message: str | None = None
    partial_outputs: tuple[str, ...] = ()
    response: Response | None = None
    failure: FailureDetail | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "job_id": self.job_id,
            "process_id": self.process_id,
            "status": self.status.value,
            "execution_mode": self.execution_mode.value,
            "response_mode": self.response_mode.value,
            "progress": self.progress,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
        if self.status_message:
            result["status_message"] = self.status_message
        if self.partial_outputs and not self.is_terminal:
            result["partial_outputs"] = list(self.partial_outputs)
        if self.failure is not None:
            result["failure"] = self.failure.to_dict()
        if self.response is not None:
            result["response"] = self.response.to_dict()
        return result


@dataclass(frozen=True)
class ExecutionHandle:
    """Returned by ``submit``; identifies the job for polling and cancellation."""

    job_id: str
    process_id: str
    execution_mode: ExecutionMode
    response_mode: ResponseMode
    snapshot: JobSnapshot

    @property
    def status(self) -> JobStatus:
        """Status at the time ``submit`` returned."""
        return self.snapshot.status


class Job:
    """
    Mutable job record.

    Mutated only by the worker running it (under ``lock``); other threads
    use ``snapshot()`` and ``request_cancel()``.
    """

    def __init__(
        self,
        job_id: str,
        request: ExecuteRequest,
        execution_mode: ExecutionMode,
    ):
        self.job_id = job_id
        self.request = request
        self.process_id = request.process_id
        self.execution_mode = execution_mode
        self.response_mode = request.response_mode
        self.status = JobStatus.ACCEPTED
        self.created_at = datetime.now(UTC)
        self.started_at: datetime | None = None
        self.finished_at: datetime | None = None
        self.finished_monotonic: float | None = None
        # JobStore.add swaps in the store's clock
        self.clock: Callable[[], float] = time.monotonic
        self.progress = 0
        self.status_message: str | None = None
        self.partial_outputs: dict[str, Any] = {}
        self.response: Response | None = None
        self.failure: FailureDetail | None = None
        self.references: dict[str, RenderedOutput] = {}

        self.lock = threading.Lock()
        self.cancel_event = threading.Event()
        self.done = threading.Event()

    # ── Cross-thread API ─────────────────────────────────────────────────

    def request_cancel(self) -> None:
        self.cancel_event.set()

    @property
    def cancel_requested(self) -> bool:
        return self.cancel_event.is_set()

    def snapshot(self) -> JobSnapshot:
        with self.lock:
            return JobSnapshot(
                job_id=self.job_id,
                process_id=self.process_id,
                status=self.status,
                execution_mode=self.execution_mode,
                response_mode=self.response_mode,
                created_at=self.created_at,
                started_at=self.started_at,
                finished_at=self.finished_at,
                progress=self.progress,
                status_message=self.status_message,
                partial_outputs=tuple(self.partial_outputs),
                response=self.response,
                failure=self.failure,
            )

    # ── Worker-only API ──────────────────────────────────────────────────

    def _transition_to(self, target: JobStatus) -> None:
        validate_job_transition(self.status, target)
        self.status = target

    def mark_running(self) -> None:
        with self.lock:
            self._transition_to(JobStatus.RUNNING)
            self.started_at = datetime.now(UTC)

    def record_progress(self, percent: int, message: str | None = None) -> None:
        with self.lock:
            self.progress = percent
            if message is not None:
                self.status_message = message

    def record_output(self, identifier: str, value: Any) -> None:
        with self.lock:
            self.partial_outputs[identifier] = value

    def mark_succeeded(self, response: Response, references: dict[str, RenderedOutput] | None = None) -> None:
        with self.lock:
            self._transition_to(JobStatus.SUCCEEDED)
            self.response = response
            self.references = dict(references or {})
            self.progress = 100
            self._finish()

    def mark_failed(self, failure: FailureDetail) -> None:
        with self.lock:
            self._transition_to(JobStatus.FAILED)
            self.failure = failure
            self._finish()

    def mark_cancelled(self) -> None:
        with self.lock:
            self._transition_to(JobStatus.CANCELLED)
            self.status_message = "cancelled"
            self._finish()

    def _finish(self) -> None:
        self.finished_at = datetime.now(UTC)
        self.finished_monotonic = self.clock()
        self.partial_outputs.clear()
        self.done.set()

    def is_expired(self, retention_seconds: float, now: float) -> bool:
        with self.lock:
            if self.finished_monotonic is None:
                return False
            return now - self.finished_monotonic >= retention_seconds


__all__ = [
    "JobStatus",
    "TERMINAL_STATUSES",
    "JOB_VALID_TRANSITIONS",
    "validate_job_transition",
    "FailureDetail",
    "JobSnapshot",
    "ExecutionHandle",
    "Job",
]
