"""Execution engine: jobs, retention and the coordinator."""

from spine_wps.engine.coordinator import ExecutionCoordinator, negotiate_mode
from spine_wps.engine.jobs import (
    JOB_VALID_TRANSITIONS,
    ExecutionHandle,
    FailureDetail,
    JobSnapshot,
    JobStatus,
    validate_job_transition,
)
from spine_wps.engine.responses import DocumentResponse, RawResponse, RenderedOutput
from spine_wps.engine.store import JobStore

__all__ = [
    "ExecutionCoordinator",
    "negotiate_mode",
    "JOB_VALID_TRANSITIONS",
    "ExecutionHandle",
    "FailureDetail",
    "JobSnapshot",
    "JobStatus",
    "validate_job_transition",
    "DocumentResponse",
    "RawResponse",
    "RenderedOutput",
    "JobStore",
]
