"""
Execution coordinator - submit, poll, cancel, fetch.

Manifesto:
    Nothing runs until the whole request has been checked: the process
    exists, the inputs bind, the requested outputs exist and can be
    encoded, and the execution mode is offered.  After that, every job
    ends in exactly one terminal state and a failing algorithm only ever
    fails its own job.

Architecture:
    ::

        submit(request)
          ├── registry.get_entry       UnknownProcessError ──┐
          ├── bind_inputs              ValidationError     ──┤
          ├── check_output_definitions UnknownOutput / RAW ──┼─► Err(DispatchError)
          ├── negotiate_mode           ModeNotSupported    ──┘
          │
          ├── Job(ACCEPTED) ─► JobStore
          ├── SYNC:  run on the calling thread ─► Ok(handle, terminal snapshot)
          └── ASYNC: ThreadPoolExecutor.submit ─► Ok(handle, ACCEPTED snapshot)

        worker (_run)
          ACCEPTED ─► (cancel posted?) ─► CANCELLED
                   └► RUNNING ─► algorithm.execute(context)
                                  ├── JobCancelled  ─► CANCELLED
                                  ├── exception     ─► FAILED (FailureDetail)
                                  └── outputs ─► render_outputs ─► SUCCEEDED | FAILED

        poll_status / wait / get_result / get_output   (snapshots only)
        cancel                                         (posts a signal only)

Examples:
    >>> with ExecutionCoordinator(registry) as coordinator:
    ...     request = ExecuteRequest.builder("echo").literal("msg", "hi").sync().build()
    ...     handle = coordinator.submit(request).unwrap()
    ...     handle.snapshot.response.value("msg")
    'hi'

Guardrails:
    ❌ DON'T: Mutate a job from outside its worker
    ✅ DO: Read ``JobSnapshot`` values and post cancellation signals

    ❌ DON'T: Expect cancel() to stop an algorithm that never checkpoints
    ✅ DO: Call ``context.checkpoint()`` inside long-running algorithms

Tags:
    spine-wps, engine, coordinator, execution, thread-pool, result-pattern

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from contextlib import suppress
from dataclasses import dataclass

from spine_wps.algorithm.base import Algorithm, ExecutionContext, JobCancelled
from spine_wps.algorithm.registry import AlgorithmRegistry
from spine_wps.binding import RenderedOutput, bind_inputs, check_output_definitions, render_outputs
from spine_wps.core.errors import (
    AlreadyTerminalError,
    DispatchError,
    ExecutionFailure,
    InvalidTransitionError,
    JobNotFinishedError,
    ModeNotSupportedError,
    UnknownJobError,
    UnknownOutputError,
    UnknownProcessError,
    WpsError,
)
from spine_wps.core.logging import LogContext, get_logger
from spine_wps.core.result import Err, Ok, Result, from_optional
from spine_wps.core.settings import EngineSettings, get_settings
from spine_wps.data import (
    ExecuteRequest,
    ExecutionMode,
    OutputDefinition,
    ProcessInputs,
    ResponseMode,
    TransmissionMode,
)
from spine_wps.description.model import ProcessDescription
from spine_wps.description.units import DEFAULT_UNITS, UnitRegistry
from spine_wps.engine.jobs import ExecutionHandle, FailureDetail, Job, JobSnapshot, JobStatus
from spine_wps.engine.responses import Response, build_response
from spine_wps.engine.store import JobStore

log = get_logger(__name__)

JobRef = ExecutionHandle | str


def negotiate_mode(description: ProcessDescription, requested: ExecutionMode) -> Result[ExecutionMode]:
    """Resolve the effective execution mode.

    AUTO runs asynchronously whenever the process offers it.
    """
    supported = [
        mode for mode, offered in (
            (ExecutionMode.SYNC, description.sync_execute),
            (ExecutionMode.ASYNC, description.async_execute),
        ) if offered
    ]
    if requested is ExecutionMode.AUTO:
        return Ok(ExecutionMode.ASYNC if description.async_execute else ExecutionMode.SYNC)
    if requested in supported:
        return Ok(requested)
    return Err(ModeNotSupportedError(description.identifier, requested.value, [m.value for m in supported]))


@dataclass(frozen=True)
class _Dispatch:
    """Everything a worker needs, resolved at submit time."""

    description: ProcessDescription
    algorithm: Algorithm
    inputs: ProcessInputs
    outputs: tuple[OutputDefinition, ...]
    explicit_outputs: bool


class ExecutionCoordinator:
    """
    Runs validated requests and owns the resulting jobs.

    Constructor arguments left as ``None`` fall back to ``get_settings()``.
    """

    def __init__(
        self,
        registry: AlgorithmRegistry,
        *,
        max_workers: int | None = None,
        job_retention_seconds: float | None = None,
        reference_base_url: str | None = None,
        spacing_epsilon: float | None = None,
        units: UnitRegistry = DEFAULT_UNITS,
        settings: EngineSettings | None = None,
    ):
        settings = settings or get_settings()
        self.registry = registry
        self.max_workers = settings.max_workers if max_workers is None else max_workers
        base_url = settings.reference_base_url if reference_base_url is None else reference_base_url
        self.reference_base_url = base_url.rstrip("/")
        self.spacing_epsilon = settings.spacing_epsilon if spacing_epsilon is None else spacing_epsilon
        self.units = units
        retention = settings.job_retention_seconds if job_retention_seconds is None else job_retention_seconds
        self._store = JobStore(retention_seconds=retention)
        self._pool = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="wps-job")
        self._closed = False

    # ── Submission ───────────────────────────────────────────────────────

    def submit(self, request: ExecuteRequest) -> Result[ExecutionHandle]:
        """
        Validate ``request`` and start executing it.

        Synchronous jobs have finished when this returns (the handle's
        snapshot is terminal, possibly FAILED); asynchronous jobs are
        ACCEPTED and run on the worker pool.  A job submitted while the pool
        is shutting down is returned CANCELLED without running.

        Returns:
            ``Ok(ExecutionHandle)`` or ``Err(DispatchError)`` wrapping the
            precise cause.  No job exists after an ``Err``.
        """
        if self._closed:
            return Err(DispatchError("Coordinator is shut down"))

        match self._prepare(request):
            case Err(error):
                log.info(
                    "execute.rejected",
                    process_id=request.process_id,
                    reason=getattr(error, "code", type(error).__name__),
                    message=str(error),
                )
                return Err(DispatchError.wrap(error))
            case Ok((dispatch, mode)):
                pass

        job = Job(uuid.uuid4().hex, request, mode)
        self._store.add(job)
        log.info("job.accepted", job_id=job.job_id, process_id=job.process_id, mode=mode.value)

        if mode is ExecutionMode.SYNC:
            self._run(job, dispatch)
        else:
            try:
                self._pool.submit(self._run, job, dispatch)
            except RuntimeError as e:
                # pool shut down after the _closed check; the job never runs
                job.mark_cancelled()
                log.info("job.cancelled", job_id=job.job_id, stage="enqueue", error=str(e))

        return Ok(ExecutionHandle(
            job_id=job.job_id,
            process_id=job.process_id,
            execution_mode=mode,
            response_mode=job.response_mode,
            snapshot=job.snapshot(),
        ))

    def _prepare(self, request: ExecuteRequest) -> Result[tuple[_Dispatch, ExecutionMode]]:
        entry = self.registry.get_entry(request.process_id)
        if entry is None:
            return Err(UnknownProcessError(request.process_id))
        description = entry.description

        bound = bind_inputs(
            description,
            request.inputs,
            parser_factory=self.registry.parser_factory,
            epsilon=self.spacing_epsilon,
            units=self.units,
        )
        if bound.is_err():
            return Err(bound.error)

        definitions = check_output_definitions(
            description,
            request.outputs,
            request.response_mode,
            generator_factory=self.registry.generator_factory,
        )
        if definitions.is_err():
            return Err(definitions.error)

        return negotiate_mode(description, request.execution_mode).map(
            lambda mode: (
                _Dispatch(
                    description=description,
                    algorithm=entry.algorithm,
                    inputs=bound.unwrap(),
                    outputs=definitions.unwrap(),
                    explicit_outputs=bool(request.outputs),
                ),
                mode,
            )
        )

    # ── Worker ───────────────────────────────────────────────────────────

    def _run(self, job: Job, dispatch: _Dispatch) -> None:
        with LogContext(job_id=job.job_id, process_id=job.process_id):
            try:
                self._execute(job, dispatch)
            except Exception as e:
                # every job must end in a terminal state
                log.exception("job.internal_error", error=str(e))
                with suppress(InvalidTransitionError):
                    job.mark_failed(FailureDetail.from_exception(e))

    def _execute(self, job: Job, dispatch: _Dispatch) -> None:
        if job.cancel_requested:
            job.mark_cancelled()
            log.info("job.cancelled", stage="accepted")
            return

        job.mark_running()
        started = time.perf_counter()
        log.info("job.started")

        context = ExecutionContext(
            job_id=job.job_id,
            process_id=job.process_id,
            inputs=dispatch.inputs,
            cancel_event=job.cancel_event,
            on_progress=job.record_progress,
            on_output=job.record_output,
        )
        try:
            produced = dispatch.algorithm.execute(context)
        except JobCancelled:
            job.mark_cancelled()
            log.info("job.cancelled", stage="running")
            return
        except Exception as e:
            failure = FailureDetail.from_exception(e)
            job.mark_failed(failure)
            log.warning("job.failed", kind=failure.kind, error=failure.message)
            return

        if produced is not None and not isinstance(produced, Mapping):
            failure = FailureDetail.from_exception(
                ExecutionFailure(f"Algorithm returned {type(produced).__name__}, expected a mapping")
            )
            job.mark_failed(failure)
            log.warning("job.failed", kind=failure.kind, error=failure.message)
            return

        outputs = {**context.outputs, **(produced or {})}
        match render_outputs(
            dispatch.description,
            dispatch.outputs,
            outputs,
            generator_factory=self.registry.generator_factory,
            explicit=dispatch.explicit_outputs,
        ):
            case Err(error):
                failure = FailureDetail.from_exception(error)
                job.mark_failed(failure)
                log.warning("job.failed", kind=failure.kind, error=failure.message)
                return
            case Ok(rendered):
                pass

        delivered, references = self._deliver(job, dispatch.outputs, rendered)
        response = build_response(
            job.job_id, job.process_id, JobStatus.SUCCEEDED.value, job.response_mode, delivered
        )
        job.mark_succeeded(response, references)
        log.info(
            "job.succeeded",
            outputs=[o.identifier for o in delivered],
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )

    def _deliver(
        self,
        job: Job,
        definitions: tuple[OutputDefinition, ...],
        rendered: list[RenderedOutput],
    ) -> tuple[list[RenderedOutput], dict[str, RenderedOutput]]:
        """Swap by-reference outputs for hrefs (document responses only)."""
        if job.response_mode is ResponseMode.RAW:
            return rendered, {}
        by_reference = {
            d.identifier for d in definitions if d.transmission is TransmissionMode.REFERENCE
        }
        delivered: list[RenderedOutput] = []
        references: dict[str, RenderedOutput] = {}
        for output in rendered:
            if output.identifier in by_reference:
                href = f"{self.reference_base_url}/{job.job_id}/{output.identifier}"
                references[output.identifier] = output
                delivered.append(output.as_reference(href))
            else:
                delivered.append(output)
        return delivered, references

    # ── Queries and control ──────────────────────────────────────────────

    def _job(self, ref: JobRef) -> Result[Job]:
        job_id = ref.job_id if isinstance(ref, ExecutionHandle) else ref
        return from_optional(self._store.get(job_id), UnknownJobError(job_id))

    def poll_status(self, ref: JobRef) -> Result[JobSnapshot]:
        """Current state of a job; terminal snapshots carry the response or failure."""
        return self._job(ref).map(lambda job: job.snapshot())

    def wait(self, ref: JobRef, timeout: float | None = None) -> Result[JobSnapshot]:
        """Block until the job is terminal (or ``timeout`` elapses) and return a snapshot."""
        match self._job(ref):
            case Err(error):
                return Err(error)
            case Ok(job):
                job.done.wait(timeout)
                return Ok(job.snapshot())

    def cancel(self, ref: JobRef) -> Result[None]:
        """
        Ask a job to stop.

        Only posts a signal: a job still waiting for a worker ends
        CANCELLED when the worker picks it up; a running algorithm stops
        at its next ``checkpoint()``.

        Returns:
            ``Ok(None)`` or ``Err(UnknownJobError | AlreadyTerminalError)``
        """
        match self._job(ref):
            case Err(error):
                return Err(error)
            case Ok(job):
                pass
        snapshot = job.snapshot()
        if snapshot.is_terminal:
            return Err(AlreadyTerminalError(job.job_id, snapshot.status.value))
        job.request_cancel()
        log.info("job.cancel_requested", job_id=job.job_id, process_id=job.process_id, status=snapshot.status.value)
        return Ok(None)

    def get_result(self, ref: JobRef) -> Result[Response]:
        """The response of a SUCCEEDED job.

        Returns:
            ``Err(JobNotFinishedError)`` while the job runs and
            ``Err(ExecutionFailure)`` for FAILED or CANCELLED jobs.
        """
        match self.poll_status(ref):
            case Err(error):
                return Err(error)
            case Ok(snapshot):
                pass
        match snapshot.status:
            case JobStatus.SUCCEEDED:
                return Ok(snapshot.response)
            case JobStatus.FAILED:
                failure = snapshot.failure
                error: WpsError = ExecutionFailure(failure.message, code=failure.kind)
            case JobStatus.CANCELLED:
                error = ExecutionFailure(f"Job {snapshot.job_id} was cancelled", code="Cancelled")
            case _:
                return Err(JobNotFinishedError(snapshot.job_id, snapshot.status.value))
        return Err(error.with_context(job_id=snapshot.job_id, process_id=snapshot.process_id))

    def get_output(self, ref: JobRef, output_id: str) -> Result[RenderedOutput]:
        """Content of an output that was delivered by reference."""
        match self._job(ref):
            case Err(error):
                return Err(error)
            case Ok(job):
                pass
        with job.lock:
            output = job.references.get(output_id)
            known = list(job.references)
        if output is None:
            return Err(UnknownOutputError(output_id, known).with_context(job_id=job.job_id))
        return Ok(output)

    def jobs(self) -> list[JobSnapshot]:
        """Snapshots of every retained job."""
        return [job.snapshot() for job in self._store.jobs()]

    # ── Lifecycle ────────────────────────────────────────────────────────

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        """Stop accepting work.  ``cancel_pending`` posts a cancel signal to every unfinished job."""
        self._closed = True
        if cancel_pending:
            for job in self._store.jobs():
                if not job.snapshot().is_terminal:
                    job.request_cancel()
        self._pool.shutdown(wait=wait)
        log.info("coordinator.shutdown", cancel_pending=cancel_pending)

    def __enter__(self) -> ExecutionCoordinator:
        return self

    def __exit__(self, *args) -> None:
        self.shutdown(wait=True, cancel_pending=True)


__all__ = ["ExecutionCoordinator", "negotiate_mode"]
