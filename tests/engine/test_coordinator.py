"""
Tests for ExecutionCoordinator: submission, modes, cancellation and results.

Tests cover:
- Request rejection before any algorithm runs (DispatchError causes)
- Sync and async execution, DOCUMENT and RAW responses
- By-reference outputs
- Cancellation semantics
- Failure isolation and retention
"""

import time

import pytest

from spine_wps.algorithm.base import algorithm
from spine_wps.algorithm.registry import AlgorithmRegistry
from spine_wps.core.errors import (
    AlreadyTerminalError,
    DispatchError,
    DuplicateOutputError,
    ExecutionFailure,
    InvalidResponseModeError,
    JobNotFinishedError,
    MissingInputError,
    ModeNotSupportedError,
    OutOfDomainError,
    UnknownJobError,
    UnknownOutputError,
    UnknownProcessError,
)
from spine_wps.core.result import Err, Ok
from spine_wps.data import ExecuteRequest, ExecutionMode, TransmissionMode
from spine_wps.description import LiteralBuilder, LiteralType, ProcessBuilder
from spine_wps.engine.coordinator import ExecutionCoordinator, negotiate_mode
from spine_wps.engine.jobs import JobStatus
from spine_wps.engine.responses import DocumentResponse, RawResponse
from spine_wps.io.codecs import TEXT_PLAIN


def _wait_for(coordinator, handle, status, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        snapshot = coordinator.poll_status(handle).unwrap()
        if snapshot.status is status:
            return snapshot
        time.sleep(0.005)
    pytest.fail(f"job never reached {status.value}")


def _sleep(seconds, mode=ExecutionMode.ASYNC):
    return ExecuteRequest.builder("sleep").literal("seconds", seconds).mode(mode).build()


# =============================================================================
# Rejections
# =============================================================================


class TestRejections:
    def test_unknown_process(self, coordinator):
        result = coordinator.submit(ExecuteRequest.builder("nope").build())
        match result:
            case Err(DispatchError() as error):
                assert isinstance(error.cause, UnknownProcessError)
                assert error.reason == "UnknownProcess"
            case _:
                pytest.fail(f"expected a dispatch error, got {result!r}")
        assert coordinator.jobs() == []

    def test_missing_input(self, coordinator):
        error = coordinator.submit(ExecuteRequest.builder("echo").build()).error
        assert isinstance(error.cause, MissingInputError)
        assert error.cause.identifier == "msg"
        assert coordinator.jobs() == []

    def test_raw_with_two_outputs(self, coordinator):
        request = (
            ExecuteRequest.builder("count-words")
            .raw_complex("text", b"a b")
            .output("count")
            .output("frequencies")
            .raw()
            .build()
        )
        error = coordinator.submit(request).error
        assert isinstance(error.cause, InvalidResponseModeError)

    def test_duplicate_output(self, coordinator):
        request = ExecuteRequest.builder("echo").literal("msg", "hi").output("msg").output("msg").build()
        error = coordinator.submit(request).error
        assert isinstance(error.cause, DuplicateOutputError)
        assert error.reason == "DuplicateOutput"
        assert coordinator.jobs() == []

    def test_unknown_output(self, coordinator):
        request = ExecuteRequest.builder("echo").literal("msg", "hi").output("nope").build()
        assert isinstance(coordinator.submit(request).error.cause, UnknownOutputError)

    def test_out_of_domain_never_invokes_algorithm(self, settings):
        calls = []
        description = (
            ProcessBuilder("level")
            .input(LiteralBuilder("n", LiteralType.INTEGER).range(1, 5).build_input())
            .output(LiteralBuilder("n", LiteralType.INTEGER).build_output())
            .build()
        )

        @algorithm(description)
        def level(inputs, context):
            calls.append(inputs.value("n"))
            return {"n": inputs.value("n")}

        registry = AlgorithmRegistry()
        registry.register("level", lambda: level)
        with ExecutionCoordinator(registry, settings=settings) as coordinator:
            error = coordinator.submit(ExecuteRequest.builder("level").literal("n", 9).build()).error
            assert isinstance(error.cause, OutOfDomainError)
            assert coordinator.submit(ExecuteRequest.builder("level").literal("n", 3).build()).is_ok()
        assert calls == [3]

    def test_async_not_offered(self, coordinator):
        request = ExecuteRequest.builder("echo").literal("msg", "hi").async_().build()
        error = coordinator.submit(request).error
        assert isinstance(error.cause, ModeNotSupportedError)
        assert error.cause.supported == ["sync"]

    def test_after_shutdown(self, registry, settings):
        coordinator = ExecutionCoordinator(registry, settings=settings)
        coordinator.shutdown()
        request = ExecuteRequest.builder("echo").literal("msg", "hi").build()
        assert isinstance(coordinator.submit(request).error, DispatchError)


# =============================================================================
# Synchronous execution
# =============================================================================


class TestSyncExecution:
    def test_echo(self, coordinator):
        request = ExecuteRequest.builder("echo").literal("msg", "hi").build()
        handle = coordinator.submit(request).unwrap()
        assert handle.execution_mode is ExecutionMode.SYNC
        assert handle.status is JobStatus.SUCCEEDED
        assert handle.snapshot.response.value("msg") == "hi"

        response = coordinator.get_result(handle).unwrap()
        assert isinstance(response, DocumentResponse)
        assert response.status == "succeeded"
        assert response.job_id == handle.job_id

    def test_lookup_by_job_id(self, coordinator):
        handle = coordinator.submit(ExecuteRequest.builder("echo").literal("msg", "hi").build()).unwrap()
        assert coordinator.poll_status(handle.job_id).unwrap().status is JobStatus.SUCCEEDED

    def test_raw_response(self, coordinator):
        request = ExecuteRequest.builder("echo").literal("msg", "hi").output("msg").raw().build()
        response = coordinator.submit(request).unwrap().snapshot.response
        assert isinstance(response, RawResponse)
        assert response.content == b"hi"
        assert response.mime_type == "text/plain"

    def test_raw_complex_output_in_requested_format(self, coordinator):
        request = (
            ExecuteRequest.builder("count-words")
            .raw_complex("text", b"b a b")
            .output("frequencies", TEXT_PLAIN)
            .raw()
            .build()
        )
        response = coordinator.get_result(coordinator.submit(request).unwrap()).unwrap()
        assert response.text() == "{'b': 2, 'a': 1}"

    def test_partial_and_returned_outputs_merged(self, coordinator):
        request = ExecuteRequest.builder("count-words").raw_complex("text", b"one two two").build()
        response = coordinator.submit(request).unwrap().snapshot.response
        assert response.value("count") == 3
        assert response.output("frequencies").content == b'{"two": 2, "one": 1}'

    def test_unit_conversion_reaches_algorithm(self, coordinator):
        request = ExecuteRequest.builder("sleep").literal("seconds", 0.0005, uom="min").sync().build()
        snapshot = coordinator.submit(request).unwrap().snapshot
        assert snapshot.status is JobStatus.SUCCEEDED
        assert snapshot.response.value("slept") >= 0.03

    def test_failure_is_reported_not_raised(self, coordinator):
        handle = coordinator.submit(ExecuteRequest.builder("fail").build()).unwrap()
        assert handle.status is JobStatus.FAILED
        assert handle.snapshot.failure.kind == "IntentionalFailure"
        assert handle.snapshot.failure.message == "intentional failure"

        error = coordinator.get_result(handle).error
        assert isinstance(error, ExecutionFailure)
        assert error.code == "IntentionalFailure"
        assert error.context.job_id == handle.job_id

    def test_failure_does_not_affect_other_jobs(self, coordinator):
        coordinator.submit(ExecuteRequest.builder("fail").build())
        handle = coordinator.submit(ExecuteRequest.builder("echo").literal("msg", "ok").build()).unwrap()
        assert handle.status is JobStatus.SUCCEEDED

    def test_cancel_after_success_is_rejected(self, coordinator):
        handle = coordinator.submit(ExecuteRequest.builder("echo").literal("msg", "hi").build()).unwrap()
        error = coordinator.cancel(handle).error
        assert isinstance(error, AlreadyTerminalError)
        snapshot = coordinator.poll_status(handle).unwrap()
        assert snapshot.status is JobStatus.SUCCEEDED
        assert snapshot.response.value("msg") == "hi"


class TestMisbehavingAlgorithms:
    def _registry(self, function):
        description = (
            ProcessBuilder("bad")
            .output(LiteralBuilder("out", LiteralType.STRING).build_output())
            .build()
        )
        registry = AlgorithmRegistry()
        registry.register("bad", lambda: algorithm(description)(function))
        return registry

    def test_non_mapping_result(self, settings):
        with ExecutionCoordinator(self._registry(lambda i, c: "oops"), settings=settings) as coordinator:
            handle = coordinator.submit(ExecuteRequest.builder("bad").build()).unwrap()
        assert handle.status is JobStatus.FAILED
        assert "expected a mapping" in handle.snapshot.failure.message

    def test_missing_output(self, settings):
        with ExecutionCoordinator(self._registry(lambda i, c: {}), settings=settings) as coordinator:
            handle = coordinator.submit(ExecuteRequest.builder("bad").build()).unwrap()
        assert handle.snapshot.failure.kind == "MissingOutput"

    def test_unexpected_exception(self, settings):
        def boom(inputs, context):
            raise ZeroDivisionError("division by zero")

        with ExecutionCoordinator(self._registry(boom), settings=settings) as coordinator:
            handle = coordinator.submit(ExecuteRequest.builder("bad").build()).unwrap()
        assert handle.snapshot.failure.kind == "ZeroDivisionError"


# =============================================================================
# By-reference outputs
# =============================================================================


class TestReferences:
    def test_output_by_reference(self, coordinator):
        request = (
            ExecuteRequest.builder("echo")
            .literal("msg", "hi")
            .output("msg", transmission=TransmissionMode.REFERENCE)
            .build()
        )
        handle = coordinator.submit(request).unwrap()
        output = handle.snapshot.response.output("msg")
        assert output.href == f"http://test.local/outputs/{handle.job_id}/msg"
        assert output.value is None

        stored = coordinator.get_output(handle, "msg").unwrap()
        assert stored.content == b"hi"

    def test_inline_output_has_no_reference(self, coordinator):
        handle = coordinator.submit(ExecuteRequest.builder("echo").literal("msg", "hi").build()).unwrap()
        assert isinstance(coordinator.get_output(handle, "msg").error, UnknownOutputError)

    def test_raw_ignores_reference(self, coordinator):
        request = (
            ExecuteRequest.builder("echo")
            .literal("msg", "hi")
            .output("msg", transmission=TransmissionMode.REFERENCE)
            .raw()
            .build()
        )
        response = coordinator.submit(request).unwrap().snapshot.response
        assert response.content == b"hi"


# =============================================================================
# Asynchronous execution and cancellation
# =============================================================================


class TestAsyncExecution:
    def test_auto_runs_async_when_offered(self, coordinator):
        handle = coordinator.submit(_sleep(0.01, ExecutionMode.AUTO)).unwrap()
        assert handle.execution_mode is ExecutionMode.ASYNC
        snapshot = coordinator.wait(handle, timeout=5).unwrap()
        assert snapshot.status is JobStatus.SUCCEEDED
        assert snapshot.started_at is not None

    def test_explicit_sync_for_async_process(self, coordinator):
        handle = coordinator.submit(_sleep(0.0, ExecutionMode.SYNC)).unwrap()
        assert handle.status is JobStatus.SUCCEEDED

    def test_result_not_ready_while_running(self, coordinator):
        handle = coordinator.submit(_sleep(10)).unwrap()
        _wait_for(coordinator, handle, JobStatus.RUNNING)
        assert isinstance(coordinator.get_result(handle).error, JobNotFinishedError)
        coordinator.cancel(handle)
        coordinator.wait(handle, timeout=5)

    def test_cancel_running_job(self, coordinator):
        handle = coordinator.submit(_sleep(10)).unwrap()
        _wait_for(coordinator, handle, JobStatus.RUNNING)

        assert coordinator.cancel(handle) == Ok(None)
        snapshot = coordinator.wait(handle, timeout=5).unwrap()
        assert snapshot.status is JobStatus.CANCELLED
        assert snapshot.response is None

        error = coordinator.get_result(handle).error
        assert isinstance(error, ExecutionFailure)
        assert error.code == "Cancelled"

    def test_cancel_queued_job_never_runs(self, registry, settings):
        with ExecutionCoordinator(registry, settings=settings, max_workers=1) as coordinator:
            blocker = coordinator.submit(_sleep(10)).unwrap()
            queued = coordinator.submit(_sleep(10)).unwrap()
            _wait_for(coordinator, blocker, JobStatus.RUNNING)

            coordinator.cancel(queued)
            coordinator.cancel(blocker)
            snapshot = coordinator.wait(queued, timeout=5).unwrap()
        assert snapshot.status is JobStatus.CANCELLED
        assert snapshot.started_at is None

    def test_progress_visible_while_running(self, coordinator):
        handle = coordinator.submit(_sleep(10)).unwrap()
        deadline = time.monotonic() + 5
        while coordinator.poll_status(handle).unwrap().progress == 0 and time.monotonic() < deadline:
            time.sleep(0.01)
        assert coordinator.poll_status(handle).unwrap().status_message.startswith("slept")
        coordinator.cancel(handle)
        coordinator.wait(handle, timeout=5)

    def test_unregister_while_running(self, coordinator, registry):
        handle = coordinator.submit(_sleep(0.3)).unwrap()
        _wait_for(coordinator, handle, JobStatus.RUNNING)

        assert registry.unregister("sleep") is True
        error = coordinator.submit(_sleep(0.01)).error
        assert isinstance(error.cause, UnknownProcessError)

        snapshot = coordinator.wait(handle, timeout=5).unwrap()
        assert snapshot.status is JobStatus.SUCCEEDED
        assert snapshot.response.value("slept") >= 0.3

    def test_many_concurrent_jobs(self, coordinator):
        handles = [coordinator.submit(_sleep(0.01)).unwrap() for _ in range(10)]
        statuses = {coordinator.wait(h, timeout=10).unwrap().status for h in handles}
        assert statuses == {JobStatus.SUCCEEDED}
        assert len(coordinator.jobs()) == 10


# =============================================================================
# Queries and retention
# =============================================================================


class TestQueries:
    def test_unknown_job(self, coordinator):
        assert isinstance(coordinator.poll_status("nope").error, UnknownJobError)
        assert isinstance(coordinator.cancel("nope").error, UnknownJobError)
        assert isinstance(coordinator.get_result("nope").error, UnknownJobError)

    def test_retention_evicts_finished_jobs(self, registry, settings):
        with ExecutionCoordinator(registry, settings=settings, job_retention_seconds=0) as coordinator:
            handle = coordinator.submit(ExecuteRequest.builder("echo").literal("msg", "hi").build()).unwrap()
            assert handle.status is JobStatus.SUCCEEDED
            assert isinstance(coordinator.poll_status(handle).error, UnknownJobError)

    def test_snapshot_to_dict(self, coordinator):
        handle = coordinator.submit(ExecuteRequest.builder("echo").literal("msg", "hi").build()).unwrap()
        data = handle.snapshot.to_dict()
        assert data["status"] == "succeeded"
        assert data["execution_mode"] == "sync"
        assert data["response"]["outputs"][0] == {
            "identifier": "msg",
            "kind": "literal",
            "value": "hi",
            "mime_type": "text/plain",
            "data_type": "string",
        }


class TestNegotiateMode:
    def _description(self, sync=True, async_=False):
        return (
            ProcessBuilder("p")
            .output(LiteralBuilder("o", LiteralType.STRING).build_output())
            .execution(sync=sync, async_=async_)
            .build()
        )

    @pytest.mark.parametrize("sync,async_,expected", [
        (True, False, ExecutionMode.SYNC),
        (True, True, ExecutionMode.ASYNC),
        (False, True, ExecutionMode.ASYNC),
    ])
    def test_auto(self, sync, async_, expected):
        assert negotiate_mode(self._description(sync, async_), ExecutionMode.AUTO) == Ok(expected)

    def test_sync_only_async_process(self):
        error = negotiate_mode(self._description(False, True), ExecutionMode.SYNC).error
        assert isinstance(error, ModeNotSupportedError)
        assert error.supported == ["async"]


class TestConstruction:
    def test_explicit_arguments_override_settings(self, registry, settings):
        with ExecutionCoordinator(
            registry, settings=settings, max_workers=1, spacing_epsilon=0.0, reference_base_url="",
        ) as coordinator:
            assert coordinator.max_workers == 1
            assert coordinator.spacing_epsilon == 0.0
            assert coordinator.reference_base_url == ""

    def test_settings_used_when_arguments_omitted(self, registry, settings):
        with ExecutionCoordinator(registry, settings=settings) as coordinator:
            assert coordinator.max_workers == 2
            assert coordinator.reference_base_url == "http://test.local/outputs"

    def test_pool_closed_before_enqueue(self, coordinator):
        # the pool can stop between the shutdown check and the enqueue
        coordinator._pool.shutdown(wait=True)
        handle = coordinator.submit(_sleep(0.01)).unwrap()
        assert handle.status is JobStatus.CANCELLED
        assert coordinator.wait(handle, timeout=1).unwrap().started_at is None
