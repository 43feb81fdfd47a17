"""Tests for spine_wps.core.errors module."""

import pytest

from spine_wps.core.errors import (
    AlreadyTerminalError,
    CancelError,
    DescriptionInvalidError,
    DispatchError,
    ErrorCategory,
    ErrorContext,
    ExecutionFailure,
    InvalidResponseModeError,
    InvalidTransitionError,
    LoadError,
    MissingInputError,
    ModeNotSupportedError,
    OccurrenceOutOfBoundsError,
    OutOfDomainError,
    RegistrationError,
    RenderError,
    UnknownOutputError,
    UnknownProcessError,
    UnsupportedFormatError,
    ValidationError,
    WpsError,
)


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_empty_context_serializes_to_empty_dict(self):
        """Unset fields are omitted."""
        assert ErrorContext().to_dict() == {}

    def test_metadata_is_flattened(self):
        """Metadata keys appear next to the named fields."""
        ctx = ErrorContext(process_id="echo", metadata={"attempt": 2})
        assert ctx.to_dict() == {"process_id": "echo", "attempt": 2}


class TestWpsError:
    """Test the WpsError base class."""

    def test_default_category_is_internal(self):
        """Base errors fall into INTERNAL."""
        assert WpsError("boom").category == ErrorCategory.INTERNAL

    def test_code_strips_error_suffix(self):
        """The code is the class name without 'Error'."""
        assert UnknownProcessError("x").code == "UnknownProcess"
        assert MissingInputError("x").code == "MissingInput"

    def test_cause_is_chained(self):
        """The cause becomes __cause__ and appears in to_dict."""
        cause = ValueError("bad")
        error = WpsError("wrapped", cause=cause)
        assert error.__cause__ is cause
        assert error.to_dict()["cause"] == "bad"

    def test_with_context_sets_known_fields_and_metadata(self):
        """Known context fields are set directly; others go to metadata."""
        error = WpsError("boom").with_context(job_id="j-1", attempt=3)
        assert error.context.job_id == "j-1"
        assert error.context.metadata == {"attempt": 3}

    def test_to_dict_shape(self):
        """to_dict carries type, code, message and category."""
        data = UnknownProcessError("nope").to_dict()
        assert data["error_type"] == "UnknownProcessError"
        assert data["code"] == "UnknownProcess"
        assert data["category"] == "REGISTRY"
        assert data["identifier"] == "nope"
        assert data["context"] == {"process_id": "nope"}


class TestRegistryErrors:
    """Registration failures."""

    def test_load_error_reason_from_cause(self):
        """Without a reason, the cause text is used."""
        error = LoadError("buffer", cause=ImportError("no module named buffer"))
        assert isinstance(error, RegistrationError)
        assert error.reason == "no module named buffer"
        assert "buffer" in error.message

    def test_description_invalid_lists_problems_per_version(self):
        """Problems are kept per protocol version."""
        error = DescriptionInvalidError("p", {"1.0.0": ["a"], "2.0.0": ["b", "c"]})
        assert error.problems == {"1.0.0": ["a"], "2.0.0": ["b", "c"]}
        assert "2.0.0: b, c" in error.message
        assert error.to_dict()["problems"]["1.0.0"] == ["a"]


class TestValidationErrors:
    """Validation failures carry identifier, expected and actual."""

    def test_missing_input(self):
        """MissingInputError names the input and the minimum."""
        error = MissingInputError("msg", 2)
        assert isinstance(error, ValidationError)
        assert error.identifier == "msg"
        assert error.expected == ">= 2 occurrence(s)"
        assert error.actual == 0

    def test_out_of_domain_reason_in_message(self):
        """The reason is appended to the message."""
        error = OutOfDomainError("seconds", 9000, ["[0, 3600]"], reason="too long")
        assert error.message.endswith("too long")
        assert error.details()["expected"] == ["[0, 3600]"]

    def test_occurrence_bounds_unbounded(self):
        """An unbounded maximum prints as 'unbounded'."""
        error = OccurrenceOutOfBoundsError("x", 2, None, 1)
        assert "unbounded" in error.message
        assert error.count == 1


class TestRequestErrors:
    """Errors found before dispatch."""

    def test_invalid_response_mode(self):
        """RAW mode error reports the requested count."""
        error = InvalidResponseModeError(3)
        assert error.details() == {"expected": 1, "actual": 3}
        assert error.category == ErrorCategory.REQUEST

    def test_mode_not_supported(self):
        """Requested and supported modes are attributes."""
        error = ModeNotSupportedError("echo", "async", ["sync"])
        assert error.requested == "async"
        assert error.supported == ["sync"]

    def test_dispatch_wraps_cause(self):
        """DispatchError keeps the precise cause, category and context."""
        cause = MissingInputError("msg")
        error = DispatchError.wrap(cause)
        assert error.cause is cause
        assert error.reason == "MissingInput"
        assert error.category == ErrorCategory.VALIDATION
        assert error.context.identifier == "msg"
        assert error.to_dict()["cause"]["code"] == "MissingInput"


class TestRenderErrors:
    """Output related errors."""

    def test_unknown_output_sorted_known(self):
        """Known outputs are listed sorted."""
        error = UnknownOutputError("z", ["b", "a"])
        assert isinstance(error, RenderError)
        assert error.details()["expected"] == ["a", "b"]

    def test_unsupported_format_printable(self):
        """Non-string formats are rendered as text."""
        error = UnsupportedFormatError("out", object(), [1, "text/plain"])
        details = error.details()
        assert isinstance(details["actual"], str)
        assert details["expected"] == [1, "text/plain"]


class TestJobErrors:
    """Job control errors."""

    def test_already_terminal_is_cancel_error(self):
        """AlreadyTerminalError belongs to the cancel family."""
        error = AlreadyTerminalError("j-1", "succeeded")
        assert isinstance(error, CancelError)
        assert error.context.job_id == "j-1"

    def test_execution_failure_code(self):
        """ExecutionFailure exposes the algorithm supplied code."""
        assert ExecutionFailure("x").code == "ExecutionFailure"
        assert ExecutionFailure("x", code="IntentionalFailure").code == "IntentionalFailure"

    def test_invalid_transition_is_value_error(self):
        """InvalidTransitionError is a ValueError with both states."""
        with pytest.raises(ValueError, match="succeeded → running"):
            raise InvalidTransitionError("succeeded", "running")
