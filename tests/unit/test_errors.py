"""Tests for the engine error taxonomy."""

import pytest

from mode_engine.errors import (
    CapacityExceededError,
    DuplicateModeError,
    ErrorKind,
    ModeEngineError,
    ModeNotFoundError,
    ModeTimeoutError,
    NoApplicableModeError,
    PluginFailureError,
    describe_error,
)
from mode_engine.modes.base import ModeResult


class TestErrorKinds:
    """Test each error carries its classification."""

    @pytest.mark.parametrize(
        "error_class,kind",
        [
            (DuplicateModeError, ErrorKind.DUPLICATE_MODE),
            (ModeNotFoundError, ErrorKind.NOT_FOUND),
            (NoApplicableModeError, ErrorKind.NO_APPLICABLE_MODE),
            (CapacityExceededError, ErrorKind.CAPACITY_EXCEEDED),
            (ModeTimeoutError, ErrorKind.TIMEOUT),
            (PluginFailureError, ErrorKind.PLUGIN_FAILURE),
        ],
    )
    def test_kind(self, error_class, kind):
        error = error_class("message", mode_id="alpha")
        assert isinstance(error, ModeEngineError)
        assert error.kind == kind
        assert str(error) == "message"

    def test_to_dict(self):
        error = ModeTimeoutError("too slow", mode_id="alpha")
        assert error.to_dict() == {
            "kind": "timeout",
            "message": "too slow",
            "mode_id": "alpha",
        }

    def test_plugin_failure_keeps_result(self):
        result = ModeResult.failure("nope")
        error = PluginFailureError("nope", mode_id="alpha", result=result)
        assert error.result is result


class TestDescribeError:
    """Test user-facing messages."""

    @pytest.mark.parametrize(
        "error,message",
        [
            (ModeNotFoundError("x", mode_id="vim"), "Unknown mode: vim."),
            (
                CapacityExceededError("x", mode_id="vim"),
                "Mode vim is busy, try again later.",
            ),
            (NoApplicableModeError("x"), "No mode could handle this input."),
            (ModeTimeoutError("x", mode_id="slow"), "Mode slow took too long to respond."),
            (PluginFailureError("x"), "Mode unknown failed to process the input."),
        ],
    )
    def test_messages(self, error, message):
        assert describe_error(error) == message
