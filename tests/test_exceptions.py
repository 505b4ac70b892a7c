"""Tests for exception hierarchy."""

import pytest

from tandem.exceptions import (
    BackendConnectionError,
    BackendError,
    BackendExecutionError,
    CommandError,
    ConfigError,
    ContextError,
    DecisionError,
    RateLimitError,
    TandemError,
    UnknownCommandError,
    WorkflowError,
)


class TestTandemError:
    """Tests for base TandemError."""

    def test_basic_error(self):
        """Test basic error creation."""
        err = TandemError("Something went wrong")
        assert err.message == "Something went wrong"
        assert err.details == {}
        assert str(err) == "Something went wrong"

    def test_error_with_details(self):
        """Test error with details dict."""
        err = TandemError("Error occurred", {"code": 500, "reason": "internal"})
        assert err.details == {"code": 500, "reason": "internal"}
        assert "code" in str(err)
        assert "500" in str(err)


class TestBackendErrors:
    """Tests for backend error family."""

    def test_backend_error_records_backend(self):
        """Backend name lands in details."""
        err = BackendError("boom", backend="taskmaster")
        assert err.backend == "taskmaster"
        assert err.details["backend"] == "taskmaster"

    def test_execution_error_records_operation(self):
        """Operation is kept on the error and in details."""
        err = BackendExecutionError("failed", backend="sequential", operation="analyze")
        assert err.operation == "analyze"
        assert err.details == {"backend": "sequential", "operation": "analyze"}

    def test_rate_limit_error(self):
        """Retry hint is exposed."""
        err = RateLimitError("slow down", backend="model", retry_after_ms=1500)
        assert err.retry_after_ms == 1500
        assert isinstance(err, BackendError)

    @pytest.mark.parametrize("cls", [BackendConnectionError, BackendExecutionError, RateLimitError])
    def test_backend_subclasses(self, cls):
        """All backend errors inherit from BackendError."""
        assert issubclass(cls, BackendError)
        assert issubclass(cls, TandemError)


class TestOtherErrors:
    """Tests for remaining error types."""

    def test_workflow_error(self):
        """Failing step and index are recorded."""
        err = WorkflowError("stopped", step="Hybrid: X", step_index=2)
        assert err.step == "Hybrid: X"
        assert err.step_index == 2
        assert err.details["step_index"] == 2

    def test_unknown_command_error(self):
        """Message names the command; details list alternatives."""
        err = UnknownCommandError("frobnicate", ["analyze_and_plan"])
        assert err.message == "Unknown command: frobnicate"
        assert err.command == "frobnicate"
        assert err.details["available"] == ["analyze_and_plan"]
        assert isinstance(err, CommandError)

    @pytest.mark.parametrize("cls", [ConfigError, DecisionError, ContextError, CommandError])
    def test_inherit_from_base(self, cls):
        """Every error is a TandemError."""
        assert issubclass(cls, TandemError)
