"""
Tandem Orchestrator - Exception Hierarchy

All Tandem-specific exceptions inherit from TandemError and carry an
optional details dict for structured logging.
"""

from typing import Any


class TandemError(Exception):
    """Base exception for all Tandem-related errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# Configuration Errors
class ConfigError(TandemError):
    """Raised when configuration is invalid or missing."""

    pass


# Backend Errors
class BackendError(TandemError):
    """Base exception for backend call failures."""

    def __init__(self, message: str, backend: str, details: dict[str, Any] | None = None):
        super().__init__(message, {"backend": backend, **(details or {})})
        self.backend = backend


class BackendConnectionError(BackendError):
    """Raised when a backend cannot be reached or is not connected."""

    pass


class BackendExecutionError(BackendError):
    """Raised when a backend accepts a call but fails to execute it."""

    def __init__(self, message: str, backend: str, operation: str):
        super().__init__(message, backend, {"operation": operation})
        self.operation = operation


class RateLimitError(BackendError):
    """Raised when a backend or model signals a rate limit."""

    def __init__(self, message: str, backend: str, retry_after_ms: int | None = None):
        super().__init__(message, backend, {"retry_after_ms": retry_after_ms})
        self.retry_after_ms = retry_after_ms


# Decision Errors
class DecisionError(TandemError):
    """Raised inside a decision engine; always converted to a fallback decision."""

    pass


# Workflow Errors
class WorkflowError(TandemError):
    """Raised when a workflow step cannot be executed."""

    def __init__(self, message: str, step: str, step_index: int):
        super().__init__(message, {"step": step, "step_index": step_index})
        self.step = step
        self.step_index = step_index


# Command Errors
class CommandError(TandemError):
    """Base exception for command facade errors."""

    pass


class UnknownCommandError(CommandError):
    """Raised when a caller requests a command that does not exist."""

    def __init__(self, command: str, available: list[str] | None = None):
        super().__init__(
            f"Unknown command: {command}",
            {"available": available or []},
        )
        self.command = command


# Context Errors
class ContextError(TandemError):
    """Raised when the shared context cannot satisfy a request."""

    pass
