"""
Backend capability interface.

Both conceptual backends (task structuring and stepwise analysis) are reached
through the same small async interface so real adapters can replace the
in-process stubs without touching the orchestrator.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from tandem.exceptions import BackendConnectionError


class BackendKind(Enum):
    """Backends a decision can choose."""

    STRUCTURING = "taskmaster"  # Organizes work into tasks and dependencies
    ANALYSIS = "sequential"  # Stepwise reasoning over a problem statement
    HYBRID = "hybrid"  # Both, in a fixed named sequence

    @property
    def label(self) -> str:
        """Display label used in workflow step descriptors."""
        return BACKEND_LABELS[self]

    @classmethod
    def from_label(cls, label: str) -> "BackendKind | None":
        """Resolve a step descriptor token, or None if it names no backend."""
        for kind, kind_label in BACKEND_LABELS.items():
            if kind_label == label:
                return kind
        return None


BACKEND_LABELS: dict[BackendKind, str] = {
    BackendKind.STRUCTURING: "TaskMaster",
    BackendKind.ANALYSIS: "Sequential Thinking",
    BackendKind.HYBRID: "Hybrid",
}


class Backend(ABC):
    """
    Abstract backend capability.

    Implementations return a plain result mapping and raise on failure;
    the SyncManager converts raised errors into failed call results.
    """

    kind: BackendKind

    def __init__(self) -> None:
        self._connected = False

    @property
    def name(self) -> str:
        return self.kind.value

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> bool:
        """Open the connection to the backend."""
        self._connected = True
        return True

    async def close(self) -> None:
        """Close the connection."""
        self._connected = False

    def _require_connection(self) -> None:
        if not self._connected:
            raise BackendConnectionError(
                f"Backend '{self.name}' is not connected",
                backend=self.name,
            )

    @abstractmethod
    async def execute(self, operation: str, params: dict[str, Any]) -> dict[str, Any]:
        """
        Execute an operation.

        Args:
            operation: Operation name (e.g. "add-task") or analysis action
            params: Call parameters, already enriched with sync metadata

        Returns:
            Result mapping; always contains "success"
        """
