"""
Workflow records - step descriptors, step results and summaries.

A workflow is an ordered list of descriptors "<backend label>: <action>",
for example "TaskMaster: Estruturação em tarefas".
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tandem.backends.base import BackendKind
from tandem.exceptions import WorkflowError

STEP_SEPARATOR = ": "


@dataclass(frozen=True)
class WorkflowStep:
    """A parsed step descriptor."""

    descriptor: str
    token: str
    action: str

    @property
    def backend(self) -> BackendKind | None:
        """Backend named by the token, or None for unrecognized tokens."""
        return BackendKind.from_label(self.token)


def parse_step(descriptor: str) -> WorkflowStep:
    """
    Split a descriptor on its first ": ".

    Descriptors without a separator keep the whole text as both token and
    action, so they fall through to the hybrid handlers.
    """
    token, sep, action = descriptor.partition(STEP_SEPARATOR)
    if not sep:
        return WorkflowStep(descriptor=descriptor, token=descriptor, action=descriptor)
    return WorkflowStep(descriptor=descriptor, token=token, action=action)


@dataclass
class StepResult:
    """Outcome of one executed workflow step."""

    step: str
    token: str
    action: str
    result: dict[str, Any]
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def success(self) -> bool:
        return bool(self.result.get("success"))

    @property
    def analysis(self) -> dict[str, Any] | None:
        """Insights attached to analysis steps."""
        return self.result.get("analysis")

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step,
            "token": self.token,
            "action": self.action,
            "result": self.result,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class WorkflowSummary:
    total_steps: int
    successful_steps: int
    duration_ms: float
    key_outcomes: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_steps": self.total_steps,
            "successful_steps": self.successful_steps,
            "duration_ms": self.duration_ms,
            "key_outcomes": list(self.key_outcomes),
        }


def summarize(results: list[StepResult]) -> WorkflowSummary:
    """Summarize executed steps; duration spans first to last step."""
    duration_ms = 0.0
    if len(results) >= 2:
        duration_ms = (results[-1].timestamp - results[0].timestamp).total_seconds() * 1000

    key_outcomes = [
        {
            "step": r.step,
            "complexity": r.analysis.get("complexity"),
            "risks": len(r.analysis.get("risks") or []),
        }
        for r in results
        if r.analysis
    ]

    return WorkflowSummary(
        total_steps=len(results),
        successful_steps=sum(1 for r in results if r.success),
        duration_ms=duration_ms,
        key_outcomes=key_outcomes,
    )


@dataclass
class WorkflowResult:
    """
    Outcome of a workflow run.

    On failure `results` holds the steps completed before the failing one,
    and `failed_step` / `failed_index` identify it.
    """

    success: bool
    workflow: list[str]
    results: list[StepResult]
    sync_id: str
    summary: WorkflowSummary | None = None
    error: str | None = None
    failed_step: str | None = None
    failed_index: int | None = None

    def analyses(self) -> list[dict[str, Any]]:
        """Insights of every analysis step, in order."""
        return [r.analysis for r in self.results if r.analysis]

    def raise_for_error(self) -> None:
        """
        Raise if the workflow stopped on a failing step.

        Raises:
            WorkflowError: With the failing step and its index
        """
        if self.success:
            return
        raise WorkflowError(
            f"Workflow stopped: {self.error}",
            step=self.failed_step or "",
            step_index=self.failed_index if self.failed_index is not None else -1,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "workflow": list(self.workflow),
            "results": [r.to_dict() for r in self.results],
            "sync_id": self.sync_id,
            "summary": self.summary.to_dict() if self.summary else None,
            "error": self.error,
            "failed_step": self.failed_step,
            "failed_index": self.failed_index,
        }
