"""
Coordinator - Decide, execute and remember hybrid commands.

Owns the decision engine, the SyncManager and the ContextStore. A hybrid
command is evaluated by the engine, its workflow is executed through the
SyncManager, and the outcome is written back to the shared context.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from tandem.backends.base import BackendKind
from tandem.config import TandemConfig
from tandem.context import SOURCE_ANALYSIS, ContextStore
from tandem.exceptions import UnknownCommandError
from tandem.metrics import MetricsCollector
from tandem.orchestrator.sync_manager import SyncManager
from tandem.orchestrator.workflows import WorkflowResult
from tandem.routing import Decision, DecisionEngine, get_engine
from tandem.routing.rules import get_basic_workflow

logger = logging.getLogger(__name__)

HYBRID_COMMANDS: dict[str, str] = {
    "analyze-and-plan": "Analyze a problem and build a structured plan",
    "smart-next-task": "Pick the next task and assess its complexity",
    "expand-with-thinking": "Expand a task into subtasks after deep analysis",
    "validate-solution": "Validate a solution and update the task status",
}

ANALYZE_AND_PLAN_NEXT_STEPS = [
    "Review the tasks created by the structuring backend",
    "Prioritize tasks by analyzed complexity",
    "Identify critical dependencies",
    "Start with the lowest-risk tasks",
]


def estimate_time(complexity: float) -> str:
    """Rough effort estimate for a complexity score."""
    if complexity <= 3:
        return "1-2 hours"
    if complexity <= 6:
        return "4-8 hours"
    if complexity <= 8:
        return "1-2 days"
    return "3+ days"


@dataclass
class CommandResult:
    """Outcome of a hybrid command."""

    command: str
    success: bool
    decision: Decision
    workflow: WorkflowResult
    next_steps: list[str] = field(default_factory=list)
    recommendation: dict[str, Any] | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "command": self.command,
            "success": self.success,
            "decision": self.decision.to_dict(),
            "workflow": self.workflow.to_dict(),
            "next_steps": list(self.next_steps),
            "recommendation": self.recommendation,
            "error": self.error,
        }


class Coordinator:
    """
    Central coordination between the two backends.

    Attributes:
        mode: Backend of the command in flight ("idle" otherwise)
    """

    def __init__(
        self,
        config: TandemConfig | None = None,
        engine: DecisionEngine | None = None,
        sync_manager: SyncManager | None = None,
        context: ContextStore | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self.config = config or TandemConfig()
        self.metrics = metrics or MetricsCollector()
        self.engine = engine or get_engine(self.config.engine, self.config.pattern_cache_size)
        self.sync_manager = sync_manager or SyncManager(metrics=self.metrics)
        self.context = context or ContextStore()
        self.mode = "idle"
        self.initialized = False
        self._started_at = time.monotonic()

    async def initialize(self) -> None:
        """Connect backends; safe to call more than once."""
        if self.initialized:
            return
        logger.info(f"Initializing coordinator (engine: {self.engine.name})")
        await self.sync_manager.initialize()
        self.initialized = True

    def decide_backend(self, operation: str, context: dict[str, Any] | None = None) -> Decision:
        decision = self.engine.evaluate(operation, context)
        logger.info(f"Decision for '{operation}': {decision.backend.value} ({decision.confidence:.2f})")
        return decision

    async def execute_hybrid_command(self, command: str, params: dict[str, Any] | None = None) -> CommandResult:
        """
        Run a hybrid command end to end.

        Args:
            command: One of HYBRID_COMMANDS
            params: Command parameters; also used as the decision context

        Returns:
            CommandResult with the decision and workflow outcome

        Raises:
            UnknownCommandError: If the command is not a hybrid command
        """
        if command not in HYBRID_COMMANDS:
            raise UnknownCommandError(command, list(HYBRID_COMMANDS))

        params = dict(params or {})
        await self.initialize()
        logger.info(f"Executing hybrid command: {command}")

        self.context.update(metadata={"last_command": command, "last_command_at": time.time()})
        decision = self.decide_backend(command, params)

        steps = decision.workflow
        if decision.backend is not BackendKind.HYBRID or not steps:
            logger.warning(
                f"Engine chose {decision.backend.value} for hybrid command {command}; "
                f"running the standard hybrid workflow"
            )
            steps = get_basic_workflow(command)

        self.mode = decision.backend.value
        try:
            workflow = await self.sync_manager.run_workflow(steps, params, command=command)
        finally:
            self.mode = "idle"

        self._record(command, decision, workflow)

        analyses = workflow.analyses()
        complexity = analyses[0].get("complexity") if analyses else params.get("complexity", 0)
        self.metrics.track("task_processed", complexity=complexity or 0, success=workflow.success)

        result = CommandResult(
            command=command,
            success=workflow.success,
            decision=decision,
            workflow=workflow,
            error=workflow.error,
        )
        if command == "analyze-and-plan" and workflow.success:
            result.next_steps = list(ANALYZE_AND_PLAN_NEXT_STEPS)
        if command == "smart-next-task" and analyses:
            result.recommendation = self._task_recommendation(analyses[0])
        return result

    def _record(self, command: str, decision: Decision, workflow: WorkflowResult) -> None:
        """Write analyses, the decision and insights back to the context."""
        for analysis in workflow.analyses():
            self.context.update(analysis={"command": command, **analysis})

        self.context.update(decision={
            "decision_id": decision.decision_id,
            "operation": command,
            "backend": decision.backend.value,
            "confidence": decision.confidence,
        })

        if workflow.summary and workflow.summary.key_outcomes:
            self.context.update(insight={
                "source": SOURCE_ANALYSIS,
                "command": command,
                "data": workflow.summary.key_outcomes,
            })

        analyses = workflow.analyses()
        planning = [r.result for r in workflow.results if r.token == BackendKind.STRUCTURING.label]
        self.context.sync_results({
            "analysis": analyses[0] if analyses else None,
            "planning": planning[0] if planning else None,
            "type": command,
        })

    @staticmethod
    def _task_recommendation(analysis: dict[str, Any]) -> dict[str, Any]:
        complexity = analysis.get("complexity") or 0
        return {
            "priority": "high" if complexity > 7 else "medium",
            "estimated_time": estimate_time(complexity),
            "warnings": list(analysis.get("risks") or []),
        }

    def get_status(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "engine": self.engine.name,
            "initialized": self.initialized,
            "uptime_seconds": round(time.monotonic() - self._started_at, 3),
            "context": self.context.get_stats(),
        }
