"""
Sync Manager - Execute calls on both backends and run hybrid workflows.

Every backend call is enriched with a correlation id and recorded on a
FIFO sync queue that is drained immediately after the call. Backend
failures come back as failed CallResults; the manager itself never raises
for them.

Workflows run strictly in order. Each step sees the parent workflow's
sync id and the results of the steps before it. A step that raises stops
the workflow, and the steps completed so far are returned with the error.
"""

import json
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from tandem.backends.analysis import AnalysisBackend
from tandem.backends.base import Backend, BackendKind
from tandem.backends.insights import AnalysisInsights, InsightExtractor, extract_insights
from tandem.backends.structuring import StructuringBackend
from tandem.context import generate_sync_id
from tandem.exceptions import BackendConnectionError
from tandem.logging import WorkflowLogEntry, now_iso, workflow_logger
from tandem.metrics import MetricsCollector, estimate_tokens
from tandem.orchestrator.hybrid_logic import HybridHandler, HybridLogic
from tandem.orchestrator.workflows import StepResult, WorkflowResult, parse_step, summarize

logger = logging.getLogger(__name__)

ANALYSIS_OPERATION = "sequential-thinking"
SYNC_SOURCE = "sync-manager"


@dataclass
class CallResult:
    """Outcome of a single backend call."""

    success: bool
    backend: BackendKind
    operation: str
    result: dict[str, Any] | None = None
    sync_id: str | None = None
    error: str | None = None
    insights: AnalysisInsights | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "backend": self.backend.value,
            "operation": self.operation,
            "result": self.result,
            "sync_id": self.sync_id,
            "error": self.error,
            "analysis": self.insights.to_dict() if self.insights else None,
        }


class SyncManager:
    """
    Executes backend calls and hybrid workflows.

    Attributes:
        sync_queue: Pending sync entries, drained after every call
        is_processing: True while the queue is being drained
    """

    def __init__(
        self,
        structuring: Backend | None = None,
        analysis: Backend | None = None,
        extractor: InsightExtractor | None = None,
        metrics: MetricsCollector | None = None,
        hybrid_logic: HybridLogic | None = None,
    ):
        self.backends: dict[BackendKind, Backend] = {
            BackendKind.STRUCTURING: structuring or StructuringBackend(),
            BackendKind.ANALYSIS: analysis or AnalysisBackend(),
        }
        self.extractor = extractor
        self.metrics = metrics
        self.hybrid_logic = hybrid_logic or HybridLogic()

        self.sync_queue: deque[dict[str, Any]] = deque()
        self.is_processing = False
        self.synced_count = 0

    async def initialize(self) -> None:
        """
        Connect both backends.

        Raises:
            BackendConnectionError: If a backend refuses the connection
        """
        logger.info("Initializing SyncManager...")
        for kind, backend in self.backends.items():
            if not await backend.connect():
                raise BackendConnectionError(f"Could not connect to {kind.label}", backend=kind.value)
        logger.info("SyncManager initialized")

    async def close(self) -> None:
        for backend in self.backends.values():
            await backend.close()

    def register_hybrid_handler(self, action: str, handler: HybridHandler) -> None:
        """Register a handler for hybrid steps with this exact action text."""
        self.hybrid_logic.register(action, handler)

    # =========================================================================
    # BACKEND CALLS
    # =========================================================================

    async def run_on_backend(
        self,
        backend: BackendKind,
        operation: str,
        params: dict[str, Any] | None = None,
    ) -> CallResult:
        """
        Execute one operation on a backend.

        Args:
            backend: STRUCTURING or ANALYSIS
            operation: Operation name passed to the backend
            params: Call parameters; enriched with sync_id, timestamp, source

        Returns:
            CallResult; success=False with the error message if the call failed
        """
        if backend is BackendKind.HYBRID:
            raise ValueError("Hybrid is not a callable backend; use run_workflow()")

        enriched = {
            **(params or {}),
            "sync_id": generate_sync_id(),
            "timestamp": now_iso(),
            "source": SYNC_SOURCE,
        }
        logger.info(f"Executing {backend.label} operation: {operation}")

        try:
            response = await self.backends[backend].execute(operation, enriched)
        except Exception as e:
            logger.error(f"{backend.label} operation {operation} failed: {e}")
            self._track("error")
            return CallResult(
                success=False,
                backend=backend,
                operation=operation,
                sync_id=enriched["sync_id"],
                error=str(e),
            )

        insights = None
        if backend is BackendKind.ANALYSIS:
            insights = extract_insights(response, self.extractor)
            response = {**response, "analysis": insights.to_dict(), "processed_at": now_iso()}
            self._track("analysis_usage")

        self._track("api_call", tokens=estimate_tokens(json.dumps(response, default=str)))

        await self._enqueue({
            "backend": backend.value,
            "operation": operation,
            "params": enriched,
            "result": response,
            "timestamp": now_iso(),
        })

        return CallResult(
            success=bool(response.get("success", True)),
            backend=backend,
            operation=operation,
            result=response,
            sync_id=enriched["sync_id"],
            insights=insights,
        )

    async def run_structuring(self, operation: str, params: dict[str, Any] | None = None) -> CallResult:
        return await self.run_on_backend(BackendKind.STRUCTURING, operation, params)

    async def run_analysis(self, thought: str, **params: Any) -> CallResult:
        return await self.run_on_backend(BackendKind.ANALYSIS, ANALYSIS_OPERATION, {**params, "thought": thought})

    # =========================================================================
    # WORKFLOWS
    # =========================================================================

    async def run_workflow(
        self,
        steps: list[str],
        params: dict[str, Any] | None = None,
        command: str = "",
    ) -> WorkflowResult:
        """
        Execute workflow steps in order.

        Args:
            steps: Step descriptors "<backend label>: <action>"
            params: Parameters passed to every step
            command: Name recorded in the workflow log

        Returns:
            WorkflowResult with step results and summary
        """
        sync_id = generate_sync_id()
        params = dict(params or {})
        results: list[StepResult] = []
        logger.info(f"Running hybrid workflow {sync_id} ({len(steps)} steps)")

        for index, descriptor in enumerate(steps):
            step = parse_step(descriptor)
            try:
                result = await self._run_step(step.backend, step.action, params, results, sync_id)
            except Exception as e:
                logger.error(f"Workflow {sync_id} stopped at step {index} '{descriptor}': {e}")
                workflow = WorkflowResult(
                    success=False,
                    workflow=list(steps),
                    results=results,
                    sync_id=sync_id,
                    summary=summarize(results),
                    error=str(e),
                    failed_step=descriptor,
                    failed_index=index,
                )
                self._log_workflow(workflow, command)
                return workflow

            results.append(StepResult(
                step=descriptor,
                token=step.token,
                action=step.action,
                result=result,
                timestamp=datetime.now(),
            ))

        workflow = WorkflowResult(
            success=True,
            workflow=list(steps),
            results=results,
            sync_id=sync_id,
            summary=summarize(results),
        )
        self._log_workflow(workflow, command)
        return workflow

    async def _run_step(
        self,
        backend: BackendKind | None,
        action: str,
        params: dict[str, Any],
        results: list[StepResult],
        sync_id: str,
    ) -> dict[str, Any]:
        step_params = {
            **params,
            "parent_sync_id": sync_id,
            "previous_results": [r.to_dict() for r in results],
        }
        if backend is BackendKind.STRUCTURING:
            call = await self.run_on_backend(backend, action, step_params)
            return call.to_dict()
        if backend is BackendKind.ANALYSIS:
            call = await self.run_on_backend(backend, ANALYSIS_OPERATION, {**step_params, "thought": action})
            return call.to_dict()
        return await self.hybrid_logic.run(action, params, results)

    # =========================================================================
    # SYNC QUEUE
    # =========================================================================

    async def _enqueue(self, entry: dict[str, Any]) -> None:
        self.sync_queue.append(entry)
        if not self.is_processing:
            await self._drain()

    async def _drain(self) -> None:
        if self.is_processing:
            return
        self.is_processing = True
        try:
            while self.sync_queue:
                entry = self.sync_queue.popleft()
                self._sync_entry(entry)
        finally:
            self.is_processing = False

    def _sync_entry(self, entry: dict[str, Any]) -> None:
        self.synced_count += 1
        logger.debug(f"Synchronized {entry['backend']} operation: {entry['operation']}")

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _track(self, event: str, **data: Any) -> None:
        if self.metrics is not None:
            self.metrics.track(event, **data)

    def _log_workflow(self, workflow: WorkflowResult, command: str) -> None:
        summary = workflow.summary
        entry = WorkflowLogEntry(
            timestamp=now_iso(),
            sync_id=workflow.sync_id,
            command=command,
            total_steps=len(workflow.workflow),
            successful_steps=summary.successful_steps if summary else 0,
            duration_ms=summary.duration_ms if summary else 0.0,
            success=workflow.success,
            error=workflow.error,
        )
        if workflow.success:
            workflow_logger.info(entry.to_json())
        else:
            workflow_logger.error(entry.to_json())

    def get_stats(self) -> dict[str, Any]:
        return {
            "queue_size": len(self.sync_queue),
            "is_processing": self.is_processing,
            "synced_count": self.synced_count,
            "structuring_connected": self.backends[BackendKind.STRUCTURING].is_connected,
            "analysis_connected": self.backends[BackendKind.ANALYSIS].is_connected,
            "hybrid_actions": self.hybrid_logic.actions,
        }
