"""
Tandem Orchestrator - Shared Context Store

Keeps the context shared between the structuring and analysis backends:
the current project, active tasks, and append-only logs of analyses,
decisions and insights. Every update snapshots the previous state into a
bounded history so it can be restored.

One store is owned by each Coordinator; there is no module-level instance.
"""

import copy
import json
import logging
import time
import uuid
from collections import deque
from datetime import datetime, timedelta
from typing import Any

from tandem.exceptions import ContextError
from tandem.logging import now_iso

logger = logging.getLogger(__name__)

MAX_HISTORY_SIZE = 100
RELEVANT_INSIGHTS_LIMIT = 5
RECENT_ANALYSIS_LIMIT = 5
RECENT_DECISIONS_LIMIT = 3
DEFAULT_MAX_AGE = timedelta(hours=24)

# Insight sources
SOURCE_ANALYSIS = "sequential-thinking"
SOURCE_STRUCTURING = "taskmaster"
SOURCE_SYNC = "sync-results"

APPEND_FIELDS = {
    "analysis": "analysis_history",
    "decision": "decisions",
    "insight": "insights",
}
UPDATE_FIELDS = {"project", "tasks", "metadata", *APPEND_FIELDS}


def generate_sync_id() -> str:
    """Correlation id of the form sync_<ms>_<9 chars>."""
    return f"sync_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _empty_context() -> dict[str, Any]:
    return {
        "current_project": None,
        "active_tasks": [],
        "analysis_history": [],
        "decisions": [],
        "insights": [],
        "metadata": {},
        "last_updated": None,
    }


class ContextStore:
    """
    Shared context with snapshot history.

    The history holds deep copies taken before each update; at most
    MAX_HISTORY_SIZE snapshots are kept, oldest dropped first.
    """

    def __init__(self, max_history: int = MAX_HISTORY_SIZE):
        self._context = _empty_context()
        self._history: deque[dict[str, Any]] = deque(maxlen=max_history)

    @property
    def history_size(self) -> int:
        return len(self._history)

    def update(self, **partial: Any) -> None:
        """
        Merge a partial update into the shared context.

        Accepted keys:
            project: replaces the current project
            tasks: replaces the active task list
            analysis, decision, insight: appended with a timestamp
            metadata: shallow-merged into the existing metadata

        Raises:
            ContextError: If an unknown key is given
        """
        unknown = set(partial) - UPDATE_FIELDS
        if unknown:
            raise ContextError(
                f"Unknown context fields: {', '.join(sorted(unknown))}",
                {"allowed": sorted(UPDATE_FIELDS)},
            )

        self._snapshot()

        if partial.get("project") is not None:
            self._context["current_project"] = partial["project"]
        if partial.get("tasks") is not None:
            self._context["active_tasks"] = list(partial["tasks"])

        for key, target in APPEND_FIELDS.items():
            entry = partial.get(key)
            if entry:
                self._context[target].append({**entry, "timestamp": now_iso()})

        if partial.get("metadata"):
            self._context["metadata"] = {**self._context["metadata"], **partial["metadata"]}

        self._context["last_updated"] = now_iso()
        logger.debug(f"Context updated ({', '.join(sorted(partial))}), persisted to memory")

    def sync_results(self, results: dict[str, Any]) -> dict[str, Any]:
        """
        Derive insights from combined results and record them.

        Args:
            results: Mapping that may hold "analysis" and "planning" results

        Returns:
            Sync record with sync_id, timestamp and the results
        """
        sync = {"sync_id": generate_sync_id(), "timestamp": now_iso(), "results": results}
        logger.info("Synchronizing results between backends")

        self.update(
            insight={
                "source": SOURCE_SYNC,
                "data": self.extract_insights(results),
                "sync_id": sync["sync_id"],
            },
            metadata={
                "last_sync": sync["timestamp"],
                "sync_count": self._context["metadata"].get("sync_count", 0) + 1,
            },
        )
        return sync

    @staticmethod
    def extract_insights(results: dict[str, Any]) -> dict[str, list[str]]:
        insights: dict[str, list[str]] = {
            "patterns": [],
            "correlations": [],
            "trends": [],
            "recommendations": [],
        }
        analysis = results.get("analysis") or {}
        if analysis and results.get("planning"):
            insights["patterns"].append("Hybrid analyze-and-plan operation executed")
            complexity = analysis.get("complexity")
            if isinstance(complexity, (int, float)) and complexity > 7:
                insights["trends"].append("High complexity trend detected")
        insights["recommendations"].extend(analysis.get("recommendations", []))
        return insights

    def get_context(self) -> dict[str, Any]:
        """Deep copy of the shared context plus size information."""
        return {
            **copy.deepcopy(self._context),
            "context_size": self._context_size(),
            "history_size": len(self._history),
        }

    def get_relevant_context(
        self,
        operation: str,
        include_active_tasks: bool = False,
        include_analysis: bool = False,
        include_decisions: bool = False,
    ) -> dict[str, Any]:
        """
        Subset of the context useful for an operation.

        Task operations get the active tasks, analysis operations the recent
        analyses; the flags force either in. Insights are filtered by source.
        """
        relevant: dict[str, Any] = {"operation": operation, "timestamp": now_iso()}

        if self._context["current_project"]:
            relevant["project"] = self._context["current_project"]
        if "task" in operation or include_active_tasks:
            relevant["active_tasks"] = list(self._context["active_tasks"])
        if "analyze" in operation or include_analysis:
            relevant["recent_analysis"] = self._context["analysis_history"][-RECENT_ANALYSIS_LIMIT:]
        if include_decisions:
            relevant["recent_decisions"] = self._context["decisions"][-RECENT_DECISIONS_LIMIT:]

        relevant["insights"] = self._relevant_insights(operation)
        return relevant

    def _relevant_insights(self, operation: str) -> list[dict[str, Any]]:
        def is_relevant(insight: dict[str, Any]) -> bool:
            source = insight.get("source")
            if "analyze" in operation and source == SOURCE_ANALYSIS:
                return True
            if "task" in operation and source == SOURCE_STRUCTURING:
                return True
            return source == SOURCE_SYNC

        return [i for i in self._context["insights"] if is_relevant(i)][-RELEVANT_INSIGHTS_LIMIT:]

    def restore(self, index: int) -> bool:
        """
        Restore the context from a history snapshot.

        Returns:
            False if the index is out of range
        """
        if not 0 <= index < len(self._history):
            return False
        snapshot = copy.deepcopy(self._history[index])
        snapshot.pop("saved_at", None)
        self._context = snapshot
        logger.info(f"Context restored from history (index {index})")
        return True

    def cleanup_old_context(self, max_age: timedelta = DEFAULT_MAX_AGE) -> int:
        """
        Drop analyses, decisions and insights older than max_age.

        Returns:
            Number of entries removed
        """
        cutoff = datetime.now() - max_age
        removed = 0
        for target in APPEND_FIELDS.values():
            entries = self._context[target]
            kept = [e for e in entries if datetime.fromisoformat(e["timestamp"]) > cutoff]
            removed += len(entries) - len(kept)
            self._context[target] = kept

        logger.info(f"Old context cleaned up ({removed} entries removed)")
        return removed

    def get_stats(self) -> dict[str, Any]:
        return {
            **self._context_size(),
            "history_size": len(self._history),
            "max_history": self._history.maxlen,
            "sync_count": self._context["metadata"].get("sync_count", 0),
            "last_updated": self._context["last_updated"],
        }

    def _snapshot(self) -> None:
        self._history.append({**copy.deepcopy(self._context), "saved_at": now_iso()})

    def _context_size(self) -> dict[str, int]:
        return {
            "active_tasks": len(self._context["active_tasks"]),
            "analysis_history": len(self._context["analysis_history"]),
            "decisions": len(self._context["decisions"]),
            "insights": len(self._context["insights"]),
            "total_memory": len(json.dumps(self._context, default=str)),
        }
