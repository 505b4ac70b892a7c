"""Tests for the shared context store."""

from datetime import datetime, timedelta

import pytest

from tandem.context import (
    SOURCE_ANALYSIS,
    SOURCE_STRUCTURING,
    SOURCE_SYNC,
    ContextStore,
    generate_sync_id,
)
from tandem.exceptions import ContextError


@pytest.fixture
def store():
    return ContextStore()


class TestUpdate:
    """Tests for ContextStore.update."""

    def test_replace_append_merge(self, store):
        """Project and tasks replace, logs append, metadata merges."""
        store.update(project={"name": "alpha"}, tasks=[{"id": 1}], metadata={"a": 1})
        store.update(project={"name": "beta"}, analysis={"complexity": 4}, metadata={"b": 2})

        context = store.get_context()
        assert context["current_project"] == {"name": "beta"}
        assert context["active_tasks"] == [{"id": 1}]
        assert context["analysis_history"][0]["complexity"] == 4
        assert "timestamp" in context["analysis_history"][0]
        assert context["metadata"] == {"a": 1, "b": 2}
        assert context["last_updated"] is not None

    def test_unknown_field_rejected(self, store):
        """Unknown keys raise ContextError without snapshotting."""
        with pytest.raises(ContextError):
            store.update(weather="sunny")
        assert store.history_size == 0

    def test_history_capped(self, store):
        """At most 100 snapshots are kept."""
        for i in range(150):
            store.update(metadata={"i": i})
        assert store.history_size == 100

    def test_get_context_is_a_copy(self, store):
        """Callers cannot mutate the store through get_context."""
        store.update(tasks=[{"id": 1}])
        store.get_context()["active_tasks"].append({"id": 2})
        assert len(store.get_context()["active_tasks"]) == 1


class TestRestore:
    """Tests for snapshot restore."""

    def test_restore_snapshot(self, store):
        """Snapshots hold the state before each update."""
        store.update(project={"name": "alpha"})
        store.update(project={"name": "beta"})

        assert store.restore(1)
        assert store.get_context()["current_project"] == {"name": "alpha"}
        assert store.restore(0)
        assert store.get_context()["current_project"] is None

    @pytest.mark.parametrize("index", [-1, 1, 50])
    def test_restore_out_of_range(self, store, index):
        """Out-of-range indexes report False and change nothing."""
        store.update(project={"name": "alpha"})
        assert store.restore(index) is False
        assert store.get_context()["current_project"] == {"name": "alpha"}


class TestRelevantContext:
    """Tests for get_relevant_context."""

    def test_task_operation(self, store):
        """Task operations see active tasks and structuring insights."""
        store.update(
            project={"name": "alpha"},
            tasks=[{"id": 1}],
            insight={"source": SOURCE_STRUCTURING, "data": "t"},
        )
        store.update(insight={"source": SOURCE_ANALYSIS, "data": "a"})

        relevant = store.get_relevant_context("next-task")
        assert relevant["project"] == {"name": "alpha"}
        assert relevant["active_tasks"] == [{"id": 1}]
        assert "recent_analysis" not in relevant
        assert [i["data"] for i in relevant["insights"]] == ["t"]

    def test_analyze_operation(self, store):
        """Analysis operations see recent analyses and their insights."""
        for n in range(7):
            store.update(analysis={"n": n})
        store.update(insight={"source": SOURCE_ANALYSIS, "data": "a"})

        relevant = store.get_relevant_context("analyze")
        assert [a["n"] for a in relevant["recent_analysis"]] == [2, 3, 4, 5, 6]
        assert "active_tasks" not in relevant
        assert len(relevant["insights"]) == 1

    def test_flags_and_sync_insights(self, store):
        """Flags force sections in; sync insights are always relevant."""
        for n in range(5):
            store.update(decision={"n": n})
        for n in range(7):
            store.update(insight={"source": SOURCE_SYNC, "n": n})

        relevant = store.get_relevant_context("mystery", include_active_tasks=True, include_decisions=True)
        assert relevant["active_tasks"] == []
        assert [d["n"] for d in relevant["recent_decisions"]] == [2, 3, 4]
        assert [i["n"] for i in relevant["insights"]] == [2, 3, 4, 5, 6]


class TestSyncAndCleanup:
    """Tests for sync_results, cleanup and stats."""

    def test_sync_results(self, store):
        """Sync records insights and counts syncs."""
        results = {
            "analysis": {"complexity": 9, "recommendations": ["split it"]},
            "planning": {"tasks": 3},
        }
        sync = store.sync_results(results)
        store.sync_results({})

        assert sync["sync_id"].startswith("sync_")
        assert sync["results"] is results
        insight = store.get_context()["insights"][0]
        assert insight["source"] == SOURCE_SYNC
        assert insight["data"]["patterns"] == ["Hybrid analyze-and-plan operation executed"]
        assert insight["data"]["trends"] == ["High complexity trend detected"]
        assert insight["data"]["recommendations"] == ["split it"]
        assert store.get_stats()["sync_count"] == 2

    def test_cleanup_old_context(self, store):
        """Entries older than max_age are dropped."""
        store.update(analysis={"n": 1}, insight={"source": SOURCE_SYNC})
        store.update(decision={"n": 2})
        old = (datetime.now() - timedelta(days=2)).isoformat()
        store._context["analysis_history"][0]["timestamp"] = old
        store._context["decisions"][0]["timestamp"] = old

        assert store.cleanup_old_context() == 2
        context = store.get_context()
        assert context["analysis_history"] == []
        assert context["decisions"] == []
        assert len(context["insights"]) == 1

    def test_stats(self, store):
        store.update(tasks=[{"id": 1}, {"id": 2}])
        stats = store.get_stats()
        assert stats["active_tasks"] == 2
        assert stats["history_size"] == 1
        assert stats["max_history"] == 100
        assert stats["total_memory"] > 0

    def test_sync_id_format(self):
        """Ids carry a millisecond timestamp and a random suffix."""
        prefix, ms, suffix = generate_sync_id().split("_")
        assert prefix == "sync"
        assert ms.isdigit()
        assert len(suffix) == 9
