"""Tests for SyncManager backend calls."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from tandem.backends.base import Backend, BackendKind
from tandem.backends.structuring import StructuringBackend
from tandem.exceptions import BackendConnectionError, BackendExecutionError
from tandem.orchestrator import SyncManager


class RefusingBackend(StructuringBackend):
    async def connect(self) -> bool:
        return False


class ExplodingBackend(StructuringBackend):
    async def execute(self, operation, params):
        raise RuntimeError("disk full")


class TestLifecycle:
    """Tests for connecting and closing backends."""

    @pytest.mark.asyncio
    async def test_initialize_connects(self, sync_manager, structuring_backend, analysis_backend):
        """Both backends are connected after initialize."""
        await sync_manager.initialize()
        assert structuring_backend.is_connected
        assert analysis_backend.is_connected

        await sync_manager.close()
        assert not structuring_backend.is_connected

    @pytest.mark.asyncio
    async def test_initialize_failure(self):
        """A refused connection raises BackendConnectionError."""
        manager = SyncManager(structuring=RefusingBackend())
        with pytest.raises(BackendConnectionError):
            await manager.initialize()


class TestBackendCalls:
    """Tests for run_on_backend and its helpers."""

    @pytest.mark.asyncio
    async def test_params_enriched(self, sync_manager, structuring_backend):
        """Calls carry sync_id, timestamp and source alongside the params."""
        await sync_manager.initialize()
        call = await sync_manager.run_structuring("add-task", {"title": "Write docs"})

        assert call.success
        assert call.backend is BackendKind.STRUCTURING
        operation, params = structuring_backend.calls[0]
        assert operation == "add-task"
        assert params["title"] == "Write docs"
        assert params["source"] == "sync-manager"
        assert params["sync_id"] == call.sync_id
        assert call.sync_id.startswith("sync_")
        assert "timestamp" in params

    @pytest.mark.asyncio
    async def test_queue_drained(self, sync_manager):
        """Each call is synchronized immediately."""
        await sync_manager.initialize()
        await sync_manager.run_structuring("get-tasks")
        await sync_manager.run_structuring("next-task")

        stats = sync_manager.get_stats()
        assert stats["queue_size"] == 0
        assert stats["is_processing"] is False
        assert stats["synced_count"] == 2
        assert stats["structuring_connected"] is True

    @pytest.mark.asyncio
    async def test_backend_error_becomes_failed_result(self, metrics):
        """Backend exceptions never escape."""
        manager = SyncManager(structuring=ExplodingBackend(), metrics=metrics)
        await manager.initialize()
        call = await manager.run_structuring("add-task")

        assert call.success is False
        assert call.error == "disk full"
        assert call.result is None
        assert metrics.errors == 1
        assert manager.synced_count == 0

    @pytest.mark.asyncio
    async def test_not_connected(self, sync_manager):
        """Calling before initialize fails softly."""
        call = await sync_manager.run_structuring("add-task")
        assert call.success is False
        assert "not connected" in call.error

    @pytest.mark.asyncio
    async def test_analysis_gets_insights(self, sync_manager, analysis_backend, metrics):
        """Analysis results are annotated with extracted insights."""
        analysis_backend.responder = lambda op, params: {
            "result": "Cenário complexo. Existe risco de atraso. Recomendo dividir a entrega."
        }
        await sync_manager.initialize()
        call = await sync_manager.run_analysis("Avaliar", total_thoughts=3)

        assert call.operation == "sequential-thinking"
        assert analysis_backend.calls[0][1]["thought"] == "Avaliar"
        assert analysis_backend.calls[0][1]["total_thoughts"] == 3
        assert call.insights.complexity == 6
        assert "atraso" in call.insights.risks
        assert call.result["analysis"]["recommendations"] == ["dividir a entrega"]
        assert "processed_at" in call.result
        assert call.to_dict()["analysis"]["complexity"] == 6
        assert metrics.analysis_usage == 1
        assert metrics.api_calls == 1

    @pytest.mark.asyncio
    async def test_structured_insights_preferred(self, sync_manager, analysis_backend):
        """Structured insights from the backend are used as-is."""
        analysis_backend.responder = lambda op, params: {"insights": {"complexity": 8, "risks": ["scope"]}}
        await sync_manager.initialize()
        call = await sync_manager.run_analysis("Avaliar")
        assert call.insights.source == "structured"
        assert call.insights.risks == ["scope"]

    @pytest.mark.asyncio
    async def test_hybrid_not_callable(self, sync_manager):
        """Hybrid is a workflow, not a backend."""
        with pytest.raises(ValueError):
            await sync_manager.run_on_backend(BackendKind.HYBRID, "analyze-and-plan")

    @pytest.mark.asyncio
    async def test_unsuccessful_response(self, metrics):
        """A response reporting success=False yields a failed call."""
        backend = StructuringBackend(responses={"remove-task": {"success": False}})
        manager = SyncManager(structuring=backend, metrics=metrics)
        await manager.initialize()
        call = await manager.run_structuring("remove-task")
        assert call.success is False
        assert call.error is None

    @pytest.mark.asyncio
    async def test_mocked_backend_error(self):
        """Typed backend errors are reported like any other failure."""
        backend = MagicMock(spec=Backend)
        backend.connect = AsyncMock(return_value=True)
        backend.execute = AsyncMock(
            side_effect=BackendExecutionError("rejected", backend="taskmaster", operation="add-task")
        )
        manager = SyncManager(structuring=backend)
        await manager.initialize()

        call = await manager.run_structuring("add-task", {"title": "x"})
        assert call.success is False
        assert "rejected" in call.error
        backend.execute.assert_awaited_once()
        assert backend.execute.await_args.args[1]["title"] == "x"
