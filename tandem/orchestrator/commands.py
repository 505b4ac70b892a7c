"""
Unified Commands - One entry point for hybrid and single-backend commands.

Commands are addressed by name in execute_command(), which is what
execute_batch() and create_pipeline() build on. Pipeline arguments of the
form "$<step id>.<path>" are replaced by values from earlier step results.
"""

import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from tandem.backends.base import BackendKind
from tandem.exceptions import UnknownCommandError
from tandem.logging import now_iso
from tandem.orchestrator.coordinator import HYBRID_COMMANDS, CommandResult, Coordinator

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "$"


@dataclass(frozen=True)
class CommandInfo:
    name: str
    group: str
    description: str
    params: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "params": list(self.params)}


COMMANDS: list[CommandInfo] = [
    CommandInfo("analyze_and_plan", "hybrid", HYBRID_COMMANDS["analyze-and-plan"], ("problem", "requirements?")),
    CommandInfo("smart_next_task", "hybrid", HYBRID_COMMANDS["smart-next-task"], ("project_id?", "filters?")),
    CommandInfo("expand_with_thinking", "hybrid", HYBRID_COMMANDS["expand-with-thinking"], ("task_id",)),
    CommandInfo("validate_solution", "hybrid", HYBRID_COMMANDS["validate-solution"], ("task_id", "solution")),
    CommandInfo("execute_structuring", "structuring", "Run one structuring operation", ("operation", "params?")),
    CommandInfo("execute_analysis", "analysis", "Run one analysis thought", ("thought", "options?")),
    CommandInfo("get_system_status", "system", "Report system status"),
    CommandInfo("get_available_commands", "system", "List available commands"),
]


def generate_pipeline_id() -> str:
    return f"pipeline_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def get_nested_value(obj: Any, path: str) -> Any:
    """Follow a dotted path through mappings and attributes; None if missing."""
    current = obj
    for key in path.split("."):
        if current is None:
            return None
        if isinstance(current, dict):
            current = current.get(key)
        elif isinstance(current, (list, tuple)) and key.isdigit():
            index = int(key)
            current = current[index] if index < len(current) else None
        else:
            current = getattr(current, key, None)
    return current


def resolve_references(args: list[Any], results: dict[str, Any]) -> list[Any]:
    """Replace "$step.path" arguments with values from earlier results."""
    resolved = []
    for arg in args:
        if isinstance(arg, str) and arg.startswith(REFERENCE_PREFIX):
            step_id, _, path = arg[len(REFERENCE_PREFIX):].partition(".")
            value = results.get(step_id)
            resolved.append(get_nested_value(value, path) if path else value)
        else:
            resolved.append(arg)
    return resolved


class UnifiedCommands:
    """Facade over the coordinator."""

    def __init__(self, coordinator: Coordinator | None = None):
        self.coordinator = coordinator or Coordinator()
        self._handlers: dict[str, Callable[..., Awaitable[Any]]] = {
            "analyze_and_plan": self.analyze_and_plan,
            "smart_next_task": self.smart_next_task,
            "expand_with_thinking": self.expand_with_thinking,
            "validate_solution": self.validate_solution,
            "execute_structuring": self.execute_structuring,
            "execute_analysis": self.execute_analysis,
            "get_system_status": self.get_system_status,
        }

    # =========================================================================
    # HYBRID COMMANDS
    # =========================================================================

    async def analyze_and_plan(self, problem: str, requirements: str = "", **context: Any) -> CommandResult:
        return await self.coordinator.execute_hybrid_command(
            "analyze-and-plan",
            {"problem": problem, "requirements": requirements, "description": problem, **context},
        )

    async def smart_next_task(
        self,
        project_id: str | None = None,
        filters: dict[str, Any] | None = None,
        **context: Any,
    ) -> CommandResult:
        return await self.coordinator.execute_hybrid_command(
            "smart-next-task",
            {"project_id": project_id, "filters": filters or {}, **context},
        )

    async def expand_with_thinking(self, task_id: str, **context: Any) -> CommandResult:
        return await self.coordinator.execute_hybrid_command(
            "expand-with-thinking", {"task_id": task_id, **context}
        )

    async def validate_solution(self, task_id: str, solution: str, **context: Any) -> CommandResult:
        return await self.coordinator.execute_hybrid_command(
            "validate-solution", {"task_id": task_id, "solution": solution, **context}
        )

    # =========================================================================
    # SINGLE-BACKEND COMMANDS
    # =========================================================================

    async def execute_structuring(self, operation: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run an operation on the structuring backend, warning if the engine disagrees."""
        await self.coordinator.initialize()
        params = dict(params or {})

        decision = self.coordinator.decide_backend(operation, params)
        warning = None
        if decision.backend is not BackendKind.STRUCTURING:
            warning = f"Operation {operation} would be routed to {decision.backend.value}"
            logger.warning(warning)

        call = await self.coordinator.sync_manager.run_structuring(operation, params)
        return {**call.to_dict(), "decision": decision.to_dict(), "warning": warning}

    async def execute_analysis(self, thought: str, **options: Any) -> dict[str, Any]:
        """Run a single analysis thought."""
        await self.coordinator.initialize()
        params = {
            "next_thought_needed": True,
            "thought_number": 1,
            "total_thoughts": 5,
            **options,
        }
        call = await self.coordinator.sync_manager.run_analysis(thought, **params)
        return call.to_dict()

    # =========================================================================
    # SYSTEM
    # =========================================================================

    async def get_system_status(self) -> dict[str, Any]:
        if not self.coordinator.initialized:
            return {"initialized": False, "timestamp": now_iso()}
        return {
            "initialized": True,
            "coordinator": self.coordinator.get_status(),
            "sync_manager": self.coordinator.sync_manager.get_stats(),
            "engine": self.coordinator.engine.get_stats(),
            "metrics": self.coordinator.metrics.generate_report(),
            "timestamp": now_iso(),
        }

    def get_available_commands(self) -> dict[str, list[dict[str, Any]]]:
        """Commands grouped by backend."""
        grouped: dict[str, list[dict[str, Any]]] = {}
        for info in COMMANDS:
            grouped.setdefault(info.group, []).append(info.to_dict())
        return grouped

    async def execute_command(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """
        Run a command by name.

        Raises:
            UnknownCommandError: If no command has this name
        """
        if name == "get_available_commands":
            return self.get_available_commands()

        handler = self._handlers.get(name)
        if handler is None:
            raise UnknownCommandError(name, [info.name for info in COMMANDS])

        logger.info(f"Executing command: {name}")
        return await handler(*args, **kwargs)

    # =========================================================================
    # COMPOSITION
    # =========================================================================

    async def execute_batch(self, commands: list[dict[str, Any]]) -> dict[str, Any]:
        """
        Run commands in sequence.

        Each entry is {"name", "args"?, "kwargs"?, "stop_on_error"?}. A failing
        command is recorded and the batch continues unless it asked to stop.
        """
        logger.info(f"Executing batch of {len(commands)} commands")
        results = []

        for spec in commands:
            name = spec["name"]
            try:
                result = await self.execute_command(name, *spec.get("args", []), **spec.get("kwargs", {}))
                results.append({"command": name, "success": True, "result": result})
            except Exception as e:
                logger.error(f"Batch command {name} failed: {e}")
                results.append({"command": name, "success": False, "error": str(e)})
                if spec.get("stop_on_error"):
                    break

        return {
            "success": True,
            "total_commands": len(commands),
            "successful_commands": sum(1 for r in results if r["success"]),
            "results": results,
        }

    async def create_pipeline(self, config: dict[str, Any]) -> dict[str, Any]:
        """
        Run a pipeline of dependent steps.

        Args:
            config: {"steps": [{"id", "command", "args"?}]}; string args
                starting with "$" reference earlier step results

        Returns:
            Pipeline record with status "completed" or "failed"
        """
        pipeline: dict[str, Any] = {
            "id": generate_pipeline_id(),
            "config": config,
            "status": "running",
            "results": {},
            "start_time": now_iso(),
        }
        logger.info(f"Running pipeline {pipeline['id']}")

        try:
            for step in config.get("steps", []):
                args = resolve_references(step.get("args", []), pipeline["results"])
                pipeline["results"][step["id"]] = await self.execute_command(step["command"], *args)
                logger.info(f"Pipeline step {step['id']} completed")
            pipeline["status"] = "completed"
        except Exception as e:
            logger.error(f"Pipeline {pipeline['id']} failed: {e}")
            pipeline["status"] = "failed"
            pipeline["error"] = str(e)

        pipeline["end_time"] = now_iso()
        return pipeline
