"""Orchestration: backend calls, hybrid workflows, coordinator and command facade."""

from tandem.orchestrator.commands import UnifiedCommands
from tandem.orchestrator.coordinator import HYBRID_COMMANDS, CommandResult, Coordinator
from tandem.orchestrator.hybrid_logic import HybridLogic
from tandem.orchestrator.sync_manager import CallResult, SyncManager
from tandem.orchestrator.workflows import StepResult, WorkflowResult, parse_step

__all__ = [
    "CallResult",
    "CommandResult",
    "Coordinator",
    "HYBRID_COMMANDS",
    "HybridLogic",
    "StepResult",
    "SyncManager",
    "UnifiedCommands",
    "WorkflowResult",
    "parse_step",
]
