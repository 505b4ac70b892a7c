"""
Tandem Orchestrator - Route work between task structuring and stepwise analysis.

A coordination layer that decides, per operation, whether the
task-structuring backend (TaskMaster), the analysis backend (Sequential
Thinking), or a hybrid workflow across both should handle it.
"""

__version__ = "0.1.0"

from tandem.exceptions import (
    BackendError,
    CommandError,
    ConfigError,
    ContextError,
    DecisionError,
    TandemError,
    UnknownCommandError,
    WorkflowError,
)

__all__ = [
    "__version__",
    "TandemError",
    "ConfigError",
    "BackendError",
    "DecisionError",
    "WorkflowError",
    "CommandError",
    "UnknownCommandError",
    "ContextError",
]
