"""
Tandem Orchestrator Logging System.

Two layers:
- Console: every module logs through `logging.getLogger(__name__)`;
  `configure_logging()` attaches `[timestamp] [LEVEL] [component]` handlers
  (stdout, errors to stderr) with the threshold from TANDEM_LOG_LEVEL.
- Structured: decision and workflow entries written as JSONL.

Usage:
    from tandem.logging import decision_logger, DecisionLogEntry, now_iso

    entry = DecisionLogEntry(timestamp=now_iso(), decision_id="...", engine="basic", operation="add-task")
    decision_logger.info(entry.to_json())

Structured logs are written to ~/.tandem/logs/:
    - decisions.jsonl: decision engine evaluations
    - workflows.jsonl: hybrid workflow executions
"""

import logging
import threading
from typing import Any

from .config import LogConfig, get_config, set_config
from .entries import DecisionLogEntry, WorkflowLogEntry, now_iso
from .handlers import configure_console_logging, structured_logger

# Lazy-initialized loggers to avoid creating files before needed
_decision_logger: logging.Logger | None = None
_workflow_logger: logging.Logger | None = None
_init_lock = threading.Lock()


def configure_logging(level: str | None = None, cli: bool = False) -> logging.Logger:
    """
    Configure console logging for the `tandem` package.

    Args:
        level: Override level; defaults to the configured console level
        cli: Default to the quieter CLI level instead

    Returns:
        The package logger
    """
    config = get_config()
    default = config.cli_level if cli else config.console_level
    return configure_console_logging(level or default)


def reset_loggers() -> None:
    """Drop the structured loggers so the next use re-reads the config."""
    global _decision_logger, _workflow_logger
    with _init_lock:
        for logger in (_decision_logger, _workflow_logger):
            if logger is not None:
                for handler in logger.handlers:
                    handler.close()
                logger.handlers.clear()
        _decision_logger = None
        _workflow_logger = None


def _ensure_loggers() -> None:
    """Initialize structured loggers on first use."""
    global _decision_logger, _workflow_logger

    if _decision_logger is not None:
        return

    with _init_lock:
        if _decision_logger is not None:
            return

        config = get_config()

        if not config.jsonl_enabled:
            # Loggers without handlers and no propagation drop everything
            for name in ("tandem.structured.decisions", "tandem.structured.workflows"):
                silent = logging.getLogger(name)
                silent.handlers.clear()
                silent.addHandler(logging.NullHandler())
                silent.propagate = False
            _workflow_logger = logging.getLogger("tandem.structured.workflows")
            _decision_logger = logging.getLogger("tandem.structured.decisions")
            return

        config.ensure_log_dir()

        _workflow_logger = structured_logger(
            "tandem.structured.workflows",
            config.workflow_log_path,
            level=config.workflow_level,
            max_bytes=config.max_file_size_bytes,
            backup_count=config.backup_count,
        )

        _decision_logger = structured_logger(
            "tandem.structured.decisions",
            config.decision_log_path,
            level=config.decision_level,
            max_bytes=config.max_file_size_bytes,
            backup_count=config.backup_count,
        )


class _LazyLogger:
    """Lazy wrapper that initializes the actual logger on first use."""

    def __init__(self, name: str):
        self._name = name

    def _get_logger(self) -> Any:
        _ensure_loggers()
        if self._name == "decisions":
            return _decision_logger
        return _workflow_logger

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._get_logger().debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._get_logger().info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._get_logger().warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._get_logger().error(msg, *args, **kwargs)


# Public logger instances
decision_logger = _LazyLogger("decisions")
workflow_logger = _LazyLogger("workflows")


__all__ = [
    # Loggers
    "decision_logger",
    "workflow_logger",
    "configure_logging",
    "reset_loggers",
    # Log entries
    "DecisionLogEntry",
    "WorkflowLogEntry",
    # Utilities
    "now_iso",
    # Config
    "LogConfig",
    "get_config",
    "set_config",
]
