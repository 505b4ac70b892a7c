"""
Logging Configuration for Tandem Orchestrator.

Defines paths, rotation settings and log levels.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class LogConfig:
    """Configuration for the Tandem logging system."""

    # Paths
    log_dir: Path = field(default_factory=lambda: Path.home() / ".tandem" / "logs")

    # File settings
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5

    # Log levels: DEBUG, INFO, WARNING, ERROR
    console_level: str = "INFO"
    # CLI runs stay quiet unless TANDEM_LOG_LEVEL asks otherwise
    cli_level: str = "WARNING"
    decision_level: str = "INFO"
    workflow_level: str = "INFO"

    # Structured JSONL output (decision and workflow entries)
    jsonl_enabled: bool = True

    @classmethod
    def from_env(cls) -> "LogConfig":
        """Load config from environment variables with defaults."""
        config = cls()

        # One variable drives every level; "warn" is accepted as an alias
        if level := os.environ.get("TANDEM_LOG_LEVEL"):
            level = level.upper()
            if level == "WARN":
                level = "WARNING"
            if level in LEVELS:
                config.console_level = level
                config.cli_level = level
                config.decision_level = level
                config.workflow_level = level

        if log_dir := os.environ.get("TANDEM_LOG_DIR"):
            config.log_dir = Path(log_dir)

        if max_size := os.environ.get("TANDEM_LOG_MAX_SIZE_MB"):
            try:
                config.max_file_size_bytes = int(max_size) * 1024 * 1024
            except ValueError:
                pass

        if os.environ.get("TANDEM_LOG_JSONL", "").lower() in ("0", "false", "no"):
            config.jsonl_enabled = False

        return config

    def ensure_log_dir(self) -> None:
        """Create log directory if it doesn't exist."""
        self.log_dir.mkdir(parents=True, exist_ok=True)

    @property
    def decision_log_path(self) -> Path:
        """Path to decision engine log."""
        return self.log_dir / "decisions.jsonl"

    @property
    def workflow_log_path(self) -> Path:
        """Path to workflow execution log."""
        return self.log_dir / "workflows.jsonl"


# Global config instance - initialized on first use
_config: LogConfig | None = None


def get_config() -> LogConfig:
    """Get the global log config, initializing from env if needed."""
    global _config
    if _config is None:
        _config = LogConfig.from_env()
    return _config


def set_config(config: LogConfig) -> None:
    """Set a custom log config (useful for testing)."""
    global _config
    _config = config
