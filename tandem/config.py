"""
Tandem Orchestrator - Configuration Management

Handles loading the flat JSON settings file and environment overrides.
Settings are stored in ~/.config/tandem/config.json
"""

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from tandem.exceptions import ConfigError


# Configuration paths
CONFIG_DIR = Path.home() / ".config" / "tandem"
CONFIG_FILE = CONFIG_DIR / "config.json"

ENGINE_CHOICES = ("basic", "advanced")


@dataclass
class TandemConfig:
    """Main configuration container for Tandem."""

    engine: str = "basic"  # basic or advanced decision engine
    structuring_model: str = "claude-3-haiku-20240307"
    analysis_model: str = "claude-3-sonnet-20240229"
    complex_task_model: str = "claude-3-sonnet-20240229"
    auto_trigger_threshold: int = 7  # Complexity above which analysis is favored
    cache_ttl: int = 3600  # Seconds
    batch_size: int = 5
    max_retries: int = 2
    pattern_cache_size: int = 500  # LRU bound for learned patterns
    # Keys we don't know about are kept, never validated
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.engine not in ENGINE_CHOICES:
            raise ConfigError(
                f"Unknown decision engine '{self.engine}'",
                {"choices": list(ENGINE_CHOICES)},
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a flat dictionary for JSON serialization."""
        data = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "extra"}
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TandemConfig":
        """Create config from a flat dictionary, keeping unknown keys in extra."""
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        return cls(**kwargs, extra=extra)

    def merged(self, overrides: dict[str, Any] | None) -> "TandemConfig":
        """Return a new config with overrides shallow-merged on top."""
        if not overrides:
            return self
        return TandemConfig.from_dict({**self.to_dict(), **overrides})


def get_config_path() -> Path:
    """Get config file path, honoring the TANDEM_CONFIG override."""
    if env_path := os.environ.get("TANDEM_CONFIG"):
        return Path(env_path).expanduser()
    return CONFIG_FILE


def load_config(path: Path | None = None, overrides: dict[str, Any] | None = None) -> TandemConfig:
    """
    Load configuration from file and environment.

    Args:
        path: Explicit config file (defaults to get_config_path())
        overrides: Keys merged shallowly over the file contents

    Returns:
        TandemConfig with all settings loaded

    Raises:
        ConfigError: If the file is not valid JSON or not an object
    """
    config_path = path or get_config_path()
    data: dict[str, Any] = {}

    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(
                f"Invalid JSON in {config_path}",
                {"error": str(e)},
            )

        if not isinstance(data, dict):
            raise ConfigError(
                f"Config in {config_path} must be a JSON object",
                {"type": type(data).__name__},
            )

    if engine := os.environ.get("TANDEM_ENGINE"):
        data["engine"] = engine

    return TandemConfig.from_dict({**data, **(overrides or {})})


def save_config(config: TandemConfig, path: Path | None = None) -> None:
    """
    Save configuration to file.

    Args:
        config: TandemConfig to save
        path: Target file (defaults to get_config_path())
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)
