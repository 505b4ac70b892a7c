"""Tests for the logging package."""

import json
import logging

import pytest

from tandem.logging import (
    DecisionLogEntry,
    LogConfig,
    WorkflowLogEntry,
    configure_logging,
    decision_logger,
    get_config,
    now_iso,
    reset_loggers,
    set_config,
    workflow_logger,
)
from tandem.logging.handlers import ComponentFormatter
from tandem.logging.viewer import calculate_stats, parse_since, percentile, query_logs


class TestLogConfig:
    """Tests for LogConfig."""

    def test_from_env(self, tmp_path, monkeypatch):
        """Environment variables drive level, dir and jsonl flag."""
        monkeypatch.setenv("TANDEM_LOG_LEVEL", "warn")
        monkeypatch.setenv("TANDEM_LOG_DIR", str(tmp_path))
        monkeypatch.setenv("TANDEM_LOG_JSONL", "false")
        config = LogConfig.from_env()
        assert config.console_level == "WARNING"
        assert config.cli_level == "WARNING"
        assert config.log_dir == tmp_path
        assert config.jsonl_enabled is False

    def test_invalid_level_ignored(self, monkeypatch):
        """Unknown levels leave the default in place."""
        monkeypatch.setenv("TANDEM_LOG_LEVEL", "LOUD")
        config = LogConfig.from_env()
        assert config.console_level == "INFO"
        assert config.cli_level == "WARNING"

    def test_log_paths(self, tmp_path):
        """Structured logs live under log_dir."""
        config = LogConfig(log_dir=tmp_path)
        assert config.decision_log_path == tmp_path / "decisions.jsonl"
        assert config.workflow_log_path == tmp_path / "workflows.jsonl"


class TestStructuredLoggers:
    """Tests for JSONL decision and workflow loggers."""

    def test_decision_entry_written(self, isolated_logs):
        """A decision entry becomes one JSON line."""
        entry = DecisionLogEntry(
            timestamp=now_iso(),
            decision_id="decision_1_abc",
            engine="basic",
            operation="add-task",
            backend="taskmaster",
            confidence=0.9,
        )
        decision_logger.info(entry.to_json())

        lines = (isolated_logs / "decisions.jsonl").read_text().strip().splitlines()
        assert len(lines) == 1
        data = json.loads(lines[0])
        assert data["operation"] == "add-task"
        assert DecisionLogEntry.from_dict(data) == entry

    def test_workflow_entry_written(self, isolated_logs):
        """Workflow entries go to their own file."""
        entry = WorkflowLogEntry(timestamp=now_iso(), sync_id="sync_1", total_steps=3)
        workflow_logger.info(entry.to_json())

        data = json.loads((isolated_logs / "workflows.jsonl").read_text())
        assert data["sync_id"] == "sync_1"
        assert data["total_steps"] == 3

    def test_jsonl_disabled_writes_nothing(self, tmp_path):
        """With JSONL disabled no files are created."""
        set_config(LogConfig(log_dir=tmp_path / "off", jsonl_enabled=False))
        reset_loggers()
        decision_logger.info("{}")
        assert not (tmp_path / "off").exists()

    def test_config_is_shared(self, isolated_logs):
        """get_config returns what set_config installed."""
        assert get_config().log_dir == isolated_logs


class TestConsoleLogging:
    """Tests for console formatting."""

    def test_component_format(self):
        """Lines carry timestamp, level and the last logger name segment."""
        record = logging.LogRecord(
            "tandem.routing.engine", logging.WARNING, __file__, 1, "careful", None, None
        )
        line = ComponentFormatter().format(record)
        assert "[WARNING]" in line
        assert "[engine]" in line
        assert line.endswith("careful")

    def test_configure_replaces_handlers(self):
        """Calling configure twice does not duplicate handlers."""
        logger = configure_logging("DEBUG")
        count = len(logger.handlers)
        configure_logging("INFO")
        assert len(logger.handlers) == count
        assert logger.level == logging.INFO


class TestViewer:
    """Tests for log querying and stats."""

    def test_parse_since_relative(self):
        """Relative specs parse to the past."""
        assert parse_since("1h") < parse_since("30m")

    def test_parse_since_invalid(self):
        """Garbage raises ValueError."""
        with pytest.raises(ValueError):
            parse_since("yesterday-ish")

    def test_percentile(self):
        """Percentile interpolates."""
        assert percentile([], 50) == 0.0
        assert percentile([1, 2, 3, 4, 5], 50) == 3

    def test_query_and_stats(self, isolated_logs):
        """Logged entries are summarized by source."""
        for backend in ("taskmaster", "hybrid"):
            decision_logger.info(DecisionLogEntry(
                timestamp=now_iso(), decision_id="d", engine="basic",
                operation="op", backend=backend, confidence=0.8,
            ).to_json())
        workflow_logger.info(WorkflowLogEntry(
            timestamp=now_iso(), sync_id="s", success=True, duration_ms=12.0,
        ).to_json())

        entries = query_logs("all")
        stats = calculate_stats(entries)
        assert stats["decisions"] == 2
        assert stats["decision_backends"] == {"taskmaster": 1, "hybrid": 1}
        assert stats["avg_confidence"] == 0.8
        assert stats["workflows"] == 1
        assert stats["workflow_success_rate"] == 100.0
