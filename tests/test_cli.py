"""Tests for the typer CLI."""

import logging

import pytest
from rich.console import Console
from typer.testing import CliRunner

from tandem.cli import typer_commands
from tandem.cli.typer_commands import app
from tandem.logging import LogConfig, set_config


@pytest.fixture
def runner(monkeypatch):
    """CLI runner with a wide, colorless console."""
    monkeypatch.setattr(typer_commands, "console", Console(width=200, color_system=None))
    return CliRunner()


class TestDecide:
    """Tests for `tandem decide`."""

    def test_direct_match(self, runner):
        result = runner.invoke(app, ["decide", "add-task"])
        assert result.exit_code == 0
        assert "taskmaster" in result.output
        assert "0.90" in result.output
        assert "Validate input" in result.output

    def test_context_options(self, runner):
        """Complexity and extra context feed the scoring."""
        result = runner.invoke(app, ["decide", "mystery", "-c", "9", "--set", "requiresReasoning=true"])
        assert result.exit_code == 0
        assert "hybrid" in result.output
        assert "High complexity detected" in result.output

    def test_json_output(self, runner):
        result = runner.invoke(app, ["decide", "analyze-and-plan", "--json"])
        assert result.exit_code == 0
        assert '"backend": "hybrid"' in result.output
        assert "Análise do problema" in result.output

    def test_advanced_engine_option(self, runner):
        result = runner.invoke(app, ["--engine", "advanced", "decide", "add-task", "--json"])
        assert result.exit_code == 0
        assert '"engine": "advanced"' in result.output

    def test_bad_pair(self, runner):
        result = runner.invoke(app, ["decide", "add-task", "--set", "oops"])
        assert result.exit_code != 0

    def test_unknown_engine(self, runner):
        result = runner.invoke(app, ["--engine", "oracle", "decide", "add-task"])
        assert result.exit_code == 1


class TestRun:
    """Tests for `tandem run`."""

    def test_hybrid_command(self, runner):
        result = runner.invoke(app, ["run", "analyze-and-plan", "-p", "problem=Migrar banco"])
        assert result.exit_code == 0
        assert "4/4" in result.output
        assert "Review the tasks" in result.output

    def test_metrics_report(self, runner):
        result = runner.invoke(app, ["run", "smart-next-task", "--metrics", "--strict"])
        assert result.exit_code == 0
        assert "Metrics" in result.output
        assert "Recommendation: priority" in result.output

    def test_json_output(self, runner):
        result = runner.invoke(app, ["run", "validate-solution", "--json"])
        assert result.exit_code == 0
        assert '"command": "validate-solution"' in result.output

    def test_unknown_command(self, runner):
        result = runner.invoke(app, ["run", "add-task"])
        assert result.exit_code == 1
        assert "Unknown command: add-task" in result.output
        assert "analyze-and-plan" in result.output


class TestInfoCommands:
    """Tests for commands, status and report."""

    def test_commands(self, runner):
        result = runner.invoke(app, ["commands"])
        assert result.exit_code == 0
        assert "analyze_and_plan" in result.output
        assert "execute_structuring" in result.output

    def test_status(self, runner):
        result = runner.invoke(app, ["--engine", "advanced", "status"])
        assert result.exit_code == 0
        assert "advanced" in result.output
        assert "connected" in result.output
        assert "Rules: taskmaster" in result.output

    def test_report_empty(self, runner):
        result = runner.invoke(app, ["report"])
        assert result.exit_code == 0
        assert "No log entries found" in result.output

    def test_report_after_activity(self, runner):
        runner.invoke(app, ["decide", "add-task"])
        runner.invoke(app, ["run", "analyze-and-plan"])
        result = runner.invoke(app, ["report", "--since", "1h"])
        assert result.exit_code == 0
        assert "Decisions" in result.output
        assert "100.0%" in result.output

    def test_report_bad_since(self, runner):
        result = runner.invoke(app, ["report", "--since", "whenever"])
        assert result.exit_code == 1


class TestLogLevel:
    """Tests for console log level selection."""

    def test_env_level_applies(self, runner, tmp_path, monkeypatch):
        """TANDEM_LOG_LEVEL sets the console level for CLI runs."""
        monkeypatch.setenv("TANDEM_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("TANDEM_LOG_DIR", str(tmp_path / "logs"))
        set_config(LogConfig.from_env())

        result = runner.invoke(app, ["decide", "add-task"])
        assert result.exit_code == 0
        assert logging.getLogger("tandem").level == logging.DEBUG

    def test_quiet_by_default(self, runner):
        """Without the variable, CLI runs log warnings and above."""
        result = runner.invoke(app, ["decide", "add-task"])
        assert result.exit_code == 0
        assert logging.getLogger("tandem").level == logging.WARNING

    def test_option_overrides_env(self, runner, tmp_path, monkeypatch):
        """--log-level wins over the environment."""
        monkeypatch.setenv("TANDEM_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("TANDEM_LOG_DIR", str(tmp_path / "logs"))
        set_config(LogConfig.from_env())

        result = runner.invoke(app, ["--log-level", "ERROR", "decide", "add-task"])
        assert result.exit_code == 0
        assert logging.getLogger("tandem").level == logging.ERROR
