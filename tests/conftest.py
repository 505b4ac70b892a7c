"""Shared fixtures."""

import logging

import pytest

from tandem.backends.analysis import AnalysisBackend
from tandem.backends.structuring import StructuringBackend
from tandem.logging import LogConfig, reset_loggers, set_config
from tandem.logging.handlers import CONSOLE_HANDLER_NAME
from tandem.metrics import MetricsCollector
from tandem.orchestrator import Coordinator, SyncManager


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path, monkeypatch):
    """Route structured logs and config lookups into a temp directory."""
    log_dir = tmp_path / "logs"
    set_config(LogConfig(log_dir=log_dir))
    reset_loggers()
    monkeypatch.setenv("TANDEM_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.delenv("TANDEM_ENGINE", raising=False)

    yield log_dir

    reset_loggers()
    package_logger = logging.getLogger("tandem")
    package_logger.handlers = [h for h in package_logger.handlers if h.get_name() != CONSOLE_HANDLER_NAME]
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def structuring_backend():
    return StructuringBackend()


@pytest.fixture
def analysis_backend():
    return AnalysisBackend()


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def sync_manager(structuring_backend, analysis_backend, metrics):
    """SyncManager over in-process backends; tests call initialize()."""
    return SyncManager(structuring=structuring_backend, analysis=analysis_backend, metrics=metrics)


@pytest.fixture
def coordinator(sync_manager, metrics):
    return Coordinator(sync_manager=sync_manager, metrics=metrics)
