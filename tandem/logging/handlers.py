"""
Custom Log Handlers for Tandem Orchestrator.

Component-tagged console output plus a rotating file handler for
structured JSON-line entries.
"""

import json
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

CONSOLE_HANDLER_NAME = "tandem-console"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024


class JSONLineFormatter(logging.Formatter):
    """
    Render each record as one JSON object.

    Decision and workflow entries arrive pre-serialized and pass through
    unchanged; plain messages are wrapped with their level and logger.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        try:
            payload = json.loads(message)
        except json.JSONDecodeError:
            payload = None
        if not isinstance(payload, dict):
            payload = {
                "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": message,
            }
        return json.dumps(payload, default=str, ensure_ascii=False)


class StructuredFileHandler(RotatingFileHandler):
    """Size-rotated `.jsonl` file, created on first write."""

    def __init__(
        self,
        path: Path,
        max_bytes: int = DEFAULT_MAX_BYTES,
        backup_count: int = 5,
    ):
        path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8", delay=True)
        self.setFormatter(JSONLineFormatter())


class ComponentFormatter(logging.Formatter):
    """
    Formatter producing `[timestamp] [LEVEL] [component] message`.

    The component is the last dotted segment of the logger name, so
    `tandem.orchestrator.sync_manager` is tagged `sync_manager`.
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).isoformat(timespec="milliseconds")
        component = record.name.rsplit(".", 1)[-1]
        line = f"[{timestamp}] [{record.levelname}] [{component}] {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class _BelowLevelFilter(logging.Filter):
    """Pass records strictly below a level (stdout gets everything under ERROR)."""

    def __init__(self, level: int):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


def configure_console_logging(level: str = "INFO", logger_name: str = "tandem") -> logging.Logger:
    """
    Attach leveled console handlers to the package logger.

    Records below ERROR go to stdout, ERROR and above to stderr. Calling
    this again replaces the previous console handlers.

    Args:
        level: Threshold level name (DEBUG, INFO, WARNING, ERROR)
        logger_name: Logger to configure

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    logger.handlers = [h for h in logger.handlers if h.get_name() != CONSOLE_HANDLER_NAME]

    formatter = ComponentFormatter()

    out_handler = logging.StreamHandler(sys.stdout)
    out_handler.set_name(CONSOLE_HANDLER_NAME)
    out_handler.setFormatter(formatter)
    out_handler.addFilter(_BelowLevelFilter(logging.ERROR))

    err_handler = logging.StreamHandler(sys.stderr)
    err_handler.set_name(CONSOLE_HANDLER_NAME)
    err_handler.setFormatter(formatter)
    err_handler.setLevel(logging.ERROR)

    logger.addHandler(out_handler)
    logger.addHandler(err_handler)
    return logger


def structured_logger(
    name: str,
    path: Path,
    level: str = "INFO",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Bind a non-propagating logger to a structured entry file.

    Any handlers already on the logger are closed and replaced, so a
    reconfigured log directory takes effect immediately.
    """
    logger = logging.getLogger(name)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.addHandler(StructuredFileHandler(path, max_bytes=max_bytes, backup_count=backup_count))
    logger.propagate = False
    return logger
