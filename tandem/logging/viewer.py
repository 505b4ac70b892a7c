"""
Log Viewer Utilities for Tandem Orchestrator.

Query and summarize the structured decision and workflow logs.
Used by the `tandem report` CLI command.
"""

import json
import math
import re
from collections.abc import Iterator
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from .config import get_config

_RELATIVE = re.compile(r"(\d+)\s*([mhdw])")
_UNITS = {"m": "minutes", "h": "hours", "d": "days", "w": "weeks"}


def parse_since(since: str) -> datetime:
    """
    Turn `--since` into a cutoff: an ISO timestamp, or an offset back from
    now such as "30m", "1h", "2d" or "1w".
    """
    relative = _RELATIVE.fullmatch(since.strip().lower())
    if relative:
        amount, unit = relative.groups()
        return datetime.now() - timedelta(**{_UNITS[unit]: int(amount)})
    try:
        return datetime.fromisoformat(since)
    except ValueError:
        raise ValueError(f"Cannot read time '{since}': expected ISO or 30m/1h/2d/1w") from None


def _after(entry: dict[str, Any], cutoff: datetime) -> bool:
    try:
        return datetime.fromisoformat(entry["timestamp"]) >= cutoff
    except (KeyError, TypeError, ValueError):
        return False


def read_jsonl(filepath: Path, since: datetime | None = None) -> Iterator[dict[str, Any]]:
    """Yield the entries of a log file, dropping blank or corrupt lines."""
    if not filepath.is_file():
        return
    with filepath.open(encoding="utf-8") as handle:
        for raw in handle:
            if not raw.strip():
                continue
            try:
                entry = json.loads(raw)
            except json.JSONDecodeError:
                continue
            if since is None or _after(entry, since):
                yield entry


def query_logs(log_type: str = "all", since: str | None = None, limit: int = 500) -> list[dict[str, Any]]:
    """
    Query structured log entries.

    Args:
        log_type: "decisions", "workflows", or "all"
        since: Time filter (ISO or relative like "1h")
        limit: Max entries to return (most recent first)

    Returns:
        Entries tagged with `_source`
    """
    config = get_config()
    since_dt = parse_since(since) if since else None

    files: list[tuple[str, Path]] = []
    if log_type in ("decisions", "all"):
        files.append(("decisions", config.decision_log_path))
    if log_type in ("workflows", "all"):
        files.append(("workflows", config.workflow_log_path))

    results = []
    for source, filepath in files:
        for entry in read_jsonl(filepath, since=since_dt):
            entry["_source"] = source
            results.append(entry)

    results.sort(key=lambda x: x.get("timestamp", ""), reverse=True)
    return results[:limit]


def percentile(values: list[float], p: float) -> float:
    """Linear-interpolated percentile; 0.0 for no values."""
    if not values:
        return 0.0
    ordered = sorted(values)
    position = (len(ordered) - 1) * p / 100
    lower = math.floor(position)
    upper = min(lower + 1, len(ordered) - 1)
    return ordered[lower] + (position - lower) * (ordered[upper] - ordered[lower])


def calculate_stats(entries: list[dict[str, Any]]) -> dict[str, Any]:
    """Summarize decision and workflow entries."""
    decisions = [e for e in entries if e.get("_source") == "decisions"]
    workflows = [e for e in entries if e.get("_source") == "workflows"]

    backends: dict[str, int] = {}
    for e in decisions:
        backend = e.get("backend", "unknown")
        backends[backend] = backends.get(backend, 0) + 1

    confidences = [e.get("confidence", 0.0) for e in decisions]
    durations = [e.get("duration_ms", 0.0) for e in workflows]
    workflow_successes = sum(1 for e in workflows if e.get("success"))

    errors = [e["error"][:100] for e in decisions + workflows if e.get("error")]

    return {
        "decisions": len(decisions),
        "decision_backends": backends,
        "avg_confidence": round(sum(confidences) / len(confidences), 3) if confidences else 0.0,
        "fallback_decisions": sum(1 for e in decisions if e.get("is_fallback")),
        "workflows": len(workflows),
        "workflow_successes": workflow_successes,
        "workflow_success_rate": round(workflow_successes / len(workflows) * 100, 1) if workflows else 0.0,
        "workflow_p50_ms": round(percentile(durations, 50), 1),
        "workflow_p95_ms": round(percentile(durations, 95), 1),
        "errors": errors[:10],
    }
