"""
Tandem CLI components.

- typer_commands.py: CLI entry points (decide, run, commands, status, report)
"""

from tandem.cli.typer_commands import (
    app,
    decide,
    list_commands,
    main,
    report,
    run,
    status,
)

__all__ = [
    "app",
    "main",
    "decide",
    "run",
    "list_commands",
    "status",
    "report",
]
