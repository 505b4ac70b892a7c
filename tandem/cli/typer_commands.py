"""
Tandem CLI - Typer Commands

  tandem decide <operation>   Show which backend would handle an operation
  tandem run <command>        Execute a hybrid command end to end
  tandem commands             List the unified commands
  tandem status               Initialize and report system status
  tandem report               Summarize the structured decision/workflow logs
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tandem.config import ENGINE_CHOICES, TandemConfig, load_config
from tandem.exceptions import ConfigError, TandemError, UnknownCommandError
from tandem.logging import configure_logging
from tandem.logging.viewer import calculate_stats, query_logs
from tandem.metrics import format_cost
from tandem.orchestrator import Coordinator, UnifiedCommands
from tandem.orchestrator.coordinator import CommandResult
from tandem.routing import Decision

logger = logging.getLogger(__name__)
console = Console()

app = typer.Typer(
    name="tandem",
    help="Route work between a task-structuring backend and a stepwise-analysis backend",
    add_completion=False,
    no_args_is_help=True,
)

BACKEND_STYLES = {"taskmaster": "green", "sequential": "magenta", "hybrid": "cyan"}


@app.callback()
def callback(
    ctx: typer.Context,
    engine: str = typer.Option(None, "--engine", "-e", help=f"Decision engine: {', '.join(ENGINE_CHOICES)}"),
    config_path: Path = typer.Option(None, "--config", help="Path to config.json"),
    log_level: str = typer.Option(None, "--log-level", help="Console log level (DEBUG, INFO, WARNING, ERROR)"),
) -> None:
    """Tandem orchestrator command line."""
    configure_logging(log_level, cli=True)
    overrides = {"engine": engine} if engine else None
    try:
        ctx.obj = load_config(config_path, overrides=overrides)
    except ConfigError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _parse_pairs(pairs: list[str] | None) -> dict[str, Any]:
    """Parse key=value options; values are read as JSON when possible."""
    parsed: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{pair}'")
        try:
            parsed[key] = json.loads(raw)
        except json.JSONDecodeError:
            parsed[key] = raw
    return parsed


def _backend_text(backend: str) -> str:
    style = BACKEND_STYLES.get(backend, "white")
    return f"[{style}]{backend}[/{style}]"


def show_decision(decision: Decision) -> None:
    """Render a decision as a panel plus a score table."""
    lines = [
        f"[bold]Backend:[/bold]    {_backend_text(decision.backend.value)}",
        f"[bold]Confidence:[/bold] {decision.confidence:.2f}",
        f"[bold]Reasoning:[/bold]  {decision.reasoning}",
    ]
    if decision.fallback:
        lines.append(f"[bold]Fallback:[/bold]   {_backend_text(decision.fallback.value)}")
    if decision.next_actions:
        lines.append(f"[bold]Next:[/bold]       {', '.join(decision.next_actions)}")
    if decision.error:
        lines.append(f"[red]Error:[/red]      {decision.error}")

    console.print(Panel("\n".join(lines), title=f"Decision: {decision.metadata.operation}", border_style="blue"))

    if decision.scores:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Backend")
        table.add_column("Score", justify="right")
        for kind, score in sorted(decision.scores.items(), key=lambda kv: kv[1], reverse=True):
            table.add_row(_backend_text(kind.value), f"{score:.3f}")
        console.print(table)

    if decision.workflow:
        for i, step in enumerate(decision.workflow, 1):
            console.print(f"  {i}. {step}")


def show_command_result(result: CommandResult) -> None:
    """Render workflow steps and summary of a hybrid command."""
    workflow = result.workflow
    table = Table(title=f"{result.command} ({workflow.sync_id})", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Step")
    table.add_column("Status")
    table.add_column("Insights", style="dim")

    for i, step in enumerate(workflow.results, 1):
        status = "[green]OK[/green]" if step.success else "[red]FAIL[/red]"
        analysis = step.analysis
        insights = ""
        if analysis:
            insights = f"complexity {analysis.get('complexity')}, {len(analysis.get('risks') or [])} risks"
        table.add_row(str(i), step.step, status, insights)

    if not workflow.success:
        table.add_row(str(len(workflow.results) + 1), workflow.failed_step or "?", "[red]ERROR[/red]", workflow.error or "")

    console.print(table)

    summary = workflow.summary
    if summary:
        console.print(
            f"[bold]{summary.successful_steps}/{summary.total_steps}[/bold] steps succeeded "
            f"in {summary.duration_ms:.1f}ms"
        )
    for step in result.next_steps:
        console.print(f"  [cyan]-[/cyan] {step}")
    if result.recommendation:
        rec = result.recommendation
        console.print(f"Recommendation: priority {rec['priority']}, estimate {rec['estimated_time']}")


def show_metrics_report(report: dict[str, Any]) -> None:
    overview = report["overview"]
    perf = report["performance"]
    costs = report["costs"]
    lines = [
        f"Tasks: {overview['total_tasks']}  Success: {overview['success_rate_pct']:.1f}%  "
        f"Avg complexity: {overview['avg_complexity']:.2f}",
        f"API calls: {perf['api_calls']}  Tokens: {perf['tokens_used']:,}  Errors: {perf['errors']}",
        f"Estimated cost: {format_cost(costs['estimated_total'])}",
    ]
    for rec in report["recommendations"]:
        lines.append(f"[yellow]{rec['priority']}:[/yellow] {rec['action']}")
    console.print(Panel("\n".join(lines), title="Metrics", border_style="green"))


@app.command()
def decide(
    ctx: typer.Context,
    operation: str = typer.Argument(..., help="Operation name, e.g. add-task"),
    complexity: int = typer.Option(None, "--complexity", "-c", min=1, max=10, help="Complexity 1-10"),
    context_type: str = typer.Option(None, "--type", "-t", help="Context type label"),
    description: str = typer.Option(None, "--description", "-d", help="Free-text description"),
    extra: list[str] = typer.Option(None, "--set", "-s", help="Extra context as key=value (repeatable)"),
    as_json: bool = typer.Option(False, "--json", help="Print the decision as JSON"),
) -> None:
    """Show which backend would handle an operation."""
    config: TandemConfig = ctx.obj
    context = _parse_pairs(extra)
    if complexity is not None:
        context["complexity"] = complexity
    if context_type:
        context["type"] = context_type
    if description:
        context["description"] = description

    decision = Coordinator(config).decide_backend(operation, context)

    if as_json:
        console.print_json(data=decision.to_dict())
    else:
        show_decision(decision)


@app.command()
def run(
    ctx: typer.Context,
    command: str = typer.Argument(..., help="Hybrid command, e.g. analyze-and-plan"),
    params: list[str] = typer.Option(None, "--param", "-p", help="Command parameter as key=value (repeatable)"),
    strict: bool = typer.Option(False, "--strict", help="Exit non-zero if a workflow step fails"),
    metrics: bool = typer.Option(False, "--metrics", "-m", help="Show the metrics report afterwards"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """Execute a hybrid command end to end."""
    config: TandemConfig = ctx.obj
    coordinator = Coordinator(config)

    try:
        result = asyncio.run(coordinator.execute_hybrid_command(command, _parse_pairs(params)))
    except UnknownCommandError as e:
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        console.print(f"Available: {', '.join(e.details.get('available', []))}")
        raise typer.Exit(1)
    except TandemError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if as_json:
        console.print_json(data=result.to_dict())
    else:
        show_command_result(result)

    if metrics:
        show_metrics_report(coordinator.metrics.generate_report())

    if strict:
        try:
            result.workflow.raise_for_error()
        except TandemError as e:
            console.print(f"[bold red]{e}[/bold red]")
            raise typer.Exit(1)


@app.command(name="commands")
def list_commands() -> None:
    """List the unified commands."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Group", style="cyan")
    table.add_column("Command", style="green")
    table.add_column("Parameters", style="dim")
    table.add_column("Description")

    for group, entries in UnifiedCommands(Coordinator()).get_available_commands().items():
        for entry in entries:
            table.add_row(group, entry["name"], ", ".join(entry["params"]) or "-", entry["description"])

    console.print(table)


@app.command()
def status(ctx: typer.Context) -> None:
    """Initialize the backends and report system status."""
    commands = UnifiedCommands(Coordinator(ctx.obj))

    async def _status() -> dict[str, Any]:
        await commands.coordinator.initialize()
        return await commands.get_system_status()

    info = asyncio.run(_status())
    coordinator = info["coordinator"]
    sync = info["sync_manager"]

    table = Table(title="Tandem Status", show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("Engine", coordinator["engine"])
    table.add_row("Mode", coordinator["mode"])
    table.add_row("Structuring backend", "connected" if sync["structuring_connected"] else "disconnected")
    table.add_row("Analysis backend", "connected" if sync["analysis_connected"] else "disconnected")
    table.add_row("Sync queue", str(sync["queue_size"]))
    table.add_row("Hybrid actions", ", ".join(sync["hybrid_actions"]))
    for backend, sizes in info["engine"]["rules"].items():
        table.add_row(
            f"Rules: {backend}",
            f"{sizes['operations']} ops, {sizes['contexts']} contexts, {sizes['keywords']} keywords",
        )
    console.print(table)


@app.command()
def report(
    since: str = typer.Option(None, "--since", "-s", help="Time filter (ISO or relative: 1h, 30m, 2d)"),
    limit: int = typer.Option(1000, "--limit", "-n", help="Max entries to read"),
) -> None:
    """Summarize the structured decision and workflow logs."""
    try:
        entries = query_logs("all", since=since, limit=limit)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not entries:
        console.print("[yellow]No log entries found.[/yellow]")
        return

    stats = calculate_stats(entries)
    table = Table(title="Decision & Workflow Report", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    table.add_row("Decisions", str(stats["decisions"]))
    for backend, count in sorted(stats["decision_backends"].items()):
        table.add_row(f"  {backend}", str(count))
    table.add_row("Avg confidence", f"{stats['avg_confidence']:.3f}")
    table.add_row("Fallback decisions", str(stats["fallback_decisions"]))
    table.add_row("Workflows", str(stats["workflows"]))
    table.add_row("Workflow success", f"{stats['workflow_success_rate']:.1f}%")
    table.add_row("Workflow duration", f"p50 {stats['workflow_p50_ms']}ms, p95 {stats['workflow_p95_ms']}ms")
    console.print(table)

    for error in stats["errors"]:
        console.print(f"[red]-[/red] {error}")


def main() -> None:
    """Main entry point."""
    app()
