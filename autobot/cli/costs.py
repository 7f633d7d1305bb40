"""Cost CLI commands: summary, report."""

from __future__ import annotations

import asyncio
import json

import typer
from rich.console import Console
from rich.table import Table

from autobot.cli.runtime import build_runtime

costs_app = typer.Typer(help="Cost ledger reports.")
console = Console()


@costs_app.command("summary")
def summary_command(
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    config: str = typer.Option("", "--config", help="Optional config file path"),
) -> None:
    """Totals per service across the whole cost log."""
    runtime = build_runtime(config or None)
    summaries = asyncio.run(runtime.cost_api.get_service_cost_summaries())
    if as_json:
        typer.echo(json.dumps([row.to_dict() for row in summaries], ensure_ascii=False, indent=2))
        return
    if not summaries:
        typer.echo("No cost entries recorded.")
        return
    table = Table(title="Costs by service")
    for column in ("Service", "Cost", "Tokens", "Tasks", "Iterations"):
        table.add_column(column)
    for row in summaries:
        table.add_row(
            row.service_id,
            f"${row.total_cost:.4f}",
            str(row.total_tokens),
            str(row.task_count),
            str(row.iteration_count),
        )
    console.print(table)


@costs_app.command("report")
def report_command(
    service_id: str = typer.Argument(..., help="Service id or task budget key."),
    config: str = typer.Option("", "--config", help="Optional config file path"),
) -> None:
    """Full cost report for one service."""
    runtime = build_runtime(config or None)
    report = asyncio.run(runtime.cost_api.get_service_report(service_id))
    typer.echo(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
