"""Budget CLI commands: show, allocate, add."""

from __future__ import annotations

import asyncio
import json

import typer
from rich.console import Console
from rich.table import Table

from autobot.cli.runtime import build_runtime

budget_app = typer.Typer(help="Inspect and fund budgets.")
console = Console()


def _config_option() -> str:
    return typer.Option("", "--config", help="Optional config file path")


@budget_app.command("show")
def show_command(
    key: str = typer.Argument("", help="Budget key; omit to list all budgets."),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    config: str = _config_option(),
) -> None:
    runtime = build_runtime(config or None)
    if key:
        budget = asyncio.run(runtime.cost_api.get_budget(key))
        if budget is None:
            typer.echo(f"No budget allocated for service: {key}", err=True)
            raise typer.Exit(1)
        budgets = [budget]
    else:
        budgets = asyncio.run(runtime.cost_api.get_all_budgets())

    if as_json:
        typer.echo(json.dumps([budget.to_dict() for budget in budgets], ensure_ascii=False, indent=2))
        return
    if not budgets:
        typer.echo("No budgets allocated.")
        return
    table = Table(title="Budgets")
    for column in ("Key", "Allocated", "Spent", "Remaining", "Alert", "Exhausted"):
        table.add_column(column)
    for budget in budgets:
        table.add_row(
            budget.key,
            f"${budget.allocated:.2f}",
            f"${budget.spent:.4f}",
            f"${budget.remaining:.4f}",
            f"{budget.alert_threshold:.0%}",
            "yes" if budget.is_exhausted else "no",
        )
    console.print(table)


@budget_app.command("allocate")
def allocate_command(
    key: str = typer.Argument(..., help="Budget key."),
    amount: float = typer.Argument(..., min=0.0, help="Allocated amount in USD."),
    alert_threshold: float = typer.Option(0.8, "--alert-threshold", min=0.0, max=1.0),
    config: str = _config_option(),
) -> None:
    runtime = build_runtime(config or None)
    budget = asyncio.run(runtime.cost_api.allocate_budget(key, amount, alert_threshold))
    typer.echo(json.dumps(budget.to_dict(), ensure_ascii=False, indent=2))


@budget_app.command("add")
def add_command(
    key: str = typer.Argument(..., help="Budget key."),
    amount: float = typer.Argument(..., min=0.0, help="Amount in USD to add."),
    config: str = _config_option(),
) -> None:
    runtime = build_runtime(config or None)

    async def _add() -> dict:
        budget = await runtime.cost_api.add_budget(key, amount)
        await runtime.bus.drain()
        return budget.to_dict()

    typer.echo(json.dumps(asyncio.run(_add()), ensure_ascii=False, indent=2))
