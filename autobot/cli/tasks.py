"""Standalone task CLI commands: list, create, delete."""

from __future__ import annotations

import asyncio
import json

import typer
from pydantic import ValidationError
from rich.console import Console

from autobot.cli.runtime import build_runtime
from autobot.services.base import ProgressEventType, TaskProgressEvent
from autobot.tasks.models import CreateTaskInput, StandaloneTask

tasks_app = typer.Typer(help="Standalone task operations (list, create, delete).")
console = Console()


def _print_event(event: TaskProgressEvent) -> None:
    if event.type == ProgressEventType.CHUNK and event.text:
        console.print(event.text, end="", markup=False, highlight=False)
    elif event.type == ProgressEventType.STEP and event.step:
        console.print(f"\n[cyan]step {event.step.get('index')}[/cyan] {event.step.get('label')}")
    elif event.type == ProgressEventType.COST and event.cost is not None:
        console.print(f"[dim]cost ${event.cost:.4f}[/dim]")
    elif event.type == ProgressEventType.DONE:
        console.print(f"\n[green]done[/green] total ${event.cost or 0.0:.4f}")
    elif event.type == ProgressEventType.ERROR:
        console.print(f"\n[red]error[/red] {event.error}")


@tasks_app.command("list")
def list_command(
    service_type: str = typer.Option("", "--service-type", help="Filter by service type."),
    config: str = typer.Option("", "--config", help="Optional config file path"),
) -> None:
    runtime = build_runtime(config or None)
    tasks = asyncio.run(runtime.executor.list_tasks(service_type or None))
    if not tasks:
        typer.echo("No tasks found.")
        return
    for task in tasks:
        typer.echo(
            f"{task.task_id}  {task.service_type.value:<14} {task.status.value:<10} "
            f"${task.cost_spent:.4f}/${task.budget:.2f}  cycles={task.cycles_completed}"
        )


@tasks_app.command("create")
def create_command(
    payload: str = typer.Argument(..., help="Task definition as JSON, or @path to a JSON file."),
    config: str = typer.Option("", "--config", help="Optional config file path"),
) -> None:
    """Create a task; with run_now the first run streams here until it finishes."""
    raw = payload
    if payload.startswith("@"):
        with open(payload[1:], encoding="utf-8") as handle:
            raw = handle.read()
    try:
        task_input = CreateTaskInput.model_validate_json(raw)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    runtime = build_runtime(config or None)

    async def _create() -> StandaloneTask:
        if task_input.run_now:
            task = await runtime.executor.create_and_run(task_input, on_progress=_print_event)
            await runtime.executor.shutdown()
        else:
            task = await runtime.executor.create_and_schedule(task_input)
        await runtime.engine.shutdown()
        return await runtime.executor.get_task(task.task_id) or task

    try:
        task = asyncio.run(_create())
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(json.dumps(task.model_dump(mode="json"), ensure_ascii=False, indent=2))
    if task.schedule is not None:
        typer.echo("Schedule registered; it fires while `autobot serve` is running.")


@tasks_app.command("delete")
def delete_command(
    task_id: str = typer.Argument(..., help="Task id."),
    config: str = typer.Option("", "--config", help="Optional config file path"),
) -> None:
    runtime = build_runtime(config or None)

    async def _delete() -> bool:
        if await runtime.executor.get_task(task_id) is None:
            return False
        await runtime.executor.delete_task(task_id)
        return True

    if not asyncio.run(_delete()):
        typer.echo(f"Task not found: {task_id}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Deleted task {task_id}.")
