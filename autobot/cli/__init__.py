"""CLI tools: autobot serve, autobot init, autobot budget, autobot costs, autobot tasks."""

from __future__ import annotations

import sys
from importlib import metadata

import typer

from autobot.cli.budget import budget_app
from autobot.cli.costs import costs_app
from autobot.cli.init_config import init_config_command
from autobot.cli.serve import serve_command
from autobot.cli.tasks import tasks_app

app = typer.Typer(
    name="autobot",
    help="autobot: scheduled and standalone model-driven task fleet.",
    no_args_is_help=True,
)
app.add_typer(budget_app, name="budget")
app.add_typer(costs_app, name="costs")
app.add_typer(tasks_app, name="tasks")


@app.command("init")
def init_command(
    path: str = typer.Option(".", "--path", help="Output directory"),
    force: bool = typer.Option(False, "--force", help="Overwrite existing autobot.yaml"),
) -> None:
    """Generate default autobot.yaml in target directory."""
    try:
        init_config_command(path=path, force=force)
    except FileExistsError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from exc


@app.command("serve")
def serve(
    config: str = typer.Option("", "--config", help="Optional config file path"),
    host: str = typer.Option("", "--host", help="Override api.host"),
    port: int = typer.Option(0, "--port", help="Override api.port"),
) -> None:
    """Run the scheduler and HTTP API until interrupted."""
    serve_command(config=config or None, host=host or None, port=port or None)


@app.command("version")
def version_command() -> None:
    """Print installed package version."""
    try:
        version = metadata.version("autobot")
    except metadata.PackageNotFoundError:
        version = "unknown"
    typer.echo(f"autobot {version}")


def main() -> None:
    app(prog_name="autobot", args=sys.argv[1:])


if __name__ == "__main__":
    main()
