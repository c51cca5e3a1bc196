"""agentrelay CLI entry point."""

import typer
from rich.console import Console

from agentrelay.api.cli.commands import sessions
from agentrelay.infrastructure.logging_config import configure_logging

app = typer.Typer(
    name="agentrelay",
    help="agentrelay - multi-agent run engine",
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

app.add_typer(sessions.app, name="sessions", help="Session management")


@app.callback()
def main(
    ctx: typer.Context,
    work_dir: str = typer.Option(
        ".agentrelay/sessions", "--work-dir", "-w", help="Session storage directory"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
):
    """agentrelay CLI."""
    configure_logging("DEBUG" if verbose else "WARNING")
    ctx.obj = {"work_dir": work_dir, "verbose": verbose}


@app.command()
def version():
    """Show agentrelay version."""
    from agentrelay import __version__

    console.print(f"[bold blue]agentrelay[/bold blue] version [cyan]{__version__}[/cyan]")


if __name__ == "__main__":
    app()
