"""Sessions command - Inspect file-backed sessions."""

import asyncio
import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from agentrelay.core.domain.items import ItemKind
from agentrelay.infrastructure.persistence.file_session import FileSession

app = typer.Typer(help="Session management")
console = Console()


def _work_dir(ctx: typer.Context) -> str:
    return (ctx.obj or {}).get("work_dir", ".agentrelay/sessions")


def _summarize(item) -> str:
    if item.kind in (ItemKind.USER_MESSAGE, ItemKind.ASSISTANT_MESSAGE):
        return item.content
    if item.kind is ItemKind.TOOL_CALL:
        return f"{item.name}({json.dumps(item.arguments, default=str)})"
    if item.kind is ItemKind.TOOL_RESULT:
        status = "ok" if item.success else f"error: {item.error}"
        return f"{item.name} -> {status}"
    if item.kind is ItemKind.HANDOFF:
        return f"{item.from_agent} -> {item.to_agent}"
    return ""


@app.command("list")
def list_sessions(ctx: typer.Context):
    """List all stored sessions."""
    work_dir = _work_dir(ctx)
    session_ids = FileSession.list_sessions(work_dir)

    table = Table(title="Agent Sessions")
    table.add_column("Session ID", style="cyan")
    table.add_column("Items", style="white", justify="right")

    for session_id in session_ids:
        items = asyncio.run(FileSession(session_id, work_dir).get_items())
        table.add_row(session_id, str(len(items)))

    console.print(table)


@app.command("show")
def show_session(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session ID"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Only the most recent N items"),
    raw: bool = typer.Option(False, "--json", help="Print items as JSON"),
):
    """Show the items of a session."""
    work_dir = _work_dir(ctx)
    if session_id not in FileSession.list_sessions(work_dir):
        console.print(f"[red]Session '{session_id}' not found[/red]")
        raise typer.Exit(1)

    items = asyncio.run(FileSession(session_id, work_dir).get_items(limit=limit))

    if raw:
        console.print_json(data=[item.to_dict() for item in items])
        return

    table = Table(title=f"Session {session_id}")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Kind", style="cyan")
    table.add_column("Content", style="white")
    for index, item in enumerate(items, start=1):
        table.add_row(str(index), item.kind.value, _summarize(item))
    console.print(table)


@app.command("clear")
def clear_session(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete all items of a session."""
    work_dir = _work_dir(ctx)
    if session_id not in FileSession.list_sessions(work_dir):
        console.print(f"[red]Session '{session_id}' not found[/red]")
        raise typer.Exit(1)

    if not yes and not typer.confirm(f"Clear session '{session_id}'?"):
        raise typer.Abort()

    asyncio.run(FileSession(session_id, work_dir).clear())
    console.print(f"[green]Session '{session_id}' cleared[/green]")
