"""Operational commands: integrity checks and dedup pruning."""

import typer
from rich.table import Table

from . import ops_app, console
from ..daemon.control import prune_dedup_records
from ..daemon.db import get_db_connection
from ..daemon.errors import GatewayError
from ..daemon.utils.invariants import run_all_checks


@ops_app.command("integrity")
def integrity():
    """Run ledger invariants; exit 1 if any fails."""
    with get_db_connection() as conn:
        results = run_all_checks(conn)

    table = Table(title="Ledger invariants")
    table.add_column("Check")
    table.add_column("Result")
    table.add_column("Detail")
    for result in results:
        status = "[green]PASS[/green]" if result.passed else "[red]FAIL[/red]"
        table.add_row(result.name, status, result.detail or "")
    console.print(table)

    if not all(r.passed for r in results):
        raise typer.Exit(1)


@ops_app.command("prune-dedup")
def prune_dedup(older_than_hours: int = typer.Option(..., "--older-than-hours", min=1)):
    """Delete dedup records older than the retention window."""
    try:
        removed = prune_dedup_records(older_than_hours)
    except GatewayError as exc:
        console.print(f"[red]Error: {exc.message}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Removed {removed} dedup records.[/green]")
