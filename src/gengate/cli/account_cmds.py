"""Account commands: create, list, balance, topup, history, rotate-token."""

import typer
from rich.table import Table

from . import account_app, console
from ..daemon.auth import issue_token
from ..daemon.errors import GatewayError
from ..daemon.ledger import (
    LedgerReason,
    Role,
    create_account,
    credit,
    get_balance,
    list_accounts,
    list_entries,
    set_token_hash,
)


def _fail(exc: GatewayError):
    console.print(f"[red]Error: {exc.message}[/red]")
    raise typer.Exit(1)


@account_app.command("create")
def create(
    identity: str,
    role: Role = typer.Option(Role.ORDINARY, "--role", help="ordinary or privileged"),
    balance: int = typer.Option(0, "--balance", min=0, help="Opening balance, booked as a top-up"),
):
    """Create an account and print its API token (shown once)."""
    token, token_sha = issue_token()
    try:
        account = create_account(identity, role=role, balance=balance, token_hash=token_sha)
    except GatewayError as exc:
        _fail(exc)

    console.print(f"[green]Account '{account.identity}' created.[/green]")
    console.print(f"Role: {account.role}")
    console.print(f"Balance: {account.balance}")
    console.print(f"Token: [bold]{token}[/bold]")


@account_app.command("list")
def list_cmd():
    """List all accounts."""
    try:
        accounts = list_accounts()
    except GatewayError as exc:
        _fail(exc)

    table = Table(title="gengate accounts")
    table.add_column("Identity")
    table.add_column("Role")
    table.add_column("Balance", justify="right")
    table.add_column("Created")
    for account in accounts:
        table.add_row(account.identity, str(account.role), str(account.balance), str(account.created_at))
    console.print(table)


@account_app.command("balance")
def balance(identity: str):
    """Show the current balance."""
    try:
        current = get_balance(identity)
    except GatewayError as exc:
        _fail(exc)
    console.print(f"{identity}: {current}")


@account_app.command("topup")
def topup(identity: str, amount: int):
    """Credit an account (operator top-up)."""
    try:
        new_balance = credit(identity, amount, LedgerReason.TOP_UP)
    except GatewayError as exc:
        _fail(exc)
    console.print(f"[green]Credited {amount} to '{identity}'. Balance: {new_balance}[/green]")


@account_app.command("history")
def history(identity: str, limit: int = typer.Option(50, "--limit", min=1, max=1000)):
    """Show the ledger entries for an account, oldest first."""
    try:
        entries = list_entries(identity, limit=limit)
    except GatewayError as exc:
        _fail(exc)

    table = Table(title=f"Ledger: {identity}")
    table.add_column("#", justify="right")
    table.add_column("Delta", justify="right")
    table.add_column("Reason")
    table.add_column("Request ID")
    table.add_column("At")
    for entry in entries:
        table.add_row(str(entry.id), f"{entry.delta:+d}", str(entry.reason), entry.request_id or "", entry.created_at)
    console.print(table)


@account_app.command("rotate-token")
def rotate_token(identity: str):
    """Issue a new API token; the old one stops working."""
    token, token_sha = issue_token()
    try:
        set_token_hash(identity, token_sha)
    except GatewayError as exc:
        _fail(exc)
    console.print(f"[green]Token rotated for '{identity}'.[/green]")
    console.print(f"Token: [bold]{token}[/bold]")
