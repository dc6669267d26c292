"""gengate CLI: modular command package."""

import typer
from pathlib import Path
from rich.console import Console

from .. import __version__
from ..daemon.db import get_db_path, init_db

# ── Shared state ────────────────────────────────────────────────────────────

app = typer.Typer(help="gengate - metered generation gateway")
console = Console()

# Sub-command groups
daemon_app = typer.Typer()
account_app = typer.Typer()
ops_app = typer.Typer()

app.add_typer(daemon_app, name="daemon", help="Manage the gengate daemon process")
app.add_typer(account_app, name="account", help="Manage accounts, balances and tokens")
app.add_typer(ops_app, name="ops", help="Integrity checks and maintenance")

# ── Path constants ──────────────────────────────────────────────────────────

GENGATE_DIR = Path.home() / ".gengate"
PID_FILE = GENGATE_DIR / "gengate.pid"
LOG_DIR = GENGATE_DIR / "logs"
CONFIG_DIR = GENGATE_DIR / "config"
GATEWAY_CONFIG_FILE = CONFIG_DIR / "gateway.yaml"

DEFAULT_GATEWAY_YAML = """version: 1

generator:
  base_url: https://generativelanguage.googleapis.com/v1beta
  model: gemini-2.5-flash-image
  api_key_env: GEMINI_API_KEY

metering:
  debit_amount: 1
  timeout_seconds: 30
  # dedup_retention_hours: 720
"""


# ── Shared helpers ──────────────────────────────────────────────────────────

def get_daemon_pid():
    if PID_FILE.exists():
        try:
            return int(PID_FILE.read_text().strip())
        except ValueError:
            return None
    return None


@app.command("version")
def version():
    """Print the gengate version."""
    console.print(__version__)


# ── Init command (lives at top level, so defined here) ──────────────────────

@app.command("init")
def init_gengate():
    """Initialize the database schema and local runtime folders."""
    console.print(f"[bold]Initializing gengate runtime in {GENGATE_DIR}...[/bold]")

    GENGATE_DIR.mkdir(parents=True, exist_ok=True)
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    if not GATEWAY_CONFIG_FILE.exists():
        console.print("Creating default gateway.yaml...")
        GATEWAY_CONFIG_FILE.write_text(DEFAULT_GATEWAY_YAML)

    try:
        init_db()
    except Exception as e:
        console.print(f"[red]Failed to initialize database: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Database initialized at {get_db_path()}.[/green]")


# ── Register submodule commands (import triggers decorator registration) ────

from . import daemon_cmds   # noqa: E402, F401
from . import account_cmds  # noqa: E402, F401
from . import ops_cmds      # noqa: E402, F401
