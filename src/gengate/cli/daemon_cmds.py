"""Daemon lifecycle commands: start, stop, status."""

import sys
import signal
import subprocess
import os

import typer

from . import daemon_app, console, GENGATE_DIR, PID_FILE, LOG_DIR, CONFIG_DIR, get_daemon_pid
from ..daemon.db import get_db_path, init_db


@daemon_app.command("start")
def start_daemon(port: int = 9000, host: str = "127.0.0.1", reload: bool = False):
    """Start the gengate daemon."""
    GENGATE_DIR.mkdir(parents=True, exist_ok=True)
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    try:
        init_db()
    except Exception as exc:
        console.print(f"[red]Database init failed, daemon not started: {exc}[/red]")
        raise typer.Exit(1)

    pid = get_daemon_pid()
    if pid:
        try:
            os.kill(pid, 0)
            console.print(f"[red]Daemon already running (PID {pid})[/red]")
            return
        except ProcessLookupError:
            console.print("[yellow]Stale PID file found, removing...[/yellow]")
            PID_FILE.unlink()

    console.print(f"[green]Starting gengate daemon on {host}:{port}...[/green]")

    env = os.environ.copy()
    env["GENGATE_LOG_DIR"] = str(LOG_DIR)
    env["GENGATE_CONFIG_DIR"] = str(CONFIG_DIR)

    cmd = [
        sys.executable, "-m", "uvicorn",
        "gengate.daemon.app:app",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        cmd.append("--reload")

    with open(LOG_DIR / "daemon.out", "a") as log_file:
        proc = subprocess.Popen(cmd, env=env, stdout=log_file, stderr=subprocess.STDOUT)

    PID_FILE.write_text(str(proc.pid))

    console.print(f"Daemon started with PID {proc.pid}")
    console.print(f"Logs: {LOG_DIR}/daemon.out")


@daemon_app.command("stop")
def stop_daemon():
    """Stop the gengate daemon."""
    pid = get_daemon_pid()
    if not pid:
        console.print("[red]Daemon not running (PID file not found)[/red]")
        return

    try:
        os.kill(pid, signal.SIGTERM)
        console.print(f"[green]Stopped daemon (PID {pid})[/green]")
    except ProcessLookupError:
        console.print("[yellow]Daemon process not found, cleaning up PID file[/yellow]")
    if PID_FILE.exists():
        PID_FILE.unlink()


@daemon_app.command("status")
def status_daemon():
    """Check daemon status."""
    pid = get_daemon_pid()
    if pid:
        try:
            os.kill(pid, 0)
            console.print(f"[green]Daemon is running (PID {pid})[/green]")
            console.print(f"Configuration: {CONFIG_DIR}")
            console.print(f"Database: {get_db_path()}")
            return
        except ProcessLookupError:
            pass

    console.print("[red]Daemon is NOT running[/red]")
