"""Database integrity checks for schema + ledger invariants."""

from __future__ import annotations

from ..utils.invariants import run_all_checks
from ..utils.logging_config import StructuredLogger
from .connection import get_db_connection, is_postgres

logger = StructuredLogger(__name__)

REQUIRED_TABLES = (
    "accounts",
    "ledger_entries",
    "dedup_records",
)


def _table_names(conn) -> set[str]:
    if is_postgres():
        rows = conn.execute(
            "SELECT table_name FROM information_schema.tables WHERE table_schema = current_schema()"
        ).fetchall()
    else:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    return {row[0] for row in rows}


def check_db_integrity() -> bool:
    """Run fast physical+logical checks used by daemon startup."""
    with get_db_connection() as conn:
        if not is_postgres():
            quick = conn.execute("PRAGMA quick_check").fetchone()[0]
            if str(quick).lower() != "ok":
                logger.critical("Integrity Error: sqlite quick_check failed", result=str(quick))
                return False

        missing = [name for name in REQUIRED_TABLES if name not in _table_names(conn)]
        if missing:
            logger.critical("Integrity Error: missing tables", tables=missing)
            return False

        for result in run_all_checks(conn):
            if not result.passed:
                logger.critical("Integrity Error: invariant failed", invariant=result.name, detail=result.detail)
                return False
    return True
