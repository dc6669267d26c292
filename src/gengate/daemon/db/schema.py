"""Database schema initialization for gengate."""

from ..utils.logging_config import StructuredLogger
from .connection import get_db_connection, get_db_path, is_postgres

logger = StructuredLogger(__name__)

LEDGER_REASONS = ("generation-debit", "admin-bypass", "top-up")
ROLES = ("ordinary", "privileged")


def _quoted(values) -> str:
    return ", ".join(f"'{v}'" for v in values)


def _schema_statements(postgres: bool) -> list[str]:
    id_column = "BIGSERIAL PRIMARY KEY" if postgres else "INTEGER PRIMARY KEY AUTOINCREMENT"
    return [
        # Accounts: the ledger store is the only writer of balance
        f"""
        CREATE TABLE IF NOT EXISTS accounts (
            identity TEXT PRIMARY KEY,
            balance INTEGER NOT NULL DEFAULT 0,
            role TEXT NOT NULL DEFAULT 'ordinary',
            token_hash TEXT UNIQUE,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            CHECK (balance >= 0),
            CHECK (role IN ({_quoted(ROLES)}))
        )
        """,
        # Append-only audit log of balance deltas
        f"""
        CREATE TABLE IF NOT EXISTS ledger_entries (
            id {id_column},
            identity TEXT NOT NULL REFERENCES accounts(identity),
            delta INTEGER NOT NULL,
            reason TEXT NOT NULL,
            request_id TEXT,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            CHECK (reason IN ({_quoted(LEDGER_REASONS)}))
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_ledger_entries_identity ON ledger_entries (identity, id)",
        # One row per accepted (identity, request_id); the key is the dedup guarantee
        """
        CREATE TABLE IF NOT EXISTS dedup_records (
            identity TEXT NOT NULL,
            request_id TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (identity, request_id)
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_dedup_records_created_at ON dedup_records (created_at)",
    ]


def init_db():
    """Initialize the database with the required schema."""
    postgres = is_postgres()
    logger.info("Initializing database", path=get_db_path(), backend="postgres" if postgres else "sqlite")
    with get_db_connection() as conn:
        if not postgres:
            # WAL mode for concurrency
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")

        conn.execute("BEGIN")
        try:
            for statement in _schema_statements(postgres):
                conn.execute(statement)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
    logger.info("Database initialized successfully")
