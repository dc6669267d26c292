"""gengate database package: connection, schema, integrity.

Re-exports public API so consumers can use:
    from .db import get_db_connection, init_db, check_db_integrity
"""

from .connection import get_db_connection, get_db_path, get_db_dsn, is_postgres
from .schema import init_db, LEDGER_REASONS, ROLES
from .integrity import check_db_integrity
from .transaction import run_in_transaction

__all__ = [
    "get_db_path",
    "get_db_dsn",
    "is_postgres",
    "get_db_connection",
    "init_db",
    "check_db_integrity",
    "run_in_transaction",
    "LEDGER_REASONS",
    "ROLES",
]
