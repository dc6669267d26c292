"""Account provisioning and lookup."""

from __future__ import annotations

from ..db import get_db_connection, run_in_transaction
from ..errors import NotFound, StorageError, ValidationError
from ..utils.logging_config import StructuredLogger
from .models import Account, LedgerReason, Role, utc_now_iso
from .store import apply_credit

logger = StructuredLogger(__name__)


def create_account(
    identity: str,
    *,
    role: Role | str = Role.ORDINARY,
    balance: int = 0,
    token_hash: str | None = None,
) -> Account:
    """Create an account. An opening balance is booked as a top-up entry."""
    identity = (identity or "").strip()
    if not identity:
        raise ValidationError("identity is required")
    try:
        role = Role(role)
    except ValueError:
        raise ValidationError(f"unknown role '{role}'") from None
    if balance < 0:
        raise ValidationError("opening balance cannot be negative")

    def _work(conn) -> Account:
        cur = conn.execute(
            """
            INSERT INTO accounts (identity, balance, role, token_hash, created_at)
            VALUES (?, 0, ?, ?, ?)
            ON CONFLICT(identity) DO NOTHING
            """,
            (identity, str(role), token_hash, utc_now_iso()),
        )
        if cur.rowcount == 0:
            raise ValidationError("account already exists", identity=identity)
        opening = 0
        if balance > 0:
            opening = apply_credit(conn, identity=identity, amount=balance, reason=LedgerReason.TOP_UP)
        return Account(identity=identity, balance=opening, role=role)

    account = run_in_transaction(_work, operation="create_account", identity=identity)
    logger.info("Account created", identity=identity, role=str(role), balance=account.balance)
    return account


def set_token_hash(identity: str, token_hash: str) -> None:
    def _work(conn) -> None:
        cur = conn.execute("UPDATE accounts SET token_hash = ? WHERE identity = ?", (token_hash, identity))
        if cur.rowcount == 0:
            raise NotFound(identity=identity)

    run_in_transaction(_work, operation="set_token_hash", identity=identity)


def _fetch_one(query: str, params: tuple, *, operation: str):
    try:
        with get_db_connection() as conn:
            return conn.execute(query, params).fetchone()
    except Exception as exc:
        logger.error("Account read failed", operation=operation, error=str(exc))
        raise StorageError(operation=operation) from exc


def find_account_by_token_hash(token_hash: str) -> Account | None:
    row = _fetch_one(
        "SELECT identity, balance, role, created_at FROM accounts WHERE token_hash = ?",
        (token_hash,),
        operation="find_account_by_token_hash",
    )
    return Account.from_row(row) if row else None


def list_accounts() -> list[Account]:
    try:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT identity, balance, role, created_at FROM accounts ORDER BY created_at ASC"
            ).fetchall()
    except Exception as exc:
        logger.error("Account read failed", operation="list_accounts", error=str(exc))
        raise StorageError(operation="list_accounts") from exc
    return [Account.from_row(row) for row in rows]
