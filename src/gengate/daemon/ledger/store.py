"""Transactional balance ledger.

Every balance change and its audit entry are written in the same
transaction. The ``apply_*`` functions take an open connection and must be
called inside an existing transaction; the public wrappers open their own.
"""

from __future__ import annotations

from ..db import get_db_connection, run_in_transaction
from ..errors import InsufficientBalance, InvalidAmount, NotFound, StorageError
from ..utils.logging_config import StructuredLogger
from .models import LedgerEntry, LedgerReason, utc_now_iso

logger = StructuredLogger(__name__)


def _append_entry(conn, *, identity: str, delta: int, reason: LedgerReason, request_id: str | None) -> None:
    conn.execute(
        "INSERT INTO ledger_entries (identity, delta, reason, request_id, created_at) VALUES (?, ?, ?, ?, ?)",
        (identity, delta, str(reason), request_id, utc_now_iso()),
    )


def _account_exists(conn, identity: str) -> bool:
    row = conn.execute("SELECT 1 FROM accounts WHERE identity = ?", (identity,)).fetchone()
    return row is not None


def _require_positive(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(amount=amount)
    return amount


def apply_debit(
    conn,
    *,
    identity: str,
    amount: int = 1,
    reason: LedgerReason = LedgerReason.GENERATION_DEBIT,
    request_id: str | None = None,
) -> int:
    """Conditionally decrement balance and log ``-amount``. Returns the new balance."""
    _require_positive(amount)
    # The WHERE guard makes check-and-decrement one statement: under row locks
    # (PostgreSQL) or the IMMEDIATE write lock (SQLite) two debits can never
    # both see the last unit.
    rows = conn.execute(
        "UPDATE accounts SET balance = balance - ? WHERE identity = ? AND balance >= ? RETURNING balance",
        (amount, identity, amount),
    ).fetchall()
    if not rows:
        if not _account_exists(conn, identity):
            raise NotFound(identity=identity)
        raise InsufficientBalance(message="Tokens exhausted. Top up to continue.")

    _append_entry(conn, identity=identity, delta=-amount, reason=reason, request_id=request_id)
    return int(rows[0]["balance"])


def apply_credit(
    conn,
    *,
    identity: str,
    amount: int,
    reason: LedgerReason = LedgerReason.TOP_UP,
    request_id: str | None = None,
) -> int:
    """Increment balance and log ``+amount``. Returns the new balance."""
    _require_positive(amount)
    rows = conn.execute(
        "UPDATE accounts SET balance = balance + ? WHERE identity = ? RETURNING balance",
        (amount, identity),
    ).fetchall()
    if not rows:
        raise NotFound(identity=identity)

    _append_entry(conn, identity=identity, delta=amount, reason=reason, request_id=request_id)
    return int(rows[0]["balance"])


def apply_bypass(
    conn,
    *,
    identity: str,
    reason: LedgerReason = LedgerReason.ADMIN_BYPASS,
    request_id: str | None = None,
) -> None:
    """Log a zero-delta entry; balance is untouched."""
    if not _account_exists(conn, identity):
        raise NotFound(identity=identity)
    _append_entry(conn, identity=identity, delta=0, reason=reason, request_id=request_id)


def get_balance(identity: str) -> int:
    try:
        with get_db_connection() as conn:
            row = conn.execute("SELECT balance FROM accounts WHERE identity = ?", (identity,)).fetchone()
    except Exception as exc:
        logger.error("Balance read failed", identity=identity, error=str(exc))
        raise StorageError(operation="get_balance") from exc
    if row is None:
        raise NotFound(identity=identity)
    return int(row["balance"])


def debit(
    identity: str,
    amount: int = 1,
    reason: LedgerReason = LedgerReason.GENERATION_DEBIT,
    *,
    request_id: str | None = None,
) -> int:
    new_balance = run_in_transaction(
        lambda conn: apply_debit(conn, identity=identity, amount=amount, reason=reason, request_id=request_id),
        operation="debit",
        identity=identity,
    )
    logger.info("Balance debited", identity=identity, amount=amount, balance=new_balance, request_id=request_id)
    return new_balance


def credit(
    identity: str,
    amount: int,
    reason: LedgerReason = LedgerReason.TOP_UP,
    *,
    request_id: str | None = None,
) -> int:
    new_balance = run_in_transaction(
        lambda conn: apply_credit(conn, identity=identity, amount=amount, reason=reason, request_id=request_id),
        operation="credit",
        identity=identity,
    )
    logger.info("Balance credited", identity=identity, amount=amount, balance=new_balance, reason=str(reason))
    return new_balance


def record_bypass(
    identity: str,
    reason: LedgerReason = LedgerReason.ADMIN_BYPASS,
    *,
    request_id: str | None = None,
) -> None:
    run_in_transaction(
        lambda conn: apply_bypass(conn, identity=identity, reason=reason, request_id=request_id),
        operation="record_bypass",
        identity=identity,
    )
    logger.info("Bypass recorded", identity=identity, request_id=request_id)


def list_entries(identity: str, *, limit: int = 100) -> list[LedgerEntry]:
    """Audit trail for one identity, oldest first (last ``limit`` entries)."""
    try:
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT id, identity, delta, reason, request_id, created_at
                FROM ledger_entries
                WHERE identity = ?
                ORDER BY id DESC
                LIMIT ?
                """,
                (identity, int(limit)),
            ).fetchall()
    except Exception as exc:
        logger.error("Ledger read failed", identity=identity, error=str(exc))
        raise StorageError(operation="list_entries") from exc
    return [LedgerEntry.from_row(row) for row in reversed(rows)]
