"""Request-id deduplication store."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC

from ..db import run_in_transaction
from ..ledger.models import utc_now_iso
from ..utils.logging_config import StructuredLogger

logger = StructuredLogger(__name__)


@dataclass(frozen=True)
class AdmitResult:
    admitted: bool


def synthesize_request_id(identity: str, now_ms: int | None = None) -> str:
    """Fallback id for callers that send none.

    Two retries landing in the same millisecond collapse into one; anything
    else is a new request. Callers wanting real idempotency send their own id.
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return f"{identity}-{now_ms}"


def admit_in(conn, *, identity: str, request_id: str) -> AdmitResult:
    """Put-if-absent on (identity, request_id). Must be called inside an existing transaction."""
    cur = conn.execute(
        """
        INSERT INTO dedup_records (identity, request_id, created_at)
        VALUES (?, ?, ?)
        ON CONFLICT(identity, request_id) DO NOTHING
        """,
        (identity, request_id, utc_now_iso()),
    )
    return AdmitResult(admitted=cur.rowcount == 1)


def try_admit(identity: str, request_id: str) -> AdmitResult:
    result = run_in_transaction(
        lambda conn: admit_in(conn, identity=identity, request_id=request_id),
        operation="try_admit",
        identity=identity,
        request_id=request_id,
    )
    if not result.admitted:
        logger.info("Duplicate request id", identity=identity, request_id=request_id)
    return result


def prune_dedup_records(older_than_hours: int) -> int:
    """Delete dedup records older than the retention window. Returns rows removed."""
    if older_than_hours < 1:
        raise ValueError("retention window must be at least one hour")
    cutoff = (datetime.now(UTC) - timedelta(hours=older_than_hours)).isoformat()
    removed = run_in_transaction(
        lambda conn: conn.execute("DELETE FROM dedup_records WHERE created_at < ?", (cutoff,)).rowcount,
        operation="prune_dedup_records",
    )
    if removed:
        logger.info("Pruned dedup records", removed=removed, cutoff=cutoff)
    return removed
