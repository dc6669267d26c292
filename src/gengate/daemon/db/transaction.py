"""Single-transaction execution with the gateway's failure policy."""

from __future__ import annotations

from typing import Callable, TypeVar

from ..errors import GatewayError, StorageError
from ..utils.logging_config import StructuredLogger
from .connection import get_db_connection

logger = StructuredLogger(__name__)

T = TypeVar("T")


def run_in_transaction(work: Callable[..., T], *, operation: str, **log_fields) -> T:
    """Run ``work(conn)`` inside one write transaction.

    The value returned by ``work`` is committed. A GatewayError raised by
    ``work`` rolls back and propagates unchanged; any other failure rolls
    back and surfaces as StorageError, so nothing proceeds past a broken
    store.
    """
    try:
        with get_db_connection() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
                result = work(conn)
                conn.commit()
                return result
            except Exception:
                conn.rollback()
                raise
    except GatewayError:
        raise
    except Exception as exc:
        logger.error("Storage transaction failed", operation=operation, error=str(exc), **log_fields)
        raise StorageError(operation=operation) from exc
