"""Ledger value types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, UTC
from enum import StrEnum


class Role(StrEnum):
    ORDINARY = "ordinary"
    PRIVILEGED = "privileged"


class LedgerReason(StrEnum):
    GENERATION_DEBIT = "generation-debit"
    ADMIN_BYPASS = "admin-bypass"
    TOP_UP = "top-up"


@dataclass(frozen=True)
class Account:
    identity: str
    balance: int
    role: Role
    created_at: str | None = None

    @classmethod
    def from_row(cls, row) -> "Account":
        return cls(
            identity=row["identity"],
            balance=int(row["balance"]),
            role=Role(row["role"]),
            created_at=row["created_at"],
        )


@dataclass(frozen=True)
class LedgerEntry:
    id: int
    identity: str
    delta: int
    reason: LedgerReason
    request_id: str | None
    created_at: str

    @classmethod
    def from_row(cls, row) -> "LedgerEntry":
        return cls(
            id=int(row["id"]),
            identity=row["identity"],
            delta=int(row["delta"]),
            reason=LedgerReason(row["reason"]),
            request_id=row["request_id"],
            created_at=row["created_at"],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "identity": self.identity,
            "delta": self.delta,
            "reason": str(self.reason),
            "request_id": self.request_id,
            "created_at": self.created_at,
        }


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True)
class Caller:
    """Verified (identity, role) pair for one request."""

    identity: str
    role: Role

    @property
    def privileged(self) -> bool:
        return self.role == Role.PRIVILEGED
