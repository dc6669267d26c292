"""Metering gate: dedup admission, then debit or bypass, in one transaction.

Outcomes per request (nothing intermediate is persisted):

    admit fails                      -> DUPLICATE
    admit ok, privileged             -> bypass entry -> ADMITTED_NO_CHARGE
    admit ok, ordinary, funds        -> debit        -> ADMITTED_CHARGED
    admit ok, ordinary, no funds     -> REJECTED_NO_FUNDS

The dedup record is written before the balance check and is kept when the
debit is refused, so a rejected request id stays consumed: retrying after a
top-up needs a fresh id. Unknown identities and storage failures roll the
whole transaction back.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from ..db import run_in_transaction
from ..errors import InsufficientBalance
from ..ledger import LedgerReason, Role, apply_bypass, apply_debit
from ..utils.logging_config import StructuredLogger
from .idempotency import admit_in

logger = StructuredLogger(__name__)


class GateOutcome(StrEnum):
    DUPLICATE = "DUPLICATE"
    REJECTED_NO_FUNDS = "REJECTED_NO_FUNDS"
    ADMITTED_NO_CHARGE = "ADMITTED_NO_CHARGE"
    ADMITTED_CHARGED = "ADMITTED_CHARGED"


_ADMITTED = {GateOutcome.ADMITTED_NO_CHARGE, GateOutcome.ADMITTED_CHARGED}


@dataclass(frozen=True)
class MeteringDecision:
    outcome: GateOutcome
    identity: str
    request_id: str
    balance: int | None = None

    @property
    def admitted(self) -> bool:
        return self.outcome in _ADMITTED


class BillingPolicy(Protocol):
    def settle(self, conn, *, identity: str, request_id: str) -> MeteringDecision: ...


@dataclass(frozen=True)
class DebitPolicy:
    amount: int = 1

    def settle(self, conn, *, identity: str, request_id: str) -> MeteringDecision:
        try:
            balance = apply_debit(
                conn,
                identity=identity,
                amount=self.amount,
                reason=LedgerReason.GENERATION_DEBIT,
                request_id=request_id,
            )
        except InsufficientBalance:
            return MeteringDecision(GateOutcome.REJECTED_NO_FUNDS, identity, request_id)
        return MeteringDecision(GateOutcome.ADMITTED_CHARGED, identity, request_id, balance=balance)


@dataclass(frozen=True)
class BypassPolicy:
    def settle(self, conn, *, identity: str, request_id: str) -> MeteringDecision:
        apply_bypass(conn, identity=identity, reason=LedgerReason.ADMIN_BYPASS, request_id=request_id)
        return MeteringDecision(GateOutcome.ADMITTED_NO_CHARGE, identity, request_id)


def policy_for_role(role: Role | str, *, debit_amount: int = 1) -> BillingPolicy:
    if Role(role) == Role.PRIVILEGED:
        return BypassPolicy()
    return DebitPolicy(amount=debit_amount)


def meter_request(
    *,
    identity: str,
    role: Role | str,
    request_id: str,
    debit_amount: int = 1,
) -> MeteringDecision:
    """Run the gate for one request. Blocking; call from a worker thread in async code."""
    policy = policy_for_role(role, debit_amount=debit_amount)

    def _work(conn) -> MeteringDecision:
        if not admit_in(conn, identity=identity, request_id=request_id).admitted:
            return MeteringDecision(GateOutcome.DUPLICATE, identity, request_id)
        return policy.settle(conn, identity=identity, request_id=request_id)

    decision = run_in_transaction(
        _work,
        operation="meter_request",
        identity=identity,
        request_id=request_id,
    )

    if decision.outcome is GateOutcome.REJECTED_NO_FUNDS:
        logger.warning("Request rejected: no funds", identity=identity, request_id=request_id)
    else:
        logger.info(
            "Request metered",
            identity=identity,
            request_id=request_id,
            outcome=str(decision.outcome),
            balance=decision.balance,
        )
    return decision
