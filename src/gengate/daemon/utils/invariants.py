"""
Ledger invariants: deterministic read-only queries over the accounts and
ledger_entries tables.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class InvariantResult:
    name: str
    passed: bool
    detail: Optional[str] = None


def check_no_negative_balances(conn) -> InvariantResult:
    """INV-1: balance >= 0 for every account."""
    rows = conn.execute(
        "SELECT identity, balance FROM accounts WHERE balance < 0"
    ).fetchall()

    if rows:
        violations = [f"{r['identity']}: balance={r['balance']}" for r in rows]
        return InvariantResult(
            name="no_negative_balances",
            passed=False,
            detail=f"Violations: {'; '.join(violations)}"
        )
    return InvariantResult(name="no_negative_balances", passed=True)


def check_ledger_explains_balances(conn) -> InvariantResult:
    """INV-2: the sum of ledger deltas for an identity equals its balance."""
    rows = conn.execute(
        """
        SELECT a.identity AS identity, a.balance AS balance,
               COALESCE(SUM(e.delta), 0) AS replayed
        FROM accounts a
        LEFT JOIN ledger_entries e ON e.identity = a.identity
        GROUP BY a.identity, a.balance
        HAVING a.balance != COALESCE(SUM(e.delta), 0)
        """
    ).fetchall()

    if rows:
        violations = [f"{r['identity']}: balance={r['balance']} replay={r['replayed']}" for r in rows]
        return InvariantResult(
            name="ledger_explains_balances",
            passed=False,
            detail=f"Mismatches: {'; '.join(violations[:10])}"
        )
    return InvariantResult(name="ledger_explains_balances", passed=True)


def check_reason_delta_signs(conn) -> InvariantResult:
    """INV-3: debits are negative, bypasses are zero, top-ups are positive."""
    rows = conn.execute(
        """
        SELECT id, identity, reason, delta FROM ledger_entries
        WHERE (reason = 'generation-debit' AND delta >= 0)
           OR (reason = 'admin-bypass' AND delta != 0)
           OR (reason = 'top-up' AND delta <= 0)
        """
    ).fetchall()

    if rows:
        violations = [f"#{r['id']} {r['identity']} {r['reason']}={r['delta']}" for r in rows]
        return InvariantResult(
            name="reason_delta_signs",
            passed=False,
            detail=f"Violations: {'; '.join(violations[:10])}"
        )
    return InvariantResult(name="reason_delta_signs", passed=True)


def check_no_orphaned_entries(conn) -> InvariantResult:
    """INV-4: every ledger entry belongs to a known account."""
    row = conn.execute(
        """
        SELECT COUNT(*) AS orphans FROM ledger_entries e
        WHERE NOT EXISTS (SELECT 1 FROM accounts a WHERE a.identity = e.identity)
        """
    ).fetchone()
    orphans = int(row["orphans"] or 0)
    if orphans:
        return InvariantResult(
            name="no_orphaned_entries",
            passed=False,
            detail=f"{orphans} ledger entries reference unknown accounts",
        )
    return InvariantResult(name="no_orphaned_entries", passed=True)


def run_all_checks(conn) -> list[InvariantResult]:
    """Run every invariant, critical ones first."""
    return [
        check_no_negative_balances(conn),
        check_ledger_explains_balances(conn),
        check_reason_delta_signs(conn),
        check_no_orphaned_entries(conn),
    ]
