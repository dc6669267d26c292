"""Ledger APIs: balances, audit trail, account provisioning."""

from .models import Account, Caller, LedgerEntry, LedgerReason, Role
from .store import (
    apply_bypass,
    apply_credit,
    apply_debit,
    credit,
    debit,
    get_balance,
    list_entries,
    record_bypass,
)
from .accounts import (
    create_account,
    find_account_by_token_hash,
    list_accounts,
    set_token_hash,
)

__all__ = [
    "Account",
    "Caller",
    "LedgerEntry",
    "LedgerReason",
    "Role",
    "apply_bypass",
    "apply_credit",
    "apply_debit",
    "credit",
    "debit",
    "get_balance",
    "list_entries",
    "record_bypass",
    "create_account",
    "find_account_by_token_hash",
    "list_accounts",
    "set_token_hash",
]
