"""Balance, audit trail, top-up webhook and admin credit endpoints."""

from __future__ import annotations

import hmac
import os
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, Field

from ..auth import get_caller, issue_token, require_privileged
from ..errors import ValidationError
from ..ledger import Caller, LedgerReason, Role, create_account, credit, get_balance, list_entries
from ..utils.logging_config import StructuredLogger

logger = StructuredLogger(__name__)
router = APIRouter(tags=["billing"])


class TopUpEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str | None = None
    identity: str | int | None = Field(default=None, alias="userId")
    amount: Any = Field(default=None, alias="tokens")


class AddTokensRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    identity: str | int | None = Field(default=None, alias="userId")
    amount: Any = None


class AccountCreateRequest(BaseModel):
    identity: str = Field(..., min_length=1, max_length=256)
    role: Role = Role.ORDINARY
    balance: int = Field(0, ge=0)


def _require_identity(identity: str | int | None) -> str:
    value = str(identity).strip() if identity is not None else ""
    if not value:
        raise ValidationError("userId and positive amount required")
    return value


async def apply_top_up(identity: str, amount: Any) -> int:
    """Top-up entry point for external collaborators (payment webhook, admin)."""
    return await run_in_threadpool(credit, identity, amount, LedgerReason.TOP_UP)


@router.get("/balance")
async def balance(caller: Caller = Depends(get_caller)):
    current = await run_in_threadpool(get_balance, caller.identity)
    return {"ok": True, "identity": caller.identity, "role": str(caller.role), "balance": current}


@router.get("/ledger")
async def ledger(
    limit: int = Query(default=100, ge=1, le=1000),
    caller: Caller = Depends(get_caller),
):
    entries = await run_in_threadpool(list_entries, caller.identity, limit=limit)
    return {"ok": True, "identity": caller.identity, "entries": [e.to_dict() for e in entries]}


@router.post("/api/billing/webhook")
async def billing_webhook(
    body: TopUpEvent,
    x_webhook_secret: str | None = Header(default=None),
):
    expected = (os.getenv("BILLING_WEBHOOK_SECRET") or "").strip()
    if not expected or not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, expected):
        logger.warning("Webhook rejected: bad secret")
        raise HTTPException(status_code=401, detail="invalid webhook secret")

    # Only settled payments move balance
    if body.status != "paid":
        return {"ok": True, "ignored": True}

    identity = _require_identity(body.identity)
    new_balance = await apply_top_up(identity, body.amount)
    logger.info("Webhook top-up applied", identity=identity, amount=body.amount, balance=new_balance)
    return {"ok": True, "user": {"id": identity, "tokens": new_balance}}


@router.post("/api/admin/add-tokens")
async def add_tokens(body: AddTokensRequest, admin: Caller = Depends(require_privileged)):
    identity = _require_identity(body.identity)
    new_balance = await apply_top_up(identity, body.amount)
    logger.info("Admin top-up applied", admin=admin.identity, identity=identity, amount=body.amount)
    return {"ok": True, "user": {"id": identity, "tokens": new_balance}}


@router.post("/api/admin/accounts")
async def provision_account(body: AccountCreateRequest, admin: Caller = Depends(require_privileged)):
    token, token_sha = issue_token()
    account = await run_in_threadpool(
        create_account,
        body.identity,
        role=body.role,
        balance=body.balance,
        token_hash=token_sha,
    )
    logger.info("Account provisioned", admin=admin.identity, identity=account.identity, role=str(account.role))
    return {
        "ok": True,
        "account": {"identity": account.identity, "role": str(account.role), "balance": account.balance},
        "token": token,
    }
