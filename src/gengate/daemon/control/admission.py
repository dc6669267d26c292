"""Admission pipeline: validate, meter, call the generator, shape the response."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from ..errors import GenerationError, GenerationTimeout, InsufficientBalance, ValidationError
from ..ledger import Caller
from ..upstream import Generator, invoke_bounded
from ..utils.config_loader import DEFAULT_TIMEOUT_SECONDS
from ..utils.logging_config import StructuredLogger
from .gate import GateOutcome, meter_request
from .idempotency import synthesize_request_id

logger = StructuredLogger(__name__)


@dataclass
class GenerationResponse:
    status_code: int
    body: dict[str, Any]


def validate_prompt(prompt: Any) -> str:
    if not isinstance(prompt, str) or not prompt:
        raise ValidationError("prompt is required")
    return prompt


def resolve_request_id(request_id: Any, identity: str) -> str:
    if request_id is None or request_id == "":
        return synthesize_request_id(identity)
    if not isinstance(request_id, str):
        raise ValidationError("requestId must be a string")
    return request_id


async def admit_and_generate(
    *,
    caller: Caller,
    prompt: Any,
    request_id: Any,
    generator: Generator,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    debit_amount: int = 1,
) -> GenerationResponse:
    """Handle one generation request end to end.

    The generator only runs after a committed debit or bypass. A timeout or
    generator failure does not refund the debit.
    """
    prompt = validate_prompt(prompt)
    request_id = resolve_request_id(request_id, caller.identity)

    decision = await asyncio.to_thread(
        meter_request,
        identity=caller.identity,
        role=caller.role,
        request_id=request_id,
        debit_amount=debit_amount,
    )

    if decision.outcome is GateOutcome.DUPLICATE:
        return GenerationResponse(
            status_code=200,
            body={
                "ok": True,
                "skipped": True,
                "message": "request already processed",
                "reason": "duplicate",
                "requestId": request_id,
            },
        )

    if decision.outcome is GateOutcome.REJECTED_NO_FUNDS:
        raise InsufficientBalance(message="Tokens exhausted. Top up to continue.", requestId=request_id)

    try:
        content = await invoke_bounded(generator, prompt, timeout_seconds)
    except GenerationTimeout as exc:
        logger.warning(
            "Generation timed out after billing; debit stands",
            identity=caller.identity,
            request_id=request_id,
            outcome=str(decision.outcome),
        )
        exc.details["requestId"] = request_id
        raise
    except GenerationError as exc:
        logger.error(
            "Generation failed after billing; debit stands",
            identity=caller.identity,
            request_id=request_id,
            outcome=str(decision.outcome),
            error=exc.message,
        )
        exc.details["requestId"] = request_id
        raise

    logger.info("Generation served", identity=caller.identity, request_id=request_id)
    body: dict[str, Any] = {"ok": True, "data": content, "requestId": request_id}
    if decision.balance is not None:
        body["balance"] = decision.balance
    return GenerationResponse(status_code=200, body=body)
