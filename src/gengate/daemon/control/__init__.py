"""Control plane: request dedup, metering gate, admission pipeline."""

from .idempotency import AdmitResult, prune_dedup_records, synthesize_request_id, try_admit
from .gate import (
    BypassPolicy,
    DebitPolicy,
    GateOutcome,
    MeteringDecision,
    meter_request,
    policy_for_role,
)
from .admission import GenerationResponse, admit_and_generate, resolve_request_id, validate_prompt

__all__ = [
    "AdmitResult",
    "prune_dedup_records",
    "synthesize_request_id",
    "try_admit",
    "BypassPolicy",
    "DebitPolicy",
    "GateOutcome",
    "MeteringDecision",
    "meter_request",
    "policy_for_role",
    "GenerationResponse",
    "admit_and_generate",
    "resolve_request_id",
    "validate_prompt",
]
