"""Gateway error taxonomy.

Each error carries the HTTP status it maps to and a machine-readable
``reason`` so clients can decide whether a fresh request id is worth trying.
"""

from __future__ import annotations


class GatewayError(RuntimeError):
    status_code = 500
    reason = "internal_error"
    error = "internal error"

    def __init__(self, message: str | None = None, **details):
        super().__init__(message or self.error)
        self.message = message or self.error
        self.details = details

    def to_body(self) -> dict:
        body = {"ok": False, "error": self.error, "reason": self.reason}
        if self.message != self.error:
            body["message"] = self.message
        body.update(self.details)
        return body


class ValidationError(GatewayError):
    status_code = 400
    reason = "invalid_request"
    error = "invalid request"


class InvalidAmount(ValidationError):
    reason = "invalid_amount"
    error = "positive amount required"


class NotFound(GatewayError):
    status_code = 404
    reason = "not_found"
    error = "account not found"


class InsufficientBalance(GatewayError):
    status_code = 403
    reason = "no_funds"
    error = "no tokens"


class Forbidden(GatewayError):
    status_code = 403
    reason = "forbidden"
    error = "forbidden"


class StorageError(GatewayError):
    status_code = 500
    reason = "storage_error"
    error = "internal accounting error"


class GenerationTimeout(GatewayError):
    status_code = 504
    reason = "timeout"
    error = "timeout"


class GenerationError(GatewayError):
    status_code = 500
    reason = "generation_failed"
    error = "generation failed"
