"""Liveness and readiness helpers."""

from __future__ import annotations

from datetime import datetime, UTC

from gengate import __version__
from ..db import get_db_connection
from ..utils.config_loader import config_loader
from ..utils.invariants import run_all_checks


_READINESS_CRITICAL_INVARIANTS = {
    "no_negative_balances",
    "ledger_explains_balances",
}


def liveness_report() -> dict:
    return {
        "status": "ok",
        "service": "gengate",
        "version": __version__,
        "ts": datetime.now(UTC).isoformat(),
    }


def readiness_report() -> tuple[bool, dict]:
    checks: dict[str, dict] = {}
    ready = True

    try:
        with get_db_connection() as conn:
            conn.execute("SELECT 1").fetchone()
            checks["database"] = {"ok": True}

            failed = [c for c in run_all_checks(conn) if not c.passed]
            critical = [c for c in failed if c.name in _READINESS_CRITICAL_INVARIANTS]
            checks["invariants"] = {
                "ok": len(critical) == 0,
                "failed": [{"name": c.name, "detail": c.detail} for c in failed],
            }
            if critical:
                ready = False
    except Exception as exc:
        checks["database"] = {"ok": False, "error": str(exc)}
        ready = False

    try:
        generator = config_loader.generator
        key_present = bool(generator.resolve_api_key())
        checks["config"] = {"ok": key_present, "model": generator.model}
        if not key_present:
            checks["config"]["error"] = f"{generator.api_key_env} is not set"
            ready = False
    except Exception as exc:
        checks["config"] = {"ok": False, "error": str(exc)}
        ready = False

    payload = {
        "ready": ready,
        "status": "ready" if ready else "not_ready",
        "version": __version__,
        "ts": datetime.now(UTC).isoformat(),
        "checks": checks,
    }
    return ready, payload
