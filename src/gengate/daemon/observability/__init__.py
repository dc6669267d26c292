"""Health and readiness reporting."""

from .health import liveness_report, readiness_report

__all__ = ["liveness_report", "readiness_report"]
