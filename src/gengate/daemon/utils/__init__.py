"""gengate daemon utilities: logging, config, invariants.

Individual modules are imported directly by consumers, e.g.:
    from ..utils.logging_config import StructuredLogger
    from ..utils.config_loader import config_loader
"""

from .logging_config import setup_logging, StructuredLogger, JSONFormatter
from .config_loader import (
    config_loader,
    ConfigLoader,
    GatewayConfig,
    GeneratorConfig,
    MeteringConfig,
)
from .invariants import run_all_checks, InvariantResult

__all__ = [
    "setup_logging", "StructuredLogger", "JSONFormatter",
    "config_loader", "ConfigLoader", "GatewayConfig", "GeneratorConfig", "MeteringConfig",
    "run_all_checks", "InvariantResult",
]
