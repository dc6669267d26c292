"""gengate - metered, idempotent gateway for a paid generation API."""

__version__ = "0.3.0"

__all__ = ["__version__"]
