"""Deadline-bounded invocation of the external generator."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import httpx

from ..errors import GenerationError, GenerationTimeout
from ..utils.config_loader import DEFAULT_TIMEOUT_SECONDS
from ..utils.logging_config import StructuredLogger

logger = StructuredLogger(__name__)

Generator = Callable[[str], Awaitable[Any]]


async def invoke_bounded(
    generator: Generator,
    prompt: str,
    max_duration: float = DEFAULT_TIMEOUT_SECONDS,
) -> Any:
    """Await ``generator(prompt)`` for at most ``max_duration`` seconds.

    On expiry the in-flight call is cancelled and GenerationTimeout raised.
    Cancellation is best-effort: the provider may already have done (and
    billed) the work. Every other failure becomes GenerationError.
    """
    try:
        return await asyncio.wait_for(generator(prompt), timeout=max_duration)
    except asyncio.TimeoutError:
        logger.warning("Generator deadline exceeded, call cancelled", timeout_seconds=max_duration)
        raise GenerationTimeout(timeout_seconds=max_duration) from None
    except (GenerationTimeout, GenerationError):
        raise
    except httpx.TimeoutException as exc:
        logger.warning("Generator transport timeout", error=str(exc))
        raise GenerationTimeout(timeout_seconds=max_duration) from exc
    except Exception as exc:
        detail = (str(exc) or type(exc).__name__).replace("\n", " ")[:240]
        logger.error("Generator failed", error=detail)
        raise GenerationError(message=detail) from exc
