"""gengate daemon lifecycle: startup, shutdown, dedup retention loop, HTTP client."""

import os
import asyncio

import httpx
from fastapi import HTTPException

from ..control import prune_dedup_records
from ..db import init_db, check_db_integrity
from ..upstream import GeminiGenerator, Generator
from ..utils.logging_config import StructuredLogger
from ..utils.config_loader import config_loader

logger = StructuredLogger(__name__)

# Shared async client for connection pooling / keep-alive
_http_client: httpx.AsyncClient | None = None
_background_tasks: set[asyncio.Task] = set()


async def get_http_client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None or _http_client.is_closed:
        # invoke_bounded owns the deadline; the transport timeout is only a backstop
        transport_timeout = config_loader.metering.timeout_seconds + 5.0
        _http_client = httpx.AsyncClient(
            timeout=transport_timeout,
            limits=httpx.Limits(max_connections=100, max_keepalive_connections=50)
        )
    return _http_client


async def get_generator() -> Generator:
    """FastAPI dependency: the configured generator, resolved before any billing."""
    generator_config = config_loader.generator
    api_key = generator_config.resolve_api_key()
    if not api_key:
        logger.error("Generator API key missing", env=generator_config.api_key_env)
        raise HTTPException(status_code=503, detail="generator not configured")
    client = await get_http_client()
    return GeminiGenerator(client, generator_config, api_key)


def _fail_startup(strict: bool) -> None:
    if strict:
        os._exit(1)


async def startup_event(app):
    """Called on FastAPI startup."""
    strict_startup = (os.getenv("GENGATE_STARTUP_STRICT", "0").strip() == "1")
    init_timeout_sec = max(5, int(os.getenv("GENGATE_STARTUP_INIT_TIMEOUT_SECONDS", "30")))

    try:
        await asyncio.wait_for(asyncio.to_thread(init_db), timeout=init_timeout_sec)
    except Exception as exc:
        logger.error("Startup database init failed", error=str(exc), strict=strict_startup)
        _fail_startup(strict_startup)

    try:
        ok = await asyncio.wait_for(asyncio.to_thread(check_db_integrity), timeout=init_timeout_sec)
        if not ok:
            logger.error("Startup database integrity failed", strict=strict_startup)
            _fail_startup(strict_startup)
    except Exception as exc:
        logger.error("Startup database integrity error", error=str(exc), strict=strict_startup)
        _fail_startup(strict_startup)

    try:
        config = config_loader.load_config()
    except Exception as exc:
        logger.error("Config load failed on startup", error=str(exc), strict=strict_startup)
        _fail_startup(strict_startup)
        return

    if not config.generator.resolve_api_key():
        logger.error("Generator API key is not set", env=config.generator.api_key_env, strict=strict_startup)
        _fail_startup(strict_startup)

    retention = config.metering.dedup_retention_hours
    if retention:
        task = asyncio.create_task(dedup_retention_loop(retention))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)


async def shutdown_event():
    """Called on FastAPI shutdown."""
    global _http_client
    for task in list(_background_tasks):
        task.cancel()
    if _http_client and not _http_client.is_closed:
        await _http_client.aclose()


async def dedup_retention_loop(retention_hours: int):
    logger.info("Dedup retention loop started", retention_hours=retention_hours)
    interval_sec = max(60, int(os.getenv("GENGATE_DEDUP_PRUNE_SECONDS", "3600")))
    while True:
        try:
            await asyncio.to_thread(prune_dedup_records, retention_hours)
            await asyncio.sleep(interval_sec)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Dedup retention loop error", error=str(e))
            await asyncio.sleep(interval_sec)
