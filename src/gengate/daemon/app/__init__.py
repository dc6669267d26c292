"""gengate daemon application package.

Creates the FastAPI app, registers routers and error handlers, and wires up
lifecycle events. Re-exports `app` so consumers can use:
    from gengate.daemon.app import app
"""

import os
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gengate import __version__
from ..errors import GatewayError
from ..utils.logging_config import setup_logging

load_dotenv()
setup_logging(os.getenv("GENGATE_LOG_LEVEL", "INFO"))

app = FastAPI(title="gengate", version=__version__)


def _split_csv_env(name: str) -> list[str]:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


cors_origins = _split_csv_env("GENGATE_CORS_ORIGINS")
if cors_origins:
    allow_credentials = "*" not in cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# --- Error rendering ---

@app.exception_handler(GatewayError)
async def _gateway_error(request: Request, exc: GatewayError):
    return JSONResponse(content=exc.to_body(), status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        content={"ok": False, "error": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(
        content={"ok": False, "error": "invalid request body", "reason": "invalid_request"},
        status_code=400,
    )


# --- Lifecycle ---
from .lifecycle import startup_event, shutdown_event  # noqa: E402


@app.on_event("startup")
async def _startup():
    await startup_event(app)


@app.on_event("shutdown")
async def _shutdown():
    await shutdown_event()


# --- Routers ---
from .admin import router as admin_router  # noqa: E402
from .billing import router as billing_router  # noqa: E402
from .generate import router as generate_router  # noqa: E402

app.include_router(admin_router)
app.include_router(billing_router)
app.include_router(generate_router)

__all__ = ["app"]
