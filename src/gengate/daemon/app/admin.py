"""Service health endpoints."""

from fastapi import APIRouter
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from ..observability import liveness_report, readiness_report

router = APIRouter(tags=["ops"])


@router.get("/")
async def root():
    return {"status": "ok", "service": "gengate"}


@router.get("/health")
async def health():
    return liveness_report()


@router.get("/ready")
async def ready():
    ready_ok, report = await run_in_threadpool(readiness_report)
    status_code = 200 if ready_ok else 503
    return JSONResponse(content=report, status_code=status_code)
