"""Metered generation endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..auth import get_caller
from ..control import admit_and_generate, validate_prompt
from ..ledger import Caller
from ..upstream import Generator
from ..utils.config_loader import config_loader
from .lifecycle import get_generator

router = APIRouter(tags=["generation"])


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Validated by the admission pipeline so bad values map to 400, not 422
    prompt: Any = None
    request_id: Any = Field(default=None, alias="requestId")


async def generation_request(body: GenerateRequest) -> GenerateRequest:
    # Resolved before get_generator so a bad prompt is a 400 even when unconfigured
    validate_prompt(body.prompt)
    return body


@router.post("/generate")
@router.post("/api/generate-image")
async def generate(
    caller: Caller = Depends(get_caller),
    body: GenerateRequest = Depends(generation_request),
    generator: Generator = Depends(get_generator),
):
    metering = config_loader.metering
    result = await admit_and_generate(
        caller=caller,
        prompt=body.prompt,
        request_id=body.request_id,
        generator=generator,
        timeout_seconds=metering.timeout_seconds,
        debit_amount=metering.debit_amount,
    )
    return JSONResponse(content=result.body, status_code=result.status_code)
