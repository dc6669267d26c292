"""Gemini REST generator over the shared httpx client."""

from __future__ import annotations

from typing import Any

import httpx

from ..errors import GenerationError
from ..utils.config_loader import GeneratorConfig
from ..utils.logging_config import StructuredLogger

logger = StructuredLogger(__name__)


def _error_detail(response: httpx.Response) -> str:
    try:
        err_json = response.json()
    except ValueError:
        err_json = {"error": response.text}
    detail = None
    if isinstance(err_json, dict):
        detail = err_json.get("error") or err_json.get("message") or err_json.get("detail")
    if isinstance(detail, dict):
        detail = detail.get("message") or str(detail)
    if not detail:
        detail = response.text
    return str(detail).replace("\n", " ")[:240]


class GeminiGenerator:
    """Async callable ``prompt -> response JSON`` for a generateContent model."""

    def __init__(self, client: httpx.AsyncClient, config: GeneratorConfig, api_key: str):
        self._client = client
        self._config = config
        self._api_key = api_key

    @property
    def url(self) -> str:
        return f"{self._config.base_url.rstrip('/')}/models/{self._config.model}:generateContent"

    async def __call__(self, prompt: str) -> dict[str, Any]:
        response = await self._client.post(
            self.url,
            headers={"x-goog-api-key": self._api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
        )
        if response.status_code != 200:
            detail = _error_detail(response)
            logger.warning(
                "Upstream request failed",
                model=self._config.model,
                status_code=response.status_code,
                detail=detail,
            )
            raise GenerationError(message=detail, upstream_status=response.status_code)
        return response.json()
