import asyncio
import json

import httpx
import pytest

from gengate.daemon.errors import GenerationError
from gengate.daemon.upstream import GeminiGenerator
from gengate.daemon.utils.config_loader import GeneratorConfig


def _run_with_transport(handler, prompt="a cat"):
    async def _go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            generator = GeminiGenerator(
                client,
                GeneratorConfig(base_url="https://gemini.test/v1beta/", model="img-model"),
                "key-1",
            )
            return await generator(prompt)

    return asyncio.run(_go())


class TestGeminiGenerator:
    def test_posts_prompt_and_returns_json(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get("x-goog-api-key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "ok"}]}}]})

        result = _run_with_transport(handler)

        assert seen["url"] == "https://gemini.test/v1beta/models/img-model:generateContent"
        assert seen["key"] == "key-1"
        assert seen["body"] == {"contents": [{"parts": [{"text": "a cat"}]}]}
        assert result["candidates"][0]["content"]["parts"][0]["text"] == "ok"

    def test_upstream_error_is_generation_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"error": {"message": "Resource exhausted"}})

        with pytest.raises(GenerationError) as exc_info:
            _run_with_transport(handler)

        assert exc_info.value.message == "Resource exhausted"
        assert exc_info.value.details["upstream_status"] == 429

    def test_non_json_error_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="bad gateway")

        with pytest.raises(GenerationError) as exc_info:
            _run_with_transport(handler)

        assert exc_info.value.message == "bad gateway"
