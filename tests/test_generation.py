import asyncio
import json

import httpx
import pytest

from scribe.errors import GenerationError
from scribe.services.generation import OllamaEngine


def _engine(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client, OllamaEngine(base_url="http://ollama.test/", model="mistral", client=client)


def test_revise_posts_non_streaming_generate():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "  [0:01] A - cleaned  "})

    async def run():
        client, engine = _engine(handler)
        async with client:
            return await engine.revise("[0:01] A - cleand")

    assert asyncio.run(run()) == "[0:01] A - cleaned"
    assert seen["url"] == "http://ollama.test/api/generate"
    assert seen["body"]["model"] == "mistral"
    assert seen["body"]["stream"] is False
    assert seen["body"]["prompt"].endswith("[0:01] A - cleand")


def test_summarize_caps_tokens():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "summary"})

    async def run():
        client, engine = _engine(handler)
        async with client:
            return await engine.summarize("text")

    assert asyncio.run(run()) == "summary"
    assert seen["body"]["options"]["num_predict"] == 1024


def test_http_error_becomes_generation_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="model not loaded")

    async def run():
        client, engine = _engine(handler)
        async with client:
            await engine.revise("x")

    with pytest.raises(GenerationError):
        asyncio.run(run())


def test_missing_response_field_is_empty():
    async def run():
        client, engine = _engine(lambda request: httpx.Response(200, json={"done": True}))
        async with client:
            return await engine.generate("x")

    assert asyncio.run(run()) == ""
