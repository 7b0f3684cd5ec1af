import asyncio
import json

import httpx
import pytest

from quizgame.gemini_client import AIServiceError, GeminiClient, gemini_endpoint
from quizgame.settings import Settings


def config(**env):
	values = {"GEMINI_API_KEY": "test-key", "GEMINI_PROVIDER": "ai_studio", "OPENROUTER_API_KEY": None}
	values.update(env)
	return Settings(**values)


def gemini_reply(*texts):
	return {"candidates": [{"content": {"parts": [{"text": t} for t in texts]}}]}


async def run_with(cfg, gemini_handler, call, fallback_handler=None):
	client = GeminiClient(config=cfg)
	await client._client.aclose()
	client._client = httpx.AsyncClient(transport=httpx.MockTransport(gemini_handler))
	if fallback_handler is not None:
		await client._fallback._client.aclose()
		client._fallback._client = httpx.AsyncClient(transport=httpx.MockTransport(fallback_handler))
	async with client:
		return await call(client)


def test_requires_key():
	with pytest.raises(ValueError):
		GeminiClient(config=config(GEMINI_API_KEY=None))


def test_endpoints():
	assert gemini_endpoint(config(), "gemini-test").endswith("/v1beta/models/gemini-test:generateContent")
	vertex = gemini_endpoint(config(GEMINI_PROVIDER="vertex", GEMINI_VERTEX_PROJECT="proj"), "gemini-test")
	assert vertex.startswith("https://us-central1-aiplatform.googleapis.com/v1/projects/proj/")


def test_generate_joins_parts():
	seen = {}

	def handler(request):
		seen["key"] = request.url.params.get("key")
		seen["body"] = json.loads(request.content)
		return httpx.Response(200, json=gemini_reply("Hello ", "world"))

	text = asyncio.run(run_with(config(), handler, lambda c: c.generate("hi", temperature=0.5)))
	assert text == "Hello world"
	assert seen["key"] == "test-key"
	assert seen["body"]["generationConfig"] == {"temperature": 0.5}
	assert seen["body"]["contents"][-1]["parts"][0]["text"] == "hi"


def test_failure_without_fallback():
	def handler(request):
		return httpx.Response(500, json={"error": "boom"})

	with pytest.raises(AIServiceError):
		asyncio.run(run_with(config(), handler, lambda c: c.generate("hi")))


def test_empty_candidates_are_errors():
	def handler(request):
		return httpx.Response(200, json={"candidates": []})

	with pytest.raises(AIServiceError):
		asyncio.run(run_with(config(), handler, lambda c: c.generate("hi")))


def test_fallback_to_openrouter():
	sent = {}

	def gemini(request):
		return httpx.Response(503)

	def openrouter(request):
		sent["auth"] = request.headers["authorization"]
		sent["body"] = json.loads(request.content)
		return httpx.Response(200, json={"choices": [{"message": {"content": "from fallback"}}]})

	history = [{"role": "model", "parts": [{"text": "earlier"}]}]
	text = asyncio.run(run_with(
		config(OPENROUTER_API_KEY="or-key"), gemini,
		lambda c: c.chat("next", history), fallback_handler=openrouter,
	))
	assert text == "from fallback"
	assert sent["auth"] == "Bearer or-key"
	assert sent["body"]["messages"] == [
		{"role": "assistant", "content": "earlier"},
		{"role": "user", "content": "next"},
	]


def test_fallback_failure():
	def fail(request):
		return httpx.Response(500)

	with pytest.raises(AIServiceError):
		asyncio.run(run_with(config(OPENROUTER_API_KEY="or-key"), fail, lambda c: c.generate("hi"), fallback_handler=fail))
