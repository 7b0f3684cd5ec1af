from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import httpx

from .settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 30


class AIServiceError(RuntimeError):
	"""The model could not produce text, from Gemini or from the fallback."""


def gemini_endpoint(cfg: Settings, model: str) -> str:
	if cfg.gemini_provider == "vertex":
		region = cfg.vertex_region
		project = cfg.vertex_project or "placeholder-project"
		return (
			f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}"
			f"/locations/{region}/publishers/google/models/{model}:generateContent"
		)
	return f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


def _candidate_text(data: Dict[str, Any]) -> str:
	try:
		parts = data["candidates"][0]["content"]["parts"]
	except (KeyError, IndexError, TypeError):
		raise AIServiceError("Gemini response has no candidates")
	text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
	if not text:
		raise AIServiceError("Gemini response has no text")
	return text


def _generation_config(temperature: Optional[float], max_output_tokens: Optional[int]) -> Dict[str, Any]:
	out: Dict[str, Any] = {}
	if temperature is not None:
		out["temperature"] = temperature
	if max_output_tokens is not None:
		out["maxOutputTokens"] = max_output_tokens
	return out


class OpenRouterFallback:
	"""OpenAI-style chat completion call used when Gemini fails."""

	def __init__(self, cfg: Settings) -> None:
		self.model = cfg.openrouter_model
		self.url = cfg.openrouter_base_url
		self.headers = {
			"Authorization": f"Bearer {cfg.openrouter_api_key}",
			"Content-Type": "application/json",
			"HTTP-Referer": cfg.openrouter_referer,
			"X-Title": cfg.openrouter_title,
		}
		self._client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS)

	async def complete(self, messages: List[Dict[str, str]]) -> str:
		r = await self._client.post(self.url, headers=self.headers, json={"model": self.model, "messages": messages})
		r.raise_for_status()
		try:
			return r.json()["choices"][0]["message"]["content"]
		except (KeyError, IndexError, TypeError, ValueError):
			raise AIServiceError("OpenRouter response has no message")

	async def aclose(self) -> None:
		await self._client.aclose()


class GeminiClient:
	"""Gemini ``generateContent`` over httpx, for AI Studio or Vertex AI Express.

	When ``OPENROUTER_API_KEY`` is set, a failed Gemini call is retried once
	through OpenRouter with the same conversation. Failures surface as
	``AIServiceError``.
	"""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		config: Optional[Settings] = None,
	) -> None:
		cfg = config or default_settings
		self.api_key = api_key or cfg.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or cfg.gemini_model
		self.base_url = base_url or gemini_endpoint(cfg, self.model)
		# AI Studio takes the key as a query parameter, Vertex as a header
		self._key_in_query = cfg.gemini_provider != "vertex"
		self._client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS)
		self._fallback = OpenRouterFallback(cfg) if cfg.openrouter_api_key else None

	async def __aenter__(self) -> "GeminiClient":
		return self

	async def __aexit__(self, *exc_info: Any) -> None:
		await self.aclose()

	async def generate(
		self,
		prompt: str,
		*,
		temperature: Optional[float] = None,
		max_output_tokens: Optional[int] = None,
	) -> str:
		contents = [{"role": "user", "parts": [{"text": prompt}]}]
		return await self._run(contents, _generation_config(temperature, max_output_tokens))

	async def chat(
		self,
		message: str,
		history: List[Dict[str, Any]],
		*,
		temperature: Optional[float] = None,
		max_output_tokens: Optional[int] = None,
	) -> str:
		# history items: {"role": "user"|"model", "parts": [{"text": ...}]}
		contents = list(history) + [{"role": "user", "parts": [{"text": message}]}]
		return await self._run(contents, _generation_config(temperature, max_output_tokens))

	async def _run(self, contents: List[Dict[str, Any]], generation_config: Dict[str, Any]) -> str:
		payload: Dict[str, Any] = {"contents": contents}
		if generation_config:
			payload["generationConfig"] = generation_config
		try:
			return await self._call_gemini(payload)
		except (httpx.HTTPError, AIServiceError) as primary:
			if self._fallback is None:
				raise AIServiceError(f"Gemini call failed: {primary}") from primary
			logger.warning("Gemini call failed (%s); retrying through OpenRouter", primary)
			try:
				return await self._fallback.complete(_as_messages(contents))
			except (httpx.HTTPError, AIServiceError) as fallback_err:
				raise AIServiceError(
					f"Gemini call failed ({primary}); fallback via OpenRouter also failed"
				) from fallback_err

	async def _call_gemini(self, payload: Dict[str, Any]) -> str:
		params: Dict[str, str] = {}
		headers: Dict[str, str] = {}
		if self._key_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
		r.raise_for_status()
		try:
			data = r.json()
		except ValueError:
			raise AIServiceError(f"Unexpected Gemini response: {r.text[:200]}")
		return _candidate_text(data)

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback is not None:
			await self._fallback.aclose()


def _as_messages(contents: List[Dict[str, Any]]) -> List[Dict[str, str]]:
	messages = []
	for item in contents:
		role = "assistant" if item.get("role") == "model" else "user"
		text = "".join(p.get("text", "") for p in item.get("parts", []) if isinstance(p, dict))
		messages.append({"role": role, "content": text})
	return messages
