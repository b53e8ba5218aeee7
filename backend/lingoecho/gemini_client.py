from __future__ import annotations
import httpx
from typing import Any, Dict, Optional
from .settings import settings

class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		self.provider = settings.gemini_provider
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True
		self._client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds, transport=transport)

	async def generate(self, prompt: str, *, response_schema: Optional[Dict[str, Any]] = None) -> str:
		payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
		if response_schema is not None:
			payload["generationConfig"] = {
				"responseMimeType": "application/json",
				"responseSchema": response_schema,
			}
		return await self._post_payload(payload)

	async def _post_payload(self, payload: Dict[str, Any]) -> str:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
		r.raise_for_status()
		try:
			data = r.json()
			parts = data["candidates"][0]["content"]["parts"]
		except (ValueError, KeyError, IndexError, TypeError):
			raise RuntimeError(f"Unexpected Gemini response: {r.text}")
		# Thinking models may split the answer across several text parts
		return "".join(p.get("text", "") for p in parts if isinstance(p, dict) and not p.get("thought"))

	async def aclose(self) -> None:
		await self._client.aclose()
