from __future__ import annotations
import logging
import time
import httpx
from typing import Any, Dict, Optional
from .errors import ExternalServiceError, ExternalServiceErrorKind
from .settings import settings

logger = logging.getLogger(__name__)


class GeminiClient:
	"""Single-shot async client for the Gemini generateContent endpoint.

	Nothing is retried here: a failed call raises `ExternalServiceError` and the
	caller decides whether to issue a fresh request.
	"""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			# Reported up front, never discovered through a failed request
			raise ExternalServiceError(ExternalServiceErrorKind.MISSING_CREDENTIAL, "GEMINI_API_KEY is not configured")
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
		self._client = httpx.AsyncClient(timeout=timeout or settings.gemini_timeout_seconds, transport=transport)

	async def generate(
		self,
		prompt: str,
		*,
		system: Optional[str] = None,
		temperature: Optional[float] = None,
		thinking_budget: Optional[int] = None,
		json_output: bool = False,
	) -> str:
		payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
		if system:
			payload["systemInstruction"] = {"parts": [{"text": system}]}
		generation_config: Dict[str, Any] = {}
		if temperature is not None:
			generation_config["temperature"] = temperature
		if json_output:
			generation_config["responseMimeType"] = "application/json"
		if thinking_budget is not None:
			generation_config["thinkingConfig"] = {"thinkingBudget": int(thinking_budget)}
		if generation_config:
			payload["generationConfig"] = generation_config
		return await self._post_payload(payload)

	async def _post_payload(self, payload: Dict[str, Any]) -> str:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		started = time.monotonic()
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			logger.warning("gemini %s returned HTTP %s", self.model, http_err.response.status_code)
			raise ExternalServiceError(
				ExternalServiceErrorKind.UPSTREAM_FAILURE,
				f"Gemini request failed with HTTP {http_err.response.status_code}",
			) from http_err
		except httpx.RequestError as net_err:
			logger.warning("gemini %s request error: %s", self.model, type(net_err).__name__)
			raise ExternalServiceError(
				ExternalServiceErrorKind.UPSTREAM_FAILURE,
				f"Gemini request failed: {type(net_err).__name__}",
			) from net_err
		logger.info("gemini %s responded in %.2fs", self.model, time.monotonic() - started)
		try:
			data = r.json()
			return data["candidates"][0]["content"]["parts"][0]["text"]
		except (ValueError, KeyError, IndexError, TypeError) as err:
			raise ExternalServiceError(
				ExternalServiceErrorKind.NO_PARSED_OUTPUT,
				"Unexpected Gemini response shape",
			) from err

	async def aclose(self) -> None:
		await self._client.aclose()
