"""
External inference services for the intake pipeline.

Two capabilities, each behind a small protocol so the pipeline can run
against deterministic stubs in tests:

- TextScorer.score(prompt, schema) -> float | None
  Production: GeminiTextScorer (Gemini generateContent REST API)
- StructuredExtractor.extract(messages, schema) -> str | None
  Production: WorkersAIExtractor (Cloudflare Workers AI REST API)

Both production clients send temperature 0, enforce a per-call timeout, and
never retry: each call is paid, and the pipeline makes at most one of each
per message. Transport failures and non-2xx answers raise
ExternalServiceError; a well-formed answer without usable content returns None.
"""

from __future__ import annotations

import json
import math
from typing import Any, Protocol, runtime_checkable

import httpx
import structlog

from spendlog.config import Settings
from spendlog.lib.exceptions import ExternalServiceError

logger = structlog.get_logger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
WORKERS_AI_BASE_URL = "https://api.cloudflare.com/client/v4"


@runtime_checkable
class TextScorer(Protocol):
    """Scores a prompt, returning a confidence in [0, 1] or None."""

    async def score(self, prompt: str, schema: dict[str, Any]) -> float | None: ...


@runtime_checkable
class StructuredExtractor(Protocol):
    """Runs a chat prompt and returns the raw JSON text, or None."""

    async def extract(self, messages: list[dict[str, str]], schema: dict[str, Any]) -> str | None: ...


def parse_score(raw: str | None) -> float | None:
    """
    Parse a {"score": x} JSON answer.

    Returns None unless the answer is a JSON object whose "score" is a real,
    finite number. Booleans are not numbers here.
    """
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    value = data.get("score")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except OverflowError:
        return None
    if not math.isfinite(value):
        return None
    return value


class _HttpInferenceClient:
    """Shared request plumbing for the REST inference clients."""

    service_name = "inference"

    def __init__(self, timeout: float, client: httpx.AsyncClient | None = None) -> None:
        self._timeout = timeout
        self._client = client

    async def _post(self, url: str, payload: dict[str, Any], headers: dict[str, str]) -> dict[str, Any]:
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=headers, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            raise ExternalServiceError(f"{self.service_name} timed out after {self._timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(
                f"{self.service_name} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"{self.service_name} request failed: {e}") from e
        except ValueError as e:
            raise ExternalServiceError(f"{self.service_name} returned a non-JSON body") from e

        if not isinstance(body, dict):
            raise ExternalServiceError(f"{self.service_name} returned an unexpected body")
        return body


class GeminiTextScorer(_HttpInferenceClient):
    """Sentiment scoring via the Gemini generateContent endpoint."""

    service_name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash-lite",
        timeout: float = 20.0,
        client: httpx.AsyncClient | None = None,
        base_url: str = GEMINI_BASE_URL,
    ) -> None:
        super().__init__(timeout=timeout, client=client)
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient | None = None) -> GeminiTextScorer:
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.sentiment_model,
            timeout=settings.inference_timeout_seconds,
            client=client,
        )

    async def score(self, prompt: str, schema: dict[str, Any]) -> float | None:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
                "temperature": 0.0,
            },
        }
        body = await self._post(
            f"{self._base_url}/models/{self._model}:generateContent",
            payload,
            headers={"x-goog-api-key": self._api_key},
        )

        try:
            text = body["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            logger.info("sentiment_response_empty", model=self._model)
            return None

        return parse_score(text)


class WorkersAIExtractor(_HttpInferenceClient):
    """Structured extraction via the Cloudflare Workers AI run endpoint."""

    service_name = "workers_ai"

    def __init__(
        self,
        account_id: str,
        api_token: str,
        model: str = "@cf/meta/llama-3.2-1b-instruct",
        timeout: float = 20.0,
        max_tokens: int = 500,
        client: httpx.AsyncClient | None = None,
        base_url: str = WORKERS_AI_BASE_URL,
    ) -> None:
        super().__init__(timeout=timeout, client=client)
        self._account_id = account_id
        self._api_token = api_token
        self._model = model
        self._max_tokens = max_tokens
        self._base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient | None = None) -> WorkersAIExtractor:
        return cls(
            account_id=settings.cloudflare_account_id,
            api_token=settings.cloudflare_api_token,
            model=settings.extraction_model,
            timeout=settings.inference_timeout_seconds,
            client=client,
        )

    async def extract(self, messages: list[dict[str, str]], schema: dict[str, Any]) -> str | None:
        payload = {
            "messages": messages,
            "max_tokens": self._max_tokens,
            "temperature": 0.0,
            "response_format": {"type": "json_schema", "json_schema": schema},
        }
        body = await self._post(
            f"{self._base_url}/accounts/{self._account_id}/ai/run/{self._model}",
            payload,
            headers={"Authorization": f"Bearer {self._api_token}"},
        )

        result = body.get("result")
        if not isinstance(result, dict):
            return None
        response = result.get("response")
        # JSON mode may hand back the decoded object instead of text
        if isinstance(response, dict):
            return json.dumps(response)
        if isinstance(response, str) and response.strip():
            return response
        return None


__all__ = [
    "TextScorer",
    "StructuredExtractor",
    "GeminiTextScorer",
    "WorkersAIExtractor",
    "parse_score",
]
