# Google Gemini over the generateContent REST endpoint. Conversation turns map
# user → "user" and assistant → "model"; the system prompt travels as
# systemInstruction. Quota exhaustion is reported by the API with varying
# status codes, so the error body is inspected for it.

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from ai_orchestrator.constants import (
    GEMINI_API_BASE,
    GEMINI_DEFAULT_MAX_TOKENS,
    GEMINI_JSON_MODE_MAX_TOKENS,
    LLM_REQUEST_TIMEOUT_SECONDS,
)
from ai_orchestrator.llm.errors import ProviderErrorKind, classify_status
from ai_orchestrator.llm.events import EventEmitter
from ai_orchestrator.llm.providers.base import BaseProvider
from ai_orchestrator.schemas import (
    GenerationOptions,
    GenerationResult,
    Message,
    MessageRole,
    ModelProvider,
    TokenUsage,
)

logger = logging.getLogger(__name__)


def _classify_gemini_error(status_code: int, body: str) -> ProviderErrorKind:
    if "quota" in body.lower():
        return ProviderErrorKind.RATE_LIMITED
    return classify_status(status_code)


class GeminiProvider(BaseProvider):
    name = "Google Gemini"
    provider = ModelProvider.GOOGLE
    default_primary_model = "gemini-1.5-pro"
    default_fallback_model = "gemini-1.5-flash"
    default_max_tokens = GEMINI_DEFAULT_MAX_TOKENS
    json_mode_max_tokens = GEMINI_JSON_MODE_MAX_TOKENS

    def __init__(
        self,
        api_key: str | None = None,
        primary_model: str | None = None,
        fallback_model: str | None = None,
        base_url: str | None = None,
        timeout: float = LLM_REQUEST_TIMEOUT_SECONDS,
        enable_fallback: bool = True,
        events: EventEmitter | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(api_key, primary_model, fallback_model, enable_fallback, events)
        self._base_url = (base_url or GEMINI_API_BASE).rstrip("/")
        self._timeout = timeout
        self._client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    def _build_payload(
        self,
        messages: Sequence[Message],
        system_prompt: str,
        options: GenerationOptions,
    ) -> dict[str, Any]:
        generation_config: dict[str, Any] = {"maxOutputTokens": self._max_tokens(options)}
        if options.temperature is not None:
            generation_config["temperature"] = options.temperature
        if options.json_mode:
            generation_config["responseMimeType"] = "application/json"

        return {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": [
                {
                    "role": "user" if m.role == MessageRole.USER else "model",
                    "parts": [{"text": m.content}],
                }
                for m in messages
            ],
            "generationConfig": generation_config,
        }

    async def _complete(
        self,
        model: str,
        messages: Sequence[Message],
        system_prompt: str,
        options: GenerationOptions,
    ) -> GenerationResult:
        client = await self._get_client()
        url = f"{self._base_url}/models/{model}:generateContent"
        try:
            r = await client.post(
                url,
                headers={"x-goog-api-key": self._api_key or ""},
                json=self._build_payload(messages, system_prompt, options),
            )
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            body = e.response.text or ""
            raise self._error(
                f"Gemini API error {status}: {body[:500]}",
                _classify_gemini_error(status, body),
                model,
                status_code=status,
            ) from e
        except httpx.RequestError as e:
            raise self._error(f"Gemini API unreachable: {e!s}", ProviderErrorKind.OTHER, model) from e

        data = r.json()
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not candidates:
            raise self._error(
                "Unexpected response format from Gemini: no candidates",
                ProviderErrorKind.MALFORMED_RESPONSE,
                model,
            )
        first = candidates[0]
        parts = (first.get("content") or {}).get("parts") or []
        text = "".join(part.get("text") or "" for part in parts)
        if not text:
            raise self._error(
                f"Empty response from Gemini (finishReason={first.get('finishReason')})",
                ProviderErrorKind.MALFORMED_RESPONSE,
                model,
            )

        usage = None
        meta = data.get("usageMetadata")
        if isinstance(meta, dict):
            usage = TokenUsage(
                input_tokens=meta.get("promptTokenCount") or 0,
                output_tokens=meta.get("candidatesTokenCount") or 0,
            )

        return GenerationResult(
            content=text,
            provider_name=self.name,
            model_id=model,
            usage=usage,
            truncated=first.get("finishReason") == "MAX_TOKENS",
        )

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
