from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from ai_orchestrator.constants import (
    ANTHROPIC_API_BASE,
    ANTHROPIC_API_VERSION,
    LLM_REQUEST_TIMEOUT_SECONDS,
)
from ai_orchestrator.llm.errors import ProviderErrorKind, classify_status
from ai_orchestrator.llm.events import EventEmitter
from ai_orchestrator.llm.providers.base import BaseProvider
from ai_orchestrator.schemas import (
    GenerationOptions,
    GenerationResult,
    Message,
    ModelProvider,
    TokenUsage,
)

logger = logging.getLogger(__name__)


class AnthropicProvider(BaseProvider):
    name = "Anthropic Claude"
    provider = ModelProvider.ANTHROPIC
    default_primary_model = "claude-sonnet-4-20250514"
    default_fallback_model = "claude-3-5-haiku-20241022"

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
        self._base_url = (base_url or ANTHROPIC_API_BASE).rstrip("/")
        self._timeout = timeout
        self._client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._api_key or "",
            "anthropic-version": ANTHROPIC_API_VERSION,
            "content-type": "application/json",
        }

    async def _complete(
        self,
        model: str,
        messages: Sequence[Message],
        system_prompt: str,
        options: GenerationOptions,
    ) -> GenerationResult:
        payload: dict[str, Any] = {
            "model": model,
            "max_tokens": self._max_tokens(options),
            "system": system_prompt,
            "messages": [{"role": m.role.value, "content": m.content} for m in messages],
        }
        if options.temperature is not None:
            payload["temperature"] = options.temperature

        client = await self._get_client()
        try:
            r = await client.post(f"{self._base_url}/messages", headers=self._headers(), json=payload)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise self._error(
                f"Anthropic API error {status}: {(e.response.text or '')[:500]}",
                classify_status(status),
                model,
                status_code=status,
            ) from e
        except httpx.RequestError as e:
            raise self._error(f"Anthropic API unreachable: {e!s}", ProviderErrorKind.OTHER, model) from e

        data = r.json()
        blocks = (data.get("content") if isinstance(data, dict) else None) or []
        first = blocks[0] if blocks and isinstance(blocks[0], dict) else {}
        if first.get("type") != "text" or not first.get("text"):
            raise self._error(
                "Unexpected response format from Anthropic",
                ProviderErrorKind.MALFORMED_RESPONSE,
                model,
            )

        usage = None
        if isinstance(data.get("usage"), dict):
            usage = TokenUsage(
                input_tokens=data["usage"].get("input_tokens", 0),
                output_tokens=data["usage"].get("output_tokens", 0),
            )

        return GenerationResult(
            content=first["text"],
            provider_name=self.name,
            model_id=model,
            usage=usage,
            truncated=data.get("stop_reason") == "max_tokens",
        )

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
