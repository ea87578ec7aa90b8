from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI, OpenAIError

from ai_orchestrator.constants import LLM_REQUEST_TIMEOUT_SECONDS, OPENAI_API_BASE
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


class OpenAIProvider(BaseProvider):
    name = "OpenAI GPT"
    provider = ModelProvider.OPENAI
    default_primary_model = "gpt-4o"
    default_fallback_model = "gpt-4o-mini"

    def __init__(
        self,
        api_key: str | None = None,
        primary_model: str | None = None,
        fallback_model: str | None = None,
        base_url: str | None = None,
        timeout: float = LLM_REQUEST_TIMEOUT_SECONDS,
        enable_fallback: bool = True,
        events: EventEmitter | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        super().__init__(api_key, primary_model, fallback_model, enable_fallback, events)
        self._base_url = base_url or OPENAI_API_BASE
        self._timeout = httpx.Timeout(connect=30.0, read=timeout, write=30.0, pool=30.0)
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            # Fallback across models and backends is handled here and in the
            # manager; the SDK must not retry on its own.
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    async def _complete(
        self,
        model: str,
        messages: Sequence[Message],
        system_prompt: str,
        options: GenerationOptions,
    ) -> GenerationResult:
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": self._max_tokens(options),
            "messages": [
                {"role": "system", "content": system_prompt},
                *({"role": m.role.value, "content": m.content} for m in messages),
            ],
        }
        if options.temperature is not None:
            kwargs["temperature"] = options.temperature
        if options.json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            completion = await self._get_client().chat.completions.create(**kwargs)
        except APIStatusError as e:
            raise self._error(
                f"OpenAI API error {e.status_code}: {e.message}",
                classify_status(e.status_code),
                model,
                status_code=e.status_code,
            ) from e
        except APIConnectionError as e:
            raise self._error(f"OpenAI API unreachable: {e}", ProviderErrorKind.OTHER, model) from e
        except OpenAIError as e:
            raise self._error(f"OpenAI client error: {e}", ProviderErrorKind.OTHER, model) from e

        if not completion.choices or not completion.choices[0].message.content:
            raise self._error(
                "Unexpected response format from OpenAI",
                ProviderErrorKind.MALFORMED_RESPONSE,
                model,
            )

        choice = completion.choices[0]
        usage = None
        if completion.usage:
            usage = TokenUsage(
                input_tokens=completion.usage.prompt_tokens,
                output_tokens=completion.usage.completion_tokens,
            )

        return GenerationResult(
            content=choice.message.content,
            provider_name=self.name,
            model_id=model,
            usage=usage,
            truncated=choice.finish_reason == "length",
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
