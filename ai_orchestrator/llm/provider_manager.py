from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

from ai_orchestrator.config.settings import Settings
from ai_orchestrator.llm.errors import NoProvidersAvailableError, ProviderError
from ai_orchestrator.llm.events import EventEmitter, EventType
from ai_orchestrator.llm.providers import PROVIDER_CLASSES, BaseProvider
from ai_orchestrator.schemas import GenerationOptions, GenerationResult, Message

logger = logging.getLogger(__name__)


class ProviderOverrides(BaseModel):
    primary_model: str | None = None
    fallback_model: str | None = None
    base_url: str | None = None


class ProviderManager:
    """Ordered cross-backend fallback over the available adapters.

    Adapters whose credentials are missing are dropped at construction; the
    rest are tried in order and the first success wins.
    """

    def __init__(self, providers: Sequence[BaseProvider], events: EventEmitter | None = None) -> None:
        self._events = events or EventEmitter()
        self._providers: tuple[BaseProvider, ...] = tuple(p for p in providers if p.is_available())

        if not self._providers:
            logger.warning("[ProviderManager] No AI providers available")
        else:
            logger.info("[ProviderManager] Initialized: %s", ", ".join(self.available_providers))

    @property
    def available_providers(self) -> list[str]:
        return [p.name for p in self._providers]

    @property
    def provider_count(self) -> int:
        return len(self._providers)

    @property
    def providers(self) -> tuple[BaseProvider, ...]:
        return self._providers

    def is_available(self) -> bool:
        return bool(self._providers)

    async def chat(
        self,
        messages: Sequence[Message],
        system_prompt: str,
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        if not self._providers:
            raise NoProvidersAvailableError()

        last_error: Exception | None = None
        failures: list[str] = []

        for provider in self._providers:
            start = time.perf_counter()
            try:
                logger.debug("[ProviderManager] Trying: %s", provider.name)
                result = await provider.chat(messages, system_prompt, options)
            except Exception as e:
                latency_ms = int((time.perf_counter() - start) * 1000)
                last_error = e
                failures.append(f"{provider.name}: {e}")
                logger.warning(
                    "[ProviderManager] %s failed in %dms: %s", provider.name, latency_ms, e
                )
                self._events.emit(
                    EventType.PROVIDER_FAILED,
                    "ProviderManager",
                    provider=provider.name,
                    kind=e.kind.value if isinstance(e, ProviderError) else "other",
                    error=str(e),
                    latency_ms=latency_ms,
                )
                continue

            logger.info("[ProviderManager] Success: %s (%s)", provider.name, result.model_id)
            if failures:
                reason = "; ".join(failures)
                if result.fallback_reason:
                    reason = f"{reason}; {result.fallback_reason}"
                result = result.model_copy(update={"fallback_reason": reason})
            return result

        self._events.emit(
            EventType.PROVIDERS_EXHAUSTED,
            "ProviderManager",
            attempts=len(failures),
            errors=failures,
        )
        logger.error("[ProviderManager] All %d providers failed", len(failures))
        if last_error is None:
            raise NoProvidersAvailableError()
        raise last_error

    async def aclose(self) -> None:
        for provider in self._providers:
            await provider.aclose()


def create_provider_manager(
    settings: Settings,
    provider_order: Sequence[str] | None = None,
    provider_configs: Mapping[str, ProviderOverrides | Mapping[str, Any]] | None = None,
    events: EventEmitter | None = None,
) -> ProviderManager:
    """Instantiate one adapter per requested backend name, in order.

    Unknown backend names raise ``ValueError``; backends without credentials
    are silently excluded by the manager.
    """
    order = list(provider_order or settings.provider_order)
    configs = provider_configs or {}
    events = events or EventEmitter()

    providers: list[BaseProvider] = []
    for name in order:
        cls = PROVIDER_CLASSES.get(name)
        if cls is None:
            raise ValueError(f"Unknown provider: {name}")
        raw = configs.get(name) or {}
        overrides = raw if isinstance(raw, ProviderOverrides) else ProviderOverrides.model_validate(raw)
        providers.append(
            cls(
                api_key=settings.api_key_for(name),
                primary_model=overrides.primary_model,
                fallback_model=overrides.fallback_model,
                base_url=overrides.base_url or settings.base_url_for(name),
                timeout=settings.request_timeout,
                events=events,
            )
        )

    return ProviderManager(providers, events=events)
