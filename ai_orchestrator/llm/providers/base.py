from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from ai_orchestrator.constants import DEFAULT_MAX_TOKENS, JSON_MODE_MAX_TOKENS
from ai_orchestrator.llm.errors import ProviderError, ProviderErrorKind
from ai_orchestrator.llm.events import EventEmitter, EventType
from ai_orchestrator.schemas import GenerationOptions, GenerationResult, Message, ModelProvider

logger = logging.getLogger(__name__)


class BaseProvider(ABC):
    """One generation backend behind the uniform chat contract.

    Subclasses implement :meth:`_complete` for a single model and translate
    backend failures into :class:`ProviderError`. This class owns the
    credential check and the single primary → secondary model fallback.
    """

    name: str = ""
    provider: ModelProvider
    default_primary_model: str = ""
    default_fallback_model: str = ""
    default_max_tokens: int = DEFAULT_MAX_TOKENS
    json_mode_max_tokens: int = JSON_MODE_MAX_TOKENS

    def __init__(
        self,
        api_key: str | None = None,
        primary_model: str | None = None,
        fallback_model: str | None = None,
        enable_fallback: bool = True,
        events: EventEmitter | None = None,
    ) -> None:
        self._api_key = api_key.strip() if api_key and api_key.strip() else None
        self._primary_model = primary_model or self.default_primary_model
        self._fallback_model = fallback_model or self.default_fallback_model
        self._enable_fallback = enable_fallback
        self._events = events or EventEmitter()

    def is_available(self) -> bool:
        return self._api_key is not None

    @property
    def primary_model(self) -> str:
        return self._primary_model

    @property
    def fallback_model(self) -> str | None:
        return self._fallback_model if self._enable_fallback else None

    def _max_tokens(self, options: GenerationOptions) -> int:
        if options.max_tokens:
            return options.max_tokens
        return self.json_mode_max_tokens if options.json_mode else self.default_max_tokens

    async def chat(
        self,
        messages: Sequence[Message],
        system_prompt: str,
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        if not self.is_available():
            raise ProviderError(
                f"{self.name} API key not configured",
                kind=ProviderErrorKind.NOT_CONFIGURED,
                provider=self.name,
            )
        if not messages:
            raise ValueError("chat() requires at least one message")

        options = options or GenerationOptions()
        try:
            return await self._chat_with_model(self._primary_model, messages, system_prompt, options)
        except ProviderError as e:
            if not e.retryable or self.fallback_model is None:
                raise
            primary_error = e

        logger.warning(
            "[%s] Primary model %s failed (%s), trying fallback model %s",
            self.name,
            self._primary_model,
            primary_error.kind,
            self._fallback_model,
        )
        self._events.emit(
            EventType.MODEL_FALLBACK,
            self.name,
            from_model=self._primary_model,
            to_model=self._fallback_model,
            kind=primary_error.kind.value,
            error=str(primary_error),
        )
        result = await self._chat_with_model(self._fallback_model, messages, system_prompt, options)
        return result.model_copy(
            update={
                "fallback_reason": (
                    f"{self.name} primary model {self._primary_model} failed "
                    f"({primary_error.kind.value}): {primary_error}"
                )
            }
        )

    async def _chat_with_model(
        self,
        model: str,
        messages: Sequence[Message],
        system_prompt: str,
        options: GenerationOptions,
    ) -> GenerationResult:
        try:
            result = await self._complete(model, messages, system_prompt, options)
        except ProviderError:
            raise
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            raise ProviderError(
                f"Unexpected response format from {self.name}: {e}",
                kind=ProviderErrorKind.MALFORMED_RESPONSE,
                provider=self.name,
                model=model,
            ) from e

        if result.truncated:
            logger.warning("[%s] Response truncated - max tokens reached (model=%s)", self.name, model)
            self._events.emit(EventType.RESPONSE_TRUNCATED, self.name, model=model)
        return result

    def _error(
        self,
        message: str,
        kind: ProviderErrorKind,
        model: str,
        status_code: int | None = None,
    ) -> ProviderError:
        return ProviderError(
            message, kind=kind, provider=self.name, model=model, status_code=status_code
        )

    @abstractmethod
    async def _complete(
        self,
        model: str,
        messages: Sequence[Message],
        system_prompt: str,
        options: GenerationOptions,
    ) -> GenerationResult:
        """Issue one call against ``model``."""

    async def aclose(self) -> None:
        return None

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(available={self.is_available()}, "
            f"primary={self._primary_model!r}, fallback={self.fallback_model!r})"
        )
