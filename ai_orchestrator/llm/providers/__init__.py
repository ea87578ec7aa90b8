from ai_orchestrator.llm.providers.anthropic_provider import AnthropicProvider
from ai_orchestrator.llm.providers.base import BaseProvider
from ai_orchestrator.llm.providers.gemini_provider import GeminiProvider
from ai_orchestrator.llm.providers.openai_provider import OpenAIProvider

PROVIDER_CLASSES: dict[str, type[BaseProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "google": GeminiProvider,
}

__all__ = [
    "PROVIDER_CLASSES",
    "AnthropicProvider",
    "BaseProvider",
    "GeminiProvider",
    "OpenAIProvider",
]
