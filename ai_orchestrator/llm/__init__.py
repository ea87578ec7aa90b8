"""Model catalog, backend adapters and routing for the orchestrator."""

from ai_orchestrator.llm.errors import (
    NoProvidersAvailableError,
    OrchestratorError,
    ProviderError,
    ProviderErrorKind,
    UnknownModelError,
)
from ai_orchestrator.llm.registry import ModelRegistry
from ai_orchestrator.llm.route_types import RouteConfig, get_route_config

__all__ = [
    "ModelRegistry",
    "NoProvidersAvailableError",
    "OrchestratorError",
    "ProviderError",
    "ProviderErrorKind",
    "RouteConfig",
    "UnknownModelError",
    "get_route_config",
]
