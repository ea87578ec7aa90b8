"""Backend registry: model catalog, route table and specialized-model assignments.

The registry is a plain configuration object. Build it once at startup
(``ModelRegistry.default()`` or ``ModelRegistry.from_yaml(path)``) and hand the
same instance to the router and executor.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from ai_orchestrator.llm.errors import UnknownModelError
from ai_orchestrator.llm.route_types import ROUTE_CONFIGS, RouteConfig
from ai_orchestrator.schemas import ModelConfig, ModelProvider, ModelTier, RouteType

logger = logging.getLogger(__name__)

MODELS: dict[str, ModelConfig] = {
    "claude-opus-4": ModelConfig(
        id="claude-opus-4-20250514",
        alias="claude-opus-4-latest",
        provider=ModelProvider.ANTHROPIC,
        tier=ModelTier.FLAGSHIP,
        context_window=200_000,
        max_output=32_000,
        input_cost=15.00,
        output_cost=75.00,
        features=["extended_thinking", "vision", "tool_use"],
        notes="Best reasoning. Reserve for complex queries requiring deep analysis.",
    ),
    "claude-sonnet-4": ModelConfig(
        id="claude-sonnet-4-20250514",
        alias="claude-sonnet-4-latest",
        provider=ModelProvider.ANTHROPIC,
        tier=ModelTier.BALANCED,
        context_window=200_000,
        max_output=16_000,
        input_cost=3.00,
        output_cost=15.00,
        features=["extended_thinking", "vision", "tool_use"],
        notes="Best quality/cost ratio. Primary choice for standard and deep routes.",
    ),
    "claude-haiku-3.5": ModelConfig(
        id="claude-3-5-haiku-20241022",
        alias="claude-3-5-haiku-latest",
        provider=ModelProvider.ANTHROPIC,
        tier=ModelTier.FAST,
        context_window=200_000,
        max_output=8192,
        input_cost=0.80,
        output_cost=4.00,
        features=["vision", "tool_use"],
        notes="Fast and cheap. Used for routing, reranking and classification.",
    ),
    "gpt-4o": ModelConfig(
        id="gpt-4o",
        provider=ModelProvider.OPENAI,
        tier=ModelTier.BALANCED,
        context_window=128_000,
        max_output=16_384,
        input_cost=2.50,
        output_cost=10.00,
        features=["json_mode", "vision", "function_calling"],
        notes="Strong fallback for Claude Sonnet.",
    ),
    "gpt-4o-mini": ModelConfig(
        id="gpt-4o-mini",
        provider=ModelProvider.OPENAI,
        tier=ModelTier.FAST,
        context_window=128_000,
        max_output=16_384,
        input_cost=0.15,
        output_cost=0.60,
        features=["json_mode", "vision", "function_calling"],
        notes="Cheapest option, primary for the fast route.",
    ),
    "gemini-1.5-pro": ModelConfig(
        id="gemini-1.5-pro",
        provider=ModelProvider.GOOGLE,
        tier=ModelTier.BALANCED,
        context_window=2_000_000,
        max_output=8192,
        input_cost=1.25,
        output_cost=5.00,
        features=["vision"],
        notes="2M context, suited to long document processing.",
    ),
    "gemini-1.5-flash": ModelConfig(
        id="gemini-1.5-flash",
        provider=ModelProvider.GOOGLE,
        tier=ModelTier.FAST,
        context_window=1_000_000,
        max_output=8192,
        input_cost=0.075,
        output_cost=0.30,
        features=["vision"],
        notes="Budget option with large context.",
    ),
}

SPECIALIZED_MODELS: dict[str, str] = {
    "router": "claude-haiku-3.5",
    "reranker": "claude-haiku-3.5",
    "concept_extractor": "claude-haiku-3.5",
    "query_expander": "claude-haiku-3.5",
    "complexity_assessor": "claude-haiku-3.5",
    "context_compressor": "gemini-1.5-pro",
}


class ModelRegistry:
    def __init__(
        self,
        models: Mapping[str, ModelConfig] | None = None,
        routes: Mapping[RouteType, RouteConfig] | None = None,
        specialized: Mapping[str, str] | None = None,
    ) -> None:
        self._models: dict[str, ModelConfig] = dict(MODELS if models is None else models)
        self._routes: dict[RouteType, RouteConfig] = dict(ROUTE_CONFIGS if routes is None else routes)
        self._specialized: dict[str, str] = dict(
            SPECIALIZED_MODELS if specialized is None else specialized
        )
        self._by_identifier: dict[str, ModelConfig] = {}
        for model in self._models.values():
            self._by_identifier.setdefault(model.id, model)
            if model.alias:
                self._by_identifier.setdefault(model.alias, model)

        for route, cfg in self._routes.items():
            if cfg.primary_model not in self._models:
                logger.warning(
                    "Route %s references unknown primary model %s", route, cfg.primary_model
                )

    @classmethod
    def default(cls) -> ModelRegistry:
        return cls()

    @classmethod
    def from_yaml(cls, config_path: str | None) -> ModelRegistry:
        """Built-in tables overlaid with the YAML file at ``config_path``.

        Falls back to the built-in tables when the file is absent or invalid.
        """
        from ai_orchestrator.config.loader import load_registry_config

        overrides = load_registry_config(config_path)
        if overrides is None:
            return cls.default()

        return cls(
            models={**MODELS, **overrides.models},
            routes={**ROUTE_CONFIGS, **overrides.routes},
            specialized={**SPECIALIZED_MODELS, **overrides.specialized},
        )

    @property
    def models(self) -> dict[str, ModelConfig]:
        return dict(self._models)

    @property
    def route_configs(self) -> dict[RouteType, RouteConfig]:
        return dict(self._routes)

    @property
    def specialized_models(self) -> dict[str, str]:
        return dict(self._specialized)

    def get_model(self, model_key: str) -> ModelConfig | None:
        return self._models.get(model_key)

    def resolve(self, model_key_or_id: str) -> ModelConfig:
        """Look up a model by registry key, concrete id or alias."""
        model = self._models.get(model_key_or_id) or self._by_identifier.get(model_key_or_id)
        if model is None:
            raise UnknownModelError(model_key_or_id)
        return model

    def get_model_id(self, model_key: str, use_alias: bool = False) -> str:
        model = self._models.get(model_key)
        if model is None:
            raise UnknownModelError(model_key)
        return model.alias if use_alias and model.alias else model.id

    def get_models_by_provider(self, provider: ModelProvider) -> list[ModelConfig]:
        return [m for m in self._models.values() if m.provider == provider]

    def get_models_by_tier(self, tier: ModelTier) -> list[ModelConfig]:
        return [m for m in self._models.values() if m.tier == tier]

    def get_route_config(self, route: RouteType) -> RouteConfig:
        return self._routes[route]

    def get_route_model(self, route: RouteType) -> ModelConfig:
        cfg = self._routes[route]
        model = self._models.get(cfg.primary_model)
        if model is None:
            raise UnknownModelError(cfg.primary_model)
        return model

    def get_route_fallbacks(self, route: RouteType) -> list[ModelConfig]:
        cfg = self._routes[route]
        return [self._models[key] for key in cfg.fallback_chain if key in self._models]

    def get_specialized_model(self, task: str) -> ModelConfig:
        model_key = self._specialized.get(task)
        if model_key is None:
            raise KeyError(f"No specialized model assigned for task: {task}")
        model = self._models.get(model_key)
        if model is None:
            raise UnknownModelError(model_key)
        return model

    def get_specialized_model_id(self, task: str) -> str:
        return self.get_specialized_model(task).id

    def model_supports_feature(self, model_key: str, feature: str) -> bool:
        model = self._models.get(model_key)
        return model is not None and feature in model.features

    def estimate_cost(self, model_key_or_id: str, input_tokens: int, output_tokens: int) -> float:
        model = self.resolve(model_key_or_id)
        input_cost = (input_tokens / 1_000_000) * model.input_cost
        output_cost = (output_tokens / 1_000_000) * model.output_cost
        return input_cost + output_cost

    def get_cheapest_model(
        self,
        min_context_window: int | None = None,
        provider: ModelProvider | None = None,
        tier: ModelTier | None = None,
    ) -> ModelConfig | None:
        candidates = list(self._models.values())
        if provider is not None:
            candidates = [m for m in candidates if m.provider == provider]
        if tier is not None:
            candidates = [m for m in candidates if m.tier == tier]
        if min_context_window:
            candidates = [m for m in candidates if m.context_window >= min_context_window]
        if not candidates:
            return None
        return min(candidates, key=lambda m: m.input_cost + m.output_cost)
