from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ai_orchestrator.config.settings import Settings, get_settings
from ai_orchestrator.evaluation.cost_tracker import CostTracker
from ai_orchestrator.evaluation.schemas import CostSummary
from ai_orchestrator.llm.errors import NoProvidersAvailableError
from ai_orchestrator.llm.events import EventEmitter
from ai_orchestrator.llm.executor import RouteExecutor
from ai_orchestrator.llm.provider_manager import (
    ProviderManager,
    ProviderOverrides,
    create_provider_manager,
)
from ai_orchestrator.llm.registry import ModelRegistry
from ai_orchestrator.llm.router import QueryRouter, RouterConfig, create_router
from ai_orchestrator.schemas import (
    ExecutionContext,
    ExecutionResult,
    QueryMode,
    RouterDecision,
    RouterStats,
    RouteType,
)

logger = logging.getLogger(__name__)


class Orchestrator:
    """Composition root: router decides, executor answers."""

    def __init__(
        self,
        router: QueryRouter,
        executor: RouteExecutor,
        provider_manager: ProviderManager,
        registry: ModelRegistry | None = None,
        cost_tracker: CostTracker | None = None,
        events: EventEmitter | None = None,
    ) -> None:
        self.router = router
        self.executor = executor
        self.provider_manager = provider_manager
        self.registry = registry or ModelRegistry.default()
        self.cost_tracker = cost_tracker
        self.events = events or EventEmitter()

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        registry: ModelRegistry | None = None,
        router_config: RouterConfig | None = None,
        system_prompts: Mapping[RouteType, str] | None = None,
        provider_configs: Mapping[str, ProviderOverrides | Mapping[str, Any]] | None = None,
        events: EventEmitter | None = None,
    ) -> Orchestrator:
        settings = settings or get_settings()
        registry = registry or ModelRegistry.from_yaml(settings.model_config_path or None)
        events = events or EventEmitter()
        cost_tracker = CostTracker(registry)

        provider_manager = create_provider_manager(
            settings, provider_configs=provider_configs, events=events
        )
        router = create_router(settings, registry, config=router_config, events=events)
        executor = RouteExecutor(
            provider_manager,
            registry=registry,
            system_prompts=system_prompts,
            cost_tracker=cost_tracker,
            events=events,
        )
        return cls(
            router,
            executor,
            provider_manager,
            registry=registry,
            cost_tracker=cost_tracker,
            events=events,
        )

    async def route(
        self,
        query: str,
        mode: QueryMode = QueryMode.STANDARD,
        context: Mapping[str, Any] | None = None,
    ) -> RouterDecision:
        return await self.router.route(query, mode, context=context)

    async def process(self, context: ExecutionContext) -> ExecutionResult:
        if not self.provider_manager.is_available():
            raise NoProvidersAvailableError()

        decision = await self.router.route(
            context.query,
            context.mode,
            conversation_history=context.conversation_history,
        )
        return await self.executor.execute(
            decision.route,
            context.model_copy(update={"router_decision": decision}),
        )

    async def process_with_route(self, route: RouteType, context: ExecutionContext) -> ExecutionResult:
        """Execute on ``route`` without consulting the router."""
        return await self.executor.execute(RouteType(route), context)

    def get_stats(self) -> RouterStats:
        return self.router.get_stats()

    def reset_stats(self) -> None:
        self.router.reset_stats()

    def is_ready(self) -> bool:
        return self.provider_manager.is_available()

    @property
    def available_providers(self) -> list[str]:
        return self.provider_manager.available_providers

    def get_cost_summary(self) -> CostSummary:
        if self.cost_tracker is None:
            return CostSummary()
        return self.cost_tracker.get_summary()

    async def aclose(self) -> None:
        await self.provider_manager.aclose()
        classifier = self.router.classifier
        if classifier is not None:
            await classifier.aclose()
