from __future__ import annotations

import logging
from collections.abc import Mapping

from ai_orchestrator.constants import DEFAULT_EXECUTION_CONFIDENCE
from ai_orchestrator.evaluation.cost_tracker import CostTracker, estimate_cost_usd, estimate_tokens
from ai_orchestrator.llm.events import EventEmitter, EventType
from ai_orchestrator.llm.prompts import RETRIEVED_CONTEXT_TEMPLATE, ROUTE_SYSTEM_PROMPTS
from ai_orchestrator.llm.provider_manager import ProviderManager
from ai_orchestrator.llm.registry import ModelRegistry
from ai_orchestrator.schemas import (
    ExecutionContext,
    ExecutionCosts,
    ExecutionResult,
    ExecutionTiming,
    GenerationOptions,
    Message,
    MessageRole,
    RouteType,
)
from ai_orchestrator.utils.timing import TimingTracker

logger = logging.getLogger(__name__)


class RouteExecutor:
    """Runs one query on a chosen route and accounts for time and cost.

    Failures from the provider manager propagate unchanged; the executor adds
    no fallback of its own.
    """

    def __init__(
        self,
        provider_manager: ProviderManager,
        registry: ModelRegistry | None = None,
        system_prompts: Mapping[RouteType, str] | None = None,
        cost_tracker: CostTracker | None = None,
        events: EventEmitter | None = None,
    ) -> None:
        self._provider_manager = provider_manager
        self._registry = registry or ModelRegistry.default()
        self._system_prompts: dict[RouteType, str] = {
            **ROUTE_SYSTEM_PROMPTS,
            **{RouteType(k): v for k, v in (system_prompts or {}).items()},
        }
        self._cost_tracker = cost_tracker
        self._events = events or EventEmitter()

    def get_system_prompt(self, route: RouteType) -> str:
        return self._system_prompts[RouteType(route)]

    def set_system_prompt(self, route: RouteType, prompt: str) -> None:
        self._system_prompts[RouteType(route)] = prompt

    @staticmethod
    def build_messages(context: ExecutionContext) -> list[Message]:
        messages = list(context.conversation_history)
        content = context.query
        if context.retrieved_context:
            content = RETRIEVED_CONTEXT_TEMPLATE.format(
                context=context.retrieved_context, query=context.query
            )
        messages.append(Message(role=MessageRole.USER, content=content))
        return messages

    async def execute(self, route: RouteType, context: ExecutionContext) -> ExecutionResult:
        route = RouteType(route)
        timing = TimingTracker()
        route_config = self._registry.get_route_config(route)

        timing.mark("generation_start")
        messages = self.build_messages(context)
        system_prompt = context.system_prompt or self._system_prompts[route]
        options = GenerationOptions(
            temperature=route_config.temperature,
            max_tokens=route_config.max_tokens,
        )

        logger.debug(
            "[Executor] route=%s messages=%d max_tokens=%d",
            route,
            len(messages),
            route_config.max_tokens,
        )
        result = await self._provider_manager.chat(messages, system_prompt, options)
        generation_ms = timing.measure("generation_ms", "generation_start")
        timings = timing.to_dict()
        logger.debug("[Executor] route=%s timings=%s", route, timings)

        if result.usage is not None:
            input_tokens = result.usage.input_tokens
            output_tokens = result.usage.output_tokens
        else:
            input_tokens = estimate_tokens(system_prompt + "".join(m.content for m in messages))
            output_tokens = estimate_tokens(result.content)

        cost = estimate_cost_usd(input_tokens, output_tokens, result.model_id, self._registry)

        decision = context.router_decision
        execution = ExecutionResult(
            answer=result.content,
            route=route,
            model_id=result.model_id,
            provider_name=result.provider_name,
            confidence=decision.confidence if decision is not None else DEFAULT_EXECUTION_CONFIDENCE,
            timing=ExecutionTiming(
                total_ms=timings["total_ms"],
                routing_ms=decision.latency_ms if decision is not None else None,
                generation_ms=generation_ms,
            ),
            costs=ExecutionCosts(
                estimated_usd=cost,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
            ),
            fallback_used=result.fallback_used,
            fallback_reason=result.fallback_reason,
            router_bypassed=decision.bypassed if decision is not None else None,
        )

        if self._cost_tracker is not None:
            self._cost_tracker.record(
                route,
                result.model_id,
                input_tokens,
                output_tokens,
                cost_usd=cost,
                fallback_used=result.fallback_used,
            )

        logger.info(
            "[Executor] %s served by %s/%s in %dms (%d in / %d out, $%.6f)",
            route,
            result.provider_name,
            result.model_id,
            generation_ms,
            input_tokens,
            output_tokens,
            cost,
        )
        self._events.emit(
            EventType.GENERATION_COMPLETED,
            "RouteExecutor",
            route=route.value,
            provider=result.provider_name,
            model=result.model_id,
            generation_ms=generation_ms,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            estimated_usd=cost,
            fallback_used=result.fallback_used,
        )
        return execution
