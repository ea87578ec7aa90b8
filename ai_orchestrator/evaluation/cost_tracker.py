from __future__ import annotations

import logging
import math
import threading
import time
from typing import Any

from ai_orchestrator.constants import (
    CHARS_PER_TOKEN,
    DEFAULT_INPUT_COST_PER_1M,
    DEFAULT_OUTPUT_COST_PER_1M,
)
from ai_orchestrator.evaluation.schemas import CostSummary, RouteCostBreakdown
from ai_orchestrator.llm.errors import UnknownModelError
from ai_orchestrator.llm.registry import ModelRegistry
from ai_orchestrator.schemas import RouteType

logger = logging.getLogger(__name__)

_DEFAULT_PRICE: tuple[float, float] = (DEFAULT_INPUT_COST_PER_1M, DEFAULT_OUTPUT_COST_PER_1M)


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_cost_usd(
    input_tokens: int,
    output_tokens: int,
    model_id: str,
    registry: ModelRegistry | None = None,
) -> float:
    """Price a call by the serving model's registry entry.

    Unknown model ids are priced at the default pair instead of failing.
    """
    if registry is not None:
        try:
            return round(registry.estimate_cost(model_id, input_tokens, output_tokens), 6)
        except UnknownModelError:
            logger.debug("No pricing for %s, using default price", model_id)
    input_cost = (input_tokens / 1_000_000) * _DEFAULT_PRICE[0]
    output_cost = (output_tokens / 1_000_000) * _DEFAULT_PRICE[1]
    return round(input_cost + output_cost, 6)


class CostTracker:
    """Running cost totals per route and per model; lives as long as the process."""

    def __init__(self, registry: ModelRegistry | None = None) -> None:
        self._registry = registry
        self._lock = threading.Lock()
        self._route_totals: dict[RouteType, RouteCostBreakdown] = {}
        self._model_costs: dict[str, float] = {}

    def estimate(self, input_tokens: int, output_tokens: int, model_id: str) -> float:
        return estimate_cost_usd(input_tokens, output_tokens, model_id, self._registry)

    def record(
        self,
        route: RouteType,
        model_id: str,
        input_tokens: int,
        output_tokens: int,
        cost_usd: float | None = None,
        fallback_used: bool = False,
    ) -> dict[str, Any]:
        if cost_usd is None:
            cost_usd = self.estimate(input_tokens, output_tokens, model_id)
        route = RouteType(route)
        with self._lock:
            totals = self._route_totals.setdefault(route, RouteCostBreakdown(route=route))
            totals.input_tokens += input_tokens
            totals.output_tokens += output_tokens
            totals.executions += 1
            totals.cost_usd += cost_usd
            if fallback_used:
                totals.fallback_count += 1
            self._model_costs[model_id] = self._model_costs.get(model_id, 0.0) + cost_usd
        return {
            "route": route,
            "model_id": model_id,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "cost_usd": cost_usd,
            "fallback_used": fallback_used,
            "timestamp": time.time(),
        }

    def reset(self) -> None:
        with self._lock:
            self._route_totals.clear()
            self._model_costs.clear()

    def get_total_cost_usd(self) -> float:
        with self._lock:
            return round(sum(t.cost_usd for t in self._route_totals.values()), 6)

    def get_summary(self) -> CostSummary:
        with self._lock:
            breakdown = [
                totals.model_copy(update={"cost_usd": round(totals.cost_usd, 6)})
                for _, totals in sorted(self._route_totals.items())
            ]
            model_costs = {k: round(v, 6) for k, v in sorted(self._model_costs.items())}
            total_cost = sum(t.cost_usd for t in self._route_totals.values())

        return CostSummary(
            input_tokens=sum(b.input_tokens for b in breakdown),
            output_tokens=sum(b.output_tokens for b in breakdown),
            total_executions=sum(b.executions for b in breakdown),
            total_cost_usd=round(total_cost, 6),
            model_costs=model_costs,
            route_breakdown=breakdown,
        )
