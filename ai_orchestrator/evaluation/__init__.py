"""Cost accounting for executed routes."""

from ai_orchestrator.evaluation.cost_tracker import CostTracker, estimate_cost_usd
from ai_orchestrator.evaluation.schemas import CostSummary, RouteCostBreakdown

__all__ = [
    "CostTracker",
    "estimate_cost_usd",
    "CostSummary",
    "RouteCostBreakdown",
]
