"""Query routing and multi-backend generation with fallback and cost accounting."""

from ai_orchestrator.orchestrator import Orchestrator
from ai_orchestrator.schemas import (
    ExecutionContext,
    ExecutionResult,
    QueryMode,
    RouterDecision,
    RouteType,
)

__all__ = [
    "ExecutionContext",
    "ExecutionResult",
    "Orchestrator",
    "QueryMode",
    "RouterDecision",
    "RouteType",
]
