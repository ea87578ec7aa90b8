from pydantic import BaseModel, Field

from ai_orchestrator.schemas import RouteType


class RouteCostBreakdown(BaseModel):
    route: RouteType
    input_tokens: int = 0
    output_tokens: int = 0
    executions: int = 0
    fallback_count: int = 0
    cost_usd: float = 0.0


class CostSummary(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    total_executions: int = 0
    total_cost_usd: float = 0.0
    model_costs: dict[str, float] = Field(default_factory=dict)
    route_breakdown: list[RouteCostBreakdown] = Field(default_factory=list)
