from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class RouteType(StrEnum):
    FAST = "fast"
    STANDARD = "standard"
    DEEP = "deep"
    CREATIVE = "creative"
    RESEARCH = "research"


class QueryMode(StrEnum):
    STANDARD = "standard"
    RESEARCH = "research"


class MessageRole(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


class ModelProvider(StrEnum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GOOGLE = "google"


class ModelTier(StrEnum):
    FLAGSHIP = "flagship"
    BALANCED = "balanced"
    FAST = "fast"
    BUDGET = "budget"


class Message(BaseModel):
    role: MessageRole
    content: str


class GenerationOptions(BaseModel):
    json_mode: bool = False
    max_tokens: int | None = Field(default=None, gt=0)
    temperature: float | None = None


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0


class GenerationResult(BaseModel):
    content: str
    provider_name: str
    model_id: str
    usage: TokenUsage | None = None
    truncated: bool = False
    fallback_reason: str | None = None

    @property
    def fallback_used(self) -> bool:
        return self.fallback_reason is not None


class ModelConfig(BaseModel):
    """Catalog entry for one generation model. Costs are USD per 1M tokens."""

    id: str
    alias: str | None = None
    provider: ModelProvider
    tier: ModelTier
    context_window: int = Field(gt=0)
    max_output: int = Field(gt=0)
    input_cost: float = Field(ge=0)
    output_cost: float = Field(ge=0)
    features: list[str] = Field(default_factory=list)
    notes: str = ""


class RouterDecision(BaseModel):
    route: RouteType
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""
    complexity_signals: list[str] = Field(default_factory=list)
    bypassed: bool = False
    latency_ms: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class RouterStats(BaseModel):
    total_routed: int = 0
    bypassed_count: int = 0
    route_distribution: dict[RouteType, int] = Field(
        default_factory=lambda: {route: 0 for route in RouteType}
    )
    avg_latency_ms: float = 0.0
    avg_confidence: float = 0.0


class ExecutionContext(BaseModel):
    query: str
    mode: QueryMode = QueryMode.STANDARD
    router_decision: RouterDecision | None = None
    system_prompt: str | None = None
    conversation_history: list[Message] = Field(default_factory=list)
    retrieved_context: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ExecutionTiming(BaseModel):
    total_ms: int
    routing_ms: int | None = None
    generation_ms: int


class ExecutionCosts(BaseModel):
    estimated_usd: float
    input_tokens: int
    output_tokens: int


class ExecutionResult(BaseModel):
    answer: str
    route: RouteType
    model_id: str
    provider_name: str
    confidence: float
    timing: ExecutionTiming
    costs: ExecutionCosts
    fallback_used: bool = False
    fallback_reason: str | None = None
    router_bypassed: bool | None = None
