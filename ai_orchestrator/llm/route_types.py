from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from ai_orchestrator.schemas import RouteType

RetrievalStrategy = Literal["basic", "reranked", "multi-query"]


@dataclass(frozen=True)
class RetrievalConfig:
    strategy: RetrievalStrategy = "basic"
    top_k: int = 5
    threshold: float = 0.5


@dataclass(frozen=True)
class RouteConfig:
    name: RouteType
    description: str
    primary_model: str
    fallback_chain: tuple[str, ...] = ()
    reranking: bool = False
    temperature: float = 0.5
    max_tokens: int = 800
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)


ROUTE_CONFIGS: dict[RouteType, RouteConfig] = {
    RouteType.FAST: RouteConfig(
        name=RouteType.FAST,
        description="Quick responses to simple, factual queries",
        primary_model="gpt-4o-mini",
        fallback_chain=("gemini-1.5-flash", "claude-haiku-3.5"),
        reranking=False,
        temperature=0.3,
        max_tokens=500,
        retrieval=RetrievalConfig(strategy="basic", top_k=5, threshold=0.45),
    ),
    RouteType.STANDARD: RouteConfig(
        name=RouteType.STANDARD,
        description="Balanced quality/speed for typical queries",
        primary_model="claude-sonnet-4",
        fallback_chain=("gpt-4o", "gemini-1.5-pro"),
        reranking=True,
        temperature=0.5,
        max_tokens=800,
        retrieval=RetrievalConfig(strategy="reranked", top_k=5, threshold=0.5),
    ),
    RouteType.DEEP: RouteConfig(
        name=RouteType.DEEP,
        description="Complex analysis requiring multi-step reasoning",
        primary_model="claude-opus-4",
        fallback_chain=("claude-sonnet-4", "gpt-4o"),
        reranking=True,
        temperature=0.6,
        max_tokens=1500,
        retrieval=RetrievalConfig(strategy="multi-query", top_k=8, threshold=0.45),
    ),
    RouteType.CREATIVE: RouteConfig(
        name=RouteType.CREATIVE,
        description="Open-ended exploration and brainstorming",
        primary_model="claude-sonnet-4",
        fallback_chain=("gpt-4o", "gemini-1.5-pro"),
        reranking=False,
        temperature=0.8,
        max_tokens=1000,
        retrieval=RetrievalConfig(strategy="basic", top_k=5, threshold=0.4),
    ),
    RouteType.RESEARCH: RouteConfig(
        name=RouteType.RESEARCH,
        description="Deep research queries requiring extensive context",
        primary_model="gemini-1.5-pro",
        fallback_chain=("claude-sonnet-4", "gpt-4o"),
        reranking=True,
        temperature=0.6,
        max_tokens=1500,
        retrieval=RetrievalConfig(strategy="reranked", top_k=5, threshold=0.5),
    ),
}


def get_route_config(route: RouteType) -> RouteConfig:
    return ROUTE_CONFIGS[route]
