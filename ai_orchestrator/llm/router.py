"""Query router: assigns each query to one of the five processing routes.

Decision tiers, first success wins:

1. Bypass: pure string checks for short, simple queries (never in research mode).
2. Classifier: a fast backend model returns a JSON verdict.
3. Heuristic: keyword signals, used without a classifier or when its call fails.
"""

from __future__ import annotations

import json
import logging
import math
import re
import threading
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import json_repair

from ai_orchestrator.config.settings import Settings
from ai_orchestrator.constants import (
    BYPASS_CONFIDENCE,
    BYPASS_PATTERN_MAX_WORDS,
    BYPASS_SHORT_MAX_WORDS,
    CLASSIFIER_DEFAULT_CONFIDENCE,
    CLASSIFIER_MAX_TOKENS,
    CLASSIFIER_PARSE_FAILURE_CONFIDENCE,
    HEURISTIC_SIMPLE_MAX_WORDS,
)
from ai_orchestrator.llm.errors import ClassifierParseError
from ai_orchestrator.llm.events import EventEmitter, EventType
from ai_orchestrator.llm.prompts import ROUTER_SYSTEM_PROMPT
from ai_orchestrator.llm.providers import PROVIDER_CLASSES, BaseProvider
from ai_orchestrator.llm.registry import ModelRegistry
from ai_orchestrator.schemas import (
    GenerationOptions,
    Message,
    MessageRole,
    QueryMode,
    RouterDecision,
    RouterStats,
    RouteType,
)

logger = logging.getLogger(__name__)

DEFAULT_COMPLEX_SIGNALS: tuple[str, ...] = (
    "compare", "contrast", "analyze", "explain why", "explain how",
    "how does", "what if", "relationship between", "implications",
    "trade-offs", "advantages", "disadvantages", "pros and cons",
    "difference between", "similar to", "versus", "vs",
    "in-depth", "detailed", "comprehensive", "thoroughly",
    "multiple", "several", "various", "all the",
)  # fmt: skip

DEFAULT_RESEARCH_SIGNALS: tuple[str, ...] = (
    "methodology", "approach", "theory", "concept", "framework",
    "hypothesis", "findings", "results", "conclusion", "evidence",
    "literature", "study", "research", "paper", "article",
    "according to", "based on", "in the context of",
)  # fmt: skip

DEFAULT_CREATIVE_SIGNALS: tuple[str, ...] = (
    "imagine", "what kind of", "possibilities", "ideas for",
    "brainstorm", "creative", "innovative", "future",
    "could", "might", "potential", "explore",
)  # fmt: skip

DEFAULT_SIMPLE_PATTERNS: tuple[str, ...] = (
    r"^what (is|are) .{1,50}\??$",
    r"^(list|show|tell me|give me) .{1,40}$",
    r"^(what|which) (technologies?|languages?|skills?|tools?)",
    r"^how (long|many|much)",
    r"^where (is|does|did)",
    r"^when did",
)

_JSON_BLOCK_PATTERN = re.compile(r"\{.*\}", re.DOTALL)


@dataclass
class RouterConfig:
    complex_signals: Sequence[str] = DEFAULT_COMPLEX_SIGNALS
    research_signals: Sequence[str] = DEFAULT_RESEARCH_SIGNALS
    creative_signals: Sequence[str] = DEFAULT_CREATIVE_SIGNALS
    simple_patterns: Sequence[str | re.Pattern[str]] = DEFAULT_SIMPLE_PATTERNS
    system_prompt: str = ROUTER_SYSTEM_PROMPT


@dataclass(frozen=True)
class ClassifierOutput:
    route: RouteType
    confidence: float
    reasoning: str
    complexity_signals: list[str] = field(default_factory=list)


def _compile(pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern, re.IGNORECASE)


def _coerce_confidence(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return CLASSIFIER_DEFAULT_CONFIDENCE
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return CLASSIFIER_DEFAULT_CONFIDENCE
    if math.isnan(confidence):
        return CLASSIFIER_DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, confidence))


def parse_classifier_response(text: str) -> ClassifierOutput:
    """Extract the classifier's verdict from the first ``{...}`` block in ``text``.

    Raises:
        ClassifierParseError: no JSON object could be recovered or its route is
            not one of the five routes.
    """
    match = _JSON_BLOCK_PATTERN.search(text or "")
    if not match:
        raise ClassifierParseError("No JSON found in response")

    raw = match.group(0)
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.debug("Router JSON invalid (%s), attempting json_repair", e)
        try:
            parsed = json_repair.loads(raw)
        except Exception as repair_error:
            raise ClassifierParseError(f"Unrecoverable JSON: {e}") from repair_error

    if not isinstance(parsed, dict):
        raise ClassifierParseError(f"Expected a JSON object, got {type(parsed).__name__}")

    route_raw = parsed.get("route")
    try:
        route = RouteType(str(route_raw).strip().lower())
    except ValueError as e:
        raise ClassifierParseError(f"Invalid route: {route_raw!r}") from e

    signals = parsed.get("complexity_signals")
    return ClassifierOutput(
        route=route,
        confidence=_coerce_confidence(parsed.get("confidence")),
        reasoning=str(parsed.get("reasoning") or ""),
        complexity_signals=[str(s) for s in signals] if isinstance(signals, list) else [],
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class QueryRouter:
    def __init__(
        self,
        classifier: BaseProvider | None = None,
        config: RouterConfig | None = None,
        events: EventEmitter | None = None,
    ) -> None:
        self._config = config or RouterConfig()
        self._complex_signals = tuple(s.lower() for s in self._config.complex_signals)
        self._research_signals = tuple(s.lower() for s in self._config.research_signals)
        self._creative_signals = tuple(s.lower() for s in self._config.creative_signals)
        self._simple_patterns = tuple(_compile(p) for p in self._config.simple_patterns)
        self._classifier = classifier if classifier is not None and classifier.is_available() else None
        self._events = events or EventEmitter()
        self._stats_lock = threading.Lock()
        self._stats = RouterStats()

        if self._classifier is not None:
            logger.info("[Router] Initialized with classifier model: %s", self._classifier.primary_model)
        else:
            logger.info("[Router] Initialized without classifier, heuristic routing only")

    @property
    def classifier(self) -> BaseProvider | None:
        return self._classifier

    def is_classifier_available(self) -> bool:
        return self._classifier is not None

    # -------------------------------------------------------------------------
    # Signal detection
    # -------------------------------------------------------------------------

    @staticmethod
    def _matching(query: str, signals: Sequence[str]) -> list[str]:
        lowered = query.lower()
        return [s for s in signals if s in lowered]

    def _has_complex_signals(self, query: str) -> bool:
        return bool(self._matching(query, self._complex_signals))

    def _matches_simple_pattern(self, query: str) -> bool:
        stripped = query.strip()
        return any(p.search(stripped) for p in self._simple_patterns)

    def _bypass_reason(self, query: str, mode: QueryMode) -> str | None:
        """Return why ``query`` may skip classification, or None.

        Rule A (pattern-gated, < BYPASS_PATTERN_MAX_WORDS words) is checked
        before rule B (<= BYPASS_SHORT_MAX_WORDS words, no pattern needed).
        Both require the absence of complexity signals.
        """
        if mode == QueryMode.RESEARCH:
            return None
        if self._has_complex_signals(query):
            return None

        word_count = len(query.split())
        if word_count < BYPASS_PATTERN_MAX_WORDS and self._matches_simple_pattern(query):
            return "Query matched simple pattern - router bypassed"
        if word_count <= BYPASS_SHORT_MAX_WORDS:
            return "Very short query without complexity signals - router bypassed"
        return None

    # -------------------------------------------------------------------------
    # Routing
    # -------------------------------------------------------------------------

    async def route(
        self,
        query: str,
        mode: QueryMode | str = QueryMode.STANDARD,
        conversation_history: Sequence[Message] | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> RouterDecision:
        start = time.perf_counter()
        mode = QueryMode(mode)

        reason = self._bypass_reason(query, mode)
        if reason is not None:
            decision = RouterDecision(
                route=RouteType.FAST,
                confidence=BYPASS_CONFIDENCE,
                reasoning=reason,
                complexity_signals=[],
                bypassed=True,
                latency_ms=_elapsed_ms(start),
            )
            return self._record(decision, tier="bypass")

        if self._classifier is None:
            return self._record(self._heuristic_route(query, mode, start), tier="heuristic")

        try:
            decision = await self._classify(query, mode, conversation_history, context, start)
            tier = "classifier"
        except Exception as e:
            logger.warning("[Router] Classifier call failed, falling back to heuristic: %s", e)
            self._events.emit(
                EventType.CLASSIFIER_FAILED, "QueryRouter", reason="call_failed", error=str(e)
            )
            decision = self._heuristic_route(query, mode, start)
            tier = "heuristic"
        return self._record(decision, tier=tier)

    async def _classify(
        self,
        query: str,
        mode: QueryMode,
        conversation_history: Sequence[Message] | None,
        context: Mapping[str, Any] | None,
        start: float,
    ) -> RouterDecision:
        assert self._classifier is not None
        user_message = f'Query: "{query}"\nMode: {mode.value}'
        if conversation_history:
            user_message += f"\nPrior turns: {len(conversation_history)}"
        if context:
            user_message += f"\nContext: {json.dumps(dict(context), default=str)}"

        result = await self._classifier.chat(
            [Message(role=MessageRole.USER, content=user_message)],
            self._config.system_prompt,
            GenerationOptions(max_tokens=CLASSIFIER_MAX_TOKENS),
        )

        try:
            verdict = parse_classifier_response(result.content)
        except ClassifierParseError as e:
            logger.warning("[Router] Failed to parse classifier response, using standard route: %s", e)
            self._events.emit(EventType.CLASSIFIER_FAILED, "QueryRouter", reason="parse", error=str(e))
            return RouterDecision(
                route=RouteType.STANDARD,
                confidence=CLASSIFIER_PARSE_FAILURE_CONFIDENCE,
                reasoning=f"Failed to parse router response: {e}",
                complexity_signals=[],
                bypassed=False,
                latency_ms=_elapsed_ms(start),
            )

        return RouterDecision(
            route=verdict.route,
            confidence=verdict.confidence,
            reasoning=verdict.reasoning,
            complexity_signals=verdict.complexity_signals,
            bypassed=False,
            latency_ms=_elapsed_ms(start),
        )

    def _heuristic_route(self, query: str, mode: QueryMode, start: float) -> RouterDecision:
        signals: list[str] = []
        creative = self._matching(query, self._creative_signals)
        complex_ = self._matching(query, self._complex_signals)

        if mode == QueryMode.RESEARCH:
            if self._matching(query, self._research_signals):
                route, confidence = RouteType.RESEARCH, 0.85
                reasoning = "Research mode with research-related signals"
                signals += ["research_mode", "research_signals"]
            else:
                route, confidence = RouteType.STANDARD, 0.75
                reasoning = "Research mode with general query"
                signals.append("research_mode")
        elif creative:
            route, confidence = RouteType.CREATIVE, 0.8
            reasoning = "Query contains creative/exploratory language"
            signals += creative
        elif complex_:
            route, confidence = RouteType.DEEP, 0.8
            reasoning = "Query contains complexity signals"
            signals += complex_
        elif len(query.split()) < HEURISTIC_SIMPLE_MAX_WORDS and self._matches_simple_pattern(query):
            route, confidence = RouteType.FAST, 0.85
            reasoning = "Simple query pattern detected"
            signals.append("simple_pattern")
        else:
            route, confidence = RouteType.STANDARD, 0.7
            reasoning = "Heuristic routing based on query analysis"

        return RouterDecision(
            route=route,
            confidence=confidence,
            reasoning=reasoning,
            complexity_signals=signals,
            bypassed=False,
            latency_ms=_elapsed_ms(start),
        )

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def _record(self, decision: RouterDecision, tier: str) -> RouterDecision:
        self._update_stats(decision)
        logger.info(
            "Router: %s → %s (confidence=%.2f, %dms)",
            tier,
            decision.route,
            decision.confidence,
            decision.latency_ms,
        )
        self._events.emit(
            EventType.ROUTE_DECIDED,
            "QueryRouter",
            tier=tier,
            route=decision.route.value,
            confidence=decision.confidence,
            bypassed=decision.bypassed,
            latency_ms=decision.latency_ms,
        )
        return decision

    def _update_stats(self, decision: RouterDecision) -> None:
        with self._stats_lock:
            stats = self._stats
            stats.total_routed += 1
            stats.route_distribution[decision.route] += 1
            if decision.bypassed:
                stats.bypassed_count += 1
            n = stats.total_routed
            stats.avg_latency_ms += (decision.latency_ms - stats.avg_latency_ms) / n
            stats.avg_confidence += (decision.confidence - stats.avg_confidence) / n

    def get_stats(self) -> RouterStats:
        with self._stats_lock:
            return self._stats.model_copy(deep=True)

    def reset_stats(self) -> None:
        with self._stats_lock:
            self._stats = RouterStats()


def create_router(
    settings: Settings,
    registry: ModelRegistry,
    config: RouterConfig | None = None,
    events: EventEmitter | None = None,
) -> QueryRouter:
    """Router whose classifier runs on the registry's ``router`` model.

    The classifier gets no model-level fallback: a failed call goes straight
    to the heuristic tier.
    """
    model = registry.get_specialized_model("router")
    provider_name = model.provider.value
    classifier = PROVIDER_CLASSES[provider_name](
        api_key=settings.api_key_for(provider_name),
        primary_model=model.id,
        base_url=settings.base_url_for(provider_name),
        timeout=settings.request_timeout,
        enable_fallback=False,
        events=events,
    )
    return QueryRouter(classifier=classifier, config=config, events=events)
