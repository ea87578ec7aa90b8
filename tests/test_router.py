import asyncio
import json
from statistics import mean

import pytest

from ai_orchestrator.config.settings import Settings
from ai_orchestrator.llm.errors import ClassifierParseError, ProviderError, ProviderErrorKind
from ai_orchestrator.llm.events import EventType
from ai_orchestrator.llm.prompts import ROUTER_SYSTEM_PROMPT
from ai_orchestrator.llm.providers import AnthropicProvider, OpenAIProvider
from ai_orchestrator.llm.registry import ModelRegistry
from ai_orchestrator.llm.router import (
    QueryRouter,
    RouterConfig,
    create_router,
    parse_classifier_response,
)
from ai_orchestrator.schemas import QueryMode, RouterDecision, RouteType

# Ten words, no complexity or creative signals, no simple pattern.
NEUTRAL_QUERY = "Explain the historical development of relational databases in enterprise software"


def _classifier(make_provider, reply):
    return make_provider(name="Classifier", responses={"primary-model": reply}, enable_fallback=False)


class TestBypass:
    @pytest.mark.asyncio
    async def test_scenario_simple_pattern(self):
        decision = await QueryRouter().route("What is TypeScript?")
        assert decision.route == RouteType.FAST
        assert decision.confidence == 0.95
        assert decision.bypassed is True
        assert "simple pattern" in decision.reasoning

    @pytest.mark.asyncio
    async def test_very_short_query_without_pattern(self):
        decision = await QueryRouter().route("Hello there friend")
        assert decision.bypassed is True
        assert decision.route == RouteType.FAST
        assert "Very short query" in decision.reasoning

    @pytest.mark.asyncio
    async def test_pattern_rule_checked_first(self):
        decision = await QueryRouter().route("Where is Paris?")
        assert "simple pattern" in decision.reasoning

    @pytest.mark.parametrize(
        "query",
        [
            "hi",
            "Define recursion",
            "Python decorators",
            "How many planets exist?",
            "When did Rome fall?",
            "show me the docs",
        ],
    )
    @pytest.mark.asyncio
    async def test_short_queries_without_signals_bypass(self, query):
        decision = await QueryRouter().route(query)
        assert (decision.route, decision.confidence, decision.bypassed) == (RouteType.FAST, 0.95, True)

    @pytest.mark.asyncio
    async def test_complexity_signal_blocks_bypass(self):
        decision = await QueryRouter().route("Compare Python versus Java")
        assert decision.bypassed is False
        assert decision.route == RouteType.DEEP

    @pytest.mark.parametrize("query", ["What is TypeScript?", "hi", "Where is Paris?"])
    @pytest.mark.asyncio
    async def test_research_mode_never_bypasses(self, query):
        decision = await QueryRouter().route(query, QueryMode.RESEARCH)
        assert decision.bypassed is False

    @pytest.mark.asyncio
    async def test_bypass_skips_classifier(self, make_provider):
        classifier = _classifier(make_provider, '{"route": "deep"}')
        decision = await QueryRouter(classifier=classifier).route("What is TypeScript?")
        assert decision.bypassed is True
        assert classifier.calls == []


class TestHeuristic:
    @pytest.mark.asyncio
    async def test_scenario_complexity_signals_route_deep(self):
        decision = await QueryRouter().route(
            "Compare and contrast microservices vs monolith architectures, including trade-offs"
        )
        assert decision.route == RouteType.DEEP
        assert decision.confidence == 0.8
        assert decision.bypassed is False
        assert "compare" in decision.complexity_signals
        assert "trade-offs" in decision.complexity_signals

    @pytest.mark.asyncio
    async def test_research_mode_with_research_signals(self):
        decision = await QueryRouter().route(
            "What methodology did the study use?", QueryMode.RESEARCH
        )
        assert decision.route == RouteType.RESEARCH
        assert decision.confidence == 0.85

    @pytest.mark.asyncio
    async def test_research_mode_without_signals(self):
        decision = await QueryRouter().route("What is TypeScript?", QueryMode.RESEARCH)
        assert decision.route == RouteType.STANDARD
        assert decision.confidence == 0.75

    @pytest.mark.asyncio
    async def test_creative_before_complexity(self):
        decision = await QueryRouter().route(
            "Imagine and brainstorm several innovative ideas for urban transport systems"
        )
        assert decision.route == RouteType.CREATIVE
        assert "imagine" in decision.complexity_signals

    @pytest.mark.asyncio
    async def test_simple_pattern_fast_branch(self):
        decision = await QueryRouter().route("What is the capital city of the United Kingdom")
        assert decision.route == RouteType.FAST
        assert decision.confidence == 0.85
        assert decision.bypassed is False
        assert decision.complexity_signals == ["simple_pattern"]

    @pytest.mark.asyncio
    async def test_default_standard(self):
        decision = await QueryRouter().route(NEUTRAL_QUERY)
        assert decision.route == RouteType.STANDARD
        assert decision.confidence == 0.7

    @pytest.mark.asyncio
    async def test_custom_signals(self):
        config = RouterConfig(complex_signals=("kubernetes",), creative_signals=())
        decision = await QueryRouter(config=config).route("Set up kubernetes")
        assert decision.route == RouteType.DEEP


class TestClassifier:
    @pytest.mark.asyncio
    async def test_valid_response(self, make_provider):
        reply = json.dumps(
            {"route": "deep", "confidence": 0.9, "reasoning": "multi-step", "complexity_signals": ["history"]}
        )
        classifier = _classifier(make_provider, reply)
        decision = await QueryRouter(classifier=classifier).route(NEUTRAL_QUERY)
        assert decision.route == RouteType.DEEP
        assert decision.confidence == 0.9
        assert decision.reasoning == "multi-step"
        assert decision.complexity_signals == ["history"]
        assert decision.bypassed is False

    @pytest.mark.asyncio
    async def test_request_shape(self, make_provider):
        classifier = _classifier(make_provider, '{"route": "standard", "confidence": 0.6}')
        router = QueryRouter(classifier=classifier)
        await router.route(NEUTRAL_QUERY, QueryMode.STANDARD, context={"topic": "databases"})

        call = classifier.calls[0]
        assert call["system_prompt"] == ROUTER_SYSTEM_PROMPT
        assert call["options"].max_tokens == 256
        content = call["messages"][0].content
        assert content.startswith(f'Query: "{NEUTRAL_QUERY}"\nMode: standard')
        assert 'Context: {"topic": "databases"}' in content

    @pytest.mark.asyncio
    async def test_json_inside_prose(self, make_provider):
        reply = 'Here you go:\n```json\n{"route": "creative", "confidence": 0.66}\n```'
        decision = await QueryRouter(classifier=_classifier(make_provider, reply)).route(NEUTRAL_QUERY)
        assert decision.route == RouteType.CREATIVE
        assert decision.confidence == 0.66

    @pytest.mark.asyncio
    async def test_invalid_route_coerced_to_standard(self, make_provider, events, recorded_events):
        classifier = _classifier(make_provider, '{"route": "ultra", "confidence": 0.99}')
        decision = await QueryRouter(classifier=classifier, events=events).route(NEUTRAL_QUERY)
        assert decision.route == RouteType.STANDARD
        assert decision.confidence == 0.5
        assert decision.reasoning.startswith("Failed to parse router response")
        assert EventType.CLASSIFIER_FAILED in [e.type for e in recorded_events]

    @pytest.mark.asyncio
    async def test_no_json_coerced_to_standard(self, make_provider):
        classifier = _classifier(make_provider, "I think this is a deep question.")
        decision = await QueryRouter(classifier=classifier).route(NEUTRAL_QUERY)
        assert decision.route == RouteType.STANDARD
        assert decision.confidence == 0.5

    @pytest.mark.asyncio
    async def test_call_failure_falls_through_to_heuristic(self, make_provider, events, recorded_events):
        err = ProviderError("503", kind=ProviderErrorKind.UNAVAILABLE)
        classifier = _classifier(make_provider, err)
        decision = await QueryRouter(classifier=classifier, events=events).route(
            "Compare and contrast microservices vs monolith architectures, including trade-offs"
        )
        assert decision.route == RouteType.DEEP
        assert decision.confidence == 0.8
        assert len(classifier.calls) == 1
        failed = [e for e in recorded_events if e.type == EventType.CLASSIFIER_FAILED]
        assert failed[0].data["reason"] == "call_failed"

    @pytest.mark.parametrize(
        "reply",
        [
            "",
            "{}",
            "{not json at all",
            '{"route": null}',
            '{"route": 42, "confidence": "high"}',
            '["deep"]',
            '{"route": "deep", "confidence": "very"}',
            '{"route": "RESEARCH", "confidence": 3}',
        ],
    )
    @pytest.mark.asyncio
    async def test_route_always_valid(self, make_provider, reply):
        decision = await QueryRouter(classifier=_classifier(make_provider, reply)).route(NEUTRAL_QUERY)
        assert decision.route in set(RouteType)
        assert 0.0 <= decision.confidence <= 1.0

    def test_unavailable_classifier_ignored(self, make_provider):
        router = QueryRouter(classifier=make_provider(api_key=""))
        assert router.is_classifier_available() is False


class TestParseClassifierResponse:
    def test_missing_confidence_defaults(self):
        assert parse_classifier_response('{"route": "fast"}').confidence == 0.7

    @pytest.mark.parametrize("raw, expected", [(1.7, 1.0), (-0.3, 0.0), ("0.4", 0.4)])
    def test_confidence_clamped(self, raw, expected):
        verdict = parse_classifier_response(json.dumps({"route": "fast", "confidence": raw}))
        assert verdict.confidence == expected

    def test_repairs_broken_json(self):
        verdict = parse_classifier_response("{'route': 'creative', 'confidence': 0.8,}")
        assert verdict.route == RouteType.CREATIVE

    def test_route_case_insensitive(self):
        assert parse_classifier_response('{"route": "Research"}').route == RouteType.RESEARCH

    def test_invalid_route_raises(self):
        with pytest.raises(ClassifierParseError, match="Invalid route"):
            parse_classifier_response('{"route": "turbo"}')

    def test_no_json_raises(self):
        with pytest.raises(ClassifierParseError):
            parse_classifier_response("nothing here")


class TestRouterStats:
    def test_initial_stats(self):
        stats = QueryRouter().get_stats()
        assert stats.total_routed == 0
        assert stats.route_distribution == {route: 0 for route in RouteType}

    def test_running_means_match_arithmetic_mean(self):
        router = QueryRouter()
        latencies = [12, 250, 3, 0, 87, 1400, 45]
        confidences = [0.95, 0.5, 0.7, 0.85, 0.8, 0.61, 1.0]
        for latency, confidence in zip(latencies, confidences):
            router._update_stats(
                RouterDecision(route=RouteType.STANDARD, confidence=confidence, latency_ms=latency)
            )
        stats = router.get_stats()
        assert stats.total_routed == len(latencies)
        assert stats.avg_latency_ms == pytest.approx(mean(latencies))
        assert stats.avg_confidence == pytest.approx(mean(confidences))

    @pytest.mark.asyncio
    async def test_distribution_and_bypass_count(self):
        router = QueryRouter()
        await router.route("What is TypeScript?")
        await router.route("Compare and contrast microservices vs monolith architectures, including trade-offs")
        await router.route(NEUTRAL_QUERY)
        stats = router.get_stats()
        assert stats.total_routed == 3
        assert stats.bypassed_count == 1
        assert stats.route_distribution[RouteType.FAST] == 1
        assert stats.route_distribution[RouteType.DEEP] == 1
        assert stats.route_distribution[RouteType.STANDARD] == 1

    @pytest.mark.asyncio
    async def test_get_stats_returns_copy(self):
        router = QueryRouter()
        await router.route("hi")
        snapshot = router.get_stats()
        snapshot.route_distribution[RouteType.FAST] = 99
        assert router.get_stats().route_distribution[RouteType.FAST] == 1

    @pytest.mark.asyncio
    async def test_reset(self):
        router = QueryRouter()
        await router.route("hi")
        router.reset_stats()
        assert router.get_stats().total_routed == 0

    @pytest.mark.asyncio
    async def test_concurrent_decisions_not_lost(self, make_provider):
        classifier = _classifier(make_provider, '{"route": "deep", "confidence": 0.9}')
        router = QueryRouter(classifier=classifier)
        queries = ["hi", NEUTRAL_QUERY] * 25
        await asyncio.gather(*(router.route(q) for q in queries))
        stats = router.get_stats()
        assert stats.total_routed == 50
        assert stats.bypassed_count == 25
        assert stats.route_distribution[RouteType.DEEP] == 25

    @pytest.mark.asyncio
    async def test_route_decided_event(self, events, recorded_events):
        await QueryRouter(events=events).route("hi")
        assert recorded_events[-1].type == EventType.ROUTE_DECIDED
        assert recorded_events[-1].data["tier"] == "bypass"


class TestCreateRouter:
    def test_classifier_bound_to_router_model(self):
        router = create_router(Settings(anthropic_api_key="a"), ModelRegistry.default())
        classifier = router.classifier
        assert isinstance(classifier, AnthropicProvider)
        assert classifier.primary_model == "claude-3-5-haiku-20241022"
        assert classifier.fallback_model is None

    def test_without_credential_uses_heuristics(self):
        router = create_router(Settings(openai_api_key="o"), ModelRegistry.default())
        assert router.is_classifier_available() is False

    def test_router_model_on_other_backend(self):
        registry = ModelRegistry(specialized={"router": "gpt-4o-mini"})
        router = create_router(Settings(openai_api_key="o"), registry)
        assert isinstance(router.classifier, OpenAIProvider)
        assert router.classifier.primary_model == "gpt-4o-mini"
