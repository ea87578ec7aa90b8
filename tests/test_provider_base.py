import pytest

from ai_orchestrator.llm.errors import ProviderError, ProviderErrorKind
from ai_orchestrator.llm.events import EventType
from ai_orchestrator.schemas import GenerationOptions, GenerationResult, Message, MessageRole

MESSAGES = [Message(role=MessageRole.USER, content="hello")]


def _rate_limited(model="primary-model"):
    return ProviderError("429 Too Many Requests", kind=ProviderErrorKind.RATE_LIMITED, provider="Scripted", model=model)


class TestAvailability:
    def test_blank_key_is_unavailable(self, make_provider):
        assert make_provider(api_key="").is_available() is False
        assert make_provider(api_key="   ").is_available() is False
        assert make_provider(api_key=None).is_available() is False

    def test_key_makes_available(self, make_provider):
        assert make_provider(api_key="sk-test").is_available() is True

    @pytest.mark.asyncio
    async def test_chat_without_key_raises_not_configured(self, make_provider):
        provider = make_provider(api_key="")
        with pytest.raises(ProviderError) as exc_info:
            await provider.chat(MESSAGES, "system")
        assert exc_info.value.kind == ProviderErrorKind.NOT_CONFIGURED
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_empty_messages_rejected(self, make_provider):
        with pytest.raises(ValueError):
            await make_provider().chat([], "system")


class TestModelFallback:
    @pytest.mark.asyncio
    async def test_primary_success(self, make_provider):
        provider = make_provider()
        result = await provider.chat(MESSAGES, "system")
        assert result.model_id == "primary-model"
        assert result.fallback_used is False
        assert [c["model"] for c in provider.calls] == ["primary-model"]

    @pytest.mark.asyncio
    async def test_retryable_error_uses_secondary_once(self, make_provider, events, recorded_events):
        provider = make_provider(responses={"primary-model": _rate_limited()}, events=events)
        result = await provider.chat(MESSAGES, "system")
        assert result.model_id == "secondary-model"
        assert result.fallback_used is True
        assert "rate_limited" in result.fallback_reason
        assert [c["model"] for c in provider.calls] == ["primary-model", "secondary-model"]
        assert [e.type for e in recorded_events] == [EventType.MODEL_FALLBACK]

    @pytest.mark.asyncio
    async def test_unavailable_is_retryable(self, make_provider):
        err = ProviderError("503", kind=ProviderErrorKind.UNAVAILABLE)
        result = await make_provider(responses={"primary-model": err}).chat(MESSAGES, "system")
        assert result.model_id == "secondary-model"

    @pytest.mark.asyncio
    async def test_non_retryable_error_propagates_without_fallback(self, make_provider):
        err = ProviderError("bad request", kind=ProviderErrorKind.OTHER)
        provider = make_provider(responses={"primary-model": err})
        with pytest.raises(ProviderError) as exc_info:
            await provider.chat(MESSAGES, "system")
        assert exc_info.value is err
        assert [c["model"] for c in provider.calls] == ["primary-model"]

    @pytest.mark.asyncio
    async def test_secondary_failure_is_not_retried(self, make_provider):
        provider = make_provider(
            responses={"primary-model": _rate_limited(), "secondary-model": _rate_limited("secondary-model")}
        )
        with pytest.raises(ProviderError) as exc_info:
            await provider.chat(MESSAGES, "system")
        assert exc_info.value.model == "secondary-model"
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_fallback_disabled(self, make_provider):
        provider = make_provider(responses={"primary-model": _rate_limited()}, enable_fallback=False)
        assert provider.fallback_model is None
        with pytest.raises(ProviderError):
            await provider.chat(MESSAGES, "system")
        assert len(provider.calls) == 1


class TestResponseHandling:
    @pytest.mark.asyncio
    async def test_malformed_payload_errors_are_wrapped(self, make_provider):
        provider = make_provider(responses={"primary-model": KeyError("choices")})
        with pytest.raises(ProviderError) as exc_info:
            await provider.chat(MESSAGES, "system")
        assert exc_info.value.kind == ProviderErrorKind.MALFORMED_RESPONSE
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_non_dict_payload_attribute_error_is_wrapped(self, make_provider):
        err = AttributeError("'list' object has no attribute 'get'")
        provider = make_provider(responses={"primary-model": err})
        with pytest.raises(ProviderError) as exc_info:
            await provider.chat(MESSAGES, "system")
        assert exc_info.value.kind == ProviderErrorKind.MALFORMED_RESPONSE
        assert exc_info.value.__cause__ is err

    @pytest.mark.asyncio
    async def test_truncation_is_success_with_event(self, make_provider, events, recorded_events):
        truncated = GenerationResult(
            content="partial", provider_name="Scripted", model_id="primary-model", truncated=True
        )
        provider = make_provider(responses={"primary-model": truncated}, events=events)
        result = await provider.chat(MESSAGES, "system")
        assert result.content == "partial"
        assert result.truncated is True
        assert [e.type for e in recorded_events] == [EventType.RESPONSE_TRUNCATED]

    def test_max_tokens_resolution(self, make_provider):
        provider = make_provider()
        assert provider._max_tokens(GenerationOptions()) == 1024
        assert provider._max_tokens(GenerationOptions(json_mode=True)) == 8192
        assert provider._max_tokens(GenerationOptions(max_tokens=300, json_mode=True)) == 300
