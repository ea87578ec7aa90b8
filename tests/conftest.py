import pytest

from ai_orchestrator.llm.events import EventEmitter, OrchestratorEvent
from ai_orchestrator.llm.providers.base import BaseProvider
from ai_orchestrator.schemas import GenerationResult, ModelProvider


class ScriptedProvider(BaseProvider):
    """Adapter whose per-model outcomes are fixed up front.

    ``responses`` maps a model id to answer text, a ``GenerationResult`` or an
    exception instance to raise. Unlisted models answer with placeholder text.
    """

    provider = ModelProvider.ANTHROPIC
    default_primary_model = "primary-model"
    default_fallback_model = "secondary-model"

    def __init__(self, name="Scripted", responses=None, api_key="test-key", **kwargs):
        super().__init__(api_key=api_key, **kwargs)
        self.name = name
        self.responses = dict(responses or {})
        self.calls = []
        self.closed = False

    async def _complete(self, model, messages, system_prompt, options):
        self.calls.append(
            {"model": model, "messages": list(messages), "system_prompt": system_prompt, "options": options}
        )
        outcome = self.responses.get(model, f"answer from {model}")
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, GenerationResult):
            return outcome
        return GenerationResult(content=outcome, provider_name=self.name, model_id=model)

    async def aclose(self):
        self.closed = True


@pytest.fixture
def make_provider():
    return ScriptedProvider


@pytest.fixture
def events():
    return EventEmitter()


@pytest.fixture
def recorded_events(events):
    received: list[OrchestratorEvent] = []
    events.subscribe(received.append)
    return received
