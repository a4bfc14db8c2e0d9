"""
Shared fixtures for react_orchestrator tests.

The orchestration tests never talk to a real model: ``FakeChatModel``
replays scripted responses in order and records every message list it
was given.
"""

import pytest

from react_orchestrator.llm_call import LLMCallError
from react_orchestrator.models.agent import AgentConfig
from react_orchestrator.orchestration.emitter import ConversationEmitter, EventEmitter
from react_orchestrator.orchestration.session_store import SessionStore
from react_orchestrator.orchestrator import Orchestrator
from react_orchestrator.tools import default_registry

PLAN_RESPONSE = '["Compute the product", "Report the result"]'


class FakeChatModel:
    """Scripted stand-in for ``LLMClient``.

    ``responses`` feed ``invoke`` one by one; an Exception instance in
    the list is raised instead of returned. ``streams`` feed ``stream``,
    one list of fragments per call.
    """

    def __init__(self, responses=None, streams=None):
        self.responses = list(responses or [])
        self.streams = [list(s) for s in (streams or [])]
        self.calls: list[list[dict]] = []
        self.stream_calls: list[list[dict]] = []

    async def invoke(self, messages: list[dict]) -> str:
        self.calls.append(messages)
        if not self.responses:
            raise LLMCallError("no scripted response left")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def stream(self, messages: list[dict]):
        self.stream_calls.append(messages)
        fragments = self.streams.pop(0) if self.streams else ["Done."]
        for fragment in fragments:
            if isinstance(fragment, Exception):
                raise fragment
            yield fragment


def make_config(**overrides) -> AgentConfig:
    """Deterministic run settings independent of the environment."""
    values = {
        "model": "test-model",
        "temperature": 0.0,
        "max_tokens": 256,
        "max_iterations": 5,
        "language": "english",
        "pause_after_each_step": False,
        "stream_output": True,
        "announce_start": False,
        "history_window": 6,
        "observation_preview_chars": 500,
    }
    values.update(overrides)
    return AgentConfig(**values)


class Recorder:
    """Observer collecting every envelope of a run."""

    def __init__(self):
        self.envelopes = []

    def __call__(self, envelope) -> None:
        self.envelopes.append(envelope)

    @property
    def events(self):
        return [e.event for e in self.envelopes]

    def of_type(self, event_type: str):
        return [e for e in self.events if e.type == event_type]


@pytest.fixture
def agent_config():
    return make_config()


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def conversation_emitter(store):
    return ConversationEmitter(EventEmitter(), "session_test", "conv_test", store=store)


@pytest.fixture
def make_orchestrator(registry):
    """Factory: ``make_orchestrator(responses, streams, **config)``."""

    def factory(responses=None, streams=None, **config_overrides):
        llm = FakeChatModel(responses, streams)
        return Orchestrator(llm=llm, tools=registry, config=make_config(**config_overrides))

    return factory
