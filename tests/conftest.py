"""Pytest configuration and shared fixtures for the deep research tests."""

import asyncio
import inspect
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from openrouter_deep_research.agents.base import StageDependencies
from openrouter_deep_research.agents.prompts import (
    REFINEMENT_PLANNING_SYSTEM_PROMPT_TEMPLATES,
    REFINEMENT_SYNTHESIS_SYSTEM_PROMPT_TEMPLATE,
    REFINING_SYSTEM_PROMPT_TEMPLATE,
    PLANNING_SYSTEM_PROMPT_TEMPLATES,
    RESEARCH_SYSTEM_PROMPT,
    STRATEGY_SYSTEM_PROMPT,
    SYNTHESIS_SYSTEM_PROMPT_TEMPLATE,
)
from openrouter_deep_research.core.config import ResearchConfig
from openrouter_deep_research.core.events import StatusReporter
from openrouter_deep_research.core.exceptions import APIError, ResearchCancelledError
from openrouter_deep_research.models.catalog import ModelInfo, ModelPricing
from openrouter_deep_research.models.chat import ChatResult, GenerationMetadata
from openrouter_deep_research.models.messages import ChatMessage, ConversationMessage
from openrouter_deep_research.services.telemetry import ResultAccumulator

COST_PER_CALL = 0.01
GENERATION_TIME_MS = 500
WEB_RESULTS_PER_CALL = 2


def _prefix(template: str) -> str:
    return template.split("{")[0][:60]


_STAGE_PREFIXES = [
    ("plan", _prefix(PLANNING_SYSTEM_PROMPT_TEMPLATES["deep"])),
    ("plan", _prefix(PLANNING_SYSTEM_PROMPT_TEMPLATES["broad"])),
    ("plan", _prefix(REFINEMENT_PLANNING_SYSTEM_PROMPT_TEMPLATES["deep"])),
    ("plan", _prefix(REFINEMENT_PLANNING_SYSTEM_PROMPT_TEMPLATES["broad"])),
    ("refine", _prefix(REFINING_SYSTEM_PROMPT_TEMPLATE)),
    ("synthesis", _prefix(SYNTHESIS_SYSTEM_PROMPT_TEMPLATE)),
    ("synthesis", _prefix(REFINEMENT_SYNTHESIS_SYSTEM_PROMPT_TEMPLATE)),
]


@dataclass
class RecordedCall:
    """One call received by the fake gateway."""

    model: str
    max_tokens: int
    max_web_requests: int
    messages: list[ChatMessage]
    streamed: bool = False
    reasoning_effort: str | None = None
    request_id: str = ""

    @property
    def system(self) -> str:
        first = self.messages[0] if self.messages else None
        return first.text_content if first is not None and first.role == "system" else ""

    @property
    def last_user_text(self) -> str:
        users = [m for m in self.messages if m.role == "user"]
        return users[-1].text_content if users else ""

    @property
    def stage(self) -> str:
        if self.system == STRATEGY_SYSTEM_PROMPT:
            return "strategy"
        if self.system == RESEARCH_SYSTEM_PROMPT:
            return "research"
        for stage, prefix in _STAGE_PREFIXES:
            if self.system.startswith(prefix):
                return stage
        return "standard"


Responder = Callable[[RecordedCall], Any]


@dataclass
class FakeGateway:
    """Scripted ``ChatGateway``.

    Replies are produced by ``responder`` (which may return a string, raise,
    or be async). Every call is billed ``cost_per_call`` in its metadata.
    """

    responder: Responder | None = None
    strategy_reply: str = "deep"
    plan_items: list[str] = field(default_factory=lambda: ["Sub-query A", "Sub-query B"])
    models: list[ModelInfo] = field(default_factory=list)
    metadata_failures: set[str] = field(default_factory=set)
    calls: list[RecordedCall] = field(default_factory=list)
    metadata_requests: list[str] = field(default_factory=list)
    list_models_calls: int = 0
    cost_per_call: float = COST_PER_CALL
    web_results_per_call: int = WEB_RESULTS_PER_CALL

    def __post_init__(self) -> None:
        self._ids = itertools.count(1)
        self._synthesis_count = 0

    def calls_for(self, stage: str) -> list[RecordedCall]:
        return [c for c in self.calls if c.stage == stage]

    def default_reply(self, call: RecordedCall) -> str:
        if call.stage == "strategy":
            return self.strategy_reply
        if call.stage == "plan":
            return "\n".join(f"<prompt>{item}</prompt>" for item in self.plan_items)
        if call.stage == "research":
            slug = call.last_user_text.lower().replace(" ", "-")
            return (
                f"Findings for {call.last_user_text}.\n"
                "<RESOURCES><RESOURCE>"
                f"<URL>https://example.com/{slug}</URL><TITLE>{call.last_user_text}</TITLE>"
                "</RESOURCE></RESOURCES>"
            )
        if call.stage == "refine":
            return f"Refined: {call.last_user_text.strip()}"
        if call.stage == "synthesis":
            self._synthesis_count += 1
            return (
                f"<REASONING>Combined the results</REASONING>"
                f"<ANSWER>Answer {self._synthesis_count}</ANSWER>"
            )
        return "Standard answer"

    async def chat_completion(
        self,
        *,
        model: str,
        max_tokens: int,
        max_web_requests: int,
        messages: list[ChatMessage],
        cancel_event: asyncio.Event | None = None,
        reasoning_effort: str | None = None,
        _streamed: bool = False,
    ) -> ChatResult:
        if cancel_event is not None and cancel_event.is_set():
            raise ResearchCancelledError(model)

        call = RecordedCall(
            model=model,
            max_tokens=max_tokens,
            max_web_requests=max_web_requests,
            messages=list(messages),
            streamed=_streamed,
            reasoning_effort=reasoning_effort,
            request_id=f"gen-{next(self._ids)}",
        )
        self.calls.append(call)

        reply = self.responder(call) if self.responder else None
        if inspect.isawaitable(reply):
            reply = await reply
        if reply is None:
            reply = self.default_reply(call)
        if isinstance(reply, BaseException):
            raise reply
        return ChatResult(request_id=call.request_id, model_id=model, content=reply)

    async def stream_chat_completion(
        self,
        *,
        model: str,
        max_tokens: int,
        max_web_requests: int,
        messages: list[ChatMessage],
        on_chunk,
        cancel_event: asyncio.Event | None = None,
        reasoning_effort: str | None = None,
    ) -> ChatResult:
        result = await self.chat_completion(
            model=model,
            max_tokens=max_tokens,
            max_web_requests=max_web_requests,
            messages=messages,
            cancel_event=cancel_event,
            reasoning_effort=reasoning_effort,
            _streamed=True,
        )
        for start in range(0, len(result.content), 8):
            maybe = on_chunk(result.content[start : start + 8])
            if inspect.isawaitable(maybe):
                await maybe
        return result

    async def fetch_generation_metadata(self, request_id: str) -> GenerationMetadata:
        self.metadata_requests.append(request_id)
        if request_id in self.metadata_failures:
            raise APIError(
                "generation not found",
                url=f"https://openrouter.test/generation?id={request_id}",
                method="GET",
                status_code=404,
            )
        call = next((c for c in self.calls if c.request_id == request_id), None)
        web = self.web_results_per_call if call is not None and call.max_web_requests > 0 else 0
        return GenerationMetadata(
            request_id=request_id,
            total_cost_usd=self.cost_per_call,
            generation_time_ms=GENERATION_TIME_MS,
            model=call.model if call else None,
            web_search_result_count=web,
        )

    async def list_models(self) -> list[ModelInfo]:
        self.list_models_calls += 1
        return list(self.models)


@pytest.fixture
def fake_gateway():
    """Scripted gateway with default replies for every stage."""
    return FakeGateway(
        models=[
            ModelInfo(
                id="test/model",
                name="Test Model",
                context_length=32000,
                pricing=ModelPricing(prompt=0.000001, completion=0.000002),
            )
        ]
    )


@pytest.fixture
def research_config():
    """Config with a key, no metadata delay and small budgets."""
    return ResearchConfig(
        api_key="test-key",
        metadata_lookup_delay_seconds=0,
        deep_research_max_subrequests=3,
        deep_research_planning_model="test/planner",
        deep_research_research_model="test/researcher",
        deep_research_refining_model="test/refiner",
        deep_research_synthesis_model="test/synthesizer",
    )


@pytest.fixture
def user_message():
    return ConversationMessage(
        id="m2", role="user", content="How do solid-state batteries degrade?"
    )


@pytest.fixture
def history():
    return [
        ConversationMessage(id="m0", role="user", content="Tell me about batteries."),
        ConversationMessage(id="m1", role="assistant", content="Batteries store energy."),
        ConversationMessage(id="mh", role="assistant", content="hidden note", hidden=True),
    ]


@pytest.fixture
def status_messages():
    """List that collects status strings; pass ``status_messages.append`` as callback."""
    return []


@pytest.fixture
def make_deps(fake_gateway, research_config, user_message, status_messages):
    """Factory for ``StageDependencies`` around the fake gateway."""

    def factory(
        config: ResearchConfig | None = None,
        message: ConversationMessage | None = None,
        history: list[ConversationMessage] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> StageDependencies:
        config = config or research_config
        return StageDependencies(
            gateway=fake_gateway,
            config=config,
            accumulator=ResultAccumulator(fake_gateway, config.metadata_lookup_delay_seconds),
            user_message=message or user_message,
            status=StatusReporter("test-request", status_messages.append),
            history=history or [],
            cancel_event=cancel_event,
        )

    return factory
