"""Models for the deep research pipeline."""

import asyncio
import itertools
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from openrouter_deep_research.core.config import DEFAULT_MODEL
from openrouter_deep_research.models.chat import Citation, ChatResult, GenerationMetadata

_id_counter = itertools.count(1)


def _base36(n: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if n == 0:
        return "0"
    out = []
    while n:
        n, rem = divmod(n, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def generate_id() -> str:
    """Return a short, process-unique identifier (millisecond clock + counter)."""
    return _base36(int(time.time() * 1000)) + _base36(next(_id_counter))


class ResearchStage(str, Enum):
    """States of one orchestration run."""

    IDLE = "idle"
    CLASSIFYING_STRATEGY = "classifying_strategy"
    PLANNING = "planning"
    EXECUTING = "executing"
    SYNTHESIZING = "synthesizing"
    AWAITING_TELEMETRY = "awaiting_telemetry"
    DONE = "done"
    FAILED = "failed"  # Terminal state for failed runs


class ResearchStrategy(str, Enum):
    """How the planner should spread the research effort."""

    DEEP = "deep"
    BROAD = "broad"


class Resource(BaseModel):
    """A source the model reported using, parsed from a ``<RESOURCE>`` block."""

    url: str
    title: str | None = None
    author: str | None = None
    date: str | None = None
    type: str | None = None
    purpose: str | None = None
    summary: str | None = None


class ResearchThread(BaseModel):
    """One plan item: a first-pass sub-query followed by a refinement pass.

    Owned by the research executor while the phase runs; read-only afterwards.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    prompt: str
    first_pass: ChatResult | None = None
    refining_prompt: str | None = None
    refined: ChatResult | None = None
    resources: list[Resource] = Field(default_factory=list)
    error: str | None = None
    pending_metadata_lookups: list[asyncio.Task] = Field(default_factory=list, exclude=True)
    on_metadata: Callable[[GenerationMetadata], None] | None = Field(default=None, exclude=True)

    @property
    def refined_content(self) -> str:
        return self.refined.content if self.refined else ""


class PhaseState(BaseModel):
    """Everything produced by one plan -> execute -> synthesize cycle."""

    index: int
    plan_prompt: str = ""
    plan_result: ChatResult | None = None
    plan_items: list[str] = Field(default_factory=list)
    research_threads: list[ResearchThread] = Field(default_factory=list)
    synthesis_prompt: str = ""
    synthesis_result: ChatResult | None = None
    answer: str = ""

    @property
    def research_plan(self) -> str:
        return self.plan_result.content if self.plan_result else ""


class ModelsForResearch(BaseModel):
    """Model identifiers used for each pipeline stage."""

    planning: str = DEFAULT_MODEL
    research: str = DEFAULT_MODEL
    refining: str = DEFAULT_MODEL
    synthesis: str = DEFAULT_MODEL


class DeepResearchResult(BaseModel):
    """Aggregate outcome of one orchestration run.

    Per-phase audit lists (``plan_prompts``, ``synthesis_results`` ...) hold one
    entry per phase; the singular fields mirror phase 0.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(default_factory=generate_id)
    content: str = Field(default="", description="Final answer text")
    strategy: ResearchStrategy = ResearchStrategy.DEEP
    strategy_result: ChatResult | None = None
    models: ModelsForResearch = Field(default_factory=ModelsForResearch)
    context_was_included: bool = True

    plan_prompt: str = ""
    plan_result: ChatResult | None = None
    research_plan: str = ""
    plan_prompts: list[str] = Field(default_factory=list)
    plan_results: list[ChatResult] = Field(default_factory=list)
    research_plans: list[str] = Field(default_factory=list)

    research_threads: list[ResearchThread] = Field(default_factory=list)
    failed_research_threads: list[ResearchThread] = Field(default_factory=list)
    research_threads_per_phase: list[int] = Field(default_factory=list)
    total_research_threads: int = 0
    web_queries_per_thread: int = 0

    synthesis_prompt: str = ""
    synthesis_result: ChatResult | None = None
    synthesis_prompt_strings: list[str] = Field(default_factory=list)
    synthesis_results: list[ChatResult] = Field(default_factory=list)
    phase_answers: list[str] = Field(default_factory=list)

    annotations: list[Citation] = Field(default_factory=list)
    resources: list[Resource] = Field(default_factory=list)

    total_cost: float = Field(default=0.0, ge=0.0)
    total_web_requests: int = 0
    total_generation_time: float = Field(default=0.0, description="Seconds across all calls")
    elapsed_time: float = Field(default=0.0, description="Wall-clock seconds")

    @model_validator(mode="before")
    @classmethod
    def backfill_phase_lists(cls, values: Any) -> Any:
        """Fill per-phase lists from phase-0 fields on results saved before phases existed."""
        if not isinstance(values, dict):
            return values
        values = dict(values)
        pairs = (
            ("plan_prompts", "plan_prompt"),
            ("plan_results", "plan_result"),
            ("research_plans", "research_plan"),
            ("synthesis_prompt_strings", "synthesis_prompt"),
            ("synthesis_results", "synthesis_result"),
        )
        for plural, singular in pairs:
            if not values.get(plural) and values.get(singular):
                values[plural] = [values[singular]]

        models = values.get("models")
        if isinstance(models, dict):
            values["models"] = {k: v or DEFAULT_MODEL for k, v in models.items()}
        return values


class ResearchResult(BaseModel):
    """Outcome of a standard (single call) research request."""

    system_prompt: str | None = None
    system_prompt_name: str | None = None
    model_id: str | None = None
    chat_result: ChatResult
    generation_metadata: GenerationMetadata | None = None
    annotations: list[Citation] = Field(default_factory=list)
    resources: list[Resource] = Field(default_factory=list)
    context_was_included: bool = False
