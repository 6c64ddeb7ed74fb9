"""Configuration management for the deep research system.

Field aliases match the option names stored by the chat client
(``deepResearchPhases``, ``deepResearchMaxSubqrequests`` ...), so a persisted
configuration dictionary can be validated directly.
"""

import os
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

# Note: .env file is loaded in core/__init__.py before this module is imported

DEFAULT_MODEL = "deepseek/deepseek-chat-v3-0324:free"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

# Ceiling for the deep/broad classification reply
STRATEGY_CLASSIFIER_MAX_TOKENS = 256

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant. When mentioning research papers provide full "
    "citations suitable for searching for the paper on the internet. Omit any "
    "disclaimers. Remember that experts can be wrong. Be concise but include detail."
)

DEFAULT_DEEP_RESEARCH_SYNTHESIS_PROMPT = (
    "Address the user's question or goal directly. The answer should be detailed, "
    "accurate, informative, clear, and dense, without omitting key details. The answer "
    "should explain any reasoning involved. Cite all sources. The language should be in "
    "the style of a helpful but businesslike research assistant. Focus on clear, precise, "
    "and factual prose with section headings, but use tables and lists if they aid in "
    "clarity or readability."
)

ReasoningEffort = Literal["low", "medium", "high"]


def _env_str(name: str) -> str | None:
    """Get environment variable, returning None if empty or unset."""
    v = os.getenv(name)
    if v is None:
        return None
    v = v.strip()
    return v or None


def _env_flag(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from environment variables.

    Accepts: "1", "true", "TRUE", "True" as True.
    """
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip() in {"1", "true", "TRUE", "True"}


def _env_int_default(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    try:
        return int(v)
    except ValueError:
        return default


class SystemPrompt(BaseModel):
    """A named system prompt selectable by the user."""

    name: str
    prompt: str


class ResearchConfig(BaseModel):
    """Options consumed by the research pipeline."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        populate_by_name=True,
        extra="forbid",
    )

    api_key: SecretStr | None = Field(default=None, alias="apiKey")
    base_url: str = Field(default=OPENROUTER_BASE_URL, description="Gateway base URL")
    request_timeout_seconds: float = Field(default=600.0, gt=0)

    default_model: str = Field(default=DEFAULT_MODEL, alias="defaultModel")
    default_reasoning_effort: ReasoningEffort = Field(
        default="medium", alias="defaultReasoningEffort"
    )
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT, alias="systemPrompt")
    system_prompts: list[SystemPrompt] = Field(
        default_factory=lambda: [SystemPrompt(name="Default", prompt=DEFAULT_SYSTEM_PROMPT)],
        alias="systemPrompts",
    )
    synthesis_prompts: list[SystemPrompt] = Field(
        default_factory=lambda: [
            SystemPrompt(name="Default", prompt=DEFAULT_DEEP_RESEARCH_SYNTHESIS_PROMPT)
        ],
        alias="synthesisPrompts",
    )
    allow_web_search: bool = Field(default=True, alias="allowWebSearch")
    web_search_max_results: int = Field(default=5, ge=0, alias="webSearchMaxResults")
    include_previous_messages_as_context: bool = Field(
        default=True, alias="includePreviousMessagesAsContext"
    )
    max_tokens: int = Field(
        default=8192, ge=1, alias="maxTokens", description="Ceiling for research/refining calls"
    )

    deep_research_phases: int = Field(default=1, ge=1, alias="deepResearchPhases")
    deep_research_max_subrequests: int = Field(
        default=8, ge=1, alias="deepResearchMaxSubqrequests"
    )
    deep_research_web_requests_per_subrequest: int = Field(
        default=6, ge=0, alias="deepResearchWebRequestsPerSubrequest"
    )
    deep_research_web_search_max_planning_results: int = Field(
        default=10, ge=0, alias="deepResearchWebSearchMaxPlanningResults"
    )
    deep_research_max_planning_tokens: int = Field(
        default=16384, ge=1, alias="deepResearchMaxPlanningTokens"
    )
    deep_research_max_synthesis_tokens: int = Field(
        default=16384, ge=1, alias="deepResearchMaxSynthesisTokens"
    )
    deep_research_planning_model: str = Field(
        default=DEFAULT_MODEL, alias="deepResearchPlanningModel"
    )
    deep_research_research_model: str = Field(
        default=DEFAULT_MODEL, alias="deepResearchResearchModel"
    )
    deep_research_refining_model: str = Field(
        default=DEFAULT_MODEL, alias="deepResearchRefiningModel"
    )
    deep_research_synthesis_model: str = Field(
        default=DEFAULT_MODEL, alias="deepResearchSynthesisModel"
    )
    deep_research_system_prompt: str = Field(
        default=DEFAULT_DEEP_RESEARCH_SYNTHESIS_PROMPT, alias="deepResearchSystemPrompt"
    )

    deep_research_classify_strategy: bool = Field(
        default=True, description="Run the deep/broad classifier before planning"
    )
    deep_research_max_concurrent_threads: int | None = Field(
        default=None,
        ge=1,
        description="Concurrent research threads per phase; None means all at once",
    )
    deep_research_tolerate_thread_failures: bool = Field(
        default=False,
        description="Continue with the surviving threads when one thread fails",
    )
    metadata_lookup_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Wait before asking for generation metadata (eventually consistent backend)",
    )

    @field_validator("api_key", mode="before")
    @classmethod
    def empty_key_is_none(cls, v: str | SecretStr | None) -> str | SecretStr | None:
        """Treat blank keys as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        if isinstance(v, SecretStr) and not v.get_secret_value().strip():
            return None
        return v

    @property
    def api_key_value(self) -> str | None:
        """Revealed API key for the gateway. Never log this."""
        return self.api_key.get_secret_value() if self.api_key else None

    @property
    def has_api_key(self) -> bool:
        return self.api_key is not None

    def ensure_defaults(self) -> None:
        """Restore the built-in "Default" system and synthesis prompts."""
        for prompts, text in (
            (self.system_prompts, DEFAULT_SYSTEM_PROMPT),
            (self.synthesis_prompts, DEFAULT_DEEP_RESEARCH_SYNTHESIS_PROMPT),
        ):
            default = next((p for p in prompts if p.name == "Default"), None)
            if default is not None:
                default.prompt = text
            else:
                prompts.insert(0, SystemPrompt(name="Default", prompt=text))

    @classmethod
    def from_env(cls) -> "ResearchConfig":
        """Build a configuration from environment variables."""
        values: dict[str, object] = {
            "api_key": _env_str("OPENROUTER_API_KEY"),
            "deep_research_phases": _env_int_default("DEEP_RESEARCH_PHASES", 1),
            "deep_research_max_subrequests": _env_int_default("DEEP_RESEARCH_MAX_SUBREQUESTS", 8),
            "deep_research_web_requests_per_subrequest": _env_int_default(
                "DEEP_RESEARCH_WEB_REQUESTS_PER_SUBREQUEST", 6
            ),
            "deep_research_classify_strategy": _env_flag("DEEP_RESEARCH_CLASSIFY_STRATEGY", True),
        }
        if base_url := _env_str("OPENROUTER_BASE_URL"):
            values["base_url"] = base_url
        for env_name, field_name in (
            ("DEEP_RESEARCH_PLANNING_MODEL", "deep_research_planning_model"),
            ("DEEP_RESEARCH_RESEARCH_MODEL", "deep_research_research_model"),
            ("DEEP_RESEARCH_REFINING_MODEL", "deep_research_refining_model"),
            ("DEEP_RESEARCH_SYNTHESIS_MODEL", "deep_research_synthesis_model"),
        ):
            if model := _env_str(env_name):
                values[field_name] = model
        return cls(**values)


__all__ = [
    "DEFAULT_MODEL",
    "DEFAULT_SYSTEM_PROMPT",
    "DEFAULT_DEEP_RESEARCH_SYNTHESIS_PROMPT",
    "OPENROUTER_BASE_URL",
    "STRATEGY_CLASSIFIER_MAX_TOKENS",
    "ReasoningEffort",
    "ResearchConfig",
    "SystemPrompt",
]
