"""Results of chat-completion calls and their generation metadata."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Citation(BaseModel):
    """A URL citation annotation returned by the gateway."""

    url: str
    title: str = ""
    text_snippet: str = Field(default="", description="Quoted page content")
    span_start: int | None = None
    span_end: int | None = None

    @classmethod
    def from_annotation(cls, annotation: dict[str, Any]) -> Citation | None:
        """Build a citation from a raw ``url_citation`` annotation.

        Returns None for annotation types other than URL citations.
        """
        if annotation.get("type") != "url_citation":
            return None
        data = annotation.get("url_citation") or {}
        url = data.get("url")
        if not url:
            return None
        return cls(
            url=url,
            title=data.get("title") or "",
            text_snippet=data.get("content") or "",
            span_start=data.get("start_index"),
            span_end=data.get("end_index"),
        )


class GenerationMetadata(BaseModel):
    """Cost, timing and usage data for one LLM call."""

    model_config = ConfigDict(extra="allow")

    request_id: str
    total_cost_usd: float = 0.0
    generation_time_ms: float | None = None
    model: str | None = None
    provider_name: str | None = None
    web_search_result_count: int = 0
    finish_reason: str | None = None
    streamed: bool = False
    canceled: bool = False
    tokens_prompt: int | None = None
    tokens_completion: int | None = None
    native_tokens_prompt: int | None = None
    native_tokens_completion: int | None = None
    native_tokens_reasoning: int | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> GenerationMetadata:
        """Map the gateway's ``/generation`` payload onto the model."""
        return cls(
            request_id=str(data.get("id", "")),
            total_cost_usd=float(data.get("total_cost") or 0.0),
            generation_time_ms=data.get("generation_time"),
            model=data.get("model"),
            provider_name=data.get("provider_name"),
            web_search_result_count=int(data.get("num_search_results") or 0),
            finish_reason=data.get("finish_reason"),
            streamed=bool(data.get("streamed", False)),
            canceled=bool(data.get("canceled", False)),
            tokens_prompt=data.get("tokens_prompt"),
            tokens_completion=data.get("tokens_completion"),
            native_tokens_prompt=data.get("native_tokens_prompt"),
            native_tokens_completion=data.get("native_tokens_completion"),
            native_tokens_reasoning=data.get("native_tokens_reasoning"),
        )


class ChatResult(BaseModel):
    """Outcome of one chat completion.

    ``generation_metadata`` stays None until the side-channel lookup resolves.
    """

    request_id: str
    model_id: str
    created_at: int = 0
    content: str = ""
    annotations: list[Citation] = Field(default_factory=list)
    usage: int | None = Field(default=None, description="Total tokens reported by the call")
    generation_metadata: GenerationMetadata | None = None

    @property
    def total_cost_usd(self) -> float | None:
        if self.generation_metadata is None:
            return None
        return self.generation_metadata.total_cost_usd
