"""Model listing and pricing entries returned by the gateway."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ModelPricing(BaseModel):
    """Per-unit USD prices. Token prices are per single token."""

    model_config = ConfigDict(extra="allow")

    prompt: float = 0.0
    completion: float = 0.0
    request: float = 0.0
    web_search: float | None = None
    internal_reasoning: float | None = None

    @field_validator("prompt", "completion", "request", mode="before")
    @classmethod
    def parse_price(cls, v: Any) -> float:
        # The API reports prices as decimal strings; "-1" marks variable pricing
        if v in (None, ""):
            return 0.0
        price = float(v)
        return price if price >= 0 else 0.0

    @field_validator("web_search", "internal_reasoning", mode="before")
    @classmethod
    def parse_optional_price(cls, v: Any) -> float | None:
        if v in (None, ""):
            return None
        price = float(v)
        return price if price >= 0 else None


class ModelInfo(BaseModel):
    """One entry of the gateway's model list."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    description: str = ""
    context_length: int | None = None
    pricing: ModelPricing = Field(default_factory=ModelPricing)
    max_completion_tokens: int | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> ModelInfo:
        top_provider = data.get("top_provider") or {}
        return cls(
            id=data["id"],
            name=data.get("name") or data["id"],
            description=data.get("description") or "",
            context_length=data.get("context_length"),
            pricing=ModelPricing.model_validate(data.get("pricing") or {}),
            max_completion_tokens=top_provider.get("max_completion_tokens"),
        )
