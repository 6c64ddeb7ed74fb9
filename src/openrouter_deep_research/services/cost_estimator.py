"""Pre-flight cost projection for a deep research run.

The estimate assumes every call uses its full completion budget, so it is an
upper bound rather than a forecast.
"""

from collections.abc import Mapping
from dataclasses import dataclass

import logfire

from openrouter_deep_research.core.config import STRATEGY_CLASSIFIER_MAX_TOKENS, ResearchConfig
from openrouter_deep_research.models.catalog import ModelPricing
from openrouter_deep_research.services.model_catalog import ModelCatalog

# Web plugin price when the model entry carries none: $4 per 1000 results
DEFAULT_WEB_SEARCH_COST = 0.004

# Fixed instruction overhead per call, in prompt tokens
INSTRUCTION_TOKENS = 600


@dataclass(frozen=True)
class CostEstimate:
    """Line items of an estimate, in USD."""

    strategy: float = 0.0
    planning: float = 0.0
    execution: float = 0.0
    refinement: float = 0.0
    synthesis: float = 0.0
    web_search: float = 0.0

    @property
    def total(self) -> float:
        return (
            self.strategy
            + self.planning
            + self.execution
            + self.refinement
            + self.synthesis
            + self.web_search
        )


def _call_cost(
    pricing: Mapping[str, ModelPricing], model: str, prompt_tokens: int, completion_tokens: int
) -> float:
    price = pricing.get(model)
    if price is None:
        logfire.warning("No pricing for model, counting it as free", model=model)
        return 0.0
    return prompt_tokens * price.prompt + completion_tokens * price.completion + price.request


def compute_cost_estimate(
    config: ResearchConfig,
    pricing: Mapping[str, ModelPricing],
    context_tokens: int = 1000,
) -> CostEstimate:
    """Project the cost of one run from budgets and per-token prices.

    Args:
        config: Research configuration supplying budgets and stage models
        pricing: Model id to pricing entry
        context_tokens: Estimated tokens of the user message plus history

    Returns:
        Per-stage line items
    """
    phases = config.deep_research_phases
    threads = config.deep_research_max_subrequests
    research_tokens = config.max_tokens
    base_prompt = INSTRUCTION_TOKENS + context_tokens

    strategy = 0.0
    if config.deep_research_classify_strategy:
        strategy = _call_cost(
            pricing,
            config.deep_research_planning_model,
            base_prompt,
            STRATEGY_CLASSIFIER_MAX_TOKENS,
        )

    planning = phases * _call_cost(
        pricing,
        config.deep_research_planning_model,
        base_prompt,
        config.deep_research_max_planning_tokens,
    )
    execution = phases * threads * _call_cost(
        pricing, config.deep_research_research_model, base_prompt, research_tokens
    )
    refinement = phases * threads * _call_cost(
        pricing,
        config.deep_research_refining_model,
        base_prompt + research_tokens,
        research_tokens,
    )
    synthesis = phases * _call_cost(
        pricing,
        config.deep_research_synthesis_model,
        base_prompt + threads * research_tokens,
        config.deep_research_max_synthesis_tokens,
    )

    searches_per_phase = (
        config.deep_research_web_search_max_planning_results
        + threads * config.deep_research_web_requests_per_subrequest
    )
    web_price = DEFAULT_WEB_SEARCH_COST
    research_pricing = pricing.get(config.deep_research_research_model)
    if research_pricing is not None and research_pricing.web_search is not None:
        web_price = research_pricing.web_search
    web_search = phases * searches_per_phase * web_price

    return CostEstimate(
        strategy=strategy,
        planning=planning,
        execution=execution,
        refinement=refinement,
        synthesis=synthesis,
        web_search=web_search,
    )


async def estimate_cost(
    config: ResearchConfig, catalog: ModelCatalog, context_tokens: int = 1000
) -> float:
    """Total estimated USD for a run; 0 without an API key, before any network call."""
    if not config.has_api_key:
        return 0.0
    pricing = await catalog.pricing_table()
    return compute_cost_estimate(config, pricing, context_tokens).total


__all__ = [
    "DEFAULT_WEB_SEARCH_COST",
    "CostEstimate",
    "compute_cost_estimate",
    "estimate_cost",
]
