"""Gateway, tag protocol, telemetry and cost services."""

from openrouter_deep_research.services.cost_estimator import (
    CostEstimate,
    compute_cost_estimate,
    estimate_cost,
)
from openrouter_deep_research.services.gateway import ChatGateway, OpenRouterGateway
from openrouter_deep_research.services.model_catalog import ModelCatalog
from openrouter_deep_research.services.telemetry import ResultAccumulator

__all__ = [
    "ChatGateway",
    "CostEstimate",
    "ModelCatalog",
    "OpenRouterGateway",
    "ResultAccumulator",
    "compute_cost_estimate",
    "estimate_cost",
]
