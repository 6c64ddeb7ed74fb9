"""OpenRouter Deep Research - multi-phase LLM research orchestration."""

# Note: Environment variables are automatically loaded by core/__init__.py

from openrouter_deep_research.core.config import ResearchConfig
from openrouter_deep_research.core.orchestrator import DeepResearchOrchestrator, do_deep_research
from openrouter_deep_research.models.research import (
    DeepResearchResult,
    ResearchStage,
    ResearchStrategy,
)

__version__ = "1.0.0"
__all__ = [
    "DeepResearchOrchestrator",
    "DeepResearchResult",
    "ResearchConfig",
    "ResearchStage",
    "ResearchStrategy",
    "do_deep_research",
]
