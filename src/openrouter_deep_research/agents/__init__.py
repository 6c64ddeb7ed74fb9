"""Research stages: strategy, planning, thread execution and synthesis."""

from openrouter_deep_research.agents.base import StageDependencies, require_user_query
from openrouter_deep_research.agents.planner import ResearchPlanner
from openrouter_deep_research.agents.research_executor import ResearchExecutor
from openrouter_deep_research.agents.standard_research import (
    do_parallel_research,
    do_standard_research,
)
from openrouter_deep_research.agents.strategy import StrategyClassifier, normalize_strategy
from openrouter_deep_research.agents.synthesizer import Synthesizer

__all__ = [
    "ResearchExecutor",
    "ResearchPlanner",
    "StageDependencies",
    "StrategyClassifier",
    "Synthesizer",
    "do_parallel_research",
    "do_standard_research",
    "normalize_strategy",
    "require_user_query",
]
