"""Research planning: one call that turns the question into research prompts."""

import logfire

from openrouter_deep_research.agents.base import StageDependencies
from openrouter_deep_research.agents.prompts import (
    PLANNING_SYSTEM_PROMPT_TEMPLATES,
    REFINEMENT_PLANNING_SYSTEM_PROMPT_TEMPLATES,
)
from openrouter_deep_research.models.messages import ChatMessage
from openrouter_deep_research.models.research import PhaseState, ResearchStrategy
from openrouter_deep_research.services.tag_protocol import extract_plan_items


class ResearchPlanner:
    """Builds the phase's planning prompt and extracts the plan items."""

    def build_plan_prompt(
        self,
        strategy: ResearchStrategy,
        max_subrequests: int,
        previous_answer: str | None = None,
    ) -> str:
        """Planning instructions for a phase.

        The first phase plans open-ended research; later phases plan research
        that checks and extends ``previous_answer``.
        """
        if previous_answer is None:
            template = PLANNING_SYSTEM_PROMPT_TEMPLATES[strategy.value]
            return template.format(max_subrequests=max_subrequests)
        template = REFINEMENT_PLANNING_SYSTEM_PROMPT_TEMPLATES[strategy.value]
        return template.format(max_subrequests=max_subrequests, previous_answer=previous_answer)

    async def plan(
        self,
        deps: StageDependencies,
        phase: PhaseState,
        strategy: ResearchStrategy,
        previous_answer: str | None = None,
    ) -> PhaseState:
        """Run the planning call for ``phase`` and fill in its plan fields.

        A plan with no ``<prompt>`` items is accepted; the phase then runs no
        research threads.
        """
        config = deps.config
        phase.plan_prompt = self.build_plan_prompt(
            strategy, config.deep_research_max_subrequests, previous_answer
        )
        messages = [ChatMessage.text("system", phase.plan_prompt), *deps.context_messages()]

        result = await deps.complete(
            model=config.deep_research_planning_model,
            max_tokens=config.deep_research_max_planning_tokens,
            max_web_requests=config.deep_research_web_search_max_planning_results,
            messages=messages,
        )
        deps.accumulator.record_call(result)

        phase.plan_result = result
        phase.plan_items = extract_plan_items(result.content)
        if not phase.plan_items:
            logfire.warning("Research plan contained no prompts", phase=phase.index)
        logfire.info(
            "Research plan created",
            phase=phase.index,
            strategy=strategy.value,
            items=len(phase.plan_items),
        )
        return phase
