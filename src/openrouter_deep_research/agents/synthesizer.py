"""Synthesis of refined research results into one answer."""

import logfire

from openrouter_deep_research.agents.base import StageDependencies
from openrouter_deep_research.agents.prompts import (
    PREVIOUS_ANSWER_LABEL,
    REFINEMENT_SYNTHESIS_SYSTEM_PROMPT_TEMPLATE,
    SYNTHESIS_SYSTEM_PROMPT_TEMPLATE,
    format_research_results,
)
from openrouter_deep_research.models.messages import ChatMessage
from openrouter_deep_research.models.research import PhaseState
from openrouter_deep_research.services.gateway import ChunkCallback
from openrouter_deep_research.services.tag_protocol import extract_answer, extract_reasoning


class Synthesizer:
    """Merges research results (and the previous answer, if any) into an answer."""

    def build_system_prompt(self, synthesis_instructions: str, refining: bool) -> str:
        template = (
            REFINEMENT_SYNTHESIS_SYSTEM_PROMPT_TEMPLATE
            if refining
            else SYNTHESIS_SYSTEM_PROMPT_TEMPLATE
        )
        return template.format(synthesis_instructions=synthesis_instructions)

    def build_research_message(
        self,
        research_plan: str,
        refined_contents: list[str],
        previous_answer: str | None = None,
    ) -> str:
        sections = [f"Research Plan:\n{research_plan}"]
        if refined_contents:
            sections.append(format_research_results(refined_contents))
        if previous_answer is not None:
            sections.append(f"{PREVIOUS_ANSWER_LABEL}\n{previous_answer}")
        return "\n\n".join(sections)

    async def synthesize(
        self,
        deps: StageDependencies,
        phase: PhaseState,
        refined_contents: list[str],
        previous_answer: str | None = None,
        on_chunk: ChunkCallback | None = None,
    ) -> PhaseState:
        """Run the synthesis call and set the phase's answer.

        Args:
            deps: Stage dependencies
            phase: Current phase; its research plan is included in the prompt
            refined_contents: Refined thread outputs from every phase so far
            previous_answer: Answer of the previous phase, None on the first phase
            on_chunk: Optional callback that receives the answer as it streams
        """
        config = deps.config
        system_prompt = self.build_system_prompt(
            config.deep_research_system_prompt, refining=previous_answer is not None
        )
        research_message = self.build_research_message(
            phase.research_plan, refined_contents, previous_answer
        )
        phase.synthesis_prompt = f"{system_prompt}\n\n{research_message}"

        messages = [
            ChatMessage.text("system", system_prompt),
            *deps.context_messages(),
            ChatMessage.text("user", research_message),
        ]
        result = await deps.complete(
            model=config.deep_research_synthesis_model,
            max_tokens=config.deep_research_max_synthesis_tokens,
            max_web_requests=0,
            messages=messages,
            on_chunk=on_chunk,
        )
        deps.accumulator.record_call(result)

        phase.synthesis_result = result
        phase.answer = extract_answer(result.content)
        logfire.info(
            "Synthesis complete",
            phase=phase.index,
            results=len(refined_contents),
            has_reasoning=extract_reasoning(result.content) is not None,
        )
        return phase
