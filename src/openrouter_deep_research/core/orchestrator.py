"""Deep research orchestrator.

Pipeline: CLASSIFYING_STRATEGY → (PLANNING → EXECUTING → SYNTHESIZING) per
phase → AWAITING_TELEMETRY → DONE

Each phase after the first plans research against the previous phase's answer
and refines it. Cost telemetry arrives in the background and is joined once,
after the last phase, so the returned totals are complete.
"""

import asyncio
import time

import httpx
import logfire

from openrouter_deep_research.agents.base import StageDependencies, require_user_query
from openrouter_deep_research.agents.planner import ResearchPlanner
from openrouter_deep_research.agents.research_executor import ResearchExecutor
from openrouter_deep_research.agents.strategy import StrategyClassifier
from openrouter_deep_research.agents.synthesizer import Synthesizer
from openrouter_deep_research.core.config import ReasoningEffort, ResearchConfig
from openrouter_deep_research.core.events import StatusCallback, StatusReporter
from openrouter_deep_research.core.exceptions import InvalidConfigError
from openrouter_deep_research.models.chat import ChatResult
from openrouter_deep_research.models.messages import ConversationMessage
from openrouter_deep_research.models.research import (
    DeepResearchResult,
    ModelsForResearch,
    PhaseState,
    ResearchStage,
    ResearchStrategy,
    ResearchThread,
    generate_id,
)
from openrouter_deep_research.services.gateway import ChatGateway, ChunkCallback, OpenRouterGateway
from openrouter_deep_research.services.telemetry import ResultAccumulator


class DeepResearchOrchestrator:
    """Drives the configured number of research phases end to end."""

    def __init__(
        self,
        gateway: ChatGateway,
        config: ResearchConfig,
        classifier: StrategyClassifier | None = None,
        planner: ResearchPlanner | None = None,
        executor: ResearchExecutor | None = None,
        synthesizer: Synthesizer | None = None,
    ):
        self.gateway = gateway
        self.config = config
        self.classifier = classifier or StrategyClassifier()
        self.planner = planner or ResearchPlanner()
        self.executor = executor or ResearchExecutor()
        self.synthesizer = synthesizer or Synthesizer()

        self.state = ResearchStage.IDLE
        self.transitions: list[ResearchStage] = [ResearchStage.IDLE]

    def _transition(self, stage: ResearchStage) -> None:
        self.state = stage
        self.transitions.append(stage)

    async def run(
        self,
        user_message: ConversationMessage,
        history: list[ConversationMessage] | None = None,
        *,
        status_callback: StatusCallback | None = None,
        cancel_event: asyncio.Event | None = None,
        on_chunk: ChunkCallback | None = None,
        strategy: ResearchStrategy | None = None,
        reasoning_effort: ReasoningEffort | None = None,
        request_id: str | None = None,
    ) -> DeepResearchResult:
        """Execute a full deep research run.

        Args:
            user_message: The message to research; must be a non-empty user message
            history: Earlier conversation messages
            status_callback: Receives human-readable progress strings
            cancel_event: When set, in-flight LLM calls raise ResearchCancelledError
            on_chunk: Streams each phase's synthesis output as it is generated
            strategy: Skip classification and use this strategy
            reasoning_effort: Overrides the configured reasoning effort
            request_id: Identifier of the result; generated if omitted

        Returns:
            The aggregated result of every phase
        """
        require_user_query(user_message)
        if self.config.deep_research_phases < 1:
            raise InvalidConfigError("deep_research_phases", "at least one phase is required")

        started = time.perf_counter()
        request_id = request_id or generate_id()
        config = self.config
        accumulator = ResultAccumulator(self.gateway, config.metadata_lookup_delay_seconds)
        status = StatusReporter(request_id, status_callback)
        deps = StageDependencies(
            gateway=self.gateway,
            config=config,
            accumulator=accumulator,
            user_message=user_message,
            status=status,
            history=list(history or []),
            cancel_event=cancel_event,
            reasoning_effort=reasoning_effort,
        )

        phases: list[PhaseState] = []
        all_threads: list[ResearchThread] = []
        strategy_result: ChatResult | None = None

        with logfire.span(
            "deep research", request_id=request_id, phases=config.deep_research_phases
        ):
            try:
                if strategy is None and config.deep_research_classify_strategy:
                    self._transition(ResearchStage.CLASSIFYING_STRATEGY)
                    await status.emit(self.state, "Classifying research strategy...")
                    strategy, strategy_result = await self.classifier.classify(deps)
                strategy = strategy or ResearchStrategy.DEEP

                previous_answer: str | None = None
                total = config.deep_research_phases
                for index in range(total):
                    phase = await self._run_phase(
                        deps, index, total, strategy, previous_answer, all_threads, on_chunk
                    )
                    phases.append(phase)
                    previous_answer = phase.answer

                self._transition(ResearchStage.AWAITING_TELEMETRY)
                await status.emit(self.state, "Waiting for cost data...")
                await accumulator.drain()
            except BaseException as e:
                self._transition(ResearchStage.FAILED)
                accumulator.cancel_pending()
                if isinstance(e, Exception):
                    logfire.error("Deep research failed", request_id=request_id, error=str(e))
                    await status.emit(self.state, f"Deep research failed: {e}")
                raise

        result = self._build_result(
            request_id,
            strategy,
            strategy_result,
            phases,
            all_threads,
            accumulator,
            elapsed=time.perf_counter() - started,
        )
        self._transition(ResearchStage.DONE)
        await status.emit(
            self.state,
            f"Deep research completed (${result.total_cost:.4f}, {result.elapsed_time:.1f}s)",
        )
        return result

    async def _run_phase(
        self,
        deps: StageDependencies,
        index: int,
        total: int,
        strategy: ResearchStrategy,
        previous_answer: str | None,
        all_threads: list[ResearchThread],
        on_chunk: ChunkCallback | None,
    ) -> PhaseState:
        label = f"Phase {index + 1}/{total}"
        phase = PhaseState(index=index)

        with logfire.span("research phase {phase}", phase=index):
            self._transition(ResearchStage.PLANNING)
            await deps.status.emit(self.state, f"{label}: planning research...")
            await self.planner.plan(deps, phase, strategy, previous_answer)

            self._transition(ResearchStage.EXECUTING)
            await deps.status.emit(
                self.state, f"{label}: researching {len(phase.plan_items)} sub-queries..."
            )
            phase.research_threads = await self.executor.execute(deps, phase.plan_items)
            all_threads.extend(phase.research_threads)

            self._transition(ResearchStage.SYNTHESIZING)
            await deps.status.emit(self.state, f"{label}: synthesizing answer...")
            await self.synthesizer.synthesize(
                deps,
                phase,
                [thread.refined_content for thread in all_threads],
                previous_answer,
                on_chunk,
            )
        return phase

    def _build_result(
        self,
        request_id: str,
        strategy: ResearchStrategy,
        strategy_result: ChatResult | None,
        phases: list[PhaseState],
        all_threads: list[ResearchThread],
        accumulator: ResultAccumulator,
        elapsed: float,
    ) -> DeepResearchResult:
        config = self.config
        first = phases[0]
        plan_results = [p.plan_result for p in phases if p.plan_result is not None]
        synthesis_results = [p.synthesis_result for p in phases if p.synthesis_result is not None]

        return DeepResearchResult(
            id=request_id,
            content=phases[-1].answer,
            strategy=strategy,
            strategy_result=strategy_result,
            models=ModelsForResearch(
                planning=config.deep_research_planning_model,
                research=config.deep_research_research_model,
                refining=config.deep_research_refining_model,
                synthesis=config.deep_research_synthesis_model,
            ),
            context_was_included=config.include_previous_messages_as_context,
            plan_prompt=first.plan_prompt,
            plan_result=first.plan_result,
            research_plan=first.research_plan,
            plan_prompts=[p.plan_prompt for p in phases],
            plan_results=plan_results,
            research_plans=[p.research_plan for p in phases],
            research_threads=all_threads,
            failed_research_threads=list(accumulator.failed_threads),
            research_threads_per_phase=[len(p.research_threads) for p in phases],
            total_research_threads=len(all_threads),
            web_queries_per_thread=config.deep_research_web_requests_per_subrequest,
            synthesis_prompt=first.synthesis_prompt,
            synthesis_result=first.synthesis_result,
            synthesis_prompt_strings=[p.synthesis_prompt for p in phases],
            synthesis_results=synthesis_results,
            phase_answers=[p.answer for p in phases],
            annotations=list(accumulator.annotations),
            resources=list(accumulator.resources),
            total_cost=accumulator.total_cost,
            total_web_requests=accumulator.total_web_requests,
            total_generation_time=accumulator.total_generation_time,
            elapsed_time=elapsed,
        )


async def do_deep_research(
    config: ResearchConfig,
    user_message: ConversationMessage,
    history: list[ConversationMessage] | None = None,
    status_callback: StatusCallback | None = None,
    cancel_event: asyncio.Event | None = None,
    on_chunk: ChunkCallback | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> DeepResearchResult:
    """Run deep research against OpenRouter with a gateway built from ``config``."""
    async with OpenRouterGateway.from_config(config, http_client) as gateway:
        orchestrator = DeepResearchOrchestrator(gateway, config)
        return await orchestrator.run(
            user_message,
            history,
            status_callback=status_callback,
            cancel_event=cancel_event,
            on_chunk=on_chunk,
        )


__all__ = ["DeepResearchOrchestrator", "do_deep_research"]
