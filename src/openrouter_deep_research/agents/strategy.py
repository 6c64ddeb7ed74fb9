"""Deep-versus-broad research strategy classification."""

import logfire

from openrouter_deep_research.agents.base import StageDependencies
from openrouter_deep_research.agents.prompts import STRATEGY_SYSTEM_PROMPT
from openrouter_deep_research.core.config import STRATEGY_CLASSIFIER_MAX_TOKENS
from openrouter_deep_research.core.exceptions import ResearchCancelledError
from openrouter_deep_research.models.chat import ChatResult
from openrouter_deep_research.models.messages import ChatMessage
from openrouter_deep_research.models.research import ResearchStrategy


def normalize_strategy(reply: str) -> ResearchStrategy:
    """Map a free-text classifier reply to a strategy.

    An exact "deep"/"broad" wins; otherwise the first of "deep", "broad" found
    anywhere in the reply; otherwise deep.
    """
    text = reply.strip().lower()
    if text in (ResearchStrategy.DEEP.value, ResearchStrategy.BROAD.value):
        return ResearchStrategy(text)
    if ResearchStrategy.DEEP.value in text:
        return ResearchStrategy.DEEP
    if ResearchStrategy.BROAD.value in text:
        return ResearchStrategy.BROAD
    return ResearchStrategy.DEEP


class StrategyClassifier:
    """Asks the planning model whether the request needs deep or broad research."""

    async def classify(
        self, deps: StageDependencies
    ) -> tuple[ResearchStrategy, ChatResult | None]:
        """Classify the latest request.

        Failures of the call are logged and read as "deep"; they never reach
        the caller. Cancellation still propagates.

        Returns:
            The strategy and the classifier's chat result, if the call succeeded
        """
        messages = [
            ChatMessage.text("system", STRATEGY_SYSTEM_PROMPT),
            *deps.context_messages(),
        ]
        try:
            result = await deps.complete(
                model=deps.config.deep_research_planning_model,
                max_tokens=STRATEGY_CLASSIFIER_MAX_TOKENS,
                max_web_requests=0,
                messages=messages,
            )
        except ResearchCancelledError:
            raise
        except Exception as e:
            logfire.warning("Strategy classification failed, using deep", error=str(e))
            return ResearchStrategy.DEEP, None

        deps.accumulator.record_call(result)
        strategy = normalize_strategy(result.content)
        logfire.info("Research strategy classified", strategy=strategy.value, reply=result.content)
        return strategy, result
