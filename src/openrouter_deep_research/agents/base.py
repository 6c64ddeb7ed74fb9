"""Shared dependencies for the research stages."""

import asyncio
from dataclasses import dataclass, field

from openrouter_deep_research.core.config import ReasoningEffort, ResearchConfig
from openrouter_deep_research.core.events import StatusReporter
from openrouter_deep_research.core.exceptions import MissingUserQueryError
from openrouter_deep_research.models.chat import ChatResult
from openrouter_deep_research.models.messages import (
    ChatMessage,
    ConversationMessage,
    history_to_chat_messages,
    to_chat_message,
)
from openrouter_deep_research.services.gateway import ChatGateway, ChunkCallback
from openrouter_deep_research.services.telemetry import ResultAccumulator


def require_user_query(message: ConversationMessage | None) -> str:
    """Return the text of the user's message, or fail if there is none."""
    if message is None:
        raise MissingUserQueryError()
    if message.role != "user":
        raise MissingUserQueryError(f"latest message has role '{message.role}', expected 'user'")
    if not message.content.strip():
        raise MissingUserQueryError("user message is empty")
    return message.content


@dataclass
class StageDependencies:
    """Everything a stage needs for one orchestration run.

    The accumulator is the only shared mutable state; stages add their calls
    to it as they complete.
    """

    gateway: ChatGateway
    config: ResearchConfig
    accumulator: ResultAccumulator
    user_message: ConversationMessage
    status: StatusReporter
    history: list[ConversationMessage] = field(default_factory=list)
    cancel_event: asyncio.Event | None = None
    reasoning_effort: ReasoningEffort | None = None

    @property
    def user_query(self) -> str:
        return require_user_query(self.user_message)

    @property
    def effort(self) -> ReasoningEffort:
        return self.reasoning_effort or self.config.default_reasoning_effort

    def context_messages(self) -> list[ChatMessage]:
        """History (when enabled) followed by the current user message."""
        messages: list[ChatMessage] = []
        if self.config.include_previous_messages_as_context:
            messages.extend(history_to_chat_messages(self.history))
        messages.append(to_chat_message(self.user_message))
        return messages

    async def complete(
        self,
        *,
        model: str,
        max_tokens: int,
        max_web_requests: int,
        messages: list[ChatMessage],
        on_chunk: ChunkCallback | None = None,
    ) -> ChatResult:
        """One gateway call, streamed when ``on_chunk`` is given."""
        if on_chunk is not None:
            return await self.gateway.stream_chat_completion(
                model=model,
                max_tokens=max_tokens,
                max_web_requests=max_web_requests,
                messages=messages,
                on_chunk=on_chunk,
                cancel_event=self.cancel_event,
                reasoning_effort=self.effort,
            )
        return await self.gateway.chat_completion(
            model=model,
            max_tokens=max_tokens,
            max_web_requests=max_web_requests,
            messages=messages,
            cancel_event=self.cancel_event,
            reasoning_effort=self.effort,
        )
