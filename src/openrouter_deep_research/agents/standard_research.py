"""Standard (non-deep) research: a single call, or one call per system prompt."""

import asyncio

import logfire

from openrouter_deep_research.core.config import ResearchConfig, SystemPrompt
from openrouter_deep_research.core.events import StatusCallback, StatusReporter
from openrouter_deep_research.models.messages import (
    ChatMessage,
    ConversationMessage,
    history_to_chat_messages,
    to_chat_message,
)
from openrouter_deep_research.models.research import ResearchResult, ResearchStage, generate_id
from openrouter_deep_research.services.gateway import ChatGateway, ChunkCallback
from openrouter_deep_research.services.telemetry import lookup_generation_metadata


def _web_allowance(config: ResearchConfig) -> int:
    return config.web_search_max_results if config.allow_web_search else 0


def _history(config: ResearchConfig, history: list[ConversationMessage]) -> list[ChatMessage]:
    if not config.include_previous_messages_as_context:
        return []
    return history_to_chat_messages(history)


async def do_standard_research(
    gateway: ChatGateway,
    config: ResearchConfig,
    user_message: ConversationMessage,
    history: list[ConversationMessage],
    on_chunk: ChunkCallback,
    status_callback: StatusCallback | None = None,
    cancel_event: asyncio.Event | None = None,
    max_tokens: int | None = None,
) -> ResearchResult:
    """Stream one answer from the default model.

    The configured system prompt (if any) and, when enabled, the visible
    history precede the user message. Generation metadata is awaited and
    attached to the result.
    """
    status = StatusReporter(generate_id(), status_callback)
    await status.emit(ResearchStage.EXECUTING, "Starting research...")

    messages: list[ChatMessage] = []
    if config.system_prompt:
        messages.append(ChatMessage.text("system", config.system_prompt))
    messages.extend(_history(config, history))
    messages.append(to_chat_message(user_message))

    try:
        result = await gateway.stream_chat_completion(
            model=config.default_model,
            max_tokens=max_tokens or config.max_tokens,
            max_web_requests=_web_allowance(config),
            messages=messages,
            on_chunk=on_chunk,
            cancel_event=cancel_event,
            reasoning_effort=config.default_reasoning_effort,
        )
    except Exception:
        await status.emit(ResearchStage.FAILED, "Research failed")
        raise

    metadata = None
    if result.request_id:
        metadata = await lookup_generation_metadata(
            gateway, result.request_id, config.metadata_lookup_delay_seconds
        )
        result.generation_metadata = metadata

    await status.emit(ResearchStage.DONE, "Research completed")
    return ResearchResult(
        system_prompt=config.system_prompt or None,
        model_id=result.model_id,
        chat_result=result,
        generation_metadata=metadata,
        annotations=result.annotations,
        context_was_included=config.include_previous_messages_as_context,
    )


async def do_parallel_research(
    gateway: ChatGateway,
    config: ResearchConfig,
    user_messages: list[ChatMessage],
    history: list[ConversationMessage],
    system_prompts: list[SystemPrompt],
    cancel_event: asyncio.Event | None = None,
    max_tokens: int | None = None,
) -> list[ResearchResult]:
    """Answer every user message under every system prompt, concurrently.

    Results are flattened message-major: all prompts for the first message,
    then all prompts for the second. Any failure propagates.
    """
    base_messages = _history(config, history)

    async def one(user_message: ChatMessage, system_prompt: SystemPrompt) -> ResearchResult:
        result = await gateway.chat_completion(
            model=config.default_model,
            max_tokens=max_tokens or config.max_tokens,
            max_web_requests=_web_allowance(config),
            messages=[
                ChatMessage.text("system", system_prompt.prompt),
                *base_messages,
                user_message,
            ],
            cancel_event=cancel_event,
            reasoning_effort=config.default_reasoning_effort,
        )
        metadata = None
        if result.request_id:
            metadata = await lookup_generation_metadata(
                gateway, result.request_id, config.metadata_lookup_delay_seconds
            )
            result.generation_metadata = metadata
        return ResearchResult(
            system_prompt=system_prompt.prompt,
            system_prompt_name=system_prompt.name,
            model_id=result.model_id,
            chat_result=result,
            generation_metadata=metadata,
            annotations=result.annotations,
            context_was_included=config.include_previous_messages_as_context,
        )

    logfire.info(
        "Parallel research", messages=len(user_messages), system_prompts=len(system_prompts)
    )
    return list(
        await asyncio.gather(
            *(one(message, prompt) for message in user_messages for prompt in system_prompts)
        )
    )
