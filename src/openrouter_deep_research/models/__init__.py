"""Pydantic models for the deep research pipeline."""

from openrouter_deep_research.models.catalog import ModelInfo, ModelPricing
from openrouter_deep_research.models.chat import ChatResult, Citation, GenerationMetadata
from openrouter_deep_research.models.messages import (
    Attachment,
    ChatMessage,
    ConversationMessage,
    MessagePart,
    history_to_chat_messages,
    to_chat_message,
)
from openrouter_deep_research.models.research import (
    DeepResearchResult,
    ModelsForResearch,
    PhaseState,
    ResearchStage,
    ResearchStrategy,
    ResearchThread,
    Resource,
    ResearchResult,
    generate_id,
)

__all__ = [
    "Attachment",
    "ChatMessage",
    "ChatResult",
    "Citation",
    "ConversationMessage",
    "DeepResearchResult",
    "GenerationMetadata",
    "MessagePart",
    "ModelInfo",
    "ModelPricing",
    "ModelsForResearch",
    "PhaseState",
    "ResearchStage",
    "ResearchStrategy",
    "ResearchThread",
    "Resource",
    "ResearchResult",
    "generate_id",
    "history_to_chat_messages",
    "to_chat_message",
]
