"""Conversation messages and the chat-completion message format."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]


class Attachment(BaseModel):
    """A file attached to a conversation message."""

    filename: str
    content: str = Field(description="Text content, or base64 data for PDFs")


class ConversationMessage(BaseModel):
    """A message from the conversation history, as stored by the chat client."""

    id: str | None = None
    role: Role
    content: str = ""
    attachments: list[Attachment] = Field(default_factory=list)
    hidden: bool = Field(default=False, description="Excluded from display and from context")


class FilePayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: str
    file_data: str


class MessagePart(BaseModel):
    """One content part of a chat message."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text", "file"] = "text"
    text: str | None = None
    file: FilePayload | None = None


class ChatMessage(BaseModel):
    """A message in the format sent to the chat-completion endpoint."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: tuple[MessagePart, ...]

    @classmethod
    def text(cls, role: Role, text: str) -> ChatMessage:
        return cls(role=role, content=(MessagePart(type="text", text=text),))

    @property
    def text_content(self) -> str:
        """Concatenated text parts."""
        return "\n".join(part.text for part in self.content if part.text)


def to_chat_message(message: ConversationMessage) -> ChatMessage:
    """Convert a stored conversation message into a chat-completion message.

    PDF attachments are sent as file parts; any other attachment is inlined
    as text prefixed with its filename.
    """
    parts: list[MessagePart] = []
    if message.content:
        parts.append(MessagePart(type="text", text=message.content))

    for attachment in message.attachments:
        if attachment.filename.endswith(".pdf"):
            parts.append(
                MessagePart(
                    type="file",
                    file=FilePayload(filename=attachment.filename, file_data=attachment.content),
                )
            )
        else:
            parts.append(
                MessagePart(
                    type="text",
                    text=f"[File: {attachment.filename}]\n{attachment.content}",
                )
            )

    return ChatMessage(role=message.role, content=tuple(parts))


def history_to_chat_messages(history: list[ConversationMessage]) -> list[ChatMessage]:
    """Convert the visible part of a conversation history."""
    return [to_chat_message(m) for m in history if not m.hidden]
