"""
Message Types

Dialogue Models:
    - Message: One turn sent to the completion service (immutable)

Input Models:
    - ConversationMessage: A message to extract from (single text or batch)
    - Conversation: A normalized conversation from an export file
"""

from typing import Literal

from pydantic import ConfigDict, Field

from infopiece.types.base import WireModel

Role = Literal["user", "assistant", "system"]


class Message(WireModel):
    """
    A single dialogue turn.

    Messages are frozen once created; dialogues only ever append.
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class ConversationMessage(WireModel):
    """
    A message submitted for extraction.

    Attributes:
        role: Author role; system messages are never processed
        content: Flattened text content
        timestamp: Optional creation time (epoch seconds, as exported)
    """

    role: Role = "user"
    content: str = ""
    timestamp: float | None = None


class Conversation(WireModel):
    """
    A normalized conversation.

    Attributes:
        id: Conversation identifier
        title: Optional display title
        create_time: Creation time (epoch seconds)
        update_time: Last update time (epoch seconds)
        messages: Ordered user/assistant messages
    """

    id: str
    title: str = ""
    create_time: float = 0.0
    update_time: float | None = None
    messages: list[ConversationMessage] = Field(default_factory=list)

    @property
    def display_title(self) -> str:
        """Title, else a preview of the first user message, else a short id."""
        if self.title.strip():
            return self.title.strip()

        for message in self.messages:
            if message.role == "user" and message.content.strip():
                preview = message.content[:50]
                return f"{preview}..." if len(preview) < len(message.content) else preview

        return f"Conversation {self.id[-8:] or 'Unknown'}"
