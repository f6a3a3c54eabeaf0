"""Conversation state owned by a chat session."""

from dataclasses import dataclass, field
from enum import Enum

from ..models import Message, MessageRole


class ChatPhase(str, Enum):
    """Lifecycle phase of a conversation."""

    IDLE = "idle"  # not configured yet
    AWAITING_KEY = "awaiting_key"
    READY = "ready"
    STREAMING = "streaming"
    ERROR = "error"


@dataclass
class ConversationState:
    """Messages plus loading and error flags of one conversation."""

    messages: list[Message] = field(default_factory=list)
    is_loading: bool = False
    error: str | None = None
    phase: ChatPhase = ChatPhase.IDLE

    def find(self, message_id: str) -> Message | None:
        """Look up a message by id."""
        for msg in self.messages:
            if msg.id == message_id:
                return msg
        return None

    def loading_model_messages(self) -> list[Message]:
        """MODEL messages still streaming (never more than one)."""
        return [m for m in self.messages if m.role == MessageRole.MODEL and m.is_loading]
