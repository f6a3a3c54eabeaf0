from .column import ClearMessages, ColumnCommand, ColumnController, SendMessage
from .engine import ChatSession
from .models import ChatPhase, ConversationState
from .orchestrator import Orchestrator, key_display_name

__all__ = [
    "ChatPhase",
    "ChatSession",
    "ClearMessages",
    "ColumnCommand",
    "ColumnController",
    "ConversationState",
    "Orchestrator",
    "SendMessage",
    "key_display_name",
]
