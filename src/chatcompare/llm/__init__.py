from .base import StreamAdapter
from .factory import create_stream_adapter
from .models import HistoryTurn, StreamEvent
from .providers import GeminiSessionAdapter, OpenAICompatibleAdapter
from .sse import SSEDecoder

__all__ = [
    "StreamAdapter",
    "create_stream_adapter",
    "HistoryTurn",
    "StreamEvent",
    "GeminiSessionAdapter",
    "OpenAICompatibleAdapter",
    "SSEDecoder",
]
