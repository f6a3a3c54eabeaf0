import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, Sequence
from contextlib import aclosing
from typing import Any

from ..errors import TransportError
from ..models import Message, ModelConfig
from .models import StreamEvent

logger = logging.getLogger(__name__)


class StreamAdapter(ABC):
    """Abstract base class for backend stream adapters.

    This module hides the design decision of which wire protocol a column
    speaks. Implementations must handle protocol-specific details like:
    - Client or session setup and authentication
    - Request format (full history resend vs. server-side session)
    - Chunk framing and payload extraction
    - Translating transport failures into TransportError

    Supports async context manager protocol for proper resource cleanup:
        async with adapter:
            async for event in adapter.start(history, "hi"):
                ...
    """

    def __init__(self, config: ModelConfig):
        self._config = config

    @property
    def config(self) -> ModelConfig:
        """Configuration the adapter was built for."""
        return self._config

    async def start(self, history: Sequence[Message], text: str) -> AsyncGenerator[StreamEvent, None]:
        """Stream the response to a new user message.

        The sequence is lazy, finite and cannot be restarted. It always ends
        with exactly one event whose is_final flag is set; a TransportError
        raised by the protocol becomes that terminal event.

        Args:
            history: Messages preceding the new user message
            text: The new user message

        Yields:
            Normalized stream events
        """
        stream = self._stream(history, text)
        try:
            async with aclosing(stream):
                async for event in stream:
                    yield event
                    if event.is_final:
                        return
        except TransportError as e:
            logger.warning("%s: %s", self._config.name, e)
            yield StreamEvent.failure(str(e))
            return
        yield StreamEvent.final()

    @abstractmethod
    def _stream(self, history: Sequence[Message], text: str) -> AsyncGenerator[StreamEvent, None]:
        """Protocol-specific event generator.

        May stop without a final event; start() appends one. Raises
        TransportError for fatal failures.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""
        pass

    async def __aenter__(self) -> "StreamAdapter":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup.

        Note: Suppresses "Event loop is closed" errors during cleanup.
        This is a known harmless race condition in httpx/anyio cleanup:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
