"""Google Gemini chat-session adapter.

Uses the official Google GenAI SDK chat sessions.
Reference: https://github.com/googleapis/python-genai

The session object keeps the conversation history on the client side of
the SDK, so each request carries only the newest user message.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator, Sequence
from typing import Any

import httpx
from google import genai
from google.genai import errors, types

from ...errors import TransportError
from ...models import GroundingSource, Message, MessageRole, ModelConfig
from ..base import StreamAdapter
from ..models import StreamEvent

logger = logging.getLogger(__name__)


def to_gemini_history(messages: Sequence[Message]) -> list[types.Content]:
    """Convert completed messages to Gemini Content objects.

    Args:
        messages: Conversation messages; loading or failed ones are skipped

    Returns:
        Content list with roles 'user' and 'model'
    """
    return [
        types.Content(
            role="user" if msg.role == MessageRole.USER else "model",
            parts=[types.Part(text=msg.text)]
        )
        for msg in messages
        if msg.is_complete
    ]


def build_session_config(config: ModelConfig) -> types.GenerateContentConfig:
    """Build the chat-session configuration for a column.

    Search mode and the system instruction are mutually exclusive: when
    search is on, the instruction is dropped and the search tool added.
    """
    if config.use_google_search:
        return types.GenerateContentConfig(
            tools=[types.Tool(google_search=types.GoogleSearch())]
        )
    if config.gemini_system_instruction:
        return types.GenerateContentConfig(
            system_instruction=types.Content(
                role="system",
                parts=[types.Part(text=config.gemini_system_instruction)]
            )
        )
    return types.GenerateContentConfig()


def extract_grounding_sources(chunk: Any) -> list[GroundingSource] | None:
    """Extract web citations from a response chunk.

    Returns:
        Sources with a non-empty URI, or None if the chunk carries no
        grounding chunks at all
    """
    candidates = getattr(chunk, "candidates", None)
    if not candidates:
        return None
    metadata = getattr(candidates[0], "grounding_metadata", None)
    grounding_chunks = getattr(metadata, "grounding_chunks", None) if metadata else None
    if not grounding_chunks:
        return None

    sources = []
    for grounding_chunk in grounding_chunks:
        web = getattr(grounding_chunk, "web", None)
        uri = (getattr(web, "uri", None) or "") if web else ""
        title = (getattr(web, "title", None) or "") if web else ""
        if uri.strip():
            sources.append(GroundingSource(uri=uri, title=title))
    return sources


def _chunk_text(chunk: Any) -> str:
    """Text of a chunk, tolerating chunks without text parts."""
    try:
        return chunk.text or ""
    except (ValueError, AttributeError):
        return ""


class GeminiSessionAdapter(StreamAdapter):
    """Stream adapter for Gemini chat sessions.

    Hidden design decisions:
    - Google GenAI client and chat-session construction
    - Search tool vs. system instruction exclusivity
    - Grounding metadata extraction (latest chunk wins)
    - One request at a time per session
    """

    def __init__(
        self,
        config: ModelConfig,
        api_key: str,
        client: Any | None = None,
        history: Sequence[Message] = (),
        **client_kwargs: Any
    ):
        """Initialize the adapter and eagerly create the chat session.

        Args:
            config: Column configuration
            api_key: Google AI API key
            client: Optional pre-built genai.Client (or a test double)
            history: Prior messages to seed the session with
            **client_kwargs: Additional kwargs for genai.Client
        """
        super().__init__(config)
        self._client = client or genai.Client(api_key=api_key, **client_kwargs)
        self._session_config = build_session_config(config)
        self._session = self._client.aio.chats.create(
            model=config.model_name_api,
            config=self._session_config,
            history=to_gemini_history(history),
        )
        self._lock = asyncio.Lock()

    @property
    def session_config(self) -> types.GenerateContentConfig:
        """Configuration the chat session was created with."""
        return self._session_config

    async def _stream(
        self,
        history: Sequence[Message],
        text: str
    ) -> AsyncGenerator[StreamEvent, None]:
        """Send the new message on the session and yield its chunks.

        The history argument is ignored: the session already holds it.
        """
        async with self._lock:
            logger.debug("%s: sending message on chat session", self._config.name)
            try:
                stream = await self._session.send_message_stream(message=text)
                sources: list[GroundingSource] | None = None
                async for chunk in stream:
                    # Latest metadata supersedes earlier chunks, no merging.
                    found = extract_grounding_sources(chunk)
                    if found is not None:
                        sources = found
                    yield StreamEvent(
                        text_delta=_chunk_text(chunk) or None,
                        grounding_sources=sources,
                    )
            except (errors.APIError, httpx.HTTPError) as e:
                raise TransportError(
                    f"Failed to get response from {self._config.name}: {e}",
                    status_code=getattr(e, "code", None),
                ) from e

        yield StreamEvent.final()

    async def close(self) -> None:
        """Close the Gemini client.

        Note: The Google GenAI client doesn't require explicit closing,
        but we implement this for interface consistency.
        """
        pass
