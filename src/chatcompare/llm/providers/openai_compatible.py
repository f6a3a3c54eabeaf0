"""OpenAI-compatible chat-completions adapter.

Speaks the /chat/completions streaming protocol directly over httpx and
parses the Server-Sent Events body itself, so any compatible gateway
(OpenRouter, DeepSeek, a local server) works without a vendor SDK.
"""

import json
import logging
from collections.abc import AsyncGenerator, Sequence
from typing import Any

import httpx

from ...errors import ConfigError, MalformedChunkError, TransportError
from ...models import Message, MessageRole, ModelConfig
from ..base import StreamAdapter
from ..models import HistoryTurn, StreamEvent
from ..sse import SSEDecoder, extract_content_delta, is_done

logger = logging.getLogger(__name__)

# No read timeout: a hung connection only hangs its own column.
DEFAULT_TIMEOUT = httpx.Timeout(connect=30.0, read=None, write=30.0, pool=30.0)


def build_history(
    config: ModelConfig,
    prior_messages: Sequence[Message],
    text: str
) -> list[HistoryTurn]:
    """Build the full message list sent with every request.

    The system instruction comes first when configured, then every prior
    message that finished without error, then the new user text.

    Args:
        config: Column configuration
        prior_messages: Conversation so far, excluding the new message
        text: The new user message

    Returns:
        Ordered list of wire-format turns
    """
    history: list[HistoryTurn] = []
    if config.openai_system_instruction:
        history.append(HistoryTurn(role="system", content=config.openai_system_instruction))

    for msg in prior_messages:
        if not msg.is_complete:
            continue
        role = "user" if msg.role == MessageRole.USER else "assistant"
        history.append(HistoryTurn(role=role, content=msg.text))

    history.append(HistoryTurn(role="user", content=text))
    return history


def _error_detail(response: httpx.Response) -> str:
    """Best-effort extraction of an error description from a failed response."""
    try:
        data = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.reason_phrase or response.text or "Unknown error"

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if data.get("message"):
            return str(data["message"])
    return json.dumps(data)


class OpenAICompatibleAdapter(StreamAdapter):
    """Stream adapter for OpenAI-compatible endpoints.

    Hidden design decisions:
    - History is rebuilt from the conversation and resent on every request
    - SSE framing and [DONE] detection
    - Malformed chunks are logged and skipped, never fatal
    - Bearer-token authentication
    """

    def __init__(
        self,
        config: ModelConfig,
        api_key: str,
        client: httpx.AsyncClient | None = None,
        **client_kwargs: Any
    ):
        """Initialize the adapter.

        No connection is opened here; only the configuration is checked.

        Args:
            config: Column configuration (must carry openai_base_url)
            api_key: Bearer token
            client: Optional pre-built httpx client (shared or mocked)
            **client_kwargs: Additional kwargs for httpx.AsyncClient

        Raises:
            ConfigError: If no base URL is configured
        """
        super().__init__(config)
        if not config.openai_base_url:
            raise ConfigError(f"OpenAI Base URL is not configured for {config.name}.")
        self._api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT, **client_kwargs)

    @property
    def url(self) -> str:
        """Chat-completions endpoint."""
        return f"{self._config.openai_base_url.rstrip('/')}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def _payload(self, history: list[HistoryTurn]) -> dict[str, Any]:
        return {
            "model": self._config.model_name_api,
            "messages": [turn.model_dump() for turn in history],
            "stream": True,
        }

    async def _stream(
        self,
        history: Sequence[Message],
        text: str
    ) -> AsyncGenerator[StreamEvent, None]:
        """POST the conversation and yield text deltas as they arrive."""
        payload = self._payload(build_history(self._config, history, text))
        logger.debug(
            "%s: POST %s with %d messages",
            self._config.name, self.url, len(payload["messages"])
        )

        try:
            async with self._client.stream(
                "POST", self.url, headers=self._headers(), json=payload
            ) as response:
                if not response.is_success:
                    await response.aread()
                    raise TransportError(
                        f"OpenAI API Error ({response.status_code}): {_error_detail(response)}",
                        status_code=response.status_code,
                    )

                decoder = SSEDecoder()
                async for chunk in response.aiter_bytes():
                    for data in decoder.feed(chunk):
                        if is_done(data):
                            yield StreamEvent.final()
                            return
                        event = self._parse(data)
                        if event is not None:
                            yield event
                    if decoder.pending_done():
                        yield StreamEvent.final()
                        return

                for data in decoder.flush():
                    if is_done(data):
                        break
                    event = self._parse(data)
                    if event is not None:
                        yield event
        except httpx.HTTPError as e:
            raise TransportError(
                f"Failed to get response from {self._config.name}: {e}"
            ) from e

        yield StreamEvent.final()

    def _parse(self, data: str) -> StreamEvent | None:
        """Turn one payload into an event; malformed payloads are skipped."""
        try:
            delta = extract_content_delta(data)
        except MalformedChunkError as e:
            logger.warning("%s: skipping chunk: %s", self._config.name, e)
            return None
        if delta is None:
            return None
        return StreamEvent(text_delta=delta)

    async def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            await self._client.aclose()
