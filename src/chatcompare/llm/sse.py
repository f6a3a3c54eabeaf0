"""Incremental Server-Sent Events decoding for chat-completion streams.

Hides the framing rules: network chunks do not line up with events, so
bytes are buffered until a blank-line separator arrives. UTF-8 sequences
split across chunks are held back by an incremental decoder.
"""

import codecs
import json

from ..errors import MalformedChunkError

EVENT_SEPARATOR = "\n\n"
DATA_FIELD = "data:"
DONE_SENTINEL = "[DONE]"


def _event_payload(block: str) -> str | None:
    """Join the data lines of one event block.

    Comment lines (starting with ':') and fields other than data are
    ignored. Returns None when the block carries no data.
    """
    data_lines = []
    for line in block.split("\n"):
        if not line.startswith(DATA_FIELD):
            continue
        value = line[len(DATA_FIELD):]
        if value.startswith(" "):
            value = value[1:]
        data_lines.append(value)
    if not data_lines:
        return None
    return "\n".join(data_lines).strip()


class SSEDecoder:
    """Turns a byte stream into complete event payloads.

    Usage:
        decoder = SSEDecoder()
        async for chunk in response.aiter_bytes():
            for payload in decoder.feed(chunk):
                ...
        for payload in decoder.flush():
            ...
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    @property
    def buffer(self) -> str:
        """Text received but not yet terminated by a separator."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[str]:
        """Add raw bytes and return payloads of every event now complete."""
        self._append(self._decoder.decode(chunk))
        payloads = []
        while True:
            index = self._buffer.find(EVENT_SEPARATOR)
            if index == -1:
                break
            block = self._buffer[:index]
            self._buffer = self._buffer[index + len(EVENT_SEPARATOR):]
            payload = _event_payload(block)
            if payload is not None:
                payloads.append(payload)
        return payloads

    def pending_done(self) -> bool:
        """True when the unterminated tail is a complete [DONE] event.

        Some servers close with "data: [DONE]" and no trailing blank line.
        """
        return _event_payload(self._buffer) == DONE_SENTINEL

    def flush(self) -> list[str]:
        """Return the payload left in the buffer once the body has ended."""
        self._append(self._decoder.decode(b"", final=True))
        payload = _event_payload(self._buffer)
        self._buffer = ""
        return [payload] if payload is not None else []

    def _append(self, text: str) -> None:
        # A lone trailing '\r' stays until its '\n' arrives.
        self._buffer = (self._buffer + text).replace("\r\n", "\n")


def is_done(payload: str) -> bool:
    """Check whether a payload is the end-of-stream sentinel."""
    return payload == DONE_SENTINEL


def extract_content_delta(payload: str) -> str | None:
    """Extract choices[0].delta.content from a chat-completion chunk.

    Returns None for well-formed chunks without text (role announcements,
    usage records, keep-alives).

    Raises:
        MalformedChunkError: If the payload is not valid JSON
    """
    try:
        chunk = json.loads(payload)
    except json.JSONDecodeError as e:
        raise MalformedChunkError(payload, str(e)) from e

    try:
        content = chunk["choices"][0]["delta"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    if isinstance(content, str) and content:
        return content
    return None
