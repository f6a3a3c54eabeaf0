"""Error taxonomy.

Hides how failures are classified. Every error a conversation can surface
derives from ChatCompareError; callers decide what to show, adapters decide
what to raise.
"""


class ChatCompareError(Exception):
    """Base class for all chatcompare errors."""


class ConfigError(ChatCompareError):
    """A column cannot talk to its backend: missing API key or base URL.

    Surfaced as the conversation error; never retried.
    """


class TransportError(ChatCompareError):
    """The backend refused or broke the request.

    Raised for non-2xx HTTP responses, SDK exceptions and connection
    failures. Terminal for the send it belongs to.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedChunkError(ChatCompareError):
    """A single stream payload could not be parsed.

    Only ever raised and caught inside an adapter; the stream continues.
    """

    def __init__(self, payload: str, reason: str = ""):
        super().__init__(f"Malformed stream chunk ({reason}): {payload[:200]!r}")
        self.payload = payload
        self.reason = reason
