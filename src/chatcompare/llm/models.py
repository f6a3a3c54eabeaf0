from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ..models import GroundingSource


class StreamEvent(BaseModel):
    """One normalized increment of a streaming response.

    Adapters yield a finite sequence of these; the last one has
    is_final=True. An event carrying error_message is always the last one.
    """

    model_config = ConfigDict(frozen=True)

    text_delta: str | None = Field(default=None, description="Text to append to the response")
    grounding_sources: list[GroundingSource] | None = Field(
        default=None,
        description="Citations known so far; replaces any earlier list"
    )
    error_message: str | None = Field(default=None, description="Fatal error for this stream")
    is_final: bool = Field(default=False, description="True on the terminal event")

    @classmethod
    def final(cls) -> "StreamEvent":
        """Terminal event for a stream that completed normally."""
        return cls(is_final=True)

    @classmethod
    def failure(cls, message: str) -> "StreamEvent":
        """Terminal event for a stream that failed."""
        return cls(error_message=message, is_final=True)


class HistoryTurn(BaseModel):
    """A chat message in OpenAI wire format."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"] = Field(description="Role of the message sender")
    content: str = Field(description="Content of the message")
