"""Shared data model.

Hides the representation of model configurations and conversation messages
from the adapters, the engine and the UI.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

SEARCH_NAME_SUFFIX = " (Search)"
SYSTEM_NOTE_MAX_LENGTH = 60


class MessageRole(str, Enum):
    """Author of a message."""

    USER = "user"
    MODEL = "model"


class ModelType(str, Enum):
    """Backend wire protocol used by a column."""

    GEMINI = "gemini"
    OPENAI_COMPATIBLE = "openai_compatible"


class GroundingSource(BaseModel):
    """A web citation attached to a model response."""

    model_config = ConfigDict(frozen=True)

    uri: str = Field(description="Address of the cited page")
    title: str = Field(default="", description="Page title, may be empty")


class ModelConfig(BaseModel):
    """Immutable description of one chat column.

    Two configs compare equal field by field; any change starts a new
    conversation in the owning engine.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Stable column identifier")
    name: str = Field(description="User-facing name")
    model_type: ModelType = Field(description="Backend protocol")
    model_name_api: str = Field(description="Model identifier sent to the API")
    api_key_name: str = Field(description="Key-store entry holding the secret")

    gemini_system_instruction: str | None = None
    use_google_search: bool = False

    openai_base_url: str | None = None
    openai_system_instruction: str | None = None

    @property
    def system_instruction(self) -> str | None:
        """System instruction relevant to this column's backend."""
        if self.model_type == ModelType.GEMINI:
            return self.gemini_system_instruction
        return self.openai_system_instruction

    @property
    def search_active(self) -> bool:
        """True when the Gemini search tool replaces the system instruction."""
        return self.model_type == ModelType.GEMINI and self.use_google_search

    def with_search(self, enabled: bool) -> "ModelConfig":
        """Return a copy with Google Search toggled.

        The display name carries a " (Search)" suffix while search is on.
        """
        base_name = self.name.removesuffix(SEARCH_NAME_SUFFIX)
        name = f"{base_name}{SEARCH_NAME_SUFFIX}" if enabled else base_name
        return self.model_copy(update={"use_google_search": enabled, "name": name})

    def system_note(self) -> str | None:
        """Short display note describing the column's instruction."""
        if self.search_active:
            return "Search enabled"
        instruction = self.system_instruction
        if not instruction:
            return None
        if len(instruction) > SYSTEM_NOTE_MAX_LENGTH:
            instruction = instruction[: SYSTEM_NOTE_MAX_LENGTH - 3] + "..."
        return f"System: {instruction}"


@dataclass
class Message:
    """A chat message, mutated in place while its response streams in."""

    role: MessageRole
    text: str = ""
    is_loading: bool = False
    error: str | None = None
    grounding_sources: list[GroundingSource] | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def is_complete(self) -> bool:
        """True once the message is neither streaming nor failed."""
        return not self.is_loading and self.error is None
