"""Application configuration.

Centralizes default model columns and API-key lookup. Core code only ever
sees an explicit AppSettings object; reading the environment happens once,
in load_settings().
"""

import os
from collections.abc import Iterator, Mapping

from pydantic import BaseModel, ConfigDict, Field

from .models import ModelConfig, ModelType

GEMINI_API_KEY = "GEMINI_API_KEY"
OPENAI_COMPATIBLE_API_KEY = "OPENAI_COMPATIBLE_API_KEY"

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_GEMINI_SYSTEM_INSTRUCTION = "You are a helpful assistant."
DEFAULT_OPENAI_COMPATIBLE_MODEL = "deepseek/deepseek-chat"
DEFAULT_OPENAI_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_OPENAI_SYSTEM_INSTRUCTION = "You are a versatile and creative AI assistant."
DEFAULT_LOG_LEVEL = "WARNING"


class KeyStore:
    """Mapping of API-key names to secrets.

    Empty strings count as missing, so a blank environment variable behaves
    like an unset one.
    """

    def __init__(self, keys: Mapping[str, str | None] | None = None) -> None:
        self._keys: dict[str, str] = {}
        for name, value in (keys or {}).items():
            self.set(name, value)

    def get(self, name: str) -> str | None:
        """Return the secret for a key name, or None if missing."""
        return self._keys.get(name)

    def set(self, name: str, value: str | None) -> None:
        """Store a secret; None or blank removes the entry."""
        if value and value.strip():
            self._keys[name] = value.strip()
        else:
            self._keys.pop(name, None)

    def has(self, name: str) -> bool:
        return name in self._keys

    def copy(self) -> "KeyStore":
        return KeyStore(self._keys)

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys)

    def __len__(self) -> int:
        return len(self._keys)


class AppSettings(BaseModel):
    """Everything the orchestrator needs at startup."""

    model_config = ConfigDict(frozen=True)

    model_configs: list[ModelConfig] = Field(description="One entry per chat column")
    api_keys: dict[str, str] = Field(
        default_factory=dict,
        description="API-key name to secret"
    )
    log_level: str = Field(default=DEFAULT_LOG_LEVEL, description="Logging level name")

    def key_store(self) -> KeyStore:
        """Build a fresh, mutable key store from the configured keys."""
        return KeyStore(self.api_keys)


def default_model_configs(environ: Mapping[str, str]) -> list[ModelConfig]:
    """Build the default Gemini and OpenAI-compatible columns.

    Args:
        environ: Variables to read model names, base URL and instructions from

    Environment variables:
        GEMINI_MODEL: Gemini model (default: gemini-2.5-flash)
        GEMINI_SYSTEM_INSTRUCTION: Gemini system instruction
        OPENAI_COMPATIBLE_MODEL_ID: OpenAI-compatible model (default: deepseek/deepseek-chat)
        OPENAI_COMPATIBLE_BASE_URL: API base URL (default: https://openrouter.ai/api/v1)
        OPENAI_COMPATIBLE_SYSTEM_INSTRUCTION: OpenAI-compatible system instruction
    """
    return [
        ModelConfig(
            id="model-gemini",
            name="Gemini Flash",
            model_type=ModelType.GEMINI,
            model_name_api=environ.get("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL,
            api_key_name=GEMINI_API_KEY,
            gemini_system_instruction=environ.get(
                "GEMINI_SYSTEM_INSTRUCTION", DEFAULT_GEMINI_SYSTEM_INSTRUCTION
            ) or None,
            use_google_search=False,
        ),
        ModelConfig(
            id="model-openai-compatible",
            name="OpenAI Compatible",
            model_type=ModelType.OPENAI_COMPATIBLE,
            model_name_api=environ.get("OPENAI_COMPATIBLE_MODEL_ID") or DEFAULT_OPENAI_COMPATIBLE_MODEL,
            api_key_name=OPENAI_COMPATIBLE_API_KEY,
            openai_base_url=environ.get("OPENAI_COMPATIBLE_BASE_URL") or DEFAULT_OPENAI_BASE_URL,
            openai_system_instruction=environ.get(
                "OPENAI_COMPATIBLE_SYSTEM_INSTRUCTION", DEFAULT_OPENAI_SYSTEM_INSTRUCTION
            ) or None,
        ),
    ]


def load_settings(environ: Mapping[str, str] | None = None) -> AppSettings:
    """Create settings from environment variables.

    Args:
        environ: Variables to read (default: os.environ)

    Returns:
        AppSettings with the default columns and whatever keys are set

    Environment variables:
        GEMINI_API_KEY: Gemini API key
        OPENAI_COMPATIBLE_API_KEY: Key for the OpenAI-compatible endpoint
        CHATCOMPARE_LOG_LEVEL: Logging level (default: WARNING)
        plus the model variables read by default_model_configs()
    """
    env = os.environ if environ is None else environ
    configs = default_model_configs(env)

    api_keys = {}
    for config in configs:
        value = env.get(config.api_key_name)
        if value and value.strip():
            api_keys[config.api_key_name] = value.strip()

    return AppSettings(
        model_configs=configs,
        api_keys=api_keys,
        log_level=env.get("CHATCOMPARE_LOG_LEVEL") or DEFAULT_LOG_LEVEL,
    )
