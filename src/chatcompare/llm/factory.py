from typing import Any

from ..errors import ConfigError
from ..models import ModelConfig, ModelType
from .base import StreamAdapter
from .providers import GeminiSessionAdapter, OpenAICompatibleAdapter


def create_stream_adapter(
    config: ModelConfig,
    api_key: str | None,
    **options: Any
) -> StreamAdapter:
    """Create the stream adapter for a column.

    This factory function hides which wire protocol a column speaks.

    Args:
        config: Column configuration; model_type selects the adapter
        api_key: Secret looked up for config.api_key_name
        **options: Adapter-specific options
            For Gemini:
                - client: genai.Client | None
                - history: Sequence[Message] (prior turns to seed the session)
            For OpenAI-compatible:
                - client: httpx.AsyncClient | None

    Returns:
        Initialized stream adapter (Gemini sessions are created eagerly)

    Raises:
        ConfigError: If the API key or a required base URL is missing
        ValueError: If the model type is not supported

    Examples:
        >>> adapter = create_stream_adapter(
        ...     ModelConfig(
        ...         id="col-1",
        ...         name="DeepSeek",
        ...         model_type=ModelType.OPENAI_COMPATIBLE,
        ...         model_name_api="deepseek-chat",
        ...         api_key_name="OPENAI_COMPATIBLE_API_KEY",
        ...         openai_base_url="https://api.deepseek.com",
        ...     ),
        ...     api_key="sk-..."
        ... )
    """
    if not api_key:
        raise ConfigError(f"API Key ({config.api_key_name}) is not configured.")

    if config.model_type == ModelType.GEMINI:
        return GeminiSessionAdapter(config, api_key, **options)

    if config.model_type == ModelType.OPENAI_COMPATIBLE:
        return OpenAICompatibleAdapter(config, api_key, **options)

    raise ValueError(
        f"Unsupported model type: {config.model_type}. "
        f"Supported types: {', '.join(t.value for t in ModelType)}"
    )
