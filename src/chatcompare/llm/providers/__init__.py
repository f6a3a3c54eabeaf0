from .gemini import GeminiSessionAdapter
from .openai_compatible import OpenAICompatibleAdapter

__all__ = ["GeminiSessionAdapter", "OpenAICompatibleAdapter"]
