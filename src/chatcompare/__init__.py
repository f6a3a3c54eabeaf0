"""
chatcompare: send one prompt to several LLM backends and compare the streamed answers.

This package follows Parnas's information hiding principles,
where each module hides a specific design decision.
"""

__version__ = "0.1.0"

from .chat import ChatSession, ColumnController, Orchestrator
from .config import AppSettings, KeyStore, load_settings
from .errors import ChatCompareError, ConfigError, MalformedChunkError, TransportError
from .models import GroundingSource, Message, MessageRole, ModelConfig, ModelType

__all__ = [
    "AppSettings",
    "ChatCompareError",
    "ChatSession",
    "ColumnController",
    "ConfigError",
    "GroundingSource",
    "KeyStore",
    "MalformedChunkError",
    "Message",
    "MessageRole",
    "ModelConfig",
    "ModelType",
    "Orchestrator",
    "TransportError",
    "load_settings",
]
