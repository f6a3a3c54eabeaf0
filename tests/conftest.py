"""Pytest configuration and shared fixtures."""
import asyncio
import os
from types import SimpleNamespace

import pytest

from chatcompare.config import AppSettings
from chatcompare.errors import ConfigError
from chatcompare.llm import StreamAdapter, StreamEvent
from chatcompare.models import ModelConfig, ModelType


class ScriptedAdapter(StreamAdapter):
    """Adapter replaying a fixed list of events (or raising exceptions)."""

    def __init__(self, config, api_key, script, gate=None):
        super().__init__(config)
        self.api_key = api_key
        self.script = list(script)
        self.gate = gate
        self.calls = []
        self.closed = False

    async def _stream(self, history, text):
        self.calls.append(([msg.text for msg in history], text))
        if self.gate is not None:
            await self.gate.wait()
        for item in self.script:
            if isinstance(item, BaseException):
                raise item
            yield item

    async def close(self):
        self.closed = True


class ScriptedAdapterFactory:
    """Adapter factory whose adapters all play the same script.

    Set `gate` to an asyncio.Event to hold every stream until it is set.
    """

    def __init__(self):
        self.script = [StreamEvent(text_delta="Hello")]
        self.gate = None
        self.created = []

    def __call__(self, config, api_key, **options):
        if not api_key:
            raise ConfigError(f"API Key ({config.api_key_name}) is not configured.")
        adapter = ScriptedAdapter(config, api_key, self.script, self.gate)
        self.created.append(adapter)
        return adapter


class FakeChat:
    """Stand-in for a google-genai async chat session."""

    def __init__(self, chunks=(), error=None):
        self.chunks = list(chunks)
        self.error = error
        self.sent = []

    async def send_message_stream(self, message):
        self.sent.append(message)
        if self.error is not None:
            raise self.error

        async def _chunks():
            for chunk in self.chunks:
                yield chunk

        return _chunks()


class FakeChats:
    def __init__(self, chat):
        self.chat = chat
        self.created = []

    def create(self, model, config=None, history=None):
        self.created.append({"model": model, "config": config, "history": history})
        return self.chat


class FakeGeminiClient:
    """Stand-in for genai.Client exposing client.aio.chats.create()."""

    def __init__(self, chunks=(), error=None):
        self.chat = FakeChat(chunks, error)
        self.chats = FakeChats(self.chat)
        self.aio = SimpleNamespace(chats=self.chats)


def make_chunk(text=None, sources=None):
    """Build a Gemini response chunk; sources is a list of (uri, title)."""
    if sources is None:
        return SimpleNamespace(text=text, candidates=None)
    grounding_chunks = [
        SimpleNamespace(web=SimpleNamespace(uri=uri, title=title))
        for uri, title in sources
    ]
    metadata = SimpleNamespace(grounding_chunks=grounding_chunks)
    return SimpleNamespace(
        text=text,
        candidates=[SimpleNamespace(grounding_metadata=metadata)],
    )


async def _settle(rounds: int = 20) -> None:
    """Let pending tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture(scope="session")
def api_keys():
    """Return API keys from environment."""
    return {
        "gemini": os.getenv("GEMINI_API_KEY"),
        "openai_compatible": os.getenv("OPENAI_COMPATIBLE_API_KEY"),
    }


@pytest.fixture
def gemini_config():
    """Gemini column with a system instruction."""
    return ModelConfig(
        id="model-gemini",
        name="Gemini Flash",
        model_type=ModelType.GEMINI,
        model_name_api="gemini-2.5-flash",
        api_key_name="GEMINI_API_KEY",
        gemini_system_instruction="You are a helpful assistant.",
    )


@pytest.fixture
def openai_config():
    """OpenAI-compatible column pointing at a fake gateway."""
    return ModelConfig(
        id="model-openai-compatible",
        name="OpenAI Compatible",
        model_type=ModelType.OPENAI_COMPATIBLE,
        model_name_api="deepseek/deepseek-chat",
        api_key_name="OPENAI_COMPATIBLE_API_KEY",
        openai_base_url="https://gateway.test/api/v1/",
        openai_system_instruction="Be brief.",
    )


@pytest.fixture
def settings(gemini_config, openai_config):
    """Both default columns with both keys present."""
    return AppSettings(
        model_configs=[gemini_config, openai_config],
        api_keys={"GEMINI_API_KEY": "g-key", "OPENAI_COMPATIBLE_API_KEY": "o-key"},
    )


@pytest.fixture
def adapter_factory():
    """Scripted adapter factory (see ScriptedAdapterFactory)."""
    return ScriptedAdapterFactory()


@pytest.fixture
def chunk():
    """Factory for fake Gemini response chunks."""
    return make_chunk


@pytest.fixture
def settle():
    """Coroutine function yielding to the event loop until tasks block."""
    return _settle


@pytest.fixture
def gemini_client():
    """Factory for fake Gemini clients: gemini_client(chunks, error=None)."""
    return FakeGeminiClient
