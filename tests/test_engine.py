"""Unit tests for the chat session engine."""
import asyncio

import pytest

from chatcompare.chat import ChatPhase, ChatSession
from chatcompare.errors import TransportError
from chatcompare.llm import StreamEvent
from chatcompare.models import GroundingSource, MessageRole


@pytest.fixture
def session(openai_config, adapter_factory):
    return ChatSession(openai_config, adapter_factory=adapter_factory)


class TestConfigure:
    """Tests for configuring a session."""

    @pytest.mark.asyncio
    async def test_starts_idle(self, session):
        """Test the initial state of a new session."""
        assert session.phase == ChatPhase.IDLE
        assert session.messages == []
        assert not session.is_loading
        assert session.error is None

    @pytest.mark.asyncio
    async def test_missing_key_awaits_key(self, session, openai_config, adapter_factory):
        """Test that configuring without a key reports the missing key."""
        phase = await session.configure(openai_config, None)

        assert phase == ChatPhase.AWAITING_KEY
        assert session.error == "API Key (OPENAI_COMPATIBLE_API_KEY) is not configured."
        assert adapter_factory.created == []

    @pytest.mark.asyncio
    async def test_configure_with_key_is_ready(self, session, openai_config, adapter_factory):
        """Test that a key produces a ready session with one adapter."""
        phase = await session.configure(openai_config, "o-key")

        assert phase == ChatPhase.READY
        assert session.error is None
        assert len(adapter_factory.created) == 1

    @pytest.mark.asyncio
    async def test_unchanged_configure_is_noop(self, session, openai_config, adapter_factory):
        """Test that reapplying the same config and key keeps the conversation."""
        await session.configure(openai_config, "o-key")
        await session.send("Hi")

        await session.configure(openai_config, "o-key")

        assert len(session.messages) == 2
        assert len(adapter_factory.created) == 1

    @pytest.mark.asyncio
    async def test_changed_config_resets_conversation(self, session, openai_config, adapter_factory):
        """Test that any config change starts over and closes the old adapter."""
        await session.configure(openai_config, "o-key")
        await session.send("Hi")
        old_adapter = adapter_factory.created[0]

        await session.configure(openai_config.model_copy(update={"model_name_api": "other"}), "o-key")

        assert session.messages == []
        assert session.phase == ChatPhase.READY
        assert old_adapter.closed
        assert len(adapter_factory.created) == 2

    @pytest.mark.asyncio
    async def test_changed_key_resets_conversation(self, session, openai_config):
        """Test that a new key starts a new conversation."""
        await session.configure(openai_config, "o-key")
        await session.send("Hi")

        await session.configure(openai_config, "new-key")

        assert session.messages == []

    @pytest.mark.asyncio
    async def test_factory_error_sets_error_phase(self, openai_config):
        """Test that an adapter that cannot be built leaves the session in ERROR."""
        config = openai_config.model_copy(update={"openai_base_url": None})
        session = ChatSession(config)

        phase = await session.configure(config, "o-key")

        assert phase == ChatPhase.ERROR
        assert session.error == "OpenAI Base URL is not configured for OpenAI Compatible."


class TestSend:
    """Tests for sending messages and folding stream events."""

    @pytest.mark.asyncio
    async def test_send_without_key(self, session, openai_config):
        """Test that sending before a key is set reports an error and adds nothing."""
        await session.configure(openai_config, None)

        await session.send("Hi")

        assert session.messages == []
        assert session.error == (
            "Cannot send message: API Key (OPENAI_COMPATIBLE_API_KEY) "
            "is missing for OpenAI Compatible."
        )

    @pytest.mark.asyncio
    async def test_send_before_configure(self, session):
        """Test that an unconfigured session refuses to send."""
        await session.send("Hi")

        assert session.messages == []
        assert session.error.startswith("Cannot send message")

    @pytest.mark.asyncio
    async def test_blank_text_ignored(self, session, openai_config, adapter_factory):
        """Test that whitespace-only input sends nothing."""
        await session.configure(openai_config, "o-key")

        await session.send("   \n")

        assert session.messages == []
        assert adapter_factory.created[0].calls == []

    @pytest.mark.asyncio
    async def test_deltas_concatenate(self, session, openai_config, adapter_factory):
        """Test that text deltas are appended to one placeholder."""
        adapter_factory.script = [
            StreamEvent(text_delta="He"),
            StreamEvent(text_delta="llo"),
            StreamEvent.final(),
        ]
        await session.configure(openai_config, "o-key")

        await session.send("Hi")

        user, model = session.messages
        assert (user.role, user.text) == (MessageRole.USER, "Hi")
        assert (model.role, model.text) == (MessageRole.MODEL, "Hello")
        assert not model.is_loading
        assert model.error is None
        assert not session.is_loading
        assert session.phase == ChatPhase.READY

    @pytest.mark.asyncio
    async def test_grounding_sources_replaced(self, session, openai_config, adapter_factory):
        """Test that every sources list replaces the previous one."""
        first = [GroundingSource(uri="https://a.example", title="A")]
        second = [GroundingSource(uri="https://b.example", title="B")]
        adapter_factory.script = [
            StreamEvent(text_delta="x", grounding_sources=first),
            StreamEvent(text_delta="y", grounding_sources=second),
        ]
        await session.configure(openai_config, "o-key")

        await session.send("Hi")

        assert session.messages[-1].grounding_sources == second

    @pytest.mark.asyncio
    async def test_history_excludes_new_message(self, session, openai_config, adapter_factory):
        """Test that the adapter receives prior messages and the new text separately."""
        await session.configure(openai_config, "o-key")

        await session.send("First")
        await session.send("Second")

        calls = adapter_factory.created[0].calls
        assert calls[0] == ([], "First")
        assert calls[1] == (["First", "Hello"], "Second")

    @pytest.mark.asyncio
    async def test_transport_error_annotates_placeholder(self, session, openai_config, adapter_factory):
        """Test that a mid-stream failure keeps partial text and records the error."""
        adapter_factory.script = [
            StreamEvent(text_delta="Par"),
            TransportError("OpenAI API Error (500): boom", status_code=500),
        ]
        await session.configure(openai_config, "o-key")

        await session.send("Hi")

        model = session.messages[-1]
        assert model.text == "Par"
        assert model.error == "OpenAI API Error (500): boom"
        assert not model.is_loading
        assert session.error == "OpenAI API Error (500): boom"
        assert session.phase == ChatPhase.ERROR
        assert not session.is_loading

    @pytest.mark.asyncio
    async def test_unexpected_exception_reported(self, session, openai_config, adapter_factory):
        """Test that an unexpected adapter exception does not escape send()."""
        adapter_factory.script = [RuntimeError("socket exploded")]
        await session.configure(openai_config, "o-key")

        await session.send("Hi")

        assert session.messages[-1].error == "socket exploded"
        assert session.error == "socket exploded"

    @pytest.mark.asyncio
    async def test_next_send_clears_error(self, session, openai_config, adapter_factory):
        """Test that a successful turn after a failure clears the conversation error."""
        adapter_factory.script = [TransportError("boom")]
        await session.configure(openai_config, "o-key")
        await session.send("Hi")

        adapter_factory.created[0].script = [StreamEvent(text_delta="ok")]
        await session.send("Again")

        assert session.error is None
        assert session.phase == ChatPhase.READY
        assert session.messages[1].error == "boom"

    @pytest.mark.asyncio
    async def test_config_error_on_send(self, openai_config):
        """Test that sending on a misconfigured session annotates the placeholder."""
        config = openai_config.model_copy(update={"openai_base_url": None})
        session = ChatSession(config)
        await session.configure(config, "o-key")

        await session.send("Hi")

        model = session.messages[-1]
        assert model.role == MessageRole.MODEL
        assert model.error == "OpenAI Base URL is not configured for OpenAI Compatible."

    @pytest.mark.asyncio
    async def test_at_most_one_loading_model_message(
        self, session, openai_config, adapter_factory, settle
    ):
        """Test that concurrent sends stream one turn at a time."""
        adapter_factory.gate = asyncio.Event()
        await session.configure(openai_config, "o-key")
        counts = []
        session.add_listener(lambda s: counts.append(len(s.state.loading_model_messages())))

        first = asyncio.create_task(session.send("One"))
        second = asyncio.create_task(session.send("Two"))
        await settle()

        assert [m.text for m in session.messages] == ["One", "", "Two"]
        assert session.is_loading
        assert session.phase == ChatPhase.STREAMING

        adapter_factory.gate.set()
        await asyncio.gather(first, second)

        assert max(counts) == 1
        assert [(m.role, m.text) for m in session.messages] == [
            (MessageRole.USER, "One"),
            (MessageRole.MODEL, "Hello"),
            (MessageRole.USER, "Two"),
            (MessageRole.MODEL, "Hello"),
        ]
        assert not session.is_loading

    @pytest.mark.asyncio
    async def test_reset_drops_stale_stream(self, session, openai_config, adapter_factory, settle):
        """Test that a stream of a reset conversation never touches the new one."""
        adapter_factory.gate = asyncio.Event()
        await session.configure(openai_config, "o-key")
        pending = asyncio.create_task(session.send("Hi"))
        await settle()

        await session.configure(openai_config, "new-key")
        adapter_factory.gate.set()
        await pending

        assert session.messages == []
        assert not session.is_loading
        assert session.phase == ChatPhase.READY


class TestClear:
    """Tests for clearing a conversation."""

    @pytest.mark.asyncio
    async def test_clear_keeps_session(self, session, openai_config, adapter_factory):
        """Test that clear empties messages but keeps the backend session."""
        await session.configure(openai_config, "o-key")
        await session.send("Hi")

        session.clear()

        assert session.messages == []
        assert session.phase == ChatPhase.READY
        assert len(adapter_factory.created) == 1
        assert not adapter_factory.created[0].closed

    @pytest.mark.asyncio
    async def test_listener_notified(self, session, openai_config):
        """Test that listeners hear about every change until removed."""
        calls = []

        def listener(s):
            calls.append(s)

        session.add_listener(listener)
        await session.configure(openai_config, "o-key")
        session.remove_listener(listener)
        session.clear()

        assert calls == [session]
