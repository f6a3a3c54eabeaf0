"""Chat session engine.

Hides how one conversation is driven: when the backend session is built,
how turns are serialized, and how stream events are folded into messages.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from contextlib import aclosing
from typing import Any

from ..errors import ChatCompareError
from ..llm import StreamAdapter, StreamEvent, create_stream_adapter
from ..models import Message, MessageRole, ModelConfig
from .models import ChatPhase, ConversationState

logger = logging.getLogger(__name__)

AdapterFactory = Callable[..., StreamAdapter]
SessionListener = Callable[["ChatSession"], None]


class ChatSession:
    """One conversation with one backend.

    The session starts IDLE. configure() moves it to AWAITING_KEY, READY or
    ERROR and always starts a fresh conversation. send() appends the user
    message, waits for earlier turns of the same conversation to finish,
    then streams the response into a MODEL placeholder.

    Usage:
        session = ChatSession(config)
        await session.configure(config, api_key)
        await session.send("hi")
        print(session.messages[-1].text)
    """

    def __init__(
        self,
        config: ModelConfig,
        adapter_factory: AdapterFactory = create_stream_adapter,
        **adapter_options: Any
    ) -> None:
        """Initialize an unconfigured session.

        Args:
            config: Initial column configuration
            adapter_factory: Builds the stream adapter on configure
            **adapter_options: Passed through to the adapter factory
        """
        self._config = config
        self._api_key: str | None = None
        self._adapter_factory = adapter_factory
        self._adapter_options = adapter_options
        self._adapter: StreamAdapter | None = None
        self._config_error: str | None = None
        self._state = ConversationState()
        self._generation = 0
        self._pending_turns = 0
        self._turn_lock = asyncio.Lock()
        self._listeners: list[SessionListener] = []

    @property
    def config(self) -> ModelConfig:
        return self._config

    @property
    def api_key(self) -> str | None:
        return self._api_key

    @property
    def state(self) -> ConversationState:
        return self._state

    @property
    def messages(self) -> list[Message]:
        return self._state.messages

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def error(self) -> str | None:
        return self._state.error

    @property
    def phase(self) -> ChatPhase:
        return self._state.phase

    def add_listener(self, listener: SessionListener) -> None:
        """Register a callback invoked after every state change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        """Unregister a state-change callback."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    async def configure(
        self,
        config: ModelConfig,
        api_key: str | None,
        force: bool = False
    ) -> ChatPhase:
        """Start a new conversation for a (config, key) pair.

        Does nothing when both equal the current values, unless forced.
        Streams still running for the previous conversation are ignored
        from here on and their adapter is closed.

        Args:
            config: Column configuration
            api_key: Secret for config.api_key_name, None when missing
            force: Reconfigure even if nothing changed

        Returns:
            The phase the session ends up in
        """
        unchanged = config == self._config and api_key == self._api_key
        if unchanged and not force and self._state.phase != ChatPhase.IDLE:
            return self._state.phase

        previous = self._adapter
        self._config = config
        self._api_key = api_key
        self._adapter = None
        self._config_error = None
        self._generation += 1
        self._pending_turns = 0
        self._turn_lock = asyncio.Lock()
        self._state = ConversationState()

        if not api_key:
            self._state.phase = ChatPhase.AWAITING_KEY
            self._state.error = f"API Key ({config.api_key_name}) is not configured."
        else:
            try:
                self._adapter = self._adapter_factory(config, api_key, **self._adapter_options)
            except (ChatCompareError, ValueError) as e:
                logger.warning("%s: configuration failed: %s", config.name, e)
                self._config_error = str(e) or f"Failed to initialize chat service for {config.name}."
                self._state.phase = ChatPhase.ERROR
                self._state.error = self._config_error
            else:
                self._state.phase = ChatPhase.READY

        logger.debug("%s: configured (%s)", config.name, self._state.phase.value)
        self._notify()

        if previous is not None:
            await previous.close()
        return self._state.phase

    def clear(self) -> None:
        """Remove all messages, keeping configuration and backend session."""
        self._state.messages.clear()
        self._notify()

    async def send(self, text: str) -> None:
        """Send a user message and stream the response into the conversation.

        Errors never propagate: they end up in the conversation error and
        on the MODEL placeholder.

        Args:
            text: The user's message; blank text is ignored
        """
        if not text.strip():
            return

        if self._state.phase in (ChatPhase.IDLE, ChatPhase.AWAITING_KEY):
            self._state.error = (
                f"Cannot send message: API Key ({self._config.api_key_name}) "
                f"is missing for {self._config.name}."
            )
            self._notify()
            return

        generation = self._generation
        turn_lock = self._turn_lock

        user_message = Message(role=MessageRole.USER, text=text)
        self._state.messages.append(user_message)
        self._pending_turns += 1
        self._state.is_loading = True
        self._notify()

        async with turn_lock:
            if generation != self._generation:
                return
            history = self._history_before(user_message)
            placeholder = Message(role=MessageRole.MODEL, is_loading=True)
            self._state.messages.append(placeholder)
            self._state.error = None
            self._state.phase = ChatPhase.STREAMING
            self._notify()

            await self._run_turn(generation, placeholder, history, text)

        if generation != self._generation:
            return
        self._pending_turns -= 1
        if self._pending_turns == 0:
            self._state.is_loading = False
            self._state.phase = ChatPhase.ERROR if self._state.error else ChatPhase.READY
        self._notify()

    def _history_before(self, message: Message) -> list[Message]:
        """Messages preceding the given one."""
        history = []
        for msg in self._state.messages:
            if msg.id == message.id:
                break
            history.append(msg)
        return history

    async def _run_turn(
        self,
        generation: int,
        placeholder: Message,
        history: Sequence[Message],
        text: str
    ) -> None:
        adapter = self._adapter
        if adapter is None:
            self._apply(placeholder.id, StreamEvent.failure(
                self._config_error or f"{self._config.name} chat is not initialized."
            ))
            return

        try:
            events = adapter.start(history, text)
            async with aclosing(events):
                async for event in events:
                    if generation != self._generation:
                        logger.debug("%s: dropping stream of a reset conversation", self._config.name)
                        return
                    self._apply(placeholder.id, event)
        except Exception as e:
            logger.exception("%s: stream failed", self._config.name)
            if generation == self._generation:
                message = str(e) or f"Failed to get response from {self._config.name}."
                self._apply(placeholder.id, StreamEvent.failure(message))

    def _apply(self, message_id: str, event: StreamEvent) -> None:
        """Fold one stream event into the message with the given id."""
        message = self._state.find(message_id)

        if event.error_message is not None:
            self._state.error = event.error_message
            if message is not None:
                message.error = event.error_message
                message.is_loading = False
            self._notify()
            return

        if message is None:
            return
        if event.text_delta:
            message.text += event.text_delta
        if event.grounding_sources is not None:
            message.grounding_sources = list(event.grounding_sources)
        if event.is_final:
            message.is_loading = False
        self._notify()

    async def close(self) -> None:
        """Close the backend session."""
        if self._adapter is not None:
            await self._adapter.close()
            self._adapter = None
