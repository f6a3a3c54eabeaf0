"""Column controller.

Wraps one chat session with a stable identity. The owner talks to a column
through commands posted to its mailbox and hears back through a loading
callback; nothing reaches into the column imperatively.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..llm import create_stream_adapter
from ..models import Message, ModelConfig
from .engine import AdapterFactory, ChatSession, SessionListener
from .models import ChatPhase

logger = logging.getLogger(__name__)

LoadingCallback = Callable[[str, bool], None]


@dataclass(frozen=True)
class SendMessage:
    """Command: send a user message on the column's conversation."""

    text: str


@dataclass(frozen=True)
class ClearMessages:
    """Command: empty the column's message list."""


ColumnCommand = SendMessage | ClearMessages


class ColumnController:
    """One side-by-side chat column.

    Reports its loading flag to the owner exactly once per change, so an
    aggregator never recomputes on no-op updates.
    """

    def __init__(
        self,
        config: ModelConfig,
        api_key: str | None = None,
        on_loading_change: LoadingCallback | None = None,
        adapter_factory: AdapterFactory = create_stream_adapter,
        **adapter_options: Any
    ) -> None:
        self._api_key = api_key
        self._on_loading_change = on_loading_change
        self._session = ChatSession(config, adapter_factory=adapter_factory, **adapter_options)
        self._session.add_listener(self._on_session_change)
        self._last_loading = False
        self._mailbox: asyncio.Queue[ColumnCommand] = asyncio.Queue()
        self._sends: set[asyncio.Task] = set()
        self._runner: asyncio.Task | None = None

    @property
    def id(self) -> str:
        return self._session.config.id

    @property
    def config(self) -> ModelConfig:
        return self._session.config

    @property
    def api_key(self) -> str | None:
        return self._api_key

    @property
    def session(self) -> ChatSession:
        return self._session

    @property
    def messages(self) -> list[Message]:
        return self._session.messages

    @property
    def error(self) -> str | None:
        return self._session.error

    @property
    def phase(self) -> ChatPhase:
        return self._session.phase

    @property
    def is_loading(self) -> bool:
        return self._last_loading

    @property
    def system_note(self) -> str | None:
        """Display-only note: search status or truncated system instruction."""
        return self._session.config.system_note()

    def add_listener(self, listener: SessionListener) -> None:
        """Register a callback for every conversation state change."""
        self._session.add_listener(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        self._session.remove_listener(listener)

    def _on_session_change(self, session: ChatSession) -> None:
        loading = session.is_loading
        if loading == self._last_loading:
            return
        self._last_loading = loading
        if self._on_loading_change is not None:
            self._on_loading_change(self.id, loading)

    async def update(self, config: ModelConfig, api_key: str | None) -> ChatPhase:
        """Apply a new configuration or key; a change resets the conversation."""
        if config.id != self.id:
            raise ValueError(f"Column {self.id} cannot take config {config.id}")
        self._api_key = api_key
        return await self._session.configure(config, api_key)

    async def send_message_from_parent(self, text: str) -> None:
        """Send a message on this column's conversation."""
        await self._session.send(text)

    def clear_messages(self) -> None:
        """Empty the message list; configuration and session are kept."""
        self._session.clear()

    def post(self, command: ColumnCommand) -> None:
        """Queue a command for the column's mailbox loop."""
        self._mailbox.put_nowait(command)

    async def start(self) -> None:
        """Configure the conversation and start consuming commands."""
        await self._session.configure(self._session.config, self._api_key)
        if self._runner is None:
            self._runner = asyncio.create_task(self.run(), name=f"column-{self.id}")

    async def run(self) -> None:
        """Mailbox loop: each send runs as its own task."""
        while True:
            command = await self._mailbox.get()
            try:
                self._dispatch(command)
            finally:
                self._mailbox.task_done()

    def _dispatch(self, command: ColumnCommand) -> None:
        if isinstance(command, SendMessage):
            task = asyncio.create_task(self.send_message_from_parent(command.text))
            self._sends.add(task)
            task.add_done_callback(self._send_done)
        elif isinstance(command, ClearMessages):
            self.clear_messages()
        else:
            raise TypeError(f"Unknown column command: {command!r}")

    def _send_done(self, task: asyncio.Task) -> None:
        self._sends.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("%s: send failed", self.config.name, exc_info=task.exception())

    async def join(self) -> None:
        """Wait until every posted command has been handled and all sends finished."""
        await self._mailbox.join()
        while self._sends:
            await asyncio.gather(*list(self._sends), return_exceptions=True)

    async def stop(self) -> None:
        """Stop the mailbox loop, abandon in-flight sends and close the session."""
        tasks = list(self._sends)
        if self._runner is not None:
            tasks.append(self._runner)
            self._runner = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._session.close()
