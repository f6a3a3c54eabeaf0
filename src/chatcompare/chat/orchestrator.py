"""Orchestrator.

Fans one user submission out to every column and derives the global
flags the input bar depends on.
"""

import asyncio
import logging
import re
from collections.abc import Callable
from typing import Any

from ..config import AppSettings, KeyStore
from ..llm import create_stream_adapter
from ..models import ModelConfig, ModelType
from .column import ClearMessages, ColumnController, SendMessage
from .engine import AdapterFactory

logger = logging.getLogger(__name__)

BusyListener = Callable[[bool], None]

_API_KEY_WORDS = re.compile(r"\bAPI KEY\b", re.IGNORECASE)


def key_display_name(api_key_name: str) -> str:
    """Human-readable name of an API key: GEMINI_API_KEY -> 'GEMINI API Key'."""
    return _API_KEY_WORDS.sub("API Key", api_key_name.replace("_", " "))


class Orchestrator:
    """Owns the columns and the key store.

    Usage:
        async with Orchestrator(load_settings()) as orchestrator:
            await orchestrator.send_all("Hello")
            for column in orchestrator.columns:
                print(column.messages[-1].text)
    """

    def __init__(
        self,
        settings: AppSettings,
        adapter_factory: AdapterFactory = create_stream_adapter,
        **adapter_options: Any
    ) -> None:
        """Initialize columns from explicit settings.

        Args:
            settings: Model configurations and API keys
            adapter_factory: Passed to every column's chat session
            **adapter_options: Passed through to the adapter factory
        """
        self._keys: KeyStore = settings.key_store()
        self._loading: dict[str, bool] = {}
        self._busy_listeners: list[BusyListener] = []
        self._columns: dict[str, ColumnController] = {}
        self._started = False

        for config in settings.model_configs:
            if config.id in self._columns:
                raise ValueError(f"Duplicate column id: {config.id}")
            self._loading[config.id] = False
            self._columns[config.id] = ColumnController(
                config,
                api_key=self._keys.get(config.api_key_name),
                on_loading_change=self._handle_loading_change,
                adapter_factory=adapter_factory,
                **adapter_options,
            )

    @property
    def columns(self) -> list[ColumnController]:
        return list(self._columns.values())

    @property
    def configs(self) -> list[ModelConfig]:
        return [column.config for column in self._columns.values()]

    @property
    def keys(self) -> KeyStore:
        return self._keys

    def column(self, column_id: str) -> ColumnController:
        return self._columns[column_id]

    def missing_keys(self) -> dict[str, str]:
        """Missing API keys in column order: key name -> display name."""
        missing: dict[str, str] = {}
        for config in self.configs:
            if not self._keys.has(config.api_key_name):
                missing.setdefault(config.api_key_name, key_display_name(config.api_key_name))
        return missing

    def missing_key_names(self) -> list[str]:
        """Deduplicated human-readable names of missing keys."""
        return list(self.missing_keys().values())

    @property
    def all_keys_missing(self) -> bool:
        """True when no column has its key; the shared input is disabled."""
        return all(not self._keys.has(config.api_key_name) for config in self.configs)

    @property
    def any_busy(self) -> bool:
        """True while any column is loading; sending is disabled."""
        return any(self._loading.values())

    @property
    def gemini_search_enabled(self) -> bool:
        return any(c.search_active for c in self.configs)

    @property
    def gemini_search_available(self) -> bool:
        """True when a Gemini column exists and has its key."""
        return any(
            c.model_type == ModelType.GEMINI and self._keys.has(c.api_key_name)
            for c in self.configs
        )

    def add_busy_listener(self, listener: BusyListener) -> None:
        """Register a callback for any_busy changes."""
        self._busy_listeners.append(listener)

    def _handle_loading_change(self, column_id: str, is_loading: bool) -> None:
        was_busy = self.any_busy
        self._loading[column_id] = is_loading
        busy = self.any_busy
        if busy != was_busy:
            logger.debug("busy=%s", busy)
            for listener in list(self._busy_listeners):
                listener(busy)

    async def start(self) -> None:
        """Configure every column and start its mailbox loop."""
        if self._started:
            return
        self._started = True
        for column in self._columns.values():
            await column.start()

    async def stop(self) -> None:
        """Stop every column and close its backend session."""
        self._started = False
        for column in self._columns.values():
            await column.stop()

    async def join(self) -> None:
        """Wait until every column has finished its queued work."""
        await asyncio.gather(*(column.join() for column in self._columns.values()))

    def broadcast(self, text: str) -> None:
        """Post the message to every column.

        Columns without a key are not skipped: each reports its own error.
        """
        logger.info("broadcasting to %d columns", len(self._columns))
        for column in self._columns.values():
            column.post(SendMessage(text))

    async def send_all(self, text: str) -> None:
        """Broadcast a message and wait for every column to finish."""
        self.broadcast(text)
        await self.join()

    def clear_all(self) -> None:
        """Post a clear command to every column."""
        for column in self._columns.values():
            column.post(ClearMessages())

    async def set_api_key(self, name: str, value: str | None) -> None:
        """Store a key and reconfigure the columns that use it."""
        self._keys.set(name, value)
        for column in self._columns.values():
            if column.config.api_key_name == name:
                await column.update(column.config, self._keys.get(name))

    async def set_search_enabled(self, enabled: bool) -> None:
        """Toggle Google Search on every Gemini column.

        Each affected column starts a new conversation.
        """
        for column in self._columns.values():
            if column.config.model_type != ModelType.GEMINI:
                continue
            await column.update(column.config.with_search(enabled), column.api_key)

    async def __aenter__(self) -> "Orchestrator":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()
