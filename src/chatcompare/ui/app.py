"""Main Textual TUI application.

Lays out one column per model and wires the shared input bar, the key
banner and the search toggle to the orchestrator.
"""

import asyncio
import logging

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Footer, Header

from ..chat import Orchestrator
from ..config import AppSettings
from ..logs import attach_sink, detach_sink
from ..models import ModelType
from .config import LogLevel
from .styles import APP_CSS
from .widgets import ApiKeyBanner, ChatColumnView, ChatInputBar, DebugPanel, SearchToggle

logger = logging.getLogger(__name__)


class ChatCompareTextualApp(App):
    """Textual TUI sending one prompt to every configured model."""

    CSS = APP_CSS
    TITLE = "chatcompare"
    SUB_TITLE = "Gemini & AI Chat Compare"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        Binding("ctrl+k", "clear_chat", "Clear Chats"),
        Binding("ctrl+d", "toggle_debug", "Log"),
    ]

    def __init__(
        self,
        orchestrator: Orchestrator,
        log_level: str | None = None,
    ) -> None:
        super().__init__()
        self._orchestrator = orchestrator
        self._log_level = log_level
        self._log_handler = None

    @property
    def orchestrator(self) -> Orchestrator:
        return self._orchestrator

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield ApiKeyBanner(id="key-banner")
        if any(c.model_type == ModelType.GEMINI for c in self._orchestrator.configs):
            yield SearchToggle(self._orchestrator.gemini_search_enabled, id="search-toggle")
        with Horizontal(id="columns"):
            for column in self._orchestrator.columns:
                yield ChatColumnView(column, id=f"column-{column.id}")
        yield DebugPanel(
            id="debug-panel",
            log_level=LogLevel.from_string(self._log_level or "debug"),
            visible=self._log_level is not None,
        )
        yield ChatInputBar(id="chat-input-bar")
        yield Footer()

    async def on_mount(self) -> None:
        """Start the orchestrator and sync the global controls."""
        self.theme = "catppuccin-mocha"

        log_panel = self.query_one("#debug-panel", DebugPanel)
        self._log_handler = attach_sink(log_panel.record, self._log_level or "DEBUG")

        self._orchestrator.add_busy_listener(self._on_busy_change)
        await self._orchestrator.start()
        self._refresh_controls()
        logger.info("started with %d columns", len(self._orchestrator.columns))

    async def on_unmount(self) -> None:
        """Stop columns and restore logging."""
        await self._orchestrator.stop()
        if self._log_handler is not None:
            detach_sink(self._log_handler)
            self._log_handler = None

    def _on_busy_change(self, busy: bool) -> None:
        self.query_one("#chat-input-bar", ChatInputBar).set_busy(busy)

    def _refresh_controls(self) -> None:
        orchestrator = self._orchestrator
        self.query_one("#key-banner", ApiKeyBanner).set_missing(orchestrator.missing_keys())
        for toggle in self.query(SearchToggle):
            toggle.set_available(orchestrator.gemini_search_available)
        input_bar = self.query_one("#chat-input-bar", ChatInputBar)
        input_bar.set_input_enabled(not orchestrator.all_keys_missing)
        input_bar.set_busy(orchestrator.any_busy)

    def on_chat_input_bar_submitted(self, event: ChatInputBar.Submitted) -> None:
        """Fan the submission out to every column."""
        if self._orchestrator.any_busy:
            self.notify("Still waiting for responses", severity="warning", timeout=2)
            return
        self._orchestrator.broadcast(event.value)

    async def on_api_key_banner_key_submitted(self, event: ApiKeyBanner.KeySubmitted) -> None:
        """Store a key entered in the banner and reconfigure its columns."""
        await self._orchestrator.set_api_key(event.key_name, event.value)
        self._refresh_controls()
        self.notify(f"{event.key_name} set", timeout=2)

    async def on_search_toggle_toggled(self, event: SearchToggle.Toggled) -> None:
        """Switch Gemini columns in or out of search mode (new conversation)."""
        await self._orchestrator.set_search_enabled(event.enabled)
        self._refresh_controls()

    def action_clear_chat(self) -> None:
        """Clear every column's messages."""
        self._orchestrator.clear_all()
        self.notify("Chats cleared", timeout=2)

    def action_toggle_debug(self) -> None:
        """Toggle the log panel visibility."""
        log_panel = self.query_one("#debug-panel", DebugPanel)
        is_visible = log_panel.toggle()
        self.notify(f"Log panel {'shown' if is_visible else 'hidden'}", timeout=2)


async def run_textual_tui(settings: AppSettings, log_level: str | None = None) -> None:
    """Run the Textual TUI.

    Args:
        settings: Model configurations and API keys
        log_level: Log level for panel (debug/info/warning/error), None to hide
    """
    app = ChatCompareTextualApp(Orchestrator(settings), log_level=log_level)
    try:
        await app.run_async()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
