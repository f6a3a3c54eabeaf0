"""Custom Textual widgets for the TUI.

Hides widget implementation details:
- Input history management
- Per-column message rendering while responses stream in
- API-key entry and the search toggle
- Log rendering and level filtering
"""

from datetime import datetime

from rich.markdown import Markdown
from rich.style import Style
from rich.text import Text
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.message import Message as TextualMessage
from textual.widgets import Button, Input, Label, RichLog, Static, Switch, TextArea

from ..chat import ColumnController
from ..models import Message, MessageRole
from .config import INPUT_HISTORY_MAX_SIZE, LOG_MAX_MESSAGE_LENGTH, LOG_TIMESTAMP_FORMAT, WAITING_TEXT, LogLevel


class InputHistory:
    """Bounded list of submitted prompts with a browsing cursor."""

    def __init__(self, max_size: int = INPUT_HISTORY_MAX_SIZE) -> None:
        self._entries: list[str] = []
        self._max_size = max_size
        self._index: int | None = None

    def add(self, value: str) -> None:
        """Record a submission; consecutive duplicates are kept once."""
        if not self._entries or self._entries[-1] != value:
            self._entries.append(value)
            del self._entries[:-self._max_size]
        self._index = None

    def previous(self) -> str | None:
        """Step back; stays on the oldest entry."""
        if not self._entries:
            return None
        if self._index is None:
            self._index = len(self._entries) - 1
        elif self._index > 0:
            self._index -= 1
        return self._entries[self._index]

    def next(self) -> str:
        """Step forward; past the newest entry returns an empty draft."""
        if self._index is None or self._index >= len(self._entries) - 1:
            self._index = None
            return ""
        self._index += 1
        return self._entries[self._index]


class ChatInputBar(Horizontal):
    """Shared input for every column: TextArea plus Send button."""

    class Submitted(TextualMessage):
        """Posted with the stripped prompt when the user sends."""

        def __init__(self, value: str) -> None:
            super().__init__()
            self.value = value

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._history = InputHistory()
        self._busy = False
        self._enabled = True

    def compose(self):
        text_area = TextArea(id="chat-input", show_line_numbers=False)
        text_area.cursor_blink = False
        yield text_area
        yield Button("Send", id="send-btn", variant="success").with_tooltip(
            "Send to every column (Ctrl+J)"
        )

    @property
    def _text_area(self) -> TextArea:
        return self.query_one("#chat-input", TextArea)

    def on_mount(self) -> None:
        self._text_area.focus()
        self._text_area.highlight_cursor_line = False

    def set_busy(self, busy: bool) -> None:
        """Block sending (not typing) while any column is loading."""
        self._busy = busy
        self._sync_button()

    def set_input_enabled(self, enabled: bool) -> None:
        """Disable the whole input, e.g. when no column has an API key."""
        self._enabled = enabled
        self._text_area.disabled = not enabled
        self._sync_button()

    def _sync_button(self) -> None:
        self.query_one("#send-btn", Button).disabled = self._busy or not self._enabled

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send-btn":
            self._submit()

    def on_key(self, event) -> None:
        """Ctrl+J sends; Up/Down at the text edges browse history.

        Terminals do not report modifiers on Enter, so Ctrl+Enter is unusable.
        """
        text_area = self._text_area
        if event.key == "ctrl+j":
            self._submit()
        elif event.key == "up" and text_area.cursor_location == (0, 0):
            entry = self._history.previous()
            if entry is None:
                return
            text_area.text = entry
        elif event.key == "down" and text_area.cursor_location == text_area.document.end:
            text_area.text = self._history.next()
        else:
            return
        event.prevent_default()
        event.stop()

    def _submit(self) -> None:
        if self._busy or not self._enabled:
            return
        value = self._text_area.text.strip()
        if not value:
            return
        self._history.add(value)
        self._text_area.text = ""
        self.post_message(self.Submitted(value))

    def focus_input(self) -> None:
        """Focus the text input."""
        self._text_area.focus()


class MessageView(Vertical):
    """One message bubble, updated in place as its text streams in."""

    def __init__(self, message: Message, *args, **kwargs) -> None:
        role_class = "user-message" if message.role == MessageRole.USER else "model-message"
        super().__init__(*args, classes=role_class, **kwargs)
        self._message = message
        self._header = Static(classes="message-header")
        self._content = Static(classes="message-content")
        self._sources = Static(classes="message-sources")
        self._error = Static(classes="message-error")

    def compose(self):
        yield self._header
        yield self._content
        yield self._sources
        yield self._error

    def on_mount(self) -> None:
        self.refresh_message()

    def refresh_message(self) -> None:
        """Re-render from the underlying message."""
        msg = self._message
        if msg.role == MessageRole.USER:
            self._header.update("> You")
            self._content.update(Text(msg.text))
        else:
            self._header.update("< Model" + (" ..." if msg.is_loading else ""))
            self._content.update(Markdown(msg.text) if msg.text else Text(""))

        if msg.grounding_sources:
            lines = Text("Sources:\n", style="bold")
            for source in msg.grounding_sources:
                lines.append(f"  - {source.title or source.uri}\n", style=Style(link=source.uri))
            self._sources.update(lines)
            self._sources.display = True
        else:
            self._sources.display = False

        if msg.error:
            self._error.update(Text(f"Error: {msg.error}"))
            self._error.display = True
            self.add_class("-failed")
        else:
            self._error.display = False
            self.remove_class("-failed")


class ChatColumnView(Vertical):
    """Renders one column: title, system note, messages and error banner."""

    def __init__(self, column: ColumnController, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._column = column
        self._views: dict[str, MessageView] = {}

    @property
    def column(self) -> ColumnController:
        return self._column

    def compose(self):
        yield Static(classes="column-note")
        yield VerticalScroll(classes="column-messages")
        yield Static(WAITING_TEXT, classes="column-waiting")
        yield Static(classes="column-error")

    def on_mount(self) -> None:
        self._column.add_listener(self._on_change)
        self.refresh_column()

    def on_unmount(self) -> None:
        self._column.remove_listener(self._on_change)

    def _on_change(self, _session) -> None:
        self.refresh_column()

    def refresh_column(self) -> None:
        """Sync the widget tree with the column's conversation."""
        column = self._column
        config = column.config
        self.border_title = f"{config.name} {config.model_name_api}"
        self.border_subtitle = column.phase.value
        self.set_class(column.is_loading, "-loading")

        note = self.query_one(".column-note", Static)
        note.update(column.system_note or "")
        note.display = column.system_note is not None

        messages = column.messages
        scroll = self.query_one(".column-messages", VerticalScroll)
        current_ids = {msg.id for msg in messages}
        for message_id in list(self._views):
            if message_id not in current_ids:
                self._views.pop(message_id).remove()
        for msg in messages:
            view = self._views.get(msg.id)
            if view is None:
                view = MessageView(msg)
                self._views[msg.id] = view
                scroll.mount(view)
            elif view.is_mounted:
                view.refresh_message()
        scroll.scroll_end(animate=False)

        waiting = self.query_one(".column-waiting", Static)
        waiting.display = (
            column.is_loading
            and bool(messages)
            and messages[-1].role == MessageRole.USER
            and not column.session.state.loading_model_messages()
        )

        error = self.query_one(".column-error", Static)
        error.update(Text(f"Error: {column.error}") if column.error else "")
        error.display = column.error is not None


class ApiKeyBanner(Vertical):
    """Lists missing API keys with a password input for each."""

    BORDER_TITLE = "Missing API Keys"

    class KeySubmitted(TextualMessage):
        """Message sent when the user enters a key."""

        def __init__(self, key_name: str, value: str) -> None:
            super().__init__()
            self.key_name = key_name
            self.value = value

    def set_missing(self, missing: dict[str, str]) -> None:
        """Rebuild the banner for the given key name -> display name map."""
        self.remove_children()
        for key_name, display_name in missing.items():
            self.mount(Horizontal(
                Label(f"{display_name}:", classes="key-label"),
                Input(password=True, placeholder="Paste key and press Enter", name=key_name),
                classes="key-row",
            ))
        self.display = bool(missing)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        value = event.value.strip()
        if value and event.input.name:
            self.post_message(self.KeySubmitted(event.input.name, value))


class SearchToggle(Horizontal):
    """Switch enabling Google Search on Gemini columns."""

    class Toggled(TextualMessage):
        """Message sent when the switch changes."""

        def __init__(self, enabled: bool) -> None:
            super().__init__()
            self.enabled = enabled

    def __init__(self, enabled: bool = False, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._enabled = enabled

    def compose(self):
        yield Label("Enable Google Search for Gemini:", classes="toggle-label")
        yield Switch(value=self._enabled, id="search-switch")
        yield Label(classes="toggle-state")

    def on_mount(self) -> None:
        self._update_state(self._enabled)

    def set_available(self, available: bool) -> None:
        self.query_one("#search-switch", Switch).disabled = not available

    def _update_state(self, enabled: bool) -> None:
        state = self.query_one(".toggle-state", Label)
        state.update("Enabled" if enabled else "Disabled")
        state.set_class(enabled, "-enabled")

    def on_switch_changed(self, event: Switch.Changed) -> None:
        event.stop()
        self._enabled = event.value
        self._update_state(event.value)
        self.post_message(self.Toggled(event.value))


class DebugPanel(RichLog):
    """Log panel for real-time tracing with level filtering.

    Shows timestamped log records from all components.
    Hidden by default, shown with --log-level flag or toggled with Ctrl+D.
    """

    BORDER_TITLE = "Log"
    BORDER_SUBTITLE = "Trace log"

    def __init__(
        self, *args, log_level: int = LogLevel.DEBUG, visible: bool = False, **kwargs
    ) -> None:
        super().__init__(
            *args,
            markup=True,
            highlight=False,
            auto_scroll=True,
            wrap=False,
            **kwargs
        )
        self._log_level = log_level
        self._visible = visible

    @property
    def log_level(self) -> int:
        """Current log level threshold."""
        return self._log_level

    @log_level.setter
    def log_level(self, level: int) -> None:
        """Set log level threshold."""
        self._log_level = level
        self._update_subtitle()

    def _update_subtitle(self) -> None:
        if self.display:
            self.border_subtitle = f"Level: {LogLevel.name(self._log_level)}"
        else:
            self.border_subtitle = "Hidden"

    def on_mount(self) -> None:
        """Hidden unless created visible."""
        self.display = self._visible
        self._update_subtitle()

    def record(self, level: int, component: str, message: str) -> None:
        """Add a log entry if it meets the current level threshold.

        Args:
            level: Numeric logging level
            component: Component name (engine, openai_compatible, app, ...)
            message: Log message
        """
        if level < self._log_level:
            return

        timestamp = datetime.now().strftime(LOG_TIMESTAMP_FORMAT)
        level_colors = {
            LogLevel.DEBUG: "dim white",
            LogLevel.INFO: "cyan",
            LogLevel.WARNING: "yellow",
            LogLevel.ERROR: "red",
        }
        level_color = level_colors.get(min(level, LogLevel.ERROR), "white")
        if len(message) > LOG_MAX_MESSAGE_LENGTH:
            message = message[:LOG_MAX_MESSAGE_LENGTH] + "..."

        line = Text()
        line.append(f"{timestamp} ", style="dim")
        line.append(f"{LogLevel.name(level):<7} ", style=level_color)
        line.append(f"[{component}] ", style="magenta")
        line.append(message)
        self.write(line)

    def show(self) -> None:
        """Show the log panel."""
        self.display = True
        self._update_subtitle()

    def hide(self) -> None:
        """Hide the log panel."""
        self.display = False
        self.border_subtitle = "Hidden"

    def toggle(self) -> bool:
        """Toggle visibility. Returns new state."""
        if self.display:
            self.hide()
            return False
        self.show()
        return True
