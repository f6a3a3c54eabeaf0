"""Terminal UI module for chatcompare.

Provides a Textual-based TUI showing one chat column per model.

Module structure (Parnas principle - each module hides a design decision):
- widgets.py: Custom widgets (input history, column and message rendering, log panel)
- styles.py: CSS styling (layout decisions)
- config.py: Log levels and display constants
- app.py: Application orchestration (user interaction flow)
"""

from .app import ChatCompareTextualApp, run_textual_tui
from .config import LogLevel
from .widgets import ApiKeyBanner, ChatColumnView, ChatInputBar, DebugPanel, MessageView, SearchToggle

__all__ = [
    "ApiKeyBanner",
    "ChatColumnView",
    "ChatCompareTextualApp",
    "ChatInputBar",
    "DebugPanel",
    "LogLevel",
    "MessageView",
    "SearchToggle",
    "run_textual_tui",
]
