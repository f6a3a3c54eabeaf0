"""Settings factory functions for CLI.

Centralizes reading environment variables so command implementations only
ever see an explicit AppSettings object.
"""

import os

from rich.console import Console

from ..config import AppSettings, load_settings
from ..logs import configure_logging

# Default console for output
_console = Console()


def get_settings(console: Console | None = None, warn_missing: bool = True) -> AppSettings:
    """Create settings from environment variables.

    Args:
        console: Optional Rich console for warnings
        warn_missing: Print a warning for every column without a key

    Returns:
        AppSettings with the default columns and whatever keys are set

    Environment variables:
        GEMINI_API_KEY: Gemini API key
        OPENAI_COMPATIBLE_API_KEY: Key for the OpenAI-compatible endpoint
        CHATCOMPARE_LOG_LEVEL: Logging level (default: WARNING)
    """
    con = console or _console
    settings = load_settings(os.environ)
    for config in settings.model_configs:
        if warn_missing and config.api_key_name not in settings.api_keys:
            con.print(f"[yellow]Warning: {config.api_key_name} not set, {config.name} column will report an error[/yellow]")
    return settings


def setup_console_logging(settings: AppSettings, level: str | None = None) -> None:
    """Route package logs to stderr at the requested or configured level."""
    configure_logging(level or settings.log_level)
