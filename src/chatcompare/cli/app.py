"""Main CLI application using Typer."""
import asyncio

import typer
from dotenv import load_dotenv
from rich.console import Console, Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..chat import ColumnController, Orchestrator
from ..models import MessageRole
from .providers import get_settings, setup_console_logging

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="chatcompare",
    help="Send one prompt to several LLMs and compare the streamed answers side by side",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


def _column_panel(column: ColumnController) -> Panel:
    """Render a column's latest answer, its sources and any error."""
    reply = next(
        (msg for msg in reversed(column.messages) if msg.role == MessageRole.MODEL),
        None,
    )
    parts = []
    if reply is not None and reply.text:
        parts.append(Markdown(reply.text))
    if reply is not None and reply.grounding_sources:
        sources = Text("\nSources:\n", style="bold")
        for source in reply.grounding_sources:
            sources.append(f"  - {source.title or source.uri} ({source.uri})\n", style="dim")
        parts.append(sources)
    error = (reply.error if reply is not None else None) or column.error
    if error:
        parts.append(Text(f"Error: {error}", style="red"))
    if not parts:
        parts.append(Text("(no response)", style="dim"))

    return Panel(
        Group(*parts),
        title=f"[bold]{column.config.name}[/bold] [dim]{column.config.model_name_api}[/dim]",
        subtitle=column.system_note,
        border_style="red" if error else "cyan",
    )


@app.command(name="tui")
def tui_command(
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Show log panel with level: debug (all), info, warning, or error"
    ),
):
    """Launch the side-by-side chat interface."""
    async def _tui():
        from ..ui import run_textual_tui

        settings = get_settings(console, warn_missing=False)
        await run_textual_tui(settings, log_level=log_level)

    try:
        asyncio.run(_tui())
    except KeyboardInterrupt:
        pass
    console.print("[dim]Goodbye![/dim]")


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Message to send to every column"),
    search: bool = typer.Option(
        False,
        "--search",
        "-s",
        help="Enable Google Search grounding on Gemini columns"
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Console log level: debug, info, warning, or error"
    ),
):
    """Send one prompt to every column and print the answers."""
    async def _ask() -> bool:
        settings = get_settings(console)
        setup_console_logging(settings, log_level)

        async with Orchestrator(settings) as orchestrator:
            if search:
                await orchestrator.set_search_enabled(True)
            with console.status("[dim]Waiting for responses...[/dim]"):
                await orchestrator.send_all(prompt)

            failed = 0
            for column in orchestrator.columns:
                console.print(_column_panel(column))
                if column.error:
                    failed += 1
            return failed == len(orchestrator.columns)

    try:
        all_failed = asyncio.run(_ask())
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    if all_failed:
        raise typer.Exit(code=1)


@app.command()
def models():
    """Show the configured columns and their API-key status."""
    settings = get_settings(console, warn_missing=False)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Column", style="cyan")
    table.add_column("Type", style="yellow")
    table.add_column("Model")
    table.add_column("API Key", width=28)
    table.add_column("Note", style="dim")

    for config in settings.model_configs:
        if config.api_key_name in settings.api_keys:
            key_status = f"[green]{config.api_key_name}[/green]"
        else:
            key_status = f"[red]{config.api_key_name} (missing)[/red]"
        table.add_row(
            config.name,
            config.model_type.value,
            config.model_name_api,
            key_status,
            config.system_note() or "",
        )

    console.print(table)


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
