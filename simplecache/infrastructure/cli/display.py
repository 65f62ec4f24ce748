import logging
from typing import Any, Mapping, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from simplecache.domain.interfaces.user_interface import UserInterface

logger = logging.getLogger(__name__)

MISS_MARKUP = "[dim italic](miss)[/dim italic]"


def _render_bytes(value: bytes) -> Text:
    """Shows UTF-8 payloads as text and anything else as a hex preview."""
    try:
        return Text(value.decode("utf-8"))
    except UnicodeDecodeError:
        preview = value[:32].hex()
        suffix = "..." if len(value) > 32 else ""
        return Text(f"<{len(value)} bytes: {preview}{suffix}>", style="magenta")


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self.console = console or Console()

    def display_value(self, key: str, value: Optional[bytes], **kwargs: Any) -> None:
        """Prints a single value; misses are shown as a dim marker."""
        if value is None:
            logger.debug(f"display_value: miss for key {key[:32]}")
            self.console.print(MISS_MARKUP)
            return
        self.console.print(_render_bytes(value))

    def display_mapping(self, values: Mapping[str, Optional[bytes]], **kwargs: Any) -> None:
        """Prints key/value results as a table in input order."""
        table = Table(title=kwargs.get("title"), show_lines=False)
        table.add_column("Key", style="bold cyan", no_wrap=True)
        table.add_column("Value")
        for key, value in values.items():
            table.add_row(Text(key), MISS_MARKUP if value is None else _render_bytes(value))
        self.console.print(table)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {escape(error_message)}")

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        self.console.print(f"[yellow]Warning:[/yellow] {escape(warning_message)}")

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        self.console.print(f"[blue]Info:[/blue] {escape(info_message)}")
