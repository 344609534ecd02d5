"""User-facing output sinks.

The core never prints directly; every public operation takes an ``Output``
with an informational channel and an error channel.
"""

from abc import ABC, abstractmethod

from rich.console import Console
from rich.markup import escape


class Output(ABC):
    """Line-oriented output sink with an informational and an error channel."""

    @abstractmethod
    def log(self, message: str) -> None:
        """Write an informational line."""
        ...

    @abstractmethod
    def error(self, message: str) -> None:
        """Write an error line."""
        ...


class ConsoleOutput(Output):
    """Output sink backed by rich consoles (stdout for log, stderr for error)."""

    def __init__(self, console: Console | None = None, error_console: Console | None = None):
        self.console = console or Console()
        self.error_console = error_console or Console(stderr=True)

    def log(self, message: str) -> None:
        self.console.print(escape(message), soft_wrap=True)

    def error(self, message: str) -> None:
        self.error_console.print(f"[red]{escape(message)}[/red]", soft_wrap=True)
