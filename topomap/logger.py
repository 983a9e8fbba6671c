"""
Pluggable log sink used by the scanning pipeline.

Any object with debug/info/warning/error methods taking a message string can
be handed to the pipeline. ConsoleLogger is the default and prints to stderr
through rich.
"""
from enum import IntEnum
from typing import List, Optional, Tuple

from rich.console import Console
from rich.markup import escape


class Verbosity(IntEnum):
    LOW    = 0   # errors only
    MEDIUM = 1   # errors and warnings
    HIGH   = 2   # everything


class Logger:
    """Base sink. Discards everything; subclass and override what you need."""

    def debug(self, msg: str) -> None:
        pass

    def info(self, msg: str) -> None:
        pass

    def warning(self, msg: str) -> None:
        pass

    def error(self, msg: str) -> None:
        pass


class ConsoleLogger(Logger):
    def __init__(
        self,
        verbosity: Verbosity = Verbosity.MEDIUM,
        console: Optional[Console] = None,
    ):
        self.verbosity = verbosity
        self.console = console or Console(stderr=True)

    def debug(self, msg: str) -> None:
        if self.verbosity >= Verbosity.HIGH:
            self.console.print(f"[dim]Debug:[/dim] {escape(msg)}")

    def info(self, msg: str) -> None:
        if self.verbosity >= Verbosity.HIGH:
            self.console.print(f"[cyan]Info:[/cyan] {escape(msg)}")

    def warning(self, msg: str) -> None:
        if self.verbosity >= Verbosity.MEDIUM:
            self.console.print(f"[yellow]Warning:[/yellow] {escape(msg)}")

    def error(self, msg: str) -> None:
        self.console.print(f"[red]Error:[/red] {escape(msg)}")


class RecordingLogger(Logger):
    """Keeps (level, message) pairs in memory. Handy in tests and embedding."""

    def __init__(self):
        self.records: List[Tuple[str, str]] = []

    def debug(self, msg: str) -> None:
        self.records.append(("debug", msg))

    def info(self, msg: str) -> None:
        self.records.append(("info", msg))

    def warning(self, msg: str) -> None:
        self.records.append(("warning", msg))

    def error(self, msg: str) -> None:
        self.records.append(("error", msg))

    def messages(self, level: str) -> List[str]:
        return [m for lvl, m in self.records if lvl == level]
