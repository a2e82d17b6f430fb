"""Rich-based logging helpers shared across the reconciliation tools."""

from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from rich.theme import Theme
from rich.traceback import install

install(show_locals=False)

_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "approval": "bold magenta",
        "debug": "dim",
    }
)

# Analysis status -> theme style used when announcing a verdict.
STATUS_STYLES = {
    "success": "success",
    "warning": "warning",
    "requires_approval": "approval",
    "error": "error",
}

# stdout carries rendered plans and JSON payloads; stderr carries log chatter.
# Highlighting stays off so table and column names are never split by ANSI styles.
_stdout_console = Console(theme=_THEME, highlight=False)
_stderr_console = Console(stderr=True, theme=_THEME, highlight=False)


@dataclass(slots=True)
class Logger:
    """Lightweight logger facade backed by Rich consoles."""

    verbose: bool = False

    @property
    def console(self) -> Console:
        return _stdout_console

    def info(self, message: str) -> None:
        _stderr_console.print(message, style="info", markup=False)

    def success(self, message: str) -> None:
        _stderr_console.print(message, style="success", markup=False)

    def warning(self, message: str) -> None:
        _stderr_console.print(message, style="warning", markup=False)

    def error(self, message: str) -> None:
        _stderr_console.print(message, style="error", markup=False)

    def debug(self, message: str) -> None:
        if self.verbose:
            _stderr_console.print(message, style="debug", markup=False)

    def stage(self, name: str, message: str) -> None:
        """Debug line tagged with the pipeline stage that produced it."""
        self.debug(f"[{name}] {message}")

    def status(self, status: str, message: str) -> None:
        """Announce an analysis verdict using the style for its status."""
        style = STATUS_STYLES.get(status, "info")
        _stderr_console.print(message, style=style, markup=False)


def get_logger(verbose: bool = False) -> Logger:
    """Return a configured Logger instance."""
    return Logger(verbose=verbose)
