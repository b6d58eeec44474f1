"""
core.log — Structured logging for etwscan.

Provides a ``console`` (rich.Console) shared across all modules, plus
``TraceLog``: the small facade each scanner component receives instead
of writing to a global.
"""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.markup import escape

console = Console(stderr=True)


class TraceLog:
    """
    Diagnostic sink bound to a module name.

    ``debug`` output is only emitted when *enabled* is set; ``info``,
    ``warn`` and ``error`` always go to the console.  Nothing here
    raises, and nothing returns a value callers could branch on.
    """

    def __init__(
        self,
        module: str = "etwscan",
        *,
        enabled: bool = False,
        out: Optional[Console] = None,
    ) -> None:
        self.module = module
        self.enabled = enabled
        self.out = out or console

    def bind(self, module: str) -> "TraceLog":
        """Return a logger for a sub-module sharing this one's settings."""
        return TraceLog(module, enabled=self.enabled, out=self.out)

    def debug(self, msg: str) -> None:
        if self.enabled:
            self.out.print(f"[dim]\\[{self.module}] {escape(msg)}[/]", highlight=False)

    def info(self, msg: str) -> None:
        self.out.print(f"[{self.module}] {msg}", highlight=False, markup=False)

    def warn(self, msg: str) -> None:
        self.out.print(f"[yellow]\\[{self.module}] {escape(msg)}[/]", highlight=False)

    def error(self, msg: str) -> None:
        self.out.print(f"[red]\\[{self.module}] {escape(msg)}[/]", highlight=False)
