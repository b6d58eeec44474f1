"""
cli — Typer CLI entry-point for etwscan.

Commands:
    scan      Live kernel or crash dump through DbgEng
    replay    Frozen JSON snapshot
    loggers   Logger contexts only
    layouts   Built-in layout profiles
"""

from .app import app, main

__all__ = ["app", "main"]
