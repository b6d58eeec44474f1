"""
etwscan — Enumerate ETW sessions and their real-time consumers from kernel memory.

Architecture:
    core/    Addresses, models, configuration, logging, report persistence
    target/  Memory access port (DbgEng via Pybag, JSON snapshots, ``dt`` parsing)
    scan/    Layout tables, list walker, identity resolver, session scanner,
             logger directory and the enumeration driver
    cli/     Typer CLI entry-points and rich rendering
"""

__version__ = "0.1.0"
