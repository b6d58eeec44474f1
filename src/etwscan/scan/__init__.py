"""
scan — Structure walking and identity resolution.

    layouts     Version-specific type names and ``_EPROCESS`` offset candidates
    walker      Bounded ``LIST_ENTRY`` traversal
    resolver    Strategy chain turning a process object into a PID/image
    session     One logger context → ``SessionReport``
    directory   ``!wmitrace.strdump`` → logger triples
    driver      All logger contexts → ``AggregateReport``
"""

from .directory import STRDUMP_COMMAND, LoggerRef, list_loggers, parse_strdump
from .driver import EtwConsumerScan, enumerate_all
from .layouts import (
    DEFAULT_LAYOUT,
    LAYOUTS,
    LayoutProfile,
    get_layout,
    layout_from_config,
    list_layouts,
    load_layout_file,
)
from .resolver import CommandProbe, IdentityResolver, OffsetProbe, parse_process_output
from .session import SessionScanner
from .walker import ListWalker

__all__ = [
    "STRDUMP_COMMAND",
    "LoggerRef",
    "list_loggers",
    "parse_strdump",
    "EtwConsumerScan",
    "enumerate_all",
    "DEFAULT_LAYOUT",
    "LAYOUTS",
    "LayoutProfile",
    "get_layout",
    "layout_from_config",
    "list_layouts",
    "load_layout_file",
    "CommandProbe",
    "IdentityResolver",
    "OffsetProbe",
    "parse_process_output",
    "SessionScanner",
    "ListWalker",
]
