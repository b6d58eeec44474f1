"""
target — Read-only access to the inspected kernel.

    port        ``MemoryPort`` ABC, ``StructView``, ``MemoryReadError``
    dt_parser   Parser for ``dt`` structure dumps
    snapshot    ``SnapshotPort``: frozen in-memory / JSON-backed target
    dbgeng      ``DbgEngPort``: live kernel or crash dump via Pybag
"""

from .dbgeng import DbgEngPort
from .dt_parser import parse_dt
from .port import MemoryPort, MemoryReadError, StructView
from .snapshot import SnapshotPort

__all__ = [
    "DbgEngPort",
    "MemoryPort",
    "MemoryReadError",
    "SnapshotPort",
    "StructView",
    "parse_dt",
]
