"""
target.dbgeng — Live kernel / crash-dump port through DbgEng (Pybag).

Commands go through ``dbg.cmd``; typed structures are materialised with
``dt <module>!<type> <address>`` and parsed by ``dt_parser``; raw words
come from ``dbg.read``.  Every Pybag or COM failure surfaces as
``MemoryReadError`` so the scanner's degradation rules apply uniformly.

Pybag is Windows-only and ships as the ``windbg`` extra; it is imported
when a port is opened, not when this module is imported.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional, Union

from ..core.address import Address
from ..core.log import TraceLog
from .dt_parser import parse_dt
from .port import MemoryPort, MemoryReadError, StructView


class DbgEngPort(MemoryPort):
    """``MemoryPort`` over an attached Pybag debugger object."""

    def __init__(self, dbg: Any, *, module: str = "nt", log: Optional[TraceLog] = None) -> None:
        self.dbg = dbg
        self.module = module
        self.log = (log or TraceLog()).bind("dbgeng")

    # ── Construction ─────────────────────────────────────────────────

    @classmethod
    def attach_kernel(cls, connection: str, **kwargs: Any) -> DbgEngPort:
        """Attach to a live kernel, e.g. ``"net:port=50000,key=1.2.3.4"``."""
        from pybag import KernelDbg

        dbg = KernelDbg()
        dbg.attach(connection)
        return cls(dbg, **kwargs)

    @classmethod
    def open_dump(cls, path: Union[str, Path], **kwargs: Any) -> DbgEngPort:
        """Open a kernel memory dump (the frozen-snapshot case)."""
        from pybag import CrashDbg

        dbg = CrashDbg()
        dbg.load_dump(str(path))
        return cls(dbg, **kwargs)

    # ── Port interface ───────────────────────────────────────────────

    def execute_command(self, command: str) -> List[str]:
        self.log.debug(f"cmd: {command}")
        try:
            out = self.dbg.cmd(command, quiet=True)
        except Exception as exc:
            raise MemoryReadError(f"command '{command}' failed: {exc}") from exc
        return (out or "").splitlines()

    def read_struct(self, address: Address, type_name: str) -> StructView:
        qualified = type_name if "!" in type_name else f"{self.module}!{type_name}"
        lines = self.execute_command(f"dt {qualified} 0x{int(address):x}")
        fields, offsets = parse_dt(lines)
        if not fields:
            raise MemoryReadError(f"dt {qualified} returned no fields", address)
        return StructView(Address(int(address)), type_name.split("!")[-1], fields, offsets)

    def read_words(self, address: Address, count: int, width: int) -> List[int]:
        self.check_width(width)
        size = count * width
        try:
            raw = bytes(self.dbg.read(int(address), size))
        except Exception as exc:
            raise MemoryReadError(f"read of {size} bytes failed: {exc}", address) from exc
        if len(raw) < size:
            raise MemoryReadError(f"short read ({len(raw)}/{size} bytes)", address)
        return [int.from_bytes(raw[i:i + width], "little") for i in range(0, size, width)]
