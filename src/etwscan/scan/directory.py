"""
scan.directory — Discover active logger contexts.

``!wmitrace.strdump`` prints one line per tracing session::

    Logger Id 0x24 @ 0xFFFFC80FA1B2C000 Named 'EventLog-System'

This module runs that command through the port and turns the output
into ``LoggerRef`` triples for the enumeration driver.
"""

from __future__ import annotations

import re
from typing import Iterable, List, NamedTuple, Optional

from ..core.address import Address, to_address
from ..core.log import TraceLog
from ..target.port import MemoryPort, MemoryReadError

STRDUMP_COMMAND = "!wmitrace.strdump"

_LOGGER_RE = re.compile(
    r"Logger\s+Id\s+0x([0-9a-fA-F]+)\s+@\s+(0x[0-9a-fA-F`]+)\s+Named\s+'(.*)'"
)


class LoggerRef(NamedTuple):
    address: Address
    logger_id: int
    name: str


def parse_strdump(lines: Iterable[str]) -> List[LoggerRef]:
    """Parse ``!wmitrace.strdump`` output, keeping the listed order."""
    refs: List[LoggerRef] = []
    for line in lines:
        m = _LOGGER_RE.search(str(line))
        if m:
            refs.append(LoggerRef(to_address(m.group(2)), int(m.group(1), 16), m.group(3)))
    return refs


def list_loggers(port: MemoryPort, *, log: Optional[TraceLog] = None) -> List[LoggerRef]:
    """Return every logger the target reports; empty if the command fails."""
    log = (log or TraceLog()).bind("directory")
    try:
        lines = port.execute_command(STRDUMP_COMMAND)
    except MemoryReadError as exc:
        log.error(f"{STRDUMP_COMMAND} failed: {exc}")
        return []
    refs = parse_strdump(lines)
    for ref in refs:
        log.debug(f"found logger: {ref.name} (ID: {ref.logger_id}) at {ref.address}")
    if not refs:
        log.warn(f"{STRDUMP_COMMAND} listed no logger contexts")
    return refs
