"""
scan.resolver — Recover a PID and image name from a process object.

There is no single authoritative source for a process object's identity
when inspecting raw kernel memory, so resolution is an ordered chain of
strategies.  Each strategy is a callable ``(address) -> ProcessIdentity |
None``; the first identity with a PID wins, and exhausting the chain
yields the ``Unresolved`` sentinel rather than an error.

Built-in strategies:

``CommandProbe``
    Runs ``!process <addr> 0`` and scrapes ``Cid:`` / ``Image:`` tokens.
``OffsetProbe``
    Reads ``UniqueProcessId`` / ``ImageFileName`` at the layout's
    candidate offsets, accepting the first plausible value.
"""

from __future__ import annotations

import re
from typing import Callable, Dict, List, Optional

from ..core.address import Address
from ..core.log import TraceLog
from ..core.models import UNKNOWN_IMAGE, ProcessIdentity, ResolutionSource
from ..target.port import MemoryPort, MemoryReadError
from .layouts import LayoutProfile

Strategy = Callable[[Address], Optional[ProcessIdentity]]

_PROCESS_RE = re.compile(r"^\s*PROCESS\s+([0-9a-fA-F`]+)")
_CID_RE = re.compile(r"(?<![A-Za-z])Cid:\s+([0-9a-fA-F]+)")
_IMAGE_RE = re.compile(r"Image:\s+(.+)")


def parse_process_output(lines: List[str]) -> tuple[int, str]:
    """
    Extract ``(pid, image_name)`` from ``!process`` output.

    The ``Cid:`` token is accepted on the ``PROCESS`` header line or any
    line after it; ``ParentCid:`` is ignored.  Missing tokens give
    ``0`` / ``"Unknown"``.
    """
    pid = 0
    image = UNKNOWN_IMAGE
    in_block = False
    for line in lines:
        if _PROCESS_RE.match(line):
            if in_block and pid:
                break
            in_block = True
        if not in_block:
            continue
        if not pid:
            cid = _CID_RE.search(line)
            if cid:
                pid = int(cid.group(1), 16)
        img = _IMAGE_RE.search(line)
        if img and img.group(1).strip():
            image = img.group(1).strip()
    return pid, image


class CommandProbe:
    """Structured-command strategy: ``!process <addr> 0``."""

    name = "command"

    def __init__(self, port: MemoryPort, *, log: Optional[TraceLog] = None) -> None:
        self.port = port
        self.log = (log or TraceLog()).bind("resolver.command")

    def __call__(self, address: Address) -> Optional[ProcessIdentity]:
        lines = self.port.execute_command(f"!process {int(address):x} 0")
        pid, image = parse_process_output(lines)
        if pid <= 0:
            self.log.debug(f"no Cid in !process output for {address}")
            return None
        return ProcessIdentity(
            pid=pid,
            image_name=image,
            resolution_source=ResolutionSource.COMMAND_BASED,
        )


class OffsetProbe:
    """Direct-read strategy over the layout's candidate ``_EPROCESS`` offsets."""

    name = "offsets"

    def __init__(
        self,
        port: MemoryPort,
        layout: LayoutProfile,
        *,
        log: Optional[TraceLog] = None,
    ) -> None:
        self.port = port
        self.layout = layout
        self.log = (log or TraceLog()).bind("resolver.offsets")

    def probe_pid(self, address: Address) -> int:
        for offset in self.layout.pid_offsets:
            try:
                value = self.port.read_words(address.add(offset), 1, 8)[0]
            except MemoryReadError:
                continue
            if 0 < value < self.layout.pid_ceiling:
                self.log.debug(f"PID {value} at +0x{offset:x}")
                return value
        return 0

    def probe_image_name(self, address: Address) -> str:
        for offset in self.layout.image_name_offsets:
            try:
                raw = self.port.read_bytes(address.add(offset), self.layout.image_name_length)
            except MemoryReadError:
                continue
            name = raw.split(b"\x00", 1)[0].decode("latin-1")
            if name:
                self.log.debug(f"image '{name}' at +0x{offset:x}")
                return name
        return ""

    def __call__(self, address: Address) -> Optional[ProcessIdentity]:
        pid = self.probe_pid(address)
        if not pid:
            return None
        return ProcessIdentity(
            pid=pid,
            image_name=self.probe_image_name(address) or UNKNOWN_IMAGE,
            resolution_source=ResolutionSource.DIRECT_OFFSET_PROBE,
        )


class IdentityResolver:
    """Try each strategy in order; cache results per process object."""

    def __init__(self, strategies: List[Strategy], *, log: Optional[TraceLog] = None) -> None:
        self.strategies = list(strategies)
        self.log = (log or TraceLog()).bind("resolver")
        self._cache: Dict[int, ProcessIdentity] = {}

    @classmethod
    def default(
        cls,
        port: MemoryPort,
        layout: LayoutProfile,
        *,
        log: Optional[TraceLog] = None,
    ) -> IdentityResolver:
        log = log or TraceLog()
        return cls([CommandProbe(port, log=log), OffsetProbe(port, layout, log=log)], log=log)

    def append(self, strategy: Strategy) -> None:
        self.strategies.append(strategy)

    def resolve(self, address: Address) -> ProcessIdentity:
        key = int(address)
        if key in self._cache:
            return self._cache[key].model_copy()

        identity = ProcessIdentity.unresolved()
        if key:
            for strategy in self.strategies:
                label = getattr(strategy, "name", repr(strategy))
                try:
                    found = strategy(Address(key))
                except Exception as exc:
                    self.log.warn(f"{label} strategy failed for {Address(key)}: {exc}")
                    continue
                if found is not None and found.pid > 0:
                    identity = found
                    break
        else:
            self.log.debug("null process object")

        if not identity.resolved:
            self.log.debug(f"could not resolve {Address(key)}")
        self._cache[key] = identity
        return identity.model_copy()
