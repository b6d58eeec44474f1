"""
target.port — The read-only memory access port.

Everything the scanner knows about the inspected kernel arrives through a
``MemoryPort``: debugger commands, typed structure reads and raw word
reads.  Implementations live next to this module (``snapshot``,
``dbgeng``); tests build ``SnapshotPort`` fixtures directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..core.address import Address, AddressLike, to_address

_WORD_WIDTHS = (1, 2, 4, 8)


class MemoryReadError(Exception):
    """A target read or debugger command failed."""

    def __init__(self, message: str, address: Optional[int] = None) -> None:
        self.address = address
        if address is not None:
            message = f"{message} @ 0x{int(address):016x}"
        super().__init__(message)


@dataclass
class StructView:
    """
    Field accessor for one typed structure at an address.

    ``fields`` maps dotted paths (``"Consumers.Flink"``) to integer
    values; ``offsets`` maps top-level field names to byte offsets when
    the source reported them.
    """

    address: Address
    type_name: str
    fields: Dict[str, int] = field(default_factory=dict)
    offsets: Dict[str, int] = field(default_factory=dict)

    def field(self, path: str) -> int:
        try:
            return self.fields[path]
        except KeyError:
            raise MemoryReadError(
                f"{self.type_name} has no readable field '{path}'", self.address
            ) from None

    def pointer(self, path: str) -> Address:
        return to_address(self.field(path))

    def get(self, path: str, default: Optional[int] = None) -> Optional[int]:
        return self.fields.get(path, default)

    def __getitem__(self, path: str) -> int:
        return self.field(path)

    def __contains__(self, path: object) -> bool:
        return path in self.fields


class MemoryPort(ABC):
    """Abstract read-only view of the inspected target."""

    @abstractmethod
    def execute_command(self, command: str) -> List[str]:
        """Run a debugger command and return its output lines."""

    @abstractmethod
    def read_struct(self, address: Address, type_name: str) -> StructView:
        """Materialise *type_name* at *address*."""

    @abstractmethod
    def read_words(self, address: Address, count: int, width: int) -> List[int]:
        """Read *count* little-endian unsigned words of *width* bytes."""

    def to_address(self, value: AddressLike) -> Address:
        return to_address(value)

    # ── Conveniences built on read_words ─────────────────────────────

    def read_pointer(self, address: Address) -> Address:
        return Address(self.read_words(address, 1, 8)[0])

    def read_bytes(self, address: Address, count: int) -> bytes:
        return bytes(self.read_words(address, count, 1))

    @staticmethod
    def check_width(width: int) -> None:
        if width not in _WORD_WIDTHS:
            raise ValueError(f"unsupported word width: {width}")
