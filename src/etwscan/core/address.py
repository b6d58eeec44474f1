"""
core.address — Exact 64-bit kernel addresses.

Kernel pointers live in the upper half of the 64-bit space, well past
the range a float can represent exactly, so every address handled by
etwscan goes through ``Address`` (an ``int`` subclass) and compares by
plain integer equality.
"""

from __future__ import annotations

import re
from typing import Union

_MASK64 = (1 << 64) - 1

# ``ffffe001`23456789`` is how the debugger groups 64-bit values.
_HEX_RE = re.compile(r"^(?:0x)?([0-9a-f`]+)$", re.IGNORECASE)
_DEC_RE = re.compile(r"^(?:0n)?(\d+)$")


class Address(int):
    """An unsigned 64-bit target address."""

    def __new__(cls, value: int = 0) -> "Address":
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Address requires an int, got {type(value).__name__}")
        if value < 0 or value > _MASK64:
            raise ValueError(f"address out of 64-bit range: {value:#x}")
        return super().__new__(cls, value)

    @property
    def is_null(self) -> bool:
        return int(self) == 0

    def add(self, offset: int) -> "Address":
        """Return ``self + offset`` wrapped to 64 bits."""
        return Address((int(self) + offset) & _MASK64)

    def __repr__(self) -> str:
        return f"Address(0x{int(self):016x})"

    def __str__(self) -> str:
        return f"0x{int(self):016x}"

    def __format__(self, spec: str) -> str:
        if not spec:
            return str(self)
        return format(int(self), spec)


NULL = Address(0)

AddressLike = Union[Address, int, str]


def to_address(value: AddressLike) -> Address:
    """
    Convert an int or debugger-style string into an ``Address``.

    Strings are hex unless prefixed with ``0n`` (the debugger's decimal
    marker).  ``0x`` prefixes and back-tick separators are accepted.
    Floats are rejected outright.
    """
    if isinstance(value, Address):
        return value
    if isinstance(value, float):
        raise TypeError("addresses must not be floats")
    if isinstance(value, int) and not isinstance(value, bool):
        return Address(value)
    if not isinstance(value, str):
        raise TypeError(f"cannot convert {type(value).__name__} to Address")

    text = value.strip()
    dec = _DEC_RE.match(text)
    if dec and text.lower().startswith("0n"):
        return Address(int(dec.group(1)))
    m = _HEX_RE.match(text)
    if not m:
        raise ValueError(f"not an address: {value!r}")
    return Address(int(m.group(1).replace("`", ""), 16))
