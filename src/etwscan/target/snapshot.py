"""
target.snapshot — A frozen target held entirely in memory.

``SnapshotPort`` answers port calls from plain data: canned command
output, pre-parsed structures and mapped byte ranges.  It backs the
``replay`` CLI command (a JSON file captured from a real session) and
every test fixture.

JSON layout::

    {
      "commands": {"!wmitrace.strdump": ["line", ...]},
      "structs":  {"0xffff...": {"_WMI_LOGGER_CONTEXT": {"NumConsumers": 2,
                                                         "Consumers.Flink": "0x..."}}},
      "memory":   {"0xffff...": "00ff10..."}
    }
"""

from __future__ import annotations

import bisect
import json
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ..core.address import Address, to_address
from .port import MemoryPort, MemoryReadError, StructView


def _strip_module(type_name: str) -> str:
    return type_name.split("!", 1)[-1]


def _to_int(value: Union[int, str]) -> int:
    if isinstance(value, int):
        return value
    if value.strip().startswith("-"):
        return int(value, 0)
    return int(to_address(value))


class SnapshotPort(MemoryPort):
    """Read-only port over a captured snapshot."""

    def __init__(
        self,
        commands: Optional[Mapping[str, Union[str, List[str]]]] = None,
        structs: Optional[Mapping[Any, Mapping[str, Mapping[str, Union[int, str]]]]] = None,
        memory: Optional[Mapping[Any, Union[bytes, str]]] = None,
    ) -> None:
        self.stats: Counter = Counter()
        self._commands: Dict[str, List[str]] = {}
        self._structs: Dict[Tuple[int, str], Dict[str, int]] = {}
        self._regions: List[Tuple[int, bytes]] = []
        self._starts: List[int] = []

        for cmd, out in (commands or {}).items():
            self.add_command(cmd, out)
        for addr, types in (structs or {}).items():
            for type_name, fields in types.items():
                self.add_struct(addr, type_name, fields)
        for addr, data in (memory or {}).items():
            self.map_memory(addr, data)

    # ── Building ─────────────────────────────────────────────────────

    def add_command(self, command: str, output: Union[str, List[str]]) -> None:
        lines = output.splitlines() if isinstance(output, str) else list(output)
        self._commands[command.strip()] = lines

    def add_struct(
        self,
        address: Union[int, str],
        type_name: str,
        fields: Mapping[str, Union[int, str]],
    ) -> None:
        key = (_to_int(address), _strip_module(type_name))
        self._structs[key] = {name: _to_int(v) for name, v in fields.items()}

    def map_memory(self, address: Union[int, str], data: Union[bytes, str]) -> None:
        if isinstance(data, str):
            data = bytes.fromhex(data)
        start = _to_int(address)
        idx = bisect.bisect_right(self._starts, start)
        self._starts.insert(idx, start)
        self._regions.insert(idx, (start, bytes(data)))

    def map_qword(self, address: Union[int, str], value: int) -> None:
        """Map eight bytes holding *value* (fixture helper)."""
        self.map_memory(address, (value & ((1 << 64) - 1)).to_bytes(8, "little"))

    # ── Port interface ───────────────────────────────────────────────

    def execute_command(self, command: str) -> List[str]:
        self.stats["command"] += 1
        return list(self._commands.get(command.strip(), []))

    def read_struct(self, address: Address, type_name: str) -> StructView:
        self.stats["struct"] += 1
        key = (int(address), _strip_module(type_name))
        if key not in self._structs:
            raise MemoryReadError(f"no {key[1]} captured", address)
        return StructView(Address(int(address)), key[1], dict(self._structs[key]))

    def read_words(self, address: Address, count: int, width: int) -> List[int]:
        self.check_width(width)
        self.stats["read"] += 1
        raw = bytes(self._byte_at(int(address) + i) for i in range(count * width))
        return [
            int.from_bytes(raw[i:i + width], "little")
            for i in range(0, len(raw), width)
        ]

    def _byte_at(self, addr: int) -> int:
        idx = bisect.bisect_right(self._starts, addr) - 1
        while idx >= 0:
            start, data = self._regions[idx]
            if start <= addr < start + len(data):
                return data[addr - start]
            idx -= 1
        raise MemoryReadError("unmapped memory", addr)

    # ── Persistence ──────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        structs: Dict[str, Dict[str, Dict[str, str]]] = {}
        for (addr, type_name), fields in sorted(self._structs.items()):
            structs.setdefault(f"0x{addr:016x}", {})[type_name] = {
                k: f"0x{v:x}" if v >= 0 else str(v) for k, v in fields.items()
            }
        return {
            "commands": dict(self._commands),
            "structs": structs,
            "memory": {f"0x{start:016x}": data.hex() for start, data in self._regions},
        }

    def dump(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.write_text(json.dumps(self.to_dict(), indent=2))
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> SnapshotPort:
        data = json.loads(Path(path).read_text())
        return cls(
            commands=data.get("commands"),
            structs=data.get("structs"),
            memory=data.get("memory"),
        )
