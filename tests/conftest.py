from typing import List, Optional, Sequence, Tuple

import pytest

from etwscan.target.snapshot import SnapshotPort

LIST_OFFSET = 0x158


def process_output(eprocess: int, pid: int, image: str) -> List[str]:
    """``!process <addr> 0`` output as the debugger prints it."""
    return [
        f"PROCESS {eprocess:016x}",
        f"    SessionId: 0  Cid: {pid:04x}    Peb: 7ff6d2b8b000  ParentCid: 02d4",
        "    DirBase: 1a9c02000  ObjectTable: ffffa28f4e6b3d40  HandleCount: 412.",
        f"    Image: {image}",
        "",
    ]


class TargetBuilder:
    """Assemble a frozen kernel snapshot with logger contexts and consumers."""

    def __init__(self) -> None:
        self.port = SnapshotPort()
        self.strdump: List[str] = ["Dumping loggers..."]
        self.port.add_command("!wmitrace.strdump", self.strdump)

    def add_logger(
        self,
        address: int,
        logger_id: int,
        name: str,
        nodes: Sequence[Tuple[int, int]] = (),
        *,
        declared: Optional[int] = None,
    ) -> int:
        """
        Add a logger whose consumer list holds *nodes* (``(node, eprocess)``
        pairs), linked circularly through the list head.  Returns the head.
        """
        head = address + LIST_OFFSET
        addrs = [n for n, _ in nodes]
        self.port.add_struct(address, "_WMI_LOGGER_CONTEXT", {
            "LoggerId": logger_id,
            "NumConsumers": len(nodes) if declared is None else declared,
            "Consumers.Flink": addrs[0] if addrs else head,
            "Consumers.Blink": addrs[-1] if addrs else head,
        })
        for i, (node, eprocess) in enumerate(nodes):
            self.add_node(
                node,
                addrs[i + 1] if i + 1 < len(addrs) else head,
                eprocess,
                blink=addrs[i - 1] if i else head,
            )
        self.strdump.append(f"    Logger Id 0x{logger_id:x} @ 0x{address:X} Named '{name}'")
        self.port.add_command("!wmitrace.strdump", self.strdump)
        return head

    def add_node(self, node: int, flink: int, eprocess: int = 0, *, blink: int = 0) -> None:
        self.port.add_struct(node, "_ETW_REALTIME_CONSUMER", {
            "Links.Flink": flink,
            "Links.Blink": blink,
            "ProcessObject": eprocess,
        })

    def add_process(self, eprocess: int, pid: int, image: str) -> None:
        """Make ``!process`` resolve *eprocess*."""
        self.port.add_command(f"!process {eprocess:x} 0", process_output(eprocess, pid, image))

    def add_process_memory(
        self,
        eprocess: int,
        *,
        pid: Optional[int] = None,
        pid_offset: int = 0x2E8,
        image: Optional[bytes] = None,
        image_offset: int = 0x5A8,
    ) -> None:
        """Lay out ``UniqueProcessId`` / ``ImageFileName`` for offset probing."""
        if pid is not None:
            self.port.map_qword(eprocess + pid_offset, pid)
        if image is not None:
            self.port.map_memory(eprocess + image_offset, image.ljust(16, b"\x00"))


@pytest.fixture
def target() -> TargetBuilder:
    return TargetBuilder()
