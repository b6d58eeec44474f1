"""
scan.walker — Bounded walk over a kernel ``LIST_ENTRY`` chain.

The walk trusts the owning structure's declared element count over the
list's own shape: it never visits more than ``max_nodes`` entries, and
stops early on a null link, on returning to the list head, or on
returning to the first node.  A failed read ends the walk with whatever
was collected so far.
"""

from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

from ..core.address import Address
from ..core.log import TraceLog
from ..target.port import MemoryPort, StructView


class ListWalker:
    """
    Walk forward links starting at a node.

    With *node_type* set, the forward link is read as the typed field
    ``<link_field>.Flink``; otherwise the raw pointer at
    ``node + link_offset`` is used.
    """

    def __init__(
        self,
        port: MemoryPort,
        *,
        node_type: Optional[str] = None,
        link_field: str = "Links",
        link_offset: int = 0,
        log: Optional[TraceLog] = None,
    ) -> None:
        self.port = port
        self.node_type = node_type
        self.link_field = link_field
        self.link_offset = link_offset
        self.log = (log or TraceLog()).bind("walker")

    def read_link(self, node: Address) -> Tuple[Address, Optional[StructView]]:
        """Forward link of *node*, plus the typed view it was read from (if any)."""
        if self.node_type:
            view = self.port.read_struct(node, self.node_type)
            return view.pointer(f"{self.link_field}.Flink"), view
        return self.port.read_pointer(node.add(self.link_offset)), None

    def iter_entries(
        self, start: Address, list_head: Address, max_nodes: int
    ) -> Iterator[Tuple[Address, Optional[StructView]]]:
        """Yield each visited node with the typed view read while following it."""
        if max_nodes <= 0 or start == list_head:
            return

        current = start
        for step in range(max_nodes):
            if current.is_null or current == list_head or (step and current == start):
                self.log.debug(f"end of list after {step} node(s) at {current}")
                return
            try:
                nxt, view = self.read_link(current)
            except Exception as exc:
                self.log.warn(f"stopping walk at {current}: {exc}")
                return
            yield current, view
            current = nxt

        self.log.debug(f"declared bound of {max_nodes} node(s) reached")

    def iter_nodes(self, start: Address, list_head: Address, max_nodes: int) -> Iterator[Address]:
        for node, _ in self.iter_entries(start, list_head, max_nodes):
            yield node

    def walk(self, start: Address, list_head: Address, max_nodes: int) -> List[Address]:
        """Return up to *max_nodes* node addresses in traversal order."""
        return list(self.iter_nodes(Address(int(start)), Address(int(list_head)), max_nodes))
