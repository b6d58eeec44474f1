"""
scan.session — Scan one logger context for its real-time consumers.

Reads ``NumConsumers`` and the ``Consumers`` list head from a
``_WMI_LOGGER_CONTEXT``, walks the list bounded by that count, and
resolves the process object behind every ``_ETW_REALTIME_CONSUMER``.
Unresolved consumers stay in the report so its length always reflects
the consumers actually found.  Any failure inside a session degrades
that session to an empty report; it never escapes ``scan``.
"""

from __future__ import annotations

from typing import Optional

from ..core.address import Address, to_address
from ..core.log import TraceLog
from ..core.models import ConsumerEntry, ConsumerNode, LoggerContext, SessionReport
from ..target.port import MemoryPort, MemoryReadError, StructView
from .layouts import LayoutProfile
from .resolver import IdentityResolver
from .walker import ListWalker


class SessionScanner:
    """Produce a ``SessionReport`` for one logger context."""

    def __init__(
        self,
        port: MemoryPort,
        layout: LayoutProfile,
        *,
        walker: Optional[ListWalker] = None,
        resolver: Optional[IdentityResolver] = None,
        log: Optional[TraceLog] = None,
    ) -> None:
        log = log or TraceLog()
        self.port = port
        self.layout = layout
        self.walker = walker or ListWalker(
            port,
            node_type=layout.consumer_type,
            link_field=layout.links_field,
            log=log,
        )
        self.resolver = resolver or IdentityResolver.default(port, layout, log=log)
        self.log = log.bind("session")

    def read_logger(
        self, address: Address, logger_id: int, name: str
    ) -> tuple[LoggerContext, Address]:
        """Read the context and return it with the list's forward link."""
        view = self.port.read_struct(address, self.layout.logger_type)
        field = self.layout.consumers_field
        offset = view.offsets.get(field, self.layout.consumer_list_offset)
        return LoggerContext(
            address=int(address),
            logger_id=logger_id,
            name=name,
            consumer_count=view.field(self.layout.num_consumers_field),
            consumer_list_head=int(address.add(offset)),
        ), to_address(view.get(f"{field}.Flink", 0))

    def read_node(self, address: Address, view: Optional[StructView] = None) -> ConsumerNode:
        """Decode a consumer entry, reusing *view* when the walker already read it."""
        if view is None:
            view = self.port.read_struct(address, self.layout.consumer_type)
        links = self.layout.links_field
        return ConsumerNode(
            address=address,
            forward_link=to_address(view.get(f"{links}.Flink", 0)),
            back_link=to_address(view.get(f"{links}.Blink", 0)),
            process_object=view.pointer(self.layout.process_object_field),
        )

    def _dump_node(self, address: Address) -> None:
        if not self.log.enabled:
            return
        try:
            words = self.port.read_words(address, 8, 8)
        except MemoryReadError as exc:
            self.log.debug(f"  node {address} unreadable for dump: {exc}")
            return
        self.log.debug(f"  node {address}: " + " ".join(f"{w:016x}" for w in words))

    def scan(self, logger_address: Address, logger_id: int, logger_name: str) -> SessionReport:
        """Scan one session; failures inside it degrade the report instead of raising."""
        logger: Optional[LoggerContext] = None
        try:
            address = to_address(logger_address)
            logger, flink = self.read_logger(address, logger_id, logger_name)
            report = SessionReport(logger=logger)
            self.log.debug(
                f"{logger_name} (0x{logger_id:x}) NumConsumers={logger.consumer_count}"
            )
            if logger.consumer_count <= 0:
                return report

            head = Address(logger.consumer_list_head)
            if flink == head:
                self.log.debug(f"  consumer list empty (Flink {flink} is the head)")
                return report

            for node_addr, view in self.walker.iter_entries(flink, head, logger.consumer_count):
                self._dump_node(node_addr)
                try:
                    node = self.read_node(node_addr, view)
                except MemoryReadError as exc:
                    self.log.warn(f"  skipping consumer {node_addr}: {exc}")
                    continue
                if node.process_object.is_null:
                    self.log.debug(f"  consumer {node_addr} has no process object")
                    continue
                identity = self.resolver.resolve(node.process_object)
                report.consumers.append(
                    ConsumerEntry(
                        node_address=int(node_addr),
                        process_object=int(node.process_object),
                        identity=identity,
                    )
                )
                self.log.debug(f"  consumer {node_addr}: {identity.display()}")
            return report
        except Exception as exc:
            self.log.error(f"error processing logger context {logger_address!r}: {exc}")
            if logger is None:
                logger = _placeholder_context(logger_address, logger_id, logger_name)
            return SessionReport(logger=logger, error=str(exc))


def _placeholder_context(address: object, logger_id: object, name: object) -> LoggerContext:
    """Best-effort context for a triple that could not even be read."""
    try:
        base = int(to_address(address))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        base = 0
    return LoggerContext(
        address=base,
        logger_id=logger_id if isinstance(logger_id, int) else 0,
        name=str(name),
    )
