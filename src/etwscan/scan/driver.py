"""
scan.driver — Enumerate every logger context and aggregate the results.

``enumerate_all`` is pure orchestration: it scans the supplied contexts
in order and folds the session reports into an ``AggregateReport``.
``EtwConsumerScan`` wires a port and a layout into a ready scanner and
falls back to the logger directory when no contexts are given.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple, Union

from ..core.address import Address
from ..core.log import TraceLog
from ..core.models import AggregateReport, SessionReport
from ..target.port import MemoryPort
from .directory import LoggerRef, list_loggers
from .layouts import LayoutProfile, get_layout
from .resolver import IdentityResolver
from .session import SessionScanner
from .walker import ListWalker

LoggerTriple = Union[LoggerRef, Tuple[Union[Address, int, str], int, str]]


def enumerate_all(contexts: Iterable[LoggerTriple], scanner: SessionScanner) -> AggregateReport:
    """Scan each ``(address, logger_id, name)`` in order and aggregate."""
    sessions: List[SessionReport] = []
    for address, logger_id, name in contexts:
        sessions.append(scanner.scan(address, logger_id, name))
    return AggregateReport.from_sessions(sessions)


class EtwConsumerScan:
    """Port + layout → ``AggregateReport``."""

    def __init__(
        self,
        port: MemoryPort,
        layout: Optional[LayoutProfile] = None,
        *,
        log: Optional[TraceLog] = None,
    ) -> None:
        self.port = port
        self.layout = layout or get_layout()
        self.log = log or TraceLog()
        self.walker = ListWalker(
            port,
            node_type=self.layout.consumer_type,
            link_field=self.layout.links_field,
            log=self.log,
        )
        self.resolver = IdentityResolver.default(port, self.layout, log=self.log)
        self.scanner = SessionScanner(
            port,
            self.layout,
            walker=self.walker,
            resolver=self.resolver,
            log=self.log,
        )

    def loggers(self) -> List[LoggerRef]:
        return list_loggers(self.port, log=self.log)

    def run(self, contexts: Optional[Iterable[LoggerTriple]] = None) -> AggregateReport:
        if contexts is None:
            contexts = self.loggers()
        report = enumerate_all(contexts, self.scanner)
        self.log.bind("driver").debug(
            f"{report.total_sessions} session(s), {report.total_consumers} consumer(s)"
        )
        return report
