"""
core.models — Canonical data models for an ETW consumer scan.

Every stage speaks the same language through these models: the session
scanner produces ``SessionReport`` values, the enumeration driver folds
them into an ``AggregateReport``, and the CLI renders or saves that.

Addresses are stored as plain ``int`` (exact at 64 bits) and serialised
as ``0x``-prefixed hex so JSON output stays readable and lossless.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field, field_serializer

from .address import Address

UNKNOWN_IMAGE = "Unknown"


def _hex(value: int) -> str:
    return f"0x{int(value):016x}"


class ResolutionSource(str, Enum):
    """Which strategy produced a ``ProcessIdentity``."""

    COMMAND_BASED = "command_based"
    DIRECT_OFFSET_PROBE = "direct_offset_probe"
    UNRESOLVED = "unresolved"


# ── Target structures ─────────────────────────────────────────────────


class LoggerContext(BaseModel):
    """Snapshot of one ``_WMI_LOGGER_CONTEXT`` as read from the target."""

    address: int
    logger_id: int
    name: str
    consumer_count: int = 0
    consumer_list_head: int = 0

    @field_serializer("address", "consumer_list_head")
    def _ser_addr(self, v: int) -> str:
        return _hex(v)


@dataclass
class ConsumerNode:
    """One ``_ETW_REALTIME_CONSUMER`` entry, alive for a single traversal."""

    address: Address
    forward_link: Address
    back_link: Address
    process_object: Address


# ── Identity ──────────────────────────────────────────────────────────


class ProcessIdentity(BaseModel):
    """PID and image name recovered for a process object."""

    pid: int = 0
    image_name: str = UNKNOWN_IMAGE
    resolution_source: ResolutionSource = ResolutionSource.UNRESOLVED

    @property
    def resolved(self) -> bool:
        return self.pid > 0

    @classmethod
    def unresolved(cls) -> ProcessIdentity:
        return cls(pid=0, image_name=UNKNOWN_IMAGE, resolution_source=ResolutionSource.UNRESOLVED)

    def display(self) -> str:
        if not self.resolved:
            return UNKNOWN_IMAGE
        return f"PID {self.pid} ({self.image_name})"


# ── Reports ───────────────────────────────────────────────────────────


class ConsumerEntry(BaseModel):
    """A consumer node paired with the identity resolved for it."""

    node_address: int
    process_object: int
    identity: ProcessIdentity

    @field_serializer("node_address", "process_object")
    def _ser_addr(self, v: int) -> str:
        return _hex(v)


class SessionReport(BaseModel):
    """One logger context and its consumers, in list-traversal order."""

    logger: LoggerContext
    consumers: List[ConsumerEntry] = Field(default_factory=list)
    error: Optional[str] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def resolved_count(self) -> int:
        return sum(1 for c in self.consumers if c.identity.resolved)


class AggregateReport(BaseModel):
    """All scanned sessions plus summary counters."""

    sessions: List[SessionReport] = Field(default_factory=list)
    total_sessions: int = 0
    sessions_with_consumers: int = 0
    total_consumers: int = 0
    sessions_with_resolved_consumers: int = 0
    total_resolved_consumers: int = 0

    @classmethod
    def from_sessions(cls, sessions: List[SessionReport]) -> AggregateReport:
        """Build the report and compute every counter from *sessions*."""
        return cls(
            sessions=list(sessions),
            total_sessions=len(sessions),
            sessions_with_consumers=sum(1 for s in sessions if s.consumers),
            total_consumers=sum(len(s.consumers) for s in sessions),
            sessions_with_resolved_consumers=sum(1 for s in sessions if s.resolved_count),
            total_resolved_consumers=sum(s.resolved_count for s in sessions),
        )
