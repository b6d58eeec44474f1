"""
core — Shared models, configuration, addresses and logging.

This package is the foundation layer with zero intra-project dependencies
(nothing in ``core`` imports from ``target``, ``scan`` or ``cli``).
"""

from .address import NULL, Address, to_address
from .config import Config, load_config
from .log import TraceLog, console
from .models import (
    UNKNOWN_IMAGE,
    AggregateReport,
    ConsumerEntry,
    ConsumerNode,
    LoggerContext,
    ProcessIdentity,
    ResolutionSource,
    SessionReport,
)
from .reporting import load_report_data, save_report

__all__ = [
    "NULL",
    "Address",
    "to_address",
    "Config",
    "load_config",
    "TraceLog",
    "console",
    "UNKNOWN_IMAGE",
    "AggregateReport",
    "ConsumerEntry",
    "ConsumerNode",
    "LoggerContext",
    "ProcessIdentity",
    "ResolutionSource",
    "SessionReport",
    "load_report_data",
    "save_report",
]
