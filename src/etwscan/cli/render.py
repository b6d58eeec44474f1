"""
cli.render — Rich presentation of an ``AggregateReport``.
"""

from __future__ import annotations

from typing import List

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.models import AggregateReport
from ..scan.directory import LoggerRef
from ..scan.layouts import LayoutProfile


def render_report(report: AggregateReport, console: Console, *, show_empty: bool = False) -> None:
    """Print one table per session with consumers, then the summary."""
    console.print("\n[bold]═══ ETW Sessions and Consumers ═══[/]\n")

    for session in report.sessions:
        if not session.consumers and not (show_empty or session.error):
            continue
        logger = session.logger
        title = (
            f"{escape(logger.name)} (ID: 0x{logger.logger_id:x}) "
            f"@ 0x{logger.address:016x}"
        )
        if session.error:
            console.print(f"[red]{title}: {escape(session.error)}[/]")
            continue

        table = Table(title=title, show_header=True, header_style="bold")
        table.add_column("PID", justify="right", width=7)
        table.add_column("Image", min_width=16)
        table.add_column("Source", style="dim")
        table.add_column("Consumer", style="dim")
        table.add_column("EPROCESS", style="dim")
        for entry in session.consumers:
            ident = entry.identity
            table.add_row(
                str(ident.pid) if ident.resolved else "?",
                escape(ident.image_name),
                ident.resolution_source.value,
                f"0x{entry.node_address:016x}",
                f"0x{entry.process_object:016x}",
            )
        console.print(table)
        console.print(f"  Declared consumers: {logger.consumer_count}\n")

    console.print("[bold]Summary:[/]")
    console.print(f"  Total sessions: {report.total_sessions}")
    console.print(f"  Sessions with consumers: {report.sessions_with_consumers}")
    console.print(f"  Total consumers: {report.total_consumers}")
    console.print(f"  Resolved consumers: {report.total_resolved_consumers}")


def render_loggers(refs: List[LoggerRef], console: Console) -> None:
    table = Table(title="Logger contexts", show_header=True, header_style="bold")
    table.add_column("ID", justify="right")
    table.add_column("Address", style="dim")
    table.add_column("Name")
    for ref in refs:
        table.add_row(f"0x{ref.logger_id:x}", str(ref.address), escape(ref.name))
    console.print(table)
    console.print(f"Total: {len(refs)} loggers")


def render_layouts(layouts: List[LayoutProfile], console: Console) -> None:
    table = Table(title="Layout profiles", show_header=True, header_style="bold")
    table.add_column("Name")
    table.add_column("Description", max_width=40)
    table.add_column("List off.", justify="right")
    table.add_column("PID offsets")
    table.add_column("Image offsets")
    for lay in layouts:
        table.add_row(
            lay.name,
            lay.description,
            f"0x{lay.consumer_list_offset:x}",
            ", ".join(f"0x{o:x}" for o in lay.pid_offsets),
            ", ".join(f"0x{o:x}" for o in lay.image_name_offsets),
        )
    console.print(table)
