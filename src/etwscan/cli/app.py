"""
cli.app — Main Typer application.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from ..core.config import Config, load_config
from ..core.log import TraceLog
from ..core.log import console as err_console
from ..core.models import AggregateReport
from ..core.reporting import save_report
from ..scan.driver import EtwConsumerScan
from ..scan.layouts import LayoutProfile, layout_from_config, list_layouts
from ..target.port import MemoryPort
from ..target.snapshot import SnapshotPort
from .render import render_layouts, render_loggers, render_report

app = typer.Typer(
    name="etwscan",
    help="List ETW sessions and their real-time consumer processes from kernel memory.",
    no_args_is_help=True,
)
console = Console()


# ── Shared helpers ────────────────────────────────────────────────────


def _build_config(**cli_overrides: object) -> Config:
    """Build a ``Config`` from .env + CLI overrides, dropping None values."""
    try:
        return load_config(**{k: v for k, v in cli_overrides.items() if v is not None})
    except ValueError as exc:
        err_console.print(f"[red]Configuration error:[/] {exc}")
        raise typer.Exit(2)


def _resolve_layout(cfg: Config) -> LayoutProfile:
    try:
        return layout_from_config(cfg)
    except (KeyError, ValueError, OSError) as exc:
        err_console.print(f"[red]Layout error:[/] {exc}")
        raise typer.Exit(2)


def _run(
    port: MemoryPort, cfg: Config, layout: LayoutProfile, *, as_json: bool, show_empty: bool
) -> AggregateReport:
    log = TraceLog(enabled=cfg.debug)
    log.debug(f"layout: {layout.name}")
    report = EtwConsumerScan(port, layout, log=log).run()

    if as_json:
        typer.echo(report.model_dump_json(indent=2))
    else:
        render_report(report, console, show_empty=show_empty or cfg.verbose)

    save_report(report, cfg.output_dir, metadata={"layout": layout.name})
    return report


def _load_snapshot(snapshot: Path) -> SnapshotPort:
    try:
        return SnapshotPort.load(snapshot)
    except (OSError, ValueError) as exc:
        err_console.print(f"[red]Cannot load snapshot {snapshot}:[/] {exc}")
        raise typer.Exit(1)


# ═════════════════════════════════════════════════════════════════════
#  Live / dump scan
# ═════════════════════════════════════════════════════════════════════


@app.command()
def scan(
    connection: Optional[str] = typer.Option(None, "--connection", "-c", help="DbgEng kernel connection string (net:port=...,key=...)"),
    dump: Optional[Path] = typer.Option(None, "--dump", "-d", help="Kernel memory dump to open instead of a live target"),
    layout: Optional[str] = typer.Option(None, "--layout", "-l", help="Layout profile (generic/win10/win10-1507/win11)"),
    layout_file: Optional[Path] = typer.Option(None, "--layout-file", help="JSON layout profile"),
    module: Optional[str] = typer.Option(None, "--module", help="Kernel module holding the ETW types"),
    pid_ceiling: Optional[int] = typer.Option(None, "--pid-ceiling", help="Largest PID accepted by offset probing"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Write consumers_report.json here"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    show_empty: bool = typer.Option(False, "--all", help="Also list sessions without consumers"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug output"),
) -> None:
    """Scan a live kernel or a memory dump through DbgEng (requires Pybag)."""
    from ..target.dbgeng import DbgEngPort

    cfg = _build_config(
        connection=connection, dump_path=dump, layout=layout, layout_file=layout_file,
        kernel_module=module, pid_ceiling=pid_ceiling, output_dir=output_dir,
        debug=debug or None,
    )
    if not cfg.connection and not cfg.dump_path:
        err_console.print("[red]Either --connection or --dump is required.[/]")
        raise typer.Exit(2)

    layout_profile = _resolve_layout(cfg)
    log = TraceLog(enabled=cfg.debug)
    try:
        if cfg.dump_path:
            port = DbgEngPort.open_dump(cfg.dump_path, module=layout_profile.module, log=log)
        else:
            port = DbgEngPort.attach_kernel(cfg.connection, module=layout_profile.module, log=log)
    except ImportError:
        err_console.print("[red]Pybag is not installed; install etwscan[windbg].[/]")
        raise typer.Exit(1)
    except Exception as exc:
        err_console.print(f"[red]Could not open target:[/] {exc}")
        raise typer.Exit(1)
    log.info(f"opened {cfg.dump_path or cfg.connection}")

    _run(port, cfg, layout_profile, as_json=as_json, show_empty=show_empty)


# ═════════════════════════════════════════════════════════════════════
#  Snapshot replay
# ═════════════════════════════════════════════════════════════════════


@app.command()
def replay(
    snapshot: Path = typer.Argument(help="Snapshot JSON captured from a target"),
    layout: Optional[str] = typer.Option(None, "--layout", "-l", help="Layout profile"),
    layout_file: Optional[Path] = typer.Option(None, "--layout-file", help="JSON layout profile"),
    pid_ceiling: Optional[int] = typer.Option(None, "--pid-ceiling", help="Largest PID accepted by offset probing"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Write consumers_report.json here"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    show_empty: bool = typer.Option(False, "--all", help="Also list sessions without consumers"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug output"),
) -> None:
    """Run the consumer scan against a frozen JSON snapshot."""
    cfg = _build_config(
        layout=layout, layout_file=layout_file, pid_ceiling=pid_ceiling,
        output_dir=output_dir, debug=debug or None,
    )
    _run(_load_snapshot(snapshot), cfg, _resolve_layout(cfg), as_json=as_json, show_empty=show_empty)


@app.command()
def loggers(
    snapshot: Path = typer.Argument(help="Snapshot JSON captured from a target"),
) -> None:
    """List the logger contexts reported by !wmitrace.strdump."""
    from ..scan.directory import list_loggers

    render_loggers(list_loggers(_load_snapshot(snapshot)), console)


@app.command()
def layouts() -> None:
    """Show the built-in layout profiles."""
    render_layouts(list_layouts(), console)


def main() -> None:
    """Entry-point registered in pyproject.toml."""
    app()
