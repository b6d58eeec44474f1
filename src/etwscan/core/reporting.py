"""
core.reporting — Structured JSON report persistence.

Saved reports are wrapped in an *envelope*::

    {
        "etwscan_report": true,
        "version": "1.0",
        "generated_at": "2026-…",
        "metadata": { … },
        "data": { <AggregateReport fields> }
    }

The timestamp lives only in the envelope; the ``data`` payload is the
report value itself and is identical across runs on the same snapshot.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel

from .log import console

REPORT_FILENAME = "consumers_report.json"


def _envelope(data: Any, metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    payload = data.model_dump(mode="json") if isinstance(data, BaseModel) else data
    envelope: Dict[str, Any] = {
        "etwscan_report": True,
        "version": "1.0",
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }
    if metadata:
        envelope["metadata"] = metadata
    envelope["data"] = payload
    return envelope


def save_report(
    data: Any,
    work_dir: Optional[Path],
    *,
    filename: str = REPORT_FILENAME,
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[Path]:
    """
    Write *data* (a model or plain JSON value) into *work_dir*.

    Nothing is written when *work_dir* is ``None``; returns the file path
    otherwise.
    """
    if work_dir is None:
        return None

    work_dir = Path(work_dir)
    work_dir.mkdir(parents=True, exist_ok=True)
    path = work_dir / filename
    path.write_text(json.dumps(_envelope(data, metadata), indent=2, default=str))

    console.print(f"  [dim]Report saved: {path}[/]")
    return path


def load_report_data(path: Path) -> Dict[str, Any]:
    """Read a saved envelope back and return its ``data`` payload."""
    envelope = json.loads(Path(path).read_text())
    if not envelope.get("etwscan_report"):
        raise ValueError(f"{path} is not an etwscan report")
    return envelope.get("data", {})
