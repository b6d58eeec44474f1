"""
Kernel structure layouts indexed by Windows build family.

Provides:
- Type and field names for the logger context / realtime consumer
- Ordered candidate offsets for ``_EPROCESS.UniqueProcessId`` and
  ``_EPROCESS.ImageFileName`` (first entry = highest priority)
- Fuzzy lookup (``"Windows 11"`` → ``win11``) and JSON profiles that
  extend a built-in one

Usage:
    from .layouts import get_layout, load_layout_file

    layout = get_layout("win11")
    custom = load_layout_file("lab-build.json")
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ..core.config import Config


def _parse_offset(value: Union[int, str]) -> int:
    if isinstance(value, str):
        return int(value, 0)
    return value


class LayoutProfile(BaseModel):
    """Everything version-specific the scanner needs to know."""

    name: str
    description: str = ""
    module: str = "nt"

    logger_type: str = "_WMI_LOGGER_CONTEXT"
    consumer_type: str = "_ETW_REALTIME_CONSUMER"
    num_consumers_field: str = "NumConsumers"
    consumers_field: str = "Consumers"
    links_field: str = "Links"
    process_object_field: str = "ProcessObject"

    consumer_list_offset: int = 0x158
    pid_offsets: List[int] = Field(default_factory=list)
    image_name_offsets: List[int] = Field(default_factory=list)
    image_name_length: int = 15
    pid_ceiling: int = 100000

    @field_validator("consumer_list_offset", "image_name_length", "pid_ceiling", mode="before")
    @classmethod
    def _int_or_hex(cls, v: Any) -> Any:
        return _parse_offset(v)

    @field_validator("pid_offsets", "image_name_offsets", mode="before")
    @classmethod
    def _offset_list(cls, v: Any) -> Any:
        return [_parse_offset(x) for x in v]


# ---------------------------------------------------------------------------
# Layout database
# ---------------------------------------------------------------------------
# x64 builds only.  ``generic`` merges every family's candidates in the
# order most likely to hit on a current target; the probe accepts the
# first plausible value, so order is priority.

LAYOUTS: Dict[str, LayoutProfile] = {
    "generic": LayoutProfile(
        name="generic",
        description="All known x64 candidates, newest layouts first",
        pid_offsets=[0x2E8, 0x440, 0x448, 0x2E0],
        image_name_offsets=[0x5A8, 0x450, 0x468],
    ),
    "win11": LayoutProfile(
        name="win11",
        description="Windows 11 21H2-23H2",
        pid_offsets=[0x440, 0x448],
        image_name_offsets=[0x5A8],
    ),
    "win10": LayoutProfile(
        name="win10",
        description="Windows 10 2004-22H2",
        pid_offsets=[0x440, 0x448],
        image_name_offsets=[0x5A8],
    ),
    "win10-1507": LayoutProfile(
        name="win10-1507",
        description="Windows 10 1507-1909",
        pid_offsets=[0x2E8, 0x2E0],
        image_name_offsets=[0x450, 0x468],
    ),
}

DEFAULT_LAYOUT = "generic"

_ALIASES = {
    "11": "win11",
    "10": "win10",
    "2004": "win10",
    "20h2": "win10",
    "21h1": "win10",
    "21h2": "win10",
    "22h2": "win10",
    "1507": "win10-1507",
    "1607": "win10-1507",
    "1709": "win10-1507",
    "1803": "win10-1507",
    "1809": "win10-1507",
    "1903": "win10-1507",
    "1909": "win10-1507",
}


def normalize_layout_name(name: str) -> str:
    """
    Normalize a layout / build string to a table key.

    Examples:
        "Win11" → "win11"
        "windows-11" → "win11"
        "win10_1909" → "win10-1507"
        "GENERIC" → "generic"
    """
    key = name.strip().lower().replace("_", "-").replace(" ", "-")
    key = re.sub(r"^windows-?", "win", key)
    if key in LAYOUTS:
        return key
    tail = key.removeprefix("win").strip("-")
    for part in reversed(tail.split("-")):
        if part in _ALIASES:
            return _ALIASES[part]
    return _ALIASES.get(tail, key)


def get_layout(name: str = DEFAULT_LAYOUT) -> LayoutProfile:
    """Look up a built-in profile; unknown names raise ``KeyError``."""
    key = normalize_layout_name(name)
    if key not in LAYOUTS:
        raise KeyError(f"unknown layout '{name}' (known: {', '.join(sorted(LAYOUTS))})")
    return LAYOUTS[key].model_copy(deep=True)


def list_layouts() -> List[LayoutProfile]:
    return [LAYOUTS[k].model_copy(deep=True) for k in sorted(LAYOUTS)]


def load_layout_file(path: Union[str, Path]) -> LayoutProfile:
    """
    Load a JSON profile.

    An optional ``"base"`` key names the built-in profile to start from;
    remaining keys override it.  Offsets may be ints or ``"0x..."``
    strings.
    """
    data = json.loads(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError(f"{path}: layout profile must be a JSON object")
    base_name = data.pop("base", None)
    merged: Dict[str, Any] = {}
    if base_name:
        merged = get_layout(base_name).model_dump()
    merged.update(data)
    merged["name"] = data.get("name", Path(path).stem)
    return LayoutProfile(**merged)


def layout_from_config(cfg: Config, *, name: Optional[str] = None) -> LayoutProfile:
    """Effective profile for *cfg*: file beats name, then module and PID ceiling overrides."""
    if cfg.layout_file:
        layout = load_layout_file(cfg.layout_file)
    else:
        layout = get_layout(name or cfg.layout)
    updates: Dict[str, Any] = {}
    if cfg.kernel_module:
        updates["module"] = cfg.kernel_module
    if cfg.pid_ceiling:
        updates["pid_ceiling"] = cfg.pid_ceiling
    return layout.model_copy(update=updates)
