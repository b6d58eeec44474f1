"""
core.config — Centralised configuration management.

Loads settings from environment variables and .env files.
Every other module accesses configuration through ``Config``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

_env_loaded = False


def _load_dotenv() -> None:
    """Read `.env` from the checkout, the working directory and home, once.

    Values already present in the environment are never replaced.
    """
    global _env_loaded
    if _env_loaded:
        return
    checkout = Path(__file__).resolve().parents[3]
    for candidate in (checkout, Path.cwd(), Path.home()):
        env_file = candidate / ".env"
        if env_file.is_file():
            load_dotenv(env_file, override=False)
    _env_loaded = True


class Config(BaseModel):
    """
    Global runtime configuration.

    Attributes are populated from environment variables / .env.
    Create via ``load_config()`` which pre-loads the env file.
    """

    # ── Layout ───────────────────────────────────────────────────────
    layout: str = Field(default="generic", description="Built-in layout profile name")
    layout_file: Optional[Path] = Field(
        default=None,
        description="JSON layout profile; takes precedence over ``layout``",
    )
    kernel_module: Optional[str] = Field(
        default=None,
        description="Module holding the ETW types; overrides the layout's own",
    )
    pid_ceiling: Optional[int] = Field(
        default=None,
        description="Override the layout's PID sanity ceiling",
    )

    # ── Target ───────────────────────────────────────────────────────
    connection: Optional[str] = Field(
        default=None,
        description="DbgEng kernel connection string, e.g. 'net:port=50000,key=...'",
    )
    dump_path: Optional[Path] = None

    # ── Output ───────────────────────────────────────────────────────
    output_dir: Optional[Path] = None

    # ── Debug ────────────────────────────────────────────────────────
    debug: bool = False
    verbose: bool = False


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1", "true", "yes")


def load_config(**overrides: object) -> Config:
    """
    Load ``Config`` from environment, applying optional overrides.

    Call this once at startup; pass the returned object to subsystems.
    """
    _load_dotenv()
    defaults: dict = {
        "debug": _env_flag("ETWSCAN_DEBUG"),
        "verbose": _env_flag("ETWSCAN_VERBOSE"),
    }
    layout_env = os.environ.get("ETWSCAN_LAYOUT")
    if layout_env:
        defaults["layout"] = layout_env
    layout_file_env = os.environ.get("ETWSCAN_LAYOUT_FILE")
    if layout_file_env:
        defaults["layout_file"] = Path(layout_file_env)
    module_env = os.environ.get("ETWSCAN_MODULE")
    if module_env:
        defaults["kernel_module"] = module_env
    ceiling_env = os.environ.get("ETWSCAN_PID_CEILING")
    if ceiling_env:
        try:
            defaults["pid_ceiling"] = int(ceiling_env, 0)
        except ValueError:
            raise ValueError(
                f"ETWSCAN_PID_CEILING must be an integer, got {ceiling_env!r}"
            ) from None
    connection_env = os.environ.get("ETWSCAN_CONNECTION")
    if connection_env:
        defaults["connection"] = connection_env
    dump_env = os.environ.get("ETWSCAN_DUMP")
    if dump_env:
        defaults["dump_path"] = Path(dump_env)
    output_env = os.environ.get("ETWSCAN_OUTPUT_DIR")
    if output_env:
        defaults["output_dir"] = Path(output_env)
    defaults.update({k: v for k, v in overrides.items() if v is not None})
    return Config(**defaults)  # type: ignore[arg-type]
