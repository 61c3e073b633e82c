"""Shared filesystem paths and helpers for bulkrestore."""

from __future__ import annotations

import os
from pathlib import Path


def _xdg_path(env_var: str, fallback: Path) -> Path:
    raw = os.environ.get(env_var)
    if raw:
        return Path(raw).expanduser()
    return fallback


CONFIG_ROOT = _xdg_path("XDG_CONFIG_HOME", Path.home() / ".config")
DATA_ROOT = _xdg_path("XDG_DATA_HOME", Path.home() / ".local/share")

CONFIG_HOME = CONFIG_ROOT / "bulkrestore"
DATA_HOME = DATA_ROOT / "bulkrestore"


def is_within_root(path: Path, root: Path) -> bool:
    """Return True if path resolves within root."""
    try:
        path.resolve(strict=False).relative_to(root.resolve(strict=False))
    except ValueError:
        return False
    return True


__all__ = [
    "CONFIG_HOME",
    "DATA_HOME",
    "CONFIG_ROOT",
    "DATA_ROOT",
    "is_within_root",
]
