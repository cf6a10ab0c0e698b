"""Shared utility helpers for runjar."""

from __future__ import annotations

import os
import re
import shlex
from pathlib import Path
from typing import Any, Optional, Sequence

from .constants import WORKSPACE_NAME_MAX

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")


def format_cli_command(argv: Sequence[str]) -> str:
    return shlex.join(str(part) for part in argv)


def env_truthy(name: str) -> bool:
    value = (os.environ.get(name) or "").strip().lower()
    return value in {"1", "true", "yes", "on"}


def sanitize_name(jar: Path) -> str:
    """Workspace-safe label for a jar: stem with non-alphanumerics collapsed."""
    stem = jar.name
    if stem.lower().endswith(".jar"):
        stem = stem[: -len(".jar")]
    cleaned = _NON_ALNUM.sub("_", stem)[:WORKSPACE_NAME_MAX]
    return cleaned or "jar"


def format_bytes(value: float) -> str:
    if value < 0:
        value = 0
    units = ("B", "KB", "MB", "GB", "TB")
    unit_index = 0
    size = float(value)
    while size >= 1024 and unit_index + 1 < len(units):
        size /= 1024.0
        unit_index += 1
    if unit_index == 0:
        return f"{int(size)} {units[unit_index]}"
    return f"{size:.1f} {units[unit_index]}"


def safe_int(value: Any) -> Optional[int]:
    try:
        if value is None or isinstance(value, bool):
            return None
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None
