"""Discovery and forced removal of workspaces left behind by earlier runs."""

from __future__ import annotations

import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .constants import WORKSPACE_PREFIX


@dataclass
class CleanupReport:
    deleted: List[Path] = field(default_factory=list)
    errors: List[Dict[str, str]] = field(default_factory=list)


def workspace_parent(parent: Optional[Path] = None) -> Path:
    return Path(parent) if parent is not None else Path(tempfile.gettempdir())


def list_leftover_workspaces(parent: Optional[Path] = None) -> List[Path]:
    base = workspace_parent(parent)
    if not base.is_dir():
        return []
    return sorted(
        path
        for path in base.iterdir()
        if path.name.startswith(WORKSPACE_PREFIX) and path.is_dir() and not path.is_symlink()
    )


def _delete_path(path: Path) -> Optional[str]:
    try:
        if not path.exists():
            return None
        if path.is_dir():
            shutil.rmtree(path)
        else:
            path.unlink()
    except OSError as exc:
        return str(exc)
    return None


def remove_workspaces(paths: Sequence[Path]) -> CleanupReport:
    report = CleanupReport()
    for path in paths:
        err = _delete_path(path)
        if err:
            report.errors.append({"path": str(path), "error": err})
        else:
            report.deleted.append(path)
    return report
