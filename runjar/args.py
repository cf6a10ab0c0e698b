"""Argument models shared across runjar modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class RunArgs:
    """Arguments for running a JAR (`runjar [OPTIONS] JAR [ARGS]...`)."""

    jar: Optional[str] = None
    jar_args: List[str] = field(default_factory=list)
    java_version: Optional[int] = None
    no_cache: bool = False
    no_fallback: bool = False
    force_workarounds: bool = False
    keep_runtime: bool = False
    yes: bool = False
    dry_run: bool = False
    verbose: bool = False
    debug: bool = False


@dataclass
class MaintenanceArgs:
    """Arguments for the cache and workspace maintenance actions."""

    yes: bool = False
    dry_run: bool = False
    verbose: bool = False
