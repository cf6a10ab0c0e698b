"""Session context threaded through acquisition, execution, and cleanup."""

from __future__ import annotations

import shutil
import signal
import subprocess
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Sequence, Tuple

import httpx

from .cache import CacheStore
from .console import log, log_debug, log_warning
from .constants import (
    DOWNLOAD_FILENAME,
    EXIT_CODE_TERMINATED,
    EXTRACT_DIRNAME,
    FALLBACK_VERSIONS,
    RUNTIME_DIRNAME,
    WORKSPACE_PREFIX,
)
from .downloads import DOWNLOADER_BACKENDS, DownloaderBackend
from .http import request_headers
from .platforms import PlatformInfo, get_platform_info

HttpClientFactory = Callable[[httpx.Timeout], httpx.Client]
Runner = Callable[[Sequence[str], Dict[str, str]], int]


def default_http_client_factory(timeout: httpx.Timeout) -> httpx.Client:
    return httpx.Client(timeout=timeout, follow_redirects=True, headers=request_headers())


def default_runner(cmd: Sequence[str], env: Dict[str, str]) -> int:
    return subprocess.run(list(cmd), env=env, check=False).returncode


@dataclass(frozen=True)
class Workspace:
    """Ephemeral directory holding the extraction scratch area and the runtime."""

    path: Path

    @classmethod
    def create(cls, label: str, *, parent: Optional[Path] = None) -> "Workspace":
        path = tempfile.mkdtemp(prefix=f"{WORKSPACE_PREFIX}{label}.", dir=parent)
        return cls(Path(path))

    @property
    def extract_dir(self) -> Path:
        return self.path / EXTRACT_DIRNAME

    @property
    def runtime_dir(self) -> Path:
        return self.path / RUNTIME_DIRNAME

    @property
    def download_path(self) -> Path:
        return self.path / DOWNLOAD_FILENAME

    def discard(self) -> None:
        try:
            shutil.rmtree(self.path)
        except FileNotFoundError:
            return
        except OSError as exc:
            log_warning(f"failed to remove workspace {self.path}: {exc}")
            return
        log_debug(f"removed workspace {self.path}")


@dataclass(frozen=True)
class LaunchOptions:
    java_version: int
    skip_cache: bool = False
    fallback: bool = True
    force_workarounds: bool = False
    keep_runtime: bool = False
    fallback_versions: Tuple[int, ...] = FALLBACK_VERSIONS


@dataclass
class Session:
    """State owned by one top-level invocation.

    At most one workspace is active at a time; replacing it discards the
    previous one. Its collaborators are injectable.
    """

    options: LaunchOptions
    cache: CacheStore
    label: str = "jar"
    platform: Optional[PlatformInfo] = None
    downloaders: Sequence[DownloaderBackend] = DOWNLOADER_BACKENDS
    runner: Runner = default_runner
    workspace_parent: Optional[Path] = None
    active_workspace: Optional[Workspace] = field(default=None, init=False)

    def platform_info(self) -> PlatformInfo:
        if self.platform is None:
            self.platform = get_platform_info()
        return self.platform

    def new_workspace(self) -> Workspace:
        self.discard_workspace()
        workspace = Workspace.create(self.label, parent=self.workspace_parent)
        self.active_workspace = workspace
        log_debug(f"created workspace {workspace.path}")
        return workspace

    def discard_workspace(self) -> None:
        workspace, self.active_workspace = self.active_workspace, None
        if workspace is not None:
            workspace.discard()

    def close(self) -> None:
        if self.active_workspace is None:
            return
        if self.options.keep_runtime:
            log(f"keeping runtime at {self.active_workspace.runtime_dir}")
            return
        self.discard_workspace()


def _raise_terminated(signum: int, frame: Any) -> None:
    raise SystemExit(EXIT_CODE_TERMINATED)


@contextmanager
def open_session(options: LaunchOptions, cache: CacheStore, **kwargs: Any) -> Iterator[Session]:
    """Yield a session whose active workspace is removed on every exit path.

    SIGTERM is turned into ``SystemExit`` while the session is open so the
    cleanup below runs; Ctrl-C already arrives as ``KeyboardInterrupt``.
    """
    session = Session(options=options, cache=cache, **kwargs)
    previous_handler = None
    install = threading.current_thread() is threading.main_thread()
    if install:
        previous_handler = signal.signal(signal.SIGTERM, _raise_terminated)
    try:
        yield session
    finally:
        if install:
            signal.signal(signal.SIGTERM, previous_handler or signal.SIG_DFL)
        session.close()
