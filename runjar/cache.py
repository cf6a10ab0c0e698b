"""Persistent store of runtime archives keyed by (version, OS, arch)."""

from __future__ import annotations

import os
import re
import shutil
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

from platformdirs import PlatformDirs

from .console import log_debug, log_warning
from .constants import (
    CACHE_ENV_VAR,
    CACHE_LOCK_FILENAME,
    DEFAULT_CACHE_DIR_NAME,
    SUPPORTED_ARCH,
    SUPPORTED_OS,
)
from .errors import CLIError

_ENTRY_PATTERN = re.compile(
    r"^java-(?P<version>[1-9][0-9]*)-(?P<os>[a-z]+)-(?P<arch>[a-z0-9]+)\.tar\.gz$"
)


@dataclass(frozen=True)
class CacheKey:
    version: int
    os_name: str
    arch: str

    def __post_init__(self) -> None:
        if isinstance(self.version, bool) or not isinstance(self.version, int) or self.version <= 0:
            raise ValueError(f"Java version must be a positive integer, got {self.version!r}")
        if self.os_name not in SUPPORTED_OS:
            raise ValueError(f"unsupported os {self.os_name!r}")
        if self.arch not in SUPPORTED_ARCH:
            raise ValueError(f"unsupported arch {self.arch!r}")

    @property
    def filename(self) -> str:
        return key_to_filename(self)

    @classmethod
    def from_filename(cls, name: str) -> Optional["CacheKey"]:
        match = _ENTRY_PATTERN.match(name)
        if not match:
            return None
        try:
            return cls(int(match.group("version")), match.group("os"), match.group("arch"))
        except ValueError:
            return None


@dataclass(frozen=True)
class CacheEntry:
    key: CacheKey
    path: Path
    size: int

    @property
    def filename(self) -> str:
        return self.path.name


def key_to_filename(key: CacheKey) -> str:
    return f"java-{key.version}-{key.os_name}-{key.arch}.tar.gz"


def default_cache_root(configured: Optional[str] = None) -> Path:
    explicit = os.environ.get(CACHE_ENV_VAR) or configured
    if explicit:
        return Path(explicit).expanduser()
    dirs = PlatformDirs(appname=DEFAULT_CACHE_DIR_NAME, appauthor=False)
    return Path(dirs.user_cache_path)


def _claim_lock(lock_path: Path, stale_after_seconds: float) -> Optional[int]:
    """Create the lock file, or return None while another writer holds it."""
    try:
        return os.open(str(lock_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError:
        if not _reap_stale_lock(lock_path, stale_after_seconds):
            return None
    try:
        return os.open(str(lock_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError:
        return None


def _reap_stale_lock(lock_path: Path, stale_after_seconds: float) -> bool:
    try:
        held_for = time.time() - lock_path.stat().st_mtime
    except FileNotFoundError:
        return True
    if held_for < stale_after_seconds:
        return False
    log_debug(f"removing stale cache lock {lock_path}")
    try:
        lock_path.unlink()
    except FileNotFoundError:
        pass
    except OSError:
        return False
    return True


@contextmanager
def cache_lock(
    root: Path,
    *,
    timeout_seconds: float = 60.0,
    stale_after_seconds: float = 2 * 60 * 60,
) -> Iterator[None]:
    """Serialize cache writers through an exclusive ``.lock`` file in ``root``."""
    root.mkdir(parents=True, exist_ok=True)
    lock_path = root / CACHE_LOCK_FILENAME
    deadline = time.monotonic() + timeout_seconds
    fd = _claim_lock(lock_path, stale_after_seconds)
    while fd is None:
        if time.monotonic() >= deadline:
            raise CLIError(f"timed out waiting for cache lock {lock_path}")
        time.sleep(0.2)
        fd = _claim_lock(lock_path, stale_after_seconds)
    try:
        os.write(fd, f"{os.getpid()}\n".encode("ascii"))
        yield
    finally:
        os.close(fd)
        try:
            lock_path.unlink()
        except OSError:
            pass


class CacheStore:
    """Runtime archives stored as ``<root>/java-{version}-{os}-{arch}.tar.gz``.

    There is no index; every query reads the directory. Entries are only
    removed by :meth:`purge_all`.
    """

    def __init__(self, root: Path, *, lock_timeout: float = 60.0) -> None:
        self.root = Path(root)
        self.lock_timeout = lock_timeout

    def path_for(self, key: CacheKey) -> Path:
        return self.root / key_to_filename(key)

    def lookup(self, key: CacheKey) -> Optional[Path]:
        path = self.path_for(key)
        return path if path.is_file() else None

    def store(self, key: CacheKey, source: Path) -> Optional[Path]:
        target = self.path_for(key)
        tmp = target.with_name(f"{target.name}.{os.getpid()}.tmp")
        try:
            with cache_lock(self.root, timeout_seconds=self.lock_timeout):
                shutil.copyfile(source, tmp)
                os.replace(tmp, target)
        except (OSError, CLIError) as exc:
            log_warning(f"could not cache runtime archive {target.name}: {exc}")
            try:
                tmp.unlink()
            except OSError:
                pass
            return None
        log_debug(f"cached runtime archive at {target}")
        return target

    def enumerate(self) -> List[CacheEntry]:
        if not self.root.is_dir():
            return []
        entries: List[CacheEntry] = []
        for path in sorted(self.root.iterdir()):
            key = CacheKey.from_filename(path.name)
            if key is None or not path.is_file():
                continue
            try:
                size = path.stat().st_size
            except OSError:
                continue
            entries.append(CacheEntry(key=key, path=path, size=size))
        return entries

    def total_size(self) -> int:
        return sum(entry.size for entry in self.enumerate())

    def purge_all(self) -> None:
        if not self.root.exists():
            return
        shutil.rmtree(self.root)
