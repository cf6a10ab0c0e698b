"""Mapping of the running OS/CPU onto the runtime distributor's names."""

from __future__ import annotations

import platform
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from .errors import UnsupportedPlatform


@dataclass(frozen=True)
class PlatformInfo:
    os_name: str
    arch: str

    @property
    def key(self) -> Tuple[str, str]:
        return (self.os_name, self.arch)


_ARCH_ALIASES = {
    "x86_64": "x64",
    "amd64": "x64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
    "armv7l": "arm",
    "i386": "x32",
    "i686": "x32",
}


def identify_os(system: Optional[str] = None) -> str:
    raw = platform.system() if system is None else system
    value = raw.strip().lower()
    if value == "linux":
        return "linux"
    if value == "darwin":
        return "mac"
    if value == "windows" or value.startswith(("cygwin", "mingw", "msys")):
        return "windows"
    raise UnsupportedPlatform(f"unsupported operating system: {raw or 'unknown'}")


def identify_arch(machine: Optional[str] = None) -> str:
    raw = platform.machine() if machine is None else machine
    arch = _ARCH_ALIASES.get(raw.strip().lower())
    if arch is None:
        raise UnsupportedPlatform(f"unsupported architecture: {raw or 'unknown'}")
    return arch


@lru_cache()
def get_platform_info() -> PlatformInfo:
    return PlatformInfo(identify_os(), identify_arch())


def java_binary_name(os_name: str) -> str:
    return "java.exe" if os_name == "windows" else "java"
