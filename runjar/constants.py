"""Shared constants for runjar."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

PACKAGE_NAME = "runjar"

API_BASE = "https://api.adoptium.net/v3"
API_BASE_ENV_VAR = "RUNJAR_API_BASE"
AVAILABLE_RELEASES_PATH = "info/available_releases"
AVAILABLE_RELEASES_FIELD = "available_releases"
BINARY_PATH_TEMPLATE = (
    "binary/latest/{version}/ga/{os}/{arch}/jre/hotspot/normal/eclipse"
)

CACHE_ENV_VAR = "RUNJAR_CACHE_DIR"
CONFIG_ENV_VAR = "RUNJAR_CONFIG"
JAVA_VERSION_ENV_VAR = "RUNJAR_JAVA_VERSION"
VERBOSE_ENV_VAR = "RUNJAR_VERBOSE"
DOWNLOADER_ENV_VAR = "RUNJAR_DOWNLOADER"
DEFAULT_CACHE_DIR_NAME = "runjar"
CACHE_LOCK_FILENAME = ".runjar_cache.lock"

DEFAULT_JAVA_VERSION = 21
FALLBACK_VERSIONS: Tuple[int, ...] = (21, 17, 11, 8)

WORKSPACE_PREFIX = "runjar."
WORKSPACE_NAME_MAX = 30
EXTRACT_DIRNAME = "extract"
RUNTIME_DIRNAME = "java"
DOWNLOAD_FILENAME = "java.tar.gz"

SUPPORTED_OS = ("linux", "mac", "windows")
SUPPORTED_ARCH = ("x64", "aarch64", "arm", "x32")

EXIT_CODE_SUBPROCESS = 1
EXIT_CODE_USAGE = 2
EXIT_CODE_INTERRUPT = 130
EXIT_CODE_TERMINATED = 143

HTTP_TIMEOUT_SECONDS = 30.0


NO_VERIFY_FLAGS = ("-Xverify:none",)
RELAXED_SECURITY_FLAGS = ("-Djava.security.manager=allow",)
# JVMs before 12 read "allow" as a SecurityManager class name; they run
# without a security manager unless asked, so the flag is dropped there.
SECURITY_MANAGER_ALLOW_SINCE = 12


@dataclass(frozen=True)
class FlagSet:
    name: str
    flags: Tuple[str, ...] = ()

    def flags_for(self, version: int) -> Tuple[str, ...]:
        if version >= SECURITY_MANAGER_ALLOW_SINCE:
            return self.flags
        return tuple(flag for flag in self.flags if flag not in RELAXED_SECURITY_FLAGS)


STANDARD = FlagSet("standard")
NO_VERIFY = FlagSet("no-verify", NO_VERIFY_FLAGS)
RELAXED_SECURITY = FlagSet("relaxed-security", RELAXED_SECURITY_FLAGS)
NO_VERIFY_RELAXED_SECURITY = FlagSet(
    "no-verify+relaxed-security", NO_VERIFY_FLAGS + RELAXED_SECURITY_FLAGS
)
FLAG_SETS: Tuple[FlagSet, ...] = (
    STANDARD,
    NO_VERIFY,
    RELAXED_SECURITY,
    NO_VERIFY_RELAXED_SECURITY,
)

# Shown by --list-versions when the catalog endpoint cannot be reached.
STATIC_VERSIONS: Dict[int, str] = {
    8: "Java 8 (LTS) - legacy applications",
    11: "Java 11 (LTS) - older modern applications",
    17: "Java 17 (LTS) - widely supported",
    21: "Java 21 (LTS) - recommended default",
    22: "Java 22",
    23: "Java 23",
    24: "Java 24",
    25: "Java 25 (LTS) - latest long-term release",
}
LTS_VERSIONS = frozenset({8, 11, 17, 21, 25})
