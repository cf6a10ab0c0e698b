"""Error types for runjar."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Sequence

if TYPE_CHECKING:  # pragma: no cover
    from .execution import ExecutionAttempt


class CLIError(Exception):
    """Raised for user-facing CLI errors."""


class UnsupportedPlatform(CLIError):
    """The running OS or CPU has no published Java runtime."""


class JarNotFound(CLIError):
    """The target archive is missing or is not a regular file."""


class RuntimeAcquisitionError(CLIError):
    """A runtime for one Java version could not be made available."""


class NoDownloaderAvailable(CLIError):
    """No downloader backend can be used on this system; no version can be fetched."""


class DownloadFailed(RuntimeAcquisitionError):
    """The runtime archive could not be fetched."""


class ExtractionError(RuntimeAcquisitionError):
    """The runtime archive could not be decoded."""


class LayoutError(RuntimeAcquisitionError):
    """No runtime root directory was found inside the archive."""


class MissingEntryPointError(RuntimeAcquisitionError):
    """The runtime root has no java executable."""


FAILURE_CAUSES = (
    "the JAR contains corrupted bytecode",
    "obfuscation produced class or member names the JVM rejects",
    "the JAR depends on libraries that are not on its classpath",
    "the application is fundamentally incompatible with the tried Java versions",
)


class AllWorkaroundsFailed(CLIError):
    """Every compatibility flag set failed for one Java version."""

    def __init__(self, version: int, attempts: Sequence["ExecutionAttempt"]) -> None:
        self.version = version
        self.attempts: List["ExecutionAttempt"] = list(attempts)
        self.causes = list(FAILURE_CAUSES)
        tried = ", ".join(attempt.flag_set.name for attempt in self.attempts) or "none"
        super().__init__(
            f"Java {version} failed with every compatibility flag set (tried: {tried})"
        )
