"""Run a JAR against a runtime, retrying with JVM flags and other Java versions."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .acquire import acquire_runtime
from .console import log, log_debug, log_error, log_success, log_warning
from .constants import FALLBACK_VERSIONS, FLAG_SETS, STANDARD, FlagSet
from .context import Session
from .errors import (
    AllWorkaroundsFailed,
    CLIError,
    JarNotFound,
    RuntimeAcquisitionError,
)
from .runtime import RuntimeHandle
from .utils import format_cli_command

# returncode recorded when the java binary itself cannot be started
EXIT_CODE_EXEC_FAILED = 126


@dataclass(frozen=True)
class ExecutionAttempt:
    version: int
    flag_set: FlagSet
    returncode: int

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


@dataclass
class VersionOutcome:
    version: int
    stage: str
    attempts: List[ExecutionAttempt] = field(default_factory=list)
    error: Optional[CLIError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and any(attempt.succeeded for attempt in self.attempts)


@dataclass
class LaunchResult:
    succeeded: bool
    version: Optional[int]
    outcomes: List[VersionOutcome]

    @property
    def versions_tried(self) -> List[int]:
        return [outcome.version for outcome in self.outcomes]

    @property
    def exhausted_workarounds(self) -> bool:
        return any(isinstance(outcome.error, AllWorkaroundsFailed) for outcome in self.outcomes)


def ensure_jar(path: Path) -> Path:
    if not path.exists():
        raise JarNotFound(f"JAR file not found: {path}")
    if not path.is_file():
        raise JarNotFound(f"not a regular file: {path}")
    return path


def applicable_flag_sets(force_workarounds: bool) -> Tuple[FlagSet, ...]:
    if force_workarounds:
        return tuple(flag_set for flag_set in FLAG_SETS if flag_set != STANDARD)
    return FLAG_SETS


def build_command(
    handle: RuntimeHandle, jar: Path, args: Sequence[str], flag_set: FlagSet
) -> List[str]:
    return [str(handle.java), *flag_set.flags_for(handle.version), "-jar", str(jar), *args]


def attempt_execution(
    session: Session,
    handle: RuntimeHandle,
    jar: Path,
    args: Sequence[str],
    flag_set: FlagSet,
) -> ExecutionAttempt:
    cmd = build_command(handle, jar, args, flag_set)
    env = os.environ.copy()
    env["JAVA_HOME"] = str(handle.root)
    log_debug(f"exec {format_cli_command(cmd)}")
    try:
        returncode = session.runner(cmd, env)
    except OSError as exc:
        log_error(f"failed to start {handle.java}: {exc}")
        returncode = EXIT_CODE_EXEC_FAILED
    return ExecutionAttempt(version=handle.version, flag_set=flag_set, returncode=returncode)


def run_with_workarounds(
    session: Session,
    handle: RuntimeHandle,
    jar: Path,
    args: Sequence[str],
) -> ExecutionAttempt:
    attempts: List[ExecutionAttempt] = []
    flag_sets = applicable_flag_sets(session.options.force_workarounds)
    if session.options.force_workarounds:
        log("forcing compatibility workarounds (skipping standard execution)")
    for flag_set in flag_sets:
        if attempts:
            flags = " ".join(flag_set.flags_for(handle.version)) or "no extra flags"
            log_warning(f"retrying Java {handle.version} with {flag_set.name} ({flags})")
        attempt = attempt_execution(session, handle, jar, args, flag_set)
        attempts.append(attempt)
        if attempt.succeeded:
            return attempt
        log_debug(
            f"Java {handle.version} {flag_set.name} run exited with status {attempt.returncode}"
        )
    raise AllWorkaroundsFailed(handle.version, attempts)


def fallback_candidates(
    primary: int, versions: Sequence[int] = FALLBACK_VERSIONS
) -> List[int]:
    return [version for version in versions if version != primary]


def run_version(session: Session, version: int, jar: Path, args: Sequence[str]) -> VersionOutcome:
    try:
        handle = acquire_runtime(session, version)
    except RuntimeAcquisitionError as exc:
        log_error(f"Java {version}: runtime acquisition failed: {exc}")
        return VersionOutcome(version=version, stage="acquire", error=exc)
    log_debug(f"Java {version} runtime ready at {handle.root} (from {handle.source})")

    try:
        attempt = run_with_workarounds(session, handle, jar, args)
    except AllWorkaroundsFailed as exc:
        log_error(f"Java {version}: execution failed: {exc}")
        return VersionOutcome(version=version, stage="execute", attempts=exc.attempts, error=exc)
    return VersionOutcome(version=version, stage="execute", attempts=[attempt])


def launch(session: Session, jar: Path, args: Sequence[str]) -> LaunchResult:
    jar = ensure_jar(jar)
    primary = session.options.java_version
    outcomes = [run_version(session, primary, jar, args)]
    if outcomes[0].succeeded:
        return LaunchResult(succeeded=True, version=primary, outcomes=outcomes)

    if not session.options.fallback:
        log_error(f"Java {primary} failed and fallback is disabled")
        return LaunchResult(succeeded=False, version=None, outcomes=outcomes)

    for candidate in fallback_candidates(primary, session.options.fallback_versions):
        session.discard_workspace()
        log_warning(f"falling back to Java {candidate}")
        outcome = run_version(session, candidate, jar, args)
        outcomes.append(outcome)
        if outcome.succeeded:
            log_success(f"succeeded with fallback Java {candidate} (requested Java {primary})")
            return LaunchResult(succeeded=True, version=candidate, outcomes=outcomes)

    log_error("all fallback Java versions failed")
    return LaunchResult(succeeded=False, version=None, outcomes=outcomes)
