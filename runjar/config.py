"""Configuration file support for runjar."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from platformdirs import PlatformDirs

from .constants import (
    CONFIG_ENV_VAR,
    DEFAULT_CACHE_DIR_NAME,
    DEFAULT_JAVA_VERSION,
    DOWNLOADER_ENV_VAR,
    FALLBACK_VERSIONS,
    JAVA_VERSION_ENV_VAR,
    VERBOSE_ENV_VAR,
)
from .errors import CLIError
from .utils import env_truthy, safe_int

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover (py<311)
    import tomli as tomllib


@dataclass(frozen=True)
class ConfigFile:
    java_version: Optional[int] = None
    cache_dir: Optional[str] = None
    fallback: Optional[bool] = None
    fallback_versions: List[int] = field(default_factory=list)
    verbose: Optional[bool] = None
    downloader: Optional[str] = None


def default_config_path() -> Path:
    dirs = PlatformDirs(appname=DEFAULT_CACHE_DIR_NAME, appauthor=False, roaming=True)
    return Path(dirs.user_config_path) / "config.toml"


def resolve_config_path() -> Path:
    env_value = (os.environ.get(CONFIG_ENV_VAR) or "").strip()
    if env_value:
        return Path(env_value).expanduser()
    return default_config_path()


def _safe_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        normalized = value.strip()
        return normalized or None
    return str(value).strip() or None


def _safe_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    return None


def _safe_version_list(value: Any) -> List[int]:
    if not isinstance(value, list):
        return []
    result: List[int] = []
    for item in value:
        number = safe_int(item)
        if number is not None and number > 0 and number not in result:
            result.append(number)
    return result


def _first_present(mapping: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in mapping:
            return mapping[key]
    return None


def load_config(path: Optional[Path] = None) -> ConfigFile:
    config_path = path or resolve_config_path()
    if not config_path.exists():
        return ConfigFile()
    try:
        data = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CLIError(f"failed to read config file {config_path}: {exc}") from exc
    except Exception as exc:
        raise CLIError(f"failed to parse config file {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        return ConfigFile()
    return ConfigFile(
        java_version=safe_int(_first_present(data, "java_version", "javaVersion")),
        cache_dir=_safe_str(_first_present(data, "cache_dir", "cacheDir")),
        fallback=_safe_bool(data.get("fallback")),
        fallback_versions=_safe_version_list(
            _first_present(data, "fallback_versions", "fallbackVersions")
        ),
        verbose=_safe_bool(data.get("verbose")),
        downloader=_safe_str(data.get("downloader")),
    )


def parse_java_version(value: Any, *, source: str) -> int:
    number = safe_int(value)
    if number is None or number <= 0:
        raise CLIError(f"invalid Java version from {source}: {value!r} (expected a positive integer)")
    return number


def resolve_java_version(cli_value: Optional[int], config: ConfigFile) -> Tuple[int, str]:
    """Return the requested major version and where it came from.

    Precedence is CLI flag, then RUNJAR_JAVA_VERSION, then the config file,
    then the built-in default.
    """
    if cli_value is not None:
        return parse_java_version(cli_value, source="--java-version"), "cli"
    env_value = (os.environ.get(JAVA_VERSION_ENV_VAR) or "").strip()
    if env_value:
        return parse_java_version(env_value, source=JAVA_VERSION_ENV_VAR), "env"
    if config.java_version is not None:
        return parse_java_version(config.java_version, source="config"), "config"
    return DEFAULT_JAVA_VERSION, "default"


def resolve_verbose(cli_value: bool, config: ConfigFile) -> bool:
    if cli_value or env_truthy(VERBOSE_ENV_VAR):
        return True
    return bool(config.verbose)


def resolve_fallback_versions(config: ConfigFile) -> Tuple[int, ...]:
    if config.fallback_versions:
        return tuple(config.fallback_versions)
    return FALLBACK_VERSIONS


def resolve_downloader(config: ConfigFile) -> Optional[str]:
    env_value = (os.environ.get(DOWNLOADER_ENV_VAR) or "").strip()
    return env_value or config.downloader
