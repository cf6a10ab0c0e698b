"""Version string reported by ``--version`` and sent as the User-Agent."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as metadata_version

from . import __version__
from .constants import PACKAGE_NAME


def cli_version() -> str:
    if __version__:
        return __version__
    try:
        return metadata_version(PACKAGE_NAME)
    except PackageNotFoundError:
        return "0.0.0"


USER_AGENT = f"{PACKAGE_NAME}/{cli_version()}"
