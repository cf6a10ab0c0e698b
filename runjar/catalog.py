"""Available Java versions from the distributor, with a static fallback."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import List, Optional

import httpx

from .console import log_debug
from .constants import (
    AVAILABLE_RELEASES_FIELD,
    AVAILABLE_RELEASES_PATH,
    LTS_VERSIONS,
    STATIC_VERSIONS,
)
from .context import HttpClientFactory
from .http import api_base_url, describe_http_error, http_timeout, request_headers
from .utils import safe_int


@dataclass(frozen=True)
class VersionRow:
    version: int
    description: str


@dataclass(frozen=True)
class VersionCatalog:
    rows: List[VersionRow]
    source: str


def catalog_url() -> str:
    return f"{api_base_url()}/{AVAILABLE_RELEASES_PATH}"


def fetch_available_versions(
    client_factory: HttpClientFactory,
) -> Optional[List[int]]:
    """Return the published major versions, or None when the catalog is unusable."""
    url = catalog_url()
    try:
        with client_factory(http_timeout()) as client:
            response = client.get(url, headers=request_headers())
            response.raise_for_status()
            payload = response.json()
    except httpx.HTTPError as exc:
        log_debug(f"version catalog unavailable: {describe_http_error(exc)}")
        return None
    except (json.JSONDecodeError, ValueError) as exc:
        log_debug(f"version catalog returned malformed JSON: {exc}")
        return None
    if not isinstance(payload, dict):
        log_debug("version catalog response is not a JSON object")
        return None
    raw = payload.get(AVAILABLE_RELEASES_FIELD)
    if not isinstance(raw, list):
        log_debug(f"version catalog response has no {AVAILABLE_RELEASES_FIELD!r} list")
        return None
    versions = sorted({v for v in (safe_int(item) for item in raw) if v is not None and v > 0})
    return versions or None


def describe_version(version: int) -> str:
    if version in STATIC_VERSIONS:
        return STATIC_VERSIONS[version]
    suffix = " (LTS)" if version in LTS_VERSIONS else ""
    return f"Java {version}{suffix}"


def static_catalog() -> VersionCatalog:
    rows = [VersionRow(version, text) for version, text in sorted(STATIC_VERSIONS.items())]
    return VersionCatalog(rows=rows, source="static")


def load_catalog(
    client_factory: HttpClientFactory,
    *,
    offline: bool = False,
) -> VersionCatalog:
    if offline:
        return static_catalog()
    versions = fetch_available_versions(client_factory)
    if versions is None:
        return static_catalog()
    return VersionCatalog(
        rows=[VersionRow(version, describe_version(version)) for version in versions],
        source="remote",
    )
