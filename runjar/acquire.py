"""Guarantee a materialized runtime for a Java version: cache first, then network."""

from __future__ import annotations

from typing import List

from .cache import CacheKey
from .console import log, log_debug, log_warning
from .constants import BINARY_PATH_TEMPLATE
from .context import Session
from .downloads import fetch_file, select_downloader
from .errors import DownloadFailed, RuntimeAcquisitionError
from .http import api_base_url
from .platforms import java_binary_name
from .runtime import RuntimeHandle, materialize


def download_url(key: CacheKey) -> str:
    path = BINARY_PATH_TEMPLATE.format(version=key.version, os=key.os_name, arch=key.arch)
    return f"{api_base_url()}/{path}"


def cache_key_for(session: Session, version: int) -> CacheKey:
    info = session.platform_info()
    return CacheKey(version, info.os_name, info.arch)


def acquire_runtime(session: Session, version: int) -> RuntimeHandle:
    key = cache_key_for(session, version)
    java_name = java_binary_name(key.os_name)

    if session.options.skip_cache:
        log_debug("cache disabled; downloading runtime")
    else:
        cached = session.cache.lookup(key)
        if cached is None:
            log_debug(f"cache miss for {key.filename}")
        else:
            log(f"using cached Java {version} runtime ({key.filename})")
            workspace = session.new_workspace()
            try:
                return materialize(
                    cached, workspace, version=version, source="cache", java_name=java_name
                )
            except RuntimeAcquisitionError as exc:
                log_warning(
                    f"cached runtime {key.filename} is unusable ({exc}); downloading a fresh copy"
                )
                session.discard_workspace()

    workspace = session.new_workspace()
    backend = select_downloader(session.downloaders)
    url = download_url(key)
    log(f"downloading Java {version} runtime for {key.os_name}/{key.arch}")
    log_debug(f"GET {url} (downloader: {backend.name})")
    try:
        archive = fetch_file(url, workspace.path, workspace.download_path.name, backend)
    except DownloadFailed as exc:
        raise DownloadFailed(f"Java {version} download failed: {exc}") from exc

    if not session.options.skip_cache:
        session.cache.store(key, archive)

    return materialize(archive, workspace, version=version, source="download", java_name=java_name)


def describe_plan(session: Session, version: int) -> List[str]:
    """Human-readable acquisition steps for ``version``; touches nothing."""
    key = cache_key_for(session, version)
    lines = [f"platform: {key.os_name}/{key.arch}", f"cache key: {key.filename}"]
    if session.options.skip_cache:
        lines.append("cache: disabled (--no-cache)")
        lines.append(f"would download: {download_url(key)}")
        return lines
    cached = session.cache.lookup(key)
    if cached is not None:
        lines.append(f"cache: hit ({cached})")
        return lines
    lines.append(f"cache: miss ({session.cache.root})")
    lines.append(f"would download: {download_url(key)}")
    lines.append(f"would cache archive as: {session.cache.path_for(key)}")
    return lines
