"""Downloader backends used to fetch runtime archives through pooch.

A runtime download is attempted exactly once. A failed or empty transfer
surfaces as :class:`DownloadFailed`; trying again is the fallback
coordinator's business, and it always moves on to a different version.
"""

from __future__ import annotations

import importlib
import os
import sys
import time
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import httpx
import pooch

from .constants import HTTP_TIMEOUT_SECONDS
from .errors import CLIError, DownloadFailed, NoDownloaderAvailable
from .http import describe_http_error, request_headers
from .utils import format_bytes

_CHUNK_SIZE = 64 * 1024


class HTTPXDownloader:
    """Pooch downloader that streams a single GET through httpx."""

    def __init__(
        self,
        timeout: float,
        *,
        client_factory: Optional[Callable[[httpx.Timeout], httpx.Client]] = None,
    ) -> None:
        self.timeout = timeout
        self.client_factory = client_factory or self._default_client_factory

    def _default_client_factory(self, timeout: httpx.Timeout) -> httpx.Client:
        return httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers=request_headers(accept="*/*"),
        )

    def __call__(
        self,
        url: str,
        output_file: str,
        pooch_obj: Any,
        progressbar: bool = False,
        **_: Any,
    ) -> None:
        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        part_path = output_path.with_name(f"{output_path.name}.part")
        progress = _ProgressLine(output_path.name, enabled=progressbar and sys.stderr.isatty())
        timeout = httpx.Timeout(self.timeout, connect=self.timeout)
        try:
            with self.client_factory(timeout) as client:
                with client.stream("GET", url) as response:
                    response.raise_for_status()
                    progress.expect(response.headers.get("Content-Length"))
                    with part_path.open("wb") as fh:
                        for chunk in response.iter_bytes(chunk_size=_CHUNK_SIZE):
                            fh.write(chunk)
                            progress.advance(len(chunk))
            os.replace(part_path, output_path)
        except httpx.HTTPError as exc:
            _discard(part_path)
            message = f"download from {_host_of(url)} failed: {describe_http_error(exc)}"
            hint = download_hint(exc)
            if hint:
                message = f"{message} (hint: {hint})"
            raise CLIError(message) from exc
        except OSError as exc:
            _discard(part_path)
            raise CLIError(f"failed to write download file {output_path}: {exc}") from exc
        finally:
            progress.close()


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except OSError:
        pass


def _host_of(url: str) -> str:
    try:
        return httpx.URL(url).host or url
    except httpx.InvalidURL:
        return url


def download_hint(exc: httpx.HTTPError) -> Optional[str]:
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 404:
            return "no runtime published for this version/platform; try another --java-version"
        if status == 429 or status >= 500:
            return "the download service is struggling; run again later"
        return None
    if isinstance(exc, httpx.ProxyError):
        return "check HTTP_PROXY/HTTPS_PROXY/NO_PROXY"
    if isinstance(exc, (httpx.ConnectError, httpx.TimeoutException)):
        return "check your network connection"
    return None


class _ProgressLine:
    """Single self-overwriting stderr line showing transfer progress."""

    def __init__(self, label: str, *, enabled: bool) -> None:
        self.label = label
        self.enabled = enabled
        self.total: Optional[int] = None
        self.received = 0
        self._drawn_at = 0.0
        self._width = 0

    def expect(self, content_length: Optional[str]) -> None:
        try:
            total = int(content_length) if content_length else 0
        except ValueError:
            total = 0
        self.total = total if total > 0 else None
        self._draw()

    def advance(self, count: int) -> None:
        self.received += count
        now = time.monotonic()
        if now - self._drawn_at >= 0.1:
            self._drawn_at = now
            self._draw()

    def close(self) -> None:
        if not self.enabled:
            return
        self._draw()
        sys.stderr.write("\n")
        sys.stderr.flush()
        self.enabled = False

    def _draw(self) -> None:
        if not self.enabled:
            return
        text = f"{self.label} {format_bytes(self.received)}"
        if self.total:
            percent = min(100, self.received * 100 // self.total)
            text = f"{text}/{format_bytes(self.total)} ({percent}%)"
        sys.stderr.write("\r" + text.ljust(self._width))
        sys.stderr.flush()
        self._width = max(self._width, len(text))


@dataclass(frozen=True)
class DownloaderBackend:
    """A pooch-compatible downloader, usable when ``module`` can be imported."""

    name: str
    module: str
    factory: Callable[[], Callable[..., None]]

    def available(self) -> bool:
        try:
            importlib.import_module(self.module)
        except ImportError:
            return False
        return True

    def create(self) -> Callable[..., None]:
        return self.factory()


def _httpx_downloader() -> Callable[..., None]:
    return partial(HTTPXDownloader(timeout=HTTP_TIMEOUT_SECONDS), progressbar=True)


def _requests_downloader() -> Callable[..., None]:
    return pooch.HTTPDownloader(timeout=HTTP_TIMEOUT_SECONDS)


DOWNLOADER_BACKENDS: Sequence[DownloaderBackend] = (
    DownloaderBackend("httpx", "httpx", _httpx_downloader),
    DownloaderBackend("requests", "requests", _requests_downloader),
)


def order_backends(
    backends: Sequence[DownloaderBackend], preferred: Optional[str]
) -> Sequence[DownloaderBackend]:
    """Move the backend named ``preferred`` to the front, keeping the rest in order."""
    if not preferred:
        return backends
    names = [backend.name for backend in backends]
    if preferred not in names:
        raise CLIError(f"unknown downloader {preferred!r} (choose from: {', '.join(names)})")
    return tuple(sorted(backends, key=lambda backend: backend.name != preferred))


def select_downloader(backends: Sequence[DownloaderBackend]) -> DownloaderBackend:
    for backend in backends:
        if backend.available():
            return backend
    names = ", ".join(backend.name for backend in backends) or "none configured"
    raise NoDownloaderAvailable(f"no downloader backend is available (tried: {names})")


def fetch_file(url: str, dest_dir: Path, fname: str, backend: DownloaderBackend) -> Path:
    """Download ``url`` to ``dest_dir/fname`` once; an empty result is a failure."""
    try:
        target = Path(
            pooch.retrieve(
                url=url,
                known_hash=None,
                fname=fname,
                path=dest_dir,
                downloader=backend.create(),
            )
        )
    except (CLIError, ValueError, OSError) as exc:
        raise DownloadFailed(str(exc)) from exc
    try:
        size = target.stat().st_size
    except OSError as exc:
        raise DownloadFailed(f"downloaded file {target} is missing: {exc}") from exc
    if size == 0:
        raise DownloadFailed(f"downloaded file {target.name} is empty")
    return target
