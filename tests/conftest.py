from __future__ import annotations

import io
import json
import tarfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import httpx
import pytest

import runjar.console as console
from runjar.cache import CacheStore
from runjar.constants import (
    CACHE_ENV_VAR,
    CONFIG_ENV_VAR,
    DOWNLOADER_ENV_VAR,
    JAVA_VERSION_ENV_VAR,
    VERBOSE_ENV_VAR,
)
from runjar.context import LaunchOptions, Session
from runjar.downloads import DownloaderBackend
from runjar.errors import CLIError
from runjar.platforms import PlatformInfo, get_platform_info


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv(CACHE_ENV_VAR, str(tmp_path / "cache"))
    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "config.toml"))
    monkeypatch.delenv(JAVA_VERSION_ENV_VAR, raising=False)
    monkeypatch.delenv(VERBOSE_ENV_VAR, raising=False)
    monkeypatch.delenv(DOWNLOADER_ENV_VAR, raising=False)
    monkeypatch.delenv("RUNJAR_API_BASE", raising=False)
    monkeypatch.setattr(console, "_VERBOSE", False)
    get_platform_info.cache_clear()
    yield
    get_platform_info.cache_clear()


def _add_file(tf: tarfile.TarFile, name: str, data: bytes = b"", mode: int = 0o644) -> None:
    info = tarfile.TarInfo(name)
    info.size = len(data)
    info.mode = mode
    tf.addfile(info, io.BytesIO(data))


def _add_dir(tf: tarfile.TarFile, name: str) -> None:
    info = tarfile.TarInfo(name)
    info.type = tarfile.DIRTYPE
    info.mode = 0o755
    tf.addfile(info)


@pytest.fixture
def make_tarball(tmp_path) -> Callable[..., Path]:
    """Build a .tar.gz from ``{member: bytes}``; a ``None`` value makes a directory."""

    def _make(members: Dict[str, Optional[bytes]], name: str = "runtime.tar.gz") -> Path:
        path = tmp_path / "archives" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with tarfile.open(path, "w:gz") as tf:
            for member, data in members.items():
                if data is None:
                    _add_dir(tf, member)
                else:
                    _add_file(tf, member, data)
        return path

    return _make


@pytest.fixture
def jdk_archive(make_tarball) -> Path:
    return make_tarball(
        {
            "jdk-21.0.4+7-jre/": None,
            "jdk-21.0.4+7-jre/bin/java": b"#!/bin/sh\n",
            "jdk-21.0.4+7-jre/lib/modules": b"modules",
        },
        name="jdk.tar.gz",
    )


@pytest.fixture
def mac_bundle_archive(make_tarball) -> Path:
    return make_tarball(
        {
            "jdk-17.0.12+7-jre/Contents/Info.plist": b"<plist/>",
            "jdk-17.0.12+7-jre/Contents/Home/bin/java": b"#!/bin/sh\n",
            "jdk-17.0.12+7-jre/Contents/Home/release": b"JAVA_VERSION=17",
        },
        name="mac.tar.gz",
    )


@pytest.fixture
def corrupt_archive(tmp_path) -> Path:
    path = tmp_path / "archives" / "corrupt.tar.gz"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x1f\x8bthis is not a gzip stream")
    return path


@pytest.fixture
def jar_file(tmp_path) -> Path:
    path = tmp_path / "My App-1.0.jar"
    path.write_bytes(b"PK\x03\x04")
    return path


class RecordingRunner:
    """Process runner double returning scripted exit codes."""

    def __init__(self, returncodes: Sequence[int] = (0,)) -> None:
        self.returncodes = list(returncodes)
        self.calls: List[Tuple[List[str], Dict[str, str]]] = []

    def __call__(self, cmd: Sequence[str], env: Dict[str, str]) -> int:
        self.calls.append((list(cmd), dict(env)))
        if not self.returncodes:
            return 1
        return self.returncodes.pop(0)


class StaticDownloader:
    """Pooch downloader double that copies a prepared archive."""

    def __init__(self, archives: Dict[int, Path]) -> None:
        self.archives = archives
        self.urls: List[str] = []

    def __call__(self, url: str, output_file: str, pooch_obj: Any, **_: Any) -> None:
        self.urls.append(url)
        version = int(url.split("/binary/latest/")[1].split("/")[0])
        archive = self.archives.get(version)
        if archive is None:
            raise CLIError(f"download from test failed: 404 Not Found ({url})")
        Path(output_file).write_bytes(archive.read_bytes())


@pytest.fixture
def recording_runner() -> type[RecordingRunner]:
    return RecordingRunner


@pytest.fixture
def static_downloader() -> type[StaticDownloader]:
    return StaticDownloader


@pytest.fixture
def make_session(tmp_path) -> Callable[..., Session]:
    def _make(
        *,
        runner: Optional[Callable[..., int]] = None,
        downloader: Optional[Callable[..., None]] = None,
        platform: PlatformInfo = PlatformInfo("linux", "x64"),
        **option_overrides: Any,
    ) -> Session:
        options = LaunchOptions(**{"java_version": 21, **option_overrides})
        workspaces = tmp_path / "workspaces"
        workspaces.mkdir(exist_ok=True)
        backends: Sequence[DownloaderBackend] = ()
        if downloader is not None:
            backends = (DownloaderBackend("test", "httpx", lambda: downloader),)
        return Session(
            options=options,
            cache=CacheStore(tmp_path / "cache", lock_timeout=1.0),
            label="app",
            platform=platform,
            downloaders=backends,
            runner=runner or RecordingRunner(),
            workspace_parent=workspaces,
        )

    return _make


class FakeResponse:
    def __init__(
        self,
        url: str,
        *,
        status_code: int = 200,
        content: bytes = b"",
        json_data: Any = None,
        reason: str = "OK",
    ) -> None:
        self.url = url
        self.status_code = status_code
        self.content = content
        self._json_data = json_data
        self.reason_phrase = reason
        self.headers: Dict[str, str] = {}
        self.text = (
            content.decode("utf-8", "replace") if isinstance(content, bytes) else str(content)
        )

    def json(self) -> Any:
        if self._json_data is not None:
            return self._json_data
        return json.loads(self.content.decode("utf-8"))

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            request = httpx.Request("GET", self.url)
            raise httpx.HTTPStatusError(
                "error",
                request=request,
                response=self,
            )


class FakeClient:
    def __init__(self, responses: List[FakeResponse], calls: Optional[list] = None) -> None:
        self._responses = list(responses)
        self.calls = [] if calls is None else calls

    def __enter__(self) -> FakeClient:
        return self

    def __exit__(self, *exc: Any) -> bool:
        return False

    def get(self, url: Any, *, headers: Optional[Dict[str, str]] = None) -> FakeResponse:
        if not self._responses:
            raise AssertionError("unexpected request")
        response = self._responses.pop(0)
        assert response.url == str(url)
        self.calls.append(("GET", str(url), headers or {}))
        return response


@pytest.fixture
def fake_response() -> type[FakeResponse]:
    return FakeResponse


@pytest.fixture
def fake_client() -> type[FakeClient]:
    return FakeClient
