import sys
from types import SimpleNamespace

import httpx
import pytest

import runjar.downloads as downloads
from runjar.errors import CLIError, DownloadFailed, NoDownloaderAvailable


def _mock_client_factory(handler):
    transport = httpx.MockTransport(handler)
    return lambda timeout: httpx.Client(
        timeout=timeout,
        follow_redirects=True,
        transport=transport,
    )


def test_httpx_downloader_writes_output(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"archive-bytes", request=request)

    downloader = downloads.HTTPXDownloader(
        timeout=0.1, client_factory=_mock_client_factory(handler)
    )
    output = tmp_path / "out.bin"
    downloader("https://example.com/out.bin", str(output), SimpleNamespace())
    assert output.read_bytes() == b"archive-bytes"
    assert not (tmp_path / "out.bin.part").exists()


def _service_unavailable(request: httpx.Request) -> httpx.Response:
    return httpx.Response(503, content=b"busy", request=request)


def _refuse_connection(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("boom", request=request)


@pytest.mark.parametrize("respond", [_service_unavailable, _refuse_connection])
def test_httpx_downloader_makes_a_single_attempt(tmp_path, respond):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url)
        if len(calls) == 1:
            return respond(request)
        return httpx.Response(200, content=b"ok", request=request)

    downloader = downloads.HTTPXDownloader(
        timeout=0.1, client_factory=_mock_client_factory(handler)
    )
    output = tmp_path / "out.bin"
    with pytest.raises(CLIError):
        downloader("https://example.com/out.bin", str(output), SimpleNamespace())
    assert len(calls) == 1
    assert not output.exists()
    assert not (tmp_path / "out.bin.part").exists()


def test_httpx_downloader_404_carries_hint(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, content=b"nope", request=request)

    downloader = downloads.HTTPXDownloader(
        timeout=0.1, client_factory=_mock_client_factory(handler)
    )
    with pytest.raises(CLIError) as excinfo:
        downloader(
            "https://api.example.com/v3/binary/latest/99/ga/linux/x64/jre/hotspot/normal/eclipse",
            str(tmp_path / "out.bin"),
            SimpleNamespace(),
        )

    message = str(excinfo.value)
    assert "api.example.com" in message
    assert "404" in message
    assert "hint:" in message
    assert "--java-version" in message


def test_download_hint_for_connect_error():
    request = httpx.Request("GET", "https://example.com/")
    assert downloads.download_hint(httpx.ConnectError("x", request=request)) == (
        "check your network connection"
    )
    response = httpx.Response(401, request=request)
    error = httpx.HTTPStatusError("denied", request=request, response=response)
    assert downloads.download_hint(error) is None



def test_select_downloader_prefers_first_available():
    first = downloads.DownloaderBackend("first", "runjar_missing_module_for_tests", lambda: None)
    second = downloads.DownloaderBackend("second", "httpx", lambda: None)
    assert downloads.select_downloader([first, second]) is second


def test_select_downloader_without_backends():
    missing = downloads.DownloaderBackend("ghost", "runjar_missing_module_for_tests", lambda: None)
    with pytest.raises(NoDownloaderAvailable) as excinfo:
        downloads.select_downloader([missing])
    assert "ghost" in str(excinfo.value)


def test_default_backends_order():
    assert [backend.name for backend in downloads.DOWNLOADER_BACKENDS] == ["httpx", "requests"]


def _backend(func):
    return downloads.DownloaderBackend("test", "httpx", lambda: func)


def test_fetch_file_writes_target(tmp_path):
    def downloader(url, output_file, pooch_obj, **kwargs):
        with open(output_file, "wb") as fh:
            fh.write(b"archive")

    target = downloads.fetch_file(
        "https://example.com/java.tar.gz", tmp_path, "java.tar.gz", _backend(downloader)
    )
    assert target == tmp_path / "java.tar.gz"
    assert target.read_bytes() == b"archive"


def test_fetch_file_rejects_empty_download(tmp_path):
    def downloader(url, output_file, pooch_obj, **kwargs):
        open(output_file, "wb").close()

    with pytest.raises(DownloadFailed) as excinfo:
        downloads.fetch_file(
            "https://example.com/java.tar.gz", tmp_path, "java.tar.gz", _backend(downloader)
        )
    assert "empty" in str(excinfo.value)


def test_fetch_file_wraps_downloader_errors(tmp_path):
    def downloader(url, output_file, pooch_obj, **kwargs):
        raise CLIError("download from example.com failed: 404 Not Found")

    with pytest.raises(DownloadFailed) as excinfo:
        downloads.fetch_file(
            "https://example.com/java.tar.gz", tmp_path, "java.tar.gz", _backend(downloader)
        )
    assert "404" in str(excinfo.value)
    assert not (tmp_path / "java.tar.gz").exists()


def test_select_downloader_uses_requests_when_httpx_cannot_import(monkeypatch):
    monkeypatch.setitem(sys.modules, "httpx", None)
    backend = downloads.select_downloader(downloads.DOWNLOADER_BACKENDS)
    assert backend.name == "requests"


def test_order_backends_moves_preferred_first():
    ordered = downloads.order_backends(downloads.DOWNLOADER_BACKENDS, "requests")
    assert [backend.name for backend in ordered] == ["requests", "httpx"]
    assert downloads.order_backends(downloads.DOWNLOADER_BACKENDS, None) == (
        downloads.DOWNLOADER_BACKENDS
    )


def test_order_backends_rejects_unknown_name():
    with pytest.raises(CLIError) as excinfo:
        downloads.order_backends(downloads.DOWNLOADER_BACKENDS, "curl")
    assert "curl" in str(excinfo.value)
