"""Shared HTTP helpers for runjar."""

from __future__ import annotations

import os
from typing import Dict, Tuple, Type

import httpx

from .constants import API_BASE, API_BASE_ENV_VAR, HTTP_TIMEOUT_SECONDS
from .version import USER_AGENT

_TRANSPORT_LABELS: Tuple[Tuple[Type[httpx.HTTPError], str], ...] = (
    (httpx.TimeoutException, "request timed out"),
    (httpx.ProxyError, "proxy error"),
    (httpx.ConnectError, "could not connect"),
    (httpx.RequestError, "network error"),
)


def http_timeout() -> httpx.Timeout:
    return httpx.Timeout(HTTP_TIMEOUT_SECONDS, connect=HTTP_TIMEOUT_SECONDS)


def api_base_url() -> str:
    return (os.environ.get(API_BASE_ENV_VAR) or API_BASE).rstrip("/")


def request_headers(*, accept: str = "application/json") -> Dict[str, str]:
    return {
        "Accept": accept,
        "User-Agent": USER_AGENT,
    }


def describe_http_error(exc: httpx.HTTPError) -> str:
    """One-line summary of an httpx failure for log and error messages."""
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        status = f"{response.status_code} {response.reason_phrase}".strip()
        body = (response.text or "").strip()
        if not body:
            return status
        return f"{status}: {body.splitlines()[0][:200]}"

    label = exc.__class__.__name__
    for error_type, text in _TRANSPORT_LABELS:
        if isinstance(exc, error_type):
            label = text
            break
    message = str(exc).strip()
    summary = f"{label}: {message}" if message else label
    try:
        request = exc.request
    except RuntimeError:
        # raised when the error was built without a request
        return summary
    return f"{summary} ({request.method} {request.url})"
