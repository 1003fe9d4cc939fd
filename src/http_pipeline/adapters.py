"""Adapters perform the actual network call for a request.

An adapter is a synchronous callable `(HttpRequest) -> HttpResponse` that
raises on transport failures. The client runs it in a worker thread.
"""

from __future__ import annotations

from typing import Any, Protocol

import requests  # type: ignore

from .models import HttpRequest, HttpResponse

DEFAULT_TIMEOUT = 30.0


class Adapter(Protocol):
    def __call__(self, request: HttpRequest) -> HttpResponse:
        """Send the request and return the decoded response."""


def requests_adapter(request: HttpRequest) -> HttpResponse:
    """Execute the request with `requests`.

    Non-2xx statuses are returned as responses; only transport errors
    (`requests.RequestException`) are raised.
    """
    resp = requests.request(
        request.method,
        request.url,
        headers=request.headers,
        params=request.options.get("params"),
        json=request.options.get("json"),
        data=request.options.get("data"),
        timeout=request.options.get("timeout", DEFAULT_TIMEOUT),
    )
    headers = {str(k).lower(): str(v) for k, v in resp.headers.items()}
    return HttpResponse(status=resp.status_code, headers=headers, body=_decode_body(resp, headers))


def _decode_body(resp: Any, headers: dict[str, str]) -> Any:
    """Decode JSON bodies; return text for anything else (None when empty)."""
    if not resp.content:
        return None
    if "json" in headers.get("content-type", ""):
        try:
            return resp.json()
        except ValueError:
            return resp.text
    return resp.text
