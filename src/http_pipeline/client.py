"""Async HTTP client built around ordered request/response/error steps.

This client implements a small step pipeline:

- Request steps run in order and may rewrite the outgoing `HttpRequest`.
- The adapter performs the network call (in a worker thread).
- Response steps run in order on `(request, response)` after a successful call.
- Error steps run in order on `(request, exception)` when the adapter raises;
  the resulting exception is then raised to the caller.

Plugins hook in by registering option names, storing private values and
prepending/appending named steps. Each invocation works on its own
`HttpRequest` copy so plugins can keep per-request state in private storage.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, TypeAlias

from .adapters import DEFAULT_TIMEOUT, Adapter, requests_adapter
from .models import HttpRequest, HttpResponse, _check_registered

RequestStep: TypeAlias = Callable[[HttpRequest], HttpRequest]
ResponseStep: TypeAlias = Callable[[HttpRequest, HttpResponse], tuple[HttpRequest, HttpResponse]]
ErrorStep: TypeAlias = Callable[[HttpRequest, Exception], tuple[HttpRequest, Exception]]

# Options understood by the client itself; plugins register their own.
CORE_OPTIONS: frozenset[str] = frozenset({"adapter", "data", "headers", "json", "params", "timeout"})


class HttpClient:
    """Configurable client whose behavior is composed from named steps.

    Members:
    - Base URL joined with relative request URLs: `base_url`
    - Default headers: `headers`
    - Default adapter: `adapter`
    - Default options applied to every request: `default_options`
    - Options accepted per request: `registered_options`
    - Values copied into every request's private storage: `private`
    - Step lists: `request_steps`, `response_steps`, `error_steps`
    """

    def __init__(
        self,
        *,
        base_url: str = "",
        headers: dict[str, str] | None = None,
        adapter: Adapter | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Create a client with no steps installed."""
        self.base_url = base_url
        self.headers: dict[str, str] = dict(headers or {})
        self.adapter: Adapter = adapter or requests_adapter
        self.default_options: dict[str, Any] = {"timeout": timeout}
        self.registered_options: set[str] = set(CORE_OPTIONS)
        self.private: dict[str, Any] = {}

        self.request_steps: list[tuple[str, RequestStep]] = []
        self.response_steps: list[tuple[str, ResponseStep]] = []
        self.error_steps: list[tuple[str, ErrorStep]] = []

    def register_options(self, *names: str) -> HttpClient:
        """Declare additional per-request option names."""
        self.registered_options.update(names)
        return self

    def put_private(self, key: str, value: Any) -> HttpClient:
        """Store a value copied into the private storage of every request."""
        self.private[key] = value
        return self

    def get_private(self, key: str, default: Any = None) -> Any:
        """Return a client-level private value (or `default`)."""
        return self.private.get(key, default)

    def prepend_request_steps(self, **steps: RequestStep) -> HttpClient:
        self.request_steps[:0] = list(steps.items())
        return self

    def append_request_steps(self, **steps: RequestStep) -> HttpClient:
        self.request_steps.extend(steps.items())
        return self

    def prepend_response_steps(self, **steps: ResponseStep) -> HttpClient:
        self.response_steps[:0] = list(steps.items())
        return self

    def append_response_steps(self, **steps: ResponseStep) -> HttpClient:
        self.response_steps.extend(steps.items())
        return self

    def prepend_error_steps(self, **steps: ErrorStep) -> HttpClient:
        self.error_steps[:0] = list(steps.items())
        return self

    def append_error_steps(self, **steps: ErrorStep) -> HttpClient:
        self.error_steps.extend(steps.items())
        return self

    def build_request(self, method: str, url: str = "", **options: Any) -> HttpRequest:
        """Create the `HttpRequest` for one invocation.

        Raises:
        - `ValueError` if an option has not been registered
        """
        _check_registered(options, self.registered_options)
        merged = {**self.default_options, **options}
        headers = {**self.headers, **(merged.pop("headers", None) or {})}
        return HttpRequest(
            method=method.upper(),
            url=self._join_url(url),
            headers=headers,
            options=merged,
            registered_options=frozenset(self.registered_options),
            private=dict(self.private),
        )

    async def request(self, method: str, url: str = "", **options: Any) -> HttpResponse:
        """Run one request through the pipeline and return its response.

        Raises whatever exception remains after the error steps have run.
        """
        req = self.build_request(method, url, **options)
        for _name, step in list(self.request_steps):
            req = step(req)

        adapter: Adapter = req.options.get("adapter") or self.adapter
        try:
            response = await asyncio.to_thread(adapter, req)
        except Exception as exc:  # noqa: BLE001 - routed through error steps, then re-raised
            error: Exception = exc
            for _name, step in list(self.error_steps):
                req, error = step(req, error)
            if error is exc:
                raise
            raise error from exc

        for _name, step in list(self.response_steps):
            req, response = step(req, response)
        return response

    async def get(self, url: str = "", **options: Any) -> HttpResponse:
        return await self.request("GET", url, **options)

    async def post(self, url: str = "", **options: Any) -> HttpResponse:
        return await self.request("POST", url, **options)

    async def put(self, url: str = "", **options: Any) -> HttpResponse:
        return await self.request("PUT", url, **options)

    async def patch(self, url: str = "", **options: Any) -> HttpResponse:
        return await self.request("PATCH", url, **options)

    async def delete(self, url: str = "", **options: Any) -> HttpResponse:
        return await self.request("DELETE", url, **options)

    async def head(self, url: str = "", **options: Any) -> HttpResponse:
        return await self.request("HEAD", url, **options)

    def _join_url(self, url: str) -> str:
        """Join a relative URL onto `base_url`; absolute URLs pass through."""
        if not self.base_url or url.startswith(("http://", "https://")):
            return url
        if not url:
            return self.base_url
        return self.base_url.rstrip("/") + "/" + url.lstrip("/")
