"""Request/response models passed through the step pipeline.

An `HttpRequest` is created fresh for every invocation from the client's
configuration, so steps may freely mutate its options and private storage
without affecting other invocations.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class HttpResponse(BaseModel):
    """A decoded HTTP response returned by an adapter."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    status: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None


class HttpRequest(BaseModel):
    """A single request invocation travelling through the pipeline.

    Members:
    - HTTP method (upper-case): `method`
    - Absolute URL (without query string): `url`
    - Request headers: `headers`
    - Effective options for this invocation: `options`
    - Names accepted by `merge_options`: `registered_options`
    - Plugin-owned storage scoped to this invocation: `private`
    """

    model_config = ConfigDict(extra="forbid")

    method: str = "GET"
    url: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    options: dict[str, Any] = Field(default_factory=dict)
    registered_options: frozenset[str] = frozenset()
    private: dict[str, Any] = Field(default_factory=dict)

    def get_private(self, key: str, default: Any = None) -> Any:
        """Return a private value stored by a plugin (or `default`)."""
        return self.private.get(key, default)

    def put_private(self, key: str, value: Any) -> HttpRequest:
        """Store a private value for the remainder of this invocation."""
        self.private[key] = value
        return self

    def merge_options(self, **options: Any) -> HttpRequest:
        """Merge options into this invocation, rejecting unregistered names."""
        _check_registered(options, self.registered_options)
        self.options.update(options)
        return self


def _check_registered(options: Iterable[str], registered: frozenset[str] | set[str]) -> None:
    """Raise ValueError naming any option that no plugin has registered."""
    unknown = sorted(name for name in options if name not in registered)
    if unknown:
        raise ValueError(f"unknown option(s) {unknown!r}. Registered options: {sorted(registered)!r}")
