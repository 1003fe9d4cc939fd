"""Minimal step-pipeline HTTP client that plugins can hook into."""

from .adapters import requests_adapter
from .client import CORE_OPTIONS, HttpClient
from .models import HttpRequest, HttpResponse

__all__ = [
    "CORE_OPTIONS",
    "HttpClient",
    "HttpRequest",
    "HttpResponse",
    "requests_adapter",
]
