"""Pytest configuration and shared helpers for marketplace-client tests.

This file provides:
- make_config / make_options: ClientConfig and RequestOptions with sensible defaults
- make_envelope: ResponseEnvelope construction for classifier tests
- make_transport: Transport backed by httpx.MockTransport
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

import httpx
import pytest

from marketplace_client.models import ClientConfig, RequestOptions, ResponseEnvelope, is_success
from marketplace_client.transport import Transport


BASE_URL = "https://api.example.com"

Handler = Callable[[httpx.Request], httpx.Response | Awaitable[httpx.Response]]


def make_config(**overrides: Any) -> ClientConfig:
    """Create a ClientConfig pointing at BASE_URL.

    Prefer this over constructing ClientConfig directly - tests only spell
    out the fields they vary.
    """
    values: dict[str, Any] = {"base": BASE_URL}
    values.update(overrides)
    return ClientConfig(**values)


def make_options(method: str = "GET", url: str = "/api/properties/", **overrides: Any) -> RequestOptions:
    return RequestOptions(method=method, url=url, **overrides)


def make_envelope(
    status: int = 200,
    body: Any = None,
    status_text: str = "",
    headers: dict[str, str] | None = None,
    url: str = f"{BASE_URL}/api/properties/",
) -> ResponseEnvelope:
    return ResponseEnvelope(
        url=url,
        ok=is_success(status),
        status=status,
        status_text=status_text,
        headers=headers or {},
        body=body,
    )


def make_transport(handler: Handler) -> Transport:
    """Transport whose httpx client answers through handler."""
    return Transport(transport=httpx.MockTransport(handler))


class RecordingHandler:
    """MockTransport handler that records requests and replies with a fixed response."""

    def __init__(self, status_code: int = 200, **response_kwargs: Any) -> None:
        self.status_code = status_code
        self.response_kwargs = response_kwargs
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, **self.response_kwargs)

    @property
    def calls(self) -> int:
        return len(self.requests)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def config() -> ClientConfig:
    return make_config()


@pytest.fixture
def recorder() -> RecordingHandler:
    return RecordingHandler(200, json={"ok": True})
