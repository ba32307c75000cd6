"""Header Composer - Builds the outgoing header set for one request.

Precedence, lowest to highest:
    Accept: application/json < config.headers < options.headers < form headers

Authorization is applied after the merge: a bearer token first, then Basic
credentials, so Basic wins when both are configured. Content-Type is derived
from the body only when no form data is sent.
"""

from __future__ import annotations

import asyncio
import base64
import inspect
from typing import Any

from marketplace_client.models import (
    BinaryBody,
    ClientConfig,
    FormData,
    JsonBody,
    RequestOptions,
    TextBody,
)
from marketplace_client.url_builder import to_param_string


async def resolve(options: RequestOptions, resolver: Any) -> Any:
    """Return a config value, invoking it first if it is a resolver.

    A resolver is any callable taking the pending RequestOptions. Its result
    is awaited when it is awaitable, so sync and async resolvers both work.
    """
    if callable(resolver):
        result = resolver(options)
        if inspect.isawaitable(result):
            return await result
        return result
    return resolver


def _has_value(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def basic_credentials(username: str, password: str) -> str:
    return base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")


def _set_header(headers: dict[str, str], name: str, value: str) -> None:
    """Set name, replacing any existing key that differs only in case."""
    for key in [k for k in headers if k.lower() == name.lower()]:
        del headers[key]
    headers[name] = value


def merge_headers(*sources: dict[str, Any] | None) -> dict[str, str]:
    """Merge header mappings left to right, dropping None values."""
    merged: dict[str, str] = {}
    for source in sources:
        if not source:
            continue
        for name, value in source.items():
            if value is None:
                continue
            _set_header(merged, name, to_param_string(value))
    return merged


def _default_content_type(options: RequestOptions) -> str | None:
    if options.media_type:
        return options.media_type
    body = options.body
    if isinstance(body, BinaryBody):
        return body.content_type or "application/octet-stream"
    if isinstance(body, TextBody):
        return "text/plain"
    if isinstance(body, JsonBody):
        return "application/json"
    return None


async def get_headers(
    config: ClientConfig,
    options: RequestOptions,
    form_data: FormData | None = None,
) -> dict[str, str]:
    """Resolve config credentials and headers, then compose the header set."""
    token, username, password, additional_headers = await asyncio.gather(
        resolve(options, config.token),
        resolve(options, config.username),
        resolve(options, config.password),
        resolve(options, config.headers),
    )

    form_headers = form_data.get_headers() if form_data is not None else {}

    headers = merge_headers(
        {"Accept": "application/json"},
        additional_headers,
        options.headers,
        form_headers,
    )

    if _has_value(token):
        _set_header(headers, "Authorization", f"Bearer {token}")

    if _has_value(username) and _has_value(password):
        _set_header(headers, "Authorization", f"Basic {basic_credentials(username, password)}")

    if form_data is None and options.body is not None:
        content_type = _default_content_type(options)
        if content_type:
            _set_header(headers, "Content-Type", content_type)

    return headers
