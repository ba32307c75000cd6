"""URL Builder - Resolves path templates and query parameters into URLs."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import quote

from marketplace_client.models import ClientConfig, RequestOptions


_PLACEHOLDER = re.compile(r"\{(.*?)\}")
_ABSOLUTE_URL = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")

# Characters left unescaped by JavaScript's encodeURIComponent
_COMPONENT_SAFE = "-_.!~*'()"


def is_absolute_url(url: str) -> bool:
    """True if url starts with a scheme (http://, https://, ...)."""
    return bool(_ABSOLUTE_URL.match(url))


def to_param_string(value: Any) -> str:
    """String form of a scalar parameter, matching what the API server expects.

    Booleans are lowercase and None is "null" so that query and form values
    look the same as the ones a browser client would send.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def encode_component(value: str) -> str:
    return quote(value, safe=_COMPONENT_SAFE)


def get_query_string(params: dict[str, Any]) -> str:
    """Build "?k=v&..." from params, or "" when nothing is emitted.

    Lists emit one pair per element under the same key, nested mappings
    emit key[subkey]=value, and None entries are skipped.
    """
    pairs: list[str] = []

    def append(key: str, value: Any) -> None:
        pairs.append(f"{encode_component(key)}={encode_component(to_param_string(value))}")

    def process(key: str, value: Any) -> None:
        if value is None:
            return
        if isinstance(value, (list, tuple)):
            for item in value:
                process(key, item)
        elif isinstance(value, dict):
            for sub_key, sub_value in value.items():
                process(f"{key}[{sub_key}]", sub_value)
        else:
            append(key, value)

    for key, value in params.items():
        process(key, value)

    if pairs:
        return "?" + "&".join(pairs)
    return ""


def render_path(config: ClientConfig, options: RequestOptions) -> str:
    """Substitute {api-version} and {name} placeholders in options.url.

    Placeholders without a value in options.path are left as they are.
    """
    encoder = config.encode_path

    def replacer(match: re.Match) -> str:
        name = match.group(1)
        if name in options.path:
            return encoder(to_param_string(options.path[name]))
        return match.group(0)

    path = options.url.replace("{api-version}", config.version)
    return _PLACEHOLDER.sub(replacer, path)


def build_url(config: ClientConfig, options: RequestOptions) -> str:
    """Join config.base and the rendered path, then append the query string.

    An absolute rendered path is used as-is; the base is not prepended.
    """
    path = render_path(config, options)

    if is_absolute_url(path):
        url = path
    else:
        base = config.base[:-1] if config.base.endswith("/") else config.base
        normalized_path = path if path.startswith("/") else f"/{path}"
        url = f"{base}{normalized_path}"

    if options.query:
        return f"{url}{get_query_string(options.query)}"
    return url
