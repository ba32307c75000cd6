"""File-backed storage for the signed-in user's access token."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Awaitable, Callable

from marketplace_client.models import ClientConfig, RequestOptions


DEFAULT_TOKEN_KEY = "kh_token"


class TokenStore:
    """Keeps tokens in a small JSON object on disk, keyed like browser storage.

    A missing or unreadable file reads as "no token".
    """

    def __init__(self, path: str | Path, key: str = DEFAULT_TOKEN_KEY) -> None:
        self._path = Path(path)
        self._key = key
        self._lock = threading.Lock()

    def _read(self) -> dict[str, Any]:
        try:
            with self._path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as fh:
            json.dump(data, fh)

    def get(self) -> str | None:
        with self._lock:
            value = self._read().get(self._key)
        return value if isinstance(value, str) and value else None

    def set(self, token: str) -> None:
        with self._lock:
            data = self._read()
            data[self._key] = token
            self._write(data)

    def clear(self) -> None:
        with self._lock:
            data = self._read()
            if data.pop(self._key, None) is not None:
                self._write(data)

    def resolver(self) -> Callable[[RequestOptions], Awaitable[str | None]]:
        """Token resolver for ClientConfig.token that reads the store per request."""

        async def resolve_token(options: RequestOptions) -> str | None:
            return self.get()

        return resolve_token

    def install(self, config: ClientConfig) -> bool:
        """Copy the stored token into config.token. Returns True if one was found."""
        token = self.get()
        if token:
            config.token = token
            return True
        return False
