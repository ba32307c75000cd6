"""Internal data models for marketplace-client.

All models use Pydantic v2. Config values that may depend on the pending
request (token, username, password, headers) are stored as either a literal
or a resolver callable; see headers.resolve().
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Any, Callable, Literal
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Characters left unescaped by JavaScript's encodeURI
_URI_SAFE = ";,/?:@&=+$-_.!~*'()#"


def encode_uri(value: str) -> str:
    """Percent-encode a path value, keeping URI reserved characters."""
    return quote(value, safe=_URI_SAFE)


# =============================================================================
# Configuration
# =============================================================================


class CredentialsMode(str, Enum):
    """Cookie policy for cross-origin requests."""

    OMIT = "omit"
    INCLUDE = "include"
    SAME_ORIGIN = "same-origin"


class ClientConfig(BaseModel):
    """Settings read by every request.

    Mutable on purpose: the surrounding application updates credentials in
    place (e.g. after login). A request that is already in flight observes
    whichever value is current when its resolvers run.

    token, username, password and headers each accept a literal value or a
    callable taking the pending RequestOptions (sync or async).
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
        arbitrary_types_allowed=True,
    )

    base: str = Field(default="", description="API base URL, e.g. http://127.0.0.1:8000")
    version: str = Field(default="0.1.0", description="Substituted for {api-version}")
    with_credentials: bool = Field(default=False, description="Send cookies with requests")
    credentials: CredentialsMode = Field(
        default=CredentialsMode.INCLUDE, description="Cookie policy when with_credentials is set"
    )
    token: Any = Field(default=None, description="Bearer token or resolver")
    username: Any = Field(default=None, description="Basic auth username or resolver")
    password: Any = Field(default=None, description="Basic auth password or resolver")
    headers: Any = Field(default=None, description="Default headers mapping or resolver")
    encode_path: Callable[[str], str] = Field(
        default=encode_uri, description="Encoder applied to path parameter values"
    )
    timeout: float = Field(default=30.0, gt=0, description="Transport timeout in seconds")


# =============================================================================
# Request Bodies
# =============================================================================


class FileUpload(BaseModel):
    """A file-like value for multipart uploads."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    content: Any = Field(description="Raw bytes or a readable binary file object")
    filename: str = Field(default="blob", description="Filename sent in Content-Disposition")
    content_type: str | None = Field(default=None, description="MIME type of the file")


class JsonBody(BaseModel):
    """Body serialized as JSON by the transport."""

    model_config = ConfigDict(extra="forbid")

    value: Any = Field(description="JSON-serializable value")


class TextBody(BaseModel):
    """Plain string body."""

    model_config = ConfigDict(extra="forbid")

    text: str = Field(description="Body text")


class BinaryBody(BaseModel):
    """Raw binary body with its own MIME type."""

    model_config = ConfigDict(extra="forbid")

    data: bytes = Field(description="Body bytes")
    content_type: str | None = Field(default=None, description="MIME type, octet-stream if unset")


class FormData:
    """An ordered multipart form.

    Fields keep insertion order and a name may repeat (multi-file uploads).
    The boundary is fixed at construction so the Content-Type header reported
    by get_headers() matches the encoded body.
    """

    def __init__(self, boundary: str | None = None) -> None:
        self.boundary = boundary or os.urandom(16).hex()
        self._fields: list[tuple[str, str | FileUpload]] = []

    def append(self, name: str, value: str | FileUpload) -> None:
        self._fields.append((name, value))

    def get_all(self, name: str) -> list[str | FileUpload]:
        return [value for key, value in self._fields if key == name]

    def keys(self) -> list[str]:
        return [key for key, _ in self._fields]

    def items(self) -> list[tuple[str, str | FileUpload]]:
        return list(self._fields)

    def get_headers(self) -> dict[str, str]:
        return {"Content-Type": f"multipart/form-data; boundary={self.boundary}"}

    def to_httpx_files(self) -> list[tuple[str, tuple[str | None, Any, str | None]]]:
        """Render every field for httpx's files= argument.

        Text fields have no filename, so they are encoded as plain form
        fields while still forcing a multipart body.
        """
        files: list[tuple[str, tuple[str | None, Any, str | None]]] = []
        for name, value in self._fields:
            if isinstance(value, FileUpload):
                files.append((name, (value.filename, value.content, value.content_type)))
            else:
                files.append((name, (None, value, None)))
        return files

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"FormData(fields={self.keys()!r})"


RequestBody = JsonBody | TextBody | BinaryBody | FormData


def as_request_body(value: Any) -> RequestBody | None:
    """Decide the body variant for a raw call-site value."""
    if value is None or isinstance(value, (JsonBody, TextBody, BinaryBody, FormData)):
        return value
    if isinstance(value, str):
        return TextBody(text=value)
    if isinstance(value, (bytes, bytearray)):
        return BinaryBody(data=bytes(value))
    if isinstance(value, FileUpload):
        content = value.content if isinstance(value.content, bytes) else value.content.read()
        return BinaryBody(data=content, content_type=value.content_type)
    return JsonBody(value=value)


# =============================================================================
# Request / Response
# =============================================================================


HttpMethod = Literal["GET", "PUT", "POST", "DELETE", "OPTIONS", "HEAD", "PATCH"]


class RequestOptions(BaseModel):
    """One REST call: method, URL template, parameters, body and error labels.

    body and form_data should not both be set. When they are, form_data wins
    and the conflict is logged as a warning.
    """

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    method: HttpMethod = Field(description="HTTP method")
    url: str = Field(description="URL template, e.g. /api/properties/{property_id}")
    path: dict[str, Any] = Field(default_factory=dict, description="Path placeholder values")
    query: dict[str, Any] = Field(default_factory=dict, description="Query parameters")
    headers: dict[str, Any] = Field(default_factory=dict, description="Per-request headers")
    body: Any = Field(default=None, description="Request body variant")
    form_data: dict[str, Any] | FormData | None = Field(
        default=None, description="Multipart fields, or a prepared FormData"
    )
    media_type: str | None = Field(default=None, description="Explicit Content-Type")
    response_header: str | None = Field(
        default=None, description="Return this response header instead of the body"
    )
    errors: dict[int, str] = Field(
        default_factory=dict, description="Status code -> message overrides"
    )

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @field_validator("body", mode="before")
    @classmethod
    def decide_body_variant(cls, v: Any) -> RequestBody | None:
        return as_request_body(v)


class ResponseEnvelope(BaseModel):
    """Uniform result of a transport call, success or not.

    ok is derived from status (200 <= status < 300); the transport's own
    notion of success is never used.
    """

    model_config = ConfigDict(extra="forbid")

    url: str = Field(description="URL the request was sent to")
    ok: bool = Field(description="True for 2xx statuses")
    status: int = Field(description="HTTP status code")
    status_text: str = Field(default="", description="HTTP reason phrase")
    headers: dict[str, str] = Field(default_factory=dict, description="Response headers (lowercase keys)")
    body: Any = Field(default=None, description="Decoded response body")


def is_success(status: int) -> bool:
    return 200 <= status < 300
