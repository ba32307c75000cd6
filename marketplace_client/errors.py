"""Error Classifier - Turns non-success responses into ApiError.

Statuses found in the merged error table (baseline labels overlaid with the
request's own errors map) raise ApiError with that label. 422 responses get
a message built from the validation details in the body. Any other non-2xx
status raises a generic ApiError describing status, status text and body.
"""

from __future__ import annotations

import json
from typing import Any

from marketplace_client.models import RequestOptions, ResponseEnvelope


BASE_ERROR_MESSAGES: dict[int, str] = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}

UNPROCESSABLE_ENTITY = 422


class ApiError(Exception):
    """A response was received but it is not a success.

    Carries the originating RequestOptions and the ResponseEnvelope so the
    caller can inspect status and body.
    """

    def __init__(self, request: RequestOptions, response: ResponseEnvelope, message: str) -> None:
        super().__init__(message)
        self.request = request
        self.response = response
        self.message = message

    @property
    def url(self) -> str:
        return self.response.url

    @property
    def status(self) -> int:
        return self.response.status

    @property
    def status_text(self) -> str:
        return self.response.status_text

    @property
    def body(self) -> Any:
        return self.response.body


def _json_dumps(value: Any, indent: int | None = None) -> str:
    return json.dumps(value, indent=indent, ensure_ascii=False)


def _format_validation_item(item: Any) -> str:
    if isinstance(item, dict) and item.get("loc") and item.get("msg"):
        loc = item["loc"]
        path = ".".join(str(part) for part in loc) if isinstance(loc, (list, tuple)) else str(loc)
        return f"{path}: {item['msg']}"
    return _json_dumps(item)


def validation_message(body: Any) -> str:
    """Build the 422 message from a FastAPI-style validation body.

    Raises:
        ValueError: If body is a string that is not valid JSON.
        TypeError: If part of the body cannot be serialized.
    """
    if isinstance(body, (str, bytes)):
        body = json.loads(body)

    detail = body.get("detail") if isinstance(body, dict) else None
    if detail:
        if isinstance(detail, list):
            joined = "; ".join(_format_validation_item(item) for item in detail)
            return f"Validation Error: {joined}"
        if isinstance(detail, str):
            return f"Validation Error: {detail}"
        return f"Validation Error: {_json_dumps(detail)}"

    message = body.get("message") if isinstance(body, dict) else None
    if message:
        return f"Validation Error: {message}"
    return f"Validation Error: {_json_dumps(body)}"


def _generic_body(body: Any) -> str | None:
    """Best-effort JSON rendering of body; None if it cannot be serialized.

    A missing body renders as null.
    """
    try:
        return _json_dumps(body, indent=2)
    except (TypeError, ValueError):
        return None


def catch_error_codes(options: RequestOptions, result: ResponseEnvelope) -> None:
    """Raise ApiError for result unless it is a success.

    Raises:
        ApiError: For known/overridden status codes and for any other non-2xx status.
    """
    errors = {**BASE_ERROR_MESSAGES, **options.errors}

    error = errors.get(result.status)
    if error:
        message = error
        if result.status == UNPROCESSABLE_ENTITY and result.body:
            try:
                message = validation_message(result.body)
            except (ValueError, TypeError, AttributeError):
                # Unparseable body: keep the table label
                message = error
        raise ApiError(options, result, message)

    if not result.ok:
        raise ApiError(
            options,
            result,
            f"Generic Error: status: {result.status}; "
            f"status text: {result.status_text}; "
            f"body: {_generic_body(result.body)}",
        )
