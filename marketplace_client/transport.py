"""Transport - Sends one request through httpx and captures the response.

The transport never raises for HTTP error statuses: any response the server
sends back becomes a ResponseEnvelope and is judged later by the error
classifier. Only calls that produce no response at all raise NetworkError.

Usage:
    async with Transport() as transport:
        envelope = await transport.send(config, options, url, body, form, headers, token)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from marketplace_client.cancelable import CancelError, CancellationToken
from marketplace_client.models import (
    BinaryBody,
    ClientConfig,
    CredentialsMode,
    FormData,
    JsonBody,
    RequestBody,
    RequestOptions,
    ResponseEnvelope,
    TextBody,
    is_success,
)
from marketplace_client.url_builder import is_absolute_url


logger = logging.getLogger(__name__)

XSRF_COOKIE_NAME = "XSRF-TOKEN"
XSRF_HEADER_NAME = "X-XSRF-TOKEN"


class NetworkError(Exception):
    """Raised when no response was obtained (DNS, refused connection, timeout)."""

    def __init__(
        self,
        message: str,
        *,
        method: str,
        url: str,
        base_url: str,
        code: str,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.url = url
        self.base_url = base_url
        self.code = code


def describe_network_error(
    method: str,
    url: str,
    base_url: str,
    message: str,
    code: str,
) -> str:
    """Human-readable diagnostic for a failed connection. Logging only."""
    full_url = url if is_absolute_url(url) or not base_url else f"{base_url}{url}"
    return (
        f"Network request failed: {method.upper()} {full_url}\n"
        f"Error: {message or 'Unknown network error'}\n"
        f"Code: {code or 'UNKNOWN'}\n"
        f"Please check:\n"
        f"1. Backend server is running at {base_url or 'undefined'}\n"
        f"2. CORS is properly configured\n"
        f"3. Network connectivity is available"
    )


def _decode_body(response: httpx.Response) -> Any:
    """Decode a response body.

    JSON content types -> parsed value (text if not valid JSON)
    text/*             -> str
    empty              -> None
    everything else    -> bytes
    """
    if not response.content:
        return None

    content_type = response.headers.get("content-type", "").lower()
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    if content_type.startswith("text/"):
        return response.text
    return response.content


class Transport:
    """Executes requests against an injected or owned httpx.AsyncClient.

    Construct once and reuse across requests. A client passed in is not
    closed by aclose(); one created here is.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(transport=transport, timeout=timeout)

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    def _build_request(
        self,
        config: ClientConfig,
        options: RequestOptions,
        target: str,
        body: RequestBody | None,
        form_data: FormData | None,
        headers: dict[str, str],
    ) -> httpx.Request:
        """Build the httpx request without merging the client's cookie jar."""
        kwargs: dict[str, Any] = {
            "headers": dict(headers),
            "extensions": {"timeout": httpx.Timeout(config.timeout).as_dict()},
        }

        if form_data is not None:
            # Multipart goes out as-is; the boundary comes from the Content-Type header
            if len(form_data):
                kwargs["files"] = form_data.to_httpx_files()
            else:
                kwargs["content"] = f"--{form_data.boundary}--\r\n".encode("ascii")
        elif isinstance(body, JsonBody):
            kwargs["json"] = body.value
        elif isinstance(body, TextBody):
            kwargs["content"] = body.text.encode("utf-8")
        elif isinstance(body, BinaryBody):
            kwargs["content"] = body.data

        request = httpx.Request(options.method, target, **kwargs)

        if config.with_credentials:
            self._client.cookies.set_cookie_header(request)
            if config.credentials is CredentialsMode.INCLUDE:
                xsrf_token = self._client.cookies.get(XSRF_COOKIE_NAME)
                if xsrf_token and XSRF_HEADER_NAME not in request.headers:
                    request.headers[XSRF_HEADER_NAME] = xsrf_token

        return request

    async def send(
        self,
        config: ClientConfig,
        options: RequestOptions,
        url: str,
        body: RequestBody | None,
        form_data: FormData | None,
        headers: dict[str, str],
        token: CancellationToken,
    ) -> ResponseEnvelope:
        """Send one request and return its response envelope.

        Raises:
            CancelError: If the token was cancelled while the call was in flight.
            NetworkError: If no response was obtained.
        """
        # An absolute URL already carries its host; never prepend the base to it
        if is_absolute_url(url):
            base_url = ""
            target = url
        else:
            base_url = config.base.rstrip("/")
            target = f"{base_url}{url}"

        request = self._build_request(config, options, target, body, form_data, headers)

        in_flight = asyncio.ensure_future(self._client.send(request))
        token.on_cancel(in_flight.cancel)

        try:
            response = await in_flight
        except asyncio.CancelledError:
            if token.is_cancelled:
                raise CancelError("The user aborted a request.") from None
            raise
        except httpx.HTTPStatusError as e:
            # Raised by response hooks; the server still answered
            response = e.response
        except httpx.RequestError as e:
            if token.is_cancelled:
                raise CancelError("The user aborted a request.") from None
            code = type(e).__name__
            self._log_network_error(options.method, url, base_url or config.base, str(e), code)
            raise NetworkError(
                str(e) or "Network Error",
                method=options.method,
                url=url,
                base_url=base_url or config.base,
                code=code,
            ) from e

        return self._convert_response(response, url)

    def _log_network_error(
        self,
        method: str,
        url: str,
        base_url: str,
        message: str,
        code: str,
    ) -> None:
        logger.error(
            "API network error: message=%s code=%s method=%s url=%s base_url=%s",
            message or "Unknown network error",
            code,
            method,
            url,
            base_url or "unknown",
        )
        if not base_url.strip():
            logger.error("API base URL is not configured")
        logger.error(describe_network_error(method, url, base_url, message, code))

    def _convert_response(self, response: httpx.Response, url: str) -> ResponseEnvelope:
        """Convert an httpx Response to a ResponseEnvelope."""
        headers: dict[str, str] = {}
        for key, value in response.headers.multi_items():
            key_lower = key.lower()
            if key_lower in headers:
                headers[key_lower] = f"{headers[key_lower]}, {value}"
            else:
                headers[key_lower] = value

        return ResponseEnvelope(
            url=url,
            ok=is_success(response.status_code),
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=headers,
            body=_decode_body(response),
        )
