"""Request pipeline - build, encode, compose headers, send, classify.

request() returns a CancelableTask that resolves with the response body (or
the requested response header) and rejects with CancelError, NetworkError,
ApiError or ConfigError.

Usage:
    async with ApiClient(config) as client:
        prop = await client.request(RequestOptions(
            method="GET",
            url="/api/properties/{property_id}",
            path={"property_id": 7},
            errors={422: "Validation Error"},
        ))
"""

from __future__ import annotations

from typing import Any

from marketplace_client.body_encoder import get_form_data, get_request_body
from marketplace_client.cancelable import CancelableTask, CancelError, CancellationToken
from marketplace_client.config_loader import ConfigError
from marketplace_client.errors import catch_error_codes
from marketplace_client.headers import get_headers
from marketplace_client.models import ClientConfig, RequestOptions, ResponseEnvelope
from marketplace_client.transport import Transport
from marketplace_client.url_builder import build_url


NO_CONTENT = 204


def get_response_header(response: ResponseEnvelope, response_header: str | None) -> str | None:
    if response_header:
        content = response.headers.get(response_header.lower())
        if isinstance(content, str):
            return content
    return None


def get_response_body(response: ResponseEnvelope) -> Any:
    """Response body, or None for 204 whatever the transport decoded."""
    if response.status != NO_CONTENT:
        return response.body
    return None


async def _execute(
    config: ClientConfig,
    options: RequestOptions,
    transport: Transport | None,
    token: CancellationToken,
) -> Any:
    if not config.base or not config.base.strip():
        raise ConfigError(
            "API base URL is not configured. Set API_BASE_URL or configure ClientConfig.base."
        )

    url = build_url(config, options)
    form_data = get_form_data(options)
    body = get_request_body(options)
    headers = await get_headers(config, options, form_data)

    # The only cancellation check: nothing is dispatched once cancelled
    if token.is_cancelled:
        raise CancelError("Request aborted")

    owned = transport is None
    active = transport or Transport(timeout=config.timeout)
    try:
        response = await active.send(config, options, url, body, form_data, headers, token)
    finally:
        if owned:
            await active.aclose()

    response_body = get_response_body(response)
    response_header = get_response_header(response, options.response_header)
    result = response.model_copy(
        update={"body": response_header if response_header is not None else response_body}
    )

    catch_error_codes(options, result)
    return result.body


def request(
    config: ClientConfig,
    options: RequestOptions,
    transport: Transport | None = None,
) -> CancelableTask[Any]:
    """Start one API call.

    Without a transport, a temporary one is created and closed for this call.
    Must be called with an event loop running.
    """
    return CancelableTask(lambda token: _execute(config, options, transport, token))


class ApiClient:
    """Config plus one reusable Transport.

    Usage:
        client = ApiClient(config)
        try:
            result = await client.request(options)
        finally:
            await client.aclose()
    """

    def __init__(self, config: ClientConfig, transport: Transport | None = None) -> None:
        self.config = config
        self._owns_transport = transport is None
        self._transport = transport or Transport(timeout=config.timeout)

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_transport:
            await self._transport.aclose()

    def request(self, options: RequestOptions) -> CancelableTask[Any]:
        return request(self.config, options, self._transport)
