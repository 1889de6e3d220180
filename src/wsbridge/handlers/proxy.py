"""Proxy protocol: JSON lookup requests forwarded to the IP geolocation API.

One text frame carries one request::

    {"api": "ipinfo", "ip": "8.8.8.8", "id": "42"}

The handler validates it, issues ``GET <base_url>/<api>?ip=<ip>`` on the
shared HTTP client and answers::

    {"api": "ipinfo", "data": {...}, "id": "42"}

Failures never escape the handler. A request that cannot be parsed or names
an unknown API gets a top-level ``{"error": ...}`` reply; an upstream
failure is reported inside ``data``. Nothing is retried.

Example:
    >>> async with httpx.AsyncClient(timeout=30.0) as client:
    ...     handler = LookupHandler(client)
    ...     reply = await handler.handle('{"api":"ipinfo","ip":"8.8.8.8"}')
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError

from wsbridge.config import ProxySettings
from wsbridge.errors import (
    InvalidRequestError,
    UnknownAPIError,
    UpstreamRequestError,
    UpstreamResponseError,
    WSBridgeError,
)
from wsbridge.models import LookupRequest, LookupResponse, decode_json, encode_frame
from wsbridge.observability import get_logger

logger = get_logger(__name__)


def create_http_client(
    settings: ProxySettings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the HTTP client shared by every session of a Proxy server.

    The client carries no cookies or per-call state, only the request
    timeout. Callers own it and must close it (``async with``).

    Args:
        settings: Upstream configuration
        transport: Optional custom transport (for testing)
    """
    return httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(settings.request_timeout),
    )


class LookupHandler:
    """Stateless handler for the Proxy variant.

    Attributes:
        client: Shared HTTP client used for upstream lookups
        settings: Upstream configuration
    """

    name = "proxy"
    answers_liveness_probe = True

    def __init__(self, client: httpx.AsyncClient, settings: ProxySettings | None = None) -> None:
        self.client = client
        self.settings = settings or ProxySettings()

    def parse_request(self, text: str) -> LookupRequest:
        """Parse and validate a lookup request.

        Raises:
            InvalidRequestError: If ``text`` is not a lookup request document
            UnknownAPIError: If the requested API is not a valid option
        """
        try:
            request = LookupRequest.from_frame(text)
        except (ValidationError, ValueError) as e:
            raise InvalidRequestError(reason=str(e)) from e
        if request.api not in self.settings.valid_apis:
            raise UnknownAPIError(request.api, self.settings.valid_apis)
        return request

    def build_url(self, request: LookupRequest) -> str:
        # ip is appended as received; the upstream expects it unescaped
        return f"{self.settings.base_url}/{request.api}?ip={request.ip}"

    async def fetch(self, request: LookupRequest) -> Any:
        """Fetch the upstream JSON body for a validated request.

        The status code is not inspected: any body that decodes as strict
        JSON is passed through.

        Raises:
            UpstreamRequestError: If the request fails at the transport level
            UpstreamResponseError: If the body is not valid JSON, including
                bodies that use NaN or Infinity
        """
        url = self.build_url(request)
        try:
            response = await self.client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise UpstreamRequestError(url, str(e) or type(e).__name__) from e
        try:
            return decode_json(response.content)
        except ValueError as e:
            raise UpstreamResponseError(url, str(e)) from e

    async def handle(self, text: str) -> str:
        try:
            request = self.parse_request(text)
        except WSBridgeError as e:
            logger.info("wsbridge.proxy.request_rejected", code=e.code, **e.details)
            return encode_frame({"error": e.message})

        try:
            data = await self.fetch(request)
        except WSBridgeError as e:
            logger.warning(
                "wsbridge.proxy.upstream_failed",
                code=e.code,
                api=request.api,
                error=e.message,
                **e.details,
            )
            data = {"error": e.message}

        return LookupResponse(api=request.api, data=data, id=request.id).to_frame()
