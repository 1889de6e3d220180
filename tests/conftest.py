"""Shared pytest fixtures for wsbridge tests."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Union

import httpx
import pytest

from wsbridge.config import ProxySettings
from wsbridge.handlers.proxy import LookupHandler, create_http_client

TEST_BASE_URL = "https://geo.example.com/ipgeolocation"

Responder = Callable[
    [httpx.Request], Union[httpx.Response, Awaitable[httpx.Response]]
]
LookupHandlerFactory = Callable[[Responder], LookupHandler]


@pytest.fixture
def proxy_settings() -> ProxySettings:
    """Upstream settings pointing at a host that only exists in MockTransport."""
    return ProxySettings(base_url=TEST_BASE_URL)


@pytest.fixture
async def make_lookup_handler(
    proxy_settings: ProxySettings,
) -> AsyncIterator[LookupHandlerFactory]:
    """Factory for LookupHandlers whose upstream is answered by ``responder``.

    Every HTTP client created through the factory is closed after the test.
    """
    clients: list[httpx.AsyncClient] = []

    def _create(responder: Responder) -> LookupHandler:
        client = create_http_client(proxy_settings, transport=httpx.MockTransport(responder))
        clients.append(client)
        return LookupHandler(client, proxy_settings)

    yield _create

    for client in clients:
        await client.aclose()
