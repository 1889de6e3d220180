"""WebSocket listener: handshake, optional path gate, one session per connection.

``websockets`` runs the accept loop and spawns one task per accepted
connection, so a slow session never blocks new handshakes. When the
settings carry a ``path``, upgrades to any other path are answered with
HTTP 404 during the handshake and no session is created.

Example:
    >>> settings = heartbeat_server_settings()
    >>> asyncio.run(serve_forever(HeartbeatHandler(), settings))
"""

from __future__ import annotations

import time
from http import HTTPStatus
from typing import Any, Callable
from urllib.parse import urlsplit

from websockets.asyncio.server import ServerConnection, serve
from websockets.http11 import Request, Response
from websockets.protocol import Event

from wsbridge.config import ProxySettings, ServerSettings
from wsbridge.handlers.base import ProtocolHandler
from wsbridge.handlers.heartbeat import HeartbeatHandler
from wsbridge.handlers.proxy import LookupHandler, create_http_client
from wsbridge.observability import get_logger
from wsbridge.transport.session import Session, format_peer

logger = get_logger(__name__)

ProcessRequest = Callable[[ServerConnection, Request], Response | None]


class ActivityTrackingConnection(ServerConnection):
    """``ServerConnection`` that stamps the arrival of every incoming event.

    Pings, pongs and close frames are consumed by the protocol layer and
    never returned by ``recv()``; stamping here lets the session idle
    watchdog see them anyway.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.last_activity = time.monotonic()

    def process_event(self, event: Event) -> None:
        self.last_activity = time.monotonic()
        super().process_event(event)


def require_path(path: str) -> ProcessRequest:
    """Build a handshake hook that rejects every path but ``path`` with 404.

    The query string is not part of the comparison.
    """

    def process_request(connection: ServerConnection, request: Request) -> Response | None:
        requested = urlsplit(request.path).path
        if requested == path:
            return None
        logger.info(
            "wsbridge.listener.handshake_rejected",
            peer=format_peer(connection.remote_address),
            path=requested,
            status=HTTPStatus.NOT_FOUND.value,
        )
        return connection.respond(HTTPStatus.NOT_FOUND, "Not Found\n")

    return process_request


def create_server(handler: ProtocolHandler, settings: ServerSettings) -> serve:
    """Create (but do not start) a listener bound to ``settings.host:settings.port``.

    The returned object is awaitable and an async context manager yielding
    the running ``websockets`` server.

    Server keepalive pings are disabled: the session idle watchdog is the
    only liveness mechanism.
    """

    async def on_connection(connection: ActivityTrackingConnection) -> None:
        session = Session(connection, handler, idle_timeout=settings.idle_timeout)
        await session.run()

    return serve(
        on_connection,
        settings.host,
        settings.port,
        process_request=require_path(settings.path) if settings.path else None,
        create_connection=ActivityTrackingConnection,
        ping_interval=None,
        close_timeout=settings.close_timeout,
    )


async def serve_forever(handler: ProtocolHandler, settings: ServerSettings) -> None:
    """Run a listener until the surrounding task is cancelled."""
    async with create_server(handler, settings) as server:
        logger.info("wsbridge.listener.started", url=settings.url, protocol=handler.name)
        await server.serve_forever()


async def run_proxy(
    server_settings: ServerSettings,
    proxy_settings: ProxySettings | None = None,
) -> None:
    """Run the Proxy variant with one HTTP client shared by all sessions."""
    proxy_settings = proxy_settings or ProxySettings()
    async with create_http_client(proxy_settings) as client:
        await serve_forever(LookupHandler(client, proxy_settings), server_settings)


async def run_heartbeat(server_settings: ServerSettings) -> None:
    """Run the Heartbeat variant."""
    await serve_forever(HeartbeatHandler(), server_settings)
