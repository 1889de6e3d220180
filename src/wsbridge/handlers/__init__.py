"""Protocol handlers for the two server variants.

Public exports:
    ProtocolHandler: Interface sessions dispatch text frames to
    LookupHandler: Proxy variant (JSON lookup requests over HTTP)
    HeartbeatHandler: Heartbeat variant (PING/PONG timestamps)
    create_http_client: Factory for the shared upstream HTTP client
"""

from wsbridge.handlers.base import ProtocolHandler
from wsbridge.handlers.heartbeat import HeartbeatHandler
from wsbridge.handlers.proxy import LookupHandler, create_http_client

__all__ = [
    "HeartbeatHandler",
    "LookupHandler",
    "ProtocolHandler",
    "create_http_client",
]
