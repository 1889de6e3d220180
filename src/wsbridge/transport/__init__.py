"""WebSocket transport: listener and per-connection sessions.

Public exports:
    ActivityTrackingConnection: Server connection stamping every incoming frame
    Session: Lifetime of one accepted connection
    SessionState: Session lifecycle states
    create_server: Listener factory (async context manager)
    serve_forever: Run a listener until cancelled
    run_proxy: Run the Proxy variant with a shared HTTP client
    run_heartbeat: Run the Heartbeat variant
"""

from wsbridge.transport.listener import (
    ActivityTrackingConnection,
    create_server,
    require_path,
    run_heartbeat,
    run_proxy,
    serve_forever,
)
from wsbridge.transport.session import Session, SessionState

__all__ = [
    "ActivityTrackingConnection",
    "Session",
    "SessionState",
    "create_server",
    "require_path",
    "run_heartbeat",
    "run_proxy",
    "serve_forever",
]
