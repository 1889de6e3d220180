"""Per-connection session: idle watchdog, frame dispatch and shutdown.

A session owns one accepted WebSocket connection for its whole life::

    connecting -> open -> closing -> closed

While open it reads one frame at a time, with each read raced against what
is left of the idle window, and writes at most one reply before reading
again. It ends when:

- no frame of any kind, control frames included, arrives within
  ``idle_timeout`` seconds: the server sends a close frame
  (1000, "idle timeout") and stops;
- the peer closes the connection: the close is acknowledged by the
  protocol layer and nothing else is written;
- reading or writing fails: the session stops without further writes.

Control frames never reach the session: ``websockets`` answers pings with a
pong carrying the same payload and turns a close frame into
``ConnectionClosedOK`` on the next read. The connection stamps
``last_activity`` as each frame arrives, so the watchdog measures silence
from that stamp rather than from the last ``recv()``.
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Any, Protocol

from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from wsbridge.config import DEFAULT_IDLE_TIMEOUT
from wsbridge.handlers.base import ProtocolHandler
from wsbridge.observability import get_logger

logger = get_logger(__name__)

# Close frame sent when the idle watchdog fires (RFC 6455 normal closure)
WS_CLOSE_NORMAL = 1000
WS_CLOSE_REASON_IDLE = "idle timeout"

# Text liveness probe of the Proxy variant
LIVENESS_PROBE = "ping"
LIVENESS_REPLY = "pong"


class SessionState(str, Enum):
    """Session lifecycle states.

    Example:
        >>> SessionState.CLOSED.is_terminal()
        True
    """

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"

    def is_terminal(self) -> bool:
        return self is SessionState.CLOSED


class Connection(Protocol):
    """The part of ``websockets.asyncio.server.ServerConnection`` a session uses."""

    # time.monotonic() of the most recent incoming frame, control frames included
    last_activity: float

    @property
    def remote_address(self) -> Any: ...

    async def recv(self) -> str | bytes: ...

    async def send(self, message: str) -> None: ...

    async def close(self, code: int = WS_CLOSE_NORMAL, reason: str = "") -> None: ...


def format_peer(remote_address: Any) -> str:
    """Render a socket address as ``host:port``."""
    if isinstance(remote_address, tuple) and len(remote_address) >= 2:
        return f"{remote_address[0]}:{remote_address[1]}"
    return str(remote_address)


def is_liveness_probe(text: str) -> bool:
    """Return True for ``"ping"`` in any case, ignoring surrounding whitespace."""
    return text.strip().lower() == LIVENESS_PROBE


class Session:
    """Server-side lifetime of one accepted WebSocket connection.

    Attributes:
        connection: The accepted connection; owned exclusively by this session
        handler: Protocol handler text frames are dispatched to
        idle_timeout: Seconds without a received frame before closing
        state: Current lifecycle state
        peer: Remote address as ``host:port``
    """

    def __init__(
        self,
        connection: Connection,
        handler: ProtocolHandler,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
    ) -> None:
        self.connection = connection
        self.handler = handler
        self.idle_timeout = idle_timeout
        self.state = SessionState.CONNECTING
        self.peer = format_peer(connection.remote_address)
        self._logger = logger.bind(peer=self.peer, protocol=handler.name)

    async def run(self) -> None:
        """Serve the connection until a terminal condition; never raises on transport errors."""
        if self.state is not SessionState.CONNECTING:
            raise RuntimeError(f"Session already {self.state.value}")
        self.state = SessionState.OPEN
        self._logger.info("wsbridge.session.connected")
        try:
            while True:
                message = await self._receive()
                if message is None:
                    break
                await self._dispatch(message)
        except ConnectionClosedOK:
            self.state = SessionState.CLOSING
            self._logger.debug("wsbridge.session.closed_by_peer")
        except ConnectionClosed as e:
            self.state = SessionState.CLOSING
            self._logger.warning("wsbridge.session.connection_error", error=str(e))
        finally:
            self.state = SessionState.CLOSED
            self._logger.info("wsbridge.session.disconnected")

    def _idle_remaining(self) -> float:
        return self.idle_timeout - (time.monotonic() - self.connection.last_activity)

    async def _receive(self) -> str | bytes | None:
        """Wait for the next data frame; None once the idle watchdog has closed the session.

        A read that outlives the window is retried while control frames keep
        moving ``last_activity`` forward.
        """
        while (remaining := self._idle_remaining()) > 0:
            try:
                return await asyncio.wait_for(self.connection.recv(), timeout=remaining)
            except asyncio.TimeoutError:
                continue
        self.state = SessionState.CLOSING
        self._logger.info("wsbridge.session.timed_out", idle_seconds=self.idle_timeout)
        await self._close_idle()
        return None

    async def _close_idle(self) -> None:
        try:
            await self.connection.close(code=WS_CLOSE_NORMAL, reason=WS_CLOSE_REASON_IDLE)
        except (OSError, RuntimeError) as close_err:
            self._logger.debug("wsbridge.session.close_error", error=str(close_err))

    async def _dispatch(self, message: str | bytes) -> None:
        if isinstance(message, bytes):
            self._logger.debug("wsbridge.session.binary_ignored", size=len(message))
            return
        if self.handler.answers_liveness_probe and is_liveness_probe(message):
            await self.connection.send(LIVENESS_REPLY)
            return
        reply = await self.handler.handle(message)
        if reply is not None:
            await self.connection.send(reply)
