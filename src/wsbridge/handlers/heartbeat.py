"""Heartbeat protocol: ``PING <anything>`` is answered with ``PONG <epoch-millis>``."""

from __future__ import annotations

import time

PING_PREFIX = "PING "
PONG_PREFIX = "PONG "


def timestamp_ms() -> int:
    """Current wall-clock time in milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


class HeartbeatHandler:
    """Answers heartbeat pings; every other text is ignored."""

    name = "heartbeat"
    answers_liveness_probe = False

    async def handle(self, text: str) -> str | None:
        if not text.startswith(PING_PREFIX):
            return None
        return f"{PONG_PREFIX}{timestamp_ms()}"
