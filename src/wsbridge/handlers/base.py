"""Protocol handler interface shared by both server variants."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ProtocolHandler(Protocol):
    """Maps one inbound text payload to at most one outbound text payload.

    Handlers are stateless: one instance serves every session of a server.

    Attributes:
        name: Variant name used in log events
        answers_liveness_probe: Whether sessions should answer a bare
            ``"ping"`` text with ``"pong"`` before calling the handler
    """

    name: str
    answers_liveness_probe: bool

    async def handle(self, text: str) -> str | None:
        """Return the reply for ``text``, or None to send nothing."""
        ...
