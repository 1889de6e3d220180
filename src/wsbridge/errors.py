"""wsbridge error taxonomy.

Errors raised while handling a single frame. None of them ends a session:
the proxy handler turns each one into the ``{"error": ...}`` payload of its
reply. Transport failures are not modelled here; they surface as
``websockets.ConnectionClosed`` and end the session.
"""

from __future__ import annotations

from typing import Any, Sequence

# Shape advertised to clients that send something other than a lookup request
EXPECTED_REQUEST_SHAPE = '{"api":"...","ip":"...","id":"...(optional)"}'


class WSBridgeError(Exception):
    """Base exception for all wsbridge errors.

    Attributes:
        code: Error code following the wsbridge:<area>/<reason> pattern
        message: Client-facing error message
        details: Optional additional error context (logged, never sent)
    """

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to ``{code, message, details}`` dict."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidRequestError(WSBridgeError):
    """Raised when a text frame is not a lookup request document."""

    def __init__(self, reason: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="wsbridge:request/invalid_json",
            message=f"Invalid JSON. Expected: {EXPECTED_REQUEST_SHAPE}",
            details={"reason": reason, **(details or {})},
        )
        self.reason = reason


class UnknownAPIError(WSBridgeError):
    """Raised when a lookup request names an API outside the valid set.

    Attributes:
        api: The rejected API name
        valid_apis: The accepted names, in declared order
    """

    def __init__(
        self, api: str, valid_apis: Sequence[str], details: dict[str, Any] | None = None
    ) -> None:
        message = f"Invalid API. Valid options: {', '.join(valid_apis)}"
        super().__init__(
            code="wsbridge:request/invalid_api",
            message=message,
            details={"api": api, **(details or {})},
        )
        self.api = api
        self.valid_apis = tuple(valid_apis)


class UpstreamRequestError(WSBridgeError):
    """Raised when the upstream lookup call fails at the transport level."""

    def __init__(self, url: str, cause: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="wsbridge:upstream/request_failed",
            message=f"Request failed: {cause}",
            details={"url": url, **(details or {})},
        )
        self.url = url
        self.cause = cause


class UpstreamResponseError(WSBridgeError):
    """Raised when the upstream body cannot be decoded as JSON."""

    def __init__(self, url: str, cause: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="wsbridge:upstream/invalid_response",
            message=f"Failed to parse response: {cause}",
            details={"url": url, **(details or {})},
        )
        self.url = url
        self.cause = cause
