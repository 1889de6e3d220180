"""Read-only configuration shared by every session of a server.

Settings are frozen pydantic models: built once at startup, validated, and
handed to the listener and handlers. Nothing here reads the environment.

Example:
    >>> settings = heartbeat_server_settings(port=9000)
    >>> settings.path
    '/ws'
    >>> settings.idle_timeout
    180.0
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Listener defaults
DEFAULT_HOST = "0.0.0.0"
PROXY_PORT = 45278
HEARTBEAT_PORT = 45203
HEARTBEAT_PATH = "/ws"

# Seconds without a received frame before the server closes the connection
DEFAULT_IDLE_TIMEOUT = 180.0

# Seconds to wait for the peer to answer our close frame
DEFAULT_CLOSE_TIMEOUT = 10.0

# Upstream lookup API
DEFAULT_BASE_URL = "https://fur1.foxomy.com/rustapps/ipgeolocation"
DEFAULT_REQUEST_TIMEOUT = 30.0
VALID_APIS: tuple[str, ...] = (
    "extremeip",
    "ipinfo",
    "ipregistry",
    "ipstack",
    "nange",
    "nordvpn",
)


class SettingsModel(BaseModel):
    """Base for settings: immutable, and unknown fields are rejected."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)


class ServerSettings(SettingsModel):
    """Listener and session configuration.

    Attributes:
        host: Interface to bind
        port: TCP port to bind (0 picks a free port)
        idle_timeout: Seconds without a received frame before closing
        close_timeout: Seconds to wait for the close handshake to finish
        path: Only path accepted at handshake time; None accepts any path
    """

    host: str = DEFAULT_HOST
    port: int = Field(ge=0, le=65535)
    idle_timeout: float = Field(default=DEFAULT_IDLE_TIMEOUT, gt=0)
    close_timeout: float = Field(default=DEFAULT_CLOSE_TIMEOUT, gt=0)
    path: str | None = None

    @field_validator("path")
    @classmethod
    def _path_is_absolute(cls, value: str | None) -> str | None:
        if value is not None and not value.startswith("/"):
            raise ValueError("path must start with '/'")
        return value

    @property
    def url(self) -> str:
        """Public URL announced at startup."""
        return f"ws://{self.host}:{self.port}{self.path or ''}"


class ProxySettings(SettingsModel):
    """Upstream lookup API configuration.

    Attributes:
        base_url: Prefix of every lookup URL, without trailing slash
        request_timeout: Seconds allowed for one upstream GET
        valid_apis: Accepted API names, in the order they are advertised
    """

    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)
    valid_apis: tuple[str, ...] = VALID_APIS

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("valid_apis")
    @classmethod
    def _non_empty(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("valid_apis must not be empty")
        return value


def proxy_server_settings(**overrides: Any) -> ServerSettings:
    """Defaults of the Proxy variant: port 45278, any path."""
    return ServerSettings(**{"port": PROXY_PORT, **overrides})


def heartbeat_server_settings(**overrides: Any) -> ServerSettings:
    """Defaults of the Heartbeat variant: port 45203, path ``/ws`` only."""
    return ServerSettings(**{"port": HEARTBEAT_PORT, "path": HEARTBEAT_PATH, **overrides})
