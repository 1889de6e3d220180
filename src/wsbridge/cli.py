"""Command-line interface for the wsbridge servers.

Example:
    >>> # From terminal:
    >>> # wsbridge --version
    >>> # wsbridge proxy                      # ws://0.0.0.0:45278, any path
    >>> # wsbridge heartbeat --port 9000      # ws://0.0.0.0:9000/ws
    >>> # wsbridge --log-format json proxy --idle-timeout 60
"""

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any, Optional, TypeVar

import typer
from pydantic import ValidationError

from wsbridge import __version__
from wsbridge.config import (
    DEFAULT_BASE_URL,
    DEFAULT_HOST,
    DEFAULT_IDLE_TIMEOUT,
    HEARTBEAT_PORT,
    PROXY_PORT,
    ProxySettings,
    heartbeat_server_settings,
    proxy_server_settings,
)
from wsbridge.observability import configure_logging, get_logger
from wsbridge.observability.logging import LOG_FORMATS
from wsbridge.transport.listener import run_heartbeat, run_proxy

app = typer.Typer(help="WebSocket bridge servers (IP lookup proxy and heartbeat).")

T = TypeVar("T")

HOST_OPTION = typer.Option(DEFAULT_HOST, "--host", help="Interface to bind.")
IDLE_TIMEOUT_OPTION = typer.Option(
    DEFAULT_IDLE_TIMEOUT,
    "--idle-timeout",
    help="Seconds without a received frame before the server closes the connection.",
)


def _version_callback(value: bool) -> None:
    """Print the version and exit when requested."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


VERSION_OPTION = typer.Option(
    False,
    "--version",
    help="Show wsbridge version and exit.",
    callback=_version_callback,
    is_eager=True,
)


@app.callback()
def cli(
    version: bool = VERSION_OPTION,
    log_format: Optional[str] = typer.Option(
        None, "--log-format", help="Log output format: console or json."
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Minimum log level."),
) -> None:
    """wsbridge CLI entrypoint."""
    if log_format is not None and log_format.lower() not in LOG_FORMATS:
        raise typer.BadParameter(
            f"Unknown log format: {log_format}. Choose from: {', '.join(LOG_FORMATS)}",
            param_hint="--log-format",
        )
    try:
        configure_logging(log_format=log_format, log_level=log_level, force=True)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _build_settings(factory: Callable[..., T], **kwargs: Any) -> T:
    try:
        return factory(**kwargs)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _run(server: Coroutine[Any, Any, None]) -> None:
    try:
        asyncio.run(server)
    except KeyboardInterrupt:
        get_logger(__name__).info("wsbridge.cli.interrupted")
    except OSError as exc:
        typer.echo(f"Cannot start server: {exc}", err=True)
        raise typer.Exit(1) from exc


@app.command("proxy")
def proxy(
    host: str = HOST_OPTION,
    port: int = typer.Option(PROXY_PORT, "--port", help="TCP port to bind."),
    idle_timeout: float = IDLE_TIMEOUT_OPTION,
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--base-url", help="Base URL of the IP geolocation API."
    ),
) -> None:
    """Serve JSON lookup requests, forwarding each one to the geolocation API."""
    server_settings = _build_settings(
        proxy_server_settings, host=host, port=port, idle_timeout=idle_timeout
    )
    proxy_settings = _build_settings(ProxySettings, base_url=base_url)
    _run(run_proxy(server_settings, proxy_settings))


@app.command("heartbeat")
def heartbeat(
    host: str = HOST_OPTION,
    port: int = typer.Option(HEARTBEAT_PORT, "--port", help="TCP port to bind."),
    idle_timeout: float = IDLE_TIMEOUT_OPTION,
) -> None:
    """Answer "PING <anything>" with "PONG <epoch-millis>" on path /ws."""
    settings = _build_settings(
        heartbeat_server_settings, host=host, port=port, idle_timeout=idle_timeout
    )
    _run(run_heartbeat(settings))


def main() -> None:
    """Run the wsbridge CLI."""
    app()


if __name__ == "__main__":
    main()
