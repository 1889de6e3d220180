"""wsbridge: WebSocket bridges for IP geolocation lookups and heartbeats.

Two server variants share one connection lifecycle:

- Proxy: JSON lookup requests forwarded to an external HTTP API.
- Heartbeat: ``PING <anything>`` answered with ``PONG <epoch-millis>``.

Example:
    >>> # From terminal:
    >>> # wsbridge proxy --port 45278
    >>> # wsbridge heartbeat --port 45203
"""

__version__ = "0.1.0"
