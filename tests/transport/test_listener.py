"""End-to-end tests: real websockets server and client on an ephemeral port."""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import AsyncIterator

import httpx
import pytest
from websockets.asyncio.client import ClientConnection, connect
from websockets.asyncio.server import Server
from websockets.exceptions import ConnectionClosedOK, InvalidStatus

from wsbridge.config import heartbeat_server_settings, proxy_server_settings
from wsbridge.handlers.heartbeat import HeartbeatHandler
from wsbridge.transport.listener import create_server

from ..conftest import LookupHandlerFactory

PONG_PATTERN = re.compile(r"^PONG (\d+)$")
RECV_TIMEOUT = 5.0
FAST_IDLE_TIMEOUT = 0.3


def _url(server: Server, path: str = "/") -> str:
    port = server.sockets[0].getsockname()[1]
    return f"ws://127.0.0.1:{port}{path}"


async def _recv(ws: ClientConnection) -> str | bytes:
    return await asyncio.wait_for(ws.recv(), timeout=RECV_TIMEOUT)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def heartbeat_server() -> AsyncIterator[Server]:
    settings = heartbeat_server_settings(host="127.0.0.1", port=0)
    async with create_server(HeartbeatHandler(), settings) as server:
        yield server


@pytest.fixture
async def proxy_server(make_lookup_handler: LookupHandlerFactory) -> AsyncIterator[Server]:
    def responder(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"country": "US", "ip": request.url.params["ip"]})

    settings = proxy_server_settings(host="127.0.0.1", port=0)
    async with create_server(make_lookup_handler(responder), settings) as server:
        yield server


# ---------------------------------------------------------------------------
# Heartbeat variant
# ---------------------------------------------------------------------------


class TestHeartbeatServer:
    async def test_ping_answered_with_pong(self, heartbeat_server: Server) -> None:
        async with connect(_url(heartbeat_server, "/ws")) as ws:
            await ws.send("PING 1")
            reply = await _recv(ws)
        assert isinstance(reply, str)
        assert PONG_PATTERN.match(reply)

    async def test_pongs_non_decreasing_within_session(self, heartbeat_server: Server) -> None:
        values = []
        async with connect(_url(heartbeat_server, "/ws")) as ws:
            for i in range(5):
                await ws.send(f"PING {i}")
                match = PONG_PATTERN.match(str(await _recv(ws)))
                assert match is not None
                values.append(int(match.group(1)))
        assert values == sorted(values)

    async def test_other_text_gets_no_reply(self, heartbeat_server: Server) -> None:
        async with connect(_url(heartbeat_server, "/ws")) as ws:
            await ws.send("hello")
            await ws.send("ping")
            await ws.send("PING after")
            reply = await _recv(ws)
        assert isinstance(reply, str)
        assert reply.startswith("PONG ")

    async def test_query_string_does_not_affect_path_gate(
        self, heartbeat_server: Server
    ) -> None:
        async with connect(_url(heartbeat_server, "/ws?client=1")) as ws:
            await ws.send("PING q")
            assert PONG_PATTERN.match(str(await _recv(ws)))

    @pytest.mark.parametrize("path", ["/", "/other", "/ws/", "/WS", "/ws/extra"])
    async def test_other_paths_rejected_with_404(
        self, heartbeat_server: Server, path: str
    ) -> None:
        with pytest.raises(InvalidStatus) as exc_info:
            async with connect(_url(heartbeat_server, path)):
                pass  # pragma: no cover
        assert exc_info.value.response.status_code == 404

    async def test_rejected_handshake_does_not_affect_listener(
        self, heartbeat_server: Server
    ) -> None:
        with pytest.raises(InvalidStatus):
            async with connect(_url(heartbeat_server, "/nope")):
                pass  # pragma: no cover
        async with connect(_url(heartbeat_server, "/ws")) as ws:
            await ws.send("PING still up")
            assert PONG_PATTERN.match(str(await _recv(ws)))


# ---------------------------------------------------------------------------
# Proxy variant
# ---------------------------------------------------------------------------


class TestProxyServer:
    @pytest.mark.parametrize("path", ["/", "/anything", "/ws", "/a/b?c=d"])
    async def test_any_path_accepted(self, proxy_server: Server, path: str) -> None:
        async with connect(_url(proxy_server, path)) as ws:
            await ws.send("ping")
            assert await _recv(ws) == "pong"

    async def test_lookup_round_trip(self, proxy_server: Server) -> None:
        async with connect(_url(proxy_server)) as ws:
            await ws.send('{"api":"ipinfo","ip":"8.8.8.8","id":"42"}')
            reply = json.loads(await _recv(ws))
        assert reply == {"api": "ipinfo", "data": {"country": "US", "ip": "8.8.8.8"}, "id": "42"}

    async def test_errors_keep_connection_open(self, proxy_server: Server) -> None:
        async with connect(_url(proxy_server)) as ws:
            await ws.send("{not json")
            first = json.loads(await _recv(ws))
            await ws.send('{"api":"bogus","ip":"1.1.1.1"}')
            second = json.loads(await _recv(ws))
            await ws.send('{"api":"nange","ip":"1.1.1.1"}')
            third = json.loads(await _recv(ws))
        assert first["error"].startswith("Invalid JSON. Expected: ")
        assert second == {
            "error": "Invalid API. Valid options: "
            "extremeip, ipinfo, ipregistry, ipstack, nange, nordvpn"
        }
        assert third["api"] == "nange"

    async def test_control_ping_answered_with_same_payload(self, proxy_server: Server) -> None:
        async with connect(_url(proxy_server)) as ws:
            pong_waiter = await ws.ping(b"are-you-there")
            latency = await asyncio.wait_for(pong_waiter, timeout=RECV_TIMEOUT)
        assert latency >= 0

    async def test_binary_frame_ignored(self, proxy_server: Server) -> None:
        async with connect(_url(proxy_server)) as ws:
            await ws.send(b"\x01\x02")
            await ws.send("ping")
            assert await _recv(ws) == "pong"

    async def test_slow_upstream_does_not_block_other_sessions(
        self, make_lookup_handler: LookupHandlerFactory
    ) -> None:
        release = asyncio.Event()

        async def responder(request: httpx.Request) -> httpx.Response:
            await release.wait()
            return httpx.Response(200, json={"slow": True})

        settings = proxy_server_settings(host="127.0.0.1", port=0)
        async with create_server(make_lookup_handler(responder), settings) as server:
            async with connect(_url(server)) as slow, connect(_url(server)) as fast:
                await slow.send('{"api":"ipstack","ip":"1.1.1.1","id":"slow"}')
                await fast.send("ping")
                assert await _recv(fast) == "pong"
                release.set()
                reply = json.loads(await _recv(slow))
        assert reply == {"api": "ipstack", "data": {"slow": True}, "id": "slow"}


# ---------------------------------------------------------------------------
# Idle watchdog over a real connection
# ---------------------------------------------------------------------------


class TestIdleTimeout:
    @pytest.mark.parametrize("variant", ["proxy", "heartbeat"])
    async def test_idle_connection_closed_with_close_frame(
        self, make_lookup_handler: LookupHandlerFactory, variant: str
    ) -> None:
        if variant == "heartbeat":
            handler = HeartbeatHandler()
            settings = heartbeat_server_settings(
                host="127.0.0.1", port=0, idle_timeout=FAST_IDLE_TIMEOUT
            )
        else:
            handler = make_lookup_handler(lambda request: httpx.Response(200, json={}))
            settings = proxy_server_settings(
                host="127.0.0.1", port=0, idle_timeout=FAST_IDLE_TIMEOUT
            )

        async with create_server(handler, settings) as server:
            async with connect(_url(server, settings.path or "/")) as ws:
                with pytest.raises(ConnectionClosedOK) as exc_info:
                    await _recv(ws)

        assert exc_info.value.rcvd is not None
        assert exc_info.value.rcvd.code == 1000
        assert exc_info.value.rcvd.reason == "idle timeout"

    async def test_activity_keeps_connection_open(self) -> None:
        settings = heartbeat_server_settings(
            host="127.0.0.1", port=0, idle_timeout=FAST_IDLE_TIMEOUT
        )
        async with create_server(HeartbeatHandler(), settings) as server:
            async with connect(_url(server, "/ws")) as ws:
                for i in range(4):
                    await asyncio.sleep(FAST_IDLE_TIMEOUT / 2)
                    await ws.send(f"PING {i}")
                    assert PONG_PATTERN.match(str(await _recv(ws)))

    async def test_control_pings_alone_keep_connection_open(
        self, make_lookup_handler: LookupHandlerFactory
    ) -> None:
        idle_timeout = 0.5
        handler = make_lookup_handler(lambda request: httpx.Response(200, json={}))
        settings = proxy_server_settings(host="127.0.0.1", port=0, idle_timeout=idle_timeout)
        loop = asyncio.get_running_loop()

        async with create_server(handler, settings) as server:
            async with connect(_url(server), ping_interval=None) as ws:
                deadline = loop.time() + idle_timeout * 3
                while loop.time() < deadline:
                    pong_waiter = await ws.ping()
                    await asyncio.wait_for(pong_waiter, timeout=RECV_TIMEOUT)
                    await asyncio.sleep(0.15)
                await ws.send("ping")
                assert await _recv(ws) == "pong"
