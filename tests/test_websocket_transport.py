import asyncio
import json

import pytest
import websockets
from websockets.protocol import State

from mumble.client.client import MumbleClient
from mumble.core.ConnectionLink import WebSocketTransport
from mumble.shared.errors import MumbleConnectionError, RejectedError
from mumble.shared.messages import Ping, ServerSync


def frame(msg_type, payload):
    return json.dumps({"type": msg_type, "payload": payload}, separators=(",", ":"), sort_keys=True)


def make_server_handler(received, replies):
    """Fake server: read Version + Authenticate, then answer with ``replies``."""
    async def handler(ws):
        for _ in range(2):
            received.append(json.loads(await ws.recv()))
        for reply in replies:
            await ws.send(reply)
        async for _ in ws:
            pass
    return handler


async def silent(ws):
    async for _ in ws:
        pass


async def start_server(handler, **kwargs):
    server = await websockets.serve(handler, "127.0.0.1", 0, **kwargs)
    port = server.sockets[0].getsockname()[1]
    return server, port


@pytest.mark.asyncio
async def test_full_handshake_over_websocket():
    received = []
    replies = [
        frame("Version", {"version": 0x010300, "release": "1.3.0", "os": "Linux", "os_version": "6.1"}),
        "garbage that is not json",
        frame("CryptSetup", {"key": "AA"}),
        frame("CodecVersion", {"alpha": -2147483637, "beta": 0, "prefer_alpha": True, "opus": True}),
        frame("ServerSync", {"session": 9, "max_bandwidth": 558000, "welcome_text": "Hello"}),
    ]
    server, port = await start_server(make_server_handler(received, replies))
    try:
        async with MumbleClient("127.0.0.1", port, handshake_timeout=5.0) as client:
            await client.connect("alice", "pw")

            assert client.connected is True
            assert str(client.server_info.version) == "1.3.0"
            assert client.server_info.session == 9
            assert client.server_info.welcome_text == "Hello"
    finally:
        server.close()
        await server.wait_closed()

    assert [m["type"] for m in received] == ["Version", "Authenticate"]
    assert received[0]["payload"]["version"] == 0x010208
    assert received[1]["payload"] == {"username": "alice", "password": "pw", "opus": True}


@pytest.mark.asyncio
async def test_reject_over_websocket():
    replies = [frame("Reject", {"type": "ServerFull", "reason": "Server is full"})]
    server, port = await start_server(make_server_handler([], replies))
    try:
        client = MumbleClient("127.0.0.1", port, handshake_timeout=5.0)
        with pytest.raises(RejectedError, match="ServerFull"):
            await client.connect("alice", "")
        assert client.transport.disposed is True
    finally:
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_reject_with_newer_type_still_aborts():
    replies = [frame("Reject", {"type": "NoNewVersion"})]
    server, port = await start_server(make_server_handler([], replies))
    try:
        client = MumbleClient("127.0.0.1", port, handshake_timeout=5.0)
        with pytest.raises(RejectedError, match="NoNewVersion"):
            await asyncio.wait_for(client.connect("alice", ""), timeout=2.0)
        assert client.transport.disposed is True
    finally:
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_unrecognised_reject_type_still_aborts():
    replies = [frame("Reject", {"type": "Grumpy", "reason": "go away"})]
    server, port = await start_server(make_server_handler([], replies))
    try:
        client = MumbleClient("127.0.0.1", port, handshake_timeout=5.0)
        with pytest.raises(RejectedError, match="go away"):
            await asyncio.wait_for(client.connect("alice", ""), timeout=2.0)
    finally:
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_connection_refused_is_connection_error():
    # Bind then release a port so nothing is listening on it
    server, port = await start_server(lambda ws: None)
    server.close()
    await server.wait_closed()

    transport = WebSocketTransport("127.0.0.1", port, open_timeout=2.0)
    with pytest.raises(MumbleConnectionError):
        await transport.connect()


@pytest.mark.asyncio
async def test_dispose_wakes_pending_receive():
    server, port = await start_server(silent)
    try:
        transport = WebSocketTransport("127.0.0.1", port)
        await transport.connect()
        await transport.send(Ping(timestamp=1))
        pending = asyncio.create_task(transport.receive())
        await asyncio.sleep(0.05)

        await transport.dispose()
        await transport.dispose()

        with pytest.raises(MumbleConnectionError):
            await asyncio.wait_for(pending, timeout=2.0)
        with pytest.raises(MumbleConnectionError):
            await transport.send(ServerSync())
    finally:
        server.close()
        await server.wait_closed()


def test_uri():
    assert WebSocketTransport("example.org").uri == "ws://example.org:64738"
    assert WebSocketTransport("::1", 1234, secure=True).uri == "wss://[::1]:1234"


@pytest.mark.asyncio
async def test_dispose_during_opening_handshake_closes_socket():
    async def slow_upgrade(connection, request):
        await asyncio.sleep(0.3)

    server, port = await start_server(silent, process_request=slow_upgrade)
    try:
        transport = WebSocketTransport("127.0.0.1", port)
        pending = asyncio.create_task(transport.connect())
        await asyncio.sleep(0.1)

        await transport.dispose()

        with pytest.raises(MumbleConnectionError, match="disposed while connecting"):
            await asyncio.wait_for(pending, timeout=2.0)
        assert transport.websocket is not None
        assert transport.websocket.state is State.CLOSED
    finally:
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_client_dispose_during_opening_handshake_closes_socket():
    async def slow_upgrade(connection, request):
        await asyncio.sleep(0.3)

    server, port = await start_server(silent, process_request=slow_upgrade)
    try:
        client = MumbleClient("127.0.0.1", port, handshake_timeout=5.0)
        pending = asyncio.create_task(client.connect("alice", ""))
        await asyncio.sleep(0.1)

        await client.dispose()

        with pytest.raises(MumbleConnectionError):
            await asyncio.wait_for(pending, timeout=2.0)
        assert client.transport.websocket.state is State.CLOSED
        assert client.connected is False
    finally:
        server.close()
        await server.wait_closed()
