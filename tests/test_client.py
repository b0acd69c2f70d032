"""Tests for the telnet client against a mock line server."""

import asyncio

import pytest

from lib.avtelnet.client import TelnetClient
from lib.avtelnet.exceptions import ClientDisposedError, HandshakeError, NotConnectedError
from lib.avtelnet.profiles.trinnov import TrinnovProfile
from tests.fake_streams import FakeConnector
from tests.mock_line_server import MockLineServer, unused_port, wait_until


def make_client(port: int, **kwargs) -> TelnetClient:
    kwargs.setdefault("auto_reconnect", False)
    kwargs.setdefault("connect_timeout", 2.0)
    return TelnetClient("127.0.0.1", port, **kwargs)


@pytest.mark.asyncio
async def test_client_connect_and_send(mock_server: MockLineServer) -> None:
    """Test a sent line arrives unaltered with a newline terminator."""
    client = make_client(mock_server.actual_port)
    try:
        await client.connect()
        assert client.connected

        await client.send("SRATE ?")
        await client.send("volume\t-20 é")
        assert await wait_until(lambda: len(mock_server.received) == 2)
        assert mock_server.received == ["SRATE ?", "volume\t-20 é"]
    finally:
        await client.dispose()


@pytest.mark.asyncio
async def test_client_receives_lines_until_peer_closes() -> None:
    """Test blank lines are dropped and the read loop ends quietly on EOF."""
    with MockLineServer(script=["OK\n", "\n", "SRATE 48000\n"], close_after_script=True) as server:
        client = make_client(server.actual_port)
        received: list[str] = []
        client.on_message(received.append)
        try:
            await client.connect()
            assert await wait_until(lambda: not client.connected)
            assert received == ["OK", "SRATE 48000"]
        finally:
            await client.dispose()


@pytest.mark.asyncio
async def test_client_read_error_ends_loop_and_closes() -> None:
    """Test a failing read ends the loop quietly and closes its socket."""
    connector = FakeConnector()
    client = TelnetClient("device", 23, auto_reconnect=False, connection_factory=connector)
    received: list[str] = []
    client.on_message(received.append)
    try:
        await client.connect()
        connector.readers[0].feed_data(b"A\n")
        assert await wait_until(lambda: received == ["A"])

        connector.readers[0].set_exception(ConnectionResetError("reset by peer"))
        assert await wait_until(lambda: connector.writers[0].closed)
        assert not client.connected
        assert received == ["A"]

        with pytest.raises(NotConnectedError):
            await client.send("PING")
    finally:
        await client.dispose()


@pytest.mark.asyncio
async def test_client_line_over_limit_drops_connection() -> None:
    """Test a line longer than the default limit ends the connection."""
    with MockLineServer(script=["x" * 70000 + "\n", "AFTER\n"]) as server:
        client = make_client(server.actual_port)
        received: list[str] = []
        client.on_message(received.append)
        try:
            await client.connect()
            assert await wait_until(lambda: not client.connected)
            assert received == []
        finally:
            await client.dispose()


@pytest.mark.asyncio
async def test_client_line_limit_is_configurable() -> None:
    """Test a raised line limit accepts long lines."""
    long_line = "x" * 70000
    with MockLineServer(script=[long_line + "\n", "AFTER\n"]) as server:
        client = make_client(server.actual_port, line_limit=2**17)
        received: list[str] = []
        client.on_message(received.append)
        try:
            await client.connect()
            assert await wait_until(lambda: len(received) == 2)
            assert received == [long_line, "AFTER"]
            assert client.connected
        finally:
            await client.dispose()


@pytest.mark.asyncio
async def test_client_send_waiting_on_replaced_connection() -> None:
    """Test a send queued behind a write fails once its connection is replaced."""
    connector = FakeConnector()
    client = TelnetClient(
        "device",
        23,
        auto_reconnect=False,
        reconnect_if_connected=True,
        connection_factory=connector,
    )
    try:
        await client.connect()
        async with client._write_lock:
            pending = asyncio.create_task(client.send("PING"))
            await asyncio.sleep(0)
            await client.connect()
            assert connector.calls == 2

        with pytest.raises(NotConnectedError):
            await pending
        assert connector.writers[0].chunks == []
        assert connector.writers[1].chunks == []
        assert client.connected
    finally:
        await client.dispose()


@pytest.mark.asyncio
async def test_client_delivers_each_line_to_every_handler() -> None:
    """Test every handler, sync or async, sees each non-blank line once."""
    with MockLineServer(script=["A\n", "   \n", "\t\r\n", "B\r\n"]) as server:
        client = make_client(server.actual_port)
        first: list[str] = []
        second: list[str] = []

        @client.on_message
        async def collect(line: str) -> None:
            await asyncio.sleep(0)
            second.append(line)

        client.on_message(first.append)
        try:
            await client.connect()
            assert await wait_until(lambda: len(first) == 2 and len(second) == 2)
            await asyncio.sleep(0.1)
            assert first == ["A", "B"]
            assert second == ["A", "B"]
        finally:
            await client.dispose()


@pytest.mark.asyncio
async def test_client_handler_failure_does_not_stop_delivery() -> None:
    """Test a raising handler is logged and the others still get lines."""
    with MockLineServer(script=["ONE\n", "TWO\n"]) as server:
        client = make_client(server.actual_port)
        received: list[str] = []

        def broken(line: str) -> None:
            raise RuntimeError("handler bug")

        client.on_message(broken)
        client.on_message(received.append)
        try:
            await client.connect()
            assert await wait_until(lambda: len(received) == 2)
            assert received == ["ONE", "TWO"]
            assert client.connected
        finally:
            await client.dispose()


@pytest.mark.asyncio
async def test_client_removed_handler_is_not_called(mock_server: MockLineServer) -> None:
    """Test a removed handler stops receiving lines."""
    client = make_client(mock_server.actual_port)
    kept: list[str] = []
    dropped: list[str] = []
    client.on_message(kept.append)
    client.on_message(dropped.append)
    client.remove_message_handler(dropped.append)
    try:
        await client.connect()
        await wait_until(lambda: mock_server.connections == 1)
        mock_server.send("POWER ON\n")
        assert await wait_until(lambda: kept == ["POWER ON"])
        assert dropped == []
    finally:
        await client.dispose()


@pytest.mark.asyncio
async def test_client_send_after_disconnect(mock_server: MockLineServer) -> None:
    """Test disconnect is idempotent and leaves the client unable to send."""
    client = make_client(mock_server.actual_port)
    try:
        await client.connect()
        assert client.connected

        await client.disconnect()
        await client.disconnect()
        assert not client.connected

        with pytest.raises(NotConnectedError):
            await client.send("PING")
    finally:
        await client.dispose()


@pytest.mark.asyncio
async def test_client_send_before_connect() -> None:
    """Test sending without ever connecting fails."""
    client = make_client(unused_port())
    with pytest.raises(NotConnectedError):
        await client.send("PING")
    await client.dispose()


@pytest.mark.asyncio
async def test_client_dispose(mock_server: MockLineServer) -> None:
    """Test dispose is idempotent and rejects later operations."""
    client = make_client(mock_server.actual_port)
    await client.connect()

    await client.dispose()
    await client.dispose()
    assert client.disposed
    assert not client.connected

    with pytest.raises(ClientDisposedError):
        await client.connect()
    with pytest.raises(ClientDisposedError):
        await client.send("PING")
    with pytest.raises(ClientDisposedError):
        await client.disconnect()


@pytest.mark.asyncio
async def test_client_validation_failure(mock_server: MockLineServer) -> None:
    """Test a failing validation callback surfaces and leaves no connection."""
    client = make_client(mock_server.actual_port)

    async def reject(client, reader, writer) -> None:
        raise RuntimeError("not the expected device")

    client.validate_connection = reject
    try:
        with pytest.raises(HandshakeError) as exc_info:
            await client.connect()

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert client.address in str(exc_info.value)
        assert not client.connected
    finally:
        await client.dispose()


@pytest.mark.asyncio
async def test_client_validation_runs_before_dispatch() -> None:
    """Test the handshake consumes the greeting before handlers see lines."""
    greeting = "Welcome on Trinnov Optimizer (Version 4.3.2, ID 1234)\n"
    with MockLineServer(greeting=greeting) as server:
        client = make_client(server.actual_port)
        client.validate_connection = TrinnovProfile(client_id="theater")
        received: list[str] = []
        client.on_message(received.append)
        try:
            await client.connect()
            assert client.connected
            assert await wait_until(lambda: server.received == ["id theater"])

            server.send("VOLUME -20\n")
            assert await wait_until(lambda: received == ["VOLUME -20"])
        finally:
            await client.dispose()


@pytest.mark.asyncio
async def test_client_unreachable_host() -> None:
    """Test connecting to a closed port is absorbed."""
    client = make_client(unused_port())
    try:
        await client.connect()
        assert not client.connected
    finally:
        await client.dispose()


@pytest.mark.asyncio
async def test_client_connect_keeps_live_connection(mock_server: MockLineServer) -> None:
    """Test connect is a no-op while connected by default."""
    client = make_client(mock_server.actual_port)
    try:
        await client.connect()
        await client.connect()
        assert client.connected
        await asyncio.sleep(0.2)
        assert mock_server.connections == 1
    finally:
        await client.dispose()


@pytest.mark.asyncio
async def test_client_connect_replaces_live_connection(mock_server: MockLineServer) -> None:
    """Test connect reconnects while connected when configured to."""
    client = make_client(mock_server.actual_port, reconnect_if_connected=True)
    try:
        await client.connect()
        await client.connect()
        assert client.connected
        assert await wait_until(lambda: mock_server.connections == 2)

        await client.send("PING")
        assert await wait_until(lambda: mock_server.received == ["PING"])
    finally:
        await client.dispose()


@pytest.mark.asyncio
async def test_client_context_manager(mock_server: MockLineServer) -> None:
    """Test async context manager connects and disposes."""
    async with make_client(mock_server.actual_port) as client:
        assert client.connected
    assert client.disposed
    assert not client.connected


def test_client_requires_host() -> None:
    """Test an empty host is rejected."""
    with pytest.raises(ValueError):
        TelnetClient("", 23)


@pytest.fixture
def mock_server() -> MockLineServer:
    """Create mock line server fixture."""
    server = MockLineServer()
    server.start()
    yield server
    server.stop()
