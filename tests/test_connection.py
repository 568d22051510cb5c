import asyncio
import logging
import socket
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from beanstalk import Client, Job, TcpConnection, connect
from beanstalk.errors import NotConnectedError


class StubServer:
    """A beanstalkd stand-in that answers each command with scripted chunks.

    A reply of None closes the connection; an empty tuple sends nothing.
    """

    def __init__(self) -> None:
        self.replies: list[tuple[bytes, ...] | None] = []
        self.received: list[bytes] = []
        self.port = 0

    async def handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            while True:
                line = await reader.readuntil(b"\r\n")
                if line.startswith(b"put "):
                    size = int(line.split()[-1])
                    line += await reader.readexactly(size + 2)
                self.received.append(line)
                if line == b"quit\r\n":
                    break

                reply = self.replies.pop(0) if self.replies else None
                if reply is None:
                    break
                for chunk in reply:
                    writer.write(chunk)
                    await writer.drain()
                    await asyncio.sleep(0.01)
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        finally:
            writer.close()


@pytest_asyncio.fixture
async def stub() -> AsyncGenerator[StubServer, None]:
    """Fixture that provides a stub server on a free port."""
    stub = StubServer()
    server = await asyncio.start_server(stub.handle, "127.0.0.1", 0)
    stub.port = server.sockets[0].getsockname()[1]
    try:
        yield stub
    finally:
        server.close()
        await server.wait_closed()


def _unused_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def _wait_for_quit(stub: StubServer) -> None:
    for _ in range(100):
        if stub.received and stub.received[-1] == b"quit\r\n":
            return
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_connect_and_close(stub):
    """Test opening and closing a TCP connection."""
    connection = TcpConnection("127.0.0.1", stub.port)
    assert not connection.is_connected()

    await connection.connect()
    assert connection.is_connected()

    await connection.close()
    assert not connection.is_connected()


@pytest.mark.asyncio
async def test_connection_logs_under_own_logger(stub, caplog):
    """Test that transport events are logged by the beanstalk.connection logger."""
    connection = TcpConnection("127.0.0.1", stub.port)

    with caplog.at_level(logging.DEBUG, logger="beanstalk.connection"):
        await connection.connect()
        await connection.close()

    names = {record.name for record in caplog.records if "TCP connection" in record.getMessage()}
    assert names == {"beanstalk.connection"}


@pytest.mark.asyncio
async def test_connect_fails_with_unused_port():
    """Test that connecting to a closed port raises ConnectionError."""
    connection = TcpConnection("127.0.0.1", _unused_port())

    with pytest.raises(ConnectionError, match="Failed to connect"):
        await connection.connect()
    assert not connection.is_connected()


@pytest.mark.asyncio
async def test_send_and_recv_without_connection():
    """Test that I/O on an unopened connection raises NotConnectedError."""
    connection = TcpConnection()

    with pytest.raises(NotConnectedError):
        await connection.send(b"stats\r\n")
    with pytest.raises(NotConnectedError):
        await connection.recv()


@pytest.mark.asyncio
async def test_recv_reassembles_split_body(stub):
    """Test that a body delivered in pieces is returned as one response."""
    stub.replies.append((b"RESERVED 5 ", b"11\r\nhello", b" world\r", b"\n"))
    connection = TcpConnection("127.0.0.1", stub.port)
    await connection.connect()

    await connection.send(b"reserve\r\n")
    data = await connection.recv()

    assert data == b"RESERVED 5 11\r\nhello world\r\n"
    assert stub.received == [b"reserve\r\n"]
    await connection.close()


@pytest.mark.asyncio
async def test_recv_header_only(stub):
    """Test that responses without a body are returned after the header."""
    stub.replies.append((b"DELETED\r\n", ))
    connection = TcpConnection("127.0.0.1", stub.port)
    await connection.connect()

    await connection.send(b"delete 1\r\n")
    assert await connection.recv() == b"DELETED\r\n"
    await connection.close()


@pytest.mark.asyncio
async def test_recv_server_closed(stub):
    """Test that EOF raises ConnectionError and closes the connection."""
    stub.replies.append(None)
    connection = TcpConnection("127.0.0.1", stub.port)
    await connection.connect()

    await connection.send(b"stats\r\n")
    with pytest.raises(ConnectionError, match="closed by server"):
        await connection.recv()
    assert not connection.is_connected()


@pytest.mark.asyncio
async def test_recv_timeout(stub):
    """Test that a read timeout raises ConnectionError and closes the connection."""
    stub.replies.append(())
    connection = TcpConnection("127.0.0.1", stub.port, timeout=0.1)
    await connection.connect()

    await connection.send(b"reserve\r\n")
    with pytest.raises(ConnectionError, match="Timed out"):
        await connection.recv()
    assert not connection.is_connected()


@pytest.mark.asyncio
async def test_client_over_tcp(stub):
    """Test a put, reserve, stats and delete cycle over TCP."""
    stats_body = b"---\nname: default\ncurrent-jobs-ready: 0\n"
    stub.replies.extend([
        (b"INSERTED 1\r\n", ),
        (b"RESERVED 1 5\r\n", b"hello\r\n"),
        (b"OK %d\r\n" % len(stats_body), stats_body, b"\r\n"),
        (b"DELETED\r\n", ),
    ])

    client = await connect(f"beanstalk://127.0.0.1:{stub.port}", timeout=1.0)
    assert client.is_connected()

    assert await client.put("hello") == 1
    assert await client.reserve() == Job(1, b"hello")
    assert await client.stats_tube("default") == {
        "name": "default", "current-jobs-ready": 0
    }
    assert await client.delete(1) is True

    await client.disconnect()
    assert not client.is_connected()
    await _wait_for_quit(stub)

    assert stub.received == [
        b"put 60 0 30 5\r\nhello\r\n",
        b"reserve\r\n",
        b"stats-tube default\r\n",
        b"delete 1\r\n",
        b"quit\r\n",
    ]


@pytest.mark.asyncio
async def test_client_context_manager_over_tcp(stub):
    """Test that the context manager connects and quits."""
    stub.replies.append((b"USING jobs\r\n", ))

    async with Client(TcpConnection("127.0.0.1", stub.port)) as client:
        assert await client.use("jobs") == "jobs"

    await _wait_for_quit(stub)
    assert stub.received == [b"use jobs\r\n", b"quit\r\n"]


@pytest.mark.asyncio
async def test_connect_rejects_invalid_scheme():
    """Test that connect validates the URL scheme."""
    with pytest.raises(ValueError, match="URL scheme"):
        await connect("http://127.0.0.1:11300")


@pytest.mark.asyncio
async def test_connect_fails_with_invalid_url():
    """Test that connecting to an unused port fails appropriately."""
    with pytest.raises(ConnectionError):
        await connect(f"tcp://127.0.0.1:{_unused_port()}", connect_timeout=0.5)
