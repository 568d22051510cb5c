"""Connection classes for the beanstalk client."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable

from beanstalk.errors import NotConnectedError
from beanstalk.protocol.message import CRLF, body_length, parse_header

if TYPE_CHECKING:
    from collections.abc import Awaitable

T = TypeVar("T")

logger = logging.getLogger("beanstalk.connection")


@runtime_checkable
class Connection(Protocol):
    """Protocol for beanstalk connections.

    ``recv`` must return one whole response: the header line and, when the
    header announces one, the body with its trailing CRLF.
    """

    async def connect(self) -> None:
        """Open the connection."""
        ...

    def is_connected(self) -> bool:
        """Check if the connection is active."""
        ...

    async def send(self, data: bytes) -> None:
        """Write data to the connection."""
        ...

    async def recv(self) -> bytes:
        """Read one complete response from the connection."""
        ...

    async def close(self) -> None:
        """Close the connection."""
        ...


class TcpConnection:
    """TCP-based beanstalk connection.

    Implements the Connection protocol on top of asyncio streams.
    """

    _reader: asyncio.StreamReader | None
    _writer: asyncio.StreamWriter | None

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 11300,
        *,
        connect_timeout: float | None = 1.0,
        timeout: float | None = None,
    ):
        """Initialize TCP connection.

        Args:
            host: Server hostname
            port: Server port
            connect_timeout: Seconds to wait for the connection, None waits forever
            timeout: Seconds to wait for each send or receive, None waits forever
        """
        self.host = host
        self.port = port
        self._connect_timeout = connect_timeout
        self._timeout = timeout
        self._reader = None
        self._writer = None

    async def connect(self) -> None:
        """Open TCP connection.

        Raises:
            ConnectionError: If connection fails or times out
        """
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self._connect_timeout,
            )
        except asyncio.TimeoutError as e:
            msg = f"Connection to {self.host}:{self.port} timed out after {self._connect_timeout} seconds"
            raise ConnectionError(msg) from e
        except OSError as e:
            msg = f"Failed to connect: {e}"
            raise ConnectionError(msg) from e

        logger.debug("TCP connection opened to %s:%s", self.host, self.port)

    def is_connected(self) -> bool:
        """Check if TCP connection is active."""
        return self._writer is not None and not self._writer.is_closing()

    async def send(self, data: bytes) -> None:
        """Write data to TCP connection.

        Raises:
            NotConnectedError: If not connected
            ConnectionError: If the write fails or times out
        """
        if not self._writer:
            msg = "Not connected"
            raise NotConnectedError(msg)
        self._writer.write(data)
        await self._guard(self._writer.drain(), "write")

    async def recv(self) -> bytes:
        """Read one complete response from TCP connection.

        Returns:
            Header line including CRLF, followed by the body and its CRLF
            when the header announces one

        Raises:
            NotConnectedError: If not connected
            ConnectionError: If the server closed the connection or the read timed out
        """
        if not self._reader:
            msg = "Not connected"
            raise NotConnectedError(msg)

        header = await self._guard(self._reader.readuntil(CRLF), "read")
        status, meta = parse_header(header[:-len(CRLF)])
        size = body_length(status, meta)
        if size is None:
            return header

        body = await self._guard(
            self._reader.readexactly(size + len(CRLF)), "read"
        )
        return header + body

    async def close(self) -> None:
        """Close TCP connection."""
        if self._writer:
            writer = self._writer
            self._writer = None
            self._reader = None
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug("Error while closing connection: %s", e)
            logger.debug("TCP connection closed")

    async def _guard(self, aw: Awaitable[T], operation: str) -> T:
        """Await a stream operation, turning stream failures into ConnectionError.

        The connection is closed on failure since the stream position is
        no longer known.
        """
        try:
            return await asyncio.wait_for(aw, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            await self.close()
            msg = f"Timed out waiting to {operation} after {self._timeout} seconds"
            raise ConnectionError(msg) from e
        except asyncio.IncompleteReadError as e:
            await self.close()
            msg = "Connection closed by server"
            raise ConnectionError(msg) from e
        except (asyncio.LimitOverrunError, OSError) as e:
            await self.close()
            msg = f"Failed to {operation}: {e}"
            raise ConnectionError(msg) from e
