"""Beanstalk client implementation.

This module provides an asyncio-based client for the beanstalkd work queue.
It covers the whole beanstalk command set:
- Producing jobs into a tube
- Reserving, releasing, burying and deleting jobs
- Watching and ignoring tubes
- Peeking, kicking and pausing
- Server, tube and job statistics

Protocol rejections such as ``NOT_FOUND`` or ``TIMED_OUT`` do not raise by
default. The command returns a falsy ``Failure`` and the same value is kept
as the client's last error until ``get_error()`` reads it.

The primary entry point is the `connect()` function which returns a connected
`Client` instance.
"""

from __future__ import annotations

try:
    from importlib.metadata import version
    __version__ = version("beanstalk-py")
except Exception:
    __version__ = "unknown"

import logging
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Final
from urllib.parse import urlparse

from beanstalk.connection import Connection, TcpConnection
from beanstalk.errors import Failure, NotConnectedError, StatusError
from beanstalk.job import Job
from beanstalk.protocol.command import (
    encode_bury,
    encode_delete,
    encode_ignore,
    encode_kick,
    encode_kick_job,
    encode_list_tube_used,
    encode_list_tubes,
    encode_list_tubes_watched,
    encode_pause_tube,
    encode_peek,
    encode_put,
    encode_quit,
    encode_release,
    encode_reserve,
    encode_stats,
    encode_touch,
    encode_use,
    encode_watch,
)
from beanstalk.protocol.message import CRLF, ParseError, StatsResult
from beanstalk.protocol.status import Outcome, interpret
from beanstalk.tubes import TubeState
from typing_extensions import Self

if TYPE_CHECKING:
    import types

logger = logging.getLogger("beanstalk.client")

DEFAULT_PRI: Final[int] = 60
DEFAULT_TTR: Final[int] = 30
DEFAULT_PORT: Final[int] = 11300


class Client(AbstractAsyncContextManager["Client"]):
    """High-level beanstalk client.

    One client drives one connection and must be used by one task at a
    time; responses are matched to commands purely by order.
    """

    def __init__(self, connection: Connection, *, raise_on_error: bool = False):
        """Initialize the client.

        The connection is not opened here; call `connect()` or use the
        client as an async context manager.

        Args:
            connection: Beanstalk connection
            raise_on_error: Raise StatusError on protocol rejections instead
                of returning a Failure
        """
        self._connection: Connection | None = connection
        self._raise_on_error = raise_on_error
        self._tubes = TubeState()
        self._last_error: Failure | None = None

    @property
    def tubes(self) -> TubeState:
        """Get the locally tracked tube state."""
        return self._tubes

    def is_connected(self) -> bool:
        """Check if the client has a live connection."""
        return self._connection is not None and self._connection.is_connected()

    async def connect(self) -> None:
        """Open the connection, replacing a live one if there is one.

        Raises:
            NotConnectedError: If the client was disconnected
            ConnectionError: If the connection cannot be established
        """
        if self._connection is None:
            msg = "Client has been disconnected"
            raise NotConnectedError(msg)

        if self._connection.is_connected():
            logger.info("Closing existing connection before reconnecting")
            await self._connection.close()

        await self._connection.connect()
        logger.info("Connected")

    async def disconnect(self) -> None:
        """Send QUIT, close the connection and release it."""
        if self._connection is None:
            return

        if self._connection.is_connected():
            try:
                await self._send(encode_quit())
            except ConnectionError as e:
                logger.debug("Error sending QUIT: %s", e)
            await self._connection.close()

        self._connection = None
        logger.info("Disconnected")

    def get_error(self) -> Failure | None:
        """Return the last recorded failure and clear it.

        Returns:
            The failure of the most recent failing command, or None if there
            is none or it was already read
        """
        error, self._last_error = self._last_error, None
        return error

    async def __aenter__(self) -> Self:
        """Enter the async context manager, connecting if needed."""
        if not self.is_connected():
            await self.connect()
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None,
        exc_val: BaseException | None, exc_tb: types.TracebackType | None
    ) -> None:
        """Exit the async context manager, disconnecting the client."""
        await self.disconnect()

    async def put(
        self,
        data: bytes | str,
        pri: int = DEFAULT_PRI,
        delay: int = 0,
        ttr: int = DEFAULT_TTR,
    ) -> int | Failure:
        """Put a job into the tube in use.

        Args:
            data: Job body, str is encoded as UTF-8
            pri: Priority, lower is more urgent
            delay: Seconds before the job becomes ready
            ttr: Seconds a worker may hold the job reserved

        Returns:
            The new job id
        """
        if isinstance(data, str):
            data = data.encode()
        return await self._execute("put", encode_put(pri, delay, ttr, data))

    async def use(self, tube: str) -> str | Failure:
        """Use a tube for subsequent puts.

        Nothing is sent if the tube is already in use.

        Returns:
            The tube name
        """
        if self._tubes.is_using(tube):
            return tube

        message = f"Use tube {tube} failed."
        outcome = await self._execute("use", encode_use(tube), message)
        if isinstance(outcome, Failure):
            return outcome
        if outcome != tube:
            return self._fail("USING", message)

        self._tubes.use(tube)
        return tube

    async def reserve(self, timeout: int | None = None) -> Job | Failure:
        """Reserve a job from the watched tubes.

        Args:
            timeout: Seconds to wait for a job, None waits indefinitely

        Returns:
            The reserved job
        """
        verb = "reserve" if timeout is None else "reserve-with-timeout"
        return await self._execute(verb, encode_reserve(timeout))

    async def reserve_with_timeout(self, timeout: int) -> Job | Failure:
        """Reserve a job, giving up with TIMED_OUT after timeout seconds."""
        return await self.reserve(timeout)

    async def delete(self, job_id: int) -> bool | Failure:
        """Delete a job."""
        return await self._execute("delete", encode_delete(job_id))

    async def release(
        self, job_id: int, pri: int = DEFAULT_PRI, delay: int = 0
    ) -> bool | Failure:
        """Release a reserved job back to the ready queue."""
        return await self._execute(
            "release", encode_release(job_id, pri, delay)
        )

    async def bury(self, job_id: int, pri: int | None = None) -> bool | Failure:
        """Bury a reserved job."""
        return await self._execute("bury", encode_bury(job_id, pri))

    async def touch(self, job_id: int) -> bool | Failure:
        """Request more time to work on a reserved job."""
        return await self._execute("touch", encode_touch(job_id))

    async def watch(self, tube: str) -> int | Failure:
        """Add a tube to the watch list.

        Nothing is sent if the tube is already watched.

        Returns:
            Number of tubes being watched
        """
        if self._tubes.is_watching(tube):
            return self._tubes.watch_count

        outcome = await self._execute("watch", encode_watch(tube))
        if not isinstance(outcome, Failure):
            self._tubes.watch(tube)
        return outcome

    async def ignore(self, tube: str) -> bool | Failure:
        """Remove a tube from the watch list.

        Fails locally, without contacting the server, if the tube is not
        watched or is the last watched tube.
        """
        if not self._tubes.is_watching(tube):
            return self._fail("NOT_WATCHING", f"Tube {tube} is not being watched.")
        if not self._tubes.can_ignore(tube):
            return self._fail("NOT_IGNORED", f"Cannot ignore {tube}, it is the last watched tube.")

        self._tubes.ignore(tube)
        try:
            outcome = await self._execute("ignore", encode_ignore(tube))
        except StatusError:
            self._tubes.watch(tube)
            raise

        if isinstance(outcome, Failure):
            self._tubes.watch(tube)
        return outcome

    async def peek(self, job_id: int) -> Job | Failure:
        """Inspect a job by id."""
        return await self._execute("peek", encode_peek(job_id))

    async def peek_ready(self) -> Job | Failure:
        """Inspect the next ready job in the tube in use."""
        return await self._execute("peek-ready", encode_peek(state="ready"))

    async def peek_delayed(self) -> Job | Failure:
        """Inspect the delayed job with the shortest delay left."""
        return await self._execute(
            "peek-delayed", encode_peek(state="delayed")
        )

    async def peek_buried(self) -> Job | Failure:
        """Inspect the next buried job."""
        return await self._execute("peek-buried", encode_peek(state="buried"))

    async def kick(self, bound: int) -> int | Failure:
        """Kick at most bound jobs in the tube in use.

        Returns:
            Number of jobs actually kicked
        """
        return await self._execute("kick", encode_kick(bound))

    async def kick_job(self, job_id: int) -> bool | Failure:
        """Kick a single buried or delayed job."""
        return await self._execute("kick-job", encode_kick_job(job_id))

    async def stats(self) -> StatsResult | Failure:
        """Get server statistics."""
        return await self._execute("stats", encode_stats())

    async def stats_job(self, job_id: int) -> StatsResult | Failure:
        """Get statistics for a job."""
        return await self._execute("stats-job", encode_stats(job_id=job_id))

    async def stats_tube(self, tube: str) -> StatsResult | Failure:
        """Get statistics for a tube."""
        return await self._execute("stats-tube", encode_stats(tube=tube))

    async def list_tubes(self) -> StatsResult | Failure:
        """List all existing tubes."""
        return await self._execute("list-tubes", encode_list_tubes())

    async def list_tube_used(self, ask_server: bool = False) -> str | Failure:
        """Get the tube in use.

        Args:
            ask_server: Query the server and replace the local value

        Returns:
            The tube name
        """
        if ask_server:
            outcome = await self._execute(
                "list-tube-used", encode_list_tube_used()
            )
            if isinstance(outcome, Failure):
                return outcome
            self._tubes.use(outcome)

        return self._tubes.using

    async def list_tubes_watched(
        self, ask_server: bool = False
    ) -> list[str] | Failure:
        """Get the watched tubes.

        Args:
            ask_server: Query the server and replace the local watch list

        Returns:
            Tube names in watch order
        """
        if ask_server:
            outcome = await self._execute(
                "list-tubes-watched", encode_list_tubes_watched()
            )
            if isinstance(outcome, Failure):
                return outcome
            if not isinstance(outcome, list):
                msg = "Expected a tube list in list-tubes-watched response"
                raise ParseError(msg)
            self._tubes.replace_watching(outcome)

        return self._tubes.watching

    async def pause_tube(self, tube: str, delay: int) -> bool | Failure:
        """Stop handing out jobs from a tube for delay seconds."""
        return await self._execute("pause-tube", encode_pause_tube(tube, delay))

    async def _execute(self, verb: str, command: bytes, message: str = "") -> Outcome:
        """Send one command, read its response and map it to a result."""
        await self._send(command)
        outcome = interpret(verb, await self._recv())
        if isinstance(outcome, Failure):
            return self._fail(outcome.status, message)
        return outcome

    async def _send(self, data: bytes) -> None:
        if not self.is_connected():
            msg = "No connection found while writing data to socket"
            raise NotConnectedError(msg)

        logger.debug("->> %s", data.split(CRLF, 1)[0].decode(errors="replace"))
        await self._connection.send(data)

    async def _recv(self) -> bytes:
        if not self.is_connected():
            msg = "No connection found while reading data from socket"
            raise NotConnectedError(msg)

        data = await self._connection.recv()
        logger.debug("<<- %s", data.split(CRLF, 1)[0].decode(errors="replace"))
        return data

    def _fail(self, status: str, message: str = "") -> Failure:
        """Record a failure as the last error, raising it if configured to."""
        failure = Failure(status, message)
        self._last_error = failure
        logger.debug("Command failed: %s", failure)
        if self._raise_on_error:
            raise StatusError.from_failure(failure)
        return failure


async def connect(
    url: str = "beanstalk://127.0.0.1:11300",
    *,
    connect_timeout: float | None = 1.0,
    timeout: float | None = None,
    raise_on_error: bool = False,
) -> Client:
    """Connect to a beanstalk server.

    Args:
        url: Server URL
        connect_timeout: Connection timeout in seconds
        timeout: Read and write timeout in seconds, None never times out
        raise_on_error: Raise StatusError on protocol rejections

    Returns:
        Connected client instance

    Raises:
        ConnectionError: Failed to connect or timed out
        ValueError: Invalid URL
    """
    parsed_url = urlparse(url)
    if parsed_url.scheme not in ("beanstalk", "tcp"):
        msg = "URL scheme must be 'beanstalk://' or 'tcp://'"
        raise ValueError(msg)

    host = parsed_url.hostname or "127.0.0.1"
    port = parsed_url.port or DEFAULT_PORT

    logger.info("Connecting to %s:%s", host, port)

    connection = TcpConnection(
        host, port, connect_timeout=connect_timeout, timeout=timeout
    )
    client = Client(connection, raise_on_error=raise_on_error)
    await client.connect()
    return client


__all__ = [
    "__version__",
    "DEFAULT_PRI",
    "DEFAULT_TTR",
    "Client",
    "Connection",
    "TcpConnection",
    "Job",
    "Failure",
    "TubeState",
    "NotConnectedError",
    "ParseError",
    "StatusError",
    "connect",
]
