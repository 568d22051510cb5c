"""Test helpers: an in-memory connection and response builders."""


class ScriptedConnection:
    """In-memory connection that replays queued responses and records what was sent."""

    def __init__(self, responses: list[bytes] | None = None) -> None:
        self.responses = list(responses or [])
        self.sent: list[bytes] = []
        self.connected = False
        self.connect_count = 0
        self.close_count = 0

    def reply(self, *responses: bytes) -> None:
        self.responses.extend(responses)

    async def connect(self) -> None:
        self.connected = True
        self.connect_count += 1

    def is_connected(self) -> bool:
        return self.connected

    async def send(self, data: bytes) -> None:
        self.sent.append(data)

    async def recv(self) -> bytes:
        if not self.responses:
            msg = "Connection closed by server"
            raise ConnectionError(msg)
        return self.responses.pop(0)

    async def close(self) -> None:
        self.connected = False
        self.close_count += 1


def ok(body: bytes) -> bytes:
    """Build an OK response around a stats body."""
    return b"OK %d\r\n" % len(body) + body + b"\r\n"


def job(status: bytes, job_id: int, body: bytes) -> bytes:
    """Build a RESERVED or FOUND response."""
    return b"%b %d %d\r\n" % (status, job_id, len(body)) + body + b"\r\n"
