"""Beanstalk protocol command encoding."""

from __future__ import annotations

from beanstalk.protocol.message import CRLF


def encode_command(verb: str, *args: object, body: bytes | None = None) -> bytes:
    """Encode a command line with an optional body.

    Arguments are joined with single spaces and are not escaped.

    Args:
        verb: Command name, e.g. ``"delete"``
        args: Positional arguments
        body: Optional payload sent after the command line

    Returns:
        Encoded command
    """
    line = " ".join([verb, *(str(arg) for arg in args)]).encode()
    if body is None:
        return line + CRLF
    return line + CRLF + body + CRLF


def encode_put(pri: int, delay: int, ttr: int, data: bytes) -> bytes:
    """Encode PUT command.

    Args:
        pri: Job priority, lower is more urgent
        delay: Seconds to wait before the job becomes ready
        ttr: Time to run in seconds
        data: Job body

    Returns:
        Encoded PUT command with body
    """
    return b"put %d %d %d %d\r\n" % (pri, delay, ttr, len(data)) + data + CRLF


def encode_use(tube: str) -> bytes:
    """Encode USE command."""
    return encode_command("use", tube)


def encode_reserve(timeout: int | None = None) -> bytes:
    """Encode RESERVE or RESERVE-WITH-TIMEOUT.

    Args:
        timeout: Seconds to wait, ``None`` blocks until a job is available

    Returns:
        Encoded command
    """
    if timeout is None:
        return encode_command("reserve")
    return encode_command("reserve-with-timeout", int(timeout))


def encode_delete(job_id: int) -> bytes:
    """Encode DELETE command."""
    return encode_command("delete", int(job_id))


def encode_release(job_id: int, pri: int, delay: int) -> bytes:
    """Encode RELEASE command."""
    return encode_command("release", int(job_id), int(pri), int(delay))


def encode_bury(job_id: int, pri: int | None = None) -> bytes:
    """Encode BURY command.

    Args:
        job_id: Job to bury
        pri: Optional new priority for the buried job

    Returns:
        Encoded BURY command
    """
    if pri is None:
        return encode_command("bury", int(job_id))
    return encode_command("bury", int(job_id), int(pri))


def encode_touch(job_id: int) -> bytes:
    """Encode TOUCH command."""
    return encode_command("touch", int(job_id))


def encode_watch(tube: str) -> bytes:
    """Encode WATCH command."""
    return encode_command("watch", tube)


def encode_ignore(tube: str) -> bytes:
    """Encode IGNORE command."""
    return encode_command("ignore", tube)


def encode_peek(job_id: int | None = None, *, state: str | None = None) -> bytes:
    """Encode one of the PEEK commands.

    Args:
        job_id: Job to peek at, used when no state is given
        state: One of ``"ready"``, ``"delayed"`` or ``"buried"``

    Returns:
        Encoded PEEK command

    Raises:
        ValueError: If neither or both of job_id and state are given
    """
    match (job_id, state):
        case (None, "ready" | "delayed" | "buried"):
            return encode_command(f"peek-{state}")
        case (None, None):
            msg = "peek requires a job id or a state"
            raise ValueError(msg)
        case (_, None):
            return encode_command("peek", int(job_id))
        case _:
            msg = f"Invalid peek arguments: job_id={job_id!r}, state={state!r}"
            raise ValueError(msg)


def encode_kick(bound: int) -> bytes:
    """Encode KICK command."""
    return encode_command("kick", int(bound))


def encode_kick_job(job_id: int) -> bytes:
    """Encode KICK-JOB command."""
    return encode_command("kick-job", int(job_id))


def encode_stats(job_id: int | None = None, tube: str | None = None) -> bytes:
    """Encode STATS, STATS-JOB or STATS-TUBE.

    Args:
        job_id: Job to report on
        tube: Tube to report on

    Returns:
        Encoded stats command
    """
    if job_id is not None:
        return encode_command("stats-job", int(job_id))
    if tube is not None:
        return encode_command("stats-tube", tube)
    return encode_command("stats")


def encode_list_tubes() -> bytes:
    """Encode LIST-TUBES command."""
    return b"list-tubes\r\n"


def encode_list_tube_used() -> bytes:
    """Encode LIST-TUBE-USED command."""
    return b"list-tube-used\r\n"


def encode_list_tubes_watched() -> bytes:
    """Encode LIST-TUBES-WATCHED command."""
    return b"list-tubes-watched\r\n"


def encode_pause_tube(tube: str, delay: int) -> bytes:
    """Encode PAUSE-TUBE command."""
    return encode_command("pause-tube", tube, int(delay))


def encode_quit() -> bytes:
    """Encode QUIT command."""
    return b"quit\r\n"
