"""Per-command status table and outcome mapping.

Every command has exactly one success status and a result shape. A response
with any other status is a rejection and maps to a ``Failure``.
"""

from __future__ import annotations

from enum import Enum
from typing import Final, NamedTuple

from beanstalk.errors import Failure
from beanstalk.job import Job
from beanstalk.protocol.message import ParseError, StatsResult, decode_stats, parse_response


class Shape(Enum):
    """Result shape of a successful command."""

    ACK = "ack"  # True
    ID = "id"  # first meta field as int
    COUNT = "count"  # first meta field as int
    TUBE = "tube"  # first meta field as str
    JOB = "job"  # Job(id, body)
    STATS = "stats"  # decoded body
    TUBES = "tubes"  # decoded body, names kept verbatim


class CommandSpec(NamedTuple):
    """Expected success status and result shape of one command."""
    success: str
    shape: Shape


COMMANDS: Final[dict[str, CommandSpec]] = {
    "put": CommandSpec("INSERTED", Shape.ID),
    "use": CommandSpec("USING", Shape.TUBE),
    "reserve": CommandSpec("RESERVED", Shape.JOB),
    "reserve-with-timeout": CommandSpec("RESERVED", Shape.JOB),
    "delete": CommandSpec("DELETED", Shape.ACK),
    "release": CommandSpec("RELEASED", Shape.ACK),
    "bury": CommandSpec("BURIED", Shape.ACK),
    "touch": CommandSpec("TOUCHED", Shape.ACK),
    "watch": CommandSpec("WATCHING", Shape.COUNT),
    "ignore": CommandSpec("WATCHING", Shape.ACK),
    "peek": CommandSpec("FOUND", Shape.JOB),
    "peek-ready": CommandSpec("FOUND", Shape.JOB),
    "peek-delayed": CommandSpec("FOUND", Shape.JOB),
    "peek-buried": CommandSpec("FOUND", Shape.JOB),
    "kick": CommandSpec("KICKED", Shape.COUNT),
    "kick-job": CommandSpec("KICKED", Shape.ACK),
    "stats": CommandSpec("OK", Shape.STATS),
    "stats-job": CommandSpec("OK", Shape.STATS),
    "stats-tube": CommandSpec("OK", Shape.STATS),
    "list-tubes": CommandSpec("OK", Shape.TUBES),
    "list-tube-used": CommandSpec("USING", Shape.TUBE),
    "list-tubes-watched": CommandSpec("OK", Shape.TUBES),
    "pause-tube": CommandSpec("PAUSED", Shape.ACK),
}

Outcome = bool | int | str | Job | StatsResult | Failure


def _first_meta(verb: str, meta: list[str]) -> str:
    if not meta:
        msg = f"Missing value in {verb} response"
        raise ParseError(msg)
    return meta[0]


def _meta_int(verb: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        msg = f"Invalid integer in {verb} response: {value}"
        raise ParseError(msg) from e


def interpret(verb: str, data: bytes) -> Outcome:
    """Map a raw response to the typed result of the command that caused it.

    Args:
        verb: Command name the response answers
        data: Complete response bytes

    Returns:
        The command's success value, or a Failure carrying the status

    Raises:
        KeyError: If the command is unknown
        ParseError: If the response cannot be framed or decoded
    """
    spec = COMMANDS[verb]
    response = parse_response(
        data, sized=spec.shape in (Shape.JOB, Shape.STATS, Shape.TUBES)
    )

    if response.status != spec.success:
        return Failure(response.status)

    match spec.shape:
        case Shape.ACK:
            return True
        case Shape.ID | Shape.COUNT:
            return _meta_int(verb, _first_meta(verb, response.meta))
        case Shape.TUBE:
            return _first_meta(verb, response.meta)
        case Shape.JOB:
            job_id = _meta_int(verb, _first_meta(verb, response.meta))
            return Job(job_id, response.body)
        case Shape.STATS:
            return decode_stats(response.body)
        case Shape.TUBES:
            return decode_stats(response.body, coerce=False)
