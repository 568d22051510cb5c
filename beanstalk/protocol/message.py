"""Beanstalk response framing and stats decoding.

A response is a single header line ``<STATUS> [meta ...]\\r\\n`` optionally
followed by a body whose length is announced by the last meta field and
which is terminated by its own CRLF. Statistics and tube listings come back
as ``OK <bytes>`` with a small YAML-like body that is decoded here into
ordered mappings or lists with numeric values coerced.
"""

from __future__ import annotations

import re
from typing import Final, NamedTuple

CRLF: Final[bytes] = b"\r\n"
MAX_HEADER_LINE: Final[int] = 224  # Longest header the server may send
MAX_EXACT_INT: Final[int] = 2**53  # Floats represent every integer up to here

# Statuses whose last meta field announces a body
BODY_STATUSES: Final[frozenset[str]] = frozenset({"RESERVED", "FOUND", "OK"})

_INT_PATTERN: Final[re.Pattern[str]] = re.compile(r"[+-]?\d+")
_NUMBER_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?"
)

StatsValue = int | float | str
StatsResult = dict[str, StatsValue] | list[StatsValue]


class Response(NamedTuple):
    """A framed server response."""
    status: str
    meta: list[str]
    body: bytes


class ParseError(Exception):
    """Parser error when handling beanstalk responses."""


def parse_header(line: bytes) -> tuple[str, list[str]]:
    """Parse a header line into status and meta fields.

    Args:
        line: Raw header bytes without the trailing CRLF

    Returns:
        Tuple of (status, meta)

    Raises:
        ParseError: If the line is empty or not ASCII
    """
    try:
        parts = line.decode("ascii").split(" ")
    except UnicodeDecodeError as e:
        msg = f"Invalid header encoding: {e}"
        raise ParseError(msg) from e

    if not parts[0]:
        msg = "Empty header line"
        raise ParseError(msg)

    return parts[0], parts[1:]


def body_length(status: str, meta: list[str]) -> int | None:
    """Return the body size announced by a header, if any.

    Args:
        status: Response status token
        meta: Meta fields following the status

    Returns:
        Announced byte count, or None if the response carries no body

    Raises:
        ParseError: If the byte count is missing or not an integer
    """
    if status not in BODY_STATUSES:
        return None

    if not meta:
        msg = f"Missing byte count in {status} response"
        raise ParseError(msg)

    try:
        size = int(meta[-1])
    except ValueError as e:
        msg = f"Invalid byte count: {meta[-1]}"
        raise ParseError(msg) from e

    if size < 0:
        msg = f"Invalid byte count: {size}"
        raise ParseError(msg)

    return size


def parse_response(data: bytes, *, sized: bool = False) -> Response:
    """Split one complete response into status, meta fields and body.

    Args:
        data: Response bytes as read from the connection
        sized: Whether the last meta field announces the body length; the
            body is then cut to exactly that many bytes and the trailing
            CRLF dropped

    Returns:
        Parsed response

    Raises:
        ParseError: If the response has no CRLF or a bad byte count
    """
    end = data.find(CRLF)
    if end < 0:
        msg = f"Missing CRLF in response: {data[:MAX_HEADER_LINE]!r}"
        raise ParseError(msg)

    status, meta = parse_header(data[:end])
    body = data[end + len(CRLF):]

    if sized:
        size = body_length(status, meta)
        if size is not None:
            if len(body) < size:
                msg = f"Short body: expected {size} bytes, got {len(body)}"
                raise ParseError(msg)
            body = body[:size]

    return Response(status, meta, body)


def coerce_value(value: str) -> StatsValue:
    """Coerce a stats value to int or float when it is numeric.

    Numbers with a whole, exactly representable value become ``int``, so
    ``3.0`` and ``1e3`` do too. Other numbers become ``float``. Anything
    else is returned unchanged.
    """
    text = value.strip()
    if _INT_PATTERN.fullmatch(text):
        return int(text)
    if not _NUMBER_PATTERN.fullmatch(text):
        return value

    number = float(text)
    if number.is_integer() and abs(number) <= MAX_EXACT_INT:
        return int(number)
    return number


def decode_stats(body: bytes | str, *, coerce: bool = True) -> StatsResult:
    """Decode the body of an ``OK`` response.

    The first line is a format marker and is skipped, as is any ``---``
    document marker. Lines starting with ``-`` are list items; other lines
    are ``key: value`` pairs.

    Args:
        body: Response body
        coerce: Convert numeric values with `coerce_value`; tube listings
            keep names such as ``007`` verbatim

    Returns:
        Ordered list of values or insertion-ordered mapping

    Raises:
        ParseError: If list items and keys are mixed, a line has no
            ``:`` separator, or the body is not UTF-8
    """
    if isinstance(body, bytes):
        try:
            body = body.decode()
        except UnicodeDecodeError as e:
            msg = f"Invalid stats encoding: {e}"
            raise ParseError(msg) from e

    lines = body.rstrip().split("\n")[1:]

    items: list[StatsValue] = []
    mapping: dict[str, StatsValue] = {}

    for line in lines:
        line = line.rstrip("\r")
        if not line or line == "---":
            continue

        if line.startswith("-"):
            items.append(coerce_value(line[2:]) if coerce else line[2:])
            continue

        key, sep, value = line.partition(": ")
        if not sep:
            # An empty last value loses its space to the body rstrip
            key, sep, value = line.partition(":")
        if not sep:
            msg = f"Invalid stats line (missing ':'): {line!r}"
            raise ParseError(msg)
        mapping[key] = coerce_value(value) if coerce else value

    if items and mapping:
        msg = "Stats body mixes list items and keys"
        raise ParseError(msg)

    if items:
        return items
    return mapping
