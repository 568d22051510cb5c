"""Beanstalk job type."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Job:
    """A job returned by reserve or one of the peek commands.

    Attributes:
        id: Server-assigned job id
        body: Job payload, exactly as many bytes as the server announced
    """

    id: int
    body: bytes
