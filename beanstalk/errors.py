"""Beanstalk client error classes."""

from __future__ import annotations

from dataclasses import dataclass


class NotConnectedError(ConnectionError):
    """Raised when a command is issued without a live connection."""


@dataclass(frozen=True)
class Failure:
    """Outcome of a command the server (or the client) refused.

    Failures are falsy so callers can write ``if not await client.delete(id)``.

    Attributes:
        status: The status token, e.g. ``"NOT_FOUND"``
        message: Optional context for the failure
    """

    status: str
    message: str = ""

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        if self.message:
            return f"{self.status}: {self.message}"
        return self.status


class StatusError(Exception):
    """Base class for protocol rejections raised in ``raise_on_error`` mode."""

    def __init__(self, status: str, message: str = "") -> None:
        """Initialize StatusError.

        Args:
            status: The status token returned by the server
            message: Optional context for the failure
        """
        self.status = status
        self.message = message
        super().__init__(f"{status}: {message}" if message else status)

    @classmethod
    def from_status(cls, status: str, message: str = "") -> StatusError:
        """Create the StatusError subclass matching a status token.

        Args:
            status: The status token returned by the server
            message: Optional context for the failure

        Returns:
            Appropriate StatusError subclass instance
        """
        match status:
            case "NOT_FOUND":
                return NotFoundError(status, message)
            case "BURIED":
                return BuriedError(status, message)
            case "TIMED_OUT":
                return TimedOutError(status, message)
            case "DEADLINE_SOON":
                return DeadlineSoonError(status, message)
            case "DRAINING":
                return DrainingError(status, message)
            case "OUT_OF_MEMORY":
                return OutOfMemoryError(status, message)
            case "INTERNAL_ERROR":
                return InternalError(status, message)
            case "BAD_FORMAT":
                return BadFormatError(status, message)
            case "UNKNOWN_COMMAND":
                return UnknownCommandError(status, message)
            case "EXPECTED_CRLF":
                return ExpectedCrlfError(status, message)
            case "JOB_TOO_BIG":
                return JobTooBigError(status, message)
            case "NOT_IGNORED":
                return NotIgnoredError(status, message)
            case _:
                return cls(status, message)

    @classmethod
    def from_failure(cls, failure: Failure) -> StatusError:
        """Create a StatusError from a recorded Failure."""
        return cls.from_status(failure.status, failure.message)


class NotFoundError(StatusError):
    """The job or tube does not exist, or is not reserved by this client."""


class BuriedError(StatusError):
    """The server buried the job instead of inserting or releasing it."""


class TimedOutError(StatusError):
    """No job became available before the reserve timeout."""


class DeadlineSoonError(StatusError):
    """A reserved job's time to run is about to expire."""


class DrainingError(StatusError):
    """The server is in drain mode and refuses new jobs."""


class OutOfMemoryError(StatusError):
    """The server could not allocate memory for the request."""


class InternalError(StatusError):
    """The server hit an internal error."""


class BadFormatError(StatusError):
    """The command line was malformed."""


class UnknownCommandError(StatusError):
    """The server does not know the command."""


class ExpectedCrlfError(StatusError):
    """A job body was not followed by CRLF."""


class JobTooBigError(StatusError):
    """The job body exceeds the server's max job size."""


class NotIgnoredError(StatusError):
    """The last watched tube cannot be ignored."""
