"""Error taxonomy for source probing."""

from __future__ import annotations

import asyncio


class SourceError(Exception):
    """Base class for anything that goes wrong talking to an upstream source."""


class TransportError(SourceError):
    """Non-2xx response or network-level failure."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ParseError(SourceError):
    """Upstream answered, but the body is not the JSON we expected."""


class FetchError(SourceError):
    """
    Raised when every attempt is used up.

    The message is the last underlying error's message, unmodified, so a
    timeout still reads as a timeout and an HTTP status still shows its code.
    """

    def __init__(self, url: str, attempts: int, last_error: BaseException) -> None:
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(str(last_error) or type(last_error).__name__)


class PartialPartitionError(SourceError):
    """One partition of a multi-partition source failed; recorded, never raised out of the probe."""

    def __init__(self, partition: str, cause: BaseException) -> None:
        self.partition = partition
        self.cause = cause
        super().__init__(f"error: {describe_error(cause)}")


class AggregateFailure(Exception):
    """The diagnostics run itself broke (not a single source)."""


def describe_error(e: BaseException) -> str:
    """
    Message for a failed source.

    A bare TimeoutError (e.g. from asyncio.wait_for around a probe) carries
    no text, so it is labelled the same way httpx timeouts are.
    """
    text = str(e)
    if isinstance(e, (TimeoutError, asyncio.TimeoutError)):
        return f"request timed out: {text}" if text else "request timed out"
    return text or type(e).__name__
