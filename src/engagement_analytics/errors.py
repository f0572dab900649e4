"""Error taxonomy for the analytics layer.

Transport failures are classified so that callers can decide between
"try the next candidate" and "give up":

- NotFoundError: the endpoint shape does not exist here (404)
- TransientError: network failure, timeout, 5xx, rate limit, other statuses
- InvalidDataError: the response parsed but has the wrong shape
- UnauthorizedError: 401/403, never swallowed by fallback chains
"""

from typing import Any


class AnalyticsError(Exception):
    """Base class for every error raised by this package."""


class TransportError(AnalyticsError):
    """A REST call failed.

    Attributes:
        status: HTTP status code, or None for network-level failures
        body: Parsed error body if the backend sent one
        url: The path that was requested
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        body: Any = None,
        url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body
        self.url = url


class NotFoundError(TransportError):
    """The backend answered 404 for this endpoint."""


class UnauthorizedError(TransportError):
    """The caller is not allowed to read this data (401/403)."""


class TransientError(TransportError):
    """Network failure or a server-side error that may not repeat."""


class InvalidDataError(AnalyticsError):
    """A response was received but could not be interpreted."""


def error_for_status(
    status: int | None,
    message: str,
    body: Any = None,
    url: str | None = None,
) -> TransportError:
    """Build the TransportError subclass matching an HTTP status.

    Args:
        status: HTTP status code (None for connection errors)
        message: Human-readable error message
        body: Optional structured error body
        url: The requested path

    Returns:
        An instance of the most specific TransportError subclass
    """
    if status == 404:
        return NotFoundError(message, status=status, body=body, url=url)
    if status in (401, 403):
        return UnauthorizedError(message, status=status, body=body, url=url)
    return TransientError(message, status=status, body=body, url=url)
