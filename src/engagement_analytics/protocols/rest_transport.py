"""REST transport protocol.

Defines the HTTP client used to reach the community backend. Every
method returns the decoded JSON body and raises a subclass of
``TransportError`` (see ``engagement_analytics.errors``) on failure.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RestTransport(Protocol):
    """Protocol for the community backend REST client."""

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Issue a GET request.

        Args:
            path: Path relative to the backend base URL
            params: Query parameters (None values are dropped)
            headers: Extra request headers

        Returns:
            The decoded JSON body

        Raises:
            TransportError: On any failure, classified by status
        """
        ...

    async def post(
        self,
        path: str,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Issue a POST request with a JSON body."""
        ...

    async def put(
        self,
        path: str,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Issue a PUT request with a JSON body."""
        ...

    async def patch(
        self,
        path: str,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Issue a PATCH request with a JSON body."""
        ...

    async def delete(self, path: str, headers: dict[str, str] | None = None) -> Any:
        """Issue a DELETE request."""
        ...
