"""httpx-based REST transport.

Talks JSON to the community backend and translates every failure into
the package's error taxonomy, so callers never see httpx exceptions.
"""

import json
import logging
from typing import Any

import httpx

from engagement_analytics.config import settings
from engagement_analytics.errors import InvalidDataError, TransientError, error_for_status

logger = logging.getLogger(__name__)


def _clean_params(params: dict[str, Any] | None) -> dict[str, str] | None:
    if not params:
        return None
    cleaned = {}
    for name, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            cleaned[name] = "true" if value else "false"
        else:
            cleaned[name] = str(value)
    return cleaned


class HttpxRestTransport:
    """httpx implementation of the RestTransport protocol.

    This class satisfies the RestTransport protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        transport = HttpxRestTransport.create()
        members = await transport.get("/communities/42/members")
        await transport.close()
        ```
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            base_url: Backend base URL. Defaults to settings.api_base_url.
            token: Value of the Authorization header. Defaults to settings.api_token.
            timeout: Request timeout in seconds. Defaults to settings.api_timeout.
            client: Preconfigured client (tests pass one with a MockTransport).
        """
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._token = token if token is not None else settings.api_token
        self._timeout = timeout or settings.api_timeout
        self._client = client

    @classmethod
    def create(
        cls,
        base_url: str | None = None,
        token: str | None = None,
    ) -> "HttpxRestTransport":
        """Factory method to create HttpxRestTransport with defaults.

        Args:
            base_url: Backend URL. If None, uses settings.
            token: Auth token. If None, uses settings.

        Returns:
            Configured HttpxRestTransport
        """
        return cls(base_url=base_url, token=token)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client.

        Returns:
            The httpx.AsyncClient instance
        """
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self._token:
                headers["Authorization"] = self._token
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        try:
            response = await self.client.request(
                method,
                path,
                params=_clean_params(params),
                json=body,
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            try:
                error_body: Any = e.response.json()
            except ValueError:
                error_body = e.response.text or None
            raise error_for_status(
                status,
                f"{method} {path} failed with status {status}",
                body=error_body,
                url=path,
            ) from e
        except httpx.HTTPError as e:
            raise TransientError(f"{method} {path} failed: {e}", url=path) from e

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise InvalidDataError(f"{method} {path} returned a non-JSON body") from e

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return await self._request("GET", path, params=params, headers=headers)

    async def post(self, path: str, body: Any = None, headers: dict[str, str] | None = None) -> Any:
        return await self._request("POST", path, body=body, headers=headers)

    async def put(self, path: str, body: Any = None, headers: dict[str, str] | None = None) -> Any:
        return await self._request("PUT", path, body=body, headers=headers)

    async def patch(self, path: str, body: Any = None, headers: dict[str, str] | None = None) -> Any:
        return await self._request("PATCH", path, body=body, headers=headers)

    async def delete(self, path: str, headers: dict[str, str] | None = None) -> Any:
        return await self._request("DELETE", path, headers=headers)

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
