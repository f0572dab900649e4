"""Ordered endpoint fallback.

The backend exposes the same logical data under several endpoint shapes
depending on deployment age. ``EndpointResolver`` walks an ordered list
of candidates and stops at the first one that returns usable data.

Rules:
1. 404 means "this shape does not exist here": try the next one quietly
2. Other transport errors and malformed payloads are logged, then the
   next candidate is tried
3. 401/403 propagate immediately
4. An empty payload (None, [], {}) is not an answer: keep going
5. When nothing answered, the last candidate's error propagates (if it
   failed) or an empty outcome is returned (if it was merely empty)
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from engagement_analytics.errors import (
    AnalyticsError,
    InvalidDataError,
    NotFoundError,
    TransportError,
    UnauthorizedError,
)
from engagement_analytics.protocols import RestTransport

logger = logging.getLogger(__name__)

_ITEM_KEYS = ("data", "items", "results", "rows")

# Resource-named keys some endpoints wrap their items in
MATCH_KEYS = ("matches",)
USER_KEYS = ("users", "members")
PROFILE_KEYS = ("profiles",)
EVENT_KEYS = ("events",)
GROUP_KEYS = ("groups",)


@dataclass(frozen=True)
class EndpointCandidate:
    """One endpoint shape to try.

    Attributes:
        path: Path relative to the backend base URL
        method: HTTP method, GET or POST
        params: Query parameters
        body: JSON body (POST only)
        headers: Extra headers
        name: Label used in logs; defaults to "METHOD path"
        extract: Turns the (possibly concatenated) payload into the result;
            may raise InvalidDataError, KeyError, TypeError or ValueError
        item_keys: Keys a paginated payload may keep its items under,
            searched before the generic ones
    """

    path: str
    method: str = "GET"
    params: dict[str, Any] | None = None
    body: Any = None
    headers: dict[str, str] | None = None
    name: str | None = None
    extract: Callable[[Any], Any] | None = field(default=None, compare=False)
    item_keys: tuple[str, ...] = ()

    @property
    def label(self) -> str:
        return self.name or f"{self.method} {self.path}"


@dataclass(frozen=True)
class ResolverOutcome:
    """Result of walking a candidate list.

    Attributes:
        data: The first non-empty payload, or None
        candidate: The candidate that produced it
        attempts: Labels of every candidate tried, in order
        error: The error that ended a best-effort resolution, if any
    """

    data: Any = None
    candidate: EndpointCandidate | None = None
    attempts: list[str] = field(default_factory=list)
    error: Exception | None = None

    @property
    def found(self) -> bool:
        return self.candidate is not None

    @property
    def degraded(self) -> bool:
        return self.error is not None


def is_empty(data: Any) -> bool:
    """None and empty containers are "no answer"."""
    if data is None:
        return True
    if isinstance(data, (list, dict, tuple, set, str)):
        return len(data) == 0
    return False


def rows_of(payload: Any, *keys: str) -> list[dict[str, Any]]:
    """Extract a list of row dicts from a list or a wrapped payload.

    Args:
        payload: A list, or a dict holding the list under one of ``keys``
            (``data``, ``items``, ``results``, ``rows`` when none given)

    Returns:
        The dict rows; non-dict items are dropped

    Raises:
        InvalidDataError: If no list can be found
    """
    if isinstance(payload, list):
        return [row for row in payload if isinstance(row, dict)]
    if isinstance(payload, dict):
        for key in keys or _ITEM_KEYS:
            if isinstance(payload.get(key), list):
                return rows_of(payload[key])
    raise InvalidDataError(f"Expected a list payload, got {type(payload).__name__}")


def _pagination(payload: Any) -> tuple[int, int] | None:
    if not isinstance(payload, dict):
        return None
    current, total = payload.get("currentPage"), payload.get("totalPages")
    if current is None or total is None:
        return None
    try:
        return int(current), int(total)
    except (TypeError, ValueError):
        return None


class EndpointResolver:
    """Tries endpoint candidates in order until one yields data.

    Example:
        ```python
        resolver = EndpointResolver(transport)
        outcome = await resolver.resolve([
            EndpointCandidate(f"/communities/{cid}/members"),
            EndpointCandidate("/members", params={"communityId": cid}),
        ])
        ```
    """

    def __init__(self, transport: RestTransport) -> None:
        """Initialize the resolver.

        Args:
            transport: REST transport used for every candidate (required).
        """
        self._transport = transport

    @classmethod
    def create(cls, transport: RestTransport) -> "EndpointResolver":
        return cls(transport=transport)

    async def _call(self, candidate: EndpointCandidate, params: dict[str, Any] | None) -> Any:
        if candidate.method.upper() == "POST":
            return await self._transport.post(candidate.path, candidate.body, headers=candidate.headers)
        return await self._transport.get(candidate.path, params=params, headers=candidate.headers)

    async def _collect_pages(self, candidate: EndpointCandidate, payload: Any) -> Any:
        pagination = _pagination(payload)
        if pagination is None:
            return payload

        keys = (*candidate.item_keys, *_ITEM_KEYS)
        try:
            items = rows_of(payload, *keys)
        except InvalidDataError:
            # no item list to concatenate; let extract judge the page
            return payload

        current, total = pagination
        for page in range(current + 1, total + 1):
            try:
                next_payload = await self._call(candidate, {**(candidate.params or {}), "page": page})
                items.extend(rows_of(next_payload, *keys))
            except UnauthorizedError:
                raise
            except AnalyticsError as e:
                logger.warning("Skipping page %d of %s: %s", page, candidate.label, e)
        return items

    async def _fetch(self, candidate: EndpointCandidate) -> Any:
        payload = await self._call(candidate, candidate.params)
        data = await self._collect_pages(candidate, payload)
        if candidate.extract is None or is_empty(data):
            return data
        try:
            return candidate.extract(data)
        except InvalidDataError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidDataError(f"Unexpected payload from {candidate.label}: {e}") from e

    async def resolve(self, candidates: list[EndpointCandidate]) -> ResolverOutcome:
        """Return the first non-empty answer.

        Args:
            candidates: Endpoint shapes, most preferred first

        Returns:
            ResolverOutcome; ``found`` is False when every candidate was empty

        Raises:
            UnauthorizedError: As soon as any candidate is refused
            AnalyticsError: The last candidate's error, if nothing answered
        """
        attempts: list[str] = []
        last_error: AnalyticsError | None = None

        for candidate in candidates:
            attempts.append(candidate.label)
            last_error = None
            try:
                data = await self._fetch(candidate)
            except UnauthorizedError:
                raise
            except NotFoundError as e:
                logger.debug("%s not found, trying next endpoint", candidate.label)
                last_error = e
                continue
            except (TransportError, InvalidDataError) as e:
                logger.warning("%s failed, trying next endpoint: %s", candidate.label, e)
                last_error = e
                continue

            if is_empty(data):
                logger.debug("%s returned no data, trying next endpoint", candidate.label)
                continue

            logger.info("Resolved via %s", candidate.label)
            return ResolverOutcome(data=data, candidate=candidate, attempts=attempts)

        if last_error is not None:
            raise last_error
        return ResolverOutcome(attempts=attempts)

    async def resolve_or_empty(self, candidates: list[EndpointCandidate]) -> ResolverOutcome:
        """Best-effort variant of ``resolve``.

        Failures become an empty outcome carrying the error, except
        UnauthorizedError which still propagates.
        """
        try:
            return await self.resolve(candidates)
        except UnauthorizedError:
            raise
        except AnalyticsError as e:
            logger.warning("No endpoint answered (%s): %s", ", ".join(c.label for c in candidates), e)
            return ResolverOutcome(attempts=[c.label for c in candidates], error=e)
