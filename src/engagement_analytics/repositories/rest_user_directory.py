"""REST implementation of UserDirectory."""

import logging
from typing import Any

from engagement_analytics.config import settings
from engagement_analytics.entities import Member
from engagement_analytics.errors import AnalyticsError, UnauthorizedError
from engagement_analytics.protocols import RestTransport
from engagement_analytics.utils import gather_in_chunks

logger = logging.getLogger(__name__)


def _rows(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, list):
        return [row for row in payload if isinstance(row, dict)]
    if isinstance(payload, dict):
        for name in ("data", "users", "items", "results"):
            if isinstance(payload.get(name), list):
                return _rows(payload[name])
        # {"12": {...}, "13": {...}}
        rows = []
        for key, value in payload.items():
            if isinstance(value, dict):
                rows.append({"id": key, **value})
        return rows
    return []


class RestUserDirectory:
    """Resolves user summaries through the community backend.

    This class satisfies the UserDirectory protocol through structural
    typing - no explicit inheritance needed.

    Tries the batch endpoint first; when it is missing or fails, falls
    back to one request per id, ``batch_size`` requests at a time.
    """

    def __init__(self, transport: RestTransport, batch_size: int | None = None) -> None:
        """Initialize the directory.

        Args:
            transport: REST transport to the backend
            batch_size: Concurrent per-id lookups. Defaults to settings.user_batch_size.
        """
        self._transport = transport
        self._batch_size = batch_size or settings.user_batch_size

    @classmethod
    def create(cls, transport: RestTransport, batch_size: int | None = None) -> "RestUserDirectory":
        return cls(transport=transport, batch_size=batch_size)

    async def get_users_by_ids(self, ids: list[int]) -> dict[int, Member]:
        unique_ids = list(dict.fromkeys(ids))
        if not unique_ids:
            return {}

        try:
            payload = await self._transport.get(
                "/users/batch",
                params={"ids": ",".join(str(uid) for uid in unique_ids)},
            )
            wanted = set(unique_ids)
            batch_users = self._members(_rows(payload))
            if batch_users:
                return {uid: member for uid, member in batch_users.items() if uid in wanted}
        except UnauthorizedError:
            raise
        except AnalyticsError as e:
            logger.debug("Batch user lookup unavailable, falling back to per-id: %s", e)

        async def fetch_one(uid: int) -> Any:
            return await self._transport.get(f"/users/{uid}")

        users: dict[int, Member] = {}
        for uid, payload in await gather_in_chunks(unique_ids, fetch_one, self._batch_size):
            if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
                payload = payload["data"]
            if not isinstance(payload, dict):
                continue
            member = Member.from_profile({"id": uid, **payload})
            if member is not None:
                users[uid] = member

        missing = len(unique_ids) - len(users)
        if missing:
            logger.info("Could not resolve %d of %d users", missing, len(unique_ids))
        return users

    @staticmethod
    def _members(rows: list[dict[str, Any]]) -> dict[int, Member]:
        members = {}
        for row in rows:
            member = Member.from_profile(row)
            if member is not None:
                members[member.id] = member
        return members
