"""Cached community profiles, member lists, events and groups."""

import logging
from typing import Any

from engagement_analytics.entities import Member, Resolution
from engagement_analytics.errors import AnalyticsError, UnauthorizedError

from .endpoint_resolver import (
    EVENT_KEYS,
    GROUP_KEYS,
    PROFILE_KEYS,
    USER_KEYS,
    EndpointCandidate,
    EndpointResolver,
    rows_of,
)
from .request_coordinator import RequestCoordinator
from .result_cache import EVENTS, GROUPS, MEMBERS, PROFILES, ResultCache

logger = logging.getLogger(__name__)


def members_from_rows(rows: list[dict[str, Any]], only_active: bool = False) -> list[Member]:
    """Map raw rows onto members, dropping rows without id and duplicates."""
    members: dict[int, Member] = {}
    for row in rows:
        member = Member.from_profile(row)
        if member is None or member.id in members:
            continue
        if only_active and not member.enabled:
            continue
        members[member.id] = member
    return list(members.values())


class CommunityDirectory:
    """Profiles and members of a community, cached with the short TTL.

    Profiles are the full attribute-bearing documents; members are the
    lighter roster. When the roster endpoint yields nothing the profiles
    stand in for it.
    """

    def __init__(self, resolver: EndpointResolver, cache: ResultCache, coordinator: RequestCoordinator) -> None:
        self._resolver = resolver
        self._cache = cache
        self._coordinator = coordinator

    @classmethod
    def create(
        cls,
        resolver: EndpointResolver,
        cache: ResultCache,
        coordinator: RequestCoordinator,
    ) -> "CommunityDirectory":
        return cls(resolver=resolver, cache=cache, coordinator=coordinator)

    async def profiles(self, community_id: int) -> list[dict[str, Any]]:
        """Every profile of the community.

        Raises:
            UnauthorizedError: If the backend refuses the request
            AnalyticsError: If the profile endpoint failed
        """
        key = f"profiles_{community_id}"
        cached = self._cache.get(PROFILES, key)
        if cached is not None:
            return cached

        async def produce() -> list[dict[str, Any]]:
            outcome = await self._resolver.resolve(
                [
                    EndpointCandidate(
                        "/communities/getProfilesForUserAndCommunity",
                        method="POST",
                        body={"communityId": community_id},
                        extract=lambda payload: rows_of(payload, "data", *PROFILE_KEYS, "items"),
                        item_keys=PROFILE_KEYS,
                    )
                ]
            )
            rows = outcome.data or []
            self._cache.put(PROFILES, key, rows)
            logger.info("Loaded %d profiles for community %s", len(rows), community_id)
            return rows

        return await self._coordinator.run_deduped(f"{PROFILES}:{key}", produce)

    async def member_rows(self, community_id: int) -> tuple[list[dict[str, Any]], Resolution]:
        """Raw member rows and where they came from.

        Never raises except for UnauthorizedError; when both the roster and
        the profiles fail the result is empty and DEGRADED.
        """
        key = f"members_{community_id}"
        cached = self._cache.get(MEMBERS, key)
        if cached is not None:
            return cached["rows"], Resolution(cached["resolution"])

        async def produce() -> dict[str, Any]:
            outcome = await self._resolver.resolve_or_empty(
                [
                    EndpointCandidate(
                        f"/communities/{community_id}/members",
                        extract=lambda payload: rows_of(payload, "data", *USER_KEYS, "items"),
                        item_keys=USER_KEYS,
                    )
                ]
            )
            if outcome.found:
                result = {"rows": outcome.data, "resolution": Resolution.PRIMARY.value}
            else:
                try:
                    rows = await self.profiles(community_id)
                except UnauthorizedError:
                    raise
                except AnalyticsError as e:
                    logger.error("No member list for community %s: %s", community_id, e)
                    return {"rows": [], "resolution": Resolution.DEGRADED.value}
                resolution = Resolution.FALLBACK if rows else Resolution.EMPTY
                result = {"rows": rows, "resolution": resolution.value}
                logger.info("Members of community %s taken from %d profiles", community_id, len(rows))
            self._cache.put(MEMBERS, key, result)
            return result

        result = await self._coordinator.run_deduped(f"{MEMBERS}:{key}", produce)
        return result["rows"], Resolution(result["resolution"])

    async def members(self, community_id: int, only_active: bool = False) -> tuple[list[Member], Resolution]:
        """Canonical members of the community."""
        rows, resolution = await self.member_rows(community_id)
        return members_from_rows(rows, only_active=only_active), resolution

    async def _activity_rows(
        self,
        namespace: str,
        community_id: int,
        candidates: list[EndpointCandidate],
    ) -> tuple[list[dict[str, Any]], Resolution]:
        key = f"{namespace}_{community_id}"
        cached = self._cache.get(namespace, key)
        if cached is not None:
            return cached["rows"], Resolution(cached["resolution"])

        async def produce() -> dict[str, Any]:
            outcome = await self._resolver.resolve_or_empty(candidates)
            if outcome.found:
                resolution = Resolution.PRIMARY if outcome.candidate is candidates[0] else Resolution.FALLBACK
            else:
                resolution = Resolution.DEGRADED if outcome.degraded else Resolution.EMPTY
            result = {"rows": outcome.data or [], "resolution": resolution.value}
            if resolution is Resolution.DEGRADED:
                logger.warning("No %s endpoint answered for community %s", namespace, community_id)
            else:
                self._cache.put(namespace, key, result)
                logger.info("Loaded %d %s for community %s", len(result["rows"]), namespace, community_id)
            return result

        result = await self._coordinator.run_deduped(f"{namespace}:{key}", produce)
        return result["rows"], Resolution(result["resolution"])

    async def events(self, community_id: int) -> tuple[list[dict[str, Any]], Resolution]:
        """Every event of the community, cached with the short TTL."""
        candidates = [
            EndpointCandidate(
                f"/events/all/{community_id}",
                extract=lambda payload: rows_of(payload, "data", *EVENT_KEYS, "items"),
                item_keys=EVENT_KEYS,
            )
        ]
        return await self._activity_rows(EVENTS, community_id, candidates)

    async def groups(self, community_id: int) -> tuple[list[dict[str, Any]], Resolution]:
        """Every group of the community, cached with the short TTL."""

        def extract(payload: Any) -> list[dict[str, Any]]:
            return rows_of(payload, "data", *GROUP_KEYS, "items")

        candidates = [
            EndpointCandidate(
                "/groups",
                params={"communityId": community_id},
                name="GET /groups?communityId",
                extract=extract,
                item_keys=GROUP_KEYS,
            ),
            EndpointCandidate(f"/communities/{community_id}/groups", extract=extract, item_keys=GROUP_KEYS),
        ]
        return await self._activity_rows(GROUPS, community_id, candidates)
