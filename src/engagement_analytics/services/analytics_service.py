"""Analytics service: the public face of the package.

Orchestrates the resolver, caches, conversation index, fallback engine
and calculator into the operations the API exposes. Every operation is
best-effort: failures degrade to empty or partial results tagged with a
``Resolution``, and only UnauthorizedError reaches the caller.
"""

import asyncio
import logging
import math
from dataclasses import asdict, replace
from datetime import date, datetime, timezone
from typing import Any, Literal

from engagement_analytics.config import settings
from engagement_analytics.entities import (
    ActiveUserStats,
    AttributeLookup,
    ChannelPairingStats,
    DateBreakdownResult,
    DateRange,
    DrilldownQuery,
    EngagementStats,
    MagicIntroPairing,
    MatchEngagementStats,
    MatchRecord,
    MatchSet,
    MatchSummary,
    MatchType,
    Member,
    MemberList,
    MentorMenteeStats,
    MessageStats,
    PaginatedMembers,
    Resolution,
    SkillsStats,
)
from engagement_analytics.errors import AnalyticsError, InvalidDataError, UnauthorizedError
from engagement_analytics.protocols import DocumentStore, RestTransport, ResultStore, UserDirectory

from .attribute_fallback import AttributeFallbackEngine, check_consolidated
from .attribute_rules import canonical_type, custom_field_id, dedupe, normalize_skills
from .community_directory import CommunityDirectory, members_from_rows
from .conversation_index import ConversationIndex
from .endpoint_resolver import MATCH_KEYS, USER_KEYS, EndpointCandidate, EndpointResolver, ResolverOutcome, rows_of
from .engagement_calculator import EngagementCalculator
from .pair_accumulator import PairKey, pair_key
from .request_coordinator import RequestCoordinator
from .result_cache import DRILLDOWN, MATCHES, ResultCache

logger = logging.getLogger(__name__)

MentorKind = Literal["can", "want"]

_MENTOR_FLAGS = ("is_active_mentor", "isActiveMentor", "canMentor", "isMentor")
_MENTEE_FLAGS = ("is_active_mentee", "isActiveMentee", "wantMentor", "isMentee", "wantsMentor")
_CAN_MENTOR_FIELDS = ("usersCanMentor", "canMentor", "mentorCount", "mentors")
_WANT_MENTOR_FIELDS = ("usersWantMentor", "wantMentor", "menteeCount", "mentees")
_SKILL_SOURCES = ("skills", "skillList", "skillsList", "skillNames", "skill_names", "skillsString")

# Member fields the drilldown can sort by, with the backend's spelling
_SORT_FIELDS = {
    "full_name": "fullName",
    "fname": "fname",
    "lname": "lname",
    "email": "email",
    "id": "id",
    "job_title": "jobTitle",
    "current_employer": "currentEmployer",
}


def _range_params(date_range: DateRange) -> dict[str, Any]:
    return {
        "startDate": date_range.start.isoformat() if date_range.start else None,
        "endDate": date_range.end.isoformat() if date_range.end else None,
    }


def _in_community(row: dict[str, Any], community_id: int) -> bool:
    value = row.get("communityId", row.get("community_id"))
    if value is None:
        return True
    try:
        return int(value) == community_id
    except (TypeError, ValueError):
        return False


def _first_number(payload: dict[str, Any], names: tuple[str, ...]) -> int | None:
    for name in names:
        value = payload.get(name)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, list):
            return len(value)
        try:
            return int(value)
        except (TypeError, ValueError):
            continue
    return None


def _provenance(outcome: ResolverOutcome, candidates: list[EndpointCandidate]) -> Resolution:
    if outcome.found:
        return Resolution.PRIMARY if outcome.candidate is candidates[0] else Resolution.FALLBACK
    return Resolution.DEGRADED if outcome.degraded else Resolution.EMPTY


def _raise_fatal(results: list[Any]) -> None:
    """Re-raise what a gathered batch must not swallow."""
    for result in results:
        if isinstance(result, UnauthorizedError):
            raise result
        if isinstance(result, BaseException) and not isinstance(result, Exception):
            raise result


def _member_to_dict(member: Member) -> dict[str, Any]:
    data = asdict(member)
    data["skills"] = list(member.skills)
    return data


def _member_from_dict(data: dict[str, Any]) -> Member:
    return Member(**{**data, "skills": tuple(data.get("skills") or ())})


class AnalyticsService:
    """Community engagement analytics.

    Depends on protocols only; ``create()`` wires the default services
    around the given collaborators.

    Example:
        ```python
        service = AnalyticsService.create(
            transport=HttpxRestTransport.create(),
            documents=SnapshotDocumentStore.create(),
            users=RestUserDirectory.create(transport),
            store=InMemoryResultStore.create(),
        )
        stats = await service.get_engagement_stats(42, DateRange(date(2024, 1, 1), date(2024, 1, 31)))
        ```
    """

    def __init__(
        self,
        resolver: EndpointResolver,
        cache: ResultCache,
        coordinator: RequestCoordinator,
        directory: CommunityDirectory,
        conversations: ConversationIndex,
        attributes: AttributeFallbackEngine,
        calculator: EngagementCalculator,
        users: UserDirectory,
        override_suspicious_zero: bool = True,
    ) -> None:
        """Initialize the analytics service.

        Args:
            resolver: Endpoint resolver over the REST backend (required).
            cache: Result cache shared by every component (required).
            coordinator: In-flight request deduplication (required).
            directory: Cached profiles and members (required).
            conversations: Conversation index over the document store (required).
            attributes: Users-by-attribute fallback engine (required).
            calculator: Engagement calculator (required).
            users: User lookup by id (required).
            override_suspicious_zero: Prefer the computed connection count
                when the backend reports zero but the computation found some.
        """
        self._resolver = resolver
        self._cache = cache
        self._coordinator = coordinator
        self._directory = directory
        self._conversations = conversations
        self._attributes = attributes
        self._calculator = calculator
        self._users = users
        self._override_suspicious_zero = override_suspicious_zero

    @classmethod
    def create(
        cls,
        transport: RestTransport,
        documents: DocumentStore,
        users: UserDirectory,
        store: ResultStore,
        ttls: dict[str, int] | None = None,
        override_suspicious_zero: bool | None = None,
    ) -> "AnalyticsService":
        """Factory method wiring the default services.

        Args:
            transport: REST transport to the community backend (required).
            documents: Conversation document store (required).
            users: User directory (required).
            store: Result cache backend (required).
            ttls: Per-namespace TTL overrides. If None, uses settings.
            override_suspicious_zero: If None, uses settings.

        Returns:
            Configured AnalyticsService instance
        """
        resolver = EndpointResolver.create(transport)
        cache = ResultCache.create(store=store, ttls=ttls)
        coordinator = RequestCoordinator()
        directory = CommunityDirectory.create(resolver, cache, coordinator)
        if override_suspicious_zero is None:
            override_suspicious_zero = settings.override_suspicious_zero
        return cls(
            resolver=resolver,
            cache=cache,
            coordinator=coordinator,
            directory=directory,
            conversations=ConversationIndex.create(documents, cache, coordinator),
            attributes=AttributeFallbackEngine.create(resolver, directory),
            calculator=EngagementCalculator.create(),
            users=users,
            override_suspicious_zero=override_suspicious_zero,
        )

    # Matches

    async def _fetch_matches(
        self,
        community_id: int,
        date_range: DateRange,
        match_type: MatchType | None,
        key: str,
    ) -> dict[str, Any]:
        def extract(payload: Any) -> list[dict[str, Any]]:
            rows = rows_of(payload, "data", *MATCH_KEYS, "items")
            kept = [row for row in rows if _in_community(row, community_id)]
            if len(kept) != len(rows):
                logger.info("Dropped %d matches of other communities", len(rows) - len(kept))
            return kept

        params = {**_range_params(date_range), "type": match_type.wire_value if match_type else None}
        candidates = [
            EndpointCandidate(
                f"/communities/{community_id}/matches", params=params, extract=extract, item_keys=MATCH_KEYS
            ),
            EndpointCandidate(
                "/matches",
                params={"communityId": community_id},
                name="GET /matches?communityId",
                extract=extract,
                item_keys=MATCH_KEYS,
            ),
            EndpointCandidate(
                "/matches",
                headers={"X-Community-Id": str(community_id)},
                name="GET /matches (session community)",
                extract=extract,
                item_keys=MATCH_KEYS,
            ),
        ]
        outcome = await self._resolver.resolve_or_empty(candidates)
        resolution = _provenance(outcome, candidates)
        result = {"rows": outcome.data or [], "resolution": resolution.value}
        if resolution is Resolution.DEGRADED:
            logger.error("No match endpoint answered for community %s", community_id)
        else:
            self._cache.put(MATCHES, key, result)
        return result

    async def get_matches(
        self,
        community_id: int,
        date_range: DateRange | None = None,
        match_type: MatchType | None = None,
    ) -> MatchSet:
        """Match records of a community.

        Cached per (community, start, end, type) and deduplicated while in
        flight. The backend filters by date and type when it can; the
        records are filtered again here because the fallback endpoints
        cannot. Records without a creation time are kept so they can be
        reported as invalid.

        Args:
            community_id: The community
            date_range: Inclusive UTC date range; open when None
            match_type: Restrict to one category

        Returns:
            MatchSet with the records and where they came from
        """
        date_range = date_range or DateRange()
        type_key = match_type.wire_value if match_type else "all"
        key = f"matches_{community_id}_{date_range.start_key}_{date_range.end_key}_{type_key}"

        cached = self._cache.get(MATCHES, key)
        if cached is None:
            cached = await self._coordinator.run_deduped(
                f"{MATCHES}:{key}",
                lambda: self._fetch_matches(community_id, date_range, match_type, key),
            )

        records = [MatchRecord.from_raw(row) for row in cached["rows"]]
        if match_type is not None:
            records = [m for m in records if m.type == match_type]
        records = [m for m in records if date_range.contains(m.created_at)]
        return MatchSet(records=records, resolution=Resolution(cached["resolution"]))

    # Profiles and members

    async def get_profiles(self, community_id: int) -> list[dict[str, Any]]:
        """Raw profiles of the community; empty when they cannot be loaded."""
        try:
            return await self._directory.profiles(community_id)
        except UnauthorizedError:
            raise
        except AnalyticsError as e:
            logger.error("Profiles unavailable for community %s: %s", community_id, e)
            return []

    async def get_community_members(self, community_id: int, only_active: bool = False) -> MemberList:
        """Members of the community, from the roster or else the profiles."""
        members, resolution = await self._directory.members(community_id, only_active=only_active)
        return MemberList(members=members, resolution=resolution)

    # Engagement

    async def _pair_index(self, community_id: int) -> set[PairKey] | None:
        try:
            return await self._conversations.pair_index(community_id)
        except UnauthorizedError:
            raise
        except AnalyticsError as e:
            logger.warning("Conversation pairs unavailable for community %s: %s", community_id, e)
            return None

    async def _backend_engagement(self, community_id: int, date_range: DateRange) -> dict[str, Any] | None:
        params = _range_params(date_range) if date_range.start and date_range.end else None
        outcome = await self._resolver.resolve(
            [EndpointCandidate(f"/communities/{community_id}/stats/engagement", params=params)]
        )
        if not isinstance(outcome.data, dict):
            return None
        return outcome.data

    async def _calculate_engagement(self, community_id: int, date_range: DateRange) -> EngagementStats:
        results = await asyncio.gather(
            self.get_matches(community_id, date_range),
            self._directory.members(community_id),
            self._directory.profiles(community_id),
            self._conversations.pair_index(community_id),
            self._conversations.count_messages(community_id, date_range),
            self._directory.events(community_id),
            self._directory.groups(community_id),
            self.get_active_user_stats(community_id, date_range),
            return_exceptions=True,
        )
        _raise_fatal(results)
        matches, members, profiles, pair_index, messages, events, groups, active = results
        stats = EngagementStats(community_id=community_id)
        self._count_activity(stats, date_range, events, groups, active)

        if isinstance(profiles, BaseException):
            stats.diagnostics["profiles_error"] = str(profiles)
            profiles = []
        else:
            stats.total_members = len(profiles)
            _, stats.profile_completion_rate = self._calculator.profile_completion(profiles)

        if isinstance(members, BaseException):
            stats.diagnostics["members_error"] = str(members)
            member_list = members_from_rows(profiles)
        else:
            member_list = members[0]
        if member_list and not stats.total_members:
            stats.total_members = len(member_list)

        if isinstance(pair_index, BaseException):
            stats.diagnostics["conversations_error"] = str(pair_index)
            pair_index = set()

        if isinstance(messages, BaseException):
            stats.diagnostics["messages_error"] = str(messages)
        else:
            stats.messages_sent = messages

        if isinstance(matches, BaseException):
            stats.diagnostics["matches_error"] = str(matches)
            stats.resolution = Resolution.DEGRADED
            return stats

        summary = self._calculator.match_summary(matches.records, member_list)
        stats.connections_made = summary.total_pairs
        stats.users_with_connections = len(summary.per_user)
        by_category = self._calculator.engagement_by_category(matches.records, pair_index)
        stats.by_category = {match_type.value: engagement for match_type, engagement in by_category.items()}
        stats.match_response_rate = by_category[MatchType.DIRECT_INTRO].rate
        stats.resolution = matches.resolution
        if "conversations_error" in stats.diagnostics and matches.resolution is not Resolution.EMPTY:
            stats.resolution = Resolution.DEGRADED
        return stats

    def _count_activity(
        self,
        stats: EngagementStats,
        date_range: DateRange,
        events: tuple[list[dict[str, Any]], Resolution] | BaseException,
        groups: tuple[list[dict[str, Any]], Resolution] | BaseException,
        active: ActiveUserStats | BaseException,
    ) -> None:
        """Fill the event, group and active-user figures of ``stats``.

        A source that failed leaves its figures at 0 and is named in the
        diagnostics.
        """
        calculators = {"events": self._calculator.event_activity, "groups": self._calculator.group_activity}
        counted = {}
        for name, fetched in (("events", events), ("groups", groups)):
            if isinstance(fetched, BaseException):
                stats.diagnostics[f"{name}_error"] = str(fetched)
            elif fetched[1] is Resolution.DEGRADED:
                stats.diagnostics[f"{name}_error"] = f"no {name} endpoint answered"
            else:
                counted[name] = calculators[name](fetched[0], date_range)

        stats.events_created, stats.events_attended = counted.get("events", (0, 0))
        stats.groups_created, stats.groups_joined = counted.get("groups", (0, 0))

        if isinstance(active, BaseException):
            stats.diagnostics["active_users_error"] = str(active)
        else:
            stats.daily_active_users, stats.weekly_active_users = active.daily, active.weekly
            if active.resolution is Resolution.DEGRADED:
                stats.diagnostics["active_users_error"] = "no activity source answered"

    @staticmethod
    def _apply_backend(stats: EngagementStats, backend: dict[str, Any]) -> EngagementStats:
        fields = {
            "total_members": ("totalUsers", "totalMembers"),
            "connections_made": ("connectionsMade",),
            "users_with_connections": ("usersWithConnections",),
            "messages_sent": ("totalMessagesSent", "messagesSent"),
            "events_created": ("eventsCreated",),
            "events_attended": ("eventsAttended",),
            "groups_created": ("groupsCreated",),
            "groups_joined": ("groupsJoined",),
            "daily_active_users": ("dailyActiveUsers",),
            "weekly_active_users": ("weeklyActiveUsers",),
        }
        for attr, names in fields.items():
            value = _first_number(backend, names)
            if value is not None:
                setattr(stats, attr, value)
        rates = {"match_response_rate": "matchResponseRate", "profile_completion_rate": "profileCompletionRate"}
        for attr, name in rates.items():
            value = backend.get(name)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                setattr(stats, attr, round(float(value), 1))
        stats.resolution = Resolution.PRIMARY
        stats.diagnostics["source"] = "backend"
        return stats

    async def get_engagement_stats(self, community_id: int, date_range: DateRange | None = None) -> EngagementStats:
        """Headline engagement metrics of a community.

        The backend's own statistics and a client-side computation run
        concurrently. The backend wins when it answered, except when it
        reports zero connections while the computation found some; with
        the override enabled the computed figures are returned then.

        Raises:
            UnauthorizedError: If the backend refuses any request
        """
        date_range = date_range or DateRange()
        backend, calculated = await asyncio.gather(
            self._backend_engagement(community_id, date_range),
            self._calculate_engagement(community_id, date_range),
            return_exceptions=True,
        )
        _raise_fatal([backend, calculated])

        if isinstance(backend, BaseException):
            logger.debug("Backend engagement stats unavailable: %s", backend)
            backend_error, backend = str(backend), None
        else:
            backend_error = None

        if isinstance(calculated, BaseException):
            logger.warning("Engagement computation failed for community %s: %s", community_id, calculated)
            calculated_error, calculated = str(calculated), None
        else:
            calculated_error = None

        if backend is None and calculated is None:
            logger.error("No engagement stats for community %s", community_id)
            stats = EngagementStats(community_id=community_id, resolution=Resolution.DEGRADED)
            stats.diagnostics.update(backend_error=backend_error, calculation_error=calculated_error)
            return stats

        if backend is None:
            calculated.diagnostics["source"] = "calculated"
            if backend_error:
                calculated.diagnostics["backend_error"] = backend_error
            return calculated

        if calculated is None:
            stats = self._apply_backend(EngagementStats(community_id=community_id), backend)
            stats.diagnostics["calculation_error"] = calculated_error
            return stats

        # a missing field is not a reported zero
        backend_connections = _first_number(backend, ("connectionsMade",))
        if backend_connections == 0 and calculated.connections_made > 0:
            if self._override_suspicious_zero:
                logger.warning(
                    "Backend reports 0 connections for community %s but %d were computed; using computed stats",
                    community_id,
                    calculated.connections_made,
                )
                calculated.diagnostics.update(source="calculated", suspicious_zero_override=True)
                return calculated
            suspicious = calculated.connections_made
            stats = self._apply_backend(calculated, backend)
            stats.diagnostics["suspicious_zero"] = suspicious
            return stats

        return self._apply_backend(calculated, backend)

    # Users by attribute

    async def get_users_by_attribute(
        self,
        community_id: int,
        attribute_type: str,
        value: str,
        only_active: bool = True,
        custom_field: int | str | None = None,
    ) -> AttributeLookup:
        """Members carrying an attribute value; see AttributeFallbackEngine.

        Raises:
            ValueError: If the attribute type is unknown
        """
        return await self._attributes.resolve_users_by_attribute(
            community_id, attribute_type, value, only_active=only_active, custom_field=custom_field
        )

    def _drilldown_candidate(self, query: DrilldownQuery, type_name: str) -> EndpointCandidate:
        field_id = custom_field_id(type_name)
        params: dict[str, Any] = {
            "metric": "customField" if field_id else type_name,
            "value": query.value,
            "page": query.page,
            "pageSize": query.page_size,
            "onlyActive": query.only_active,
            "search": query.search,
            "sortBy": _SORT_FIELDS.get(query.sort_by, "fullName"),
            "sortDir": query.sort_order,
            "customFieldId": field_id,
        }

        def extract(payload: Any) -> dict[str, Any]:
            if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
                raise InvalidDataError("Drilldown payload has no data list")
            if not all(isinstance(row, dict) for row in payload["data"]):
                raise InvalidDataError("Drilldown rows must be objects")
            return payload

        return EndpointCandidate(
            f"/communities/{query.community_id}/analytics/drilldown",
            params=params,
            extract=extract,
        )

    @staticmethod
    def _paginate(members: list[Member], query: DrilldownQuery, resolution: Resolution) -> PaginatedMembers:
        needle = query.search.strip().lower()
        if needle:
            members = [
                m
                for m in members
                if any(
                    needle in (text or "").lower()
                    for text in (m.full_name, m.email, m.job_title, m.current_employer)
                )
            ]

        sort_by = query.sort_by if query.sort_by in _SORT_FIELDS else "full_name"
        if sort_by == "id":
            members = sorted(members, key=lambda m: m.id, reverse=query.sort_order == "desc")
        else:
            members = sorted(
                members,
                key=lambda m: (getattr(m, sort_by) or "").lower(),
                reverse=query.sort_order == "desc",
            )

        page_size = max(1, query.page_size)
        page = max(1, query.page)
        start = (page - 1) * page_size
        return PaginatedMembers(
            data=members[start : start + page_size],
            total=len(members),
            page=page,
            page_size=page_size,
            total_pages=math.ceil(len(members) / page_size),
            resolution=resolution,
        )

    async def get_drilldown_users(self, query: DrilldownQuery) -> PaginatedMembers:
        """One page of the members behind a chart value.

        The backend drilldown endpoint is used when it exists. Otherwise
        the members come from the attribute fallback engine and are
        searched, sorted and paginated here. Pages are cached briefly.

        Raises:
            ValueError: If the attribute type is unknown
        """
        key = f"drilldown_{query.cache_key}"
        cached = self._cache.get(DRILLDOWN, key)
        if cached is not None:
            return PaginatedMembers(
                data=[_member_from_dict(d) for d in cached["data"]],
                total=cached["total"],
                page=cached["page"],
                page_size=cached["page_size"],
                total_pages=cached["total_pages"],
                resolution=Resolution(cached["resolution"]),
            )

        type_name = canonical_type(query.type)
        outcome = await self._resolver.resolve_or_empty([self._drilldown_candidate(query, type_name)])
        if outcome.found:
            members = members_from_rows(outcome.data["data"])
            total = _first_number(outcome.data, ("total",))
            total = len(members) if total is None else total
            page_size = _first_number(outcome.data, ("pageSize",)) or query.page_size
            result = PaginatedMembers(
                data=members,
                total=total,
                page=_first_number(outcome.data, ("page",)) or query.page,
                page_size=page_size,
                total_pages=math.ceil(total / page_size),
                resolution=Resolution.PRIMARY if total else Resolution.EMPTY,
            )
        else:
            lookup = await self._attributes.resolve_users_by_attribute(
                query.community_id, type_name, query.value, only_active=query.only_active
            )
            resolution = lookup.resolution
            if resolution is Resolution.PRIMARY:
                resolution = Resolution.FALLBACK
            result = self._paginate(lookup.members, query, resolution)

        if result.resolution is not Resolution.DEGRADED:
            self._cache.put(
                DRILLDOWN,
                key,
                {
                    "data": [_member_to_dict(m) for m in result.data],
                    "total": result.total,
                    "page": result.page,
                    "page_size": result.page_size,
                    "total_pages": result.total_pages,
                    "resolution": result.resolution.value,
                },
            )
        return result

    # Direct intros

    async def get_magic_intros_by_date(
        self,
        community_id: int,
        date_range: DateRange | None = None,
    ) -> DateBreakdownResult:
        """Per-day unique direct-intro pairings and their engagement, newest first."""
        matches = await self.get_matches(community_id, date_range, MatchType.DIRECT_INTRO)
        if not matches.records:
            return DateBreakdownResult()
        pair_index = await self._pair_index(community_id) or set()
        return self._calculator.breakdown_by_date(matches.records, pair_index)

    async def get_magic_intro_pairings(
        self,
        community_id: int,
        day: date,
        date_range: DateRange | None = None,
    ) -> list[MagicIntroPairing]:
        """Unique direct-intro pairings created on one UTC day.

        The first record of each pair wins; its original user order is
        kept alongside the normalized one. Users are looked up in the user
        directory; a failed lookup leaves them empty.
        """
        matches = await self.get_matches(community_id, date_range, MatchType.DIRECT_INTRO)
        on_day = [m for m in matches.records if m.created_at is not None and m.created_at.date() == day]
        if not on_day:
            return []

        pair_index = await self._pair_index(community_id) or set()
        seen: dict[PairKey, MatchRecord] = {}
        for match in on_day:
            a, b = match.user_id, match.matched_user_id
            if a is None or b is None or a == b:
                continue
            seen.setdefault(pair_key(a, b), match)

        ids = sorted({uid for m in seen.values() for uid in (m.user_id, m.matched_user_id)})
        try:
            users = await self._users.get_users_by_ids(ids)
        except UnauthorizedError:
            raise
        except AnalyticsError as e:
            logger.warning("Could not look up %d users for pairings: %s", len(ids), e)
            users = {}

        pairings = []
        for key, match in seen.items():
            low, high = sorted((match.user_id, match.matched_user_id))
            pairings.append(
                MagicIntroPairing(
                    user_id=low,
                    matched_user_id=high,
                    original_user_id=match.user_id,
                    original_matched_user_id=match.matched_user_id,
                    is_engaged=key in pair_index,
                    created_at=match.created_at,
                    user=users.get(low),
                    matched_user=users.get(high),
                )
            )
        return pairings

    # Connections

    async def get_users_with_connections(self, community_id: int, date_range: DateRange | None = None) -> MatchSummary:
        """Unique member-to-member connections and partner counts per member."""
        matches, members = await asyncio.gather(
            self.get_matches(community_id, date_range),
            self.get_community_members(community_id),
        )
        return self._calculator.match_summary(matches.records, members.members)

    async def get_user_match_partners(
        self,
        community_id: int,
        user_id: int,
        date_range: DateRange | None = None,
    ) -> MemberList:
        """Members connected to ``user_id``.

        The resolution is the match list's: partners are derived from the
        matches, the member list only fills in their details.
        """
        matches, members = await asyncio.gather(
            self.get_matches(community_id, date_range),
            self.get_community_members(community_id),
        )
        partners = self._calculator.match_partners(matches.records, members.members, user_id)
        if partners or matches.resolution is Resolution.DEGRADED:
            return MemberList(members=partners, resolution=matches.resolution)
        return MemberList(members=[], resolution=Resolution.EMPTY)

    # Category statistics

    async def get_match_engagement_stats(
        self,
        community_id: int,
        date_range: DateRange | None = None,
    ) -> MatchEngagementStats:
        """Unique pairs/groups and engagement for each match category."""
        matches = await self.get_matches(community_id, date_range)
        if not matches.records:
            return MatchEngagementStats(resolution=matches.resolution)

        pair_index = await self._pair_index(community_id)
        resolution = matches.resolution
        if pair_index is None:
            resolution = Resolution.DEGRADED
        by_category = self._calculator.engagement_by_category(matches.records, pair_index or set())
        return MatchEngagementStats(
            direct_intro=by_category[MatchType.DIRECT_INTRO],
            group_pairing=by_category[MatchType.GROUP_PAIRING],
            mentor_mentee=by_category[MatchType.MENTOR_MENTEE],
            resolution=resolution,
        )

    async def get_channel_pairing_stats(
        self,
        community_id: int,
        date_range: DateRange | None = None,
    ) -> ChannelPairingStats:
        """Group pairing counts, from the backend or computed from matches."""
        date_range = date_range or DateRange()

        def extract(payload: Any) -> ChannelPairingStats:
            if not isinstance(payload, dict) or "channelPairingGroups" not in payload:
                raise InvalidDataError("Channel pairing stats missing channelPairingGroups")
            return ChannelPairingStats(
                total_matches=_first_number(payload, ("totalMatches", "channelPairingMatches")) or 0,
                unique_groups=_first_number(payload, ("channelPairingGroups",)) or 0,
                unique_users=_first_number(payload, ("channelPairingUsers",)) or 0,
                on_demand_groups=_first_number(payload, ("channelPairingOnDemand",)) or 0,
                cadence_groups=_first_number(payload, ("channelPairingCadence",)) or 0,
                resolution=Resolution.PRIMARY,
            )

        params = _range_params(date_range) if date_range.start and date_range.end else None
        outcome = await self._resolver.resolve_or_empty(
            [EndpointCandidate(f"/communities/{community_id}/stats/channel-pairing", params=params, extract=extract)]
        )
        if outcome.found:
            return outcome.data

        matches = await self.get_matches(community_id, date_range, MatchType.GROUP_PAIRING)
        stats = self._calculator.channel_pairing_breakdown(matches.records)
        resolution = matches.resolution
        if resolution is Resolution.PRIMARY:
            resolution = Resolution.FALLBACK
        return replace(stats, resolution=resolution)

    # Mentors and mentees

    async def _enrich_mentor_skills(
        self,
        community_id: int,
        rows: list[dict[str, Any]],
        kind: MentorKind,
    ) -> list[Member]:
        own_field = "mentorsOn" if kind == "can" else "wantsMentorOn"
        members = []
        for row in rows:
            member = Member.from_profile(row)
            if member is None:
                continue
            skills = dedupe(s for name in (*_SKILL_SOURCES, own_field) for s in normalize_skills(row.get(name)))
            members.append(member.with_skills(skills) if skills else member)

        if all(m.skills for m in members):
            return members

        profiles = {}
        for profile in await self.get_profiles(community_id):
            member = Member.from_profile(profile)
            if member is not None:
                profiles[member.id] = profile
        return [
            m if m.skills or m.id not in profiles else m.with_skills(normalize_skills(profiles[m.id].get("skills")))
            for m in members
        ]

    async def get_mentor_mentee_users(self, community_id: int, kind: MentorKind) -> MemberList:
        """Members who can mentor (``"can"``) or want a mentor (``"want"``).

        Mentor endpoints are tried first; otherwise the profiles' mentor or
        mentee flags decide.

        Raises:
            ValueError: If ``kind`` is neither "can" nor "want"
        """
        if kind not in ("can", "want"):
            raise ValueError(f"kind must be 'can' or 'want', got {kind!r}")
        role = "mentors" if kind == "can" else "mentees"
        base = f"/communities/{community_id}"

        def extract(payload: Any) -> list[dict[str, Any]]:
            return rows_of(payload, "data", *USER_KEYS, "items")

        def candidate(path: str, **kwargs: Any) -> EndpointCandidate:
            return EndpointCandidate(path, extract=extract, item_keys=USER_KEYS, **kwargs)

        candidates = [
            candidate(f"{base}/mentor-mentee/users", params={"type": kind}),
            candidate(f"{base}/mentors/{role}"),
            candidate(f"{base}/mentor-mentee/{role}"),
            candidate(f"{base}/users/mentor-mentee", params={"type": kind}),
            candidate(f"/console/communities/{community_id}/mentors/{role}"),
        ]
        outcome = await self._resolver.resolve_or_empty(candidates)
        if outcome.found:
            members = await self._enrich_mentor_skills(community_id, outcome.data, kind)
            return MemberList(members=members, resolution=_provenance(outcome, candidates))

        try:
            profiles = await self._directory.profiles(community_id)
        except UnauthorizedError:
            raise
        except AnalyticsError as e:
            logger.error("No %s list for community %s: %s", role, community_id, e)
            return MemberList(resolution=Resolution.DEGRADED if outcome.degraded else Resolution.EMPTY)

        flags = _MENTOR_FLAGS if kind == "can" else _MENTEE_FLAGS
        members = []
        for profile in profiles:
            if not any(profile.get(flag) is True for flag in flags):
                continue
            member = Member.from_profile(profile)
            if member is None:
                continue
            skills = normalize_skills(profile.get("skills"))
            members.append(member.with_skills(skills) if skills else member)

        logger.info("Profile flags found %d %s in community %s", len(members), role, community_id)
        return MemberList(members=members, resolution=Resolution.FALLBACK if members else Resolution.EMPTY)

    async def get_mentor_mentee_stats(self, community_id: int) -> MentorMenteeStats:
        """How many members can mentor and how many want a mentor."""

        def extract(payload: Any) -> MentorMenteeStats:
            if not isinstance(payload, dict):
                raise InvalidDataError("Mentor stats payload is not an object")
            can = _first_number(payload, _CAN_MENTOR_FIELDS)
            want = _first_number(payload, _WANT_MENTOR_FIELDS)
            if can is None and want is None:
                raise InvalidDataError("Mentor stats payload has no counts")
            return MentorMenteeStats(can_mentor=can or 0, want_mentor=want or 0, resolution=Resolution.PRIMARY)

        scoped = {"communityId": community_id}
        candidates = [
            EndpointCandidate(f"/communities/{community_id}/stats/mentor-mentee", extract=extract),
            EndpointCandidate(f"/communities/{community_id}/stats/mentors", extract=extract),
            EndpointCandidate(f"/communities/{community_id}/mentor-mentee/stats", extract=extract),
            EndpointCandidate("/console/stats/mentor-mentee", params=scoped, extract=extract),
            EndpointCandidate("/console/stats/mentors", params=scoped, extract=extract),
            EndpointCandidate(f"/console/communities/{community_id}/stats/mentor-mentee", extract=extract),
            EndpointCandidate(f"/console/communities/{community_id}/stats/mentors", extract=extract),
            EndpointCandidate("/stats/mentor-mentee", params=scoped, extract=extract),
            EndpointCandidate("/api/console/stats/mentor-mentee", params=scoped, extract=extract),
        ]
        outcome = await self._resolver.resolve_or_empty(candidates)
        if outcome.found:
            return outcome.data

        mentors, mentees = await asyncio.gather(
            self.get_mentor_mentee_users(community_id, "can"),
            self.get_mentor_mentee_users(community_id, "want"),
        )
        if mentors.resolution is Resolution.DEGRADED and mentees.resolution is Resolution.DEGRADED:
            resolution = Resolution.DEGRADED
        elif mentors.members or mentees.members:
            resolution = Resolution.FALLBACK
        else:
            resolution = Resolution.EMPTY
        return MentorMenteeStats(
            can_mentor=len(mentors.members),
            want_mentor=len(mentees.members),
            resolution=resolution,
        )

    # Skills

    async def _skills_chart(self, community_id: int) -> ResolverOutcome:
        params = {"type": "general", "consolidateResults": "true", "onlyActive": "true"}
        return await self._resolver.resolve_or_empty(
            [EndpointCandidate(f"/communities/{community_id}/skills", params=params, extract=rows_of)]
        )

    async def get_skills_stats(self, community_id: int) -> SkillsStats:
        """Skill spread and mentor counts of a community.

        The backend's skills statistics are tried first. Otherwise the
        distinct skills are counted from the consolidated skills chart and
        the members with skills from the profiles. Mentor counts missing
        from the answer are taken from ``get_mentor_mentee_stats``.
        """

        def extract(payload: Any) -> dict[str, int | None]:
            if not isinstance(payload, dict):
                raise InvalidDataError("Skills stats payload is not an object")
            counts = {
                "total_skills": _first_number(payload, ("totalSkills",)),
                "users_with_skills": _first_number(payload, ("usersWithSkills",)),
            }
            if all(value is None for value in counts.values()):
                raise InvalidDataError("Skills stats payload has no counts")
            counts["users_can_mentor"] = _first_number(payload, ("usersCanMentor",))
            counts["users_want_mentor"] = _first_number(payload, ("usersWantMentor",))
            return counts

        scoped = {"communityId": community_id}
        candidates = [
            EndpointCandidate(f"/communities/{community_id}/stats/skills", extract=extract),
            EndpointCandidate(f"/communities/{community_id}/skills/stats", extract=extract),
            EndpointCandidate("/console/stats/skills", params=scoped, extract=extract),
            EndpointCandidate("/console/skills/stats", params=scoped, extract=extract),
            EndpointCandidate(f"/console/communities/{community_id}/stats/skills", extract=extract),
            EndpointCandidate("/stats/skills", params=scoped, extract=extract),
            EndpointCandidate("/api/console/stats/skills", params=scoped, extract=extract),
        ]
        outcome = await self._resolver.resolve_or_empty(candidates)
        if outcome.found:
            counts = outcome.data
            stats = SkillsStats(
                total_skills=counts["total_skills"] or 0,
                users_with_skills=counts["users_with_skills"] or 0,
                users_can_mentor=counts["users_can_mentor"] or 0,
                users_want_mentor=counts["users_want_mentor"] or 0,
                resolution=_provenance(outcome, candidates),
            )
            if counts["users_can_mentor"] is not None and counts["users_want_mentor"] is not None:
                return stats
            return await self._with_mentor_counts(community_id, stats, counts)

        chart, profiles = await asyncio.gather(
            self._skills_chart(community_id),
            self._directory.profiles(community_id),
            return_exceptions=True,
        )
        _raise_fatal([chart, profiles])
        if isinstance(profiles, BaseException):
            logger.warning("Profiles unavailable for skills of community %s: %s", community_id, profiles)
            profiles = []
        if isinstance(chart, BaseException):
            logger.warning("Skills chart unavailable for community %s: %s", community_id, chart)
            chart = ResolverOutcome(error=chart)

        rows = chart.data if chart.found else []
        check = check_consolidated(rows, "skill") if rows else None
        total_skills, users_with_skills = self._calculator.skills_summary(rows, profiles)
        if total_skills or users_with_skills:
            resolution = Resolution.FALLBACK
        elif chart.degraded and not profiles:
            resolution = Resolution.DEGRADED
        else:
            resolution = Resolution.EMPTY
        stats = SkillsStats(
            total_skills=total_skills,
            users_with_skills=users_with_skills,
            resolution=resolution,
            chart=check,
        )
        return await self._with_mentor_counts(community_id, stats, {})

    async def _with_mentor_counts(
        self,
        community_id: int,
        stats: SkillsStats,
        reported: dict[str, int | None],
    ) -> SkillsStats:
        mentors = await self.get_mentor_mentee_stats(community_id)
        if mentors.resolution is Resolution.DEGRADED:
            return stats
        can = reported.get("users_can_mentor")
        want = reported.get("users_want_mentor")
        return replace(
            stats,
            users_can_mentor=mentors.can_mentor if can is None else can,
            users_want_mentor=mentors.want_mentor if want is None else want,
        )

    # Active users

    async def get_active_user_stats(self, community_id: int, date_range: DateRange | None = None) -> ActiveUserStats:
        """Distinct users active on the last day and in the last week of the range.

        The backend's figures are used when it has them. Otherwise activity
        is gathered from every match, event, group and conversation of the
        community, measured back from the range end (today when open).
        """
        date_range = date_range or DateRange()

        def extract(payload: Any) -> ActiveUserStats:
            if not isinstance(payload, dict):
                raise InvalidDataError("Active user stats payload is not an object")
            daily = _first_number(payload, ("dailyActiveUsers",))
            weekly = _first_number(payload, ("weeklyActiveUsers",))
            if daily is None and weekly is None:
                raise InvalidDataError("Active user stats payload has no counts")
            return ActiveUserStats(daily=daily or 0, weekly=weekly or 0, resolution=Resolution.PRIMARY)

        params = _range_params(date_range) if date_range.start and date_range.end else None
        outcome = await self._resolver.resolve_or_empty(
            [EndpointCandidate(f"/communities/{community_id}/stats/active-users", params=params, extract=extract)]
        )
        if outcome.found:
            return outcome.data

        results = await asyncio.gather(
            self.get_matches(community_id),
            self._directory.events(community_id),
            self._directory.groups(community_id),
            self._conversations.participant_sets(community_id),
            return_exceptions=True,
        )
        _raise_fatal(results)
        matches, events, groups, conversations = results

        failed = 0
        if isinstance(matches, BaseException) or matches.resolution is Resolution.DEGRADED:
            failed += 1
        records = matches.records if isinstance(matches, MatchSet) else []
        sources = {}
        for name, fetched in (("events", events), ("groups", groups)):
            if isinstance(fetched, BaseException) or fetched[1] is Resolution.DEGRADED:
                failed += 1
                sources[name] = []
            else:
                sources[name] = fetched[0]
        if isinstance(conversations, BaseException):
            logger.warning("No conversations for active users of community %s: %s", community_id, conversations)
            failed += 1
            conversations = []

        period_end = date_range.end or datetime.now(timezone.utc).date()
        stats = self._calculator.active_users(period_end, records, sources["events"], sources["groups"], conversations)
        if failed == len(results):
            resolution = Resolution.DEGRADED
        else:
            resolution = Resolution.FALLBACK if stats.weekly else Resolution.EMPTY
        logger.info(
            "Computed %d daily and %d weekly active users for community %s", stats.daily, stats.weekly, community_id
        )
        return replace(stats, resolution=resolution)

    # Messages

    async def get_platform_chats(self, community_id: int, date_range: DateRange | None = None) -> int:
        """Conversations started by the platform in the range; 0 when undeterminable."""
        try:
            return await self._conversations.count_platform_chats(community_id, date_range)
        except UnauthorizedError:
            raise
        except AnalyticsError as e:
            logger.error("Platform chats unavailable for community %s: %s", community_id, e)
            return 0

    async def get_message_stats(self, community_id: int, date_range: DateRange | None = None) -> MessageStats:
        """Messages sent and platform-started chats in the range."""
        date_range = date_range or DateRange()

        def extract(payload: Any) -> int:
            if not isinstance(payload, dict):
                raise InvalidDataError("Message stats payload is not an object")
            return int(payload["totalMessagesSent"])

        params = _range_params(date_range) if date_range.start and date_range.end else None
        outcome, platform_chats = await asyncio.gather(
            self._resolver.resolve_or_empty(
                [EndpointCandidate(f"/communities/{community_id}/stats/messages", params=params, extract=extract)]
            ),
            self.get_platform_chats(community_id, date_range),
        )
        if outcome.found:
            return MessageStats(
                total_messages=outcome.data,
                platform_chats=platform_chats,
                resolution=Resolution.PRIMARY,
            )

        try:
            total = await self._conversations.count_messages(community_id, date_range)
        except UnauthorizedError:
            raise
        except AnalyticsError as e:
            logger.error("Message count unavailable for community %s: %s", community_id, e)
            return MessageStats(platform_chats=platform_chats, resolution=Resolution.DEGRADED)
        return MessageStats(
            total_messages=total,
            platform_chats=platform_chats,
            resolution=Resolution.FALLBACK if total else Resolution.EMPTY,
        )

    # Cache maintenance

    def sweep_cache(self) -> int:
        """Discard expired cache entries; returns how many were removed."""
        return self._cache.sweep_expired()

    def clear_cache(self) -> int:
        return self._cache.clear()

    def cache_stats(self) -> dict[str, Any]:
        return {**self._cache.stats(), "pending": self._coordinator.pending_keys()}
