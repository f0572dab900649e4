"""HTTP handlers for analytics operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

import logging
from dataclasses import asdict
from datetime import date
from typing import NoReturn

from fastapi import HTTPException, status

from engagement_analytics.dto import (
    ActiveUsersResponse,
    AttributeUsersQuery,
    CacheOperationResponse,
    CacheStatsResponse,
    CategoryEngagementItem,
    ChannelPairingResponse,
    ConnectionsResponse,
    DateBreakdownItem,
    DateRangeQuery,
    DrilldownQueryParams,
    EngagementStatsResponse,
    HealthCheckResponse,
    MagicIntroPairingItem,
    MagicIntroPairingsResponse,
    MagicIntrosResponse,
    MatchEngagementResponse,
    MemberItem,
    MemberListResponse,
    MentorStatsResponse,
    MessageStatsResponse,
    PaginatedUsersResponse,
    SkillsStatsResponse,
    UserConnectionsItem,
)
from engagement_analytics.entities import CategoryEngagement, DateRange, DrilldownQuery, Member
from engagement_analytics.errors import UnauthorizedError
from engagement_analytics.services import AnalyticsService

logger = logging.getLogger(__name__)


def _member_item(member: Member | None) -> MemberItem | None:
    if member is None:
        return None
    return MemberItem(**{**asdict(member), "skills": list(member.skills)})


def _category_item(engagement: CategoryEngagement) -> CategoryEngagementItem:
    return CategoryEngagementItem(total=engagement.total, engaged=engagement.engaged, rate=engagement.rate)


def _date_range(query: DateRangeQuery | None) -> DateRange:
    if query is None:
        return DateRange()
    return DateRange(start=query.start_date, end=query.end_date)


def _raise_http(e: Exception, action: str) -> NoReturn:
    """Translate a service failure into the matching HTTP error."""
    if isinstance(e, UnauthorizedError):
        code = status.HTTP_403_FORBIDDEN if e.status == 403 else status.HTTP_401_UNAUTHORIZED
        raise HTTPException(status_code=code, detail=f"Backend refused the request: {e}") from e
    if isinstance(e, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    logger.exception("Failed to %s", action)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {e}",
    ) from e


class AnalyticsHandler:
    """HTTP handlers for analytics operations.

    This handler delegates business logic to AnalyticsService
    and handles HTTP-specific concerns like:
    - Converting entities to DTOs
    - Mapping errors to status codes

    Example:
        ```python
        handler = AnalyticsHandler(analytics_service=service)

        @app.get("/communities/{community_id}/engagement", response_model=EngagementStatsResponse)
        async def engagement(community_id: int):
            return await handler.get_engagement(community_id)
        ```
    """

    def __init__(self, analytics_service: AnalyticsService) -> None:
        """Initialize the analytics handler.

        Args:
            analytics_service: The analytics service for business logic (required).
        """
        self._analytics = analytics_service

    async def get_engagement(self, community_id: int, dates: DateRangeQuery | None = None) -> EngagementStatsResponse:
        """Handle GET /communities/{id}/engagement requests."""
        try:
            stats = await self._analytics.get_engagement_stats(community_id, _date_range(dates))
            return EngagementStatsResponse(
                community_id=stats.community_id,
                total_members=stats.total_members,
                connections_made=stats.connections_made,
                users_with_connections=stats.users_with_connections,
                match_response_rate=stats.match_response_rate,
                messages_sent=stats.messages_sent,
                profile_completion_rate=stats.profile_completion_rate,
                events_created=stats.events_created,
                events_attended=stats.events_attended,
                groups_created=stats.groups_created,
                groups_joined=stats.groups_joined,
                daily_active_users=stats.daily_active_users,
                weekly_active_users=stats.weekly_active_users,
                by_category={name: _category_item(c) for name, c in stats.by_category.items()},
                resolution=stats.resolution.value,
                diagnostics=stats.diagnostics,
            )
        except Exception as e:
            _raise_http(e, "compute engagement stats")

    async def get_users_by_attribute(self, community_id: int, query: AttributeUsersQuery) -> MemberListResponse:
        """Handle GET /communities/{id}/users/by-attribute requests."""
        try:
            lookup = await self._analytics.get_users_by_attribute(
                community_id,
                query.type,
                query.value,
                only_active=query.only_active,
                custom_field=query.custom_field_id,
            )
            return MemberListResponse(
                users=[_member_item(m) for m in lookup.members],
                count=len(lookup.members),
                resolution=lookup.resolution.value,
            )
        except Exception as e:
            _raise_http(e, "look up users by attribute")

    async def get_drilldown(self, community_id: int, query: DrilldownQueryParams) -> PaginatedUsersResponse:
        """Handle GET /communities/{id}/drilldown requests."""
        attribute_type = query.type
        if query.custom_field_id:
            attribute_type = f"custom_field:{query.custom_field_id}"
        try:
            page = await self._analytics.get_drilldown_users(
                DrilldownQuery(
                    community_id=community_id,
                    type=attribute_type,
                    value=query.value,
                    only_active=query.only_active,
                    search=query.search,
                    sort_by=query.sort_by,
                    sort_order=query.sort_order,
                    page=query.page,
                    page_size=query.page_size,
                )
            )
            return PaginatedUsersResponse(
                data=[_member_item(m) for m in page.data],
                total=page.total,
                page=page.page,
                page_size=page.page_size,
                total_pages=page.total_pages,
                resolution=page.resolution.value,
            )
        except Exception as e:
            _raise_http(e, "load drilldown users")

    async def get_magic_intros(self, community_id: int, dates: DateRangeQuery | None = None) -> MagicIntrosResponse:
        """Handle GET /communities/{id}/magic-intros requests."""
        try:
            result = await self._analytics.get_magic_intros_by_date(community_id, _date_range(dates))
            return MagicIntrosResponse(
                dates=[DateBreakdownItem(**asdict(row)) for row in result.dates],
                invalid_dates=result.invalid_dates,
                excluded_dates=result.excluded_dates,
                total_pairings=result.total_pairings,
                engaged_pairings=result.engaged_pairings,
                engagement_rate=result.engagement_rate,
            )
        except Exception as e:
            _raise_http(e, "group direct intros by date")

    async def get_magic_intro_pairings(
        self,
        community_id: int,
        day: date,
        dates: DateRangeQuery | None = None,
    ) -> MagicIntroPairingsResponse:
        """Handle GET /communities/{id}/magic-intros/{date} requests."""
        try:
            pairings = await self._analytics.get_magic_intro_pairings(community_id, day, _date_range(dates))
            return MagicIntroPairingsResponse(
                date=day.isoformat(),
                pairings=[
                    MagicIntroPairingItem(
                        user_id=p.user_id,
                        matched_user_id=p.matched_user_id,
                        original_user_id=p.original_user_id,
                        original_matched_user_id=p.original_matched_user_id,
                        is_engaged=p.is_engaged,
                        created_at=p.created_at,
                        user=_member_item(p.user),
                        matched_user=_member_item(p.matched_user),
                    )
                    for p in pairings
                ],
            )
        except Exception as e:
            _raise_http(e, "list direct intro pairings")

    async def get_connections(self, community_id: int, dates: DateRangeQuery | None = None) -> ConnectionsResponse:
        """Handle GET /communities/{id}/connections requests."""
        try:
            summary = await self._analytics.get_users_with_connections(community_id, _date_range(dates))
            return ConnectionsResponse(
                total_pairs=summary.total_pairs,
                per_user=[
                    UserConnectionsItem(user=_member_item(u.member), connections=u.connections)
                    for u in summary.per_user
                ],
            )
        except Exception as e:
            _raise_http(e, "summarize connections")

    async def get_match_partners(
        self,
        community_id: int,
        user_id: int,
        dates: DateRangeQuery | None = None,
    ) -> MemberListResponse:
        """Handle GET /communities/{id}/connections/{user_id} requests."""
        try:
            partners = await self._analytics.get_user_match_partners(community_id, user_id, _date_range(dates))
            return MemberListResponse(
                users=[_member_item(m) for m in partners.members],
                count=len(partners.members),
                resolution=partners.resolution.value,
            )
        except Exception as e:
            _raise_http(e, "list match partners")

    async def get_match_engagement(
        self,
        community_id: int,
        dates: DateRangeQuery | None = None,
    ) -> MatchEngagementResponse:
        """Handle GET /communities/{id}/match-engagement requests."""
        try:
            stats = await self._analytics.get_match_engagement_stats(community_id, _date_range(dates))
            return MatchEngagementResponse(
                direct_intro=_category_item(stats.direct_intro),
                group_pairing=_category_item(stats.group_pairing),
                mentor_mentee=_category_item(stats.mentor_mentee),
                resolution=stats.resolution.value,
            )
        except Exception as e:
            _raise_http(e, "compute match engagement")

    async def get_channel_pairing(
        self,
        community_id: int,
        dates: DateRangeQuery | None = None,
    ) -> ChannelPairingResponse:
        """Handle GET /communities/{id}/channel-pairing requests."""
        try:
            stats = await self._analytics.get_channel_pairing_stats(community_id, _date_range(dates))
            return ChannelPairingResponse(**{**asdict(stats), "resolution": stats.resolution.value})
        except Exception as e:
            _raise_http(e, "compute channel pairing stats")

    async def get_mentors(self, community_id: int, kind: str) -> MemberListResponse:
        """Handle GET /communities/{id}/mentors/{kind} requests."""
        try:
            result = await self._analytics.get_mentor_mentee_users(community_id, kind)
            return MemberListResponse(
                users=[_member_item(m) for m in result.members],
                count=len(result.members),
                resolution=result.resolution.value,
            )
        except Exception as e:
            _raise_http(e, "list mentors")

    async def get_mentor_stats(self, community_id: int) -> MentorStatsResponse:
        """Handle GET /communities/{id}/mentor-stats requests."""
        try:
            stats = await self._analytics.get_mentor_mentee_stats(community_id)
            return MentorStatsResponse(
                can_mentor=stats.can_mentor,
                want_mentor=stats.want_mentor,
                resolution=stats.resolution.value,
            )
        except Exception as e:
            _raise_http(e, "count mentors")

    async def get_skills_stats(self, community_id: int) -> SkillsStatsResponse:
        """Handle GET /communities/{id}/skills-stats requests."""
        try:
            stats = await self._analytics.get_skills_stats(community_id)
            return SkillsStatsResponse(
                total_skills=stats.total_skills,
                users_with_skills=stats.users_with_skills,
                users_can_mentor=stats.users_can_mentor,
                users_want_mentor=stats.users_want_mentor,
                chart_consolidated=stats.chart.consolidated if stats.chart else None,
                resolution=stats.resolution.value,
            )
        except Exception as e:
            _raise_http(e, "compute skills stats")

    async def get_active_users(self, community_id: int, dates: DateRangeQuery | None = None) -> ActiveUsersResponse:
        """Handle GET /communities/{id}/active-users requests."""
        try:
            stats = await self._analytics.get_active_user_stats(community_id, _date_range(dates))
            return ActiveUsersResponse(
                daily_active_users=stats.daily,
                weekly_active_users=stats.weekly,
                resolution=stats.resolution.value,
            )
        except Exception as e:
            _raise_http(e, "count active users")

    async def get_messages(self, community_id: int, dates: DateRangeQuery | None = None) -> MessageStatsResponse:
        """Handle GET /communities/{id}/messages requests."""
        try:
            stats = await self._analytics.get_message_stats(community_id, _date_range(dates))
            return MessageStatsResponse(
                total_messages=stats.total_messages,
                platform_chats=stats.platform_chats,
                resolution=stats.resolution.value,
            )
        except Exception as e:
            _raise_http(e, "count messages")

    async def get_cache_stats(self) -> CacheStatsResponse:
        """Handle GET /cache/stats requests."""
        try:
            return CacheStatsResponse(**self._analytics.cache_stats())
        except Exception as e:
            _raise_http(e, "get cache stats")

    async def sweep_cache(self) -> CacheOperationResponse:
        """Handle POST /cache/sweep requests."""
        try:
            removed = self._analytics.sweep_cache()
            return CacheOperationResponse(success=True, removed=removed, message="Expired entries removed")
        except Exception as e:
            _raise_http(e, "sweep cache")

    async def clear_cache(self) -> CacheOperationResponse:
        """Handle DELETE /cache requests."""
        try:
            removed = self._analytics.clear_cache()
            return CacheOperationResponse(success=True, removed=removed, message="Cache cleared successfully")
        except Exception as e:
            _raise_http(e, "clear cache")

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        healthy = bool(self._analytics.cache_stats().get("healthy"))
        return HealthCheckResponse(status="healthy" if healthy else "unhealthy", cache_healthy=healthy)
