"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import AttributeUsersQuery, DateRangeQuery, DrilldownQueryParams
from .responses import (
    ActiveUsersResponse,
    CacheOperationResponse,
    CacheStatsResponse,
    CategoryEngagementItem,
    ChannelPairingResponse,
    ConnectionsResponse,
    DateBreakdownItem,
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

__all__ = [
    "DateRangeQuery",
    "AttributeUsersQuery",
    "DrilldownQueryParams",
    "MemberItem",
    "MemberListResponse",
    "PaginatedUsersResponse",
    "CategoryEngagementItem",
    "EngagementStatsResponse",
    "DateBreakdownItem",
    "MagicIntrosResponse",
    "MagicIntroPairingItem",
    "MagicIntroPairingsResponse",
    "UserConnectionsItem",
    "ConnectionsResponse",
    "MatchEngagementResponse",
    "ChannelPairingResponse",
    "MentorStatsResponse",
    "SkillsStatsResponse",
    "ActiveUsersResponse",
    "MessageStatsResponse",
    "CacheStatsResponse",
    "CacheOperationResponse",
    "HealthCheckResponse",
]
