"""Response DTOs for API endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

RESOLUTION_DESCRIPTION = "Where the data came from: primary, fallback, recovered, empty or degraded"


class MemberItem(BaseModel):
    """Canonical member shape."""

    id: int
    fname: str = ""
    lname: str = ""
    full_name: str = ""
    email: str = ""
    profile_picture: str | None = None
    enabled: bool = True
    skills: list[str] = Field(default_factory=list)
    job_title: str | None = None
    current_employer: str | None = None


class MemberListResponse(BaseModel):
    """Response DTO for member listings (by attribute, mentors, partners)."""

    users: list[MemberItem] = Field(default_factory=list)
    count: int = Field(..., ge=0)
    resolution: str = Field(..., description=RESOLUTION_DESCRIPTION)


class PaginatedUsersResponse(BaseModel):
    """Response DTO for a drilldown page."""

    data: list[MemberItem] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)
    resolution: str = Field(..., description=RESOLUTION_DESCRIPTION)


class CategoryEngagementItem(BaseModel):
    """Unique pairs/groups of one match category and how many led to a conversation."""

    total: int = Field(..., ge=0)
    engaged: int = Field(..., ge=0)
    rate: float = Field(..., ge=0.0, le=100.0, description="Engaged share in percent")


class EngagementStatsResponse(BaseModel):
    """Response DTO for the headline engagement metrics."""

    community_id: int
    total_members: int = Field(..., ge=0)
    connections_made: int = Field(..., ge=0)
    users_with_connections: int = Field(..., ge=0)
    match_response_rate: float = Field(..., ge=0.0, le=100.0)
    messages_sent: int = Field(..., ge=0)
    profile_completion_rate: float = Field(..., ge=0.0, le=100.0)
    events_created: int = Field(0, ge=0)
    events_attended: int = Field(0, ge=0)
    groups_created: int = Field(0, ge=0)
    groups_joined: int = Field(0, ge=0)
    daily_active_users: int = Field(0, ge=0)
    weekly_active_users: int = Field(0, ge=0)
    by_category: dict[str, CategoryEngagementItem] = Field(default_factory=dict)
    resolution: str = Field(..., description=RESOLUTION_DESCRIPTION)
    diagnostics: dict[str, Any] = Field(default_factory=dict)


class DateBreakdownItem(BaseModel):
    """Pairings of one UTC date."""

    date: str = Field(..., description="YYYY-MM-DD")
    date_display: str = Field(..., description="e.g. March 5, 2024")
    total_pairings: int = Field(..., ge=0)
    engaged_pairings: int = Field(..., ge=0)
    engagement_rate: float = Field(..., ge=0.0, le=100.0)
    anomalous: bool = Field(False, description="Excluded from totals: too many pairings for one day")


class MagicIntrosResponse(BaseModel):
    """Response DTO for direct intros grouped by date."""

    dates: list[DateBreakdownItem] = Field(default_factory=list)
    invalid_dates: int = Field(0, ge=0, description="Records without a usable creation date")
    excluded_dates: list[str] = Field(default_factory=list)
    total_pairings: int = Field(0, ge=0)
    engaged_pairings: int = Field(0, ge=0)
    engagement_rate: float = Field(0.0, ge=0.0, le=100.0)


class MagicIntroPairingItem(BaseModel):
    """One unique direct-intro pairing; ``user_id`` is the smaller id."""

    user_id: int
    matched_user_id: int
    original_user_id: int
    original_matched_user_id: int
    is_engaged: bool
    created_at: datetime | None = None
    user: MemberItem | None = None
    matched_user: MemberItem | None = None


class MagicIntroPairingsResponse(BaseModel):
    date: str
    pairings: list[MagicIntroPairingItem] = Field(default_factory=list)


class UserConnectionsItem(BaseModel):
    user: MemberItem
    connections: int = Field(..., ge=0, description="Distinct match partners")


class ConnectionsResponse(BaseModel):
    """Response DTO for member-to-member connections."""

    total_pairs: int = Field(..., ge=0)
    per_user: list[UserConnectionsItem] = Field(default_factory=list)


class MatchEngagementResponse(BaseModel):
    direct_intro: CategoryEngagementItem
    group_pairing: CategoryEngagementItem
    mentor_mentee: CategoryEngagementItem
    resolution: str = Field(..., description=RESOLUTION_DESCRIPTION)


class ChannelPairingResponse(BaseModel):
    total_matches: int = Field(..., ge=0)
    unique_groups: int = Field(..., ge=0)
    unique_users: int = Field(..., ge=0)
    on_demand_groups: int = Field(..., ge=0)
    cadence_groups: int = Field(..., ge=0)
    resolution: str = Field(..., description=RESOLUTION_DESCRIPTION)


class MentorStatsResponse(BaseModel):
    can_mentor: int = Field(..., ge=0)
    want_mentor: int = Field(..., ge=0)
    resolution: str = Field(..., description=RESOLUTION_DESCRIPTION)


class SkillsStatsResponse(BaseModel):
    """Response DTO for skill spread and mentor counts."""

    total_skills: int = Field(..., ge=0, description="Distinct skill names in use")
    users_with_skills: int = Field(..., ge=0)
    users_can_mentor: int = Field(..., ge=0)
    users_want_mentor: int = Field(..., ge=0)
    chart_consolidated: bool | None = Field(
        None, description="False when the skills chart held per-user rows; null when the chart was not used"
    )
    resolution: str = Field(..., description=RESOLUTION_DESCRIPTION)


class ActiveUsersResponse(BaseModel):
    daily_active_users: int = Field(..., ge=0)
    weekly_active_users: int = Field(..., ge=0)
    resolution: str = Field(..., description=RESOLUTION_DESCRIPTION)


class MessageStatsResponse(BaseModel):
    total_messages: int = Field(..., ge=0)
    platform_chats: int = Field(..., ge=0, description="Conversations started by the platform")
    resolution: str = Field(..., description=RESOLUTION_DESCRIPTION)


class CacheStatsResponse(BaseModel):
    """Response DTO for result cache statistics."""

    backend: str = Field(..., description="Result store implementation")
    healthy: bool
    entries: dict[str, int] = Field(default_factory=dict, description="Entries per namespace")
    ttls: dict[str, int] = Field(default_factory=dict, description="TTL in seconds per namespace")
    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    pending: list[str] = Field(default_factory=list, description="Fetches currently in flight")


class CacheOperationResponse(BaseModel):
    success: bool
    removed: int = Field(..., ge=0)
    message: str


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    cache_healthy: bool = Field(..., description="Whether the result store is reachable")
