"""Computed statistics entities.

Every aggregate that can be produced by a fallback path carries a
``Resolution`` so callers can tell "zero because none exist" apart from
"zero because nothing could be determined".
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .match_record import MatchRecord
from .member import Member


class Resolution(str, Enum):
    """Where a result came from."""

    PRIMARY = "primary"  # first-choice source answered
    FALLBACK = "fallback"  # a secondary source answered
    RECOVERED = "recovered"  # unverified best-effort answer
    EMPTY = "empty"  # every source answered, none had data
    DEGRADED = "degraded"  # every source failed


@dataclass(frozen=True)
class MatchSet:
    """Match records of a community and where they came from."""

    records: list[MatchRecord] = field(default_factory=list)
    resolution: Resolution = Resolution.EMPTY


@dataclass(frozen=True)
class CategoryEngagement:
    """Unique pair/group counts for one match category.

    Attributes:
        total: Number of unique pairs or groups
        engaged: How many of them share a conversation
        rate: engaged / total * 100, 0 when total is 0
    """

    total: int = 0
    engaged: int = 0
    rate: float = 0.0


@dataclass(frozen=True)
class DateBreakdown:
    """Pairing counts for one UTC calendar date."""

    date: str
    date_display: str
    total_pairings: int
    engaged_pairings: int
    engagement_rate: float
    anomalous: bool = False


@dataclass(frozen=True)
class DateBreakdownResult:
    """Per-date breakdown plus the totals over non-anomalous dates.

    Attributes:
        dates: One row per date, newest first (anomalous dates included)
        invalid_dates: Records whose creation time was missing or unparseable
        excluded_dates: Dates left out of the totals as anomalous
        total_pairings: Sum over non-anomalous dates
        engaged_pairings: Sum over non-anomalous dates
        engagement_rate: Rate over non-anomalous dates
    """

    dates: list[DateBreakdown] = field(default_factory=list)
    invalid_dates: int = 0
    excluded_dates: list[str] = field(default_factory=list)
    total_pairings: int = 0
    engaged_pairings: int = 0
    engagement_rate: float = 0.0


@dataclass(frozen=True)
class UserConnections:
    """A member and their number of distinct match partners."""

    member: Member
    connections: int


@dataclass(frozen=True)
class MatchSummary:
    """Unique member-to-member connections of a community."""

    total_pairs: int = 0
    per_user: list[UserConnections] = field(default_factory=list)


@dataclass(frozen=True)
class MagicIntroPairing:
    """One deduplicated direct-intro pairing of a given day.

    ``user_id`` is always the smaller id; the ``original_*`` fields keep
    the order the backend reported.
    """

    user_id: int
    matched_user_id: int
    original_user_id: int
    original_matched_user_id: int
    is_engaged: bool
    created_at: datetime | None = None
    user: Member | None = None
    matched_user: Member | None = None


@dataclass(frozen=True)
class AttributeLookup:
    """Members matching an attribute, and which tier found them."""

    members: list[Member] = field(default_factory=list)
    resolution: Resolution = Resolution.EMPTY


@dataclass(frozen=True)
class MemberList:
    """Members of a community or role, and which source listed them."""

    members: list[Member] = field(default_factory=list)
    resolution: Resolution = Resolution.EMPTY


@dataclass(frozen=True)
class PaginatedMembers:
    """One page of a drilldown listing."""

    data: list[Member] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 25
    total_pages: int = 0
    resolution: Resolution = Resolution.EMPTY


@dataclass(frozen=True)
class ChannelPairingStats:
    """Group pairing counts, split by how the pairing was triggered."""

    total_matches: int = 0
    unique_groups: int = 0
    unique_users: int = 0
    on_demand_groups: int = 0
    cadence_groups: int = 0
    resolution: Resolution = Resolution.EMPTY


@dataclass(frozen=True)
class MatchEngagementStats:
    """Per-category engagement of a community's matches."""

    direct_intro: CategoryEngagement = field(default_factory=CategoryEngagement)
    group_pairing: CategoryEngagement = field(default_factory=CategoryEngagement)
    mentor_mentee: CategoryEngagement = field(default_factory=CategoryEngagement)
    resolution: Resolution = Resolution.EMPTY


@dataclass(frozen=True)
class MentorMenteeStats:
    can_mentor: int = 0
    want_mentor: int = 0
    resolution: Resolution = Resolution.EMPTY


@dataclass(frozen=True)
class MessageStats:
    total_messages: int = 0
    platform_chats: int = 0
    resolution: Resolution = Resolution.EMPTY


@dataclass
class EngagementStats:
    """Headline engagement metrics of a community for a date range.

    Built incrementally by the analytics service, hence not frozen.

    Attributes:
        community_id: The community
        total_members: Number of known members
        connections_made: Unique member-to-member connections
        users_with_connections: Members with at least one partner
        match_response_rate: Direct-intro engagement rate
        messages_sent: Messages in the date range
        profile_completion_rate: Share of profiles with bio, interests or location
        events_created: Events starting in the date range
        events_attended: Attendances at those events
        groups_created: Groups created in the date range
        groups_joined: Members of those groups, unique where ids are known
        daily_active_users: Users active since the start of the previous day
        weekly_active_users: Users active in the seven days before the range end
        by_category: Engagement per match category
        resolution: Provenance of ``connections_made``
        diagnostics: Free-form notes on degraded or overridden values
    """

    community_id: int
    total_members: int = 0
    connections_made: int = 0
    users_with_connections: int = 0
    match_response_rate: float = 0.0
    messages_sent: int = 0
    profile_completion_rate: float = 0.0
    events_created: int = 0
    events_attended: int = 0
    groups_created: int = 0
    groups_joined: int = 0
    daily_active_users: int = 0
    weekly_active_users: int = 0
    by_category: dict[str, CategoryEngagement] = field(default_factory=dict)
    resolution: Resolution = Resolution.EMPTY
    diagnostics: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ActiveUserStats:
    """Distinct active users over the last day and the last week."""

    daily: int = 0
    weekly: int = 0
    resolution: Resolution = Resolution.EMPTY


@dataclass(frozen=True)
class ConsolidationCheck:
    """Whether aggregate chart rows are per-value totals.

    Backends sometimes return one row per user (labels like ``"Chess|42"``
    or ``"skill:Chess:42"``) instead of one row per value, or rows that
    all count 1. Either shape makes the chart counts meaningless.

    Attributes:
        consolidated: True when the rows look like real per-value totals
        per_user_rows: Rows whose label carries a user component
        all_ones: Every row counts exactly 1 (and there is more than one)
        total: Sum of the row counts
    """

    consolidated: bool = True
    per_user_rows: int = 0
    all_ones: bool = False
    total: int = 0


@dataclass(frozen=True)
class SkillsStats:
    """How widely skills are spread across a community.

    Attributes:
        total_skills: Distinct skill names in use
        users_with_skills: Profiles listing at least one skill
        users_can_mentor: Members offering to mentor
        users_want_mentor: Members asking for a mentor
        chart: Shape check of the skills chart, when the counts were computed from it
        resolution: Provenance of the skill counts
    """

    total_skills: int = 0
    users_with_skills: int = 0
    users_can_mentor: int = 0
    users_want_mentor: int = 0
    resolution: Resolution = Resolution.EMPTY
    chart: ConsolidationCheck | None = None
