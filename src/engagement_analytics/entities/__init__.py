"""Domain entities for internal representation.

These are pure dataclasses (frozen where possible) used internally by
services and repositories. They are NOT used for API contracts - use
DTOs from the dto package for that.
"""

from .cache_entry import CacheEntry
from .conversation import ConversationDocument, ConversationParticipantSet, MessageDocument
from .match_record import MatchRecord, MatchType, parse_timestamp
from .member import Member, member_id
from .query import DateRange, DrilldownQuery
from .stats import (
    ActiveUserStats,
    AttributeLookup,
    CategoryEngagement,
    ChannelPairingStats,
    ConsolidationCheck,
    DateBreakdown,
    DateBreakdownResult,
    EngagementStats,
    MagicIntroPairing,
    MatchEngagementStats,
    MatchSet,
    MatchSummary,
    MemberList,
    MentorMenteeStats,
    MessageStats,
    PaginatedMembers,
    Resolution,
    SkillsStats,
    UserConnections,
)

__all__ = [
    "ActiveUserStats",
    "AttributeLookup",
    "CacheEntry",
    "CategoryEngagement",
    "ChannelPairingStats",
    "ConsolidationCheck",
    "ConversationDocument",
    "ConversationParticipantSet",
    "DateBreakdown",
    "DateBreakdownResult",
    "DateRange",
    "DrilldownQuery",
    "EngagementStats",
    "MagicIntroPairing",
    "MatchEngagementStats",
    "MatchRecord",
    "MatchSet",
    "MatchSummary",
    "MatchType",
    "Member",
    "MemberList",
    "MentorMenteeStats",
    "MessageDocument",
    "MessageStats",
    "PaginatedMembers",
    "Resolution",
    "SkillsStats",
    "UserConnections",
    "member_id",
    "parse_timestamp",
]
