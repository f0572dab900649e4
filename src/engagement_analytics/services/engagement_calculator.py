"""Engagement metrics over matches and the conversation pair index.

Everything here is synchronous and side-effect free: callers fetch the
matches, members and pair index, then hand them to the calculator.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from engagement_analytics.config import settings
from engagement_analytics.entities import (
    ActiveUserStats,
    CategoryEngagement,
    ChannelPairingStats,
    ConversationParticipantSet,
    DateBreakdown,
    DateBreakdownResult,
    DateRange,
    MatchRecord,
    MatchSummary,
    MatchType,
    Member,
    UserConnections,
    member_id,
    parse_timestamp,
)

from .pair_accumulator import PairKey, PairSetAccumulator, pair_key, participant_pairs

logger = logging.getLogger(__name__)

_ON_DEMAND_TRIGGERS = ("on_demand", "manual")
_CADENCE_TRIGGERS = ("cadence", "scheduled")
_EVENT_DATE_FIELDS = ("startDateTimeUTC", "startDate")
_GROUP_ACTIVITY_FIELDS = ("updatedAt", "createdAt")


def engagement_rate(engaged: int, total: int) -> float:
    """Percentage of engaged units, rounded to one decimal.

    Returns 0.0 when there is nothing to measure and never leaves [0, 100].
    """
    if total <= 0:
        return 0.0
    rate = engaged / total * 100
    return round(min(100.0, max(0.0, rate)), 1)


def is_engaged(participant_ids: Iterable[int], pair_index: set[PairKey]) -> bool:
    """True if any two of the participants share a conversation."""
    return not participant_pairs(participant_ids).isdisjoint(pair_index)


def format_date_display(day: date) -> str:
    """Long US-style date, e.g. "March 5, 2024"."""
    return f"{day:%B} {day.day}, {day.year}"


def in_reporting_range(row: dict[str, Any], fields: tuple[str, ...], date_range: DateRange) -> bool:
    """Whether a dated row falls in the range.

    Every row belongs to an open range. Otherwise a row without any of the
    date ``fields`` counts as in range, and one whose date cannot be read
    counts as out of it.
    """
    if date_range.start is None and date_range.end is None:
        return True
    raw = next((row[name] for name in fields if row.get(name)), None)
    if raw is None:
        return True
    moment = parse_timestamp(raw)
    return moment is not None and date_range.contains(moment)


def _user_ids(items: Any) -> set[int]:
    """Numeric ids of a user list holding ids or user objects."""
    ids = set()
    for item in items if isinstance(items, list) else []:
        if isinstance(item, dict):
            item = item.get("id", item.get("userId"))
        if isinstance(item, int) and not isinstance(item, bool):
            ids.add(item)
    return ids


def _headcount(row: dict[str, Any], count_field: str, list_field: str) -> int:
    count = row.get(count_field)
    if isinstance(count, (int, float)) and not isinstance(count, bool):
        return int(count)
    listed = row.get(list_field)
    return len(listed) if isinstance(listed, list) else 0


def is_on_demand(raw: dict[str, Any]) -> bool:
    """Classify a group pairing record by how it was triggered.

    Explicit on-demand markers win, then explicit cadence markers, then
    trigger/schedule timestamps. Records without any marker are cadence.
    """
    trigger = str(raw.get("triggerType") or "").lower()
    if raw.get("isOnDemand") or raw.get("onDemand") or trigger in _ON_DEMAND_TRIGGERS:
        return True
    if raw.get("isCadence") or raw.get("cadence") or raw.get("scheduled") or trigger in _CADENCE_TRIGGERS:
        return False
    if raw.get("triggeredAt") or raw.get("manualTrigger"):
        return True
    return False


class EngagementCalculator:
    """Composes pair accumulation into engagement statistics.

    Example:
        ```python
        calculator = EngagementCalculator()
        groups = PairSetAccumulator().accumulate(matches)
        stats = calculator.classify(groups, pair_index)
        ```
    """

    def __init__(self, anomaly_threshold: int | None = None) -> None:
        """Initialize the calculator.

        Args:
            anomaly_threshold: Unique pairs per day above which the day is
                excluded from totals. Defaults to settings.
        """
        self._anomaly_threshold = settings.anomaly_pair_threshold if anomaly_threshold is None else anomaly_threshold

    @classmethod
    def create(cls, anomaly_threshold: int | None = None) -> "EngagementCalculator":
        return cls(anomaly_threshold=anomaly_threshold)

    @property
    def anomaly_threshold(self) -> int:
        return self._anomaly_threshold

    def classify(self, groups: dict[PairKey, set[int]], pair_index: set[PairKey]) -> CategoryEngagement:
        """Count engaged units among accumulated pairs/groups."""
        total = len(groups)
        engaged = sum(1 for participants in groups.values() if is_engaged(participants, pair_index))
        return CategoryEngagement(total=total, engaged=engaged, rate=engagement_rate(engaged, total))

    def engagement_for(self, matches: Iterable[MatchRecord], pair_index: set[PairKey]) -> CategoryEngagement:
        return self.classify(PairSetAccumulator().accumulate(matches), pair_index)

    def engagement_by_category(
        self,
        matches: list[MatchRecord],
        pair_index: set[PairKey],
    ) -> dict[MatchType, CategoryEngagement]:
        """Engagement of every match category.

        Records without a known type belong to no category.
        """
        return {
            match_type: self.engagement_for((m for m in matches if m.type == match_type), pair_index)
            for match_type in MatchType
        }

    def breakdown_by_date(self, matches: list[MatchRecord], pair_index: set[PairKey]) -> DateBreakdownResult:
        """Unique pairings and engagement per UTC calendar date.

        Records without a usable creation time are counted in
        ``invalid_dates``. Dates with more unique pairings than the anomaly
        threshold are listed but left out of the totals.
        """
        by_date: dict[date, list[MatchRecord]] = defaultdict(list)
        invalid = 0
        for match in matches:
            if match.created_at is None:
                invalid += 1
                continue
            by_date[match.created_at.date()].append(match)

        rows = []
        excluded = []
        total_pairings = 0
        engaged_pairings = 0
        for day in sorted(by_date, reverse=True):
            stats = self.engagement_for(by_date[day], pair_index)
            anomalous = stats.total > self._anomaly_threshold
            if anomalous:
                excluded.append(day.isoformat())
                logger.warning(
                    "Excluding %s from totals: %d unique pairings exceeds %d",
                    day.isoformat(),
                    stats.total,
                    self._anomaly_threshold,
                )
            else:
                total_pairings += stats.total
                engaged_pairings += stats.engaged
            rows.append(
                DateBreakdown(
                    date=day.isoformat(),
                    date_display=format_date_display(day),
                    total_pairings=stats.total,
                    engaged_pairings=stats.engaged,
                    engagement_rate=stats.rate,
                    anomalous=anomalous,
                )
            )

        if invalid:
            logger.info("%d match records had no usable creation date", invalid)

        return DateBreakdownResult(
            dates=rows,
            invalid_dates=invalid,
            excluded_dates=excluded,
            total_pairings=total_pairings,
            engaged_pairings=engaged_pairings,
            engagement_rate=engagement_rate(engaged_pairings, total_pairings),
        )

    @staticmethod
    def _member_pairs(matches: Iterable[MatchRecord], member_ids: set[int]) -> Iterable[tuple[int, int]]:
        for match in matches:
            if not match.is_live:
                continue
            a, b = match.user_id, match.matched_user_id
            if a is None or b is None or a == b:
                continue
            if a in member_ids and b in member_ids:
                yield a, b

    def match_summary(self, matches: list[MatchRecord], members: list[Member]) -> MatchSummary:
        """Unique connections between current members.

        Only live matches (active, not removed, not snoozed) whose two
        users are both members count. Users are listed by number of
        distinct partners, then by name.
        """
        by_id = {member.id: member for member in members}
        pairs: set[PairKey] = set()
        partners: dict[int, set[int]] = defaultdict(set)
        for a, b in self._member_pairs(matches, set(by_id)):
            pairs.add(pair_key(a, b))
            partners[a].add(b)
            partners[b].add(a)

        per_user = [
            UserConnections(member=by_id[uid], connections=len(found)) for uid, found in partners.items()
        ]
        per_user.sort(key=lambda u: (-u.connections, u.member.full_name.lower()))
        return MatchSummary(total_pairs=len(pairs), per_user=per_user)

    def match_partners(self, matches: list[MatchRecord], members: list[Member], user_id: int) -> list[Member]:
        """Members matched with ``user_id``, under the same rules as ``match_summary``."""
        by_id = {member.id: member for member in members}
        partners: dict[int, None] = {}
        for a, b in self._member_pairs(matches, set(by_id)):
            if a == user_id:
                partners[b] = None
            elif b == user_id:
                partners[a] = None
        return [by_id[uid] for uid in partners]

    def channel_pairing_breakdown(self, matches: list[MatchRecord]) -> ChannelPairingStats:
        """Unique groups and users of group pairings, by trigger kind.

        A group counts as on-demand when any of its records is.
        """
        accumulator = PairSetAccumulator()
        groups = accumulator.accumulate(matches)
        on_demand_keys = {
            key
            for match in matches
            if (key := accumulator.key_for(match)) is not None and is_on_demand(match.raw)
        }
        users = set().union(*groups.values()) if groups else set()
        return ChannelPairingStats(
            total_matches=len(matches),
            unique_groups=len(groups),
            unique_users=len(users),
            on_demand_groups=len(on_demand_keys),
            cadence_groups=len(groups) - len(on_demand_keys),
        )

    @staticmethod
    def profile_completion(profiles: list[dict[str, Any]]) -> tuple[int, float]:
        """Profiles with a bio, interests or a location.

        Returns:
            (completed count, completion rate in percent)
        """
        completed = 0
        for profile in profiles:
            bio = profile.get("bio")
            has_bio = isinstance(bio, str) and bool(bio.strip())
            interests = profile.get("interests")
            has_interests = isinstance(interests, list) and len(interests) > 0
            locations = profile.get("locations")
            current = profile.get("currentLocationName")
            has_location = (isinstance(locations, list) and len(locations) > 0) or (
                isinstance(current, str) and bool(current.strip())
            )
            if has_bio or has_interests or has_location:
                completed += 1
        return completed, engagement_rate(completed, len(profiles))

    @staticmethod
    def event_activity(events: list[dict[str, Any]], date_range: DateRange) -> tuple[int, int]:
        """Events starting in the range and their attendance.

        Attendance is the event's ``attendeeCount``, else the length of its
        attendee list.

        Returns:
            (events created, attendances)
        """
        created = attended = 0
        for event in events:
            if not in_reporting_range(event, _EVENT_DATE_FIELDS, date_range):
                continue
            created += 1
            attended += _headcount(event, "attendeeCount", "attendees")
        return created, attended

    @staticmethod
    def group_activity(groups: list[dict[str, Any]], date_range: DateRange) -> tuple[int, int]:
        """Groups created in the range and how many joined them.

        Members listed by id are counted once across groups. Only when no
        group lists its members are the per-group member counts summed.

        Returns:
            (groups created, members joined)
        """
        created = memberships = 0
        members: set[int] = set()
        for group in groups:
            if not in_reporting_range(group, ("createdAt",), date_range):
                continue
            created += 1
            memberships += _headcount(group, "memberCount", "users")
            if group.get("memberCount") is None:
                members |= _user_ids(group.get("users"))
        return created, len(members) if members else memberships

    @staticmethod
    def active_users(
        period_end: date,
        matches: list[MatchRecord],
        events: list[dict[str, Any]],
        groups: list[dict[str, Any]],
        conversations: list[ConversationParticipantSet],
    ) -> ActiveUserStats:
        """Distinct users active on the last day and in the last week of a period.

        The daily window opens at midnight UTC the day before ``period_end``
        and the weekly window seven days before it; both close at the end of
        ``period_end``. Matched users count at the match's creation, event
        hosts and attendees at the event's start, group members at the
        group's last update and conversation participants at the
        conversation's last activity.
        """
        day_start = datetime.combine(period_end - timedelta(days=1), time.min, tzinfo=timezone.utc)
        week_start = datetime.combine(period_end - timedelta(days=7), time.min, tzinfo=timezone.utc)
        period_close = datetime.combine(period_end + timedelta(days=1), time.min, tzinfo=timezone.utc)
        daily: set[int] = set()
        weekly: set[int] = set()

        def mark(moment: datetime | None, user_ids: Iterable[int]) -> None:
            if moment is None or moment >= period_close or moment < week_start:
                return
            user_ids = set(user_ids)
            weekly.update(user_ids)
            if moment >= day_start:
                daily.update(user_ids)

        for match in matches:
            mark(match.created_at, (uid for uid in (match.user_id, match.matched_user_id) if uid is not None))

        for event in events:
            moment = parse_timestamp(next((event[f] for f in ("startDate", "startDateTimeUTC") if event.get(f)), None))
            mark(moment, _user_ids([event.get("userId") or event.get("createdBy")]) | _user_ids(event.get("attendees")))

        for group in groups:
            moment = parse_timestamp(next((group[f] for f in _GROUP_ACTIVITY_FIELDS if group.get(f)), None))
            mark(moment, _user_ids(group.get("users")))

        for conversation in conversations:
            mark(conversation.last_active_at, conversation.participant_ids)

        return ActiveUserStats(daily=len(daily), weekly=len(weekly))

    @staticmethod
    def skills_summary(skill_rows: list[dict[str, Any]], profiles: list[dict[str, Any]]) -> tuple[int, int]:
        """Distinct skill names in a skills chart, and profiles listing any skill.

        Returns:
            (total skills, users with skills)
        """
        names = {str(row.get("name") or row.get("label") or "").strip() for row in skill_rows}
        names.discard("")
        users = set()
        for profile in profiles:
            uid = member_id(profile)
            skills = profile.get("skills")
            if uid is None:
                continue
            if isinstance(skills, (list, dict)) and skills:
                users.add(uid)
            elif isinstance(skills, str) and skills.strip():
                users.add(uid)
        return len(names), len(users)
