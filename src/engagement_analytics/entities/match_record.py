"""Match record domain entity.

Match rows come from several backend endpoint generations, so the same
semantic field may arrive under different names. ``MatchRecord.from_raw``
is the single place that knows those names.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class MatchType(str, Enum):
    """Category of a match."""

    DIRECT_INTRO = "direct_intro"
    GROUP_PAIRING = "group_pairing"
    MENTOR_MENTEE = "mentor_mentee"

    @classmethod
    def from_wire(cls, value: Any) -> "MatchType | None":
        """Map a backend type string onto a category.

        Args:
            value: The raw ``type`` / ``matchType`` value

        Returns:
            The MatchType, or None when the value is unknown
        """
        if not isinstance(value, str):
            return None
        return _WIRE_TYPES.get(value.strip().lower())

    @property
    def wire_value(self) -> str:
        """Value the backend expects in a ``type`` query parameter."""
        return _QUERY_TYPES[self]


_WIRE_TYPES = {
    "trova_magic": MatchType.DIRECT_INTRO,
    "magic_intro": MatchType.DIRECT_INTRO,
    "direct_intro": MatchType.DIRECT_INTRO,
    "intro": MatchType.DIRECT_INTRO,
    "channel_pairing": MatchType.GROUP_PAIRING,
    "group_pairing": MatchType.GROUP_PAIRING,
    "mentor_mentee": MatchType.MENTOR_MENTEE,
    "mentorship": MatchType.MENTOR_MENTEE,
}

_QUERY_TYPES = {
    MatchType.DIRECT_INTRO: "trova_magic",
    MatchType.GROUP_PAIRING: "channel_pairing",
    MatchType.MENTOR_MENTEE: "mentor_mentee",
}


def _first(raw: dict[str, Any], *names: str) -> Any:
    for name in names:
        value = raw.get(name)
        if value is not None:
            return value
    return None


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse the timestamp shapes seen in match and conversation rows.

    Accepts ISO-8601 strings (with or without ``Z``), epoch seconds or
    milliseconds, datetimes, and ``{"seconds": n}`` / ``{"_seconds": n}``
    timestamp objects. Naive values are treated as UTC.

    Returns:
        An aware UTC datetime, or None if the value cannot be interpreted
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e11 else value
        try:
            parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    elif isinstance(value, dict):
        seconds = _first(value, "seconds", "_seconds")
        if not isinstance(seconds, (int, float)) or isinstance(seconds, bool):
            return None
        return parse_timestamp(float(seconds))
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class MatchRecord:
    """A single match between two users, as reported by the backend.

    Attributes:
        id: Backend match id
        user_id: First participant
        matched_user_id: Second participant
        group_id: Shared id for multi-person pairings (None when absent or 0)
        community_id: Owning community, if the row carries it
        type: Match category, None when the backend did not say
        sub_type: Free-form qualifier (trigger type, cadence, ...)
        created_at: Creation time in UTC, None when missing or unparseable
        is_active: False when the match was deactivated
        removed: True when the match was removed
        snoozed: True when the match is snoozed
        raw: The untouched backend row
    """

    id: Any
    user_id: int | None
    matched_user_id: int | None
    group_id: int | None = None
    community_id: int | None = None
    type: MatchType | None = None
    sub_type: str | None = None
    created_at: datetime | None = None
    is_active: bool = True
    removed: bool = False
    snoozed: bool = False
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "MatchRecord":
        """Build a record from a backend row, tolerating legacy field names."""
        group_id = _as_int(_first(raw, "groupId", "group_id", "matchIndicesId"))
        is_active = _first(raw, "is_active", "isActive")
        sub_type = _first(raw, "subType", "sub_type", "triggerType")

        return cls(
            id=raw.get("id"),
            user_id=_as_int(_first(raw, "userId", "user_id", "left_user_id", "leftUserId")),
            matched_user_id=_as_int(
                _first(raw, "matchedUserId", "matched_user_id", "right_user_id", "rightUserId")
            ),
            group_id=group_id or None,
            community_id=_as_int(_first(raw, "communityId", "community_id")),
            type=MatchType.from_wire(_first(raw, "type", "matchType")),
            sub_type=str(sub_type) if sub_type is not None else None,
            created_at=parse_timestamp(_first(raw, "createdAt", "created_at")),
            is_active=is_active is not False,
            removed=bool(raw.get("removed")),
            snoozed=bool(_first(raw, "snoozed_on", "snoozedOn")),
            raw=dict(raw),
        )

    @property
    def participants(self) -> tuple[int, ...]:
        """Known participant ids of this record."""
        return tuple(uid for uid in (self.user_id, self.matched_user_id) if uid is not None)

    @property
    def is_live(self) -> bool:
        """Active, not removed and not snoozed."""
        return self.is_active and not self.removed and not self.snoozed
