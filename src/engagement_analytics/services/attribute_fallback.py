"""Users-by-attribute lookup with tiered fallback.

Lookup tiers, first non-empty wins:
1. Primary: the attribute-specific backend endpoints
2. Profile scan: every cached profile (then the member roster) is checked
   with the attribute's extraction rule
3. Aggregate recovery: the chart endpoint lists user ids per attribute
   value; those ids are resolved against the cached profiles and
   re-verified with the tier 2 rule

A non-empty primary answer is never replaced by a later tier.
"""

import logging
from typing import Any
from urllib.parse import quote

from engagement_analytics.entities import AttributeLookup, ConsolidationCheck, Member, Resolution, member_id
from engagement_analytics.errors import AnalyticsError, UnauthorizedError

from .attribute_rules import AttributeRule, canonical_type, custom_field_id, get_rule
from .community_directory import CommunityDirectory, members_from_rows
from .endpoint_resolver import USER_KEYS, EndpointCandidate, EndpointResolver, rows_of

logger = logging.getLogger(__name__)

# Order in which aggregate rows are searched for the users behind a value
_ID_FIELDS = ("userId", "user_id", "userIds", "user_ids", "memberId", "member_id", "id")
_LABEL_FIELDS = ("name", "label", "value")


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _user_rows(payload: Any) -> list[dict[str, Any]]:
    return rows_of(payload, "data", *USER_KEYS, "items", "results")


def aggregate_user_ids(row: dict[str, Any]) -> list[int]:
    """User ids attached to one aggregate row, from the first field present."""
    for name in _ID_FIELDS:
        raw = row.get(name)
        if raw is None:
            continue
        items = raw if isinstance(raw, list) else [raw]
        ids = []
        for item in items:
            if isinstance(item, dict):
                item = member_id(item)
            if item is None or isinstance(item, bool):
                continue
            try:
                ids.append(int(item))
            except (TypeError, ValueError):
                continue
        if ids:
            return ids
    return []


def row_label(row: dict[str, Any]) -> str:
    for name in _LABEL_FIELDS:
        value = row.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def row_count(row: dict[str, Any]) -> int:
    """The count an aggregate row reports for its value; 0 when unreadable."""
    for name in ("value", "count"):
        raw = row.get(name)
        if isinstance(raw, bool):
            continue
        if isinstance(raw, (int, float)):
            return int(raw)
    return 0


def check_consolidated(rows: list[dict[str, Any]], label: str) -> ConsolidationCheck:
    """Judge whether chart rows are per-value totals rather than per-user rows.

    A label holding a pipe, or more than two colon separated parts, names
    a single user's answer. When no label does, rows that all count 1
    still suggest per-user data. Problems are logged as warnings.

    Args:
        rows: Aggregate rows with a label and a count
        label: Attribute name used in log messages

    Returns:
        ConsolidationCheck describing the rows
    """
    total = sum(row_count(row) for row in rows)
    per_user = [row for row in rows if "|" in row_label(row) or len(row_label(row).split(":")) > 2]
    if per_user:
        logger.warning(
            "%s chart has %d per-user rows instead of totals, e.g. %r",
            label,
            len(per_user),
            [row_label(row) for row in per_user[:3]],
        )
        return ConsolidationCheck(consolidated=False, per_user_rows=len(per_user), total=total)

    all_ones = len(rows) > 1 and all(row_count(row) == 1 for row in rows)
    if all_ones:
        logger.warning("Every %s chart row counts 1; the rows may be per-user answers", label)
        return ConsolidationCheck(consolidated=False, all_ones=True, total=total)

    logger.debug("%s chart looks consolidated: %d rows, total %d", label, len(rows), total)
    return ConsolidationCheck(total=total)


class AttributeFallbackEngine:
    """Resolves the members carrying an attribute value.

    Example:
        ```python
        engine = AttributeFallbackEngine.create(resolver, directory)
        lookup = await engine.resolve_users_by_attribute(42, "interest", "Hiking")
        lookup.resolution  # Resolution.PRIMARY, FALLBACK, RECOVERED, EMPTY or DEGRADED
        ```
    """

    def __init__(self, resolver: EndpointResolver, directory: CommunityDirectory) -> None:
        """Initialize the engine.

        Args:
            resolver: Endpoint resolver for the primary and aggregate tiers (required).
            directory: Source of cached profiles and members (required).
        """
        self._resolver = resolver
        self._directory = directory

    @classmethod
    def create(cls, resolver: EndpointResolver, directory: CommunityDirectory) -> "AttributeFallbackEngine":
        return cls(resolver=resolver, directory=directory)

    def primary_candidates(
        self,
        community_id: int,
        attribute_type: str,
        value: str,
        only_active: bool,
    ) -> list[EndpointCandidate]:
        base = f"/communities/{community_id}"
        active = _flag(only_active)
        if attribute_type == "skill":
            return [
                EndpointCandidate(
                    f"{base}/skills/users",
                    params={"type": "general", "value": value, "onlyActive": active},
                    extract=_user_rows,
                    item_keys=USER_KEYS,
                ),
                EndpointCandidate(
                    f"{base}/skills/{quote(value, safe='')}/users",
                    params={"onlyActive": active},
                    extract=_user_rows,
                    item_keys=USER_KEYS,
                ),
                EndpointCandidate(
                    f"{base}/users/skills",
                    params={"skill": value, "onlyActive": active},
                    extract=_user_rows,
                    item_keys=USER_KEYS,
                ),
            ]
        if attribute_type == "business_topic":
            return [
                EndpointCandidate(
                    f"{base}/businessTopics/users",
                    params={"value": value, "onlyActive": active},
                    extract=_user_rows,
                    item_keys=USER_KEYS,
                )
            ]
        field_id = custom_field_id(attribute_type)
        if field_id is not None:
            return [
                EndpointCandidate(
                    f"{base}/custom-field/{quote(field_id, safe='')}/users",
                    params={"value": value, "onlyActive": active},
                    extract=_user_rows,
                    item_keys=USER_KEYS,
                )
            ]
        return [
            EndpointCandidate(
                f"{base}/attribute/users",
                params={"type": attribute_type, "value": value, "onlyActive": active},
                extract=_user_rows,
                item_keys=USER_KEYS,
            )
        ]

    def aggregate_candidates(
        self,
        community_id: int,
        attribute_type: str,
        only_active: bool,
    ) -> list[EndpointCandidate]:
        base = f"/communities/{community_id}"
        params = {"consolidateResults": "false", "onlyActive": _flag(only_active)}
        if attribute_type == "skill":
            return [EndpointCandidate(f"{base}/skills", params={"type": "general", **params}, extract=rows_of)]
        if attribute_type == "business_topic":
            return [EndpointCandidate(f"{base}/businessTopics", params=params, extract=rows_of)]
        field_id = custom_field_id(attribute_type)
        if field_id is not None:
            path = f"{base}/custom-field-chart/{quote(field_id, safe='')}"
            return [EndpointCandidate(path, params=params, extract=rows_of)]
        return [EndpointCandidate(f"{base}/attribute", params={"type": attribute_type, **params}, extract=rows_of)]

    @staticmethod
    def _to_members(rows: list[dict[str, Any]], rule: AttributeRule, only_active: bool) -> list[Member]:
        members = members_from_rows(rows, only_active=only_active)
        if rule.name != "skill":
            return members
        by_id = {member_id(row): row for row in rows}
        return [m.with_skills(rule.values(by_id[m.id])) if m.id in by_id else m for m in members]

    async def _load_profiles(self, community_id: int) -> list[dict[str, Any]] | None:
        try:
            return await self._directory.profiles(community_id)
        except UnauthorizedError:
            raise
        except AnalyticsError as e:
            logger.warning("Profiles unavailable for community %s: %s", community_id, e)
            return None

    async def _scan(
        self,
        community_id: int,
        rule: AttributeRule,
        value: str,
        only_active: bool,
        profiles: list[dict[str, Any]] | None,
    ) -> list[Member]:
        if profiles:
            members = self._to_members([p for p in profiles if rule.matches(p, value)], rule, only_active)
            if members:
                logger.info("Profile scan found %d members with %s=%r", len(members), rule.name, value)
                return members

        rows, _ = await self._directory.member_rows(community_id)
        found = [row for row in rows if rule.matches(row, value)]
        if found:
            logger.info("Member scan found %d members with %s=%r", len(found), rule.name, value)
        return self._to_members(found, rule, only_active)

    async def _recover(
        self,
        community_id: int,
        rule: AttributeRule,
        value: str,
        only_active: bool,
        profiles: list[dict[str, Any]],
    ) -> AttributeLookup | None:
        outcome = await self._resolver.resolve_or_empty(
            self.aggregate_candidates(community_id, rule.name, only_active)
        )
        if not outcome.found:
            return None

        wanted = value.strip().lower()
        ids: set[int] = set()
        for row in outcome.data:
            label = row_label(row).lower()
            hit = wanted in label if rule.match_mode == "contains" else label == wanted
            if hit:
                ids.update(aggregate_user_ids(row))
        if not ids:
            return None

        candidates = [p for p in profiles if member_id(p) in ids]
        verified = [p for p in candidates if rule.matches(p, value)]
        if verified:
            members = self._to_members(verified, rule, only_active)
            # empty when every verified member is disabled
            return AttributeLookup(members, Resolution.FALLBACK) if members else None

        members = self._to_members(candidates, rule, only_active)
        if not members:
            return None
        logger.warning(
            "Aggregate recovery for %s=%r returned %d members that could not be verified against profiles",
            rule.name,
            value,
            len(members),
        )
        return AttributeLookup(members, Resolution.RECOVERED)

    async def resolve_users_by_attribute(
        self,
        community_id: int,
        attribute_type: str,
        value: str,
        only_active: bool = True,
        custom_field: int | str | None = None,
    ) -> AttributeLookup:
        """Find the members carrying ``value`` for ``attribute_type``.

        Args:
            community_id: The community
            attribute_type: interest, skill, location, custom_field:<id>, ...
            value: Attribute value; case-insensitive
            only_active: Skip disabled members in every tier
            custom_field: Custom field id, when ``attribute_type`` is "customField"

        Returns:
            AttributeLookup with the members and the tier that found them

        Raises:
            ValueError: If the attribute type is unknown
            UnauthorizedError: If the backend refuses any request
        """
        type_name = canonical_type(attribute_type, custom_field)
        rule = get_rule(type_name)
        if rule is None:
            raise ValueError(f"Unknown attribute type: {attribute_type}")

        primary = await self._resolver.resolve_or_empty(
            self.primary_candidates(community_id, rule.name, value, only_active)
        )
        if primary.found:
            members = self._to_members(primary.data, rule, only_active)
            if members:
                return AttributeLookup(members, Resolution.PRIMARY)

        profiles = await self._load_profiles(community_id)
        scanned = await self._scan(community_id, rule, value, only_active, profiles)
        if scanned:
            return AttributeLookup(scanned, Resolution.FALLBACK)

        if profiles:
            recovered = await self._recover(community_id, rule, value, only_active, profiles)
            if recovered is not None:
                return recovered

        if primary.degraded and profiles is None:
            logger.error("Every lookup tier failed for %s=%r in community %s", rule.name, value, community_id)
            return AttributeLookup([], Resolution.DEGRADED)
        return AttributeLookup([], Resolution.EMPTY)
