"""Attribute extraction rules.

Profiles have accumulated many field names for the same attribute over
time. Each rule below is a pure function listing exactly which fields it
probes for its attribute type; nothing else in the package inspects raw
profile attributes.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Literal

MatchMode = Literal["exact", "contains"]

Profile = dict[str, Any]

# Keys tried, in order, when an attribute value is an object rather than a string
_VALUE_KEYS = ("name", "primaryName", "secondaryName", "title", "skill", "skillName", "label")

_SKILL_KEYS = (
    "name",
    "skill",
    "skillName",
    "skill_name",
    "skillId",
    "skill_id",
    "displayName",
    "label",
    "title",
)

_SKILL_FIELDS = (
    "skills",
    "skillList",
    "skillsList",
    "skillNames",
    "skill_names",
    "skillsString",
    "skills_string",
    "mentorsOn",
    "wantsMentorOn",
)

CUSTOM_FIELD_PREFIX = "custom_field:"

# Alternative spellings accepted from callers
_TYPE_ALIASES = {
    "interests": "interest",
    "activities": "activity",
    "intentions": "intention",
    "movies": "movie",
    "organizations": "organization",
    "locations": "location",
    "businessTopic": "business_topic",
    "businessTopics": "business_topic",
    "business_topics": "business_topic",
    "skills": "skill",
}


def dedupe(values: Iterable[Any]) -> list[str]:
    """Trim values, drop empties and deduplicate case-insensitively.

    The first spelling seen is kept.
    """
    seen: set[str] = set()
    unique = []
    for value in values:
        text = str(value).strip()
        if not text or text.lower() in seen:
            continue
        seen.add(text.lower())
        unique.append(text)
    return unique


def normalize_values(raw: Any) -> list[str]:
    """Flatten an attribute payload into strings.

    Strings pass through, lists are flattened recursively, objects
    contribute whichever of their name-like keys are present.
    """
    if raw is None or isinstance(raw, bool) or raw == "":
        return []
    if isinstance(raw, str):
        return [raw]
    if isinstance(raw, (int, float)):
        return [str(raw)]
    if isinstance(raw, (list, tuple, set)):
        return [value for item in raw for value in normalize_values(item)]
    if isinstance(raw, dict):
        return [str(raw[key]) for key in _VALUE_KEYS if isinstance(raw.get(key), (str, int)) and raw[key]]
    return []


def _skill_name(item: Any) -> str:
    if isinstance(item, str):
        return item.strip()
    if isinstance(item, dict):
        for key in _SKILL_KEYS:
            candidate = item.get(key)
            if isinstance(candidate, (str, int)) and not isinstance(candidate, bool) and candidate != "":
                return str(candidate).strip()
        nested = item.get("skill")
        if isinstance(nested, dict):
            return _skill_name(nested)
        meta = item.get("meta")
        if isinstance(meta, dict) and meta.get("name"):
            return str(meta["name"]).strip()
        return ""
    if item is None or isinstance(item, bool):
        return ""
    return str(item).strip()


def normalize_skills(raw: Any) -> list[str]:
    """Normalize a skills payload into a list of skill names.

    Accepts a comma-separated string, a list of strings or skill objects,
    or a mapping keyed by skill name (``{"Python": "expert"}``).
    """
    if not raw:
        return []
    if isinstance(raw, str):
        return dedupe(raw.split(","))
    if isinstance(raw, (list, tuple)):
        return dedupe(_skill_name(item) for item in raw)
    if isinstance(raw, dict):
        return dedupe(raw.keys())
    return []


def _fields(profile: Profile, *names: str) -> list[str]:
    return [value for name in names for value in normalize_values(profile.get(name))]


def _locations(profile: Profile) -> list[str]:
    values = []
    locations = profile.get("locations")
    if isinstance(locations, list):
        for location in locations:
            if isinstance(location, dict):
                name = location.get("primaryName") or location.get("secondaryName")
                if name:
                    values.append(str(name))
            elif isinstance(location, str):
                values.append(location)
    values.extend(_fields(profile, "hometowns", "currentLocationName"))
    return values


def _skills(profile: Profile) -> list[str]:
    return [skill for name in _SKILL_FIELDS for skill in normalize_skills(profile.get(name))]


def _custom_field_values(custom_field_id: str) -> Callable[[Profile], list[str]]:
    def extract(profile: Profile) -> list[str]:
        entries = profile.get("customFields") or profile.get("custom_fields") or []
        if not isinstance(entries, list):
            return []
        values = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            field_id = entry.get("id") or entry.get("customFieldId") or entry.get("custom_field_id")
            if str(field_id) != custom_field_id:
                continue
            value = entry.get("value") or entry.get("displayValue") or entry.get("name") or entry.get("label")
            values.extend(normalize_values(value))
        return values

    return extract


@dataclass(frozen=True)
class AttributeRule:
    """How to read one attribute type from a profile.

    Attributes:
        name: Attribute type this rule handles
        extract: Pure function returning the raw values found on a profile
        match_mode: "exact" (case-insensitive equality) or "contains"
    """

    name: str
    extract: Callable[[Profile], list[str]]
    match_mode: MatchMode = "exact"

    def values(self, profile: Profile) -> list[str]:
        """Normalized, deduplicated values of this attribute on a profile."""
        return dedupe(self.extract(profile))

    def matches(self, profile: Profile, value: str) -> bool:
        """Check whether the profile carries the given attribute value."""
        wanted = value.strip().lower()
        if not wanted:
            return False
        for candidate in self.values(profile):
            candidate = candidate.lower()
            if self.match_mode == "contains":
                if wanted in candidate:
                    return True
            elif candidate == wanted:
                return True
        return False


RULES: dict[str, AttributeRule] = {
    rule.name: rule
    for rule in (
        AttributeRule("interest", lambda p: _fields(p, "interests", "passions")),
        AttributeRule("activity", lambda p: _fields(p, "activities")),
        AttributeRule("intention", lambda p: _fields(p, "intentions", "intention")),
        AttributeRule("movie", lambda p: _fields(p, "movies")),
        AttributeRule("music", lambda p: _fields(p, "music")),
        AttributeRule("occupation", lambda p: _fields(p, "occupation", "jobTitle")),
        AttributeRule(
            "organization",
            lambda p: _fields(p, "organizations", "organization", "currentEmployer", "pastEmployers"),
        ),
        AttributeRule("university", lambda p: _fields(p, "education", "school", "degree", "university")),
        AttributeRule("location", _locations, match_mode="contains"),
        AttributeRule("business_topic", lambda p: _fields(p, "businessTopics", "businessTopic")),
        AttributeRule("skill", _skills),
    )
}


def canonical_type(attribute_type: str, custom_field_id: int | str | None = None) -> str:
    """Map caller spellings onto registry names.

    ``customField`` plus an id becomes ``custom_field:<id>``.
    """
    name = attribute_type.strip()
    if name in ("customField", "custom_field", "custom-field") and custom_field_id is not None:
        return f"{CUSTOM_FIELD_PREFIX}{custom_field_id}"
    return _TYPE_ALIASES.get(name, name)


def get_rule(attribute_type: str) -> AttributeRule | None:
    """Look up the rule for an attribute type.

    Returns:
        The rule, or None for an unknown type
    """
    name = canonical_type(attribute_type)
    if name.startswith(CUSTOM_FIELD_PREFIX):
        field_id = name[len(CUSTOM_FIELD_PREFIX) :]
        if not field_id:
            return None
        return AttributeRule(name, _custom_field_values(field_id))
    return RULES.get(name)


def custom_field_id(attribute_type: str) -> str | None:
    """Extract the id from a ``custom_field:<id>`` type, if it is one."""
    name = canonical_type(attribute_type)
    if name.startswith(CUSTOM_FIELD_PREFIX):
        return name[len(CUSTOM_FIELD_PREFIX) :] or None
    return None
