"""Member domain entity."""

from dataclasses import dataclass, replace
from typing import Any


def _text(raw: dict[str, Any], *names: str) -> str:
    for name in names:
        value = raw.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def member_id(raw: dict[str, Any]) -> int | None:
    """Extract the user id from a profile or member row."""
    for name in ("userId", "user_id", "id"):
        value = raw.get(name)
        if value is None or isinstance(value, bool):
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            continue
    return None


@dataclass(frozen=True)
class Member:
    """Canonical member shape returned by every user-listing operation.

    Attributes:
        id: User id
        fname: First name (may be empty)
        lname: Last name (may be empty)
        full_name: Display name, synthesised from first/last name if absent
        email: Email address (may be empty)
        profile_picture: Avatar URL, if any
        enabled: False when the account was disabled
        skills: Normalised skill names, when known
        job_title: Current job title, when known
        current_employer: Current employer, when known
    """

    id: int
    fname: str = ""
    lname: str = ""
    full_name: str = ""
    email: str = ""
    profile_picture: str | None = None
    enabled: bool = True
    skills: tuple[str, ...] = ()
    job_title: str | None = None
    current_employer: str | None = None

    @classmethod
    def from_profile(cls, raw: dict[str, Any]) -> "Member | None":
        """Map a profile/member/user row onto the canonical shape.

        Returns:
            The Member, or None when the row carries no usable id
        """
        uid = member_id(raw)
        if uid is None:
            return None

        fname = _text(raw, "fname", "firstName", "first_name")
        lname = _text(raw, "lname", "lastName", "last_name")
        full_name = (
            _text(raw, "fullName", "full_name", "name", "displayName")
            or f"{fname} {lname}".strip()
            or f"User {uid}"
        )

        return cls(
            id=uid,
            fname=fname,
            lname=lname,
            full_name=full_name,
            email=_text(raw, "email", "emailAddress", "email_address"),
            profile_picture=_text(raw, "profilePicture", "profile_picture", "avatarUrl", "photoUrl")
            or None,
            enabled=raw.get("enabled") is not False,
            job_title=_text(raw, "jobTitle", "job_title") or None,
            current_employer=_text(raw, "currentEmployer", "current_employer") or None,
        )

    def with_skills(self, skills: list[str]) -> "Member":
        """Return a copy carrying the given skills."""
        return replace(self, skills=tuple(skills))
