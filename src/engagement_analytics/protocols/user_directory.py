"""User directory protocol."""

from typing import Protocol, runtime_checkable

from engagement_analytics.entities import Member


@runtime_checkable
class UserDirectory(Protocol):
    """Protocol for looking up user summaries by id."""

    async def get_users_by_ids(self, ids: list[int]) -> dict[int, Member]:
        """Fetch users by id.

        Unknown ids and ids whose lookup failed are simply absent from
        the result.

        Args:
            ids: User ids to resolve

        Returns:
            Mapping of user id to Member
        """
        ...
